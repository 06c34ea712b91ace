from dataclasses import dataclass, field
from typing import Optional

# Marker used instead of a token address when the loan is in the
# chain's native asset (paid as tx value rather than token transfer).
NATIVE = 'native'

# Field order of the protocol's LoanReturnData struct
# (getLoan / getActiveLoans).
LOAN_ID = 0
LOAN_TOKEN = 1
COLLATERAL_TOKEN = 2
PRINCIPAL = 3
COLLATERAL = 4
CURRENT_MARGIN = 10
MAX_LIQUIDATABLE = 13
MAX_SEIZABLE = 14


@dataclass
class Position:
    loan_id: str
    loan_token: str
    collateral_token: str
    max_liquidatable: int
    is_native: bool = False

    @classmethod
    def from_loan_data(cls, loan, native_token):
        loan_id = loan[LOAN_ID]
        if isinstance(loan_id, bytes):
            loan_id = '0x' + loan_id.hex()
        loan_token = str(loan[LOAN_TOKEN])
        return cls(
            loan_id=str(loan_id),
            loan_token=loan_token,
            collateral_token=str(loan[COLLATERAL_TOKEN]),
            max_liquidatable=int(loan[MAX_LIQUIDATABLE]),
            is_native=loan_token.lower() == str(native_token).lower(),
        )

    @property
    def token(self):
        '''
        Asset the liquidator pays the loan back in.
        '''
        return NATIVE if self.is_native else self.loan_token


@dataclass
class PositionStatus:
    loan_id: str
    max_liquidatable: int
    max_seizable: int = 0
    current_margin: int = 0

    @classmethod
    def from_loan_data(cls, loan_id, loan):
        return cls(
            loan_id=loan_id,
            max_liquidatable=int(loan[MAX_LIQUIDATABLE]),
            max_seizable=int(loan[MAX_SEIZABLE]),
            current_margin=int(loan[CURRENT_MARGIN]),
        )


@dataclass
class LiquidationAttempt:
    loan_id: str
    wallet: str
    amount: int
    token: str
    nonce: int
    value: int = 0
    tx_hash: Optional[str] = None


@dataclass
class DecodedEvent:
    name: str
    address: Optional[str]
    args: dict = field(default_factory=dict)


@dataclass
class AuditRecord:
    liquidator_adr: str
    liquidated_adr: str
    amount: int
    pos: str
    loan_id: str
    tx_hash: str
    profit: Optional[int] = None
    swap_profit: Optional[int] = None
