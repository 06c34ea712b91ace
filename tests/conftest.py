import asyncio
from types import SimpleNamespace

import pytest
from eth_utils import to_checksum_address

from loan_liquidator.engine import Liquidator
from loan_liquidator.errors import TransactionFailed
from loan_liquidator.models import NATIVE, Position, PositionStatus

NATIVE_TOKEN = to_checksum_address('0x542fda317318ebf1d3deaf76e0b632741a7e677d')
DOC_TOKEN = to_checksum_address('0xe700691da7b9851f2f35f8b8182c69c53ccad9db')


class FakeWallets:
    def __init__(self, balances=None):
        # [(address, balance), ...] handed out in order
        self.balances = list(balances or [])
        self.queue = {}
        self.released = []
        self.allocations = []

    async def allocate(self, purpose, min_amount, asset):
        self.allocations.append((purpose, min_amount, asset))
        for address, bal in self.balances:
            if address not in self.queue:
                return address, bal
        return None, 0

    def has_pending(self, loan_id):
        return loan_id in self.queue.values()

    def reserve(self, purpose, address, loan_id):
        self.queue[address] = loan_id

    def release(self, purpose, address, loan_id):
        self.released.append((address, loan_id))
        if self.queue.get(address) == loan_id:
            del self.queue[address]

    def account(self, address):
        return SimpleNamespace(address=address)


class FakeChain:
    def __init__(self):
        self.sent = []
        self.statuses = {}
        self.reject = set()
        self.revert = set()
        self.gates = {}
        self.receipts = {}
        self.balances = {}

    async def pending_nonce(self, address):
        return len([s for s in self.sent if s['wallet'] == address])

    async def gas_price(self):
        return 60_000_000

    async def send_liquidation(self, loan_id, receiver, amount, value,
                               gas_price, nonce):
        if loan_id in self.reject:
            raise TransactionFailed('nonce too low')
        self.sent.append({'loan_id': loan_id, 'wallet': receiver,
                          'amount': amount, 'value': value, 'nonce': nonce})
        return f'0xtx{loan_id}'

    def hold(self, tx_hash):
        '''
        Keep `tx_hash` pending until the returned event is set.
        '''
        gate = asyncio.Event()
        self.gates[tx_hash] = gate
        return gate

    async def wait_for_confirmation(self, tx_hash):
        if tx_hash in self.gates:
            await self.gates[tx_hash].wait()
        if tx_hash.replace('0xtx', '') in self.revert:
            raise TransactionFailed('Reverted', tx_hash)
        return tx_hash

    async def position_status(self, loan_id):
        return PositionStatus(loan_id=loan_id,
                              max_liquidatable=self.statuses.get(loan_id, 0))

    async def get_receipt(self, tx_hash):
        return self.receipts.get(tx_hash)

    async def token_balance(self, address, asset):
        bal = self.balances.get((address, asset), [0])
        return bal.pop(0) if len(bal) > 1 else bal[0]


class FakeNotifier:
    def __init__(self):
        self.messages = []

    async def send_message(self, message, silent=False):
        self.messages.append(message)


class FakeAudit:
    def __init__(self):
        self.logged = []

    async def add_liq_log(self, tx_hash, sender=None):
        self.logged.append((tx_hash, sender))
        return 1


class FakeSwaps:
    def __init__(self, prices=None, path=None, fail=False):
        self.prices = prices or {}
        self.path = path
        self.fail = fail
        self.swaps = []
        self.converted = []
        self.feed_return = None

    def resolve(self, asset):
        return NATIVE_TOKEN if asset == NATIVE else asset

    async def reference_prices(self):
        return self.prices

    async def swap(self, amount, source, dest, beneficiary, account=None):
        if self.fail:
            raise RuntimeError('swap reverted')
        self.swaps.append((amount, source, dest, beneficiary))
        return True

    async def conversion_path(self, source, dest):
        return self.path

    async def convert_by_path(self, path, amount, account, beneficiary=None,
                              value=0):
        self.converted.append((path, amount, account.address))
        return True

    async def price_feed_return(self, source, dest, amount):
        return self.feed_return


def make_position(loan_id, max_liquidatable=100, native=False):
    return Position(
        loan_id=loan_id,
        loan_token=NATIVE_TOKEN if native else DOC_TOKEN,
        collateral_token=DOC_TOKEN if native else NATIVE_TOKEN,
        max_liquidatable=max_liquidatable,
        is_native=native,
    )


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def audit():
    return FakeAudit()


@pytest.fixture
def swaps():
    return FakeSwaps()


@pytest.fixture
def make_liquidator(chain, notifier, audit, swaps):
    def _make(positions, balances, **kwargs):
        wallets = FakeWallets(balances)
        kwargs.setdefault('throttle', 0)
        kwargs.setdefault('scan_interval', 0)
        return Liquidator(positions, wallets, chain, swaps, notifier,
                          audit, network='testnet', **kwargs)
    return _make
