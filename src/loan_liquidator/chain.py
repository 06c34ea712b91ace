'''
Blocking brownie/web3 calls wrapped as coroutines.
'''
import asyncio
from concurrent.futures import ThreadPoolExecutor

from web3.exceptions import TransactionNotFound

from .errors import TransactionFailed
from .models import Position, PositionStatus
from .utils import print_w_time, run_blocking, try_with_backoff

GAS_LIMIT = 2_500_000
CONFIRMATION_TIMEOUT = 600
POLL_INTERVAL = 2


class ChainClient:
    def __init__(self, web3, protocol, token_loader, native_token,
                 gas_limit=GAS_LIMIT,
                 confirmation_timeout=CONFIRMATION_TIMEOUT,
                 poll_interval=POLL_INTERVAL, executor=None):
        self.web3 = web3
        self.protocol = protocol
        self.token_loader = token_loader
        self.native_token = native_token
        self.gas_limit = gas_limit
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self.executor = executor or ThreadPoolExecutor()
        self.signers = {}
        self.tokens = {}

    def add_signers(self, accounts):
        for acc in accounts:
            self.signers[acc.address.lower()] = acc

    def signer(self, address):
        acc = self.signers.get(str(address).lower())
        if acc is None:
            raise TransactionFailed(f'No signer loaded for {address}')
        return acc

    def token(self, address):
        if address not in self.tokens:
            self.tokens[address] = self.token_loader(address)
        return self.tokens[address]

    async def pending_nonce(self, address):
        return await run_blocking(
            self.executor, self.web3.eth.get_transaction_count,
            address, 'pending')

    async def gas_price(self):
        return await run_blocking(
            self.executor, lambda: self.web3.eth.gas_price)

    async def token_balance(self, address, asset):
        return await run_blocking(
            self.executor, lambda: self.token(asset).balanceOf(address))

    def _send_liquidation(self, loan_id, receiver, amount, value,
                          gas_price, nonce):
        acc = self.signer(receiver)
        try:
            tx = self.protocol.liquidate(
                loan_id, receiver, str(amount),
                {'from': acc, 'gas_limit': self.gas_limit,
                 'gas_price': gas_price, 'nonce': nonce, 'value': value,
                 'required_confs': 0})
        except Exception as e:
            raise TransactionFailed(f'Rejected on broadcast: {str(e)}')
        return tx.txid

    async def send_liquidation(self, loan_id, receiver, amount, value,
                               gas_price, nonce):
        '''
        Broadcast a liquidate call. Returns the tx hash as soon as the
        node accepted it, without waiting for it to be mined.
        '''
        return await run_blocking(
            self.executor, self._send_liquidation,
            loan_id, receiver, amount, value, gas_price, nonce)

    def _receipt_or_none(self, tx_hash):
        try:
            return self.web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    async def wait_for_confirmation(self, tx_hash):
        '''
        Poll for the receipt of `tx_hash`. No executor thread is held
        between polls, so pending txs never starve other RPC calls.
        Raises TransactionFailed if reverted or still not mined after
        `confirmation_timeout` seconds (None waits forever).
        '''
        loop = asyncio.get_running_loop()
        deadline = None
        if self.confirmation_timeout is not None:
            deadline = loop.time() + self.confirmation_timeout
        while True:
            try:
                receipt = await run_blocking(
                    self.executor, self._receipt_or_none, tx_hash)
            except Exception as e:
                print_w_time(f'Unable to get receipt of {tx_hash}: {str(e)}')
                receipt = None
            if receipt is not None:
                break
            if deadline is not None and loop.time() >= deadline:
                raise TransactionFailed(
                    f'Not confirmed after {self.confirmation_timeout} secs',
                    tx_hash)
            await asyncio.sleep(self.poll_interval)
        if receipt['status'] != 1:
            raise TransactionFailed('Reverted', tx_hash)
        return tx_hash

    async def get_receipt(self, tx_hash):
        return await run_blocking(
            self.executor, self.web3.eth.get_transaction_receipt, tx_hash)

    async def position_status(self, loan_id):
        loan = await run_blocking(
            self.executor, try_with_backoff,
            lambda: self.protocol.getLoan(loan_id), 5)
        return PositionStatus.from_loan_data(loan_id, loan)

    def active_loans(self, start, count):
        '''
        Unsafe loans from the protocol, blocking.
        '''
        loans = try_with_backoff(
            lambda: self.protocol.getActiveLoans(start, count, True), 5)
        positions = []
        for loan in loans:
            try:
                positions.append(
                    Position.from_loan_data(loan, self.native_token))
            except (TypeError, ValueError, IndexError) as e:
                print_w_time(f'Skipping malformed loan data: {str(e)}')
        return positions, len(loans)
