'''
Pool of funded liquidator wallets.

A wallet is reserved for one loan from dispatch until its transaction
is settled, which keeps two liquidations from spending the same funds
or racing on the same nonce.
'''
from concurrent.futures import ThreadPoolExecutor

from .models import NATIVE
from .utils import print_w_time, run_blocking, same_address


class WalletPool:
    def __init__(self, accounts, chain, executor=None):
        '''
        accounts: {purpose: [brownie account, ...]}
        chain: ChainClient used for token balances
        '''
        self.accounts = {p: list(a) for p, a in accounts.items()}
        self.chain = chain
        self.executor = executor or ThreadPoolExecutor()
        self.queue = {p: {} for p in self.accounts}

    def account(self, address):
        for accs in self.accounts.values():
            for acc in accs:
                if same_address(acc.address, address):
                    return acc
        return None

    def addresses(self, purpose):
        return [acc.address for acc in self.accounts.get(purpose, [])]

    async def balance(self, acc, asset):
        if asset == NATIVE:
            return int(await run_blocking(self.executor, acc.balance))
        return int(await self.chain.token_balance(acc.address, asset))

    async def allocate(self, purpose, min_amount, asset):
        '''
        Get a free wallet with at least `min_amount` of `asset`, or
        else the free wallet holding the most of it.
        Returns (address, balance) or (None, 0) if every wallet is busy.
        '''
        busy = self.queue.get(purpose, {})
        best = (None, 0)
        for acc in self.accounts.get(purpose, []):
            if acc.address in busy:
                continue
            bal = await self.balance(acc, asset)
            if bal >= min_amount:
                return acc.address, bal
            if best[0] is None or bal > best[1]:
                best = (acc.address, bal)
        return best

    def has_pending(self, loan_id):
        return any(loan_id in q.values() for q in self.queue.values())

    def reserve(self, purpose, address, loan_id):
        self.queue.setdefault(purpose, {})[address] = loan_id

    def release(self, purpose, address, loan_id):
        busy = self.queue.get(purpose, {})
        if busy.get(address) == loan_id:
            del busy[address]
        else:
            print_w_time(
                f'Wallet {address} was not reserved for loan {loan_id}')

    async def low_balance(self, purpose, threshold):
        low = []
        for acc in self.accounts.get(purpose, []):
            bal = await self.balance(acc, NATIVE)
            if bal < threshold:
                low.append((acc.address, bal))
        return low
