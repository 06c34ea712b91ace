'''
Swap network and price feed access.
'''
from concurrent.futures import ThreadPoolExecutor

from .errors import SwapPathError
from .models import NATIVE
from .utils import print_w_time, run_blocking, same_address

AFFILIATE_ACC = '0x0000000000000000000000000000000000000000'
GAS_LIMIT = 2_500_000


class SwapEngine:
    def __init__(self, swap_network, price_feed, token_loader, native_token,
                 reference_token, tokens=None, spender=None, account=None,
                 gas_limit=GAS_LIMIT, executor=None):
        self.swap_network = swap_network
        self.price_feed = price_feed
        self.token_loader = token_loader
        self.native_token = native_token
        self.reference_token = reference_token
        self.tokens = tokens or {}
        self.spender = spender or swap_network.address
        self.account = account
        self.gas_limit = gas_limit
        self.executor = executor or ThreadPoolExecutor()

    def resolve(self, asset):
        '''
        Token address for a symbol, address or the native marker.
        '''
        if asset == NATIVE:
            return self.native_token
        return self.tokens.get(asset, asset)

    def _reference_prices(self):
        prices = {}
        for symbol, address in self.tokens.items():
            if same_address(address, self.reference_token):
                prices[address.lower()] = 1.0
                continue
            try:
                rate, precision = self.price_feed.queryRate(
                    address, self.reference_token)
            except Exception as e:
                print_w_time(f'No price for {symbol}: {str(e)}')
                continue
            if rate:
                prices[address.lower()] = int(rate) / int(precision)
        return prices

    async def reference_prices(self):
        '''
        {lowercase token address: price in reference token}
        '''
        return await run_blocking(self.executor, self._reference_prices)

    async def conversion_path(self, source, dest):
        path = await run_blocking(
            self.executor, self.swap_network.conversionPath,
            self.resolve(source), self.resolve(dest))
        return list(path) if path else None

    async def price_feed_return(self, source, dest, amount):
        '''
        `amount` of `source` expressed in `dest` units by the price feed.
        '''
        try:
            result = await run_blocking(
                self.executor, self.price_feed.queryReturn,
                self.resolve(source), self.resolve(dest), int(amount))
        except Exception as e:
            print_w_time(f'Price feed query failed: {str(e)}')
            return None
        return int(result) if result else None

    def _approve(self, token, account, amount):
        allowance = token.allowance(account.address, self.spender)
        if int(allowance) >= int(amount):
            return
        print_w_time(f'Approving {amount} of {token.address} for swaps')
        token.approve(self.spender, amount, {'from': account})

    def _convert_by_path(self, path, amount, account, beneficiary=None,
                         value=0):
        if value == 0:
            self._approve(self.token_loader(path[0]), account, amount)
        tx = self.swap_network.convertByPath(
            path, int(amount), 1, beneficiary or account.address,
            AFFILIATE_ACC, 0,
            {'from': account, 'gas_limit': self.gas_limit, 'value': value})
        return tx.status == 1

    async def convert_by_path(self, path, amount, account, beneficiary=None,
                              value=0):
        return await run_blocking(
            self.executor, self._convert_by_path,
            path, amount, account, beneficiary, value)

    async def swap(self, amount, source, dest, beneficiary, account=None):
        '''
        Swap `amount` of `source` to `dest`, paid out to `beneficiary`.
        Native source is sent as tx value. Signed by `account`, or the
        default swap account.
        '''
        account = account or self.account
        if account is None:
            raise SwapPathError('No account set for swaps')
        path = await self.conversion_path(source, dest)
        if not path:
            raise SwapPathError(f'No conversion path {source} -> {dest}')
        value = int(amount) if source == NATIVE else 0
        return await self.convert_by_path(
            path, amount, account, beneficiary, value)
