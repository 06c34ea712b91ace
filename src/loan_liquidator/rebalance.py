from .errors import NoPriceError
from .utils import print_w_time


async def swap_back_after_liquidation(swaps, value, source, dest,
                                      beneficiary, account=None):
    '''
    Swap the native proceeds of a liquidation back to `dest`.
    Failures are printed only; the liquidation stays successful.
    Returns True if the swap went through.
    '''
    if not value:
        return False
    print_w_time(f'Swapping back {value} {source} to {dest}')
    try:
        prices = await swaps.reference_prices()
        if not prices.get(swaps.resolve(source).lower()):
            raise NoPriceError(f'No prices found for the {source} token')
        res = await swaps.swap(value, source, dest, beneficiary, account)
        if res:
            print_w_time('Swap successful!')
        return bool(res)
    except Exception as e:
        print_w_time(f'Swap failed: {str(e)}')
        return False
