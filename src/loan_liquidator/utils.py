import asyncio
import datetime
import functools
import time


def print_w_time(string):
    gmt_offset = datetime.timezone(datetime.timedelta(hours=0))
    current_time =\
        datetime.datetime.now(gmt_offset).strftime('%Y-%m-%d %H:%M:%S')
    print(f"[{current_time} GMT] {string}", flush=True)


def try_with_backoff(func, max_tries=None):
    '''
    Try running function with exponential backoff.
    Used for making RPC calls here. Gives up and re-raises the last
    error after `max_tries` attempts (never gives up if None).
    '''
    tries = 1
    while True:
        try:
            return func()
        except Exception as e:
            print_w_time(f"Error: {str(e)}")
            if max_tries is not None and tries >= max_tries:
                raise
            backoff_interval = (2 ** tries) / 10
            tries += 1
            print_w_time(f'Sleeping for {backoff_interval} secs')
            time.sleep(backoff_interval)


async def run_blocking(executor, func, *args, **kwargs):
    '''
    Run a blocking brownie/web3 call on the executor without
    blocking the event loop.
    '''
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        executor, functools.partial(func, *args, **kwargs))


def same_address(a, b):
    if not a or not b:
        return False
    return str(a).lower() == str(b).lower()
