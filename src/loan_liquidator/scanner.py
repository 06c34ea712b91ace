'''
Keeps the working set of liquidatable positions up to date.
'''
import asyncio
import time

from .utils import print_w_time, run_blocking

CHUNK = 1000
POSITION_SCAN_INTERVAL = 60
# Heartbeat and low balance messages once every 6 hours
NOTIFY_INTERVAL = 21600
LOW_BALANCE = 5 * 10 ** 16


class PositionScanner:
    def __init__(self, positions, chain, notifier, wallets=None,
                 purpose='liquidator', network='',
                 scan_interval=POSITION_SCAN_INTERVAL,
                 low_balance_threshold=LOW_BALANCE, chunk=CHUNK):
        self.positions = positions
        self.chain = chain
        self.notifier = notifier
        self.wallets = wallets
        self.purpose = purpose
        self.network = network
        self.scan_interval = scan_interval
        self.low_balance_threshold = low_balance_threshold
        self.chunk = chunk
        self.last_notification_timestamp = 0

    async def run(self):
        while True:
            try:
                await self.update_positions()
                await self.heartbeat()
            except Exception as e:
                print_w_time(f'Position scan failed: {str(e)}')
            await asyncio.sleep(self.scan_interval)

    async def fetch_positions(self):
        found = {}
        start = 0
        while True:
            positions, num = await run_blocking(
                self.chain.executor, self.chain.active_loans,
                start, self.chunk)
            for pos in positions:
                if pos.max_liquidatable > 0:
                    found[pos.loan_id] = pos
            if num < self.chunk:
                return found
            start += self.chunk

    async def update_positions(self):
        '''
        Add every unsafe loan to the working set and drop those that
        are not reported anymore.
        '''
        found = await self.fetch_positions()
        for loan_id in list(self.positions):
            if loan_id not in found:
                del self.positions[loan_id]
        self.positions.update(found)
        print_w_time(f'Tracking {len(self.positions)} positions')
        return len(found)

    async def heartbeat(self, now=None):
        now = time.time() if now is None else now
        if now - self.last_notification_timestamp <= NOTIFY_INTERVAL:
            return
        self.last_notification_timestamp = now
        await self.notifier.send_message(
            f'{self.network} LIQUIDATOR TRACKING {len(self.positions)} '
            f'POSITIONS', True)
        if self.wallets is None:
            return
        low = await self.wallets.low_balance(
            self.purpose, self.low_balance_threshold)
        for address, bal in low:
            await self.notifier.send_message(
                f'LIQUIDATOR {address} LOW BALANCE\n'
                f'Current balance: {bal / 1e18}', True)
