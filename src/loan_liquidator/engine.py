'''
Liquidation loop.

Each round walks the working set of liquidatable positions, gets a
funded wallet for every eligible one and broadcasts a liquidate tx.
Confirmation is awaited in a separate task per tx, so the round moves
on while earlier txs are still pending. A wallet stays reserved for its
loan until that task settles.
'''
import asyncio

from .models import NATIVE, LiquidationAttempt
from .rebalance import swap_back_after_liquidation
from .retry_tracker import RetryTracker
from .utils import print_w_time

PURPOSE = 'liquidator'
SCAN_INTERVAL = 30
THROTTLE = 1


class Liquidator:
    def __init__(self, positions, wallets, chain, swaps, notifier, audit,
                 errors=None, network='', scan_interval=SCAN_INTERVAL,
                 throttle=THROTTLE, reference_token=None):
        '''
        positions: working set {loan_id: Position}, shared with the
        position scanner
        '''
        self.positions = positions
        self.wallets = wallets
        self.chain = chain
        self.swaps = swaps
        self.notifier = notifier
        self.audit = audit
        self.errors = errors if errors is not None else RetryTracker()
        self.network = network
        self.scan_interval = scan_interval
        self.throttle = throttle
        self.reference_token = reference_token
        self.pending = set()
        self.liquidated = []

    async def run(self):
        while True:
            try:
                await self.check_positions_for_liquidations()
            except Exception as e:
                print_w_time(f'Liquidation round failed: {str(e)}')
            await asyncio.sleep(self.scan_interval)

    async def check_positions_for_liquidations(self):
        print_w_time('Started liquidation round')
        print_w_time(
            f'{len(self.positions)} positions need to be liquidated')

        for loan_id, pos in list(self.positions.items()):
            try:
                if not await self.check_position(loan_id, pos):
                    print_w_time('Liquidation round aborted')
                    return
            except Exception as e:
                print_w_time(f'Unable to liquidate loan {loan_id}: {str(e)}')

        quarantined = self.errors.quarantined_loans()
        if quarantined:
            print_w_time(
                f'{len(quarantined)} loans need a manual check: '
                f'{", ".join(quarantined)}')
        print_w_time('Completed liquidation round')

    async def check_position(self, loan_id, pos):
        '''
        Try one position. Returns False when wallets ran out of funds
        and the round should stop.
        '''
        # Position already in liquidation wallet-queue
        if self.wallets.has_pending(loan_id):
            return True
        # Failed too often, has to be checked manually
        if self.errors.quarantined(loan_id):
            return True

        token = pos.token
        wallet, w_balance = await self.wallets.allocate(
            PURPOSE, pos.max_liquidatable, token)
        if not wallet:
            await self.handle_no_wallet_error(loan_id)
            return True

        liquidate_amount = min(pos.max_liquidatable, w_balance)
        if w_balance == 0:
            print_w_time('Not enough balance on wallet')
            return False
        elif pos.max_liquidatable <= w_balance:
            print_w_time('Enough balance on wallet')
        else:
            print_w_time(
                f'Not enough balance on wallet. Only use {w_balance}')

        nonce = await self.chain.pending_nonce(wallet)
        await self.liquidate(loan_id, wallet, liquidate_amount, token, nonce)
        # Break to avoid rejection from node
        await asyncio.sleep(self.throttle)
        return True

    def spawn(self, coro):
        task = asyncio.ensure_future(coro)
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)
        return task

    async def wait_pending(self):
        while self.pending:
            await asyncio.gather(*list(self.pending))

    async def liquidate(self, loan_id, wallet, amount, token, nonce):
        '''
        Broadcast a liquidation of `loan_id` from `wallet`, which also
        receives the collateral. Returns once the tx is broadcast.
        '''
        print_w_time(
            f'Trying to liquidate loan {loan_id} from wallet {wallet}, '
            f'amount: {amount}')
        self.wallets.reserve(PURPOSE, wallet, loan_id)
        val = amount if token == NATIVE else 0
        print_w_time(f'Sending val: {val}')
        print_w_time(f'Nonce: {nonce}')

        # Dropped whatever the outcome, the scanner adds it again if
        # it is still liquidatable.
        self.positions.pop(loan_id, None)

        attempt = LiquidationAttempt(
            loan_id=loan_id, wallet=wallet, amount=amount, token=token,
            nonce=nonce, value=val)
        try:
            gas_price = await self.chain.gas_price()
            attempt.tx_hash = await self.chain.send_liquidation(
                loan_id, wallet, amount, val, gas_price, nonce)
        except Exception as e:
            print_w_time(f'Error on liquidating loan {loan_id}: {str(e)}')
            self.spawn(self.handle_liq_error(wallet, loan_id))
            return attempt
        print_w_time(f'Liquidation of loan {loan_id} sent: {attempt.tx_hash}')
        self.spawn(self.settle(attempt))
        return attempt

    async def settle(self, attempt):
        try:
            await self.chain.wait_for_confirmation(attempt.tx_hash)
        except Exception as e:
            print_w_time(
                f'Error on liquidating loan {attempt.loan_id}: {str(e)}')
            await self.handle_liq_error(attempt.wallet, attempt.loan_id)
            return False

        print_w_time(f'Loan {attempt.loan_id} liquidated!')
        # The audit swap and swap-back sign from this wallet, so it stays
        # reserved until they are done.
        try:
            await self.handle_liq_success(
                attempt.wallet, attempt.loan_id, attempt.tx_hash)
            await self.after_liquidation(attempt)
        finally:
            self.wallets.release(PURPOSE, attempt.wallet, attempt.loan_id)
        return True

    async def after_liquidation(self, attempt):
        try:
            await self.audit.add_liq_log(attempt.tx_hash, attempt.wallet)
        except Exception as e:
            print_w_time(f'Unable to log liquidation: {str(e)}')
        if attempt.value and self.reference_token:
            await swap_back_after_liquidation(
                self.swaps, attempt.value, NATIVE, self.reference_token,
                attempt.wallet, self.wallets.account(attempt.wallet))

    async def handle_liq_success(self, wallet, loan_id, tx_hash):
        self.errors.record_success(loan_id)
        self.liquidated.append(tx_hash)
        await self.notifier.send_message(
            f'{self.network} liquidation of loan {loan_id} successful.\n'
            f'{tx_hash}')

    async def handle_liq_error(self, wallet, loan_id):
        '''
        Possible errors:
        1. Another liquidator was faster, the position is gone
        2. Price moved back and the amount cannot be liquidated anymore
        3. Node or gas trouble
        Only the last leaves something to act on, which shows as a
        position that is still liquidatable.
        '''
        self.wallets.release(PURPOSE, wallet, loan_id)
        self.errors.record_failure(loan_id)

        try:
            updated_loan = await self.chain.position_status(loan_id)
        except Exception as e:
            print_w_time(f'Unable to check loan {loan_id}: {str(e)}')
            await self.notifier.send_message(
                f'{self.network} liquidation of loan {loan_id} failed. '
                f'Unable to check its status.')
            return
        if updated_loan.max_liquidatable > 0:
            print_w_time(
                f'Loan {loan_id} should still be liquidated. '
                f'Please check manually')
            await self.notifier.send_message(
                f'{self.network} liquidation of loan {loan_id} failed.')
        else:
            print_w_time(f'Loan {loan_id} is not liquidatable anymore')

    async def handle_no_wallet_error(self, loan_id):
        print_w_time(
            f'Liquidation of loan {loan_id} failed because no wallet with '
            f'enough funds was available')
        await self.notifier.send_message(
            f'{self.network} liquidation of loan {loan_id} failed because '
            f'no wallet with enough funds was found.')
