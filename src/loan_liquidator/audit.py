'''
Audit trail of successful liquidations.
'''
import datetime
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict

from .events import decode_logs, find_liquidate_event, parse_event_params
from .models import AuditRecord
from .utils import print_w_time, run_blocking, same_address

HOPS_NATIVE_LOAN = 3
HOPS_TOKEN_LOAN = 5

SCHEMA = '''
CREATE TABLE IF NOT EXISTS liquidations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    liquidator_adr TEXT,
    liquidated_adr TEXT,
    amount TEXT,
    pos TEXT,
    loan_id TEXT,
    profit TEXT,
    swap_profit TEXT,
    tx_hash TEXT,
    date_added TEXT
)
'''

COLUMNS = ('liquidator_adr', 'liquidated_adr', 'amount', 'pos', 'loan_id',
           'profit', 'swap_profit', 'tx_hash')


class SqliteAuditStore:
    def __init__(self, db_path):
        self.db_path = db_path
        # Written from the audit executor thread
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.execute(SCHEMA)
        self.conn.commit()

    def append(self, record):
        row = asdict(record)
        # Token amounts overflow sqlite integers.
        values = [None if row[c] is None else str(row[c]) for c in COLUMNS]
        gmt = datetime.timezone(datetime.timedelta(hours=0))
        values.append(datetime.datetime.now(gmt).isoformat())
        cur = self.conn.execute(
            f"INSERT INTO liquidations ({', '.join(COLUMNS)}, date_added) "
            f"VALUES ({', '.join('?' * (len(COLUMNS) + 1))})",
            values)
        self.conn.commit()
        return cur.lastrowid

    def all(self):
        cur = self.conn.execute(
            f"SELECT id, {', '.join(COLUMNS)}, date_added "
            f"FROM liquidations ORDER BY id")
        names = ('id',) + COLUMNS + ('date_added',)
        return [dict(zip(names, r)) for r in cur.fetchall()]

    def close(self):
        self.conn.close()


class AuditLogger:
    def __init__(self, chain, swaps, store, wallets, native_token,
                 executor=None):
        self.chain = chain
        self.swaps = swaps
        self.store = store
        self.wallets = wallets
        self.native_token = native_token
        # One thread keeps sqlite writes serialized
        self.executor = executor or ThreadPoolExecutor(max_workers=1)

    def expected_hops(self, loan_token):
        if same_address(loan_token, self.native_token):
            return HOPS_NATIVE_LOAN
        return HOPS_TOKEN_LOAN

    def position_side(self, loan_token):
        return 'long' if same_address(loan_token, self.native_token) \
            else 'short'

    async def calculate_liq_profit(self, params):
        '''
        Collateral received minus the repaid amount converted to
        collateral units by the price feed.
        '''
        print_w_time(f"Calculate profit for liquidation {params['loanId']}")
        paid = await self.swaps.price_feed_return(
            params['loanToken'], params['collateralToken'],
            params['repayAmount'])
        if not paid:
            print_w_time(
                "Couldn't calculate the profit for the given liquidation")
            return None
        liq_profit = int(params['collateralWithdrawAmount']) - int(paid)
        print_w_time(
            f"You made {liq_profit} {params['collateralToken']} "
            f"with this liquidation")
        return liq_profit

    async def swap_collateral(self, params, path):
        '''
        Convert the seized collateral back along `path`, returning the
        liquidator's balance delta in the loan token.
        '''
        liquidator = params['liquidator']
        loan_token = params['loanToken']
        account = self.wallets.account(liquidator)
        if account is None:
            print_w_time(f'No account loaded for {liquidator}. Not swapping')
            return None
        bal_before = await self.chain.token_balance(liquidator, loan_token)
        await self.swaps.convert_by_path(
            path, params['collateralWithdrawAmount'], account)
        bal_after = await self.chain.token_balance(liquidator, loan_token)
        return int(bal_after) - int(bal_before)

    async def add_liq_log(self, tx_hash, sender=None):
        '''
        Store the Liquidate event of `tx_hash`. Returns the stored id, or
        None when the event is missing or the swap path is unexpected.
        '''
        print_w_time(f'Add liquidation {tx_hash} to db')
        try:
            receipt = await self.chain.get_receipt(tx_hash)
            if not receipt or not receipt.get('logs'):
                print_w_time(f'No logs in receipt of {tx_hash}')
                return None
            events = decode_logs(receipt['logs'])
            params = parse_event_params(
                find_liquidate_event(events, sender))
            user = params.get('user')
            liquidator = params.get('liquidator')
            loan_id = params.get('loanId')
            if not (user and liquidator and loan_id):
                print_w_time(f'No Liquidate event in {tx_hash}')
                return None

            loan_token = params['loanToken']
            path = await self.swaps.conversion_path(
                params['collateralToken'], loan_token)
            hops = self.expected_hops(loan_token)
            if not path or len(path) != hops:
                print_w_time(
                    f'Unexpected conversion path {path} for loan {loan_id}')
                return None

            swap_profit = await self.swap_collateral(params, path)
            liq_profit = await self.calculate_liq_profit(params)
            record = AuditRecord(
                liquidator_adr=liquidator,
                liquidated_adr=user,
                amount=params['collateralWithdrawAmount'],
                pos=self.position_side(loan_token),
                loan_id=loan_id,
                tx_hash=tx_hash,
                profit=liq_profit,
                swap_profit=swap_profit,
            )
            added = await run_blocking(
                self.executor, self.store.append, record)
            print_w_time(f'Liquidation {tx_hash} stored with id {added}')
            return added
        except Exception as e:
            print_w_time(f'Unable to log liquidation {tx_hash}: {str(e)}')
            return None
