'''
Wires the brownie-backed collaborators together and runs the bot.
'''
import asyncio
import time
import traceback
from concurrent.futures import ThreadPoolExecutor

from .audit import AuditLogger, SqliteAuditStore
from .chain import ChainClient
from .config import get_constants, get_secrets, get_telegram
from .engine import PURPOSE, Liquidator
from .notifier import ConsoleNotifier, TelegramNotifier
from .retry_tracker import RetryTracker
from .scanner import PositionScanner
from .swaps import SwapEngine
from .utils import print_w_time
from .wallets import WalletPool

MAX_ATTEMPTS = 5
RESTART_DELAY = 300


def init_notifier(chain_name):
    telegram = get_telegram()
    if telegram is None:
        return ConsoleNotifier()
    return TelegramNotifier(
        telegram['telegram_token'], telegram['telegram_chat_id'],
        prefix=f'[{chain_name}] ')


def build_bot(consts, accs, notifier, network, web3, load_contract,
              load_token, errors=None):
    # Reads and broadcasts. Swap txs wait to be mined, so they get their
    # own threads and cannot starve the scan loop.
    executor = ThreadPoolExecutor()
    swap_executor = ThreadPoolExecutor()
    chain = ChainClient(
        web3, load_contract(consts['protocol']), load_token,
        consts['native_token'], gas_limit=consts['gas_limit'],
        confirmation_timeout=consts['confirmation_timeout'],
        poll_interval=consts['poll_interval'], executor=executor)
    chain.add_signers(accs)
    wallets = WalletPool({PURPOSE: accs}, chain, executor=executor)
    swaps = SwapEngine(
        load_contract(consts['swaps']), load_contract(consts['price_feed']),
        load_token, consts['native_token'], consts['reference_token'],
        tokens=consts['tokens'], spender=consts['swaps_impl'],
        account=accs[0] if accs else None, gas_limit=consts['gas_limit'],
        executor=swap_executor)
    audit = AuditLogger(
        chain, swaps, SqliteAuditStore(consts['db_path']), wallets,
        consts['native_token'])

    positions = {}
    liquidator = Liquidator(
        positions, wallets, chain, swaps, notifier, audit,
        errors=errors, network=network,
        scan_interval=consts['scan_interval'], throttle=consts['throttle'],
        reference_token=consts['reference_token'])
    scanner = PositionScanner(
        positions, chain, notifier, wallets=wallets, network=network,
        scan_interval=consts['position_scan_interval'],
        low_balance_threshold=consts['low_balance_threshold'])
    return liquidator, scanner


async def run_bot(liquidator, scanner):
    await asyncio.gather(scanner.run(), liquidator.run())


def main(acc_names, chain_name, network_name=None):
    '''
    Run the liquidator until it crashed MAX_ATTEMPTS times in a row.
    Error counts survive restarts.
    '''
    # Imported here so the package can be used without a brownie project
    from brownie import network, web3
    from .contracts import init_accounts, load_contract, load_token

    network_name = network_name or chain_name
    if not network.is_connected():
        network.connect(network_name)
    secrets = get_secrets()
    notifier = init_notifier(chain_name)
    errors = RetryTracker()
    attempt_count = 0
    while True:
        started = time.time()
        try:
            consts = get_constants(chain_name)
            accs = init_accounts(acc_names, secrets['brownie_pass'])
            addresses = '\n'.join(acc.address for acc in accs)
            print_w_time(f'Accounts loaded:\n{addresses}')
            liquidator, scanner = build_bot(
                consts, accs, notifier, chain_name, web3, load_contract,
                load_token, errors=errors)
            asyncio.run(notifier.send_message(
                f'LIQUIDATOR STARTED\nWALLETS {addresses}\n'))
            asyncio.run(run_bot(liquidator, scanner))
        except KeyboardInterrupt:
            print_w_time('Liquidator stopped')
            return
        except Exception:
            error_message = traceback.format_exc()
            # A long healthy run resets the crash counter
            if time.time() - started > RESTART_DELAY:
                attempt_count = 0
            attempt_count += 1
            asyncio.run(notifier.send_message(
                f'LIQUIDATOR STOPPED\n'
                f'Error: {error_message}\n'
                f'Attempting to restart in {RESTART_DELAY // 60} minutes...'
            ))
            if attempt_count >= MAX_ATTEMPTS:
                asyncio.run(notifier.send_message(
                    f'LIQUIDATOR STOPPED after {MAX_ATTEMPTS} attempts\n'
                    f'Maximum attempt limit reached. Exiting...'
                ))
                return
            time.sleep(RESTART_DELAY)
