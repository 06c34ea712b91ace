import json
import os

from .errors import ConfigError

CONSTANTS_ENV = 'LIQUIDATOR_CONSTANTS'
REQUIRED = ('protocol', 'swaps', 'price_feed', 'native_token')
DEFAULTS = {
    'scan_interval': 30,
    'position_scan_interval': 60,
    'throttle': 1,
    'confirmation_timeout': 600,
    'poll_interval': 2,
    'gas_limit': 2_500_000,
    'low_balance_threshold': 5 * 10 ** 16,
    'db_path': 'liquidations.db',
    'reference_token': None,
    'tokens': {},
}


def get_constants_path():
    if os.environ.get(CONSTANTS_ENV):
        return os.path.join(os.environ[CONSTANTS_ENV], '')
    script_path = os.path.realpath(__file__)
    repo = os.path.abspath(
        os.path.join(script_path, os.pardir, os.pardir, os.pardir))
    return repo + '/scripts/constants/'


def read_json(filename):
    path = get_constants_path() + filename
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        raise ConfigError(f'Missing config file {path}')


def get_constants(chain):
    const = read_json('constants.json')
    if chain not in const:
        raise ConfigError(f'No constants for chain {chain}')
    consts = dict(DEFAULTS)
    consts.update(const[chain])
    missing = [k for k in REQUIRED if not consts.get(k)]
    if missing:
        raise ConfigError(
            f"Missing constants for {chain}: {', '.join(missing)}")
    consts['swaps_impl'] = consts.get('swaps_impl') or consts['swaps']
    return consts


def get_abis():
    try:
        return read_json('abis.json')
    except ConfigError:
        return {}


def get_secrets():
    return read_json('secrets.json')


def get_telegram():
    '''
    Telegram credentials, or None to print notifications only.
    '''
    try:
        telegram = read_json('telegram.json')
    except ConfigError:
        return None
    if not telegram.get('telegram_token'):
        return None
    return telegram
