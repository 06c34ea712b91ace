import json

import pytest

from loan_liquidator.config import get_constants, get_telegram
from loan_liquidator.errors import ConfigError


@pytest.fixture
def constants_dir(tmp_path, monkeypatch):
    monkeypatch.setenv('LIQUIDATOR_CONSTANTS', str(tmp_path))
    return tmp_path


def write(path, name, content):
    with open(path / name, 'w') as f:
        json.dump(content, f)


def test_defaults_filled_in(constants_dir):
    write(constants_dir, 'constants.json', {'testnet': {
        'protocol': '0x1', 'swaps': '0x2', 'price_feed': '0x3',
        'native_token': '0x4', 'scan_interval': 5}})
    consts = get_constants('testnet')
    assert consts['scan_interval'] == 5
    assert consts['throttle'] == 1
    assert consts['swaps_impl'] == '0x2'


def test_missing_keys(constants_dir):
    write(constants_dir, 'constants.json', {'testnet': {'protocol': '0x1'}})
    with pytest.raises(ConfigError):
        get_constants('testnet')
    with pytest.raises(ConfigError):
        get_constants('mainnet')


def test_missing_file(constants_dir):
    with pytest.raises(ConfigError):
        get_constants('testnet')


def test_telegram_optional(constants_dir):
    assert get_telegram() is None
    write(constants_dir, 'telegram.json',
          {'telegram_token': 't', 'telegram_chat_id': 1})
    assert get_telegram()['telegram_chat_id'] == 1
