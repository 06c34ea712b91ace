from brownie import Contract, accounts

from .config import get_abis
from .errors import ConfigError
from .utils import print_w_time

ERC20_ABI = [
    {'name': 'balanceOf', 'type': 'function', 'stateMutability': 'view',
     'inputs': [{'name': 'owner', 'type': 'address'}],
     'outputs': [{'name': '', 'type': 'uint256'}]},
    {'name': 'allowance', 'type': 'function', 'stateMutability': 'view',
     'inputs': [{'name': 'owner', 'type': 'address'},
                {'name': 'spender', 'type': 'address'}],
     'outputs': [{'name': '', 'type': 'uint256'}]},
    {'name': 'approve', 'type': 'function', 'stateMutability': 'nonpayable',
     'inputs': [{'name': 'spender', 'type': 'address'},
                {'name': 'amount', 'type': 'uint256'}],
     'outputs': [{'name': '', 'type': 'bool'}]},
]


def init_account(acc, password):
    acc = accounts.load(acc, password=password)
    return acc


def init_accounts(acc_names, password):
    return [init_account(name.strip(), password)
            for name in acc_names.split(',') if name.strip()]


def load_contract(address):
    try:
        return Contract(address)
    except Exception as e:
        print_w_time(f'Unable to load address {address} from cache')
        print_w_time(f"Error: {str(e)}")
        try:
            return Contract.from_explorer(address)
        except Exception as e:
            print_w_time(
                f'Unable to load address {address} from block explorer'
            )
            print_w_time(f"Error: {str(e)}")
            abis = get_abis()
            if address not in abis.keys():
                raise ConfigError(
                    f'Address abi unavailable. Unable to load {address}'
                )
            abi = abis[address]
            return Contract.from_abi('contract', address, abi)


def load_token(address):
    return Contract.from_abi('erc20', address, ERC20_ABI)
