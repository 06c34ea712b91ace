'''
Encoding and decoding of protocol event logs.

Only the events the bot cares about are known here; logs emitted by
other contracts in the same receipt (token transfers, swaps, ...) are
skipped when decoding.
'''
from eth_abi import decode, encode
from eth_utils import keccak, to_bytes, to_checksum_address

from .models import DecodedEvent
from .utils import print_w_time

LIQUIDATE_ABI = {
    'name': 'Liquidate',
    'type': 'event',
    'anonymous': False,
    'inputs': [
        {'name': 'user', 'type': 'address', 'indexed': True},
        {'name': 'liquidator', 'type': 'address', 'indexed': True},
        {'name': 'loanId', 'type': 'bytes32', 'indexed': True},
        {'name': 'lender', 'type': 'address', 'indexed': False},
        {'name': 'loanToken', 'type': 'address', 'indexed': False},
        {'name': 'collateralToken', 'type': 'address', 'indexed': False},
        {'name': 'repayAmount', 'type': 'uint256', 'indexed': False},
        {'name': 'collateralWithdrawAmount', 'type': 'uint256',
         'indexed': False},
        {'name': 'collateralToLoanRate', 'type': 'uint256',
         'indexed': False},
        {'name': 'currentMargin', 'type': 'uint256', 'indexed': False},
    ],
}

EVENT_ABIS = [LIQUIDATE_ABI]


def event_signature(abi):
    types = ','.join(i['type'] for i in abi['inputs'])
    return f"{abi['name']}({types})"


def event_topic(abi):
    return keccak(text=event_signature(abi))


def _as_bytes(value):
    if isinstance(value, str):
        return to_bytes(hexstr=value)
    return bytes(value)


def _normalize(typ, value):
    if typ == 'address':
        return to_checksum_address(value)
    if typ == 'bytes32':
        return '0x' + bytes(value).hex()
    return value


def _encode_arg(typ, value):
    if typ == 'bytes32':
        return _as_bytes(value).rjust(32, b'\0')
    return value


def encode_log(abi, args, address=None):
    '''
    Build a raw log entry (as found in a tx receipt) for `abi`
    carrying `args`.
    '''
    indexed = [i for i in abi['inputs'] if i['indexed']]
    plain = [i for i in abi['inputs'] if not i['indexed']]
    topics = [event_topic(abi)]
    for i in indexed:
        topics.append(encode([i['type']],
                             [_encode_arg(i['type'], args[i['name']])]))
    data = encode([i['type'] for i in plain],
                  [_encode_arg(i['type'], args[i['name']]) for i in plain])
    return {'address': address, 'topics': topics, 'data': data}


def decode_log(log, abis=EVENT_ABIS):
    '''
    Decode one raw log entry. Returns None if the log matches none of
    the known events.
    '''
    topics = [_as_bytes(t) for t in (log.get('topics') or [])]
    if not topics:
        return None
    abi = next((a for a in abis if event_topic(a) == topics[0]), None)
    if abi is None:
        return None
    indexed = [i for i in abi['inputs'] if i['indexed']]
    plain = [i for i in abi['inputs'] if not i['indexed']]
    if len(topics) != len(indexed) + 1:
        return None

    args = {}
    for i, topic in zip(indexed, topics[1:]):
        args[i['name']] = _normalize(i['type'], decode([i['type']], topic)[0])
    values = decode([i['type'] for i in plain], _as_bytes(log.get('data')))
    for i, value in zip(plain, values):
        args[i['name']] = _normalize(i['type'], value)
    return DecodedEvent(name=abi['name'], address=log.get('address'),
                        args=args)


def decode_logs(logs, abis=EVENT_ABIS):
    decoded = []
    for log in logs or []:
        try:
            event = decode_log(log, abis)
        except Exception as e:
            print_w_time(f'Unable to decode log: {str(e)}')
            continue
        if event is not None:
            decoded.append(event)
    return decoded


def find_liquidate_event(events, liquidator=None):
    '''
    Pick the Liquidate event of a receipt. With several of them, the
    one sent by `liquidator` wins, otherwise the first.
    '''
    liq_events = [e for e in events if e.name == 'Liquidate']
    if not liq_events:
        return None
    if len(liq_events) > 1:
        print_w_time(
            f'Found {len(liq_events)} Liquidate events in one tx. '
            f'Only one is logged'
        )
        if liquidator:
            for e in liq_events:
                if str(e.args.get('liquidator', '')).lower() == \
                        str(liquidator).lower():
                    return e
    return liq_events[0]


def parse_event_params(event):
    '''
    Event args as a plain dict. Missing event gives an empty dict.
    '''
    if event is None:
        return {}
    return dict(event.args)
