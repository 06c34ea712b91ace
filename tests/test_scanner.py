import asyncio
from concurrent.futures import ThreadPoolExecutor

from conftest import FakeNotifier, make_position
from loan_liquidator.scanner import NOTIFY_INTERVAL, PositionScanner


class LoanSource:
    def __init__(self, positions):
        self.executor = ThreadPoolExecutor()
        self.loans = positions
        self.calls = []

    def active_loans(self, start, count):
        self.calls.append((start, count))
        page = self.loans[start:start + count]
        return page, len(page)


def test_pages_through_loans():
    loans = [make_position('0x%02d' % i, i) for i in range(5)]
    source = LoanSource(loans)
    positions = {}
    scanner = PositionScanner(positions, source, FakeNotifier(), chunk=2)

    asyncio.run(scanner.update_positions())

    assert source.calls == [(0, 2), (2, 2), (4, 2)]
    # The zero amount loan is not liquidatable
    assert sorted(positions) == ['0x01', '0x02', '0x03', '0x04']


def test_refreshes_and_drops_positions():
    positions = {'0x01': make_position('0x01', 10),
                 '0x09': make_position('0x09', 10)}
    source = LoanSource([make_position('0x01', 70)])
    scanner = PositionScanner(positions, source, FakeNotifier())

    asyncio.run(scanner.update_positions())

    assert list(positions) == ['0x01']
    assert positions['0x01'].max_liquidatable == 70


def test_heartbeat_once_per_interval():
    notifier = FakeNotifier()
    scanner = PositionScanner({}, LoanSource([]), notifier,
                              network='testnet')

    asyncio.run(scanner.heartbeat(now=NOTIFY_INTERVAL + 1))
    asyncio.run(scanner.heartbeat(now=NOTIFY_INTERVAL + 2))

    assert notifier.messages == ['testnet LIQUIDATOR TRACKING 0 POSITIONS']
