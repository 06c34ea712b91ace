from loan_liquidator.retry_tracker import MAX_LIQ_ERRORS, RetryTracker


def test_unknown_loan_has_no_errors():
    tracker = RetryTracker()
    assert tracker.count('0x01') == 0
    assert not tracker.quarantined('0x01')


def test_quarantined_after_max_consecutive_failures():
    tracker = RetryTracker()
    for i in range(MAX_LIQ_ERRORS - 1):
        tracker.record_failure('0x01')
        assert not tracker.quarantined('0x01')
    tracker.record_failure('0x01')
    assert tracker.quarantined('0x01')
    assert tracker.quarantined_loans() == ['0x01']


def test_success_resets_count():
    tracker = RetryTracker()
    for i in range(MAX_LIQ_ERRORS + 3):
        tracker.record_failure('0x01')
    tracker.record_success('0x01')
    assert '0x01' not in tracker.errors
    assert not tracker.quarantined('0x01')


def test_success_in_between_restarts_count():
    tracker = RetryTracker()
    for i in range(MAX_LIQ_ERRORS - 1):
        tracker.record_failure('0x01')
    tracker.record_success('0x01')
    tracker.record_failure('0x01')
    assert tracker.count('0x01') == 1
    assert not tracker.quarantined('0x01')


def test_null_entry_counts_as_zero():
    tracker = RetryTracker()
    tracker.errors['0x01'] = None
    assert tracker.record_failure('0x01') == 1


def test_loans_are_independent():
    tracker = RetryTracker(max_errors=2)
    tracker.record_failure('0x01')
    tracker.record_failure('0x01')
    tracker.record_failure('0x02')
    assert tracker.quarantined('0x01')
    assert not tracker.quarantined('0x02')


def test_clear_lifts_quarantine():
    tracker = RetryTracker(max_errors=1)
    tracker.record_failure('0x01')
    tracker.clear('0x01')
    assert not tracker.quarantined('0x01')
    tracker.clear('0x02')
