from .utils import print_w_time

MAX_LIQ_ERRORS = 5


class RetryTracker:
    '''
    Consecutive liquidation failures per loan id.

    A missing entry means no failures. A loan that failed
    `max_errors` times in a row is quarantined: the scan loop skips
    it until a success resets it or an operator clears it.
    '''

    def __init__(self, max_errors=MAX_LIQ_ERRORS):
        self.max_errors = max_errors
        self.errors = {}

    def count(self, loan_id):
        return self.errors.get(loan_id) or 0

    def record_failure(self, loan_id):
        self.errors[loan_id] = self.count(loan_id) + 1
        if self.errors[loan_id] == self.max_errors:
            print_w_time(
                f'Loan {loan_id} failed {self.max_errors} times in a row. '
                f'Skipping it until checked manually'
            )
        return self.errors[loan_id]

    def record_success(self, loan_id):
        self.errors.pop(loan_id, None)

    def quarantined(self, loan_id):
        return self.count(loan_id) >= self.max_errors

    def quarantined_loans(self):
        return [i for i in self.errors if self.quarantined(i)]

    def clear(self, loan_id):
        if self.errors.pop(loan_id, None) is not None:
            print_w_time(f'Cleared error count of loan {loan_id}')
