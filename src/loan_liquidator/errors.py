class LiquidatorError(Exception):
    pass


class ConfigError(LiquidatorError):
    pass


class TransactionFailed(LiquidatorError):
    '''
    A transaction that was rejected on broadcast, reverted on chain
    or never confirmed within the confirmation timeout.
    '''

    def __init__(self, reason, tx_hash=None):
        super().__init__(reason)
        self.reason = reason
        self.tx_hash = tx_hash

    def __str__(self):
        if self.tx_hash:
            return f'{self.reason} (tx {self.tx_hash})'
        return str(self.reason)


class NoPriceError(LiquidatorError):
    pass


class SwapPathError(LiquidatorError):
    pass
