class DCAError(Exception):
    """Base for errors raised by the execution stages."""


class StoreError(DCAError):
    """The plan store could not be read or written."""


class SwapProviderError(DCAError):
    """The aggregator returned a non-2xx response or no calldata."""


class SubmissionError(DCAError):
    """Building, sending or confirming the executor transaction failed."""

    def __init__(self, message: str, tx_hash: str | None = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class TransactionReverted(SubmissionError):
    pass


class AllowanceRevertError(SubmissionError):
    """The executor reverted because the user's approval is too small."""
