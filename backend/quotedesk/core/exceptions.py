"""Application-level exceptions."""


class QuoteDeskError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "QUOTEDESK_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class HoldingsError(QuoteDeskError):
    """Raised when the holdings document cannot be read or parsed."""

    def __init__(self, message: str):
        super().__init__(message, code="HOLDINGS_ERROR")
