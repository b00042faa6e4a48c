"""
Exceptions for the ledger transport layer.
"""
from enum import Enum
from typing import Optional


class LedgerErrorCode(str, Enum):
    """
    Normalized reasons a ledger rejects a transaction.
    """
    UNKNOWN = "UNKNOWN"
    ACCOUNT_IN_USE = "ACCOUNT_IN_USE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    BLOCKHASH_NOT_FOUND = "BLOCKHASH_NOT_FOUND"
    PROGRAM_ERROR = "PROGRAM_ERROR"


class LedgerError(Exception):
    """Base exception for ledger transport errors."""
    pass


class LedgerConnectionError(LedgerError):
    """Raised when the ledger RPC endpoint cannot be reached."""
    pass


class LedgerResponseError(LedgerError):
    """Raised when the ledger returns an error response."""

    def __init__(self, message: str, error_code: LedgerErrorCode = LedgerErrorCode.UNKNOWN,
                 data: Optional[object] = None):
        self.error_code = error_code
        self.data = data
        super().__init__(message)


class LedgerTimeoutError(LedgerError):
    """Raised when a ledger request times out."""
    pass
