"""
Error Taxonomy Module

Ledger rule violations are reported as result values rather than raised,
so a bad PIN or an overdrawn withdrawal never aborts the ATM. Exceptions
are reserved for programming errors.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Kinds of ledger failures"""
    CAPACITY_EXCEEDED = "capacity_exceeded"
    INVALID_NAME = "invalid_name"
    NAME_TAKEN = "name_taken"
    INVALID_PIN = "invalid_pin"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN_RECIPIENT = "unknown_recipient"
    SELF_TRANSFER = "self_transfer"
    PERSISTENCE_WRITE_FAILED = "persistence_write_failed"  # Non-fatal
    MALFORMED_RECORD = "malformed_record"                  # Skipped on load, never surfaced


ERROR_MESSAGES = {
    ErrorKind.CAPACITY_EXCEEDED: "Error: the bank is full.",
    ErrorKind.INVALID_NAME: "Error: name must be non-empty and must not contain ';'.",
    ErrorKind.NAME_TAKEN: "Error: name is already taken.",
    ErrorKind.INVALID_PIN: "Error: PIN must be 4 digits.",
    ErrorKind.INVALID_AMOUNT: "Error: enter a positive number.",
    ErrorKind.INSUFFICIENT_FUNDS: "Error: insufficient funds.",
    ErrorKind.UNKNOWN_RECIPIENT: "Error: recipient not found.",
    ErrorKind.SELF_TRANSFER: "Error: cannot transfer to yourself.",
    ErrorKind.PERSISTENCE_WRITE_FAILED: "Warning: changes could not be saved.",
    ErrorKind.MALFORMED_RECORD: "Malformed store record.",
}

SUCCESS_MESSAGE = "Success"


class NotAuthenticatedError(Exception):
    """Raised when an account operation is attempted without a logged-in account"""
    pass


@dataclass(frozen=True)
class LedgerResult:
    """
    Outcome of a ledger operation.

    ``error`` is set when the operation was rejected and nothing changed.
    ``warning`` is set when the operation was applied in memory but a
    follow-up step failed (a store write).
    """
    error: Optional[ErrorKind] = None
    warning: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        """Check if the operation was applied"""
        return self.error is None

    @property
    def persisted(self) -> bool:
        """Check if the applied operation also reached the store"""
        return self.ok and self.warning != ErrorKind.PERSISTENCE_WRITE_FAILED

    @property
    def message(self) -> str:
        """User-facing message for this result"""
        if self.error:
            return ERROR_MESSAGES[self.error]
        if self.warning:
            return ERROR_MESSAGES[self.warning]
        return SUCCESS_MESSAGE

    @classmethod
    def success(cls) -> 'LedgerResult':
        return cls()

    @classmethod
    def failure(cls, error: ErrorKind) -> 'LedgerResult':
        return cls(error=error)
