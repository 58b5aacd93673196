"""
Account Module

A single customer's identity, balance and bounded transaction history.
Accounts only record and expose their own state; every rule about when a
balance may change lives in the Ledger.
"""

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Optional
import re


HISTORY_CAPACITY = 10
PIN_LENGTH = 4
FIELD_SEPARATOR = ";"
OPENING_RECORD = "Account opened"

# Amount range the ledger accepts; keeps Decimal arithmetic clear of
# context overflow and underflow
MAX_AMOUNT_DIGITS = 12      # integer digits of a single deposit, withdrawal or transfer
MAX_BALANCE_DIGITS = 28     # integer digits of a stored balance
MAX_FRACTION_DIGITS = 8

_PIN_PATTERN = re.compile(r"[0-9]{%d}" % PIN_LENGTH)


def is_valid_pin(pin: str) -> bool:
    """Check that a PIN is exactly four ASCII digits"""
    return isinstance(pin, str) and _PIN_PATTERN.fullmatch(pin) is not None


def is_valid_name(name: str) -> bool:
    """Check that a name is non-empty and can be stored on one store line"""
    if not isinstance(name, str) or not name:
        return False
    return FIELD_SEPARATOR not in name and "\n" not in name and "\r" not in name


def is_supported_amount(value: Decimal, max_integer_digits: int = MAX_AMOUNT_DIGITS) -> bool:
    """
    Check that a Decimal is finite and within the ledger's range.

    Only inspects the digits and exponent, so it never trips the decimal
    context traps on huge or tiny inputs such as 1e1000000.
    """
    if not value.is_finite():
        return False

    _, digits, exponent = value.as_tuple()
    if not any(digits):
        return abs(exponent) <= MAX_BALANCE_DIGITS

    if value.adjusted() >= max_integer_digits:
        return False

    # Exponent of the lowest non-zero digit, so 1.000000000000 still counts as 1
    trailing_zeros = 0
    for digit in reversed(digits):
        if digit:
            break
        trailing_zeros += 1
    return exponent + trailing_zeros >= -MAX_FRACTION_DIGITS


class TransactionHistory(Sequence):
    """
    Most-recent-first ring of history records.

    Prepending is O(1); once the ring is full the oldest record is evicted.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY, records: Optional[list] = None):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self._records = deque(maxlen=capacity)
        # records are given newest first
        for record in reversed(records or []):
            self._records.appendleft(record)

    @property
    def capacity(self) -> int:
        return self._records.maxlen

    def add(self, record: str) -> None:
        self._records.appendleft(record)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._records)[index]
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"TransactionHistory({list(self._records)!r})"


@dataclass(eq=False)
class Account:
    """
    Customer account held by the Ledger.

    The Ledger and any open ATM session share the same instance, so
    balance changes made through the Ledger are visible to the session.
    """
    name: str
    pin: str
    balance: Decimal = Decimal("0.0")
    history: TransactionHistory = field(default_factory=TransactionHistory)

    def __post_init__(self):
        if not is_valid_name(self.name):
            raise ValueError(f"Invalid account name: {self.name!r}")

        if not is_valid_pin(self.pin):
            raise ValueError("PIN must be exactly 4 digits")

        if not isinstance(self.balance, Decimal):
            self.balance = Decimal(str(self.balance))

        if not self.balance.is_finite() or self.balance < 0:
            raise ValueError(f"Balance must be a non-negative number, got {self.balance}")

        if not self.history:
            self.add_record(OPENING_RECORD)

    def add_record(self, text: str) -> None:
        """Prepend a record, evicting the oldest once the history is full"""
        self.history.add(text)
