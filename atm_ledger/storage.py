"""
Storage Backend Module

Provides an abstract storage interface and implementations for in-memory
(testing) and flat-file (persistence) stores. The flat-file store holds
one account per line as ``name;pin;balance`` with balances written as
Decimal strings. Transaction history is not persisted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, List, Optional, Union
import os
import tempfile

from .accounts import (
    FIELD_SEPARATOR, MAX_BALANCE_DIGITS, is_supported_amount, is_valid_name, is_valid_pin
)
from .errors import ErrorKind
from .logging_config import get_logger


DEFAULT_STORE_PATH = "users.txt"

logger = get_logger("atm.storage")


@dataclass(frozen=True)
class AccountRecord:
    """The persisted part of an account"""
    name: str
    pin: str
    balance: Decimal

    def to_line(self) -> str:
        """Encode as a single store line (without the line terminator)"""
        return FIELD_SEPARATOR.join([self.name, self.pin, str(self.balance)])

    @classmethod
    def from_line(cls, line: str) -> Optional['AccountRecord']:
        """
        Decode a store line.

        Returns None for anything that is not exactly three fields with a
        valid name, a 4-digit PIN and a non-negative balance within the ledger range.
        """
        parts = line.rstrip("\r\n").split(FIELD_SEPARATOR)
        if len(parts) != 3:
            return None

        name, pin, balance_text = parts
        if not is_valid_name(name) or not is_valid_pin(pin):
            return None

        try:
            balance = Decimal(balance_text.strip())
        except InvalidOperation:
            return None

        if not is_supported_amount(balance, MAX_BALANCE_DIGITS) or balance < 0:
            return None

        return cls(name=name, pin=pin, balance=balance)


class StorageInterface(ABC):
    """Abstract interface for account stores"""

    @abstractmethod
    def save_all(self, records: Iterable[AccountRecord]) -> None:
        """Replace the stored snapshot with the given records"""
        pass

    @abstractmethod
    def load_all(self) -> List[AccountRecord]:
        """Load every well-formed record from the store"""
        pass


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self, records: Optional[Iterable[AccountRecord]] = None):
        self._records: List[AccountRecord] = list(records or [])
        self.save_count = 0

    def save_all(self, records: Iterable[AccountRecord]) -> None:
        """Replace the snapshot held in memory"""
        self._records = list(records)
        self.save_count += 1

    def load_all(self) -> List[AccountRecord]:
        """Return a copy of the snapshot"""
        return list(self._records)


class FlatFileStorage(StorageInterface):
    """Flat text file storage, one ``name;pin;balance`` line per account"""

    def __init__(self, path: Union[str, Path] = DEFAULT_STORE_PATH):
        self.path = Path(path)

    def save_all(self, records: Iterable[AccountRecord]) -> None:
        """
        Rewrite the whole store.

        The snapshot is written to a temporary file next to the store and
        then moved over it, so the store always holds the last complete
        save. OSError propagates to the caller.
        """
        lines = [record.to_line() + "\n" for record in records]

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                handle.writelines(lines)
            os.replace(tmp_path, self.path)
        except BaseException:
            # Leave no partial temp file behind
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.debug(f"Saved {len(lines)} accounts to {self.path}")

    def load_all(self) -> List[AccountRecord]:
        """
        Read the store.

        A missing store is an empty ledger. Malformed lines, including lines
        that are not valid UTF-8, are skipped silently (logged at debug level
        only) and the remaining lines are still read. If reading fails
        partway, the records read so far are kept.
        """
        if not self.path.exists():
            logger.info(f"Store {self.path} not found, starting with an empty ledger")
            return []

        records = []
        skipped = 0
        try:
            with open(self.path, "rb") as handle:
                for line_number, raw_line in enumerate(handle, start=1):
                    record = self._decode_line(raw_line)
                    if record is None:
                        skipped += 1
                        logger.debug(
                            f"Skipping {ErrorKind.MALFORMED_RECORD.value} at {self.path}:{line_number}"
                        )
                        continue
                    records.append(record)
        except OSError as e:
            logger.error(f"Failed to read store {self.path}, keeping {len(records)} accounts read so far: {e}")
            return records

        logger.info(f"Loaded {len(records)} accounts from {self.path} ({skipped} lines skipped)")
        return records

    @staticmethod
    def _decode_line(raw_line: bytes) -> Optional[AccountRecord]:
        try:
            line = raw_line.decode("utf-8")
        except UnicodeDecodeError:
            return None
        return AccountRecord.from_line(line)
