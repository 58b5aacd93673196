"""
Ledger Module

Owns the collection of accounts, enforces the registration, authentication
and balance rules, and is the only writer of the durable store. Every
successful mutating operation rewrites the whole store synchronously.
"""

from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

from .accounts import (
    Account, TransactionHistory, HISTORY_CAPACITY, is_supported_amount, is_valid_name,
    is_valid_pin
)
from .config import AtmConfig
from .errors import ErrorKind, LedgerResult
from .logging_config import get_logger, log_action
from .storage import AccountRecord, FlatFileStorage, StorageInterface


MAX_ACCOUNTS = 10

AmountInput = Union[Decimal, int, float, str]


def parse_amount(value: AmountInput) -> Optional[Decimal]:
    """
    Parse a user-supplied amount.

    Accepts Decimals, numbers and free text. Returns None when the input
    is not a finite number, has more than 12 integer digits or more than
    8 decimal places. Sign is not checked here.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None

    if not is_supported_amount(amount):
        return None
    return amount


def format_amount(amount: Decimal) -> str:
    """Plain decimal text for history records (no exponent notation)"""
    return format(amount, "f")


class Ledger:
    """
    Registry of accounts plus the rules that govern them.

    Constructed explicitly and owned by the presentation layer; there is
    no process-wide ledger.
    """

    def __init__(
        self,
        storage: StorageInterface,
        max_accounts: int = MAX_ACCOUNTS,
        history_capacity: int = HISTORY_CAPACITY
    ):
        self.storage = storage
        self.max_accounts = max_accounts
        self.history_capacity = history_capacity
        self.logger = get_logger("atm.ledger")
        self._accounts: Dict[str, Account] = {}

        self._load()

    @classmethod
    def from_config(cls, config: AtmConfig) -> 'Ledger':
        """Build a ledger over the flat-file store named in the config"""
        return cls(
            storage=FlatFileStorage(config.store_path),
            max_accounts=config.max_accounts,
            history_capacity=config.history_capacity
        )

    # Registry

    @property
    def accounts(self) -> Mapping[str, Account]:
        """Read-only view of the accounts keyed by name"""
        return MappingProxyType(self._accounts)

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, name: object) -> bool:
        return name in self._accounts

    def total_balance(self) -> Decimal:
        """Sum of all balances held by the ledger"""
        return sum((account.balance for account in self._accounts.values()), Decimal("0"))

    def register(self, name: str, pin: str) -> LedgerResult:
        """
        Open a new account with a zero balance.

        Checks run in order: capacity, name format, name collision, PIN format.
        """
        if len(self._accounts) >= self.max_accounts:
            return self._reject("register", ErrorKind.CAPACITY_EXCEEDED, name)

        if not is_valid_name(name):
            return self._reject("register", ErrorKind.INVALID_NAME, name)

        if name in self._accounts:
            return self._reject("register", ErrorKind.NAME_TAKEN, name)

        if not is_valid_pin(pin):
            return self._reject("register", ErrorKind.INVALID_PIN, name)

        account = Account(
            name=name,
            pin=pin,
            history=TransactionHistory(self.history_capacity)
        )
        self._accounts[name] = account

        log_action(
            self.logger, "info", "Account registered",
            user_id=name, action="register", resource=f"account:{name}"
        )

        return self._commit()

    def authenticate(self, name: str, pin: str) -> Optional[Account]:
        """
        Return the account when both name and PIN match exactly.

        An unknown name and a wrong PIN are deliberately indistinguishable.
        """
        account = self._accounts.get(name)
        if account is not None and account.pin == pin:
            log_action(
                self.logger, "info", "Authentication succeeded",
                user_id=name, action="authenticate", resource=f"account:{name}"
            )
            return account

        log_action(
            self.logger, "warning", "Authentication failed",
            action="authenticate", resource=f"account:{name}"
        )
        return None

    def find_account(self, name: str) -> Optional[Account]:
        """Look up an account by name without authenticating it"""
        return self._accounts.get(name)

    # Balance operations

    def deposit(self, account: Account, amount: AmountInput) -> LedgerResult:
        """Add cash to an account"""
        value = parse_amount(amount)
        if value is None or value <= 0:
            return self._reject("deposit", ErrorKind.INVALID_AMOUNT, account.name)

        account.balance += value
        account.add_record(f"Deposit: +${format_amount(value)}")

        log_action(
            self.logger, "info", "Deposit applied",
            user_id=account.name, action="deposit", resource=f"account:{account.name}",
            extra={"amount": str(value), "balance": str(account.balance)}
        )

        return self._commit()

    def withdraw(self, account: Account, amount: AmountInput) -> LedgerResult:
        """Take cash out of an account"""
        value = parse_amount(amount)
        if value is None or value <= 0:
            return self._reject("withdraw", ErrorKind.INVALID_AMOUNT, account.name)

        if value > account.balance:
            return self._reject("withdraw", ErrorKind.INSUFFICIENT_FUNDS, account.name)

        account.balance -= value
        account.add_record(f"Withdrawal: -${format_amount(value)}")

        log_action(
            self.logger, "info", "Withdrawal applied",
            user_id=account.name, action="withdraw", resource=f"account:{account.name}",
            extra={"amount": str(value), "balance": str(account.balance)}
        )

        return self._commit()

    def transfer(self, sender: Account, recipient_name: str, amount: AmountInput) -> LedgerResult:
        """
        Move money from one account to another.

        Checks run in order: recipient exists, recipient differs from the
        sender, amount is valid, sender has the funds. Both sides are
        updated before the store is written once.
        """
        recipient = self._accounts.get(recipient_name)
        if recipient is None:
            return self._reject("transfer", ErrorKind.UNKNOWN_RECIPIENT, sender.name)

        if recipient is sender or recipient.name == sender.name:
            return self._reject("transfer", ErrorKind.SELF_TRANSFER, sender.name)

        value = parse_amount(amount)
        if value is None or value <= 0:
            return self._reject("transfer", ErrorKind.INVALID_AMOUNT, sender.name)

        if value > sender.balance:
            return self._reject("transfer", ErrorKind.INSUFFICIENT_FUNDS, sender.name)

        sender.balance -= value
        recipient.balance += value

        text_amount = format_amount(value)
        sender.add_record(f"Transfer to {recipient.name}: -${text_amount}")
        recipient.add_record(f"Transfer from {sender.name}: +${text_amount}")

        log_action(
            self.logger, "info", "Transfer applied",
            user_id=sender.name, action="transfer", resource=f"account:{recipient.name}",
            extra={"amount": str(value), "recipient": recipient.name}
        )

        return self._commit()

    def fetch_history(self, account: Account) -> Tuple[str, ...]:
        """History records, most recent first"""
        return tuple(account.history)

    # Persistence

    def save(self) -> LedgerResult:
        """Rewrite the whole store from the in-memory accounts"""
        return self._commit()

    def _commit(self) -> LedgerResult:
        """
        Persist the full snapshot once.

        A failed write leaves the in-memory change in place; the failure is
        logged and reported as a warning on the result.
        """
        records = [
            AccountRecord(name=account.name, pin=account.pin, balance=account.balance)
            for account in self._accounts.values()
        ]
        try:
            self.storage.save_all(records)
        except OSError as e:
            log_action(
                self.logger, "error", f"Failed to save ledger: {e}",
                action="save", resource="store",
                extra={"error": ErrorKind.PERSISTENCE_WRITE_FAILED.value}
            )
            return LedgerResult(warning=ErrorKind.PERSISTENCE_WRITE_FAILED)

        return LedgerResult.success()

    def _load(self) -> None:
        """Hydrate accounts from the store; history starts fresh"""
        for record in self.storage.load_all():
            if record.name not in self._accounts and len(self._accounts) >= self.max_accounts:
                self.logger.warning(
                    f"Store holds more than {self.max_accounts} accounts, dropping {record.name!r}"
                )
                continue

            # Later lines win for duplicate names
            self._accounts[record.name] = Account(
                name=record.name,
                pin=record.pin,
                balance=record.balance,
                history=TransactionHistory(self.history_capacity)
            )

    def _reject(self, action: str, error: ErrorKind, name: Optional[str]) -> LedgerResult:
        log_action(
            self.logger, "info", f"{action} rejected: {error.value}",
            user_id=name or None, action=action, extra={"error": error.value}
        )
        return LedgerResult.failure(error)
