"""
ATM Session Module

The controller an ATM front end drives: log in, run deposit, withdrawal
and transfer requests typed as free text, show history, log out. The
session keeps a reference to the logged-in Account that it shares with
the Ledger.
"""

from decimal import Decimal
from typing import Optional, Tuple

from .accounts import Account
from .errors import LedgerResult, NotAuthenticatedError
from .ledger import Ledger
from .logging_config import get_logger


class ATMSession:
    """One customer's visit to the ATM"""

    def __init__(self, ledger: Ledger):
        self.ledger = ledger
        self._account: Optional[Account] = None
        self.logger = get_logger("atm.session")

    @property
    def account(self) -> Optional[Account]:
        return self._account

    @property
    def is_authenticated(self) -> bool:
        return self._account is not None

    @property
    def balance(self) -> Decimal:
        return self._require_account().balance

    def register(self, name: str, pin: str) -> LedgerResult:
        """Open a new account; the customer still has to log in afterwards"""
        return self.ledger.register(name, pin)

    def login(self, name: str, pin: str) -> bool:
        account = self.ledger.authenticate(name, pin)
        if account is None:
            return False
        self._account = account
        return True

    def logout(self) -> None:
        if self._account is not None:
            self.logger.debug(f"Session for {self._account.name} closed")
        self._account = None

    def deposit(self, amount_text: str) -> LedgerResult:
        return self.ledger.deposit(self._require_account(), amount_text)

    def withdraw(self, amount_text: str) -> LedgerResult:
        return self.ledger.withdraw(self._require_account(), amount_text)

    def transfer(self, recipient_name: str, amount_text: str) -> LedgerResult:
        return self.ledger.transfer(self._require_account(), recipient_name, amount_text)

    def history(self) -> Tuple[str, ...]:
        return self.ledger.fetch_history(self._require_account())

    @staticmethod
    def describe(result: LedgerResult) -> str:
        """Message to show the customer for a result"""
        return result.message

    def _require_account(self) -> Account:
        if self._account is None:
            raise NotAuthenticatedError("No account is logged in")
        return self._account
