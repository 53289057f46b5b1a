# expense_calculator/backends/base.py
from abc import ABC, abstractmethod
from typing import List, Optional

from expense_calculator.core.models import Expense, ExpenseDraft


class BackendError(RuntimeError):
    """A persistence call failed in transport or was rejected by the backend."""


class BaseBackend(ABC):
    @abstractmethod
    def list(self, owner_id: Optional[str] = None, order_by_date_desc: bool = True) -> List[Expense]:
        """Return every stored expense, newest first unless asked otherwise."""

    @abstractmethod
    def insert(self, draft: ExpenseDraft, owner_id: Optional[str] = None) -> Expense:
        """Store a new expense and return it with its assigned identifier."""

    @abstractmethod
    def update(self, expense_id: str, draft: ExpenseDraft) -> Expense:
        """Replace every editable field of the expense with ``expense_id``."""

    @abstractmethod
    def delete(self, expense_id: str) -> None:
        """Remove the expense with ``expense_id``."""

    def use_session(self, access_token: Optional[str]) -> None:
        """Attach a signed-in user's token. Local backends ignore it."""
        return None
