# expense_calculator/store.py
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from expense_calculator.backends import get_backend
from expense_calculator.backends.base import BackendError, BaseBackend
from expense_calculator.core.aggregator import filter_by_category
from expense_calculator.core.models import Expense, ExpenseDraft

logger = logging.getLogger(__name__)


class StoreBusyError(RuntimeError):
    """Raised when a mutation is attempted while another round trip is in flight."""


class ExpenseStore:
    """In-memory snapshot of one user's expenses, sourced from a backend.

    The snapshot is a tuple that is only ever swapped wholesale, after a
    backend round trip has fully succeeded. A failing call leaves the previous
    snapshot in place and re-raises the backend's error.
    """

    def __init__(
        self,
        backend: BaseBackend,
        owner_id: Optional[str] = None,
        newest_first: bool = True,
    ) -> None:
        self.backend = backend
        self.owner_id = owner_id
        self.newest_first = newest_first
        self._expenses: Tuple[Expense, ...] = ()
        self._lock = threading.Lock()

    @property
    def expenses(self) -> Tuple[Expense, ...]:
        return self._expenses

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def _round_trip(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise StoreBusyError("Another change is still being saved")
        try:
            yield
        finally:
            self._lock.release()

    def _fetch(self) -> Tuple[Expense, ...]:
        return tuple(self.backend.list(owner_id=self.owner_id, order_by_date_desc=self.newest_first))

    def load(self) -> Tuple[Expense, ...]:
        with self._round_trip():
            self._expenses = self._fetch()
        logger.debug("Loaded %d expenses for %s", len(self._expenses), self.owner_id)
        return self._expenses

    def add(self, draft: ExpenseDraft) -> Expense:
        with self._round_trip():
            created = self.backend.insert(draft, owner_id=self.owner_id)
            self._expenses = self._fetch()
        logger.info("Added expense %s (%s %.2f)", created.id, created.category, created.amount)
        return created

    def _require_owned(self, expense_id: str) -> None:
        # Only records in this owner's snapshot may be changed
        if self.get(expense_id) is None:
            raise BackendError(f"Expense {expense_id} not found")

    def update(self, expense_id: str, draft: ExpenseDraft) -> Expense:
        with self._round_trip():
            self._require_owned(expense_id)
            updated = self.backend.update(expense_id, draft)
            self._expenses = self._fetch()
        logger.info("Updated expense %s", expense_id)
        return updated

    def delete(self, expense_id: str) -> None:
        with self._round_trip():
            self._require_owned(expense_id)
            self.backend.delete(expense_id)
            self._expenses = self._fetch()
        logger.info("Deleted expense %s", expense_id)

    def get(self, expense_id: Optional[str]) -> Optional[Expense]:
        if expense_id is None:
            return None
        return next((exp for exp in self._expenses if exp.id == str(expense_id)), None)

    def filtered(self, category: Optional[str] = None) -> list[Expense]:
        return filter_by_category(self._expenses, category)


def open_store(
    config: dict,
    owner_id: Optional[str] = None,
    access_token: Optional[str] = None,
    backend: Optional[BaseBackend] = None,
) -> ExpenseStore:
    """Build a store over the configured backend and load its first snapshot."""
    if backend is None:
        backend = get_backend(config.get("backend", "sqlite"), config)
    backend.use_session(access_token)
    store = ExpenseStore(backend, owner_id=owner_id)
    store.load()
    return store
