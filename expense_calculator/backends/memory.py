# expense_calculator/backends/memory.py
from __future__ import annotations

import logging
import time
from typing import List, Optional

from expense_calculator.backends.base import BackendError, BaseBackend
from expense_calculator.core.models import Expense, ExpenseDraft

logger = logging.getLogger(__name__)


class MemoryBackend(BaseBackend):
    """Keeps expenses in process memory only; nothing survives a restart."""

    def __init__(self, config: dict | None = None):
        self.config = config or {}
        self._records: List[Expense] = []

    def _next_id(self) -> str:
        candidate = int(time.time() * 1000)
        taken = {exp.id for exp in self._records}
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def _index_of(self, expense_id: str) -> int:
        for idx, exp in enumerate(self._records):
            if exp.id == str(expense_id):
                return idx
        raise BackendError(f"Expense {expense_id} not found")

    def list(self, owner_id: Optional[str] = None, order_by_date_desc: bool = True) -> List[Expense]:
        records = [exp for exp in self._records if owner_id is None or exp.owner_id == owner_id]
        if order_by_date_desc:
            records.sort(key=lambda exp: exp.date, reverse=True)
        return records

    def insert(self, draft: ExpenseDraft, owner_id: Optional[str] = None) -> Expense:
        expense = Expense.from_draft(self._next_id(), draft, owner_id=owner_id)
        self._records.append(expense)
        logger.debug("Inserted expense %s in memory", expense.id)
        return expense

    def update(self, expense_id: str, draft: ExpenseDraft) -> Expense:
        idx = self._index_of(expense_id)
        updated = self._records[idx].with_draft(draft)
        self._records[idx] = updated
        return updated

    def delete(self, expense_id: str) -> None:
        idx = self._index_of(expense_id)
        del self._records[idx]
