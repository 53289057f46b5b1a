# expense_calculator/forms.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from expense_calculator.core.models import EXPENSE_CATEGORIES, ExpenseDraft

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields."
LOGIN_REQUIRED_MESSAGE = "Please enter both User ID and Password"


class FormError(ValueError):
    """User input was rejected before any backend call was made."""


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


@dataclass
class ExpenseForm:
    amount: str = ""
    category: str = ""
    description: str = ""
    date: str = ""
    editing_id: Optional[str] = None

    @classmethod
    def blank(cls, today: date | None = None) -> "ExpenseForm":
        return cls(date=(today or date.today()).isoformat())

    @classmethod
    def from_expense(cls, expense) -> "ExpenseForm":
        return cls(
            amount=f"{expense.amount:g}",
            category=expense.category,
            description=expense.description,
            date=expense.date.isoformat(),
            editing_id=expense.id,
        )

    def validate(
        self,
        categories: Iterable[str] = EXPENSE_CATEGORIES,
        restrict_categories: bool = True,
        today: date | None = None,
    ) -> ExpenseDraft:
        amount_raw = _clean(self.amount)
        category = _clean(self.category)
        description = _clean(self.description)
        if not amount_raw or not category or not description:
            raise FormError(REQUIRED_FIELDS_MESSAGE)

        try:
            amount = float(amount_raw)
        except ValueError:
            raise FormError(f"Amount must be a number, got '{amount_raw}'.") from None
        if not math.isfinite(amount):
            raise FormError(f"Amount must be a number, got '{amount_raw}'.")
        if amount < 0:
            raise FormError("Amount cannot be negative.")

        if restrict_categories and category not in list(categories):
            raise FormError(f"Unknown category '{category}'.")

        date_raw = _clean(self.date)
        if date_raw:
            try:
                spent_on = date.fromisoformat(date_raw)
            except ValueError:
                raise FormError(f"Invalid date '{date_raw}', expected YYYY-MM-DD.") from None
        else:
            spent_on = today or date.today()

        return ExpenseDraft(
            amount=amount,
            category=category,
            description=description,
            date=spent_on,
        )


def validate_login(user_id: Optional[str], password: Optional[str]) -> tuple[str, str]:
    user = _clean(user_id)
    if not user or not password:
        raise FormError(LOGIN_REQUIRED_MESSAGE)
    return user, password
