# expense_calculator/core/models.py
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import date, datetime
from typing import Any, Dict, Optional

EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Travel",
    "Education",
    "Business",
    "Other",
]


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # Hosted backends may hand back full timestamps
    return date.fromisoformat(str(value).strip()[:10])


@dataclass(frozen=True)
class ExpenseDraft:
    """Validated expense fields that have not been assigned an identifier."""

    amount: float
    category: str
    description: str
    date: date

    def __post_init__(self) -> None:
        # pandas' NaT subclasses datetime but never equals itself
        if not isinstance(self.date, date) or self.date != self.date:
            raise ValueError(f"Invalid expense date: {self.date!r}")

    def to_record(self) -> Dict[str, Any]:
        return {
            "amount": float(self.amount),
            "category": self.category,
            "description": self.description,
            "date": self.date.isoformat(),
        }


@dataclass(frozen=True)
class Expense:
    id: str
    amount: float
    category: str
    description: str
    date: date
    owner_id: Optional[str] = None

    @classmethod
    def from_draft(cls, expense_id: str, draft: ExpenseDraft, owner_id: str | None = None) -> "Expense":
        return cls(
            id=str(expense_id),
            amount=float(draft.amount),
            category=draft.category,
            description=draft.description,
            date=draft.date,
            owner_id=owner_id,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Expense":
        owner = data.get("user_id", data.get("owner_id"))
        return cls(
            id=str(data["id"]),
            amount=float(data.get("amount") or 0.0),
            category=data.get("category") or "",
            description=data.get("description") or "",
            date=parse_date(data["date"]),
            owner_id=str(owner) if owner is not None else None,
        )

    def with_draft(self, draft: ExpenseDraft) -> "Expense":
        """Full replace of the editable fields; identifier and owner are kept."""
        return replace(
            self,
            amount=float(draft.amount),
            category=draft.category,
            description=draft.description,
            date=draft.date,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data
