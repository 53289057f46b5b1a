"""Group-by and summation helpers feeding the summary cards and charts.

Every function here is a pure function over a sequence of
:class:`~expense_calculator.core.models.Expense` records. Input order never
matters, and an empty sequence always produces empty lists or ``0.0``.
Functions that depend on the current date take it as an explicit ``today``
argument so callers and tests control "now".
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from expense_calculator.core.models import Expense

ALL_CATEGORIES = "all"
DAILY_WINDOW_DAYS = 30
TOP_CATEGORY_LIMIT = 5


def _month_key(day: date) -> str:
    return f"{day.year}-{day.month:02d}"


def _month_label(day: date) -> str:
    return day.strftime("%b %Y")


def _day_label(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def grand_total(expenses: Iterable[Expense]) -> float:
    return sum((exp.amount for exp in expenses), 0.0)


def category_totals(expenses: Iterable[Expense]) -> Dict[str, float]:
    """Sum of amounts per category, keyed in first-seen order."""
    totals: Dict[str, float] = {}
    for exp in expenses:
        totals[exp.category] = totals.get(exp.category, 0.0) + exp.amount
    return totals


def category_percentages(expenses: Iterable[Expense]) -> Dict[str, float]:
    """Share of the grand total per category, in percent.

    All shares are ``0.0`` when the grand total is zero.
    """
    totals = category_totals(expenses)
    total = sum(totals.values(), 0.0)
    return {
        category: (amount / total) * 100 if total > 0 else 0.0
        for category, amount in totals.items()
    }


def category_breakdown(expenses: Iterable[Expense]) -> List[Dict[str, object]]:
    totals = category_totals(expenses)
    total = sum(totals.values(), 0.0)
    return [
        {
            "category": category,
            "amount": amount,
            "percentage": (amount / total) * 100 if total > 0 else 0.0,
        }
        for category, amount in totals.items()
    ]


def top_categories(
    expenses: Iterable[Expense], limit: Optional[int] = TOP_CATEGORY_LIMIT
) -> List[Dict[str, object]]:
    """Breakdown rows by amount, largest first; ``limit=None`` keeps every category."""
    rows = sorted(category_breakdown(expenses), key=lambda row: row["amount"], reverse=True)
    return rows if limit is None else rows[:max(limit, 0)]


def filter_by_category(
    expenses: Iterable[Expense], category: Optional[str] = None
) -> List[Expense]:
    if not category or category == ALL_CATEGORIES:
        return list(expenses)
    return [exp for exp in expenses if exp.category == category]


def filtered_total(expenses: Iterable[Expense], category: Optional[str] = None) -> float:
    return grand_total(filter_by_category(expenses, category))


def monthly_totals(expenses: Iterable[Expense]) -> List[Dict[str, object]]:
    """Totals grouped by calendar month, ascending by ``YYYY-MM`` key."""
    groups: Dict[str, Dict[str, object]] = {}
    for exp in expenses:
        key = _month_key(exp.date)
        group = groups.get(key)
        if group is None:
            groups[key] = {
                "month_key": key,
                "month": _month_label(exp.date),
                "amount": exp.amount,
                "count": 1,
            }
        else:
            group["amount"] += exp.amount
            group["count"] += 1
    return [groups[key] for key in sorted(groups)]


def daily_totals(
    expenses: Iterable[Expense],
    today: Optional[date] = None,
    days: int = DAILY_WINDOW_DAYS,
) -> List[Dict[str, object]]:
    """Totals per day for records dated after ``today - days``, ascending."""
    today = today or date.today()
    cutoff = today - timedelta(days=days)
    groups: Dict[date, Dict[str, object]] = {}
    for exp in expenses:
        if exp.date <= cutoff:
            continue
        group = groups.get(exp.date)
        if group is None:
            groups[exp.date] = {
                "date": exp.date.isoformat(),
                "display_date": _day_label(exp.date),
                "amount": exp.amount,
            }
        else:
            group["amount"] += exp.amount
    return [groups[day] for day in sorted(groups)]


def current_month_total(
    expenses: Iterable[Expense],
    today: Optional[date] = None,
    match_year: bool = False,
) -> float:
    """Sum of amounts dated in the current month.

    Only the month number is compared unless ``match_year`` is set, so an
    expense from March of last year counts towards this March.
    """
    today = today or date.today()
    return sum(
        (
            exp.amount
            for exp in expenses
            if exp.date.month == today.month
            and (not match_year or exp.date.year == today.year)
        ),
        0.0,
    )


def summarize(
    expenses: Iterable[Expense],
    category: Optional[str] = None,
    today: Optional[date] = None,
    match_year: bool = False,
) -> Dict[str, object]:
    """Everything the dashboard and chart views render, in one pass per view."""
    records = list(expenses)
    today = today or date.today()
    filtered = filter_by_category(records, category)
    return {
        "category": category or ALL_CATEGORIES,
        "total": grand_total(filtered),
        "count": len(filtered),
        "grand_total": grand_total(records),
        "current_month_total": current_month_total(records, today, match_year=match_year),
        "categories": category_breakdown(records),
        "top_categories": top_categories(records),
        "monthly": monthly_totals(records),
        "daily": daily_totals(records, today),
    }
