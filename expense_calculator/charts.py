# expense_calculator/charts.py
"""Chart-ready series for the category pie, monthly bars and daily area chart."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional

from expense_calculator.core import aggregator
from expense_calculator.core.models import Expense

CHART_COLORS = [
    "hsl(214, 84%, 56%)",
    "hsl(142, 76%, 36%)",
    "hsl(38, 92%, 50%)",
    "hsl(0, 84%, 60%)",
    "hsl(262, 83%, 58%)",
    "hsl(173, 58%, 39%)",
    "hsl(43, 74%, 49%)",
    "hsl(211, 82%, 68%)",
    "hsl(333, 71%, 51%)",
    "hsl(25, 95%, 53%)",
]
PRIMARY_COLOR = CHART_COLORS[0]


def color_for(index: int) -> str:
    return CHART_COLORS[index % len(CHART_COLORS)]


def format_amount(amount: float, symbol: str = "$") -> str:
    return f"{symbol}{amount:,.2f}"


def build_chart_data(
    expenses: Iterable[Expense], today: Optional[date] = None
) -> Dict[str, object]:
    """Return label/value series for every chart, or ``{}`` with no expenses."""
    records = list(expenses)
    if not records:
        return {}

    breakdown = aggregator.category_breakdown(records)
    monthly = aggregator.monthly_totals(records)
    daily = aggregator.daily_totals(records, today)
    top: List[Dict[str, object]] = [
        dict(row, color=color_for(idx))
        for idx, row in enumerate(aggregator.top_categories(records))
    ]

    return {
        "category": {
            "labels": [row["category"] for row in breakdown],
            "values": [round(row["amount"], 2) for row in breakdown],
            "percentages": [round(row["percentage"], 1) for row in breakdown],
            "colors": [color_for(idx) for idx in range(len(breakdown))],
        },
        "monthly": {
            "labels": [row["month"] for row in monthly],
            "keys": [row["month_key"] for row in monthly],
            "values": [round(row["amount"], 2) for row in monthly],
            "counts": [row["count"] for row in monthly],
            "color": PRIMARY_COLOR,
        },
        "daily": {
            "labels": [row["display_date"] for row in daily],
            "dates": [row["date"] for row in daily],
            "values": [round(row["amount"], 2) for row in daily],
            "color": PRIMARY_COLOR,
        },
        "top_categories": top,
    }
