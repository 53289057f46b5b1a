# expense_calculator/outputs/excel_output.py

"""Excel output module backed by XlsxWriter.

The workbook carries the raw expense list, a ``Summary`` sheet with the
category breakdown and grand total, a ``Monthly`` sheet with per-month
totals and counts, and a ``Charts`` sheet holding the same three charts the
web dashboard shows: category distribution, monthly spending and the daily
trend for the last 30 days.
"""

from __future__ import annotations

import os
from datetime import date
import xlsxwriter

from expense_calculator.core import aggregator
from expense_calculator.outputs.base import BaseOutput


class ExcelOutput(BaseOutput):
    """Generate a local Excel workbook with summary sheets and native charts."""

    FILENAME = "Expenses.xlsx"
    EXPENSES = "Expenses"
    SUMMARY = "Summary"
    MONTHLY = "Monthly"
    CHARTS = "Charts"

    def __init__(self, config: dict):
        self.config = config
        self.output_dir = config.get("output_dir", "data")
        self.symbol = config.get("currency_symbol", "$")
        os.makedirs(self.output_dir, exist_ok=True)

    def write(self, expenses, today: date | None = None):
        records = sorted(expenses, key=lambda e: (e.date, e.id))
        out_path = os.path.join(self.output_dir, self.FILENAME)

        workbook = xlsxwriter.Workbook(out_path)
        amount_fmt = workbook.add_format({"num_format": f"{self.symbol}#,##0.00"})
        pct_fmt = workbook.add_format({"num_format": "0.0"})

        # Expenses worksheet
        ws = workbook.add_worksheet(self.EXPENSES)
        ws.freeze_panes(1, 0)
        headers = ["id", "date", "category", "description", "amount"]
        ws.write_row(0, 0, headers)
        for idx, exp in enumerate(records, start=1):
            ws.write_row(idx, 0, [exp.id, exp.date.isoformat(), exp.category, exp.description])
            ws.write_number(idx, 4, float(exp.amount), amount_fmt)
        ws.set_column(4, 4, None, amount_fmt)
        if records:
            ws.add_table(0, 0, len(records), 4, {
                "columns": [{"header": h} for h in headers]
            })

        tables = self._build_chart_tables(records, today)

        # Summary worksheet with the category breakdown
        summary_ws = workbook.add_worksheet(self.SUMMARY)
        summary_ws.freeze_panes(1, 0)
        summary_ws.set_column(1, 1, None, amount_fmt)
        for row_idx, row in enumerate(tables["categories"]):
            if row_idx == 0:
                summary_ws.write_row(0, 0, row)
                continue
            summary_ws.write(row_idx, 0, row[0])
            summary_ws.write_number(row_idx, 1, row[1], amount_fmt)
            summary_ws.write_number(row_idx, 2, row[2], pct_fmt)
        total_row = len(tables["categories"])
        summary_ws.write(total_row, 0, "Grand Total")
        summary_ws.write_number(total_row, 1, aggregator.grand_total(records), amount_fmt)

        # Monthly worksheet
        monthly_ws = workbook.add_worksheet(self.MONTHLY)
        monthly_ws.freeze_panes(1, 0)
        monthly_ws.set_column(1, 1, None, amount_fmt)
        for row_idx, row in enumerate(tables["monthly"]):
            monthly_ws.write_row(row_idx, 0, row)

        # Charts worksheet with chart source tables and visuals
        charts_ws = workbook.add_worksheet(self.CHARTS)
        charts_ws.set_column(1, 1, None, amount_fmt)
        chart_layout = {}
        start_row = 0
        for key in ("categories", "monthly", "daily"):
            table = [row[:2] for row in tables[key]]
            chart_layout[key] = {"start_row": start_row, "row_count": len(table)}
            for offset, row in enumerate(table):
                charts_ws.write_row(start_row + offset, 0, row)
            start_row += len(table) + 2

        self._insert_charts(workbook, charts_ws, chart_layout)

        workbook.close()
        return out_path

    def _build_chart_tables(self, expenses, today=None):
        categories = [
            [row["category"], row["amount"], round(row["percentage"], 1)]
            for row in aggregator.top_categories(expenses, limit=None)
        ]
        monthly = [
            [row["month"], row["amount"], row["count"]]
            for row in aggregator.monthly_totals(expenses)
        ]
        daily = [
            [row["display_date"], row["amount"]]
            for row in aggregator.daily_totals(expenses, today)
        ]
        return {
            "categories": [["Category", "Total", "Percent"]] + categories,
            "monthly": [["Month", "Total", "Entries"]] + monthly,
            "daily": [["Day", "Total"]] + daily,
        }

    def _insert_charts(self, workbook, charts_ws, chart_layout):
        def table_range(table_key):
            layout = chart_layout[table_key]
            return layout["start_row"], layout["row_count"]

        def add_chart(chart_type, title, anchor_row, anchor_col, table_key, legend="bottom"):
            start_row, row_count = table_range(table_key)
            if row_count <= 1:
                return
            chart = workbook.add_chart({"type": chart_type})
            chart.add_series({
                "categories": [charts_ws.name, start_row + 1, 0, start_row + row_count - 1, 0],
                "values": [charts_ws.name, start_row + 1, 1, start_row + row_count - 1, 1],
                "name": title,
            })
            chart.set_title({"name": title})
            chart.set_legend({"position": legend})
            charts_ws.insert_chart(anchor_row, anchor_col, chart, {"x_offset": 0, "y_offset": 0})

        add_chart("pie", "Category Distribution", 0, 4, "categories", legend="right")
        add_chart("column", "Monthly Expenses", 18, 4, "monthly", legend="none")
        add_chart("line", "Daily Expense Trend (Last 30 Days)", 36, 4, "daily", legend="none")
