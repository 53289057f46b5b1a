# expense_calculator/outputs/csv_output.py

import os
import csv
from decimal import Decimal
from expense_calculator.outputs.base import BaseOutput


class CSVOutput(BaseOutput):
    """
    Writes every expense to a single Expenses.csv file, sorted by date
    (oldest to latest).
    """
    FILENAME = "Expenses.csv"

    def __init__(self, config):
        self.config     = config
        self.output_dir = config.get('output_dir', 'data')
        os.makedirs(self.output_dir, exist_ok=True)

    def write(self, expenses, today=None):
        out_path = os.path.join(self.output_dir, self.FILENAME)
        rows = sorted(expenses, key=lambda e: (e.date, e.id))

        with open(out_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(['id', 'date', 'category', 'description', 'amount'])
            for exp in rows:
                writer.writerow([
                    exp.id,
                    exp.date.isoformat(),
                    exp.category,
                    str(exp.description).strip(),
                    f"{Decimal(str(exp.amount)):.2f}",
                ])

        return out_path
