# expense_calculator/loaders/spreadsheet.py
import re
import pandas as pd
from expense_calculator.loaders.base import BaseLoader
from expense_calculator.core.models import EXPENSE_CATEGORIES, ExpenseDraft

_CLEAN_AMOUNT = re.compile(r"[^\d\-\.]")
FALLBACK_CATEGORY = "Other"


class _FrameLoader(BaseLoader):
    """Turn a DataFrame with date/description/amount/category columns into drafts."""

    def __init__(self, config=None):
        config = config or {}
        self.categories = list(config.get('categories') or EXPENSE_CATEGORIES)
        self.restrict = config.get('restrict_categories', True)

    def read_frame(self, file_path):
        raise NotImplementedError

    def load(self, file_path):
        df = self.read_frame(file_path)

        cols = {str(c).strip().lower(): c for c in df.columns}
        def find(frag):
            frag = frag.lower()
            if frag in cols:
                return cols[frag]
            return next((orig for low, orig in cols.items() if frag in low), None)

        date_col = find('date')
        desc_col = find('description')
        amt_col  = find('amount')
        cat_col  = find('category')

        for name, col in (('date', date_col), ('description', desc_col), ('amount', amt_col)):
            if col is None:
                raise RuntimeError(f"Missing required column '{name}' in {file_path}")

        for _, row in df.iterrows():
            amt_raw = row[amt_col]
            if pd.isna(amt_raw):
                continue
            cleaned = _CLEAN_AMOUNT.sub("", str(amt_raw))
            # Blank or placeholder amounts are not expenses
            if not cleaned:
                continue
            try:
                amount = abs(float(cleaned))
            except ValueError:
                raise ValueError(f"Could not parse amount '{amt_raw}' in {file_path}")

            date_raw = row[date_col]
            parsed = pd.NaT if pd.isna(date_raw) else pd.to_datetime(date_raw, errors='coerce')
            if pd.isna(parsed):
                shown = "" if pd.isna(date_raw) else date_raw
                raise ValueError(f"Missing or invalid date '{shown}' in {file_path}")
            d = parsed.date()
            desc = "" if pd.isna(row[desc_col]) else str(row[desc_col]).strip()

            category = FALLBACK_CATEGORY
            if cat_col is not None and not pd.isna(row[cat_col]):
                category = str(row[cat_col]).strip() or FALLBACK_CATEGORY
            if self.restrict and category not in self.categories:
                category = FALLBACK_CATEGORY

            yield ExpenseDraft(amount=amount, category=category, description=desc, date=d)


class CSVLoader(_FrameLoader):
    def read_frame(self, file_path):
        return pd.read_csv(file_path, dtype=str, keep_default_na=True)


class ExcelLoader(_FrameLoader):
    def read_frame(self, file_path):
        return pd.read_excel(file_path, engine='openpyxl')
