import logging
import sqlite3
from pathlib import Path
from typing import List, Optional

from expense_calculator.backends.base import BackendError, BaseBackend
from expense_calculator.core.models import Expense, ExpenseDraft, parse_date

logger = logging.getLogger(__name__)

_COLUMNS = "id, user_id, amount, category, description, date"


def _init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS expenses (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT,
            amount REAL NOT NULL,
            category TEXT NOT NULL,
            description TEXT NOT NULL,
            date TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.commit()


def _row_to_expense(row) -> Expense:
    try:
        return Expense(
            id=str(row[0]),
            owner_id=row[1],
            amount=float(row[2] or 0.0),
            category=row[3],
            description=row[4],
            date=parse_date(row[5]),
        )
    except (TypeError, ValueError) as exc:
        logger.error("Unreadable expense row %s: %s", row[0], exc)
        raise BackendError(f"Expense {row[0]} has unreadable data: {exc}") from exc


def _parse_id(expense_id: str) -> int:
    try:
        return int(expense_id)
    except (TypeError, ValueError):
        raise BackendError(f"Expense {expense_id} not found") from None


class SQLiteBackend(BaseBackend):
    """Persist expenses into a local SQLite database file."""

    def __init__(self, config: dict):
        self.db_path = config.get("db_path", "expenses.db")

    def _connect(self) -> sqlite3.Connection:
        path = Path(self.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(path)
        _init_db(conn)
        return conn

    def _fetch_one(self, conn: sqlite3.Connection, row_id: int) -> Expense:
        row = conn.execute(
            f"SELECT {_COLUMNS} FROM expenses WHERE id = ?", (row_id,)
        ).fetchone()
        if row is None:
            raise BackendError(f"Expense {row_id} not found")
        return _row_to_expense(row)

    def list(self, owner_id: Optional[str] = None, order_by_date_desc: bool = True) -> List[Expense]:
        query = f"SELECT {_COLUMNS} FROM expenses"
        params: list[str] = []
        if owner_id is not None:
            query += " WHERE user_id = ?"
            params.append(owner_id)
        query += " ORDER BY date DESC, id DESC" if order_by_date_desc else " ORDER BY id"
        try:
            conn = self._connect()
            try:
                rows = conn.execute(query, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Could not list expenses from %s: %s", self.db_path, exc)
            raise BackendError(f"Database error fetching expenses: {exc}") from exc
        return [_row_to_expense(r) for r in rows]

    def insert(self, draft: ExpenseDraft, owner_id: Optional[str] = None) -> Expense:
        try:
            conn = self._connect()
            try:
                cur = conn.execute(
                    """
                    INSERT INTO expenses (user_id, amount, category, description, date)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        owner_id,
                        float(draft.amount),
                        draft.category,
                        draft.description.strip(),
                        draft.date.isoformat(),
                    ),
                )
                conn.commit()
                return self._fetch_one(conn, cur.lastrowid)
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Could not insert expense into %s: %s", self.db_path, exc)
            raise BackendError(f"Database error adding expense: {exc}") from exc

    def update(self, expense_id: str, draft: ExpenseDraft) -> Expense:
        row_id = _parse_id(expense_id)
        try:
            conn = self._connect()
            try:
                cur = conn.execute(
                    """
                    UPDATE expenses
                    SET amount = ?, category = ?, description = ?, date = ?
                    WHERE id = ?
                    """,
                    (
                        float(draft.amount),
                        draft.category,
                        draft.description.strip(),
                        draft.date.isoformat(),
                        row_id,
                    ),
                )
                conn.commit()
                if cur.rowcount == 0:
                    raise BackendError(f"Expense {expense_id} not found")
                return self._fetch_one(conn, row_id)
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Could not update expense %s: %s", expense_id, exc)
            raise BackendError(f"Database error updating expense: {exc}") from exc

    def delete(self, expense_id: str) -> None:
        row_id = _parse_id(expense_id)
        try:
            conn = self._connect()
            try:
                cur = conn.execute("DELETE FROM expenses WHERE id = ?", (row_id,))
                conn.commit()
                if cur.rowcount == 0:
                    raise BackendError(f"Expense {expense_id} not found")
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Could not delete expense %s: %s", expense_id, exc)
            raise BackendError(f"Database error deleting expense: {exc}") from exc
