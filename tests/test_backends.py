import io
import json
import sqlite3
import urllib.error
from datetime import date

import pytest

from expense_calculator.backends import BackendError
from expense_calculator.backends.rest import RestBackend
from expense_calculator.backends.sqlite import SQLiteBackend
from expense_calculator.core.models import ExpenseDraft


def _draft(amount, day, category="Shopping", description="Shoes"):
    return ExpenseDraft(amount=amount, category=category, description=description, date=day)


def test_sqlite_roundtrip_and_ordering(tmp_path):
    db_path = tmp_path / "nested" / "expenses.db"
    backend = SQLiteBackend({"db_path": str(db_path)})

    older = backend.insert(_draft(10, date(2024, 1, 1)), owner_id="admin")
    newer = backend.insert(_draft(20, date(2024, 2, 1)), owner_id="admin")
    backend.insert(_draft(30, date(2024, 3, 1)), owner_id="other")

    assert db_path.exists()
    assert [e.id for e in backend.list(owner_id="admin")] == [newer.id, older.id]
    assert [e.id for e in backend.list(owner_id="admin", order_by_date_desc=False)] == [older.id, newer.id]
    assert len(backend.list()) == 3

    conn = sqlite3.connect(db_path)
    rows = conn.execute("SELECT user_id, amount, date FROM expenses ORDER BY id").fetchall()
    conn.close()
    assert rows[0] == ("admin", 10.0, "2024-01-01")


def test_sqlite_update_and_delete(tmp_path):
    backend = SQLiteBackend({"db_path": str(tmp_path / "e.db")})
    created = backend.insert(_draft(10, date(2024, 1, 1)))

    updated = backend.update(created.id, _draft(12.5, date(2024, 1, 2), category="Travel", description="Bus"))
    assert updated.id == created.id
    assert (updated.amount, updated.category, updated.description, updated.date) == (
        12.5, "Travel", "Bus", date(2024, 1, 2)
    )

    backend.delete(created.id)
    assert backend.list() == []

    with pytest.raises(BackendError):
        backend.delete(created.id)
    with pytest.raises(BackendError):
        backend.update("not-a-number", _draft(1, date(2024, 1, 1)))


class FakeResponse:
    def __init__(self, payload):
        self._raw = json.dumps(payload).encode() if payload is not None else b""

    def read(self):
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def rest_backend():
    backend = RestBackend({"rest": {"url": "https://db.example.co/", "api_key": "anon", "table": "expenses"}})
    backend.use_session("user-token")
    return backend


def test_rest_list_sends_filters_and_headers(monkeypatch, rest_backend):
    seen = {}

    def fake_urlopen(req, timeout):
        seen["req"] = req
        seen["timeout"] = timeout
        return FakeResponse([
            {"id": 7, "amount": "12.5", "category": "Travel", "description": "Taxi",
             "date": "2024-01-05", "user_id": "u1", "created_at": "2024-01-05T10:00:00"},
        ])

    monkeypatch.setattr("expense_calculator.backends.rest.urllib.request.urlopen", fake_urlopen)

    rows = rest_backend.list(owner_id="u1")

    req = seen["req"]
    assert req.get_method() == "GET"
    assert req.full_url.startswith("https://db.example.co/rest/v1/expenses?")
    assert "user_id=eq.u1" in req.full_url
    assert "order=date.desc" in req.full_url
    assert req.get_header("Apikey") == "anon"
    assert req.get_header("Authorization") == "Bearer user-token"
    assert seen["timeout"] == 10.0
    assert rows[0].id == "7"
    assert rows[0].amount == 12.5
    assert rows[0].date == date(2024, 1, 5)
    assert rows[0].owner_id == "u1"


def test_rest_insert_update_delete(monkeypatch, rest_backend):
    calls = []

    def fake_urlopen(req, timeout):
        calls.append(req)
        body = json.loads(req.data) if req.data else None
        if req.get_method() == "POST":
            return FakeResponse([dict(body[0], id="abc")])
        if req.get_method() == "PATCH":
            return FakeResponse([dict(body, id="abc")])
        return FakeResponse([{"id": "abc"}])

    monkeypatch.setattr("expense_calculator.backends.rest.urllib.request.urlopen", fake_urlopen)

    created = rest_backend.insert(_draft(5, date(2024, 4, 1)), owner_id="u1")
    assert created.id == "abc"
    assert created.owner_id == "u1"
    assert json.loads(calls[0].data) == [{
        "amount": 5.0, "category": "Shopping", "description": "Shoes",
        "date": "2024-04-01", "user_id": "u1",
    }]

    updated = rest_backend.update("abc", _draft(6, date(2024, 4, 2)))
    assert calls[1].full_url.endswith("?id=eq.abc")
    assert updated.amount == 6.0

    rest_backend.delete("abc")
    assert calls[2].get_method() == "DELETE"


def test_rest_http_error_becomes_backend_error(monkeypatch, rest_backend):
    def fake_urlopen(req, timeout):
        raise urllib.error.HTTPError(
            req.full_url, 400, "Bad Request", {}, io.BytesIO(b'{"message": "violates check constraint"}')
        )

    monkeypatch.setattr("expense_calculator.backends.rest.urllib.request.urlopen", fake_urlopen)

    with pytest.raises(BackendError, match="violates check constraint"):
        rest_backend.insert(_draft(5, date(2024, 4, 1)))


def test_rest_unreachable_and_missing_rows(monkeypatch, rest_backend):
    def unreachable(req, timeout):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr("expense_calculator.backends.rest.urllib.request.urlopen", unreachable)
    with pytest.raises(BackendError, match="Could not reach backend"):
        rest_backend.list()

    monkeypatch.setattr(
        "expense_calculator.backends.rest.urllib.request.urlopen", lambda req, timeout: FakeResponse([])
    )
    with pytest.raises(BackendError, match="not found"):
        rest_backend.update("zzz", _draft(1, date(2024, 1, 1)))
    with pytest.raises(BackendError, match="not found"):
        rest_backend.delete("zzz")


def test_rest_requires_url():
    with pytest.raises(ValueError):
        RestBackend({"rest": {"url": ""}})


def test_sqlite_unreadable_row_is_backend_error(tmp_path):
    db_path = tmp_path / "e.db"
    backend = SQLiteBackend({"db_path": str(db_path)})
    backend.insert(_draft(10, date(2024, 1, 1)))

    conn = sqlite3.connect(db_path)
    conn.execute("INSERT INTO expenses (amount, category, description, date) VALUES (1, 'Other', 'x', 'NaT')")
    conn.commit()
    conn.close()

    with pytest.raises(BackendError, match="unreadable"):
        backend.list()


def test_rest_unreadable_row_is_backend_error(monkeypatch, rest_backend):
    def fake_urlopen(req, timeout):
        return FakeResponse([{"id": 1, "amount": 2, "category": "Other", "description": "x", "date": None}])

    monkeypatch.setattr("expense_calculator.backends.rest.urllib.request.urlopen", fake_urlopen)
    with pytest.raises(BackendError, match="unreadable"):
        rest_backend.list()
