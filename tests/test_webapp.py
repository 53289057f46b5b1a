import logging
from datetime import date

import pytest
from fastapi.testclient import TestClient

from expense_calculator.backends import BackendError
from expense_calculator.backends.sqlite import SQLiteBackend
from expense_calculator.config import load_config
from expense_calculator.core.models import ExpenseDraft
from webapp.main import create_app


@pytest.fixture
def app(tmp_path):
    cfg = load_config(tmp_path / "missing.yaml")
    cfg["backend"] = "memory"
    return create_app(cfg)


@pytest.fixture
def client(app):
    client = TestClient(app)
    res = client.post("/login", data={"user_id": "admin", "password": "password"})
    assert res.status_code == 200
    assert "Login successful!" in res.text
    return client


def _add(client, amount="12.50", category="Travel", description="Taxi", day="2024-01-05"):
    return client.post(
        "/expenses",
        data={"amount": amount, "category": category, "description": description, "date": day},
    )


def test_pages_require_login(app):
    anon = TestClient(app)
    res = anon.get("/", follow_redirects=False)
    assert res.status_code == 303
    assert res.headers["location"] == "/login"
    assert anon.get("/api/expenses").status_code == 401


def test_login_errors(app):
    anon = TestClient(app)
    res = anon.post("/login", data={"user_id": "admin", "password": "nope"})
    assert "Invalid User ID or Password" in res.text
    res = anon.post("/login", data={"user_id": "", "password": ""})
    assert "Please enter both User ID and Password" in res.text
    assert "Demo credentials: admin / password" in res.text


def test_add_edit_delete_flow(client):
    res = _add(client)
    assert "Expense added successfully!" in res.text
    assert "Taxi" in res.text
    assert "$12.50" in res.text

    rows = client.get("/api/expenses").json()
    assert len(rows) == 1
    expense_id = rows[0]["id"]
    assert rows[0]["owner_id"] == "admin"

    page = client.get(f"/?edit={expense_id}")
    assert "Update Expense" in page.text

    res = client.post(
        "/expenses",
        data={"amount": "20", "category": "Shopping", "description": "Shoes",
              "date": "2024-01-06", "editing_id": expense_id},
    )
    assert "Expense updated successfully!" in res.text
    rows = client.get("/api/expenses").json()
    assert [(r["id"], r["amount"], r["category"]) for r in rows] == [(expense_id, 20.0, "Shopping")]

    res = client.post(f"/expenses/{expense_id}/delete")
    assert "Expense deleted successfully!" in res.text
    assert client.get("/api/expenses").json() == []


def test_validation_failure_does_not_store(client):
    res = _add(client, description="")
    assert "Please fill in all required fields." in res.text
    assert client.get("/api/expenses").json() == []


def test_category_filter_and_summary(client):
    _add(client, amount="100", category="Food & Dining", description="Groceries", day="2024-01-05")
    _add(client, amount="50", category="Food & Dining", description="Dinner", day="2024-02-10")
    _add(client, amount="30", category="Transportation", description="Bus", day="2024-01-20")

    page = client.get("/", params={"category": "Transportation"})
    assert "Bus" in page.text
    assert "Groceries" not in page.text
    assert "Category Breakdown" in page.text

    summary = client.get("/api/summary", params={"category": "Food & Dining"}).json()
    assert summary["total"] == 150.0
    assert summary["count"] == 2
    assert summary["grand_total"] == 180.0
    assert [m["month_key"] for m in summary["monthly"]] == ["2024-01", "2024-02"]
    assert summary["charts"]["category"]["labels"] == ["Food & Dining", "Transportation"]

    filtered = client.get("/api/expenses", params={"category": "Food & Dining"}).json()
    assert {r["description"] for r in filtered} == {"Groceries", "Dinner"}


def test_backend_failure_is_reported_and_state_kept(app, client, monkeypatch):
    _add(client)
    store = app.state.stores.for_user("admin")
    before = store.expenses

    def boom(*args, **kwargs):
        raise BackendError("backend unavailable")

    monkeypatch.setattr(store.backend, "insert", boom)
    res = _add(client, description="Second")
    assert "backend unavailable" in res.text
    assert store.expenses is before


def test_charts_page(client):
    assert "Add some expenses to see charts." in client.get("/charts").text
    _add(client, day=date.today().isoformat())
    page = client.get("/charts")
    assert "Category Distribution" in page.text
    assert "Top Spending Categories" in page.text
    assert "Daily Expense Trend (Last 30 Days)" in page.text


def test_logout(client):
    res = client.post("/logout")
    assert "Logged out" in res.text
    assert client.get("/", follow_redirects=False).status_code == 303


def test_cannot_delete_or_edit_another_users_expense(tmp_path):
    cfg = load_config(tmp_path / "missing.yaml")
    cfg.update(backend="sqlite", db_path=str(tmp_path / "shared.db"))
    theirs = SQLiteBackend(cfg).insert(
        ExpenseDraft(amount=40.0, category="Travel", description="Someone else's taxi", date=date(2024, 3, 1)),
        owner_id="bob",
    )
    client = TestClient(create_app(cfg))
    client.post("/login", data={"user_id": "admin", "password": "password"})

    res = client.post(f"/expenses/{theirs.id}/delete")
    assert "not found" in res.text
    res = client.post(
        "/expenses",
        data={"amount": "1", "category": "Travel", "description": "Mine now",
              "date": "2024-03-01", "editing_id": theirs.id},
    )
    assert "not found" in res.text

    remaining = SQLiteBackend(cfg).list(owner_id="bob")
    assert [(e.id, e.description) for e in remaining] == [(theirs.id, "Someone else's taxi")]


def test_unconfigured_backend_is_reported_on_the_page(tmp_path, monkeypatch):
    monkeypatch.delenv("EXPENSE_CALC_REST_URL", raising=False)
    cfg = load_config(tmp_path / "missing.yaml")
    cfg["backend"] = "rest"
    client = TestClient(create_app(cfg))

    res = client.post("/login", data={"user_id": "admin", "password": "password"})
    assert res.status_code == 200
    assert "rest.url must be configured" in res.text
    assert "rest.url must be configured" in client.get("/charts").text
    assert client.get("/api/expenses").status_code == 502


def test_default_session_secret_logs_warning(tmp_path, monkeypatch, caplog):
    monkeypatch.delenv("EXPENSE_CALC_SESSION_SECRET", raising=False)
    cfg = load_config(tmp_path / "missing.yaml")

    with caplog.at_level(logging.WARNING, logger="webapp.main"):
        create_app(cfg)
    assert "session_secret is still the default" in caplog.text

    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="webapp.main"):
        create_app(dict(cfg, session_secret="a-real-secret"))
    assert "session_secret" not in caplog.text
