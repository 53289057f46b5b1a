from __future__ import annotations

import logging
import threading
from datetime import date
from pathlib import Path
from typing import Dict
from urllib.parse import urlencode

from fastapi import FastAPI, Form, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from expense_calculator.auth import AuthenticationError, get_authenticator
from expense_calculator.backends import BackendError
from expense_calculator.charts import build_chart_data, color_for, format_amount
from expense_calculator.config import DEFAULT_CONFIG, load_config
from expense_calculator.core import aggregator
from expense_calculator.forms import ExpenseForm, FormError, validate_login
from expense_calculator.store import ExpenseStore, StoreBusyError, open_store

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).with_name("templates")


def _redirect(path: str, **params: str | None) -> RedirectResponse:
    query = urlencode({k: v for k, v in params.items() if v})
    return RedirectResponse(f"{path}?{query}" if query else path, status_code=303)


def _current_user(request: Request) -> str | None:
    if not request.session.get("isLoggedIn"):
        return None
    return request.session.get("userId")


class StoreRegistry:
    """One loaded ExpenseStore per signed-in user."""

    def __init__(self, config: dict) -> None:
        self.config = config
        self._stores: Dict[str, ExpenseStore] = {}
        self._lock = threading.Lock()

    def for_user(self, user_id: str, access_token: str | None = None) -> ExpenseStore:
        with self._lock:
            store = self._stores.get(user_id)
            if store is None:
                store = open_store(self.config, owner_id=user_id, access_token=access_token)
                self._stores[user_id] = store
            return store

    def forget(self, user_id: str | None) -> None:
        with self._lock:
            self._stores.pop(user_id, None)


def create_app(config: dict | None = None) -> FastAPI:
    cfg = config if config is not None else load_config()
    symbol = cfg.get("currency_symbol", "$")
    categories = list(cfg.get("categories") or [])
    match_year = bool(cfg.get("current_month_matches_year", False))
    secret = str(cfg.get("session_secret") or DEFAULT_CONFIG["session_secret"])
    if secret == DEFAULT_CONFIG["session_secret"]:
        logger.warning(
            "session_secret is still the default; set EXPENSE_CALC_SESSION_SECRET before exposing the app"
        )

    app = FastAPI(title="Expense Calculator")
    app.add_middleware(SessionMiddleware, secret_key=secret, same_site="lax")
    app.state.config = cfg
    app.state.stores = StoreRegistry(cfg)
    authenticator = get_authenticator(cfg)

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.filters["money"] = lambda value: format_amount(float(value or 0.0), symbol)
    templates.env.globals["color_for"] = color_for

    def user_store(request: Request, user_id: str) -> ExpenseStore:
        return app.state.stores.for_user(user_id, request.session.get("accessToken"))

    @app.get("/login")
    async def login_page(request: Request, message: str | None = None, error: str | None = None):
        if _current_user(request):
            return _redirect("/")
        return templates.TemplateResponse(
            request,
            "login.html",
            {"message": message, "error": error, "mock": cfg["auth"].get("mode", "mock") == "mock"},
        )

    @app.post("/login")
    def login(request: Request, user_id: str = Form(""), password: str = Form("")):
        try:
            user, secret = validate_login(user_id, password)
            result = authenticator.authenticate(user, secret)
        except (FormError, AuthenticationError) as exc:
            return _redirect("/login", error=str(exc))
        request.session["isLoggedIn"] = True
        request.session["userId"] = result.user_id
        if result.access_token:
            request.session["accessToken"] = result.access_token
        logger.info("User %s logged in", result.user_id)
        return _redirect("/", message="Login successful!")

    @app.post("/logout")
    async def logout(request: Request):
        user = _current_user(request)
        if user and cfg["auth"].get("mode") == "backend":
            app.state.stores.forget(user)
        request.session.clear()
        return _redirect("/login", message="Logged out")

    @app.get("/")
    def index(
        request: Request,
        category: str = "all",
        edit: str | None = None,
        message: str | None = None,
        error: str | None = None,
    ):
        user = _current_user(request)
        if user is None:
            return _redirect("/login")

        expenses = ()
        try:
            store = user_store(request, user)
            expenses = store.expenses
        except (BackendError, ValueError) as exc:
            logger.warning("Loading expenses for %s failed: %s", user, exc)
            store = None
            error = error or str(exc)

        editing = store.get(edit) if store is not None and edit else None
        form = ExpenseForm.from_expense(editing) if editing else ExpenseForm.blank()
        summary = aggregator.summarize(expenses, category=category, today=date.today(), match_year=match_year)
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "user": user,
                "expenses": aggregator.filter_by_category(expenses, category),
                "summary": summary,
                "categories": categories,
                "filter_category": category,
                "form": form,
                "message": message,
                "error": error,
            },
        )

    @app.post("/expenses")
    def save_expense(
        request: Request,
        amount: str = Form(""),
        category: str = Form(""),
        description: str = Form(""),
        date_value: str = Form("", alias="date"),
        editing_id: str = Form(""),
    ):
        user = _current_user(request)
        if user is None:
            return _redirect("/login")

        form = ExpenseForm(amount, category, description, date_value, editing_id or None)
        try:
            draft = form.validate(categories, restrict_categories=cfg.get("restrict_categories", True))
        except FormError as exc:
            return _redirect("/", error=str(exc), edit=form.editing_id)

        try:
            store = user_store(request, user)
            if form.editing_id:
                store.update(form.editing_id, draft)
                return _redirect("/", message="Expense updated successfully!")
            store.add(draft)
            return _redirect("/", message="Expense added successfully!")
        except (BackendError, StoreBusyError, ValueError) as exc:
            logger.warning("Saving expense for %s failed: %s", user, exc)
            return _redirect("/", error=str(exc), edit=form.editing_id)

    @app.post("/expenses/{expense_id}/delete")
    def delete_expense(request: Request, expense_id: str):
        user = _current_user(request)
        if user is None:
            return _redirect("/login")
        try:
            user_store(request, user).delete(expense_id)
        except (BackendError, StoreBusyError, ValueError) as exc:
            logger.warning("Deleting expense %s failed: %s", expense_id, exc)
            return _redirect("/", error=str(exc))
        return _redirect("/", message="Expense deleted successfully!")

    @app.get("/charts")
    def charts(request: Request, error: str | None = None):
        user = _current_user(request)
        if user is None:
            return _redirect("/login")
        expenses = ()
        try:
            expenses = user_store(request, user).expenses
        except (BackendError, ValueError) as exc:
            logger.warning("Loading chart data for %s failed: %s", user, exc)
            error = str(exc)
        return templates.TemplateResponse(
            request,
            "charts.html",
            {"user": user, "charts": build_chart_data(expenses, date.today()), "error": error},
        )

    @app.get("/api/expenses")
    def api_expenses(request: Request, category: str = "all"):
        user = _current_user(request)
        if user is None:
            return JSONResponse({"error": "not authenticated"}, status_code=401)
        try:
            store = user_store(request, user)
        except (BackendError, ValueError) as exc:
            return JSONResponse({"error": str(exc)}, status_code=502)
        return [exp.to_dict() for exp in store.filtered(category)]

    @app.get("/api/summary")
    def api_summary(request: Request, category: str = "all"):
        user = _current_user(request)
        if user is None:
            return JSONResponse({"error": "not authenticated"}, status_code=401)
        try:
            expenses = user_store(request, user).expenses
        except (BackendError, ValueError) as exc:
            return JSONResponse({"error": str(exc)}, status_code=502)
        payload = aggregator.summarize(expenses, category=category, today=date.today(), match_year=match_year)
        payload["charts"] = build_chart_data(expenses, date.today())
        return payload

    return app


app = create_app()
