# expense_calculator/backends/rest.py
"""Hosted backend-as-a-service reached over its REST interface.

The service exposes each table at ``<url>/rest/v1/<table>`` with
PostgREST-style filters (``id=eq.<id>``, ``order=date.desc``). Every call
carries the project ``apikey`` header and, once a user has signed in, their
access token as a bearer token.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, List, Optional

from expense_calculator.backends.base import BackendError, BaseBackend
from expense_calculator.core.models import Expense, ExpenseDraft

logger = logging.getLogger(__name__)


class RestBackend(BaseBackend):
    def __init__(self, config: dict):
        rest_cfg = config.get("rest", {}) or {}
        self.url = (rest_cfg.get("url") or "").rstrip("/")
        self.api_key = rest_cfg.get("api_key") or ""
        self.table = rest_cfg.get("table", "expenses")
        self.timeout = float(rest_cfg.get("timeout", 10))
        self.access_token: Optional[str] = None
        if not self.url:
            raise ValueError("rest.url must be configured for the rest backend")

    def use_session(self, access_token: Optional[str]) -> None:
        self.access_token = access_token

    def _endpoint(self, **params: str) -> str:
        base = f"{self.url}/rest/v1/{self.table}"
        if params:
            base += "?" + urllib.parse.urlencode(params)
        return base

    def _request(self, method: str, url: str, payload: Any = None) -> Any:
        data = json.dumps(payload).encode() if payload is not None else None
        req = urllib.request.Request(url, data=data, method=method)
        req.add_header("Content-Type", "application/json")
        req.add_header("apikey", self.api_key)
        req.add_header("Authorization", f"Bearer {self.access_token or self.api_key}")
        req.add_header("Prefer", "return=representation")
        logger.debug("REST ▶ %s %s – payload: %s", method, url, payload)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", "replace")
            logger.error("REST %s %s failed with %s: %s", method, url, exc.code, detail)
            raise BackendError(_error_message(detail) or f"Request failed with status {exc.code}") from exc
        except (urllib.error.URLError, TimeoutError) as exc:
            logger.error("REST %s %s unreachable: %s", method, url, exc)
            raise BackendError(f"Could not reach backend: {exc}") from exc
        logger.debug("REST ◀ %s", raw[:500])
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise BackendError("Backend returned malformed JSON") from exc

    def list(self, owner_id: Optional[str] = None, order_by_date_desc: bool = True) -> List[Expense]:
        params = {"select": "*"}
        if owner_id is not None:
            params["user_id"] = f"eq.{owner_id}"
        if order_by_date_desc:
            params["order"] = "date.desc"
        rows = self._request("GET", self._endpoint(**params)) or []
        return [_to_expense(row) for row in rows]

    def insert(self, draft: ExpenseDraft, owner_id: Optional[str] = None) -> Expense:
        payload = draft.to_record()
        if owner_id is not None:
            payload["user_id"] = owner_id
        rows = self._request("POST", self._endpoint(), [payload])
        return _to_expense(_single_row(rows, "insert"))

    def update(self, expense_id: str, draft: ExpenseDraft) -> Expense:
        rows = self._request("PATCH", self._endpoint(id=f"eq.{expense_id}"), draft.to_record())
        if not rows:
            raise BackendError(f"Expense {expense_id} not found")
        return _to_expense(_single_row(rows, "update"))

    def delete(self, expense_id: str) -> None:
        rows = self._request("DELETE", self._endpoint(id=f"eq.{expense_id}"))
        if isinstance(rows, list) and not rows:
            raise BackendError(f"Expense {expense_id} not found")


def _to_expense(row: Any) -> Expense:
    try:
        return Expense.from_dict(row)
    except (KeyError, TypeError, ValueError) as exc:
        logger.error("Unreadable expense row from backend: %r", row)
        raise BackendError(f"Backend returned an unreadable expense: {exc}") from exc


def _single_row(rows: Any, action: str) -> dict:
    if isinstance(rows, list) and rows:
        return rows[0]
    if isinstance(rows, dict):
        return rows
    raise BackendError(f"Backend returned no row for {action}")


def _error_message(detail: str) -> Optional[str]:
    try:
        body = json.loads(detail)
    except json.JSONDecodeError:
        return detail.strip() or None
    if isinstance(body, dict):
        return body.get("message") or body.get("error_description") or body.get("msg") or body.get("error")
    return None
