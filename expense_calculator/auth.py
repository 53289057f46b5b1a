# expense_calculator/auth.py
from __future__ import annotations

import hmac
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid User ID or Password"


class AuthenticationError(RuntimeError):
    """The credentials were rejected or the identity provider failed."""


@dataclass
class AuthResult:
    user_id: str
    access_token: Optional[str] = None


class Authenticator(Protocol):
    def authenticate(self, user_id: str, password: str) -> AuthResult:
        """Return the resolved identity or raise AuthenticationError."""


@dataclass
class MockAuthenticator:
    """Accepts a single hardcoded credential pair."""

    username: str = "admin"
    password: str = "password"

    def authenticate(self, user_id: str, password: str) -> AuthResult:
        user_ok = hmac.compare_digest(user_id.encode("utf-8"), self.username.encode("utf-8"))
        password_ok = hmac.compare_digest(password.encode("utf-8"), self.password.encode("utf-8"))
        if not (user_ok and password_ok):
            logger.warning("Rejected mock login for %r", user_id)
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
        return AuthResult(user_id=user_id)


@dataclass
class BackendAuthenticator:
    """Password sign-in against the hosted backend's auth endpoint."""

    url: str
    api_key: str
    timeout: float = 10.0

    def authenticate(self, user_id: str, password: str) -> AuthResult:
        endpoint = f"{self.url.rstrip('/')}/auth/v1/token?" + urllib.parse.urlencode(
            {"grant_type": "password"}
        )
        data = json.dumps({"email": user_id, "password": password}).encode()
        req = urllib.request.Request(endpoint, data=data, method="POST")
        req.add_header("Content-Type", "application/json")
        req.add_header("apikey", self.api_key)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = json.load(resp)
        except urllib.error.HTTPError as exc:
            logger.warning("Backend rejected login for %r with status %s", user_id, exc.code)
            if exc.code in (400, 401, 403):
                raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE) from exc
            raise AuthenticationError(f"Sign-in failed with status {exc.code}") from exc
        except (urllib.error.URLError, TimeoutError, json.JSONDecodeError) as exc:
            logger.error("Could not reach auth backend: %s", exc)
            raise AuthenticationError(f"Could not reach sign-in service: {exc}") from exc

        user = body.get("user") or {}
        resolved = user.get("id")
        if not resolved:
            raise AuthenticationError("Sign-in service returned no user")
        return AuthResult(user_id=str(resolved), access_token=body.get("access_token"))


def get_authenticator(config: dict) -> Authenticator:
    auth_cfg = config.get("auth", {}) or {}
    mode = auth_cfg.get("mode", "mock")
    if mode == "mock":
        return MockAuthenticator(
            username=str(auth_cfg.get("username", "admin")),
            password=str(auth_cfg.get("password", "password")),
        )
    if mode == "backend":
        rest_cfg = config.get("rest", {}) or {}
        if not rest_cfg.get("url"):
            raise ValueError("rest.url must be configured for backend authentication")
        return BackendAuthenticator(
            url=rest_cfg["url"],
            api_key=rest_cfg.get("api_key") or "",
            timeout=float(rest_cfg.get("timeout", 10)),
        )
    raise ValueError(f"Unsupported auth mode '{mode}'.")
