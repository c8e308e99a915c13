# hookrelay/auth.py
"""
Bearer-token authentication backed by the credential authority.

The CredentialCache keeps positive verifications for a short freshness
window so repeated control-plane calls with the same token don't hit the
authority every time. Negative results are never cached.
"""
import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from flask import current_app, g, request

from .errors import AuthFailure

logger = logging.getLogger(__name__)

ACCESS_OPERATION = "webhook_access"
UNAVAILABLE_ERROR = "Authentication service unavailable"


@dataclass(frozen=True)
class TokenValidation:
    valid: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
    credits: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenValidation":
        return cls(
            valid=bool(data.get("valid")),
            user_id=data.get("user_id"),
            email=data.get("email"),
            credits=data.get("credits"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class AuthContext:
    token: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    credits: int = 0


class CredentialCache:
    """Time-bounded cache in front of the authority's verify/usage endpoints."""

    def __init__(
        self,
        authority,
        ttl_seconds: float = 60,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.authority = authority
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock
        self._entries: "OrderedDict[str, tuple]" = OrderedDict()
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="usage-report")

    def _get_fresh(self, token: str) -> Optional[TokenValidation]:
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            result, expires = entry
            if expires <= self.clock():
                del self._entries[token]
                return None
            return result

    def _store(self, token: str, result: TokenValidation) -> None:
        with self._lock:
            self._entries[token] = (result, self.clock() + self.ttl_seconds)
            self._entries.move_to_end(token)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def verify(self, token: str, operation: str = ACCESS_OPERATION) -> TokenValidation:
        if not token:
            return TokenValidation(valid=False, error="No token provided")

        cached = self._get_fresh(token)
        if cached is not None:
            return cached

        try:
            result = TokenValidation.from_dict(self.authority.verify(token, operation, 1))
        except (requests.RequestException, ValueError) as exc:
            logger.error("KeyKeeper verification error: %s", exc)
            return TokenValidation(valid=False, error=UNAVAILABLE_ERROR)

        if result.valid:
            self._store(token, result)
        return result

    def invalidate(self, token: str) -> None:
        with self._lock:
            self._entries.pop(token, None)

    def report_usage(self, records: List[Dict[str, Any]]) -> Optional[Future]:
        """Send a usage batch in the background. Failures are only logged."""
        if not records:
            return None
        return self._executor.submit(self._send_usage, list(records))

    def _send_usage(self, records: List[Dict[str, Any]]) -> bool:
        try:
            return bool(self.authority.report_usage(records))
        except Exception:
            logger.exception("Failed to report usage for %d records", len(records))
            return False

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


def get_credential_cache() -> CredentialCache:
    return current_app.extensions["credential_cache"]


def authenticate_request() -> None:
    """before_request hook for authenticated blueprints; raises AuthFailure (401)."""
    if request.method == "OPTIONS":
        # CORS preflight carries no credentials
        return
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise AuthFailure("Missing or invalid Authorization header")

    token = auth_header[len("Bearer "):].strip()
    if not token:
        raise AuthFailure("API token required")

    validation = get_credential_cache().verify(token, ACCESS_OPERATION)
    if not validation.valid:
        logger.info("Rejected token for %s %s: %s", request.method, request.path, validation.error)
        raise AuthFailure(validation.error or "Invalid token")

    g.auth = AuthContext(
        token=token,
        user_id=validation.user_id,
        email=validation.email,
        credits=validation.credits or 0,
    )


def get_auth() -> AuthContext:
    return g.auth
