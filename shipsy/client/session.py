"""HTTP client session for the Shipsy API.

``AuthSession`` keeps the tokens of one signed-in user, refreshes the access
token shortly before it expires and transparently retries a request once
after a silent refresh when the API answers 401.
"""

import functools
import threading
import time
from typing import Any, Callable, Dict, Optional

import httpx

from shipsy.auth_local import decode_token
from shipsy.core.logging_config import get_logger

logger = get_logger(__name__)

AUTH_PREFIX = "/api/auth"
REFRESH_PATH = f"{AUTH_PREFIX}/refresh"
# Endpoints whose 401 means "bad credentials", not "expired session"
NO_RETRY_PATHS = (f"{AUTH_PREFIX}/login", f"{AUTH_PREFIX}/register", REFRESH_PATH)


class ClientError(Exception):
    def __init__(self, status_code: int, message: str, code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details
        super().__init__(f"{status_code} {code or ''} {message}".strip())

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ClientError":
        try:
            body = response.json()
        except ValueError:
            return cls(response.status_code, response.text or response.reason_phrase)
        error = body.get("error") or {}
        return cls(
            response.status_code,
            body.get("message") or error.get("message") or response.reason_phrase,
            error.get("code"),
            error.get("details"),
        )


class RefreshScheduler:
    """The single pending refresh timer of one session.

    States are idle (no timer) and scheduled. ``schedule`` always cancels
    the pending timer first, so at most one refresh is ever armed. A timer
    that fires after being superseded does nothing.
    """

    LEAD_SECONDS = 120

    def __init__(
        self,
        on_due: Callable[[], Any],
        clock: Callable[[], float] = time.time,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        self._on_due = on_due
        self._clock = clock
        self._timer_factory = timer_factory
        self._timer = None
        self._armed = None
        # re-entrant: a timer factory or on_due hook may call back into schedule
        self._lock = threading.RLock()

    @property
    def scheduled(self) -> bool:
        return self._timer is not None

    def refresh_at(self, access_token: str) -> Optional[float]:
        claims = decode_token(access_token)
        if not claims or "exp" not in claims:
            return None
        return float(claims["exp"]) - self.LEAD_SECONDS

    def schedule(self, access_token: str, refresh_if_due: bool = True) -> Optional[float]:
        """Arm the timer for ``exp - 2 min``; returns the delay in seconds.

        When that moment has already passed the refresh runs right away
        (delay 0), unless ``refresh_if_due`` is false. The lock is held from
        cancelling the old timer until the new one is started, and whatever
        timer is pending at swap time is cancelled, so concurrent callers
        never leave two timers alive.
        """
        due = self.refresh_at(access_token)
        with self._lock:
            self._cancel_pending()
            if due is None:
                logger.warning("Access token has no readable expiry; refresh not scheduled")
                return None

            delay = due - self._clock()
            if delay > 0:
                key = object()
                timer = self._timer_factory(delay, functools.partial(self._fire, key))
                timer.daemon = True
                previous, self._timer = self._timer, timer
                if previous is not None:
                    previous.cancel()
                # a nested schedule from the factory may have re-armed; this timer wins
                self._armed = key
                timer.start()
                return delay

        # on_due takes the session refresh lock, which callers acquire before this one
        if not refresh_if_due:
            logger.warning("Fresh access token is already inside the refresh window")
            return None
        self._on_due()
        return 0.0

    def cancel(self) -> None:
        with self._lock:
            self._cancel_pending()

    def _cancel_pending(self) -> None:
        timer, self._timer = self._timer, None
        self._armed = None
        if timer is not None:
            timer.cancel()

    def _fire(self, key: object) -> None:
        with self._lock:
            if key is not self._armed:
                # superseded or cancelled after the timer thread woke up
                return
            self._timer = None
            self._armed = None
        self._on_due()


class AuthSession:
    """Signed-in API session.

    Pass ``client`` to reuse an existing ``httpx.Client`` (for example a
    FastAPI ``TestClient``); otherwise one is built for ``base_url``.
    ``on_logout`` is called when a background refresh fails and the session
    drops its credentials.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        on_logout: Optional[Callable[[], Any]] = None,
        clock: Callable[[], float] = time.time,
        timer_factory: Callable[..., Any] = threading.Timer,
        timeout: float = 10.0,
    ):
        if client is None and base_url is None:
            raise ValueError("base_url or client is required")
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self.scheduler = RefreshScheduler(self._refresh_in_background, clock, timer_factory)
        self.user: Optional[dict] = None
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self._on_logout = on_logout
        self._refresh_lock = threading.Lock()

    def __enter__(self) -> "AuthSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def authenticated(self) -> bool:
        return self.access_token is not None

    def register(self, email: str, password: str, name: str, phone: str) -> dict:
        payload = {"email": email, "password": password, "name": name, "phone": phone}
        return self._start(self.client.post(f"{AUTH_PREFIX}/register", json=payload))

    def login(self, email: str, password: str) -> dict:
        return self._start(self.client.post(f"{AUTH_PREFIX}/login", json={"email": email, "password": password}))

    def logout(self) -> None:
        try:
            self.client.post(f"{AUTH_PREFIX}/logout")
        finally:
            self._clear()

    def me(self) -> dict:
        response = self.request("GET", f"{AUTH_PREFIX}/me")
        if response.status_code != 200:
            raise ClientError.from_response(response)
        self.user = response.json()["data"]
        return self.user

    def refresh(self) -> bool:
        """Rotate the tokens; on failure the session is signed out and False returned."""
        with self._refresh_lock:
            body = {"refreshToken": self.refresh_token} if self.refresh_token else None
            try:
                response = self.client.post(REFRESH_PATH, json=body)
            except httpx.HTTPError as e:
                logger.warning(f"Token refresh failed: {type(e).__name__}")
                self._expire()
                return False

            if response.status_code != 200:
                logger.info("Token refresh rejected; signing out")
                self._expire()
                return False

            self._store_tokens(response.json()["data"]["tokens"])
            self.scheduler.schedule(self.access_token, refresh_if_due=False)
        return True

    def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request; a 401 triggers one silent refresh and exactly one retry."""
        response = self._send(method, url, **kwargs)
        if response.status_code != 401 or url in NO_RETRY_PATHS or not self.authenticated:
            return response
        if not self.refresh():
            return response
        return self._send(method, url, replace_auth=True, **kwargs)

    def close(self) -> None:
        self.scheduler.cancel()
        self.client.close()

    def _send(self, method: str, url: str, replace_auth: bool = False, **kwargs) -> httpx.Response:
        headers = {
            name: value
            for name, value in (kwargs.pop("headers", None) or {}).items()
            if not (replace_auth and name.lower() == "authorization")
        }
        if self.access_token:
            headers.setdefault("Authorization", f"Bearer {self.access_token}")
        return self.client.request(method, url, headers=headers, **kwargs)

    def _start(self, response: httpx.Response) -> dict:
        if response.status_code not in (200, 201):
            raise ClientError.from_response(response)
        data = response.json()["data"]
        self.user = data["user"]
        self._store_tokens(data["tokens"])
        self.scheduler.schedule(self.access_token)
        return self.user

    def _store_tokens(self, tokens: dict) -> None:
        self.access_token = tokens["accessToken"]
        self.refresh_token = tokens.get("refreshToken") or self.refresh_token

    def _refresh_in_background(self) -> None:
        if self.authenticated:
            self.refresh()

    def _clear(self) -> None:
        self.scheduler.cancel()
        self.user = None
        self.access_token = None
        self.refresh_token = None
        self.client.cookies.clear()

    def _expire(self) -> None:
        self._clear()
        if self._on_logout is not None:
            self._on_logout()
