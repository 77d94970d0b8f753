"""Outbound HTTP with request dedup, per-endpoint throttling and 429 backoff."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx

from tutorlink_sync.application.exceptions import (
    HttpError,
    NetworkError,
    RateLimitError,
    SessionExpiredError,
)
from tutorlink_sync.application.ports.clock import Clock, SystemClock
from tutorlink_sync.application.ports.navigation import LoggingNavigator, Navigator
from tutorlink_sync.client.session import SESSION_EXPIRED_MESSAGE, SessionStore
from tutorlink_sync.config import settings

logger = logging.getLogger(__name__)

AUTH_ENDPOINTS = (
    "/auth/login",
    "/auth/register",
    "/auth/forgot-password",
    "/auth/reset-password",
)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."

Sleep = Callable[[float], Awaitable[None]]


@dataclass(slots=True)
class RateLimitState:
    retry_after: float = 0.0
    last_429_at: float = 0.0


@dataclass(slots=True)
class RequestState:
    """Dedup, throttle and backoff bookkeeping for one session."""

    pending: dict[str, asyncio.Task[Any]] = field(default_factory=dict)
    last_sent: dict[str, float] = field(default_factory=dict)
    rate_limit: RateLimitState = field(default_factory=RateLimitState)


def serialize_body(body: Any) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode()
    if isinstance(body, str):
        return body
    return json.dumps(body, separators=(",", ":"), sort_keys=True, default=str)


def request_key(method: str, endpoint: str, body: Any = None) -> str:
    return f"{method.upper()}:{endpoint}:{serialize_body(body)}"


def backoff_delay_ms(
    attempt: int,
    retry_after: int | None = None,
    *,
    base_ms: int = settings.BACKOFF_BASE_MS,
    max_ms: int = settings.BACKOFF_MAX_MS,
) -> int:
    """Server-provided Retry-After (seconds) wins, else capped exponential."""
    if retry_after:
        return retry_after * 1000
    return min(base_ms * (2 ** attempt), max_ms)


def is_auth_endpoint(endpoint: str) -> bool:
    return any(path in endpoint for path in AUTH_ENDPOINTS)


def parse_retry_after(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def error_message(body: dict[str, Any], fallback: str) -> str:
    return str(body.get("message") or body.get("error") or fallback)


def _error_body(response: httpx.Response, fallback: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"error": fallback}
    return data if isinstance(data, dict) else {"error": fallback}


class RequestGateway:
    """Single entry point for API calls; classifies every failure."""

    def __init__(
        self,
        session: SessionStore,
        *,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        state: RequestState | None = None,
        clock: Clock | None = None,
        sleep: Sleep = asyncio.sleep,
        navigator: Navigator | None = None,
        max_retries: int = settings.MAX_RETRIES,
        throttle_ms: int = settings.THROTTLE_DELAY_MS,
    ) -> None:
        self._session = session
        self._base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
        self._owns_client = client is None
        self.state = state or RequestState()
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._navigator = navigator or LoggingNavigator()
        self._max_retries = max_retries
        self._throttle = throttle_ms / 1000
        self._redirect: asyncio.TimerHandle | None = None

    async def send(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        key = request_key(method, endpoint, body)
        task = self.state.pending.get(key)
        if task is None:
            # registered before the first suspension point so that
            # concurrent identical calls always find it
            task = asyncio.create_task(
                self._run(key, endpoint, method.upper(), serialize_body(body), headers),
                name=f"request:{key[:80]}",
            )
            self.state.pending[key] = task
        else:
            logger.debug("Joining in-flight request %s", key)
        return await asyncio.shield(task)

    async def aclose(self) -> None:
        if self._redirect is not None:
            self._redirect.cancel()
            self._redirect = None
        if self._owns_client:
            await self._client.aclose()

    async def _run(
        self,
        key: str,
        endpoint: str,
        method: str,
        content: str,
        headers: dict[str, str] | None,
    ) -> Any:
        try:
            attempt = 0
            while True:
                await self._wait_for_backoff()
                await self._throttle_endpoint(endpoint)
                response = await self._request(endpoint, method, content, headers)

                if response.status_code == 429:
                    delay_ms = self._record_rate_limit(response, attempt)
                    if attempt < self._max_retries:
                        logger.warning(
                            "429 on %s %s, retry %d/%d in %dms",
                            method, endpoint, attempt + 1, self._max_retries, delay_ms,
                        )
                        await self._sleep(delay_ms / 1000)
                        attempt += 1
                        continue
                    data = _error_body(response, RATE_LIMIT_MESSAGE)
                    raise RateLimitError(error_message(data, RATE_LIMIT_MESSAGE), data)

                if response.is_error:
                    raise self._classify(endpoint, response)

                return self._decode(response)
        finally:
            if self.state.pending.get(key) is asyncio.current_task():
                del self.state.pending[key]

    async def _wait_for_backoff(self) -> None:
        wait = self.state.rate_limit.retry_after - self._clock.monotonic()
        if wait > 0:
            logger.debug("Rate limited, waiting %.3fs", wait)
            await self._sleep(wait)

    async def _throttle_endpoint(self, endpoint: str) -> None:
        last = self.state.last_sent.get(endpoint)
        if last is not None:
            elapsed = self._clock.monotonic() - last
            if elapsed < self._throttle:
                await self._sleep(self._throttle - elapsed)
        self.state.last_sent[endpoint] = self._clock.monotonic()

    async def _request(
        self,
        endpoint: str,
        method: str,
        content: str,
        extra_headers: dict[str, str] | None,
    ) -> httpx.Response:
        headers = {"Content-Type": "application/json", **(extra_headers or {})}
        token = self._session.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            return await self._client.request(
                method,
                f"{self._base_url}{endpoint}",
                content=content or None,
                headers=headers,
            )
        except httpx.TransportError as exc:
            logger.warning("Transport error on %s %s: %s", method, endpoint, exc)
            raise NetworkError(str(exc) or "Network error") from exc

    def _record_rate_limit(self, response: httpx.Response, attempt: int) -> int:
        retry_after = parse_retry_after(response.headers.get("Retry-After"))
        delay_ms = backoff_delay_ms(attempt, retry_after)
        now = self._clock.monotonic()
        self.state.rate_limit.retry_after = now + delay_ms / 1000
        self.state.rate_limit.last_429_at = now
        return delay_ms

    def _classify(self, endpoint: str, response: httpx.Response) -> HttpError:
        status = response.status_code
        data = _error_body(response, "Network error")
        message = error_message(data, f"HTTP {status}")
        if status == 401 and not is_auth_endpoint(endpoint):
            self._expire_session()
            return SessionExpiredError(message, data)
        return HttpError(status, message, data)

    def _expire_session(self) -> None:
        self._session.expire(SESSION_EXPIRED_MESSAGE)
        if self._redirect is not None:
            return
        loop = asyncio.get_running_loop()
        self._redirect = loop.call_later(
            settings.SESSION_EXPIRED_REDIRECT_SECONDS,
            self._do_redirect,
        )

    def _do_redirect(self) -> None:
        self._redirect = None
        self._navigator.redirect(settings.LOGIN_PATH)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError("Invalid JSON in response") from exc
