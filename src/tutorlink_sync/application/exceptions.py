from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class NetworkError(AppError):
    """Transport failure, or a response body that is not JSON."""


class HttpError(AppError):
    """4xx/5xx response with a parsed error message."""

    def __init__(self, status: int, detail: str, body: dict[str, Any] | None = None) -> None:
        super().__init__(detail)
        self.status = status
        self.body = body or {}


class RateLimitError(HttpError):
    def __init__(self, detail: str, body: dict[str, Any] | None = None) -> None:
        super().__init__(429, detail, body)


class SessionExpiredError(HttpError):
    def __init__(self, detail: str, body: dict[str, Any] | None = None) -> None:
        super().__init__(401, detail, body)
