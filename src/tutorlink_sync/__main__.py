"""Entrypoint: python -m tutorlink_sync"""
from __future__ import annotations

import logging

import uvicorn

from tutorlink_sync.api.middleware.correlation_id import CorrelationIdFilter


def _configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s",
        handlers=[handler],
    )


def main() -> None:
    _configure_logging()
    uvicorn.run(
        "tutorlink_sync.app:create_asgi_app",
        factory=True,
        host="0.0.0.0",
        port=5000,
        log_level="info",
    )


if __name__ == "__main__":
    main()
