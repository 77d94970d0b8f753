from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Navigator(Protocol):
    def redirect(self, path: str) -> None: ...


class LoggingNavigator:
    """Headless navigator: records the redirect in the log."""

    def redirect(self, path: str) -> None:
        logger.info("Redirecting to %s", path)
