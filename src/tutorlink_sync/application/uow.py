from __future__ import annotations

from typing import AsyncContextManager, Callable, Protocol

from tutorlink_sync.application.repositories.notification import NotificationRepository


class UnitOfWork(Protocol):
    notifications: NotificationRepository

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UnitOfWorkFactory = Callable[[], AsyncContextManager[UnitOfWork]]
