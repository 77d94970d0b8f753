"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tutorlink_sync.application.dto.principal import Principal
from tutorlink_sync.application.ports.auth import TokenVerifier
from tutorlink_sync.application.uow import UnitOfWork
from tutorlink_sync.config import settings
from tutorlink_sync.infrastructure.auth.hs256_verifier import HS256Verifier
from tutorlink_sync.infrastructure.db.uow import sqlalchemy_uow
from tutorlink_sync.services.notification_service import NotificationDispatcher

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[UnitOfWork]:
    async with sqlalchemy_uow() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except jwt.InvalidTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


DispatcherDep = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
