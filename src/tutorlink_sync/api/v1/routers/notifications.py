from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Response, status

from tutorlink_sync.api.deps import CurrentPrincipal, DispatcherDep, UoWDep
from tutorlink_sync.api.v1.schemas.notification import (
    CreateNotificationRequest,
    CreateNotificationResponse,
    NotificationResponse,
)
from tutorlink_sync.services import notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(50, ge=1, le=200),
) -> list[NotificationResponse]:
    notifications = await notification_service.list_notifications(principal, limit, uow)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.put("/read-all", status_code=204)
async def mark_all_read(principal: CurrentPrincipal, uow: UoWDep) -> Response:
    await notification_service.mark_all_read(principal, uow)
    return Response(status_code=204)


@router.put("/{notification_id}/read", status_code=204)
async def mark_read(notification_id: str, principal: CurrentPrincipal, uow: UoWDep) -> Response:
    await notification_service.mark_read(notification_id, principal, uow)
    return Response(status_code=204)


@router.post("", response_model=CreateNotificationResponse, status_code=201)
async def create_notifications(
    body: CreateNotificationRequest,
    principal: CurrentPrincipal,
    dispatcher: DispatcherDep,
) -> CreateNotificationResponse:
    if principal.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    ids = await dispatcher.create_for_users(body.user_ids, body.type, body.payload)
    return CreateNotificationResponse(ids=ids)
