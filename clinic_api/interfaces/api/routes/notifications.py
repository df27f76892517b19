"""Endpoints and websocket handler for realtime notifications."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, WebSocket, status

from clinic_api.application.use_cases.notifications import (
    NotificationNotFoundError,
    NotificationService,
)
from clinic_api.domain.entities import (
    Notification,
    NotificationPreference,
    NotificationType,
    PreferenceCategory,
    Principal,
)
from clinic_api.interfaces.api.dependencies import (
    get_current_principal,
    get_notification_service,
)
from clinic_api.interfaces.api.schemas import (
    MarkAllReadResponse,
    NotificationListRead,
    NotificationPreferenceRead,
    NotificationPreferenceUpdate,
    NotificationRead,
    PaginationMeta,
    UnreadCountRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(notification)


def _preference_to_schema(preference: NotificationPreference) -> NotificationPreferenceRead:
    return NotificationPreferenceRead.model_validate(preference)


def _not_found(exc: NotificationNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get("", response_model=NotificationListRead)
def list_notifications(
    is_read: bool | None = Query(default=None, alias="isRead"),
    notification_type: NotificationType | None = Query(default=None, alias="type"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListRead:
    """Return one page of the caller's notifications, newest first."""

    result = service.find_all(
        principal,
        is_read=is_read,
        notification_type=notification_type,
        page=page,
        limit=limit,
    )
    return NotificationListRead(
        data=[_notification_to_schema(item) for item in result.items],
        meta=PaginationMeta(
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
    )


@router.get("/unread-count", response_model=UnreadCountRead)
def read_unread_count(
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountRead:
    return UnreadCountRead(unread_count=service.get_unread_count(principal))


@router.get("/preferences", response_model=NotificationPreferenceRead)
def read_preferences(
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPreferenceRead:
    """Return the caller's preferences, creating the defaults on first access."""

    return _preference_to_schema(service.get_preferences(principal))


@router.patch("/preferences", response_model=NotificationPreferenceRead)
def update_preferences(
    payload: NotificationPreferenceUpdate,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPreferenceRead:
    changes = {
        PreferenceCategory(name): enabled
        for name, enabled in payload.model_dump(exclude_none=True).items()
    }
    return _preference_to_schema(service.update_preferences(principal, changes))


@router.post("/mark-all-read", response_model=MarkAllReadResponse)
def mark_all_notifications_read(
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(count=service.mark_all_as_read(principal))


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: str,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    try:
        notification = service.mark_as_read(principal, notification_id)
    except NotificationNotFoundError as exc:
        raise _not_found(exc) from exc
    return _notification_to_schema(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: str,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    """Delete a notification owned by the caller."""

    try:
        service.delete(principal, notification_id)
    except NotificationNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notification events to the authenticated user."""

    await websocket.app.state.notification_gateway.serve(websocket)


__all__ = ["router"]
