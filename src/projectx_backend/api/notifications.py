from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from projectx_backend.business_logic.notifications import (
    count_unread,
    delete_notification,
    get_preferences,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
    update_preferences,
)
from projectx_backend.database import get_db
from projectx_backend.permissions.auth import get_current_principal
from projectx_backend.permissions.principal import Principal
from projectx_types.notifications import (
    NotificationGet,
    NotificationList,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    UnreadCount,
)

notifications_router = APIRouter(prefix="/api/notifications")


@notifications_router.get("", response_model=NotificationList)
async def get_notifications(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    notifications = list_notifications(permissions.user_id, db, limit=limit)
    return NotificationList(
        notifications=[NotificationGet.model_validate(n) for n in notifications],
        count=len(notifications),
    )


@notifications_router.get("/unread-count", response_model=UnreadCount)
async def get_unread_count(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    return UnreadCount(unread_count=count_unread(permissions.user_id, db))


@notifications_router.get("/preferences", response_model=NotificationPreferences)
async def get_notification_preferences(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    return get_preferences(permissions.user_id, db)


@notifications_router.put("/preferences", response_model=NotificationPreferences)
async def put_notification_preferences(
    payload: NotificationPreferencesUpdate,
    permissions: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    return update_preferences(permissions.user_id, payload, db)


@notifications_router.put("/read-all")
async def read_all_notifications(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    updated = mark_all_as_read(permissions.user_id, db)
    return {"message": "All notifications marked as read", "updated": updated}


@notifications_router.put("/{notification_id}/read", response_model=NotificationGet)
async def read_notification(
    notification_id: int,
    permissions: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    return NotificationGet.model_validate(mark_as_read(notification_id, permissions.user_id, db))


@notifications_router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_notification(
    notification_id: int,
    permissions: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    delete_notification(notification_id, permissions.user_id, db)
