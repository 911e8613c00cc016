"""Business logic for user notifications and notification preferences."""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from projectx_backend.exceptions import NotFoundException
from projectx_backend.model.notification import Notification, UserNotificationPreference
from projectx_backend.websocket.notifications import NotificationBridge, ws_notifications
from projectx_types.notifications import (
    NotificationCreate,
    NotificationPreferences,
    NotificationPreferencesUpdate,
)
from projectx_types.websocket import Notification as NotificationFrame

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50

# Notification types that can be switched off per user; anything else is always delivered
PREFERENCE_TYPES = {
    "task_assigned",
    "task_updated",
    "task_completed",
    "task_commented",
    "task_due_soon",
    "project_created",
    "user_joined",
    "file_uploaded",
}


def get_or_create_preferences(user_id: int, db: Session) -> UserNotificationPreference:
    preference = (
        db.query(UserNotificationPreference)
        .filter(UserNotificationPreference.user_id == user_id)
        .first()
    )
    if preference is not None:
        return preference

    preference = UserNotificationPreference(
        user_id=user_id,
        **NotificationPreferences().model_dump(),
        created_at=datetime.now(timezone.utc),
    )
    db.add(preference)
    db.commit()
    return preference


def should_send_notification(user_id: int, notification_type: str, db: Session) -> bool:
    """
    Check the user's preferences for a notification type.

    Users without stored preferences get the defaults created on first use.
    """
    preference = get_or_create_preferences(user_id, db)

    if not preference.in_app_notifications:
        return False

    if notification_type not in PREFERENCE_TYPES:
        return True
    return bool(getattr(preference, notification_type))


def create_notification(
    payload: NotificationCreate,
    db: Session,
    bridge: Optional[NotificationBridge] = None,
) -> Optional[Notification]:
    """
    Store a notification and push it to the user's live session.

    Returns:
        The stored notification, or None if the user's preferences suppress it
    """
    notification_type = payload.type.value
    if not should_send_notification(payload.user_id, notification_type, db):
        logger.debug(f"Notification {notification_type} suppressed for user {payload.user_id}")
        return None

    notification = Notification(
        user_id=payload.user_id,
        type=notification_type,
        title=payload.title,
        message=payload.message,
        data=payload.data,
        is_read=False,
        from_user_id=payload.from_user_id,
        created_at=datetime.now(timezone.utc),
    )
    db.add(notification)
    db.commit()

    (bridge or ws_notifications).send_to_user(payload.user_id, NotificationFrame(
        type=notification_type,
        title=notification.title,
        message=notification.message,
        data=notification.data,
        user_id=notification.user_id,
        timestamp=notification.created_at,
    ))

    logger.info(f"Notification sent to user {payload.user_id}: {payload.title}")
    return notification


def list_notifications(user_id: int, db: Session, limit: int = DEFAULT_LIST_LIMIT) -> List[Notification]:
    if limit < 1:
        limit = DEFAULT_LIST_LIMIT

    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def count_unread(user_id: int, db: Session) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def _get_own_notification(notification_id: int, user_id: int, db: Session) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        raise NotFoundException(detail=f"Notification {notification_id} not found")
    return notification


def mark_as_read(notification_id: int, user_id: int, db: Session) -> Notification:
    notification = _get_own_notification(notification_id, user_id, db)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
    return notification


def mark_all_as_read(user_id: int, db: Session) -> int:
    """Returns the number of notifications that changed."""
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update(
            {Notification.is_read: True, Notification.read_at: datetime.now(timezone.utc)},
            synchronize_session=False,
        )
    )
    db.commit()
    return updated


def delete_notification(notification_id: int, user_id: int, db: Session) -> None:
    notification = _get_own_notification(notification_id, user_id, db)
    db.delete(notification)
    db.commit()


def get_preferences(user_id: int, db: Session) -> NotificationPreferences:
    return NotificationPreferences.model_validate(get_or_create_preferences(user_id, db))


def update_preferences(user_id: int, payload: NotificationPreferencesUpdate, db: Session) -> NotificationPreferences:
    """Apply the fields present in the payload; omitted fields keep their value."""
    preference = get_or_create_preferences(user_id, db)

    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(preference, field, value)

    db.commit()
    return NotificationPreferences.model_validate(preference)
