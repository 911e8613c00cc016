from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationType(str, Enum):
    TASK_ASSIGNED = "task_assigned"
    TASK_UPDATED = "task_updated"
    TASK_COMPLETED = "task_completed"
    TASK_COMMENTED = "task_commented"
    TASK_DUE_SOON = "task_due_soon"
    PROJECT_CREATED = "project_created"
    USER_JOINED = "user_joined"
    FILE_UPLOADED = "file_uploaded"
    HR_PROBLEM = "hr_problem"
    HR_PROBLEM_UPDATE = "hr_problem_update"
    HR_PROBLEM_ASSIGNED = "hr_problem_assigned"


class NotificationCreate(BaseModel):
    user_id: int
    type: NotificationType
    title: str = Field(..., max_length=500)
    message: str
    data: Optional[dict[str, Any]] = None
    from_user_id: Optional[int] = None


class NotificationGet(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    data: Optional[dict[str, Any]] = None
    is_read: bool = False
    read_at: Optional[datetime] = None
    from_user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationList(BaseModel):
    notifications: list[NotificationGet]
    count: int


class UnreadCount(BaseModel):
    unread_count: int


class NotificationPreferences(BaseModel):
    task_assigned: bool = True
    task_updated: bool = True
    task_completed: bool = True
    task_commented: bool = True
    task_due_soon: bool = True
    project_created: bool = True
    user_joined: bool = True
    file_uploaded: bool = True
    email_notifications: bool = False
    push_notifications: bool = True
    in_app_notifications: bool = True

    model_config = ConfigDict(from_attributes=True)


class NotificationPreferencesUpdate(BaseModel):
    task_assigned: Optional[bool] = None
    task_updated: Optional[bool] = None
    task_completed: Optional[bool] = None
    task_commented: Optional[bool] = None
    task_due_soon: Optional[bool] = None
    project_created: Optional[bool] = None
    user_joined: Optional[bool] = None
    file_uploaded: Optional[bool] = None
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    in_app_notifications: Optional[bool] = None
