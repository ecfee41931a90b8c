from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, computed_field

TITLE_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 1000

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=TITLE_MAX_LENGTH)]
Body = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MESSAGE_MAX_LENGTH)]


class AdminMessageType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ANNOUNCEMENT = "announcement"
    MAINTENANCE = "maintenance"


class AdminMessageCreate(BaseModel):
    title: Title
    message: Body
    type: AdminMessageType = AdminMessageType.INFO
    is_global: bool = False
    target_users: List[UUID] = Field(default_factory=list)
    expires_at: Optional[datetime] = None


class AdminMessageUpdate(BaseModel):
    title: Optional[Title] = None
    message: Optional[Body] = None
    type: Optional[AdminMessageType] = None
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if expires_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= now


class AdminMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    message: str
    type: AdminMessageType
    is_active: bool
    is_global: bool
    target_users: List[UUID] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def is_expired(self) -> bool:
        return is_expired(self.expires_at)

    @computed_field
    @property
    def is_visible(self) -> bool:
        return self.is_active and not self.is_expired
