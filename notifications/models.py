from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class NotificationType(str, Enum):
    SWAP_REQUEST = "swap_request"
    SWAP_ACCEPTED = "swap_accepted"
    SWAP_REJECTED = "swap_rejected"
    SWAP_COMPLETED = "swap_completed"
    ADMIN_MESSAGE = "admin_message"
    FEEDBACK_RECEIVED = "feedback_received"


# Default title and body per notification type
TEMPLATES = {
    NotificationType.SWAP_REQUEST: ("New Swap Request", "You have received a new skill swap request"),
    NotificationType.SWAP_ACCEPTED: ("Swap Request Accepted", "Your swap request has been accepted"),
    NotificationType.SWAP_REJECTED: ("Swap Request Rejected", "Your swap request has been rejected"),
    NotificationType.SWAP_COMPLETED: ("Swap Completed", "Your skill swap has been completed"),
    NotificationType.ADMIN_MESSAGE: ("Admin Message", "You have received a message from the admin"),
    NotificationType.FEEDBACK_RECEIVED: ("Feedback Received", "You have received feedback for a completed swap"),
}


class SwapRequestRef(BaseModel):
    kind: Literal["swap_request"] = "swap_request"
    id: UUID


class UserRef(BaseModel):
    kind: Literal["user"] = "user"
    id: UUID


class AdminMessageRef(BaseModel):
    kind: Literal["admin_message"] = "admin_message"
    id: UUID


RelatedRef = Annotated[
    Union[SwapRequestRef, UserRef, AdminMessageRef],
    Field(discriminator="kind")
]


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    is_read: bool = False
    related: Optional[RelatedRef] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class PushEvent(BaseModel):
    """Frame sent to a connected client."""
    type: str
    data: Any = None
    timestamp: datetime
