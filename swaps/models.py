from datetime import datetime
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, computed_field

from .lifecycle import SwapStatus

SKILL_MAX_LENGTH = 50
MESSAGE_MAX_LENGTH = 500

SkillName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=SKILL_MAX_LENGTH)]
SwapMessage = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MESSAGE_MAX_LENGTH)]


class SwapDirection(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class SwapCreate(BaseModel):
    to_user_id: UUID
    skill_offered: SkillName
    skill_wanted: SkillName
    message: SwapMessage


class Participant(BaseModel):
    id: UUID
    name: Optional[str] = None
    photo: Optional[str] = None
    rating: float = 0.0
    review_count: int = 0


class FeedbackEntry(BaseModel):
    rating: int
    comment: Optional[str] = None
    submitted_at: Optional[datetime] = None


class SwapFeedback(BaseModel):
    from_user: Optional[FeedbackEntry] = None
    to_user: Optional[FeedbackEntry] = None


class SwapOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    from_user_id: UUID
    to_user_id: UUID
    from_user: Optional[Participant] = None
    to_user: Optional[Participant] = None
    skill_offered: str
    skill_wanted: str
    message: str
    status: SwapStatus
    feedback: SwapFeedback = Field(default_factory=SwapFeedback)
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def is_feedback_complete(self) -> bool:
        return self.feedback.from_user is not None and self.feedback.to_user is not None
