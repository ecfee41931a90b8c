from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, computed_field, field_validator

from .matching import normalize_skills

NAME_MAX_LENGTH = 50
LOCATION_MAX_LENGTH = 100
SKILL_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6

SkillName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=SKILL_MAX_LENGTH)]
DisplayName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=NAME_MAX_LENGTH)]
Location = Annotated[str, StringConstraints(strip_whitespace=True, max_length=LOCATION_MAX_LENGTH)]


class Availability(str, Enum):
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    EVENINGS = "evenings"
    FLEXIBLE = "flexible"


class SkillKind(str, Enum):
    OFFERED = "offered"
    WANTED = "wanted"

    @property
    def column(self) -> str:
        return f"skills_{self.value}"


class UserStatus(str, Enum):
    ACTIVE = "active"
    BANNED = "banned"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserOut(BaseModel):
    """Profile as shown to other members."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    location: Optional[str] = None
    photo: Optional[str] = None
    skills_offered: List[str] = Field(default_factory=list)
    skills_wanted: List[str] = Field(default_factory=list)
    availability: Availability = Availability.FLEXIBLE
    is_public: bool = True
    is_admin: bool = False
    rating: float = 0.0
    review_count: int = 0
    joined_at: datetime

    @computed_field
    @property
    def rating_display(self) -> float:
        return round(self.rating, 1)


class AccountOut(UserOut):
    """Profile as shown to its owner and to admins."""
    email: str
    is_banned: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MatchOut(UserOut):
    they_offer: List[str] = Field(default_factory=list)
    they_want: List[str] = Field(default_factory=list)


class ProfileUpdate(BaseModel):
    name: Optional[DisplayName] = None
    location: Optional[Location] = None
    skills_offered: Optional[List[SkillName]] = None
    skills_wanted: Optional[List[SkillName]] = None
    availability: Optional[Availability] = None
    is_public: Optional[bool] = None

    @field_validator('skills_offered', 'skills_wanted')
    @classmethod
    def dedupe_skills(cls, value):
        return normalize_skills(value) if value is not None else value


class SkillUpdate(BaseModel):
    kind: SkillKind
    name: SkillName


class RoleUpdate(BaseModel):
    is_admin: bool
