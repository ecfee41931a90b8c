from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, StringConstraints, field_validator

from users.matching import normalize_skills
from users.models import PASSWORD_MIN_LENGTH, Availability, DisplayName, Location, SkillName

Email = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, max_length=254, pattern=r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
]
Password = Annotated[str, StringConstraints(min_length=PASSWORD_MIN_LENGTH, max_length=128)]


class RegisterRequest(BaseModel):
    email: Email
    password: Password
    name: DisplayName
    location: Optional[Location] = None
    skills_offered: List[SkillName] = Field(default_factory=list)
    skills_wanted: List[SkillName] = Field(default_factory=list)
    availability: Availability = Availability.FLEXIBLE
    is_public: bool = True

    @field_validator('skills_offered', 'skills_wanted')
    @classmethod
    def dedupe_skills(cls, value):
        return normalize_skills(value)


class LoginRequest(BaseModel):
    email: Email
    password: Annotated[str, StringConstraints(min_length=1)]


class PasswordChange(BaseModel):
    current_password: Annotated[str, StringConstraints(min_length=1)]
    new_password: Password
