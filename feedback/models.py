from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints

COMMENT_MAX_LENGTH = 200
MIN_RATING = 1
MAX_RATING = 5


class FeedbackCreate(BaseModel):
    rating: int = Field(ge=MIN_RATING, le=MAX_RATING)
    comment: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=COMMENT_MAX_LENGTH)]] = None
