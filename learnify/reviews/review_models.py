from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ==================== ENUMS ====================

class ReviewSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    HIGHEST_RATING = "highest-rating"
    LOWEST_RATING = "lowest-rating"
    MOST_HELPFUL = "most-helpful"


class ModerationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

# ==================== REQUEST MODELS ====================

class ReviewBody(BaseModel):
    """Rating and comment rules shared by create and update"""
    model_config = ConfigDict(populate_by_name=True)

    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=10, max_length=1000)

    @field_validator("comment", mode="before")
    @classmethod
    def strip_comment(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ReviewCreate(ReviewBody):
    course_id: str = Field(..., alias="courseId", min_length=1)


class ReviewUpdate(ReviewBody):
    pass


class ReportRequest(BaseModel):
    reason: Optional[str] = None


class ModerationRequest(BaseModel):
    # validated by the service so a bad action gets its own message
    action: Optional[str] = None

# ==================== DOCUMENT SHAPES ====================

class ReviewReport(BaseModel):
    user_id: str
    reason: str
    reported_at: datetime


class ReviewDocument(BaseModel):
    review_id: str
    student_id: str
    course_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str
    is_approved: bool = True
    helpful_votes: int = Field(0, ge=0)
    helpful_voters: List[str] = []
    reported_by: List[ReviewReport] = []
    last_reported_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
