import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

YOUTUBE_URL_PATTERN = re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+")

# ==================== ENUMS ====================

class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class CourseSort(str, Enum):
    TITLE = "title"
    NEWEST = "newest"
    OLDEST = "oldest"

# ==================== REQUEST MODELS ====================

def _strip(v):
    if isinstance(v, str):
        return v.strip()
    return v


def _check_youtube_url(v: Optional[str]) -> Optional[str]:
    if v and not YOUTUBE_URL_PATTERN.match(v):
        raise ValueError("Please enter a valid YouTube URL")
    return v


class CourseCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=20, max_length=2000)
    instructor: str = Field(..., min_length=2, max_length=100)
    difficulty: Difficulty
    duration: str = Field(..., min_length=1, max_length=50)
    category: str = Field(..., min_length=2, max_length=100)
    syllabus: List[str] = Field(..., min_length=1)
    youtube_url: str = Field("", alias="youtubeUrl")
    price: float = Field(0, ge=0)
    image: Optional[str] = None

    @field_validator(
        "title", "description", "instructor", "duration", "category", "youtube_url",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("youtube_url")
    @classmethod
    def validate_youtube_url(cls, v):
        return _check_youtube_url(v)


class CourseUpdate(BaseModel):
    """Partial update; only provided fields are written"""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=20, max_length=2000)
    instructor: Optional[str] = Field(None, min_length=2, max_length=100)
    difficulty: Optional[Difficulty] = None
    duration: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[str] = Field(None, min_length=2, max_length=100)
    syllabus: Optional[List[str]] = Field(None, min_length=1)
    youtube_url: Optional[str] = Field(None, alias="youtubeUrl")
    price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    is_active: Optional[bool] = Field(None, alias="isActive")

    @field_validator(
        "title", "description", "instructor", "duration", "category", "youtube_url",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("youtube_url")
    @classmethod
    def validate_youtube_url(cls, v):
        return _check_youtube_url(v)

# ==================== DOCUMENT SHAPES ====================

class CourseDocument(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    course_id: str
    title: str
    description: str
    instructor: str
    difficulty: Difficulty
    duration: str
    category: str
    syllabus: List[str]
    youtube_url: str = ""
    price: float = 0
    image: Optional[str] = None
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
