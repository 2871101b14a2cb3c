from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NoteBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)
    module_index: Optional[int] = Field(None, alias="moduleIndex", ge=1)
    tags: List[str] = []
    is_public: bool = Field(False, alias="isPublic")

    @field_validator("title", "content", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list):
            return v
        return [tag.strip() for tag in v if isinstance(tag, str) and tag.strip()]

    @field_validator("tags")
    @classmethod
    def check_tag_length(cls, v):
        if any(len(tag) > 30 for tag in v):
            raise ValueError("Tag cannot exceed 30 characters")
        return v


class NoteCreate(NoteBody):
    course_id: str = Field(..., alias="courseId", min_length=1)


class NoteUpdate(NoteBody):
    pass


class NoteDocument(BaseModel):
    note_id: str
    student_id: str
    course_id: str
    title: str
    content: str
    module_index: Optional[int] = None
    summary: Optional[str] = Field(None, max_length=2000)
    tags: List[str] = []
    is_public: bool = False
    created_at: datetime
    updated_at: datetime
