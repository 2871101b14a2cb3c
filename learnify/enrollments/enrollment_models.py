from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== ENUMS ====================

class EnrollmentStatus(str, Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in-progress"

# ==================== REQUEST MODELS ====================

class EnrollmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # optional here so a missing id gets the same 400 message as an empty one
    course_id: Optional[str] = Field(None, alias="courseId")


class ProgressUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    progress: Optional[int] = None
    completed_module_index: Optional[int] = Field(None, alias="completedModuleIndex", ge=0)

# ==================== DOCUMENT SHAPES ====================

class CompletedModule(BaseModel):
    module_index: int
    completed_at: datetime


class EnrollmentDocument(BaseModel):
    """Shape of a stored enrollment (documentation and seeding)"""
    enrollment_id: str
    student_id: str
    course_id: str
    progress: int = Field(0, ge=0, le=100)
    completed_modules: List[CompletedModule] = []
    start_date: datetime
    completion_date: Optional[datetime] = None
    certificate_issued: bool = False
    certificate_url: Optional[str] = None
    last_accessed_at: datetime
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
