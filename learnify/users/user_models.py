import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")


class UserRole(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


def normalize_email(v):
    if not isinstance(v, str):
        return v
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Please provide a valid email")
    return v

# ==================== AUTH ====================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: str
    password: str = Field(..., min_length=6)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)


class LoginRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

# ==================== PROFILE ====================

class Profile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    father_name: Optional[str] = Field(None, alias="fatherName", max_length=100)
    mother_name: Optional[str] = Field(None, alias="motherName", max_length=100)
    education: Optional[str] = Field(None, max_length=200)
    university: Optional[str] = Field(None, max_length=200)
    degree: Optional[str] = Field(None, max_length=100)
    major: Optional[str] = Field(None, max_length=100)
    year_of_completion: Optional[str] = Field(None, alias="yearOfCompletion", max_length=4)
    contact_no: Optional[str] = Field(None, alias="contactNo", max_length=20)
    skills: List[str] = []
    areas_of_interest: List[str] = Field([], alias="areasOfInterest")
    avatar: Optional[str] = None
    resume_url: Optional[str] = Field(None, alias="resumeUrl")

    @field_validator("skills", "areas_of_interest")
    @classmethod
    def check_tags(cls, v):
        v = [item.strip() for item in v if item and item.strip()]
        if any(len(item) > 50 for item in v):
            raise ValueError("Entries cannot exceed 50 characters")
        return v


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    profile: Optional[Profile] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

# ==================== ADMIN ====================

class AdminUserUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = Field(None, alias="isActive")
    email_verified: Optional[bool] = Field(None, alias="emailVerified")
    profile: Optional[Profile] = None

# ==================== DOCUMENT SHAPES ====================

class UserDocument(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    name: str
    email: str
    password_hash: str
    role: UserRole = UserRole.STUDENT
    profile: Profile = Profile()
    is_active: bool = True
    last_login: Optional[datetime] = None
    email_verified: bool = False
    created_at: datetime
    updated_at: datetime
