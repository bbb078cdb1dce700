'''
Pydantic models for users: authentication payloads, profiles and the
admin-facing student resources.
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..database.db_enums import UserRole
from .common import ClassRef

# --- User API Read Models ---

class UserRead(BaseModel):
    """
    Base Pydantic model for reading user data.
    Corresponds to the db_models.Users ORM model. Never exposes credentials.
    """
    id: UUID
    email: str
    full_name: str
    phone: Optional[str] = None
    role: UserRole
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# --- Auth Write Models ---

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """
    Public student self-registration into a single class.
    """
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    class_id: UUID

    @field_validator('phone', mode='before')
    @classmethod
    def blank_phone_to_none(cls, value):
        if value == '':
            return None
        return value


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserRead


class ProfileUpdate(BaseModel):
    """
    All fields but the current password are optional to allow partial updates.
    """
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    current_password: str = Field(..., min_length=1)
    new_password: Optional[str] = Field(None, min_length=6)

    @field_validator('new_password', 'phone', mode='before')
    @classmethod
    def blank_to_none(cls, value):
        if value == '':
            return None
        return value


class ProfileUpdated(BaseModel):
    message: str
    user: UserRead


# --- Admin Student Models ---

class StudentCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    password: Optional[str] = Field(None, min_length=6)
    class_ids: list[UUID] = Field(..., min_length=1)


class StudentUpdate(BaseModel):
    full_name: str = Field(..., min_length=1)
    class_ids: list[UUID] = Field(..., min_length=1)


class StudentRead(UserRead):
    class_ids: list[UUID] = Field(default_factory=list)


class StudentCreated(StudentRead):
    """
    Returned once after an admin creates a student.
    generated_password is only set when the admin did not supply a password.
    """
    generated_password: Optional[str] = None


class StudentListItem(BaseModel):
    """A row of the admin student roster."""
    id: UUID
    name: str
    email: str
    classes: list[ClassRef] = Field(default_factory=list)
    unpaid_count: int


class StudentDirectoryItem(BaseModel):
    id: UUID
    email: str
    full_name: str
    phone: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PageMeta(BaseModel):
    total_items: int
    total_pages: int
    current_page: int
    items_per_page: int


class StudentDirectoryPage(BaseModel):
    data: list[StudentDirectoryItem]
    meta: PageMeta


class GroupMembershipRead(BaseModel):
    id: UUID
    student_id: UUID
    group_id: UUID

    model_config = ConfigDict(from_attributes=True)


class GroupMembershipResponse(BaseModel):
    message: str
    entry: GroupMembershipRead
