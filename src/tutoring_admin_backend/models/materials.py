'''
Pydantic models for uploaded materials and class documents.
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MaterialRead(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    file_type: Optional[str] = None
    class_id: Optional[UUID] = None
    group_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    uploaded_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentRead(MaterialRead):
    """Admin document listing: a material with its class and subject names."""
    class_name: Optional[str] = None
    subject_name: Optional[str] = None


class StudentDocumentRead(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    created_at: datetime
    subject_id: Optional[UUID] = None
    subject_name: Optional[str] = None
    class_id: UUID
    class_name: str


class MaterialWrite(BaseModel):
    """
    Metadata sent alongside an upload as multipart form fields.
    Blank form values are treated as missing.
    """
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    class_id: Optional[UUID] = None
    group_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None

    @field_validator('description', 'class_id', 'group_id', 'subject_id', mode='before')
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and value.strip() == '':
            return None
        return value


class DocumentSaved(BaseModel):
    message: str
    document: MaterialRead


class MaterialSaved(BaseModel):
    message: str
    material: MaterialRead
