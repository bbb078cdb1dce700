'''
Small response models shared by several routers.
'''
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class MessageResponse(BaseModel):
    message: str


class ClassRef(BaseModel):
    """A class reduced to what other resources embed."""
    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class PersonRef(BaseModel):
    id: UUID
    full_name: str

    model_config = ConfigDict(from_attributes=True)
