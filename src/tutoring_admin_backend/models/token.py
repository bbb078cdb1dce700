'''

'''
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from ..database.db_enums import UserRole

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenPayload(BaseModel):
    sub: UUID # 'sub' is standard JWT claim for subject (the user's id)
    role: UserRole
    exp: datetime

class CurrentUser(BaseModel):
    """
    The identity attached to a request once its bearer token is verified.
    """
    id: UUID
    role: UserRole
