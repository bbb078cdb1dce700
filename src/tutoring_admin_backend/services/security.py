'''
Authentication guard: JWT issuing/decoding and the role-checking dependencies
every protected route goes through.
'''
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated
from uuid import UUID

from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from ..common.config import settings
from ..common.exceptions import UnauthorizedError, InvalidTokenError, ForbiddenError
from ..common.logger import log
from ..database.db_enums import UserRole
from ..models.token import TokenPayload, CurrentUser

# --- JWT Handling ---
class JWTHandler:
    @staticmethod
    def create_access_token(
        subject: UUID | str,
        role: UserRole | str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta
        to_encode = {
            "sub": str(subject),
            "role": role.value if isinstance(role, UserRole) else str(role),
            "exp": expire,
        }
        encoded_jwt = jwt.encode(
            to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
        )
        return encoded_jwt

    @staticmethod
    def decode_token(token: str) -> TokenPayload | None:
        try:
            payload = jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
            return TokenPayload(**payload)
        except (JWTError, ValueError) as e: # Catch Pydantic validation errors too
            log.warning(f"JWT decode/validation error: {e}")
            return None

# --- JWT Verification Dependency Functions ---
# auto_error=False so a missing header surfaces as our own UnauthorizedError
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)]
    ) -> CurrentUser:
    """
    Verifies the bearer token and returns the identity it carries.
    The user row is not looked up: the token alone decides who is calling.
    """
    if not token:
        log.warning("Request rejected: no bearer token supplied.")
        raise UnauthorizedError()

    token_data = JWTHandler.decode_token(token)
    if token_data is None:
        raise InvalidTokenError()

    return CurrentUser(id=token_data.sub, role=token_data.role)


class RoleChecker:
    """
    Dependency that lets a request through only for the given roles.
    """
    def __init__(self, *allowed_roles: UserRole):
        self.allowed_roles = set(allowed_roles)

    def __call__(self, current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
        if current_user.role not in self.allowed_roles:
            log.warning(f"SECURITY: User {current_user.id} (Role: {current_user.role.value}) denied; "
                        f"requires one of {sorted(role.value for role in self.allowed_roles)}.")
            raise ForbiddenError()
        return current_user


require_admin = RoleChecker(UserRole.ADMIN)
require_student = RoleChecker(UserRole.STUDENT)
