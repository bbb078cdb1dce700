'''
Login, self-registration and profile maintenance.
'''
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .security import JWTHandler
from .student_service import enroll_student
from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models import user as user_models
from ..common.exceptions import UnauthorizedError, ValidationError, NotFoundError, ConflictError
from ..common.security_utils import HashedPassword
from ..common.logger import log


class AuthService:
    """
    Service for handling authentication and a user's own account.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def _get_user_by_email(self, email: str) -> db_models.Users | None:
        result = await self.db.execute(
            select(db_models.Users).filter(db_models.Users.email == email)
        )
        return result.scalars().first()

    async def get_user(self, user_id: UUID) -> user_models.UserRead:
        user = await self.db.get(db_models.Users, user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user_models.UserRead.model_validate(user)

    def _auth_response(self, message: str, user: db_models.Users) -> user_models.AuthResponse:
        token = JWTHandler.create_access_token(subject=user.id, role=user.role)
        return user_models.AuthResponse(
            message=message,
            token=token,
            user=user_models.UserRead.model_validate(user),
        )

    async def login(self, credentials: user_models.LoginRequest) -> user_models.AuthResponse:
        log.info(f"Attempting login for user: {credentials.email}")
        user = await self._get_user_by_email(credentials.email)

        if not user or not HashedPassword.verify(credentials.password, user.password_hash):
            log.warning(f"Login failed for user: {credentials.email} - Incorrect email or password")
            raise UnauthorizedError("Incorrect email or password.")

        log.info(f"Login successful for user: {credentials.email}")
        return self._auth_response("Logged in successfully.", user)

    async def register(self, registration: user_models.RegisterRequest) -> user_models.AuthResponse:
        """
        Public sign-up: creates a student enrolled in one class, with the
        baseline enrollment payment, and logs them in.
        """
        log.info(f"Registering new student {registration.email} into class {registration.class_id}.")
        try:
            class_ = await self.db.get(db_models.Classes, registration.class_id)
            if class_ is None:
                raise NotFoundError("Class not found.")
            if await self._get_user_by_email(registration.email) is not None:
                raise ConflictError("This email is already in use.")

            user = db_models.Users(
                email=registration.email,
                password_hash=HashedPassword.get_hash(registration.password),
                full_name=registration.full_name,
                phone=registration.phone,
                role=UserRole.STUDENT.value,
            )
            self.db.add(user)
            await self.db.flush()
            await enroll_student(self.db, user.id, [class_])

            log.info(f"Registered student {user.id}.")
            return self._auth_response("Student registered successfully.", user)
        except HTTPException as http_exc:
            raise http_exc
        except IntegrityError as e:
            log.warning(f"Integrity error registering {registration.email}: {e.orig}")
            raise ConflictError("This email is already in use.")
        except Exception as e:
            log.error(f"Error registering {registration.email}: {e}", exc_info=True)
            raise

    async def update_profile(self, user_id: UUID, update_data: user_models.ProfileUpdate) -> user_models.ProfileUpdated:
        """
        Updates the caller's own profile. The current password must be supplied.
        """
        log.info(f"Updating profile for user {user_id}.")
        user = await self.db.get(db_models.Users, user_id)
        if user is None:
            raise NotFoundError("User not found.")
        if not HashedPassword.verify(update_data.current_password, user.password_hash):
            log.warning(f"Profile update for user {user_id} rejected: wrong current password.")
            raise ValidationError("Current password is incorrect.")

        if update_data.email is not None and update_data.email != user.email:
            taken = await self.db.scalar(
                select(db_models.Users.id).filter(
                    db_models.Users.email == update_data.email,
                    db_models.Users.id != user_id,
                )
            )
            if taken is not None:
                raise ConflictError("This email is already in use by another account.")
            user.email = update_data.email

        if update_data.full_name is not None:
            user.full_name = update_data.full_name
        if 'phone' in update_data.model_fields_set:
            user.phone = update_data.phone
        if update_data.new_password:
            user.password_hash = HashedPassword.get_hash(update_data.new_password)

        await self.db.flush()
        return user_models.ProfileUpdated(
            message="Profile updated successfully.",
            user=user_models.UserRead.model_validate(user),
        )
