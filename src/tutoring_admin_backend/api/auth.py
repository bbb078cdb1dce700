'''
API endpoints for authentication, self-registration and the caller's own profile.
'''
from typing import Annotated, List
from fastapi import APIRouter, Depends, status

from ..models import user as user_models
from ..models import classes as class_models
from ..models.token import CurrentUser
from ..services.auth_service import AuthService
from ..services.class_service import ClassService
from ..services.security import get_current_user


class AuthAPI:
    """
    A class to encapsulate all authentication endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/auth",
            tags=["Authentication"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
            "/register",
            self.register,
            methods=["POST"],
            response_model=user_models.AuthResponse,
            status_code=status.HTTP_201_CREATED,
            summary="Student Self-Registration"
        )
        self.router.add_api_route(
            "/login",
            self.login,
            methods=["POST"],
            response_model=user_models.AuthResponse,
            summary="Login for Access Token"
        )
        self.router.add_api_route(
            "/me",
            self.get_me,
            methods=["GET"],
            response_model=user_models.UserRead
        )
        self.router.add_api_route(
            "/classes",
            self.list_public_classes,
            methods=["GET"],
            response_model=List[class_models.PublicClassRead],
            summary="Classes Open for Registration"
        )
        self.router.add_api_route(
            "/profile",
            self.update_profile,
            methods=["PUT"],
            response_model=user_models.ProfileUpdated
        )

    async def register(
        self,
        registration: user_models.RegisterRequest,
        auth_service: Annotated[AuthService, Depends(AuthService)]
    ):
        """
        Creates a student account enrolled in the chosen class and returns a token.
        """
        return await auth_service.register(registration)

    async def login(
        self,
        credentials: user_models.LoginRequest,
        auth_service: Annotated[AuthService, Depends(AuthService)]
    ):
        """
        Authenticates a user by email and password and returns an access token.
        """
        return await auth_service.login(credentials)

    async def get_me(
        self,
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
        auth_service: Annotated[AuthService, Depends(AuthService)]
    ):
        return await auth_service.get_user(current_user.id)

    async def list_public_classes(
        self,
        class_service: Annotated[ClassService, Depends(ClassService)]
    ):
        return await class_service.list_public_classes()

    async def update_profile(
        self,
        update_data: user_models.ProfileUpdate,
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
        auth_service: Annotated[AuthService, Depends(AuthService)]
    ):
        """
        Updates the caller's name, email, phone or password.
        The current password is always required.
        """
        return await auth_service.update_profile(current_user.id, update_data)


# Create an instance of the class and export its router
auth_api = AuthAPI()
router = auth_api.router
