"""
This file contains custom, application-specific exceptions.

Each one is an HTTPException so services can raise them directly and
FastAPI renders them as `{"detail": <message>}` with the matching status.
"""
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError


class ValidationError(HTTPException):
    """Raised when input is malformed or a required field is missing."""
    def __init__(self, detail: str = "Invalid request data."):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(HTTPException):
    """Raised when no credential was supplied."""
    def __init__(self, detail: str = "Access denied: no token provided."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidTokenError(HTTPException):
    """Raised when a credential has a bad signature, is expired or malformed."""
    def __init__(self, detail: str = "Invalid token."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(HTTPException):
    """Raised when a user's role does not permit them to perform an action."""
    def __init__(self, detail: str = "You do not have permission to perform this action."):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    """Raised when a referenced entity does not exist."""
    def __init__(self, detail: str = "Resource not found."):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """Raised on uniqueness violations (duplicate email, duplicate membership...)."""
    def __init__(self, detail: str = "Resource already exists."):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ServerError(HTTPException):
    """Raised for unexpected failures. Never carries internal detail."""
    def __init__(self, detail: str = "An internal server error occurred."):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def is_unique_violation(error: IntegrityError) -> bool:
    """True when a database IntegrityError came from a unique constraint (PostgreSQL 23505 or SQLite)."""
    if getattr(error.orig, "sqlstate", None) == "23505" or getattr(error.orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(error.orig).lower()
