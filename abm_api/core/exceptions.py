from typing import Dict, Optional
from fastapi import HTTPException, status


class UnauthenticatedException(HTTPException):
    """Exception raised for a missing, malformed, unknown or expired credential, or a bad signature."""

    def __init__(self, detail: str = "Unauthorized", headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers=headers
        )


class ForbiddenException(HTTPException):
    """Exception raised when a resource belongs to another organization."""

    def __init__(self, detail: str = "You don't have access to this resource"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class NotFoundException(HTTPException):
    """Exception raised when a referenced entity does not exist."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class ValidationException(HTTPException):
    """Exception raised for malformed input."""

    def __init__(self, detail: str = "Invalid request"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class ServerConfigurationException(HTTPException):
    """Exception raised when a required secret or backend is unavailable."""

    def __init__(self, detail: str = "Server configuration error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail
        )
