"""
Custom exceptions for inbound request errors
"""

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Validation error exception"""

    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=422, detail=detail)


class UnauthorizedError(HTTPException):
    """Unauthorized error exception"""

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
