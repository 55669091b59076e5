"""Translation of domain exceptions into HTTP errors."""

from fastapi import HTTPException, status

from core.exceptions import (
    AuthenticationError,
    ConflictError,
    EmployDexError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)

_STATUS_CODES = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
]


def http_error(exc: EmployDexError) -> HTTPException:
    """Build the HTTPException matching a domain exception.

    Args:
        exc: Exception raised by a manager.

    Returns:
        HTTPException with the mapped status code and the exception message.
    """
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            if isinstance(exc, ValidationError) and exc.errors:
                return HTTPException(
                    status_code=status_code,
                    detail={"message": str(exc), "errors": exc.errors},
                )
            headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
            return HTTPException(status_code=status_code, detail=str(exc), headers=headers)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
