"""Custom exception classes for the EmployDEX base API.

Managers raise these; route handlers translate them into HTTP responses.
"""

from typing import Any, Dict, List, Optional


class EmployDexError(Exception):
    """Base exception for all EmployDEX errors."""

    pass


class NotFoundError(EmployDexError):
    """Raised when a requested record cannot be found."""

    def __init__(self, entity: str, entity_id: Any = None):
        """Initialize the exception.

        Args:
            entity: Human readable entity name, e.g. "User".
            entity_id: Identifier that was looked up.
        """
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class ConflictError(EmployDexError):
    """Raised when a write would violate a uniqueness or linkage constraint."""

    pass


class ForbiddenError(EmployDexError):
    """Raised when an operation is not allowed for the caller."""

    pass


class AuthenticationError(EmployDexError):
    """Raised when credentials or tokens are invalid."""

    pass


class ValidationError(EmployDexError):
    """Raised when data validation fails."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        self.errors = errors or []
        super().__init__(message)
