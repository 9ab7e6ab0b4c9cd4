"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict so
routes can render it with to_dict().
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.
    
    All custom exceptions inherit from this.
    
    Attributes:
        code: Error code (e.g., "CATALOG_ENTRY_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """
    
    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)
    
    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""
    
    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""
    
    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""
    
    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""
    
    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


# ===================
# COLLABORATOR ERRORS
# ===================

DUPLICATE_CHECK_UNAVAILABLE_MESSAGE = "could not check for duplicates; try again"


class CollaboratorUnavailableError(ExternalServiceError):
    """Catalog search or persistence call failed (network or database)."""

    def __init__(
        self,
        collaborator: str,
        message: str,
        operation: Optional[str] = None
    ):
        super().__init__(
            service=collaborator,
            message=message,
            details={"operation": operation} if operation else None
        )
        self.code = "COLLABORATOR_UNAVAILABLE"
        self.collaborator = collaborator
        self.operation = operation


# ===================
# CATALOG ERRORS
# ===================

class CatalogEntryNotFoundError(NotFoundError):
    """Catalog entry not found."""
    
    def __init__(self, entry_id: str):
        super().__init__(
            resource="Catalog entry",
            identifier=entry_id,
            code="CATALOG_ENTRY_NOT_FOUND"
        )


class InvalidProductNameError(ValidationError):
    """Product name is empty or has no comparable keywords."""

    def __init__(self, name: Optional[str]):
        super().__init__(
            code="PRODUCT_NAME_REQUIRED",
            message="Product name cannot be empty",
            details={"provided": name}
        )


# ===================
# MATCH RESOLUTION ERRORS
# ===================

class InconsistentOverrideError(ConflictError):
    """Override names a catalog entry that was not offered as a candidate."""

    def __init__(self, catalog_entry_id: str, offered_ids: list[str]):
        super().__init__(
            code="INCONSISTENT_OVERRIDE",
            message="Selected product was not among the offered candidates",
            details={
                "catalog_entry_id": catalog_entry_id,
                "offered_ids": offered_ids
            }
        )


class InvalidMatchTransitionError(ValidationError):
    """Match resolution step called in the wrong state."""

    def __init__(self, current_state: str, action: str):
        super().__init__(
            code="INVALID_MATCH_TRANSITION",
            message=f"Cannot {action} a match in state {current_state}",
            details={
                "current_state": current_state,
                "action": action,
                "reason": "Matches move PENDING -> PROPOSED -> RESOLVED, and RESOLVED is terminal"
            }
        )


# ===================
# INVENTORY ERRORS
# ===================

class InvalidQuantityError(ValidationError):
    """Quantity attached to inventory must be positive."""

    def __init__(self, quantity: float):
        super().__init__(
            code="INVENTORY_INVALID_QUANTITY",
            message="Quantity must be greater than zero",
            details={"provided": quantity}
        )
