"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,

    # Collaborators
    CollaboratorUnavailableError,
    DUPLICATE_CHECK_UNAVAILABLE_MESSAGE,

    # Catalog
    CatalogEntryNotFoundError,
    InvalidProductNameError,

    # Match resolution
    InconsistentOverrideError,
    InvalidMatchTransitionError,

    # Inventory
    InvalidQuantityError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",

    # Collaborators
    "CollaboratorUnavailableError",
    "DUPLICATE_CHECK_UNAVAILABLE_MESSAGE",

    # Catalog
    "CatalogEntryNotFoundError",
    "InvalidProductNameError",

    # Match resolution
    "InconsistentOverrideError",
    "InvalidMatchTransitionError",

    # Inventory
    "InvalidQuantityError",
]
