from typing import Any, Optional


class CatalogError(Exception):
    """Base class for errors raised by the catalog core."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(CatalogError):
    """Missing required field, out-of-enum value or malformed number."""


class NotFoundError(CatalogError):
    """Lookup by id, slug or photo id missed."""


class ConflictError(CatalogError):
    """Slug uniqueness violation."""


class StorageIOError(CatalogError):
    """A photo file could not be written or removed."""
