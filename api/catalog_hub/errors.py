# catalog_hub/errors.py
"""
Exceptions raised by the catalog services.

Routers translate them to HTTP responses in main.py:
ValidationError -> 400, NotFoundError -> 404, PersistenceError -> 500.
"""
from __future__ import annotations
from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base exception for Catalog Hub errors."""

    status_code = 500

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.message = message or "An error occurred in Catalog Hub"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to a response body."""
        error_dict: Dict[str, Any] = {
            "success": False,
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            error_dict["code"] = self.code
        if self.details:
            error_dict["details"] = self.details
        return error_dict


class ValidationError(CatalogError):
    """Client fault: missing/invalid input or a broken business rule."""

    status_code = 400

    def __init__(self, message=None, code=None, details=None):
        super().__init__(message or "Validation error", code, details)


class ReferenceNotFoundError(ValidationError):
    """A referenced reference-data row (UOM, category, attribute...) does not exist."""

    def __init__(self, entity: str, ref_id: Any):
        super().__init__(
            f"{entity} {ref_id} does not exist",
            code="REFERENCE_NOT_FOUND",
            details={"entity": entity, "id": str(ref_id)},
        )


class NotFoundError(CatalogError):
    """Requested product, variant or wastage record is not there (or is deleted)."""

    status_code = 404

    def __init__(self, message=None, code=None, details=None):
        super().__init__(message or "Resource not found", code, details)


class PersistenceError(CatalogError):
    """The store rejected a transaction; it has been rolled back in full."""

    status_code = 500

    def __init__(self, message=None, code=None, details=None):
        super().__init__(message or "Database error", code, details)
