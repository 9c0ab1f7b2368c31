"""Catalog query errors.

Only ValidationError, FeatureUnavailable and ItemNotFound reach the caller.
TransientReadFailure marks a failed read that degrades a single feature;
it is logged and swallowed by the service that raised it.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for errors surfaced by the catalog services."""

    code = "CATALOG_ERROR"
    status_code = 500

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(CatalogError):
    """Bad pagination or filter values. Caller-correctable."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message, detail={"field": field})
        self.field = field


class FeatureUnavailable(CatalogError):
    """Text search requested but the store lacks full-text indexes."""

    code = "FEATURE_UNAVAILABLE"
    status_code = 503

    def __init__(self, message: str, remediation: str) -> None:
        super().__init__(message, detail={"remediation": remediation})
        self.remediation = remediation


class ItemNotFound(CatalogError):
    code = "ITEM_NOT_FOUND"
    status_code = 404

    def __init__(self, item_id: int) -> None:
        super().__init__("Item not found.", detail={"item_id": item_id})
        self.item_id = item_id


class TransientReadFailure(RuntimeError):
    """A supporting read failed; the dependent feature degrades."""

    def __init__(self, source: str, cause: BaseException | None = None) -> None:
        super().__init__(f"{source} read failed: {cause}" if cause else f"{source} read failed")
        self.source = source
        self.cause = cause
