from __future__ import annotations

from typing import Any, Optional


class CatalogImportError(Exception):
    """Base class for every failure surfaced by the import engine."""


class ImportPayloadError(CatalogImportError):
    """The document is not valid JSON or does not match the expected shape."""

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class RestaurantNotFoundError(CatalogImportError):
    def __init__(self, restaurant_id: str) -> None:
        super().__init__(f"Restaurant not found: {restaurant_id}")
        self.restaurant_id = restaurant_id


class ImportInProgressError(CatalogImportError):
    """Another import holds the import lock."""


class ImportCancelledError(CatalogImportError):
    pass


class CatalogStoreError(CatalogImportError):
    """A catalog store primitive failed; the import stops at the failing node."""

    def __init__(self, action: str, entity_type: str, cause: Exception) -> None:
        super().__init__(f"Catalog store failed to {action} {entity_type}: {cause}")
        self.action = action
        self.entity_type = entity_type
        self.__cause__ = cause
