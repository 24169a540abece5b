from __future__ import annotations


class ItemsServiceError(Exception):
    """Base class for errors raised by the item store."""


class ValidationError(ItemsServiceError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class NotFound(ItemsServiceError):
    def __init__(self, item_id: str) -> None:
        super().__init__("Item not found")
        self.item_id = item_id


class StoreUnavailable(ItemsServiceError):
    """Connectivity or query failure in the backing database."""


class BootstrapFailure(ItemsServiceError):
    """Schema bootstrap failed; the process must not serve traffic."""
