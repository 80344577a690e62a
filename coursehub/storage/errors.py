"""Store failure types shared by all document store adapters."""
from __future__ import annotations


class StoreError(Exception):
    """Raised when the backing store fails an operation."""

    code = "store_error"
    status_code = 500

    def __init__(self, operation: str, detail: str = ""):
        super().__init__(f"{operation}: {detail}" if detail else operation)
        self.operation = operation
        self.detail = detail


class StoreUnavailable(StoreError):
    """Raised when the store cannot be reached or the operation timed out."""

    code = "store_unavailable"
    status_code = 503


__all__ = ["StoreError", "StoreUnavailable"]
