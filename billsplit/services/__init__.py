"""Services package."""

from billsplit.services.storage import (
    AuditStorageInterface,
    ConflictError,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryReceiptStorage,
    InMemorySplitStorage,
    NotFoundError,
    ReceiptStorageInterface,
    SplitStorageInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConflictError",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryReceiptStorage",
    "InMemorySplitStorage",
    "NotFoundError",
    "ReceiptStorageInterface",
    "SplitStorageInterface",
    "StorageError",
]
