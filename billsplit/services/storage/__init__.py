"""
Storage Services Package

Provides abstract interfaces and an in-memory implementation for data
storage. Designed to be swappable for a database-backed implementation.
"""

from billsplit.services.storage.interface import (
    AuditStorageInterface,
    ConflictError,
    DuplicateError,
    NotFoundError,
    ReceiptStorageInterface,
    SplitStorageInterface,
    StorageError,
)
from billsplit.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryReceiptStorage,
    InMemorySplitStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ReceiptStorageInterface",
    "SplitStorageInterface",
    # Exceptions
    "ConflictError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryReceiptStorage",
    "InMemorySplitStorage",
]
