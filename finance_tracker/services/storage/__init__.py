"""
Storage Services Package

Provides the abstract blob store interface and its implementations:
in-memory, local JSON files and Google Sheets.
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BlobStoreInterface,
    BlobTooLargeError,
    ConnectionError,
    StorageError,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBlobStore,
)
from finance_tracker.services.storage.file import JsonFileBlobStore
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBlobStore,
    GoogleSheetsClient,
)
from finance_tracker.services.storage.factory import (
    create_audit_storage,
    create_blob_store,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BlobStoreInterface",
    # Exceptions
    "BlobTooLargeError",
    "ConnectionError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryBlobStore",
    "JsonFileBlobStore",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBlobStore",
    "GoogleSheetsClient",
    # Factories
    "create_audit_storage",
    "create_blob_store",
]
