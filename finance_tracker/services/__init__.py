"""Services package."""

from finance_tracker.services.market_data import (
    AlphaVantageQuoteService,
    QuoteServiceError,
    RateLimitedError,
    TickerNotFoundError,
    TickerQuote,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    BlobStoreInterface,
    BlobTooLargeError,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBlobStore,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBlobStore,
    JsonFileBlobStore,
    StorageError,
    create_audit_storage,
    create_blob_store,
)

__all__ = [
    # Market data
    "AlphaVantageQuoteService",
    "QuoteServiceError",
    "RateLimitedError",
    "TickerNotFoundError",
    "TickerQuote",
    # Storage services
    "AuditStorageInterface",
    "BlobStoreInterface",
    "BlobTooLargeError",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBlobStore",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryBlobStore",
    "JsonFileBlobStore",
    "StorageError",
    "create_audit_storage",
    "create_blob_store",
]
