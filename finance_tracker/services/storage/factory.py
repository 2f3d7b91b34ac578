"""Build the configured blob store and audit sink."""

from typing import Optional

from finance_tracker.config import get_settings
from finance_tracker.config.settings import AppSettings
from finance_tracker.services.storage.file import JsonFileBlobStore
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBlobStore,
    GoogleSheetsClient,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BlobStoreInterface,
)
from finance_tracker.services.storage.memory import InMemoryBlobStore


def create_blob_store(settings: Optional[AppSettings] = None) -> BlobStoreInterface:
    """Return the blob store selected by APP storage_backend."""
    settings = settings or get_settings().app
    if settings.storage_backend == "memory":
        return InMemoryBlobStore()
    if settings.storage_backend == "sheets":
        return GoogleSheetsBlobStore(GoogleSheetsClient())
    return JsonFileBlobStore(settings.data_dir)


def create_audit_storage(
    settings: Optional[AppSettings] = None,
) -> Optional[AuditStorageInterface]:
    """
    Audit sink for the configured backend.

    Only the sheets backend persists audit events; elsewhere the structured
    log is the audit trail.
    """
    settings = settings or get_settings().app
    if settings.storage_backend == "sheets":
        return GoogleSheetsAuditStorage(GoogleSheetsClient())
    return None
