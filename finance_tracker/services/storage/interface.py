"""
Abstract Storage Interface

DESIGN DECISION: The application state is persisted as whole serialized
blobs in a flat key-value store. This allows us to:
1. Swap the local JSON files for Google Sheets (or anything else) freely
2. Use in-memory storage for testing
3. Keep the store decoupled from where the bytes end up

The interface is intentionally tiny - get, set, remove. There is no
partial update: every save rewrites the blob for its key.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent


class BlobStoreInterface(ABC):
    """
    Abstract interface for the key-value blob store.

    Any storage implementation (local files, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the blob stored under a key.

        Args:
            key: Blob key (e.g. 'finance-tracker-data')

        Returns:
            The stored text, or None if nothing is stored under the key

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a blob, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """
        Remove a key. Removing a missing key is not an error.

        Raises:
            StorageError: If the backend cannot be written
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one CSV import flow).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class BlobTooLargeError(StorageError):
    """The serialized blob exceeds what the backend can hold."""
    pass
