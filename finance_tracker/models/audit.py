"""
Audit Models for the Finance Tracker

Every state mutation and every call to an external service is described by
an AuditEvent. This provides:
1. Traceability of what changed the state and when
2. Debugging information when an import or refresh goes wrong
3. A single place that knows how events are rendered to logs

DESIGN DECISION: Audit events are append-only. They describe mutations;
they are never used to undo them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every reconciler entry point in the store has its own event type.
    """
    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"
    ACTIVE_BUDGET_CHANGED = "active_budget_changed"

    # Expenses
    EXPENSES_IMPORTED = "expenses_imported"
    EXPENSES_SKIPPED = "expenses_skipped"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSES_DELETED = "expenses_deleted"
    EXPENSES_RECATEGORIZED = "expenses_recategorized"

    # Assets and liabilities
    ASSET_SAVED = "asset_saved"
    ASSET_DELETED = "asset_deleted"
    HOLDING_SAVED = "holding_saved"
    HOLDING_DELETED = "holding_deleted"
    LIABILITY_SAVED = "liability_saved"
    LIABILITY_DELETED = "liability_deleted"
    QUOTES_REFRESHED = "quotes_refreshed"
    NET_WORTH_RECORDED = "net_worth_recorded"

    # Whole-state operations
    STATE_LOADED = "state_loaded"
    STATE_MIGRATED = "state_migrated"
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    DATA_IMPORT_REJECTED = "data_import_rejected"
    SETTINGS_UPDATED = "settings_updated"
    SAVE_FAILED = "save_failed"

    # AI services
    CSV_PARSED = "csv_parsed"
    ADVICE_GENERATED = "advice_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every state mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'budget', 'asset', 'holding')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a CSV parse and its import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.budget_saved(budget_id, name, created=True)
        event = AuditEventBuilder.expenses_imported(budget_id, added=3, ...)
    """

    @staticmethod
    def budget_saved(budget_id: str, name: str, created: bool) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.BUDGET_CREATED if created
                else AuditEventType.BUDGET_UPDATED
            ),
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget {'created' if created else 'updated'}: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def budget_deleted(budget_id: str, new_active_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DELETED,
            entity_type="budget",
            entity_id=budget_id,
            description="Budget deleted",
            details={"new_active_budget_id": new_active_id},
            is_user_action=True,
        )

    @staticmethod
    def expenses_imported(
        budget_id: str,
        added: int,
        created_categories: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_IMPORTED,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"{added} expense(s) added",
            details={
                "added": added,
                "created_categories": created_categories,
            },
            is_user_action=True,
        )

    @staticmethod
    def expenses_skipped(
        budget_id: str,
        skipped_by_year: dict[int, int],
        dropped_unresolved: int,
        dropped_invalid: int = 0,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        skipped = sum(skipped_by_year.values())
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=(
                f"{skipped} expense(s) skipped for year mismatch, "
                f"{dropped_unresolved} without a category, "
                f"{dropped_invalid} invalid"
            ),
            details={
                "skipped_by_year": {str(y): n for y, n in skipped_by_year.items()},
                "dropped_unresolved": dropped_unresolved,
                "dropped_invalid": dropped_invalid,
            },
        )

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        """Generic user-initiated change to one entity."""
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def quotes_refreshed(
        requested: int,
        received: int,
        holdings_updated: int,
    ) -> AuditEvent:
        severity = AuditSeverity.INFO if received == requested else AuditSeverity.WARNING
        return AuditEvent(
            event_type=AuditEventType.QUOTES_REFRESHED,
            severity=severity,
            entity_type="holding",
            description=f"Quotes refreshed: {received}/{requested} tickers, {holdings_updated} holding(s) updated",
            details={
                "requested": requested,
                "received": received,
                "holdings_updated": holdings_updated,
            },
            is_user_action=True,
        )

    @staticmethod
    def net_worth_recorded(day: str, net_worth: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NET_WORTH_RECORDED,
            severity=AuditSeverity.DEBUG,
            entity_type="net_worth",
            entity_id=day,
            description=f"Net worth snapshot for {day}: {net_worth:,.2f}",
            details={"date": day, "net_worth": net_worth},
        )

    @staticmethod
    def state_migrated(source: str, budgets: int, assets: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_MIGRATED,
            severity=AuditSeverity.WARNING,
            description=f"Migrated legacy data from {source}",
            details={"source": source, "budgets": budgets, "assets": assets},
        )

    @staticmethod
    def data_import_rejected(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            description="Data import rejected",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def save_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Failed to persist '{key}'; in-memory state kept",
            error_message=error_message,
            details={"key": key},
        )

    @staticmethod
    def csv_parsed(rows: int, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_PARSED,
            entity_type="csv",
            correlation_id=correlation_id,
            description=f"CSV parsed into {rows} expense(s)",
            details={"rows": rows},
            is_user_action=True,
        )

    @staticmethod
    def advice_generated(page: str, query_length: int, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_GENERATED,
            entity_type="advice",
            correlation_id=correlation_id,
            description=f"Advice generated for page '{page}'",
            details={"page": page, "query_length": query_length},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
