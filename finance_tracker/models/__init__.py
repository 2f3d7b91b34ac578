"""
Data Models Package

This package contains all Pydantic models used by the finance tracker.
All data held in the application state must conform to these schemas.
"""

from finance_tracker.models.finance import (
    ACCOUNT_ASSET_TYPES,
    ASSET_TYPES,
    SCALAR_ASSET_TYPES,
    AccountAsset,
    AppState,
    Asset,
    AssetInput,
    Budget,
    BudgetInput,
    Category,
    CategoryInput,
    Expense,
    Holding,
    HoldingInput,
    IncomingExpense,
    Liability,
    LiabilityInput,
    NetWorthSnapshot,
    ScalarAsset,
    UserSettings,
    ValidationIssue,
    is_account_type,
    new_id,
    parse_iso_datetime,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "ACCOUNT_ASSET_TYPES",
    "ASSET_TYPES",
    "SCALAR_ASSET_TYPES",
    "AccountAsset",
    "AppState",
    "Asset",
    "AssetInput",
    "Budget",
    "BudgetInput",
    "Category",
    "CategoryInput",
    "Expense",
    "Holding",
    "HoldingInput",
    "IncomingExpense",
    "Liability",
    "LiabilityInput",
    "NetWorthSnapshot",
    "ScalarAsset",
    "UserSettings",
    "ValidationIssue",
    "is_account_type",
    "new_id",
    "parse_iso_datetime",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
