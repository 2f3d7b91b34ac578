"""
Reconcilers Package

Pure functions that turn (old state, action) into a new state. They never
touch storage and never mutate their inputs.
"""

from finance_tracker.reconcilers.errors import (
    AssetShapeError,
    CategoryNotFoundError,
    NotFoundError,
    ReconcileError,
)
from finance_tracker.reconcilers.budgets import (
    copy_budget,
    create_or_update_budget,
    delete_budget,
    set_active_budget,
)
from finance_tracker.reconcilers.expenses import (
    ImportReport,
    ImportResult,
    delete_expense,
    delete_expenses,
    delete_expenses_in_view,
    import_expenses,
    recategorize,
    update_expense,
)
from finance_tracker.reconcilers.assets import (
    add_or_update_holding,
    apply_quote_refresh,
    count_quoted_holdings,
    create_or_update_asset,
    create_or_update_liability,
    delete_asset,
    delete_holding,
    delete_liability,
)
from finance_tracker.reconcilers.net_worth import derive_net_worth, update_history

__all__ = [
    # Errors
    "AssetShapeError",
    "CategoryNotFoundError",
    "NotFoundError",
    "ReconcileError",
    # Budgets
    "copy_budget",
    "create_or_update_budget",
    "delete_budget",
    "set_active_budget",
    # Expenses
    "ImportReport",
    "ImportResult",
    "delete_expense",
    "delete_expenses",
    "delete_expenses_in_view",
    "import_expenses",
    "recategorize",
    "update_expense",
    # Assets, holdings, liabilities
    "add_or_update_holding",
    "apply_quote_refresh",
    "count_quoted_holdings",
    "create_or_update_asset",
    "create_or_update_liability",
    "delete_asset",
    "delete_holding",
    "delete_liability",
    # Net worth
    "derive_net_worth",
    "update_history",
]
