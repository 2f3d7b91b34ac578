"""View projection package."""

from finance_tracker.queries.projection import (
    ANNUAL_VIEW,
    AllocationSlice,
    BudgetSummary,
    CategorySummary,
    NetWorthSummary,
    asset_value,
    budget_divisor,
    category_expenses,
    expense_in_view,
    find_summary_row,
    net_worth_summary,
    portfolio_allocation,
    summarize_budget,
)

__all__ = [
    "ANNUAL_VIEW",
    "AllocationSlice",
    "BudgetSummary",
    "CategorySummary",
    "NetWorthSummary",
    "asset_value",
    "budget_divisor",
    "category_expenses",
    "expense_in_view",
    "find_summary_row",
    "net_worth_summary",
    "portfolio_allocation",
    "summarize_budget",
]
