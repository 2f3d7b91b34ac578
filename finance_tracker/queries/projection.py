"""
Aggregation and View Projection

DESIGN DECISION: Projections are DETERMINISTIC, read-only and recomputed
on every query. Inputs are small (one budget, a handful of assets), so
there is no cache and nothing to invalidate.

Budgeted amounts are stored ANNUAL. A monthly view divides them by 12 at
projection time; the divided value never flows back into the state.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.models.finance import (
    AccountAsset,
    Asset,
    Budget,
    Expense,
    Liability,
    ScalarAsset,
)


ANNUAL_VIEW = 0


# =============================================================================
# RESULT MODELS
# =============================================================================

class CategorySummary(BaseModel):
    """One row of the budget overview."""

    model_config = ConfigDict(frozen=True)

    category_id: str
    name: str
    budgeted: float = Field(..., description="Budgeted amount for the viewed period")
    spent: float
    remaining: float
    percent_used: float = Field(..., description="spent / budgeted * 100, 0 when nothing is budgeted")
    over_budget: bool


class BudgetSummary(BaseModel):
    """Everything the budget overview displays for one view month."""

    model_config = ConfigDict(frozen=True)

    budget_id: str
    view_month: int
    categories: list[CategorySummary]
    total_budgeted: float
    total_spent: float
    remaining: float
    uncategorized_spent: float = Field(
        default=0.0,
        description="Spend on category ids the budget does not know"
    )


class AllocationSlice(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    value: float


class NetWorthSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_assets: float
    total_liabilities: float
    net_worth: float


# =============================================================================
# BUDGET VIEWS
# =============================================================================

def _check_view_month(view_month: int) -> None:
    if not 0 <= view_month <= 12:
        raise ValueError(f"view_month must be 0 (annual) or 1-12, got {view_month}")


def expense_in_view(expense: Expense, view_month: int) -> bool:
    """Annual view (0) shows everything; month m shows expenses whose UTC month is m."""
    if view_month == ANNUAL_VIEW:
        return True
    return expense.occurred_at.month == view_month


def budget_divisor(view_month: int) -> int:
    return 1 if view_month == ANNUAL_VIEW else 12


def summarize_budget(budget: Budget, view_month: int = ANNUAL_VIEW) -> BudgetSummary:
    """
    Per-category budgeted/spent/remaining and overall totals for a view.

    total_spent is the sum over the budget's categories; spend on unknown
    category ids is reported as uncategorized_spent instead.
    """
    _check_view_month(view_month)
    divisor = budget_divisor(view_month)

    spent_by_category: dict[str, float] = {}
    for expense in budget.expenses:
        if expense_in_view(expense, view_month):
            spent_by_category[expense.category_id] = (
                spent_by_category.get(expense.category_id, 0.0) + expense.amount
            )

    rows = []
    for category in budget.categories:
        budgeted = category.budgeted / divisor
        spent = spent_by_category.pop(category.id, 0.0)
        rows.append(CategorySummary(
            category_id=category.id,
            name=category.name,
            budgeted=budgeted,
            spent=spent,
            remaining=budgeted - spent,
            percent_used=(spent / budgeted * 100) if budgeted > 0 else 0.0,
            over_budget=spent > budgeted,
        ))

    total_budgeted = sum(r.budgeted for r in rows)
    total_spent = sum(r.spent for r in rows)

    return BudgetSummary(
        budget_id=budget.id,
        view_month=view_month,
        categories=rows,
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        remaining=total_budgeted - total_spent,
        uncategorized_spent=sum(spent_by_category.values()),
    )


def category_expenses(
    budget: Budget,
    category_id: str,
    view_month: int = ANNUAL_VIEW,
) -> list[Expense]:
    """Expenses of one category in the view, newest first."""
    _check_view_month(view_month)
    matching = [
        e for e in budget.expenses
        if e.category_id == category_id and expense_in_view(e, view_month)
    ]
    return sorted(matching, key=lambda e: e.occurred_at, reverse=True)


# =============================================================================
# ASSET VIEWS
# =============================================================================

def asset_value(asset: Asset) -> float:
    """Scalar value, or the market value of all holdings."""
    if isinstance(asset, ScalarAsset):
        return asset.value
    if isinstance(asset, AccountAsset):
        return sum(h.value for h in asset.holdings)
    raise TypeError(f"Unsupported asset type: {type(asset).__name__}")


def portfolio_allocation(assets: list[Asset]) -> list[AllocationSlice]:
    """
    Value per ticker (account assets) or per asset name (scalar assets).

    Buckets keep first-seen order; zero-value buckets are left out.
    """
    buckets: dict[str, float] = {}
    for asset in assets:
        if isinstance(asset, AccountAsset):
            for holding in asset.holdings:
                key = holding.ticker
                buckets[key] = buckets.get(key, 0.0) + holding.value
        elif asset.value:
            buckets[asset.name] = buckets.get(asset.name, 0.0) + asset.value

    return [
        AllocationSlice(label=label, value=value)
        for label, value in buckets.items()
        if value > 0
    ]


def net_worth_summary(
    assets: list[Asset],
    liabilities: list[Liability],
) -> NetWorthSummary:
    total_assets = sum(asset_value(a) for a in assets)
    total_liabilities = sum(l.amount for l in liabilities)
    return NetWorthSummary(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
    )


def find_summary_row(summary: BudgetSummary, category_id: str) -> Optional[CategorySummary]:
    for row in summary.categories:
        if row.category_id == category_id:
            return row
    return None
