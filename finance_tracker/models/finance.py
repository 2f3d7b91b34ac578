"""
Core Data Models for the Finance Tracker

These models define the schemas for everything held in the application
state and written to the blob store. They are designed to:
1. Be immutable snapshots (every model is frozen)
2. Serialize with the camelCase field names of the persisted blob
3. Model the two asset shapes as an explicit discriminated union
4. Provide clear validation error messages on import

DESIGN DECISION: Reconcilers never mutate a model in place. They build a
new instance with model_copy(update=...) so that an old snapshot handed to
a subscriber can never change underneath it.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union, get_args
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# HELPERS
# =============================================================================

def new_id(prefix: str) -> str:
    """
    Generate a unique entity id such as ``exp-3f2a...``.

    Random UUIDs are used instead of creation timestamps so that a bulk
    insert of many records in the same millisecond never collides.
    """
    return f"{prefix}-{uuid4().hex}"


def parse_iso_datetime(value: str) -> datetime:
    """
    Parse an ISO-8601 date or datetime string into an aware UTC datetime.

    Accepts ``2024-01-05``, ``2024-01-05T10:00:00`` and the ``Z`` suffix
    produced by JavaScript's ``toISOString()``. Naive values are read as UTC.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class FinanceModel(BaseModel):
    """Base for all persisted models: frozen, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )


# =============================================================================
# ASSET TYPES
# =============================================================================

ScalarAssetType = Literal["Cash & Savings", "Real Estate", "Vehicle", "Other"]
AccountAssetType = Literal["Brokerage", "Retirement", "HSA"]

SCALAR_ASSET_TYPES: tuple[str, ...] = get_args(ScalarAssetType)
ACCOUNT_ASSET_TYPES: tuple[str, ...] = get_args(AccountAssetType)
ASSET_TYPES: tuple[str, ...] = ACCOUNT_ASSET_TYPES + SCALAR_ASSET_TYPES


def is_account_type(asset_type: str) -> bool:
    """True if assets of this type are valued by their holdings."""
    return asset_type in ACCOUNT_ASSET_TYPES


# =============================================================================
# BUDGETS
# =============================================================================

class Category(FinanceModel):
    """
    A spending category inside one budget.

    ``budgeted`` is always the ANNUAL amount. Monthly views divide it by 12
    at display time; the divided value is never persisted.
    """

    id: str = Field(default_factory=lambda: new_id("cat"))
    name: str = Field(..., min_length=1, max_length=200)
    budgeted: float = Field(default=0.0, description="Annual budgeted amount")


class Expense(FinanceModel):
    """A single expense, owned by exactly one budget."""

    id: str = Field(default_factory=lambda: new_id("exp"))
    name: str = Field(..., max_length=500)
    amount: float
    date: str = Field(..., description="ISO-8601 date or datetime")
    category_id: str = Field(..., min_length=1)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        """Reject dates that cannot be parsed as ISO-8601."""
        try:
            parse_iso_datetime(v)
        except ValueError:
            raise ValueError(f"Expense date is not ISO-8601: {v!r}")
        return v

    @property
    def occurred_at(self) -> datetime:
        """The expense date as an aware UTC datetime."""
        return parse_iso_datetime(self.date)


class Budget(FinanceModel):
    """
    An annual budget with its categories and expenses.

    Which budget is active is tracked by AppState.active_budget_id,
    not by a flag on the budget itself.
    """

    id: str = Field(default_factory=lambda: new_id("budget"))
    name: str = Field(..., min_length=1, max_length=200)
    year: int = Field(..., ge=1000, le=9999)
    categories: list[Category] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)

    def find_category(self, category_id: str) -> Optional[Category]:
        """Return the category with this id, if any."""
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def find_category_by_name(self, name: str) -> Optional[Category]:
        """Case-insensitive category lookup by name."""
        wanted = name.strip().lower()
        for category in self.categories:
            if category.name.lower() == wanted:
                return category
        return None

    def has_category(self, category_id: str) -> bool:
        return self.find_category(category_id) is not None


# =============================================================================
# ASSETS AND LIABILITIES
# =============================================================================

class Holding(FinanceModel):
    """A position in a brokerage-style account."""

    id: str = Field(default_factory=lambda: new_id("hold"))
    ticker: str = Field(..., min_length=1, max_length=20)
    name: str = Field(default="", max_length=200)
    shares: float = Field(..., gt=0)
    purchase_price: float = Field(..., ge=0)
    current_price: float = Field(..., ge=0)

    @property
    def value(self) -> float:
        """Market value: shares * current price."""
        return self.shares * self.current_price

    @property
    def gain_loss(self) -> float:
        """Unrealized gain (positive) or loss (negative)."""
        return (self.current_price - self.purchase_price) * self.shares


class ScalarAsset(FinanceModel):
    """An asset valued by a single number (cash, real estate, vehicle...)."""

    id: str = Field(default_factory=lambda: new_id("asset"))
    name: str = Field(..., min_length=1, max_length=200)
    type: ScalarAssetType
    value: float = Field(default=0.0, ge=0)


class AccountAsset(FinanceModel):
    """An asset valued as the sum of its holdings (brokerage, retirement, HSA)."""

    id: str = Field(default_factory=lambda: new_id("asset"))
    name: str = Field(..., min_length=1, max_length=200)
    type: AccountAssetType
    holdings: list[Holding] = Field(default_factory=list)

    def find_holding(self, holding_id: str) -> Optional[Holding]:
        for holding in self.holdings:
            if holding.id == holding_id:
                return holding
        return None


Asset = Annotated[Union[ScalarAsset, AccountAsset], Field(discriminator="type")]


class Liability(FinanceModel):
    """A debt. Flat list, no categorization."""

    id: str = Field(default_factory=lambda: new_id("lia"))
    name: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., ge=0)


class NetWorthSnapshot(FinanceModel):
    """One dated net-worth data point. At most one per calendar date."""

    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    net_worth: float


# =============================================================================
# ROOT STATE
# =============================================================================

class UserSettings(FinanceModel):
    """User preferences, persisted under their own blob key."""

    currency_symbol: str = Field(default="$", max_length=5)
    alpha_vantage_api_key: Optional[str] = Field(
        default=None,
        description="Overrides the ALPHAVANTAGE_API_KEY environment setting"
    )


class AppState(FinanceModel):
    """
    The whole application state, persisted as one blob.

    Every mutation produces a new AppState; the store swaps its reference
    and writes the entire blob back.
    """

    budgets: list[Budget] = Field(default_factory=list)
    active_budget_id: Optional[str] = None
    assets: list[Asset] = Field(default_factory=list)
    liabilities: list[Liability] = Field(default_factory=list)
    net_worth_history: list[NetWorthSnapshot] = Field(default_factory=list)

    @property
    def active_budget(self) -> Optional[Budget]:
        if self.active_budget_id is None:
            return None
        return self.find_budget(self.active_budget_id)

    def find_budget(self, budget_id: str) -> Optional[Budget]:
        for budget in self.budgets:
            if budget.id == budget_id:
                return budget
        return None

    def replace_budget(self, updated: Budget) -> "AppState":
        """Return a new state with the budget of the same id swapped out."""
        return self.model_copy(update={
            "budgets": [updated if b.id == updated.id else b for b in self.budgets],
        })


# =============================================================================
# INPUT MODELS (what the user or an importer hands to a reconciler)
# =============================================================================

class InputModel(BaseModel):
    """
    Lenient base for user input.

    Inputs are checked by finance_tracker.validation so that problems come
    back as ValidationIssues rather than raw pydantic errors.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )


class CategoryInput(InputModel):
    id: Optional[str] = None
    name: str = ""
    budgeted: Optional[float] = None


class BudgetInput(InputModel):
    """Fields of the budget editor form."""

    name: str = ""
    year: int
    categories: list[CategoryInput] = Field(default_factory=list)


class IncomingExpense(InputModel):
    """
    An expense on its way into a budget.

    Either pre-resolved (``category_id`` set) or named (``category_name``
    set, resolved or created by the importer).
    """

    name: str = ""
    amount: float
    date: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None

    @property
    def occurred_at(self) -> datetime:
        return parse_iso_datetime(self.date)


class AssetInput(InputModel):
    name: str = ""
    type: str
    value: Optional[float] = None


class HoldingInput(InputModel):
    ticker: str = ""
    name: str = ""
    shares: float
    purchase_price: float
    current_price: float


class LiabilityInput(InputModel):
    name: str = ""
    amount: float


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in user input."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )
