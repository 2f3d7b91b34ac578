"""
Expense Importer and Mutation Ops

DESIGN DECISION: An import is never all-or-nothing. Records for the wrong
year, records whose category cannot be resolved, and records with an
unreadable date or an over-long name are left out. The caller gets an
ImportReport saying how many and why. Only the valid subset reaches the budget.

Every function is pure: it takes a Budget and returns a new one.
"""

from collections import Counter
from typing import Iterable, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from finance_tracker.models.finance import (
    Budget,
    Category,
    Expense,
    IncomingExpense,
)
from finance_tracker.reconcilers.errors import CategoryNotFoundError


logger = structlog.get_logger(__name__)


# =============================================================================
# IMPORT
# =============================================================================

class ImportReport(BaseModel):
    """What happened to each incoming record. Warnings are data, not errors."""

    model_config = ConfigDict(frozen=True)

    added: int = 0
    skipped_by_year: dict[int, int] = Field(
        default_factory=dict,
        description="Records rejected because their year differs from the budget's: {year: count}"
    )
    dropped_unresolved: int = Field(
        default=0,
        description="Records with no usable category id or name"
    )
    dropped_invalid: int = Field(
        default=0,
        description="Records with an unreadable date or a field the budget cannot hold"
    )
    created_categories: list[str] = Field(default_factory=list)

    @property
    def skipped_years(self) -> list[int]:
        return sorted(self.skipped_by_year)

    @property
    def skipped_count(self) -> int:
        return sum(self.skipped_by_year.values())

    @property
    def has_warnings(self) -> bool:
        return bool(self.skipped_count or self.dropped_unresolved or self.dropped_invalid)

    def warning_message(self, budget_year: Optional[int] = None) -> Optional[str]:
        """The message shown to the user after an import, or None if all went in."""
        if not self.has_warnings:
            return None

        parts = []
        if self.skipped_count:
            years = ", ".join(str(y) for y in self.skipped_years)
            target = f"the budget year ({budget_year})" if budget_year else "the budget year"
            parts.append(
                f"{self.skipped_count} expense(s) were skipped because their year "
                f"({years}) does not match {target}."
            )
        if self.dropped_unresolved:
            parts.append(
                f"{self.dropped_unresolved} expense(s) were dropped because "
                f"they have no category."
            )
        if self.dropped_invalid:
            parts.append(
                f"{self.dropped_invalid} expense(s) were dropped because "
                f"their date or name could not be stored."
            )
        return " ".join(parts)


class ImportResult(BaseModel):
    """The updated budget plus the report of what was (not) imported."""

    model_config = ConfigDict(frozen=True)

    budget: Budget
    report: ImportReport


def import_expenses(budget: Budget, records: Iterable[IncomingExpense]) -> ImportResult:
    """
    Add a batch of expenses to a budget.

    Steps:
    1. Reject records whose calendar year (UTC) differs from budget.year
    2. Resolve categories: by id (must exist) or case-insensitively by name;
       an unknown name creates one category with budgeted=0, shared by every
       record in the batch that uses the same name
    3. Give every resolved record a fresh expense id; a record the budget
       cannot hold (e.g. an over-long name) is dropped on its own
    """
    skipped_by_year: Counter = Counter()
    dropped_unresolved = 0
    dropped_invalid = 0

    accepted: list[IncomingExpense] = []
    for record in records:
        try:
            year = record.occurred_at.year
        except ValueError:
            dropped_invalid += 1
            continue
        if year != budget.year:
            skipped_by_year[year] += 1
            continue
        accepted.append(record)

    categories = list(budget.categories)
    by_name = {c.name.lower(): c for c in categories}
    known_ids = {c.id for c in categories}
    created: list[str] = []
    new_expenses: list[Expense] = []

    for record in accepted:
        category_id = None
        new_category = None
        if record.category_id:
            if record.category_id in known_ids:
                category_id = record.category_id
        elif record.category_name and record.category_name.strip():
            name = record.category_name.strip()
            category = by_name.get(name.lower())
            if category is None:
                try:
                    category = new_category = Category(name=name, budgeted=0.0)
                except ValidationError as e:
                    logger.warning("import_record_invalid", field="category_name", error=str(e))
                    dropped_invalid += 1
                    continue
            category_id = category.id

        if category_id is None:
            dropped_unresolved += 1
            continue

        try:
            expense = Expense(
                name=record.name,
                amount=record.amount,
                date=record.date,
                category_id=category_id,
            )
        except ValidationError as e:
            logger.warning("import_record_invalid", name=record.name[:50], error=str(e))
            dropped_invalid += 1
            continue

        # A new category is only kept once a record actually lands in it
        if new_category is not None:
            categories.append(new_category)
            by_name[new_category.name.lower()] = new_category
            known_ids.add(new_category.id)
            created.append(new_category.name)
        new_expenses.append(expense)

    updated = budget.model_copy(update={
        "categories": categories,
        "expenses": [*budget.expenses, *new_expenses],
    })
    report = ImportReport(
        added=len(new_expenses),
        skipped_by_year=dict(skipped_by_year),
        dropped_unresolved=dropped_unresolved,
        dropped_invalid=dropped_invalid,
        created_categories=created,
    )
    return ImportResult(budget=updated, report=report)


# =============================================================================
# MUTATIONS
# =============================================================================

def _require_category(budget: Budget, category_id: str) -> None:
    if not budget.has_category(category_id):
        raise CategoryNotFoundError(budget.id, category_id)


def update_expense(budget: Budget, expense: Expense) -> Budget:
    """
    Replace the expense with the same id. No-op if the id is absent.

    Raises:
        CategoryNotFoundError: The edited expense points at an unknown category
    """
    if not any(e.id == expense.id for e in budget.expenses):
        return budget
    _require_category(budget, expense.category_id)
    return budget.model_copy(update={
        "expenses": [expense if e.id == expense.id else e for e in budget.expenses],
    })


def delete_expense(budget: Budget, expense_id: str) -> Budget:
    return delete_expenses(budget, {expense_id})


def delete_expenses(budget: Budget, expense_ids: Iterable[str]) -> Budget:
    ids = set(expense_ids)
    return budget.model_copy(update={
        "expenses": [e for e in budget.expenses if e.id not in ids],
    })


def recategorize(
    budget: Budget,
    expense_ids: Iterable[str],
    new_category_id: str,
) -> Budget:
    """
    Move the selected expenses to another category.

    Raises:
        CategoryNotFoundError: new_category_id is not a category of this budget
    """
    _require_category(budget, new_category_id)
    ids = set(expense_ids)
    return budget.model_copy(update={
        "expenses": [
            e.model_copy(update={"category_id": new_category_id}) if e.id in ids else e
            for e in budget.expenses
        ],
    })


def delete_expenses_in_view(budget: Budget, view_month: int) -> Budget:
    """
    Delete what the current view shows.

    view_month 0 (annual) clears every expense. 1-12 removes expenses whose
    UTC month matches, whatever their year, which is exactly the set the
    monthly view displays.
    """
    if not 0 <= view_month <= 12:
        raise ValueError(f"view_month must be 0-12, got {view_month}")
    if view_month == 0:
        return budget.model_copy(update={"expenses": []})
    return budget.model_copy(update={
        "expenses": [e for e in budget.expenses if e.occurred_at.month != view_month],
    })
