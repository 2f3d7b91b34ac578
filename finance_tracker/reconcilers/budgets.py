"""
Budget Reconciler

Pure functions: old state + budget action -> new state.

DESIGN DECISION: The active budget is a pointer on AppState, so every
function here takes and returns the whole AppState even when only one
budget changes.
"""

from datetime import date
from typing import Optional

from finance_tracker.models.finance import (
    AppState,
    Budget,
    BudgetInput,
    Category,
    CategoryInput,
    new_id,
)
from finance_tracker.reconcilers.errors import NotFoundError
from finance_tracker.validation import InputValidator, raise_for_errors


def _build_categories(
    inputs: list[CategoryInput],
    existing: Optional[Budget] = None,
) -> list[Category]:
    """
    Turn editor rows into categories.

    Rows without a name are dropped. Rows that carry the id of a category
    of the edited budget keep that id; everything else gets a fresh one.
    Empty budgeted amounts become 0.
    """
    known_ids = {c.id for c in existing.categories} if existing else set()
    categories = []
    for row in inputs:
        if not row.name:
            continue
        category_id = row.id if row.id in known_ids else new_id("cat")
        categories.append(Category(
            id=category_id,
            name=row.name,
            budgeted=row.budgeted or 0.0,
        ))
    return categories


def create_or_update_budget(
    state: AppState,
    budget_input: BudgetInput,
    editing_id: Optional[str] = None,
    validator: Optional[InputValidator] = None,
) -> AppState:
    """
    Create a budget, or merge the editor form into an existing one.

    Either way the saved budget becomes the active one.

    Raises:
        ValidationFailedError: Bad form input (state unchanged)
        NotFoundError: editing_id does not exist
    """
    validator = validator or InputValidator()

    existing = None
    if editing_id is not None:
        existing = state.find_budget(editing_id)
        if existing is None:
            raise NotFoundError("budget", editing_id)

    raise_for_errors(validator.validate_budget(budget_input, existing=existing))

    categories = _build_categories(budget_input.categories, existing)

    if existing is not None:
        updated = existing.model_copy(update={
            "name": budget_input.name,
            "year": budget_input.year,
            "categories": categories,
        })
        return state.replace_budget(updated).model_copy(
            update={"active_budget_id": updated.id}
        )

    created = Budget(
        name=budget_input.name,
        year=budget_input.year,
        categories=categories,
    )
    return state.model_copy(update={
        "budgets": [*state.budgets, created],
        "active_budget_id": created.id,
    })


def copy_budget(source: Budget, year: Optional[int] = None) -> BudgetInput:
    """
    Draft a new budget from an existing one.

    The draft is named "Copy of <name>", defaults to the current year and
    clones the categories without their ids, so saving it creates fresh
    ones. Expenses are never copied. Nothing is saved until the draft is
    passed to create_or_update_budget.
    """
    return BudgetInput(
        name=f"Copy of {source.name}",
        year=year if year is not None else date.today().year,
        categories=[
            CategoryInput(name=c.name, budgeted=c.budgeted)
            for c in source.categories
        ],
    )


def delete_budget(state: AppState, budget_id: str) -> AppState:
    """
    Remove a budget. Deleting an unknown id is a no-op.

    If the deleted budget was active, the first remaining budget becomes
    active (or none, when the list is now empty).
    """
    remaining = [b for b in state.budgets if b.id != budget_id]
    if len(remaining) == len(state.budgets):
        return state

    active_id = state.active_budget_id
    if active_id == budget_id:
        active_id = remaining[0].id if remaining else None

    return state.model_copy(update={
        "budgets": remaining,
        "active_budget_id": active_id,
    })


def set_active_budget(state: AppState, budget_id: str) -> AppState:
    if state.find_budget(budget_id) is None:
        raise NotFoundError("budget", budget_id)
    return state.model_copy(update={"active_budget_id": budget_id})
