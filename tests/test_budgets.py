"""Tests for the budget reconciler."""

import pytest

from finance_tracker.models.finance import AppState, Budget, BudgetInput, CategoryInput
from finance_tracker.reconcilers import (
    NotFoundError,
    copy_budget,
    create_or_update_budget,
    delete_budget,
    set_active_budget,
)
from finance_tracker.validation import ValidationFailedError


class TestCreateOrUpdateBudget:
    """Tests for saving the budget editor form."""

    def test_create_appends_and_activates(self, state_2024, validator):
        form = BudgetInput(
            name="Household 2025",
            year=2025,
            categories=[
                CategoryInput(name="Groceries", budgeted=1300),
                CategoryInput(name="Travel"),
                CategoryInput(name=""),
            ],
        )
        new_state = create_or_update_budget(state_2024, form, validator=validator)

        assert len(new_state.budgets) == 2
        created = new_state.budgets[-1]
        assert new_state.active_budget_id == created.id
        assert [c.name for c in created.categories] == ["Groceries", "Travel"]
        assert created.categories[1].budgeted == 0.0
        assert created.expenses == []

    def test_create_does_not_touch_old_state(self, state_2024, validator):
        form = BudgetInput(name="2025", year=2025, categories=[CategoryInput(name="Food")])
        create_or_update_budget(state_2024, form, validator=validator)
        assert len(state_2024.budgets) == 1

    def test_edit_keeps_ids_and_expenses(self, state_2024, budget_2024, validator):
        form = BudgetInput(
            name="Renamed",
            year=2024,
            categories=[
                CategoryInput(id="cat-groceries", name="Food", budgeted=1500),
                CategoryInput(id="cat-rent", name="Rent", budgeted=12000),
                CategoryInput(name="Fun", budgeted=600),
            ],
        )
        new_state = create_or_update_budget(
            state_2024, form, editing_id=budget_2024.id, validator=validator,
        )

        edited = new_state.find_budget(budget_2024.id)
        assert edited.name == "Renamed"
        assert edited.find_category("cat-groceries").name == "Food"
        assert edited.find_category("cat-groceries").budgeted == 1500
        assert edited.categories[2].id not in {"cat-groceries", "cat-rent"}
        assert new_state.active_budget_id == budget_2024.id

    def test_edit_reactivates_budget(self, budget_2024, validator):
        other = Budget(id="budget-other", name="Other", year=2023)
        state = AppState(budgets=[budget_2024, other], active_budget_id=other.id)
        form = BudgetInput(
            name=budget_2024.name, year=2024,
            categories=[CategoryInput(id="cat-rent", name="Rent")],
        )
        new_state = create_or_update_budget(state, form, editing_id=budget_2024.id, validator=validator)
        assert new_state.active_budget_id == budget_2024.id

    def test_edit_unknown_id(self, state_2024, validator):
        form = BudgetInput(name="X", year=2024, categories=[CategoryInput(name="Food")])
        with pytest.raises(NotFoundError):
            create_or_update_budget(state_2024, form, editing_id="budget-nope", validator=validator)

    def test_invalid_form_is_rejected(self, state_2024, validator):
        form = BudgetInput(name="", year=2024, categories=[])
        with pytest.raises(ValidationFailedError) as excinfo:
            create_or_update_budget(state_2024, form, validator=validator)
        fields = {issue.field for issue in excinfo.value.issues}
        assert {"name", "categories"} <= fields


class TestCopyBudget:
    """Tests for drafting a copy of a budget."""

    def test_copy_is_a_draft(self, budget_2024):
        draft = copy_budget(budget_2024, year=2025)
        assert draft.name == "Copy of Household 2024"
        assert draft.year == 2025
        assert [(c.name, c.budgeted) for c in draft.categories] == [
            ("Groceries", 1200.0), ("Rent", 12000.0),
        ]
        assert all(c.id is None for c in draft.categories)

    def test_saving_a_copy_creates_fresh_category_ids(self, state_2024, budget_2024, validator):
        draft = copy_budget(budget_2024, year=2025)
        new_state = create_or_update_budget(state_2024, draft, validator=validator)
        copied = new_state.budgets[-1]
        assert not {c.id for c in copied.categories} & {"cat-groceries", "cat-rent"}


class TestDeleteAndActivate:
    """Tests for deleting budgets and switching the active one."""

    def test_delete_active_falls_back_to_first(self, budget_2024):
        b2 = Budget(id="budget-b", name="B", year=2023)
        b3 = Budget(id="budget-c", name="C", year=2022)
        state = AppState(budgets=[budget_2024, b2, b3], active_budget_id="budget-c")
        new_state = delete_budget(state, "budget-c")
        assert new_state.active_budget_id == budget_2024.id
        assert [b.id for b in new_state.budgets] == [budget_2024.id, "budget-b"]

    def test_delete_inactive_keeps_active(self, budget_2024):
        b2 = Budget(id="budget-b", name="B", year=2023)
        state = AppState(budgets=[budget_2024, b2], active_budget_id=budget_2024.id)
        assert delete_budget(state, "budget-b").active_budget_id == budget_2024.id

    def test_delete_last_budget(self, state_2024, budget_2024):
        new_state = delete_budget(state_2024, budget_2024.id)
        assert new_state.budgets == []
        assert new_state.active_budget_id is None

    def test_delete_unknown_is_noop(self, state_2024):
        assert delete_budget(state_2024, "budget-nope") is state_2024

    def test_set_active(self, budget_2024):
        b2 = Budget(id="budget-b", name="B", year=2023)
        state = AppState(budgets=[budget_2024, b2], active_budget_id=budget_2024.id)
        assert set_active_budget(state, "budget-b").active_budget_id == "budget-b"

    def test_set_active_unknown(self, state_2024):
        with pytest.raises(NotFoundError, match="Budget not found"):
            set_active_budget(state_2024, "budget-nope")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
