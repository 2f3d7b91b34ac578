"""
Input Validation

DESIGN DECISION: Every user-facing mutation validates its input before a
reconciler touches the state. Validation happens in two stages:

STAGE 1 - FIELD VALIDATION:
- Required fields present (names, tickers)
- Numbers in range (amounts, shares, prices)
- Formats parse (ISO dates, 4-digit years)

STAGE 2 - CONSISTENCY VALIDATION:
- Duplicate category names within one budget
- Categories that still own expenses cannot be removed
- Suspiciously large amounts (warning only)

Errors block the mutation and leave the state unchanged. Warnings are
returned alongside but never block.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can show them to the user.
"""

from typing import Iterable, Optional

from finance_tracker.config import get_settings
from finance_tracker.config.settings import AppSettings
from finance_tracker.models.finance import (
    ASSET_TYPES,
    AssetInput,
    Budget,
    BudgetInput,
    HoldingInput,
    IncomingExpense,
    LiabilityInput,
    ValidationIssue,
    is_account_type,
    parse_iso_datetime,
)


class ValidationFailedError(Exception):
    """Input was rejected. The state has not been changed."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        errors = [issue.message for issue in issues if issue.severity == "error"]
        super().__init__("; ".join(errors) or "Validation failed")


def has_errors(issues: Iterable[ValidationIssue]) -> bool:
    """Check if there are any error-level issues."""
    return any(issue.severity == "error" for issue in issues)


def raise_for_errors(issues: list[ValidationIssue]) -> list[ValidationIssue]:
    """Raise ValidationFailedError if any issue is an error; else return the warnings."""
    if has_errors(issues):
        raise ValidationFailedError(issues)
    return issues


class InputValidator:
    """
    Validates form input for budgets, expenses, assets, holdings and liabilities.

    Each validate_* method returns the full list of issues found.
    Callers use raise_for_errors() to turn blocking issues into an exception.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    def validate_budget(
        self,
        budget_input: BudgetInput,
        existing: Optional[Budget] = None,
    ) -> list[ValidationIssue]:
        """
        Validate the budget editor form.

        Args:
            budget_input: Submitted form values
            existing: The budget being edited, if any. Needed to check that
                no category still holding expenses is being removed.
        """
        issues = []

        if not budget_input.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Please provide a budget name",
            ))

        if not 1000 <= budget_input.year <= 9999:
            issues.append(ValidationIssue(
                field="year",
                issue_type="invalid_value",
                message=f"Year must be a 4-digit number (got {budget_input.year})",
            ))

        named = [c for c in budget_input.categories if c.name]
        if not named:
            issues.append(ValidationIssue(
                field="categories",
                issue_type="missing",
                message="A budget needs at least one category with a name",
                suggested_fix="Add a category such as 'Groceries' or 'Other'",
            ))

        seen: set[str] = set()
        for category in named:
            key = category.name.lower()
            if key in seen:
                issues.append(ValidationIssue(
                    field="categories",
                    issue_type="duplicate",
                    message=f"Category '{category.name}' appears more than once",
                    suggested_fix="Merge the duplicates into a single category",
                ))
            seen.add(key)

            if category.budgeted is not None and category.budgeted < 0:
                issues.append(ValidationIssue(
                    field="categories",
                    issue_type="invalid_value",
                    message=f"Budgeted amount for '{category.name}' cannot be negative",
                ))

        if existing is not None:
            kept_ids = {c.id for c in named if c.id}
            used_ids = {e.category_id for e in existing.expenses}
            for category in existing.categories:
                if category.id in used_ids and category.id not in kept_ids:
                    issues.append(ValidationIssue(
                        field="categories",
                        issue_type="in_use",
                        message=(
                            f"Category '{category.name}' still has expenses "
                            f"and cannot be removed"
                        ),
                        suggested_fix="Move or delete its expenses first",
                    ))

        return issues

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def validate_expense(self, expense: IncomingExpense) -> list[ValidationIssue]:
        """Validate a manually entered or edited expense."""
        issues = []

        if not expense.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Please enter a name for the expense",
            ))

        if expense.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Expense amount must be greater than zero",
            ))
        elif expense.amount > self._settings.max_expense_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({expense.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        try:
            parse_iso_datetime(expense.date)
        except ValueError:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=f"'{expense.date}' is not a valid date",
                suggested_fix="Use the YYYY-MM-DD format",
            ))

        if not expense.category_id and not expense.category_name:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Please choose a category",
            ))

        return issues

    # -------------------------------------------------------------------------
    # Assets, holdings, liabilities
    # -------------------------------------------------------------------------

    def validate_asset(self, asset_input: AssetInput) -> list[ValidationIssue]:
        issues = []

        if not asset_input.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Please enter an asset name",
            ))

        if asset_input.type not in ASSET_TYPES:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Unknown asset type '{asset_input.type}'",
                suggested_fix=f"Use one of: {', '.join(ASSET_TYPES)}",
            ))
        elif not is_account_type(asset_input.type):
            if asset_input.value is None or asset_input.value < 0:
                issues.append(ValidationIssue(
                    field="value",
                    issue_type="invalid_value",
                    message="Please enter a valid, positive value for the asset",
                ))

        return issues

    def validate_holding(self, holding_input: HoldingInput) -> list[ValidationIssue]:
        issues = []

        if not holding_input.ticker:
            issues.append(ValidationIssue(
                field="ticker",
                issue_type="missing",
                message="Please enter a ticker symbol",
            ))
        if not holding_input.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Please enter a name for the holding",
            ))
        if holding_input.shares <= 0:
            issues.append(ValidationIssue(
                field="shares",
                issue_type="invalid_value",
                message="Shares must be greater than zero",
            ))
        if holding_input.purchase_price < 0 or holding_input.current_price < 0:
            issues.append(ValidationIssue(
                field="price",
                issue_type="invalid_value",
                message="Prices cannot be negative",
            ))

        return issues

    def validate_liability(self, liability_input: LiabilityInput) -> list[ValidationIssue]:
        issues = []

        if not liability_input.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Please enter a liability name",
            ))
        if liability_input.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Liability amount cannot be negative",
            ))

        return issues


def get_user_friendly_summary(issues: list[ValidationIssue]) -> str:
    """
    Generate a user-friendly summary of validation results.

    This is what the UI shows next to the form that was submitted.
    """
    if not issues:
        return "✅ All checks passed."

    lines = []
    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]

    if errors:
        lines.append("❌ Please fix the following:")
        for issue in errors:
            lines.append(f"   • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     💡 {issue.suggested_fix}")

    if warnings:
        if lines:
            lines.append("")
        lines.append("⚠️ Please verify the following:")
        for issue in warnings:
            lines.append(f"   • {issue.message}")

    return "\n".join(lines)
