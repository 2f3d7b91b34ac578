"""
Blob Serialization, Migration and Data Export/Import

The whole AppState is written as one JSON blob with the camelCase field
names of the original web app, so old exports and stored blobs load
unchanged.

Two older layouts are still understood:
- A budgets-only blob (a bare JSON array of budgets) stored under its own
  key, with the active budget id under a second key
- Asset lists stored as 'investmentAccounts' (every entry an account
  with holdings)

DESIGN DECISION: A data import is validated completely before anything is
replaced. It either swaps in the entire state or raises DataImportError
and leaves the current state as it was.
"""

import json
from typing import Any, Optional

from pydantic import ValidationError

from finance_tracker.models.finance import (
    ACCOUNT_ASSET_TYPES,
    AppState,
    Budget,
    UserSettings,
)


class DataImportError(Exception):
    """The import file does not describe a valid application state."""
    pass


# =============================================================================
# STATE BLOB
# =============================================================================

def dump_state(state: AppState) -> str:
    return state.model_dump_json(by_alias=True)


def upgrade_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Rewrite older field layouts into the current one.

    'investmentAccounts' entries become account assets (type 'Brokerage'
    unless they name an account type); they are appended after any
    'assets' already present.
    """
    if "investmentAccounts" not in payload:
        return payload

    upgraded = {k: v for k, v in payload.items() if k != "investmentAccounts"}
    accounts = []
    for entry in payload.get("investmentAccounts") or []:
        if not isinstance(entry, dict):
            accounts.append(entry)
            continue
        account = dict(entry)
        if account.get("type") not in ACCOUNT_ASSET_TYPES:
            account["type"] = "Brokerage"
        account.setdefault("holdings", [])
        account.pop("value", None)
        accounts.append(account)
    upgraded["assets"] = [*(payload.get("assets") or []), *accounts]
    return upgraded


def with_valid_active_budget(state: AppState) -> AppState:
    """Point a missing or dangling active id at the first budget (or None)."""
    if state.active_budget is not None:
        return state
    fallback = state.budgets[0].id if state.budgets else None
    if fallback == state.active_budget_id:
        return state
    return state.model_copy(update={"active_budget_id": fallback})


def load_state(text: str) -> AppState:
    """
    Parse a stored state blob.

    Raises:
        ValueError: The text is not JSON or does not validate
    """
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("State blob is not a JSON object")
    return with_valid_active_budget(AppState.model_validate(upgrade_payload(payload)))


def load_legacy_budgets(text: str, active_id: Optional[str]) -> AppState:
    """
    Build a state from the old budgets-only blob.

    Raises:
        ValueError: The text is not a JSON array of budgets
    """
    payload = json.loads(text)
    if not isinstance(payload, list):
        raise ValueError("Legacy budgets blob is not a JSON array")
    budgets = [Budget.model_validate(item) for item in payload]
    return with_valid_active_budget(
        AppState(budgets=budgets, active_budget_id=active_id)
    )


# =============================================================================
# FILE EXPORT / IMPORT
# =============================================================================

def build_export(state: AppState, settings: UserSettings) -> str:
    """Pretty-printed JSON of the complete state plus the user settings."""
    payload = state.model_dump(mode="json", by_alias=True)
    export = {
        "budgets": payload["budgets"],
        "activeBudgetId": payload["activeBudgetId"],
        "assets": payload["assets"],
        "liabilities": payload["liabilities"],
        "settings": settings.model_dump(mode="json", by_alias=True),
        "netWorthHistory": payload["netWorthHistory"],
    }
    return json.dumps(export, indent=2)


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}"


def parse_export(text: str) -> tuple[AppState, Optional[UserSettings]]:
    """
    Validate an export file and build the state it describes.

    Returns:
        (state, settings); settings is None when the file has none

    Raises:
        DataImportError: With a message suitable for the user
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataImportError(f"The file is not valid JSON: {e}")

    if not isinstance(payload, dict):
        raise DataImportError(
            "Invalid file format. The file must contain a JSON object "
            "with budgets, assets and liabilities."
        )
    for key in ("budgets", "liabilities"):
        if not isinstance(payload.get(key), list):
            raise DataImportError(f"Invalid file format: '{key}' must be a list.")
    if not isinstance(payload.get("assets"), list) and not isinstance(
        payload.get("investmentAccounts"), list
    ):
        raise DataImportError("Invalid file format: 'assets' must be a list.")

    state_fields = {
        "budgets": payload["budgets"],
        "activeBudgetId": payload.get("activeBudgetId"),
        "assets": payload.get("assets") or [],
        "liabilities": payload["liabilities"],
        "netWorthHistory": payload.get("netWorthHistory") or [],
    }
    if "investmentAccounts" in payload:
        state_fields["investmentAccounts"] = payload["investmentAccounts"]

    try:
        state = AppState.model_validate(upgrade_payload(state_fields))
    except ValidationError as e:
        raise DataImportError(f"Invalid data in file: {_describe(e)}")

    settings = None
    if payload.get("settings") is not None:
        try:
            settings = UserSettings.model_validate(payload["settings"])
        except ValidationError as e:
            raise DataImportError(f"Invalid settings in file: {_describe(e)}")

    return with_valid_active_budget(state), settings
