"""
Asset, Holding and Liability Reconciler

Assets come in two shapes (see models.finance):
- ScalarAsset: one value (cash, real estate, vehicle, other)
- AccountAsset: valued by its holdings (brokerage, retirement, HSA)

DESIGN DECISION: Changing an asset's type across the shape boundary
rebuilds the asset as the other variant. Account -> scalar drops the
holdings and takes the submitted value; scalar -> account starts with no
holdings. Edits within the account shape keep the holdings.
"""

from typing import Mapping, Optional

from finance_tracker.models.finance import (
    AccountAsset,
    Asset,
    AssetInput,
    Holding,
    HoldingInput,
    Liability,
    LiabilityInput,
    ScalarAsset,
    is_account_type,
)
from finance_tracker.reconcilers.errors import AssetShapeError, NotFoundError
from finance_tracker.validation import InputValidator, raise_for_errors


# =============================================================================
# ASSETS
# =============================================================================

def _find_asset(assets: list[Asset], asset_id: str) -> Optional[Asset]:
    for asset in assets:
        if asset.id == asset_id:
            return asset
    return None


def _replace_asset(assets: list[Asset], updated: Asset) -> list[Asset]:
    return [updated if a.id == updated.id else a for a in assets]


def create_or_update_asset(
    assets: list[Asset],
    asset_input: AssetInput,
    editing_id: Optional[str] = None,
    validator: Optional[InputValidator] = None,
) -> list[Asset]:
    """
    Create an asset, or update the one with editing_id.

    Raises:
        ValidationFailedError: Missing name, unknown type, missing or negative value
        NotFoundError: editing_id does not exist
    """
    validator = validator or InputValidator()
    raise_for_errors(validator.validate_asset(asset_input))

    existing = None
    if editing_id is not None:
        existing = _find_asset(assets, editing_id)
        if existing is None:
            raise NotFoundError("asset", editing_id)

    identity = {"id": existing.id} if existing is not None else {}

    if is_account_type(asset_input.type):
        holdings = existing.holdings if isinstance(existing, AccountAsset) else []
        asset: Asset = AccountAsset(
            **identity,
            name=asset_input.name,
            type=asset_input.type,
            holdings=holdings,
        )
    else:
        asset = ScalarAsset(
            **identity,
            name=asset_input.name,
            type=asset_input.type,
            value=asset_input.value,
        )

    if existing is None:
        return [*assets, asset]
    return _replace_asset(assets, asset)


def delete_asset(assets: list[Asset], asset_id: str) -> list[Asset]:
    return [a for a in assets if a.id != asset_id]


# =============================================================================
# HOLDINGS
# =============================================================================

def _holding_owner(assets: list[Asset], holding_id: str) -> Optional[AccountAsset]:
    """The account that contains a holding id, found by scanning all assets."""
    for asset in assets:
        if isinstance(asset, AccountAsset) and asset.find_holding(holding_id):
            return asset
    return None


def add_or_update_holding(
    assets: list[Asset],
    holding_input: HoldingInput,
    target_asset_id: Optional[str] = None,
    editing_holding_id: Optional[str] = None,
    validator: Optional[InputValidator] = None,
) -> list[Asset]:
    """
    Add a holding to an account, or edit an existing holding.

    For an edit the owning account is located by scanning for
    editing_holding_id; for a new holding target_asset_id names the account.
    The ticker is stored trimmed and upper-cased.

    Raises:
        ValidationFailedError: Bad form input
        NotFoundError: Unknown holding or asset id
        AssetShapeError: The target asset does not carry holdings
    """
    validator = validator or InputValidator()
    raise_for_errors(validator.validate_holding(holding_input))

    fields = {
        "ticker": holding_input.ticker.strip().upper(),
        "name": holding_input.name,
        "shares": holding_input.shares,
        "purchase_price": holding_input.purchase_price,
        "current_price": holding_input.current_price,
    }

    if editing_holding_id is not None:
        owner = _holding_owner(assets, editing_holding_id)
        if owner is None:
            raise NotFoundError("holding", editing_holding_id)
        updated = owner.model_copy(update={
            "holdings": [
                Holding(id=h.id, **fields) if h.id == editing_holding_id else h
                for h in owner.holdings
            ],
        })
        return _replace_asset(assets, updated)

    if target_asset_id is None:
        raise ValueError("target_asset_id is required when adding a holding")

    target = _find_asset(assets, target_asset_id)
    if target is None:
        raise NotFoundError("asset", target_asset_id)
    if not isinstance(target, AccountAsset):
        raise AssetShapeError(
            f"Asset '{target.name}' is of type '{target.type}' and cannot hold investments"
        )

    updated = target.model_copy(update={
        "holdings": [*target.holdings, Holding(**fields)],
    })
    return _replace_asset(assets, updated)


def delete_holding(assets: list[Asset], asset_id: str, holding_id: str) -> list[Asset]:
    result = []
    for asset in assets:
        if asset.id == asset_id and isinstance(asset, AccountAsset):
            asset = asset.model_copy(update={
                "holdings": [h for h in asset.holdings if h.id != holding_id],
            })
        result.append(asset)
    return result


def apply_quote_refresh(
    assets: list[Asset],
    prices: Mapping[str, float],
) -> list[Asset]:
    """
    Merge fetched prices into the holdings.

    Tickers match case-insensitively. Only current_price is overwritten;
    purchase_price and holdings without a quote are left as they are.
    Because the merge is keyed by ticker, prices from a refresh that
    started before later edits still land on the right holdings.
    """
    by_ticker = {ticker.upper(): price for ticker, price in prices.items()}
    result = []
    for asset in assets:
        if isinstance(asset, AccountAsset) and any(
            h.ticker.upper() in by_ticker for h in asset.holdings
        ):
            asset = asset.model_copy(update={
                "holdings": [
                    h.model_copy(update={"current_price": by_ticker[h.ticker.upper()]})
                    if h.ticker.upper() in by_ticker else h
                    for h in asset.holdings
                ],
            })
        result.append(asset)
    return result


def count_quoted_holdings(assets: list[Asset], tickers: Mapping[str, float]) -> int:
    """Number of holdings a refresh with these tickers would touch."""
    wanted = {t.upper() for t in tickers}
    return sum(
        1
        for asset in assets if isinstance(asset, AccountAsset)
        for h in asset.holdings if h.ticker.upper() in wanted
    )


# =============================================================================
# LIABILITIES
# =============================================================================

def create_or_update_liability(
    liabilities: list[Liability],
    liability_input: LiabilityInput,
    editing_id: Optional[str] = None,
    validator: Optional[InputValidator] = None,
) -> list[Liability]:
    """
    Raises:
        ValidationFailedError: Missing name or negative amount
        NotFoundError: editing_id does not exist
    """
    validator = validator or InputValidator()
    raise_for_errors(validator.validate_liability(liability_input))

    if editing_id is None:
        created = Liability(name=liability_input.name, amount=liability_input.amount)
        return [*liabilities, created]

    if not any(l.id == editing_id for l in liabilities):
        raise NotFoundError("liability", editing_id)
    updated = Liability(
        id=editing_id,
        name=liability_input.name,
        amount=liability_input.amount,
    )
    return [updated if l.id == editing_id else l for l in liabilities]


def delete_liability(liabilities: list[Liability], liability_id: str) -> list[Liability]:
    return [l for l in liabilities if l.id != liability_id]
