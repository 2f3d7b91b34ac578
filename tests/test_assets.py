"""Tests for the asset, holding and liability reconciler."""

import pytest

from finance_tracker.models.finance import (
    AccountAsset,
    AssetInput,
    Holding,
    HoldingInput,
    Liability,
    LiabilityInput,
    ScalarAsset,
)
from finance_tracker.reconcilers import (
    AssetShapeError,
    NotFoundError,
    add_or_update_holding,
    apply_quote_refresh,
    count_quoted_holdings,
    create_or_update_asset,
    create_or_update_liability,
    delete_asset,
    delete_holding,
    delete_liability,
)
from finance_tracker.validation import ValidationFailedError


@pytest.fixture
def brokerage():
    return AccountAsset(
        id="asset-brk",
        name="Brokerage",
        type="Brokerage",
        holdings=[
            Holding(id="h-vti", ticker="VTI", name="Total Market", shares=10,
                    purchase_price=50, current_price=60),
            Holding(id="h-aapl", ticker="AAPL", name="Apple", shares=2,
                    purchase_price=100, current_price=150),
        ],
    )


@pytest.fixture
def savings():
    return ScalarAsset(id="asset-cash", name="Savings", type="Cash & Savings", value=5000)


@pytest.fixture
def assets(brokerage, savings):
    return [savings, brokerage]


class TestAssets:
    """Tests for creating, editing and deleting assets."""

    def test_create_scalar(self, validator):
        assets = create_or_update_asset(
            [], AssetInput(name="Car", type="Vehicle", value=12000), validator=validator,
        )
        assert isinstance(assets[0], ScalarAsset)
        assert assets[0].value == 12000

    def test_create_account_starts_empty(self, validator):
        assets = create_or_update_asset(
            [], AssetInput(name="IRA", type="Retirement"), validator=validator,
        )
        assert isinstance(assets[0], AccountAsset)
        assert assets[0].holdings == []

    def test_edit_account_keeps_holdings(self, assets, validator):
        updated = create_or_update_asset(
            assets, AssetInput(name="Taxable", type="HSA"),
            editing_id="asset-brk", validator=validator,
        )
        account = updated[1]
        assert account.id == "asset-brk"
        assert account.name == "Taxable"
        assert len(account.holdings) == 2

    def test_account_to_scalar_drops_holdings(self, assets, validator):
        updated = create_or_update_asset(
            assets, AssetInput(name="Cashed out", type="Cash & Savings", value=900),
            editing_id="asset-brk", validator=validator,
        )
        assert isinstance(updated[1], ScalarAsset)
        assert updated[1].id == "asset-brk"
        assert updated[1].value == 900

    def test_scalar_to_account_starts_empty(self, assets, validator):
        updated = create_or_update_asset(
            assets, AssetInput(name="Savings", type="Brokerage"),
            editing_id="asset-cash", validator=validator,
        )
        assert isinstance(updated[0], AccountAsset)
        assert updated[0].holdings == []

    def test_scalar_without_value_is_rejected(self, assets, validator):
        with pytest.raises(ValidationFailedError):
            create_or_update_asset(assets, AssetInput(name="House", type="Real Estate"),
                                   validator=validator)

    def test_edit_unknown_asset(self, assets, validator):
        with pytest.raises(NotFoundError):
            create_or_update_asset(
                assets, AssetInput(name="X", type="Other", value=1),
                editing_id="asset-nope", validator=validator,
            )

    def test_delete_asset(self, assets):
        assert [a.id for a in delete_asset(assets, "asset-cash")] == ["asset-brk"]


class TestHoldings:
    """Tests for adding, editing and deleting holdings."""

    def test_add_holding_normalizes_ticker(self, assets, validator):
        form = HoldingInput(ticker=" msft ", name="Microsoft", shares=3,
                            purchase_price=300, current_price=310)
        updated = add_or_update_holding(assets, form, target_asset_id="asset-brk",
                                        validator=validator)
        added = updated[1].holdings[-1]
        assert added.ticker == "MSFT"
        assert added.id not in {"h-vti", "h-aapl"}

    def test_edit_finds_owner_by_scanning(self, assets, validator):
        form = HoldingInput(ticker="VTI", name="Total Market", shares=12,
                            purchase_price=50, current_price=60)
        updated = add_or_update_holding(assets, form, editing_holding_id="h-vti",
                                        validator=validator)
        holding = updated[1].find_holding("h-vti")
        assert holding.shares == 12
        assert len(updated[1].holdings) == 2

    def test_edit_unknown_holding(self, assets, validator):
        form = HoldingInput(ticker="VTI", name="VTI", shares=1, purchase_price=1, current_price=1)
        with pytest.raises(NotFoundError):
            add_or_update_holding(assets, form, editing_holding_id="h-nope", validator=validator)

    def test_add_to_scalar_asset(self, assets, validator):
        form = HoldingInput(ticker="VTI", name="VTI", shares=1, purchase_price=1, current_price=1)
        with pytest.raises(AssetShapeError):
            add_or_update_holding(assets, form, target_asset_id="asset-cash", validator=validator)

    def test_add_without_target(self, assets, validator):
        form = HoldingInput(ticker="VTI", name="VTI", shares=1, purchase_price=1, current_price=1)
        with pytest.raises(ValueError):
            add_or_update_holding(assets, form, validator=validator)

    def test_add_to_unknown_asset(self, assets, validator):
        form = HoldingInput(ticker="VTI", name="VTI", shares=1, purchase_price=1, current_price=1)
        with pytest.raises(NotFoundError):
            add_or_update_holding(assets, form, target_asset_id="asset-nope", validator=validator)

    def test_delete_holding(self, assets):
        updated = delete_holding(assets, "asset-brk", "h-aapl")
        assert [h.id for h in updated[1].holdings] == ["h-vti"]

    def test_delete_holding_wrong_asset_is_noop(self, assets):
        updated = delete_holding(assets, "asset-cash", "h-aapl")
        assert len(updated[1].holdings) == 2


class TestQuoteRefresh:
    """Tests for merging fetched prices into holdings."""

    def test_only_current_price_changes(self, assets):
        updated = apply_quote_refresh(assets, {"vti": 75.0})
        vti = updated[1].find_holding("h-vti")
        aapl = updated[1].find_holding("h-aapl")
        assert vti.current_price == 75.0
        assert vti.purchase_price == 50
        assert aapl.current_price == 150

    def test_scalar_assets_untouched(self, assets, savings):
        updated = apply_quote_refresh(assets, {"VTI": 75.0})
        assert updated[0] is savings

    def test_count_quoted_holdings(self, assets):
        assert count_quoted_holdings(assets, {"VTI": 1.0, "TSLA": 2.0}) == 1


class TestLiabilities:
    """Tests for liabilities."""

    def test_create_and_edit(self, validator):
        liabilities = create_or_update_liability(
            [], LiabilityInput(name="Card", amount=1200), validator=validator,
        )
        liability_id = liabilities[0].id
        edited = create_or_update_liability(
            liabilities, LiabilityInput(name="Card", amount=800),
            editing_id=liability_id, validator=validator,
        )
        assert edited == [Liability(id=liability_id, name="Card", amount=800)]

    def test_edit_unknown(self, validator):
        with pytest.raises(NotFoundError):
            create_or_update_liability(
                [], LiabilityInput(name="Card", amount=1), editing_id="lia-nope",
                validator=validator,
            )

    def test_negative_amount_rejected(self, validator):
        with pytest.raises(ValidationFailedError):
            create_or_update_liability([], LiabilityInput(name="Card", amount=-1),
                                       validator=validator)

    def test_delete(self):
        liabilities = [Liability(id="l1", name="A", amount=1), Liability(id="l2", name="B", amount=2)]
        assert [l.id for l in delete_liability(liabilities, "l1")] == ["l2"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
