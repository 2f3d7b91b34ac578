"""Tests for net-worth derivation and the daily history."""

import pytest

from finance_tracker.models.finance import (
    AccountAsset,
    Holding,
    Liability,
    NetWorthSnapshot,
    ScalarAsset,
)
from finance_tracker.reconcilers import derive_net_worth, update_history


@pytest.fixture
def cash():
    return ScalarAsset(name="Savings", type="Cash & Savings", value=5000)


@pytest.fixture
def card():
    return Liability(name="Card", amount=1200)


class TestDeriveNetWorth:
    def test_scalar_minus_liability(self, cash, card):
        assert derive_net_worth([cash], [card]) == 3800

    def test_holdings_count_at_market_value(self):
        account = AccountAsset(name="IRA", type="Retirement", holdings=[
            Holding(ticker="VTI", shares=10, purchase_price=50, current_price=60),
        ])
        assert derive_net_worth([account], []) == 600

    def test_can_be_negative(self, card):
        assert derive_net_worth([], [card]) == -1200


class TestUpdateHistory:
    """Tests for the one-snapshot-per-day history."""

    def test_first_snapshot(self, cash, card):
        history = update_history([], [cash], [card], "2024-06-01")
        assert history == [NetWorthSnapshot(date="2024-06-01", net_worth=3800)]

    def test_same_day_no_change_is_noop(self, cash, card):
        history = update_history([], [cash], [card], "2024-06-01")
        again = update_history(history, [cash], [card], "2024-06-01")
        assert again == history
        assert again is history

    def test_same_day_change_replaces(self, cash, card):
        history = update_history([], [cash], [card], "2024-06-01")
        richer = cash.model_copy(update={"value": 6000})
        updated = update_history(history, [richer], [card], "2024-06-01")
        assert updated == [NetWorthSnapshot(date="2024-06-01", net_worth=4800)]

    def test_new_day_appends(self, cash, card):
        history = [NetWorthSnapshot(date="2024-05-31", net_worth=1000)]
        updated = update_history(history, [cash], [card], "2024-06-01")
        assert [s.date for s in updated] == ["2024-05-31", "2024-06-01"]
        assert len(history) == 1

    def test_new_day_same_value_is_skipped(self, cash, card):
        history = [NetWorthSnapshot(date="2024-05-31", net_worth=3800)]
        assert update_history(history, [cash], [card], "2024-06-01") is history

    def test_sub_cent_change_is_ignored(self, card):
        history = [NetWorthSnapshot(date="2024-06-01", net_worth=3800)]
        cash = ScalarAsset(name="Savings", type="Cash & Savings", value=5000.001)
        assert update_history(history, [cash], [card], "2024-06-01") is history

    def test_nothing_owned_stays_empty(self):
        assert update_history([], [], [], "2024-06-01") == []

    def test_accepts_date_objects(self, cash):
        from datetime import date
        history = update_history([], [cash], [], date(2024, 6, 1))
        assert history[0].date == "2024-06-01"

    def test_zero_net_worth_with_entries_is_recorded(self):
        """Owning and owing the same amount is still a data point."""
        cash = ScalarAsset(name="Savings", type="Cash & Savings", value=100)
        loan = Liability(name="Loan", amount=100)
        assert update_history([], [cash], [loan], "2024-06-01")[0].net_worth == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
