"""
Net-Worth History Deriver

Keeps at most one snapshot per calendar day and never records a change
that is not visible at cent precision.

Rules for update_history:
1. Empty history, nothing owned or owed, net worth 0: stay empty
2. Last snapshot is today: replace its value if it changed
3. Otherwise append today's value, unless it equals the last snapshot

When nothing changes the input list itself is returned, so callers can
detect a no-op with an identity check.
"""

from datetime import date
from typing import Union

from finance_tracker.models.finance import (
    AccountAsset,
    Asset,
    Liability,
    NetWorthSnapshot,
    ScalarAsset,
)


def derive_net_worth(assets: list[Asset], liabilities: list[Liability]) -> float:
    """Scalar asset values plus holding market values, minus liability amounts."""
    total = 0.0
    for asset in assets:
        if isinstance(asset, ScalarAsset):
            total += asset.value
        elif isinstance(asset, AccountAsset):
            total += sum(h.shares * h.current_price for h in asset.holdings)
    total -= sum(l.amount for l in liabilities)
    return total


def _same_value(a: float, b: float, precision: int) -> bool:
    return round(a, precision) == round(b, precision)


def update_history(
    history: list[NetWorthSnapshot],
    assets: list[Asset],
    liabilities: list[Liability],
    today: Union[date, str],
    precision: int = 2,
) -> list[NetWorthSnapshot]:
    """Return the history with today's net worth folded in."""
    day = today.isoformat() if isinstance(today, date) else today
    value = derive_net_worth(assets, liabilities)

    if not history:
        if value == 0 and not assets and not liabilities:
            return history
        return [NetWorthSnapshot(date=day, net_worth=value)]

    last = history[-1]

    if last.date == day:
        if _same_value(last.net_worth, value, precision):
            return history
        return [*history[:-1], last.model_copy(update={"net_worth": value})]

    if _same_value(last.net_worth, value, precision):
        return history
    return [*history, NetWorthSnapshot(date=day, net_worth=value)]
