"""Derived figures computed from the collections on every read.

Nothing here is cached: collections are small and capacity-bounded, so each
call rescans them and the result always reflects the current history.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from matetracker.store.models import ConsumptionRecord, Item, PaymentRecord, User

StockStatus = Literal["in_stock", "low", "out"]


@dataclass
class Overview:
    total_stock: int
    total_consumed: int
    total_remaining: int


@dataclass
class StockLevel:
    item_id: str
    name: str
    price: float
    initial_stock: int
    consumed: int
    remaining: int
    status: StockStatus


@dataclass
class Balance:
    """What one user has taken of one item and paid for it."""

    user_id: str
    user_name: str
    item_id: str
    item_name: str
    consumed: int
    paid: float
    amount_owed: float


def consumed_quantity(
    consumption: Iterable[ConsumptionRecord],
    item_id: str | None = None,
    user_id: str | None = None,
) -> int:
    """Sum quantities, optionally restricted to an item and/or a user."""
    return sum(
        r.quantity
        for r in consumption
        if (item_id is None or r.item_id == item_id)
        and (user_id is None or r.user_id == user_id)
    )


def paid_amount(payments: Iterable[PaymentRecord], user_id: str, item_id: str) -> float:
    return sum(p.amount for p in payments if p.user_id == user_id and p.item_id == item_id)


def available_stock(
    items: Iterable[Item], consumption: Iterable[ConsumptionRecord], item_id: str
) -> int:
    """initial_stock minus everything consumed. Unknown items have 0 stock."""
    for item in items:
        if item.id == item_id:
            initial = item.initial_stock
            break
    else:
        return 0
    return initial - consumed_quantity(consumption, item_id=item_id)


def overview(items: Sequence[Item], consumption: Sequence[ConsumptionRecord]) -> Overview:
    total_stock = sum(i.initial_stock for i in items)
    total_remaining = sum(available_stock(items, consumption, i.id) for i in items)
    return Overview(
        total_stock=total_stock,
        total_consumed=consumed_quantity(consumption),
        total_remaining=total_remaining,
    )


def stock_status(remaining: int, low_stock_threshold: int) -> StockStatus:
    if remaining <= 0:
        return "out"
    if remaining <= low_stock_threshold:
        return "low"
    return "in_stock"


def stock_levels(
    items: Sequence[Item],
    consumption: Sequence[ConsumptionRecord],
    low_stock_threshold: int = 6,
) -> list[StockLevel]:
    levels = []
    for item in items:
        consumed = consumed_quantity(consumption, item_id=item.id)
        remaining = item.initial_stock - consumed
        levels.append(
            StockLevel(
                item_id=item.id,
                name=item.name,
                price=item.price,
                initial_stock=item.initial_stock,
                consumed=consumed,
                remaining=remaining,
                status=stock_status(remaining, low_stock_threshold),
            )
        )
    return levels


def balances(
    users: Sequence[User],
    items: Sequence[Item],
    consumption: Sequence[ConsumptionRecord],
    payments: Sequence[PaymentRecord],
) -> list[Balance]:
    """One row per (user, item) pair that has any consumption or payment.

    amount_owed is consumed units at the item's price minus what was paid;
    negative means the user is in credit.
    """
    rows: list[Balance] = []
    for user in users:
        for item in items:
            consumed = consumed_quantity(consumption, item_id=item.id, user_id=user.id)
            paid = paid_amount(payments, user.id, item.id)
            if consumed == 0 and paid == 0:
                continue
            rows.append(
                Balance(
                    user_id=user.id,
                    user_name=user.name,
                    item_id=item.id,
                    item_name=item.name,
                    consumed=consumed,
                    paid=paid,
                    amount_owed=round(consumed * item.price - paid, 2),
                )
            )
    return rows
