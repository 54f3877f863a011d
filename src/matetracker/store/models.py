"""Record shapes held by the store, plus the uptime clock that stamps them."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass
class User:
    id: str
    name: str


@dataclass
class Item:
    id: str
    name: str
    price: float
    initial_stock: int


@dataclass
class ConsumptionRecord:
    """Units of an item taken by a user. References are by id only."""

    id: str
    user_id: str
    item_id: str
    quantity: int
    timestamp: str


@dataclass
class PaymentRecord:
    """Money paid by a user against an item."""

    id: str
    user_id: str
    item_id: str
    amount: float
    timestamp: str


@dataclass
class StoreState:
    """The four collections, in insertion order."""

    users: list[User] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)
    consumption: list[ConsumptionRecord] = field(default_factory=list)
    payments: list[PaymentRecord] = field(default_factory=list)

    def clear(self) -> None:
        self.users.clear()
        self.items.clear()
        self.consumption.clear()
        self.payments.clear()


def names_match(a: str, b: str) -> bool:
    """Case-insensitive name comparison used for uniqueness checks."""
    return a.casefold() == b.casefold()


@runtime_checkable
class Clock(Protocol):
    """Source of record timestamps."""

    def now(self) -> str: ...


class UptimeClock:
    """Milliseconds since this clock was created, as a decimal string.

    Non-decreasing for the life of the process and reset on restart, so values
    are not comparable across restarts.
    """

    def __init__(self) -> None:
        self._started = time.monotonic()

    def now(self) -> str:
        return str(int((time.monotonic() - self._started) * 1000))
