"""Request-handling layer in front of the record store.

Responsibilities the store leaves to its caller:
1. Generate identifiers for new records
2. Validate input (names, prices, stock, quantities, amounts)
3. Pre-check name uniqueness before add_user / add_item
4. Guard against consuming more than the available stock
5. Translate store statuses into TrackerError exceptions

The uniqueness and stock checks are not atomic with the insert that follows
them; one service instance per store, driven by one caller at a time.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from matetracker.config import InventoryConfig
from matetracker.errors import (
    CapacityError,
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PersistenceFailedError,
    ValidationError,
)
from matetracker.store.aggregation import Balance, Overview, StockLevel
from matetracker.store.models import ConsumptionRecord, Item, PaymentRecord, User
from matetracker.store.record_store import RecordStore, StoreStatus

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Summary:
    """Everything the dashboard shows, computed from the current state."""

    overview: Overview
    stock: list[StockLevel] = field(default_factory=list)
    balances: list[Balance] = field(default_factory=list)


class TrackerService:
    """Validated, id-generating operations over a RecordStore."""

    def __init__(
        self,
        store: RecordStore,
        inventory: InventoryConfig | None = None,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.store = store
        self.inventory = inventory or InventoryConfig()
        self._new_id = id_factory

    # ── Status translation ───────────────────────────────────

    def _check(self, status: StoreStatus, failure: str, not_found: str = "Not found") -> None:
        if status is StoreStatus.OK:
            return
        if status is StoreStatus.NOT_FOUND:
            raise NotFoundError(not_found)
        if status is StoreStatus.CAPACITY_EXCEEDED:
            raise CapacityError(failure)
        logger.error("%s: change kept in memory but not saved", failure)
        raise PersistenceFailedError(f"{failure}: state could not be saved")

    def _require_name(self, name: str | None) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")
        return name

    def _require_user(self, user_id: str) -> User:
        user = self.store.get_user(user_id) if user_id else None
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _require_item(self, item_id: str) -> Item:
        item = self.store.get_item(item_id) if item_id else None
        if item is None:
            raise NotFoundError("Item not found")
        return item

    # ── Users ────────────────────────────────────────────────

    def add_user(self, name: str) -> User:
        name = self._require_name(name)
        if self.store.user_exists(name):
            raise ConflictError("User already exists")
        user_id = self._new_id()
        self._check(self.store.add_user(user_id, name), "Failed to add user")
        logger.info("Added user %s (%s)", name, user_id)
        return self._require_user(user_id)

    def remove_user(self, user_id: str) -> None:
        self._check(self.store.remove_user(user_id), "Failed to remove user", "User not found")

    # ── Items ────────────────────────────────────────────────

    def add_item(self, name: str, price: float, stock: int | None = None) -> Item:
        name = self._require_name(name)
        if price is None or not math.isfinite(price) or price <= 0:
            raise ValidationError("Invalid price")
        if stock is None:
            stock = self.inventory.default_initial_stock
        if stock < 0:
            raise ValidationError("Invalid stock value")
        if self.store.item_exists(name):
            raise ConflictError("Item already exists")
        item_id = self._new_id()
        self._check(self.store.add_item(item_id, name, price, stock), "Failed to add item")
        logger.info("Added item %s (%s), stock %d", name, item_id, stock)
        return self._require_item(item_id)

    def remove_item(self, item_id: str) -> None:
        self._check(self.store.remove_item(item_id), "Failed to remove item", "Item not found")

    def update_item_stock(self, item_id: str, stock: int) -> Item:
        if stock is None or stock < 0:
            raise ValidationError("Invalid stock value")
        self._check(
            self.store.update_item_stock(item_id, stock),
            "Failed to update stock",
            "Item not found",
        )
        return self._require_item(item_id)

    # ── Consumption ──────────────────────────────────────────

    def record_consumption(self, user_id: str, item_id: str, quantity: int) -> ConsumptionRecord:
        if not user_id or not item_id or quantity is None or quantity <= 0:
            raise ValidationError("Invalid input")
        self._require_user(user_id)
        self._require_item(item_id)
        available = self.store.get_available_stock(item_id)
        if quantity > available:
            raise InsufficientStockError("Not enough stock")
        record_id = self._new_id()
        self._check(
            self.store.add_consumption(record_id, user_id, item_id, quantity),
            "Failed to record consumption",
        )
        return self.store.consumption[-1]

    def remove_consumption(self, record_id: str) -> None:
        self._check(
            self.store.remove_consumption(record_id),
            "Failed to remove consumption",
            "Consumption record not found",
        )

    # ── Payments ─────────────────────────────────────────────

    def record_payment(self, user_id: str, item_id: str, amount: float) -> PaymentRecord:
        if not user_id or not item_id or amount is None or not math.isfinite(amount):
            raise ValidationError("Invalid input")
        if amount <= 0:
            raise ValidationError("Invalid input")
        self._require_user(user_id)
        self._require_item(item_id)
        payment_id = self._new_id()
        self._check(
            self.store.add_payment(payment_id, user_id, item_id, amount),
            "Failed to process payment",
        )
        return self.store.payments[-1]

    # ── State ────────────────────────────────────────────────

    def reset(self) -> None:
        self._check(self.store.reset(), "Failed to reset")

    def state(self) -> dict:
        """The exported document, parsed."""
        return json.loads(self.store.export_state())

    def summary(self) -> Summary:
        return Summary(
            overview=self.store.overview(),
            stock=self.store.stock_levels(self.inventory.low_stock_threshold),
            balances=self.store.balances(),
        )
