"""The record store: four collections with CRUD and write-through persistence.

Every mutating call runs validation → mutation → cascade → persist to
completion without yielding. The store is not safe for concurrent callers;
hosts must serialize access to a single instance.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from enum import Enum

from matetracker.config import CapacityConfig, TrackerConfig
from matetracker.store import aggregation
from matetracker.store.backend import FileBackend, PersistenceBackend, PersistenceError
from matetracker.store.codec import decode_state, encode_state
from matetracker.store.integrity import cascade_item_delete, cascade_user_delete
from matetracker.store.models import (
    Clock,
    ConsumptionRecord,
    Item,
    PaymentRecord,
    StoreState,
    UptimeClock,
    User,
    names_match,
)

logger = logging.getLogger(__name__)

DEFAULT_KEY = "state"
DEFAULT_SIZE_WARN_BYTES = 15000


class StoreStatus(str, Enum):
    OK = "ok"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    NOT_FOUND = "not_found"
    PERSISTENCE_FAILED = "persistence_failed"


class RecordStore:
    """Owns users, items, consumption and payments for one device."""

    def __init__(
        self,
        backend: PersistenceBackend,
        capacity: CapacityConfig | None = None,
        *,
        clock: Clock | None = None,
        key: str = DEFAULT_KEY,
        size_warn_bytes: int = DEFAULT_SIZE_WARN_BYTES,
        persist_retries: int = 1,
        state: StoreState | None = None,
    ) -> None:
        self.backend = backend
        self.capacity = capacity or CapacityConfig()
        self.clock = clock or UptimeClock()
        self.key = key
        self.size_warn_bytes = size_warn_bytes
        self.persist_retries = max(0, persist_retries)
        self._state = state or StoreState()

    # ── Initialization ────────────────────────────────────────

    @classmethod
    def open(
        cls,
        backend: PersistenceBackend,
        capacity: CapacityConfig | None = None,
        *,
        clock: Clock | None = None,
        key: str = DEFAULT_KEY,
        size_warn_bytes: int = DEFAULT_SIZE_WARN_BYTES,
        persist_retries: int = 1,
    ) -> RecordStore:
        """Load the persisted document from the backend, or start empty."""
        try:
            blob = backend.get(key, b"")
        except PersistenceError as e:
            logger.warning("Could not read persisted state, starting empty: %s", e)
            blob = b""
        if not blob:
            logger.info("No saved data found, starting fresh")
        state = decode_state(blob)
        store = cls(
            backend,
            capacity,
            clock=clock,
            key=key,
            size_warn_bytes=size_warn_bytes,
            persist_retries=persist_retries,
            state=state,
        )
        counts = store.counts()
        logger.info(
            "Loaded %d users, %d items, %d consumption records, %d payments",
            counts["users"],
            counts["items"],
            counts["consumption"],
            counts["payments"],
        )
        store._warn_if_over_capacity()
        return store

    @classmethod
    def from_config(
        cls,
        config: TrackerConfig,
        backend: PersistenceBackend | None = None,
        clock: Clock | None = None,
    ) -> RecordStore:
        """Open a store wired up from configuration (file backend by default)."""
        return cls.open(
            backend or FileBackend(config.storage.data_dir),
            config.capacity,
            clock=clock,
            key=config.storage.key,
            size_warn_bytes=config.storage.size_warn_bytes,
            persist_retries=config.storage.persist_retries,
        )

    def _warn_if_over_capacity(self) -> None:
        for name, size, limit in self._sizes_and_limits():
            if size > limit:
                logger.warning(
                    "Loaded %d %s, above the configured maximum of %d", size, name, limit
                )

    def _sizes_and_limits(self) -> list[tuple[str, int, int]]:
        return [
            ("users", len(self._state.users), self.capacity.max_users),
            ("items", len(self._state.items), self.capacity.max_items),
            ("consumption", len(self._state.consumption), self.capacity.max_consumption),
            ("payments", len(self._state.payments), self.capacity.max_payments),
        ]

    # ── Persistence ───────────────────────────────────────────

    def _persist(self) -> StoreStatus:
        """Write the full document. Retries, then reports PERSISTENCE_FAILED."""
        data = encode_state(self._state).encode("utf-8")
        if len(data) > self.size_warn_bytes:
            logger.warning(
                "State size %d bytes exceeds recommended limit of %d",
                len(data),
                self.size_warn_bytes,
            )
        attempts = self.persist_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                self.backend.put(self.key, data)
            except PersistenceError as e:
                logger.warning("State write failed (attempt %d/%d): %s", attempt, attempts, e)
                continue
            logger.debug("State saved (%d bytes)", len(data))
            return StoreStatus.OK
        logger.error("State not persisted after %d attempts; durable copy is stale", attempts)
        return StoreStatus.PERSISTENCE_FAILED

    def export_state(self) -> str:
        """Full-state JSON snapshot. Does not write."""
        return encode_state(self._state)

    # ── Users ─────────────────────────────────────────────────

    def user_exists(self, name: str) -> bool:
        return any(names_match(u.name, name) for u in self._state.users)

    def add_user(self, id: str, name: str) -> StoreStatus:
        """Append a user. Duplicate names are the caller's concern (see user_exists)."""
        if len(self._state.users) >= self.capacity.max_users:
            logger.warning("Max users reached (%d)", self.capacity.max_users)
            return StoreStatus.CAPACITY_EXCEEDED
        if any(u.id == id for u in self._state.users):
            raise ValueError(f"duplicate user id {id!r}")
        self._state.users.append(User(id=id, name=name))
        return self._persist()

    def remove_user(self, id: str) -> StoreStatus:
        """Remove a user and every consumption/payment record that references it."""
        for index, user in enumerate(self._state.users):
            if user.id == id:
                del self._state.users[index]
                cascade_user_delete(self._state.consumption, self._state.payments, id)
                logger.info("Removed user %s (%s)", id, user.name)
                return self._persist()
        return StoreStatus.NOT_FOUND

    def get_user(self, id: str) -> User | None:
        for user in self._state.users:
            if user.id == id:
                return replace(user)
        return None

    # ── Items ─────────────────────────────────────────────────

    def item_exists(self, name: str) -> bool:
        return any(names_match(i.name, name) for i in self._state.items)

    def add_item(self, id: str, name: str, price: float, initial_stock: int) -> StoreStatus:
        if not math.isfinite(price):
            raise ValueError(f"price must be finite, got {price}")
        if len(self._state.items) >= self.capacity.max_items:
            logger.warning("Max items reached (%d)", self.capacity.max_items)
            return StoreStatus.CAPACITY_EXCEEDED
        if any(i.id == id for i in self._state.items):
            raise ValueError(f"duplicate item id {id!r}")
        self._state.items.append(
            Item(id=id, name=name, price=float(price), initial_stock=int(initial_stock))
        )
        return self._persist()

    def remove_item(self, id: str) -> StoreStatus:
        """Remove an item and every consumption/payment record that references it."""
        for index, item in enumerate(self._state.items):
            if item.id == id:
                del self._state.items[index]
                cascade_item_delete(self._state.consumption, self._state.payments, id)
                logger.info("Removed item %s (%s)", id, item.name)
                return self._persist()
        return StoreStatus.NOT_FOUND

    def update_item_stock(self, id: str, new_initial_stock: int) -> StoreStatus:
        """Replace initial_stock in place. Consumption history is untouched."""
        for item in self._state.items:
            if item.id == id:
                item.initial_stock = int(new_initial_stock)
                return self._persist()
        return StoreStatus.NOT_FOUND

    def get_item(self, id: str) -> Item | None:
        for item in self._state.items:
            if item.id == id:
                return replace(item)
        return None

    def get_available_stock(self, item_id: str) -> int:
        return aggregation.available_stock(self._state.items, self._state.consumption, item_id)

    # ── Consumption ───────────────────────────────────────────

    def add_consumption(self, id: str, user_id: str, item_id: str, quantity: int) -> StoreStatus:
        """Record units taken. Does not check available stock."""
        if quantity <= 0:
            raise ValueError(f"quantity must be positive, got {quantity}")
        if len(self._state.consumption) >= self.capacity.max_consumption:
            logger.warning("Max consumption records reached (%d)", self.capacity.max_consumption)
            return StoreStatus.CAPACITY_EXCEEDED
        if any(r.id == id for r in self._state.consumption):
            raise ValueError(f"duplicate consumption id {id!r}")
        self._state.consumption.append(
            ConsumptionRecord(
                id=id,
                user_id=user_id,
                item_id=item_id,
                quantity=int(quantity),
                timestamp=self.clock.now(),
            )
        )
        return self._persist()

    def remove_consumption(self, id: str) -> StoreStatus:
        for index, record in enumerate(self._state.consumption):
            if record.id == id:
                del self._state.consumption[index]
                return self._persist()
        return StoreStatus.NOT_FOUND

    # ── Payments ──────────────────────────────────────────────

    def add_payment(self, id: str, user_id: str, item_id: str, amount: float) -> StoreStatus:
        if not math.isfinite(amount) or amount <= 0:
            raise ValueError(f"amount must be positive and finite, got {amount}")
        if len(self._state.payments) >= self.capacity.max_payments:
            logger.warning("Max payment records reached (%d)", self.capacity.max_payments)
            return StoreStatus.CAPACITY_EXCEEDED
        if any(p.id == id for p in self._state.payments):
            raise ValueError(f"duplicate payment id {id!r}")
        self._state.payments.append(
            PaymentRecord(
                id=id,
                user_id=user_id,
                item_id=item_id,
                amount=float(amount),
                timestamp=self.clock.now(),
            )
        )
        return self._persist()

    # ── Reset ─────────────────────────────────────────────────

    def reset(self) -> StoreStatus:
        """Discard all four collections and persist the empty document."""
        self._state.clear()
        logger.info("All data reset")
        return self._persist()

    # ── Read helpers ──────────────────────────────────────────

    @property
    def users(self) -> tuple[User, ...]:
        return tuple(replace(u) for u in self._state.users)

    @property
    def items(self) -> tuple[Item, ...]:
        return tuple(replace(i) for i in self._state.items)

    @property
    def consumption(self) -> tuple[ConsumptionRecord, ...]:
        return tuple(replace(r) for r in self._state.consumption)

    @property
    def payments(self) -> tuple[PaymentRecord, ...]:
        return tuple(replace(p) for p in self._state.payments)

    def counts(self) -> dict[str, int]:
        return {name: size for name, size, _ in self._sizes_and_limits()}

    def overview(self) -> aggregation.Overview:
        return aggregation.overview(self._state.items, self._state.consumption)

    def stock_levels(self, low_stock_threshold: int = 6) -> list[aggregation.StockLevel]:
        return aggregation.stock_levels(
            self._state.items, self._state.consumption, low_stock_threshold
        )

    def balances(self) -> list[aggregation.Balance]:
        return aggregation.balances(
            self._state.users,
            self._state.items,
            self._state.consumption,
            self._state.payments,
        )
