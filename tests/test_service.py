"""Tests for the tracker service layer."""

from __future__ import annotations

import itertools

import pytest

from matetracker.config import CapacityConfig, InventoryConfig
from matetracker.errors import (
    CapacityError,
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PersistenceFailedError,
    TrackerError,
    ValidationError,
)
from matetracker.service import TrackerService
from matetracker.store.backend import MemoryBackend
from matetracker.store.record_store import RecordStore


@pytest.fixture
def service(store: RecordStore) -> TrackerService:
    counter = itertools.count(1)
    return TrackerService(store, id_factory=lambda: f"id{next(counter)}")


class TestUsers:
    def test_add_user(self, service: TrackerService):
        user = service.add_user("  Alice ")
        assert user.id == "id1"
        assert user.name == "Alice"
        assert service.store.user_exists("alice")

    def test_duplicate_name(self, service: TrackerService):
        service.add_user("Alice")
        with pytest.raises(ConflictError, match="User already exists"):
            service.add_user("ALICE")

    def test_empty_name(self, service: TrackerService):
        with pytest.raises(ValidationError, match="Name is required"):
            service.add_user("   ")

    def test_remove_unknown(self, service: TrackerService):
        with pytest.raises(NotFoundError, match="User not found") as exc:
            service.remove_user("ghost")
        assert exc.value.status == 404

    def test_capacity(self, backend: MemoryBackend):
        store = RecordStore(backend, CapacityConfig(max_users=1))
        service = TrackerService(store)
        service.add_user("Alice")
        with pytest.raises(CapacityError) as exc:
            service.add_user("Bob")
        assert exc.value.status == 500

    def test_generated_ids_are_unique(self, store: RecordStore):
        service = TrackerService(store)
        a = service.add_user("Alice")
        b = service.add_user("Bob")
        assert a.id != b.id


class TestItems:
    def test_default_stock(self, service: TrackerService):
        item = service.add_item("Mate", 1.5)
        assert item.initial_stock == 24

    def test_configured_default_stock(self, store: RecordStore):
        service = TrackerService(store, InventoryConfig(default_initial_stock=6))
        assert service.add_item("Mate", 1.5).initial_stock == 6

    @pytest.mark.parametrize("price", [0, -1.0, float("nan"), float("inf")])
    def test_invalid_price(self, service: TrackerService, price):
        with pytest.raises(ValidationError, match="Invalid price"):
            service.add_item("Mate", price)

    def test_negative_stock(self, service: TrackerService):
        with pytest.raises(ValidationError):
            service.add_item("Mate", 1.5, -1)

    def test_duplicate_name(self, service: TrackerService):
        service.add_item("Mate", 1.5)
        with pytest.raises(ConflictError, match="Item already exists"):
            service.add_item("mate", 2.0)

    def test_update_stock(self, service: TrackerService):
        item = service.add_item("Mate", 1.5, 10)
        assert service.update_item_stock(item.id, 30).initial_stock == 30

    def test_update_stock_invalid(self, service: TrackerService):
        item = service.add_item("Mate", 1.5, 10)
        with pytest.raises(ValidationError, match="Invalid stock value"):
            service.update_item_stock(item.id, -1)

    def test_update_stock_unknown(self, service: TrackerService):
        with pytest.raises(NotFoundError, match="Item not found"):
            service.update_item_stock("nope", 3)

    def test_remove_item(self, service: TrackerService):
        item = service.add_item("Mate", 1.5, 10)
        service.remove_item(item.id)
        assert not service.store.item_exists("Mate")
        with pytest.raises(NotFoundError):
            service.remove_item(item.id)


class TestConsumption:
    @pytest.fixture
    def ids(self, service: TrackerService) -> tuple[str, str]:
        user = service.add_user("Alice")
        item = service.add_item("Mate", 2.0, 10)
        return user.id, item.id

    def test_record(self, service: TrackerService, ids):
        user_id, item_id = ids
        record = service.record_consumption(user_id, item_id, 3)
        assert record.quantity == 3
        assert record.user_id == user_id
        assert service.store.get_available_stock(item_id) == 7

    def test_not_enough_stock(self, service: TrackerService, ids):
        user_id, item_id = ids
        service.record_consumption(user_id, item_id, 8)
        with pytest.raises(InsufficientStockError, match="Not enough stock"):
            service.record_consumption(user_id, item_id, 3)
        assert service.store.get_available_stock(item_id) == 2

    def test_exact_remaining_allowed(self, service: TrackerService, ids):
        user_id, item_id = ids
        service.record_consumption(user_id, item_id, 10)
        assert service.store.get_available_stock(item_id) == 0

    @pytest.mark.parametrize("quantity", [0, -2, None])
    def test_invalid_quantity(self, service: TrackerService, ids, quantity):
        user_id, item_id = ids
        with pytest.raises(ValidationError, match="Invalid input"):
            service.record_consumption(user_id, item_id, quantity)

    def test_unknown_item(self, service: TrackerService, ids):
        user_id, _ = ids
        with pytest.raises(NotFoundError, match="Item not found"):
            service.record_consumption(user_id, "nope", 1)

    def test_unknown_user(self, service: TrackerService, ids):
        _, item_id = ids
        with pytest.raises(NotFoundError, match="User not found"):
            service.record_consumption("nobody", item_id, 1)

    def test_remove(self, service: TrackerService, ids):
        user_id, item_id = ids
        record = service.record_consumption(user_id, item_id, 4)
        service.remove_consumption(record.id)
        assert service.store.get_available_stock(item_id) == 10
        with pytest.raises(NotFoundError, match="Consumption record not found"):
            service.remove_consumption(record.id)


class TestPayments:
    def test_record_and_balance(self, service: TrackerService):
        user = service.add_user("Alice")
        item = service.add_item("Mate", 2.0, 10)
        service.record_consumption(user.id, item.id, 3)
        payment = service.record_payment(user.id, item.id, 4.0)
        assert payment.amount == 4.0

        summary = service.summary()
        assert len(summary.balances) == 1
        assert summary.balances[0].amount_owed == 2.0
        assert summary.overview.total_remaining == 7
        assert summary.stock[0].status == "in_stock"

    @pytest.mark.parametrize("amount", [0, -5.0, float("nan"), float("inf"), float("-inf")])
    def test_invalid_amount(self, service: TrackerService, amount):
        user = service.add_user("Alice")
        item = service.add_item("Mate", 2.0, 10)
        with pytest.raises(ValidationError):
            service.record_payment(user.id, item.id, amount)
        assert service.store.payments == ()


class TestState:
    def test_state_and_reset(self, service: TrackerService):
        service.add_user("Alice")
        assert [u["name"] for u in service.state()["users"]] == ["Alice"]
        service.reset()
        assert service.state() == {"users": [], "items": [], "consumption": [], "payments": []}

    def test_persistence_failure_surfaces(self, service: TrackerService, backend: MemoryBackend):
        backend.fail_writes = True
        with pytest.raises(PersistenceFailedError) as exc:
            service.add_user("Alice")
        assert isinstance(exc.value, TrackerError)
        assert service.store.user_exists("Alice")
