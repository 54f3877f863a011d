"""JSON codec for the persisted/exported state document.

Wire layout (all four keys always present, records in insertion order):

    {"users": [...], "items": [...], "consumption": [...], "payments": [...]}

Decoding never raises. Each top-level array is validated on its own; one that
is missing or does not match its schema loads as empty and the rest of the
document is kept.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
)

from matetracker.store.models import (
    ConsumptionRecord,
    Item,
    PaymentRecord,
    StoreState,
    User,
)

logger = logging.getLogger(__name__)


class _Doc(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)


class UserDoc(_Doc):
    id: StrictStr
    name: StrictStr


class ItemDoc(_Doc):
    id: StrictStr
    name: StrictStr
    price: StrictFloat
    initialStock: StrictInt


class ConsumptionDoc(_Doc):
    id: StrictStr
    userId: StrictStr
    itemId: StrictStr
    quantity: StrictInt
    timestamp: StrictStr


class PaymentDoc(_Doc):
    id: StrictStr
    userId: StrictStr
    itemId: StrictStr
    amount: StrictFloat
    timestamp: StrictStr


_ADAPTERS: dict[str, TypeAdapter] = {
    "users": TypeAdapter(list[UserDoc]),
    "items": TypeAdapter(list[ItemDoc]),
    "consumption": TypeAdapter(list[ConsumptionDoc]),
    "payments": TypeAdapter(list[PaymentDoc]),
}


# ── Encoding ─────────────────────────────────────────────────


def state_to_dict(state: StoreState) -> dict[str, list[dict[str, Any]]]:
    return {
        "users": [{"id": u.id, "name": u.name} for u in state.users],
        "items": [
            {"id": i.id, "name": i.name, "price": i.price, "initialStock": i.initial_stock}
            for i in state.items
        ],
        "consumption": [
            {
                "id": r.id,
                "userId": r.user_id,
                "itemId": r.item_id,
                "quantity": r.quantity,
                "timestamp": r.timestamp,
            }
            for r in state.consumption
        ],
        "payments": [
            {
                "id": p.id,
                "userId": p.user_id,
                "itemId": p.item_id,
                "amount": p.amount,
                "timestamp": p.timestamp,
            }
            for p in state.payments
        ],
    }


def encode_state(state: StoreState) -> str:
    """Serialize the whole store as compact JSON.

    Raises ValueError for a non-finite price or amount.
    """
    return json.dumps(
        state_to_dict(state), ensure_ascii=False, allow_nan=False, separators=(",", ":")
    )


# ── Decoding ─────────────────────────────────────────────────


def _validate_field(doc: dict, name: str) -> list:
    if name not in doc:
        logger.warning("Malformed persisted state: no '%s' field, loading it empty", name)
        return []
    try:
        return _ADAPTERS[name].validate_python(doc[name])
    except ValidationError as e:
        logger.warning(
            "Malformed persisted state in '%s' (%d errors), loading it empty",
            name,
            e.error_count(),
        )
        return []


def decode_state(blob: bytes | str | None) -> StoreState:
    """Parse a persisted document into a StoreState, substituting empties for bad parts."""
    if not blob:
        return StoreState()
    try:
        doc = json.loads(blob)
    except (ValueError, RecursionError) as e:
        logger.warning("Malformed persisted state, starting empty: %s", e)
        return StoreState()
    if not isinstance(doc, dict):
        logger.warning(
            "Malformed persisted state: expected an object, got %s", type(doc).__name__
        )
        return StoreState()

    users: list[UserDoc] = _validate_field(doc, "users")
    items: list[ItemDoc] = _validate_field(doc, "items")
    consumption: list[ConsumptionDoc] = _validate_field(doc, "consumption")
    payments: list[PaymentDoc] = _validate_field(doc, "payments")

    return StoreState(
        users=[User(id=u.id, name=u.name) for u in users],
        items=[
            Item(id=i.id, name=i.name, price=i.price, initial_stock=i.initialStock)
            for i in items
        ],
        consumption=[
            ConsumptionRecord(
                id=r.id,
                user_id=r.userId,
                item_id=r.itemId,
                quantity=r.quantity,
                timestamp=r.timestamp,
            )
            for r in consumption
        ],
        payments=[
            PaymentRecord(
                id=p.id,
                user_id=p.userId,
                item_id=p.itemId,
                amount=p.amount,
                timestamp=p.timestamp,
            )
            for p in payments
        ],
    )
