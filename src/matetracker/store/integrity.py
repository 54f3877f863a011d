"""Cascade deletes for records that reference a removed user or item."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from matetracker.store.models import ConsumptionRecord, PaymentRecord

logger = logging.getLogger(__name__)

R = TypeVar("R", ConsumptionRecord, PaymentRecord)


def _drop_where(records: list[R], predicate: Callable[[R], bool]) -> int:
    """Filter a list in place, keeping survivor order. Returns count removed."""
    before = len(records)
    records[:] = [r for r in records if not predicate(r)]
    return before - len(records)


def cascade_user_delete(
    consumption: list[ConsumptionRecord],
    payments: list[PaymentRecord],
    user_id: str,
) -> int:
    """Remove every consumption and payment record of a deleted user."""
    removed = _drop_where(consumption, lambda r: r.user_id == user_id)
    removed += _drop_where(payments, lambda p: p.user_id == user_id)
    if removed:
        logger.debug("Cascaded %d records for user %s", removed, user_id)
    return removed


def cascade_item_delete(
    consumption: list[ConsumptionRecord],
    payments: list[PaymentRecord],
    item_id: str,
) -> int:
    """Remove every consumption and payment record of a deleted item."""
    removed = _drop_where(consumption, lambda r: r.item_id == item_id)
    removed += _drop_where(payments, lambda p: p.item_id == item_id)
    if removed:
        logger.debug("Cascaded %d records for item %s", removed, item_id)
    return removed
