"""Entry point: python -m matetracker <command> [args]

- "state":   Print the full exported state document (default)
- "summary": Overview, stock levels and balances
- Mutating commands write through to the data directory immediately.
"""

from __future__ import annotations

import logging
import sys

from matetracker.config import TrackerConfig, load_config
from matetracker.errors import TrackerError
from matetracker.service import Summary, TrackerService
from matetracker.store.record_store import RecordStore

USAGE = """\
Usage: python -m matetracker <command> [args]
  state                          Print the full state document (default)
  summary                        Overview, stock levels and balances
  add-user NAME                  Add a user
  remove-user USER_ID            Remove a user and their records
  add-item NAME PRICE [STOCK]    Add an item
  remove-item ITEM_ID            Remove an item and its records
  set-stock ITEM_ID STOCK        Replace an item's initial stock
  consume USER_ID ITEM_ID QTY    Record consumption
  pay USER_ID ITEM_ID AMOUNT     Record a payment
  reset                          Delete all data"""


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_service(config: TrackerConfig) -> TrackerService:
    store = RecordStore.from_config(config)
    return TrackerService(store, config.inventory)


def _format_summary(summary: Summary) -> str:
    o = summary.overview
    lines = [
        f"Total stock: {o.total_stock}  consumed: {o.total_consumed}  "
        f"remaining: {o.total_remaining}",
        "",
        "Stock:",
    ]
    if not summary.stock:
        lines.append("  (no items)")
    for s in summary.stock:
        lines.append(
            f"  {s.name} [{s.item_id}] {s.remaining}/{s.initial_stock} left "
            f"@ {s.price:.2f} ({s.status})"
        )
    lines += ["", "Balances:"]
    if not summary.balances:
        lines.append("  (no consumption recorded yet)")
    for b in summary.balances:
        if b.amount_owed > 0:
            owed = f"{b.amount_owed:.2f} owed"
        elif b.amount_owed < 0:
            owed = f"{-b.amount_owed:.2f} credit"
        else:
            owed = "settled"
        lines.append(
            f"  {b.user_name} / {b.item_name}: {b.consumed} consumed, "
            f"{b.paid:.2f} paid, {owed}"
        )
    return "\n".join(lines)


def _run(service: TrackerService, cmd: str, args: list[str]) -> str:
    if cmd == "state":
        return service.store.export_state()
    if cmd == "summary":
        return _format_summary(service.summary())
    if cmd == "add-user" and len(args) == 1:
        user = service.add_user(args[0])
        return f"Added user {user.name} ({user.id})"
    if cmd == "remove-user" and len(args) == 1:
        service.remove_user(args[0])
        return f"Removed user {args[0]}"
    if cmd == "add-item" and len(args) in (2, 3):
        stock = int(args[2]) if len(args) == 3 else None
        item = service.add_item(args[0], float(args[1]), stock)
        return f"Added item {item.name} ({item.id}), stock {item.initial_stock}"
    if cmd == "remove-item" and len(args) == 1:
        service.remove_item(args[0])
        return f"Removed item {args[0]}"
    if cmd == "set-stock" and len(args) == 2:
        item = service.update_item_stock(args[0], int(args[1]))
        return f"Stock of {item.name} set to {item.initial_stock}"
    if cmd == "consume" and len(args) == 3:
        record = service.record_consumption(args[0], args[1], int(args[2]))
        return f"Recorded {record.quantity} ({record.id})"
    if cmd == "pay" and len(args) == 3:
        payment = service.record_payment(args[0], args[1], float(args[2]))
        return f"Recorded payment of {payment.amount:.2f} ({payment.id})"
    if cmd == "reset" and not args:
        service.reset()
        return "All data reset"
    raise SystemExit(USAGE)


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    cmd = argv[0] if argv else "state"

    config = load_config()
    _setup_logging(config.log_level)
    service = _build_service(config)

    try:
        print(_run(service, cmd, argv[1:]))
    except TrackerError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
