"""Mate Tracker: shared-consumable inventory, consumption and payments for a small group."""

__version__ = "1.0.0"
