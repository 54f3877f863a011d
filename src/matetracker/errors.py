"""Exceptions raised by the service layer.

Each carries an HTTP-style ``status`` so a transport can map it directly.
"""

from __future__ import annotations


class TrackerError(Exception):
    status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    status = 400


class ConflictError(TrackerError):
    status = 400


class InsufficientStockError(TrackerError):
    status = 400


class NotFoundError(TrackerError):
    status = 404


class CapacityError(TrackerError):
    status = 500


class PersistenceFailedError(TrackerError):
    """The change is applied in memory but could not be written durably."""

    status = 500
