# Overview: Domain errors raised by the stock ledger and the services built on it.

from __future__ import annotations


class StockroomError(Exception):
    """Base for ledger errors; ``details`` is safe to return to the client."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(StockroomError):
    """Referenced product, sale or shipment does not exist (in this organization)."""


class InsufficientStockError(StockroomError):
    """A decrement would push current stock below zero."""
    def __init__(self, available: int, requested: int, message: str | None = None):
        super().__init__(
            message or f"Insufficient stock. Available: {available}, Requested: {requested}",
            details={"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class TransactionConflictError(StockroomError):
    """Concurrent writers collided and retries were exhausted; retry from a fresh read."""
