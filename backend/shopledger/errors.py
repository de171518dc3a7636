# Overview: Error taxonomy shared by services and routes.

"""
Every failure the core can report maps to exactly one of these classes.

Services raise them; routes turn them into JSON with ``status_code``.
Anything raised inside a transactional operation rolls the session back
before it reaches the caller (see services/concurrency.py).
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for expected, caller-visible failures."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(LedgerError, ValueError):
    """400-level input problem."""


class ConflictError(LedgerError, ValueError):
    """409-level business rule conflict (e.g., duplicate product name)."""

    status_code = 409


class NotFoundError(LedgerError):
    """Referenced customer, product or sale does not exist (or is inactive)."""

    status_code = 404


class InsufficientStockError(LedgerError):
    """A stock decrement would drive quantity below zero."""

    status_code = 409


class AlreadySettledError(LedgerError):
    """Payment attempted on a sale that is already fully paid."""

    status_code = 409


class InvalidAmountError(LedgerError):
    """Payment amount is non-numeric or not positive."""


class StorageFailure(LedgerError):
    """Commit failure, lock timeout, or exhausted concurrency retries."""

    status_code = 503
