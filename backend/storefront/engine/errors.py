# Overview: Typed failures raised by the ledger engine and the storefront API.

"""
Ledger error taxonomy.

Every rejected ledger operation raises one of these. Each carries a stable
``code`` (used on the wire) and an optional ``details`` dict, so the API can
serialize a failure and the client can raise the same type again on its side.

Validation failures (InvalidQuantity, MissingParty, NegativeBalance,
InvalidTotal) are raised before any persistence call is made.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger failures."""

    code = "LEDGER_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class ValidationError(LedgerError):
    """Plain input problem (missing name, malformed field)."""

    code = "VALIDATION_ERROR"


class InvalidQuantity(LedgerError):
    code = "INVALID_QUANTITY"


class InsufficientStock(LedgerError):
    code = "INSUFFICIENT_STOCK"
    http_status = 409


class MissingParty(LedgerError):
    code = "MISSING_PARTY"


class NegativeBalance(LedgerError):
    code = "NEGATIVE_BALANCE"
    http_status = 409


class InvalidTotal(LedgerError):
    code = "INVALID_TOTAL"
    http_status = 409


class InvalidClassification(LedgerError):
    code = "INVALID_CLASSIFICATION"


class BillStateError(LedgerError):
    """Cart mutation or submission attempted in the wrong bill state."""

    code = "BILL_STATE"
    http_status = 409


class NotFound(LedgerError):
    code = "NOT_FOUND"
    http_status = 404


class AuthError(LedgerError):
    code = "AUTH_ERROR"
    http_status = 401


class PartyInUse(LedgerError):
    """Party still referenced by transactions; the transaction list is never deleted."""

    code = "PARTY_IN_USE"
    http_status = 409


class PersistenceFailure(LedgerError):
    """Collaborator unreachable, or it rejected a write for an unmapped reason."""

    code = "PERSISTENCE_FAILURE"
    http_status = 502

    def __init__(self, message: str, details: dict | None = None, status_code: int | None = None):
        super().__init__(message, details)
        self.status_code = status_code


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        ValidationError,
        InvalidQuantity,
        InsufficientStock,
        MissingParty,
        NegativeBalance,
        InvalidTotal,
        InvalidClassification,
        BillStateError,
        NotFound,
        AuthError,
        PartyInUse,
    )
}
