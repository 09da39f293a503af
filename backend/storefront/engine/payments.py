# Overview: Paid/outstanding rules for a single transaction.

"""
Payment Ledger

Works on anything exposing ``total_amount_cents`` and ``paid_amount_cents``:
the engine's TransactionRecord on the client and the SQLAlchemy Transaction
row on the server both go through these functions, so the rules cannot drift.

INVARIANT: 0 <= paid_amount_cents <= total_amount_cents, before and after every
call. A rejected call leaves the transaction untouched.

ORDERING: when one update both revises the total and adds a payment, the
revision is applied first, so the payment is bounded by the new outstanding.
"""

from __future__ import annotations

from .errors import InvalidClassification, InvalidTotal, NegativeBalance
from .money import require_amount
from .records import (
    Classification,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
)


def outstanding(txn) -> int:
    return txn.total_amount_cents - txn.paid_amount_cents


def payment_status(txn) -> str:
    if txn.paid_amount_cents == 0 and txn.total_amount_cents > 0:
        return PAYMENT_STATUS_UNPAID
    if txn.paid_amount_cents < txn.total_amount_cents:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_PAID


def initial_paid(classification: Classification, total_amount_cents: int, entered_paid_cents: int = 0) -> int:
    """
    Paid amount a new transaction starts with.

    CASH is settled at the counter; CREDIT starts with whatever the operator
    took (0 up to the total); ESTIMATE never becomes a transaction.
    """
    total_amount_cents = require_amount(total_amount_cents, field="total_amount_cents")
    if classification is Classification.CASH:
        return total_amount_cents
    if classification is Classification.CREDIT:
        entered_paid_cents = require_amount(entered_paid_cents or 0, field="paid_amount_cents")
        if entered_paid_cents > total_amount_cents:
            raise NegativeBalance(
                "Paid amount cannot exceed the total",
                {"paid_amount_cents": entered_paid_cents, "total_amount_cents": total_amount_cents},
            )
        return entered_paid_cents
    raise InvalidClassification("Estimates are never recorded as transactions")


def _check_payment(amount_cents: int, outstanding_cents: int) -> int:
    amount_cents = require_amount(amount_cents, field="amount_cents")
    if amount_cents <= 0:
        raise NegativeBalance("Payment amount must be positive", {"amount_cents": amount_cents})
    if amount_cents > outstanding_cents:
        raise NegativeBalance(
            "Payment exceeds the outstanding balance",
            {"amount_cents": amount_cents, "outstanding_cents": outstanding_cents},
        )
    return amount_cents


def _check_total(new_total_cents: int, paid_amount_cents: int) -> int:
    new_total_cents = require_amount(new_total_cents, field="new_total_amount_cents")
    if new_total_cents < paid_amount_cents:
        raise InvalidTotal(
            "Total cannot be lower than the amount already paid",
            {"new_total_amount_cents": new_total_cents, "paid_amount_cents": paid_amount_cents},
        )
    return new_total_cents


def apply_payment(txn, amount_cents: int):
    amount_cents = _check_payment(amount_cents, outstanding(txn))
    txn.paid_amount_cents += amount_cents
    return txn


def revise_total(txn, new_total_cents: int):
    txn.total_amount_cents = _check_total(new_total_cents, txn.paid_amount_cents)
    return txn


def update(txn, *, add_payment_cents: int | None = None, new_total_amount_cents: int | None = None):
    """
    Revise the total and/or add a payment in one all-or-nothing step.

    Both checks run against the would-be state before anything is written.
    """
    if add_payment_cents is None and new_total_amount_cents is None:
        return txn

    total = txn.total_amount_cents
    if new_total_amount_cents is not None:
        total = _check_total(new_total_amount_cents, txn.paid_amount_cents)

    paid = txn.paid_amount_cents
    if add_payment_cents is not None:
        paid += _check_payment(add_payment_cents, total - paid)

    txn.total_amount_cents = total
    txn.paid_amount_cents = paid
    return txn
