# Overview: Roll-ups of money owed by buyers (udhaar) and owed to suppliers (payables).

"""
Party Balance Aggregator

Balances are recomputed from the full transaction list on every read. There
is no stored running balance, so a transaction list that changed between two
reads never needs a migration of a separate field.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .records import PartyKind, PartyRecord

STATUS_CLEAR = "Clear"
STATUS_PENDING = "Pending"
STATUS_WARNING = "Warning"
STATUS_HIGH_ALERT = "High Alert"
STATUS_OVERDUE = "Overdue"

# Rs. 75,000 / Rs. 1,00,000 in paise
DEFAULT_WARNING_CENTS = 7_500_000
DEFAULT_ALERT_CENTS = 10_000_000


def _party_ref(party) -> int:
    return party if isinstance(party, int) else party.id


def outstanding_for(party, transactions: Iterable) -> int:
    """Sum of (total - paid) over every transaction referencing the party."""
    party_id = _party_ref(party)
    return sum(
        t.total_amount_cents - t.paid_amount_cents
        for t in transactions
        if t.party_id == party_id
    )


def status_for(
    outstanding_cents: int,
    kind: PartyKind = PartyKind.BUYER,
    *,
    warning_cents: int = DEFAULT_WARNING_CENTS,
    alert_cents: int = DEFAULT_ALERT_CENTS,
) -> str:
    if outstanding_cents <= 0:
        return STATUS_CLEAR
    if outstanding_cents >= alert_cents:
        return STATUS_OVERDUE if kind is PartyKind.SUPPLIER else STATUS_HIGH_ALERT
    if outstanding_cents >= warning_cents:
        return STATUS_WARNING
    return STATUS_PENDING


@dataclass(frozen=True)
class PartyBalance:
    party_id: int
    name: str
    kind: PartyKind
    outstanding_cents: int
    transaction_count: int
    last_transaction_at: str | None
    status: str

    def to_dict(self) -> dict:
        return {
            "party_id": self.party_id,
            "name": self.name,
            "kind": self.kind.value,
            "outstanding_cents": self.outstanding_cents,
            "transaction_count": self.transaction_count,
            "last_transaction_at": self.last_transaction_at,
            "status": self.status,
        }


class BalanceAggregator:
    """Directory summaries for buyers or suppliers."""

    def __init__(self, *, warning_cents: int = DEFAULT_WARNING_CENTS, alert_cents: int = DEFAULT_ALERT_CENTS):
        self.warning_cents = warning_cents
        self.alert_cents = alert_cents

    def balance(self, party: PartyRecord, transactions: Iterable | None = None) -> PartyBalance:
        txns = [t for t in (party.transactions if transactions is None else transactions) if t.party_id == party.id]
        owed = outstanding_for(party, txns)
        dates = [t.created_at for t in txns if t.created_at]
        return PartyBalance(
            party_id=party.id,
            name=party.name,
            kind=party.kind,
            outstanding_cents=owed,
            transaction_count=len(txns),
            last_transaction_at=max(dates) if dates else None,
            status=status_for(owed, party.kind, warning_cents=self.warning_cents, alert_cents=self.alert_cents),
        )

    def summarize(self, parties: Iterable[PartyRecord], *, search: str | None = None) -> list[PartyBalance]:
        needle = (search or "").strip().lower()
        return [
            self.balance(p)
            for p in parties
            if not needle or needle in p.name.lower()
        ]

    @staticmethod
    def total_outstanding(balances: Iterable[PartyBalance]) -> int:
        return sum(b.outstanding_cents for b in balances)
