# Overview: Service-layer operations for buyers and suppliers; directory reads with live balances.

"""
Party directory.

Outstanding balances are never stored: every read builds engine records from
the party's transactions and runs them through the BalanceAggregator.
"""

from __future__ import annotations

import logging

from flask import current_app

from ..engine.balances import BalanceAggregator
from ..engine.errors import NotFound, PartyInUse, ValidationError
from ..engine.records import PartyKind, PartyRecord
from ..extensions import db
from ..models import Party, Transaction
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

# Editable fields per kind
PARTY_FIELDS = {
    PartyKind.BUYER: ("name", "phone", "address"),
    PartyKind.SUPPLIER: ("name", "phone", "company_name"),
}


def _aggregator() -> BalanceAggregator:
    return BalanceAggregator(
        warning_cents=current_app.config["BALANCE_WARNING_CENTS"],
        alert_cents=current_app.config["BALANCE_ALERT_CENTS"],
    )


def serialize_party(party: Party, aggregator: BalanceAggregator | None = None) -> dict:
    """Party with embedded transactions plus its computed balance summary."""
    data = party.to_dict(include_transactions=True)
    balance = (aggregator or _aggregator()).balance(PartyRecord.from_dict(data))
    data.update({
        "outstanding_cents": balance.outstanding_cents,
        "transaction_count": balance.transaction_count,
        "last_transaction_at": balance.last_transaction_at,
        "status": balance.status,
    })
    return data


def list_parties(kind, *, search: str | None = None) -> dict:
    kind = PartyKind.from_tag(kind)
    query = db.session.query(Party).filter(Party.kind == kind.value)
    if search:
        query = query.filter(Party.name.ilike(f"%{search.strip()}%"))
    parties = query.order_by(Party.name.asc(), Party.id.asc()).all()

    aggregator = _aggregator()
    rows = [serialize_party(p, aggregator) for p in parties]
    return {
        "parties": rows,
        "total_outstanding_cents": sum(r["outstanding_cents"] for r in rows),
    }


def get_party(kind, party_id: int) -> Party:
    kind = PartyKind.from_tag(kind)
    party = db.session.get(Party, party_id)
    if not party or party.kind != kind.value:
        raise NotFound(f"{kind.value.title()} {party_id} not found", {"party_id": party_id})
    return party


def _clean_fields(kind: PartyKind, payload: dict, *, partial: bool) -> dict:
    allowed = PARTY_FIELDS[kind]
    unknown = sorted(set(payload) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", {"fields": unknown})

    fields = {}
    for key in allowed:
        if key not in payload:
            continue
        value = payload[key]
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{key} must be a string", {"field": key})
        fields[key] = (value or "").strip() or None

    if (not partial or "name" in fields) and not fields.get("name"):
        raise ValidationError("Name is required", {"field": "name"})
    return fields


def create_party(kind, payload: dict) -> Party:
    kind = PartyKind.from_tag(kind)
    fields = _clean_fields(kind, payload, partial=False)

    def _op():
        party = Party(kind=kind.value, **fields)
        db.session.add(party)
        db.session.commit()
        return party

    party = run_with_retry(_op)
    logger.info("Created %s %s (%s)", kind.value.lower(), party.id, party.name)
    return party


def update_party(kind, party_id: int, payload: dict) -> Party:
    kind = PartyKind.from_tag(kind)
    fields = _clean_fields(kind, payload, partial=True)

    def _op():
        party = get_party(kind, party_id)
        for key, value in fields.items():
            setattr(party, key, value)
        db.session.commit()
        return party

    return run_with_retry(_op)


def delete_party(kind, party_id: int) -> None:
    """Only parties without transactions can be deleted."""
    kind = PartyKind.from_tag(kind)

    def _op():
        party = get_party(kind, party_id)
        count = db.session.query(Transaction.id).filter_by(party_id=party.id).count()
        if count:
            raise PartyInUse(
                f"{party.name} has {count} transaction(s) and cannot be deleted",
                {"party_id": party.id, "transaction_count": count},
            )
        db.session.delete(party)
        db.session.commit()

    run_with_retry(_op)
    logger.info("Deleted %s %s", kind.value.lower(), party_id)
