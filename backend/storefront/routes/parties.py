# Overview: Flask API routes for buyers and suppliers; parses input and returns JSON responses.

"""
Buyer and supplier directories share one set of handlers; each kind gets its
own blueprint (/api/buyers, /api/suppliers).

Every party in a response embeds its transactions and a computed
outstanding_cents balance.
"""

from flask import Blueprint, request, jsonify, current_app

from ..engine.errors import LedgerError
from ..engine.records import PartyKind
from ..services import party_service
from ..decorators import require_auth
from ..validation import json_body


def _party_blueprint(kind: PartyKind, name: str, url_prefix: str) -> Blueprint:
    bp = Blueprint(name, __name__, url_prefix=url_prefix)
    label = kind.value.lower()

    @bp.get("")
    @require_auth
    def list_parties():
        """Query params: q (optional) - case-insensitive name search."""
        return jsonify(party_service.list_parties(kind, search=request.args.get("q")))

    @bp.get("/<int:party_id>")
    @require_auth
    def get_party(party_id: int):
        try:
            party = party_service.get_party(kind, party_id)
            return jsonify({"party": party_service.serialize_party(party)})
        except LedgerError as e:
            return jsonify(e.to_dict()), e.http_status

    @bp.post("")
    @require_auth
    def create_party():
        try:
            party = party_service.create_party(kind, json_body())
            return jsonify({"party": party_service.serialize_party(party)}), 201
        except LedgerError as e:
            return jsonify(e.to_dict()), e.http_status
        except Exception:
            current_app.logger.exception("Failed to create %s", label)
            return jsonify({"error": "Internal server error"}), 500

    @bp.put("/<int:party_id>")
    @require_auth
    def update_party(party_id: int):
        try:
            party = party_service.update_party(kind, party_id, json_body())
            return jsonify({"party": party_service.serialize_party(party)}), 200
        except LedgerError as e:
            return jsonify(e.to_dict()), e.http_status
        except Exception:
            current_app.logger.exception("Failed to update %s %s", label, party_id)
            return jsonify({"error": "Internal server error"}), 500

    @bp.delete("/<int:party_id>")
    @require_auth
    def delete_party(party_id: int):
        try:
            party_service.delete_party(kind, party_id)
            return jsonify({"ok": True}), 200
        except LedgerError as e:
            return jsonify(e.to_dict()), e.http_status
        except Exception:
            current_app.logger.exception("Failed to delete %s %s", label, party_id)
            return jsonify({"error": "Internal server error"}), 500

    return bp


buyers_bp = _party_blueprint(PartyKind.BUYER, "buyers", "/api/buyers")
suppliers_bp = _party_blueprint(PartyKind.SUPPLIER, "suppliers", "/api/suppliers")
