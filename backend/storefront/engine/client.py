# Overview: httpx client for the storefront API (the engine's persistence collaborator).

"""
Storefront API client

Each method is one blocking round trip. Error responses are turned back into
the typed ledger errors using the ``code`` field of the JSON body; transport
failures and unmapped rejections become PersistenceFailure. Nothing is
retried here: the caller decides whether to re-submit.
"""

from __future__ import annotations

import copy
import logging

import httpx

from . import payments
from .errors import ERRORS_BY_CODE, AuthError, PersistenceFailure
from .records import Direction, PartyKind, PartyRecord, ProductRecord, TransactionRecord
from .session import SessionContext

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_PARTY_PATHS = {
    PartyKind.BUYER: "/api/buyers",
    PartyKind.SUPPLIER: "/api/suppliers",
}

_TRANSACTION_PATHS = {
    Direction.SALE: "/api/sales",
    Direction.PURCHASE: "/api/purchases",
}


def _error_from_response(response: httpx.Response) -> Exception:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("error") or f"HTTP {response.status_code}"
    error_cls = ERRORS_BY_CODE.get(body.get("code"))
    if error_cls is not None:
        return error_cls(message, body.get("details") or {})
    if response.status_code == 401:
        return AuthError(message)
    return PersistenceFailure(message, body.get("details") or {}, status_code=response.status_code)


def _send(http: httpx.Client, method: str, path: str, **kwargs) -> dict:
    try:
        response = http.request(method, path, **kwargs)
    except httpx.HTTPError as exc:
        logger.warning("Storefront API %s %s failed: %s", method, path, exc)
        raise PersistenceFailure(f"Storefront API unreachable: {exc}") from exc

    if response.status_code >= 400:
        raise _error_from_response(response)
    if response.status_code == 204 or not response.content:
        return {}
    try:
        body = response.json()
    except ValueError as exc:
        logger.warning("Storefront API %s %s returned a non-JSON body", method, path)
        raise PersistenceFailure(
            f"Storefront API returned an unreadable response (HTTP {response.status_code})",
            status_code=response.status_code,
        ) from exc
    if not isinstance(body, dict):
        raise PersistenceFailure("Storefront API returned an unexpected response", status_code=response.status_code)
    return body


def _decode(factory, data: dict, key: str):
    """Build a record from one key of a response body; a malformed reply is a PersistenceFailure."""
    try:
        return factory(data[key])
    except (KeyError, TypeError, ValueError) as exc:
        raise PersistenceFailure(f"Storefront API response is missing or malformed: {key}") from exc


def login(
    base_url: str,
    email: str,
    password: str,
    *,
    transport: httpx.BaseTransport | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> SessionContext:
    """Exchange credentials for a SessionContext."""
    with httpx.Client(base_url=base_url, transport=transport, timeout=timeout) as http:
        data = _send(http, "POST", "/api/auth/login", json={"email": email, "password": password})
    return _decode(lambda token: SessionContext(token=token, user=data.get("user") or {}), data, "token")


class StorefrontClient:
    def __init__(
        self,
        base_url: str,
        session: SessionContext,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.session = session
        self._http = httpx.Client(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
            headers=session.auth_headers(),
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "StorefrontClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        return _send(self._http, method, path, **kwargs)

    # -- products ---------------------------------------------------------

    def get_products(self, *, category: str | None = None, search: str | None = None) -> list[ProductRecord]:
        params = {k: v for k, v in {"category": category, "q": search}.items() if v}
        data = self._request("GET", "/api/products", params=params)
        return _decode(lambda rows: [ProductRecord.from_dict(p) for p in rows], data, "products")

    def get_product(self, product_id: int) -> ProductRecord:
        data = self._request("GET", f"/api/products/{product_id}")
        return _decode(ProductRecord.from_dict, data, "product")

    def create_product(
        self,
        *,
        name: str,
        unit_price_cents: int,
        total_quantity: int = 0,
        category: str | None = None,
    ) -> ProductRecord:
        data = self._request("POST", "/api/products", json={
            "name": name,
            "unit_price_cents": unit_price_cents,
            "total_quantity": total_quantity,
            "category": category,
        })
        return _decode(ProductRecord.from_dict, data, "product")

    def restock_product(self, product_id: int, add_quantity: int) -> ProductRecord:
        data = self._request("POST", f"/api/products/{product_id}/restock", json={"add_quantity": add_quantity})
        return _decode(ProductRecord.from_dict, data, "product")

    # -- parties ----------------------------------------------------------

    def get_parties(self, kind) -> list[PartyRecord]:
        kind = PartyKind.from_tag(kind)
        data = self._request("GET", _PARTY_PATHS[kind])
        return _decode(lambda rows: [PartyRecord.from_dict(p) for p in rows], data, "parties")

    def create_party(self, kind, **fields) -> PartyRecord:
        kind = PartyKind.from_tag(kind)
        data = self._request("POST", _PARTY_PATHS[kind], json=fields)
        return _decode(PartyRecord.from_dict, data, "party")

    def update_party(self, kind, party_id: int, **fields) -> PartyRecord:
        kind = PartyKind.from_tag(kind)
        data = self._request("PUT", f"{_PARTY_PATHS[kind]}/{party_id}", json=fields)
        return _decode(PartyRecord.from_dict, data, "party")

    def delete_party(self, kind, party_id: int) -> None:
        kind = PartyKind.from_tag(kind)
        self._request("DELETE", f"{_PARTY_PATHS[kind]}/{party_id}")

    # -- transactions -----------------------------------------------------

    def create_transaction(self, direction, fields: dict) -> TransactionRecord:
        """
        Persist one sale or purchase line.

        The API reserves (sale) or restocks (purchase) in the same database
        transaction that records the line.
        """
        direction = Direction.from_tag(direction)
        data = self._request("POST", _TRANSACTION_PATHS[direction], json=fields)
        return _decode(TransactionRecord.from_dict, data, "transaction")

    def update_transaction(
        self,
        txn: TransactionRecord,
        *,
        add_payment_cents: int | None = None,
        new_total_amount_cents: int | None = None,
    ) -> TransactionRecord:
        """
        Revise a total and/or record a payment on a committed transaction.

        The same rules the API enforces are checked locally first, on a copy,
        so an overpayment never costs a round trip.
        """
        payments.update(
            copy.copy(txn),
            add_payment_cents=add_payment_cents,
            new_total_amount_cents=new_total_amount_cents,
        )
        body = {}
        if add_payment_cents is not None:
            body["add_payment_cents"] = add_payment_cents
        if new_total_amount_cents is not None:
            body["new_total_amount_cents"] = new_total_amount_cents
        data = self._request("PATCH", f"/api/transactions/{txn.id}", json=body)
        return _decode(TransactionRecord.from_dict, data, "transaction")

    def recent_sales(self, window: str = "1m") -> dict:
        return self._request("GET", "/api/sales", params={"window": window})
