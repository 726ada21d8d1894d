# =========================================================
# SALE AGGREGATE BUILDER
#
# Turns a validated cart into an unsaved Sale with one SaleItem
# per requested line, in request order. Every line is priced with
# the unit price returned by the ledger at decrement time, so the
# total always matches the sum of the line subtotals.
# =========================================================

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from pos_api.core.errors import ClientNotFound, InvalidRequest
from pos_api.models.clients import Client
from pos_api.models.sales import Sale, SaleStatus
from pos_api.models.sale_items import SaleItem
from pos_api.services import inventory_ledger

MAX_PAYMENT_METHOD_LENGTH = 50


@dataclass(frozen=True)
class ItemRequest:
    product_id: Optional[int]
    quantity: Optional[int]


@dataclass(frozen=True)
class SaleRequest:
    operator_id: Optional[int]
    payment_method: Optional[str]
    items: list[ItemRequest] = field(default_factory=list)
    client_id: Optional[int] = None


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def items_from_payload(raw: Any) -> list[ItemRequest]:
    """
    Read the cart lines of a decoded JSON body.

    Values are taken as sent; validate_request decides what is valid,
    so a bool or float quantity fails like any other bad quantity.
    """

    if not isinstance(raw, list):
        raise InvalidRequest("Items must be a list", field="items")

    items = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise InvalidRequest(f"Item {index} must be an object", field=f"items[{index}]")
        items.append(ItemRequest(product_id=entry.get("product_id"), quantity=entry.get("quantity")))

    return items


def validate_request(request: SaleRequest) -> None:
    """Reject malformed input before any storage access."""

    if not _is_positive_int(request.operator_id):
        raise InvalidRequest("Operator (user) id is required", field="operator_id")

    if request.client_id is not None and not _is_positive_int(request.client_id):
        raise InvalidRequest("Client id must be a positive integer", field="client_id")

    if request.payment_method is not None and not isinstance(request.payment_method, str):
        raise InvalidRequest("Payment method must be text", field="payment_method")

    payment_method = (request.payment_method or "").strip()
    if not payment_method:
        raise InvalidRequest("Payment method is required", field="payment_method")
    if len(payment_method) > MAX_PAYMENT_METHOD_LENGTH:
        raise InvalidRequest(
            f"Payment method cannot exceed {MAX_PAYMENT_METHOD_LENGTH} characters",
            field="payment_method",
        )

    if not request.items:
        raise InvalidRequest("Sale must contain items", field="items")

    for index, item in enumerate(request.items):
        if not _is_positive_int(item.product_id):
            raise InvalidRequest(
                f"Item {index} must reference a product id",
                field=f"items[{index}].product_id",
            )
        if not _is_positive_int(item.quantity):
            raise InvalidRequest(
                f"Item {index} quantity must be greater than zero",
                field=f"items[{index}].quantity",
            )


def build_sale(db: Session, request: SaleRequest) -> Sale:
    """
    Reserve stock for every line and assemble the sale.

    Must run inside an atomic scope: the first failing line raises and
    the scope throws away the decrements of the lines before it.
    """

    validate_request(request)

    # Checked before any decrement so an unknown buyer touches no stock
    if request.client_id is not None and db.get(Client, request.client_id) is None:
        raise ClientNotFound(request.client_id)

    total_amount = Decimal("0.00")
    items = []

    for item in request.items:
        reservation = inventory_ledger.reserve_and_decrement(db, item.product_id, item.quantity)

        subtotal = reservation.unit_price * item.quantity
        total_amount += subtotal

        items.append(
            SaleItem(
                product_id=item.product_id,
                product=reservation.product,
                quantity=item.quantity,
                unit_price=reservation.unit_price,
                subtotal=subtotal,
            )
        )

    now = datetime.now(timezone.utc)

    return Sale(
        client_id=request.client_id,
        user_id=request.operator_id,
        sold_at=now,
        updated_at=now,
        total_amount=total_amount,
        payment_method=request.payment_method.strip(),
        status=SaleStatus.CONCLUDED.value,
        items=items,
    )
