"""
Tests for `pos_api/services/sale_builder.py`.

Covers:
- Malformed carts are rejected with InvalidRequest naming the field.
- A built sale has one line per requested item, in request order,
  priced from the ledger, with total equal to the sum of subtotals.
- A failing line aborts the build and the scope drops earlier decrements.
"""

from decimal import Decimal

import pytest

from pos_api.core.errors import InsufficientStock, InvalidRequest
from pos_api.models.sales import SaleStatus
from pos_api.services.sale_builder import (
    ItemRequest,
    SaleRequest,
    build_sale,
    items_from_payload,
    validate_request,
)


def _request(items, operator_id=1, payment_method="cash", client_id=None):
    return SaleRequest(
        operator_id=operator_id,
        payment_method=payment_method,
        items=items,
        client_id=client_id,
    )


@pytest.mark.parametrize(
    "request_, field",
    [
        (_request([]), "items"),
        (_request([ItemRequest(product_id=1, quantity=0)]), "items[0].quantity"),
        (_request([ItemRequest(product_id=1, quantity=-2)]), "items[0].quantity"),
        (_request([ItemRequest(product_id=1, quantity=None)]), "items[0].quantity"),
        (
            _request([ItemRequest(product_id=1, quantity=1), ItemRequest(product_id=None, quantity=1)]),
            "items[1].product_id",
        ),
        (_request([ItemRequest(product_id=1, quantity=1)], operator_id=None), "operator_id"),
        (_request([ItemRequest(product_id=1, quantity=1)], payment_method="  "), "payment_method"),
        (_request([ItemRequest(product_id=1, quantity=1)], payment_method="x" * 51), "payment_method"),
        (_request([ItemRequest(product_id=1, quantity=1)], client_id=0), "client_id"),
    ],
)
def test_validate_request_rejects_malformed_input(request_, field) -> None:
    with pytest.raises(InvalidRequest) as exc_info:
        validate_request(request_)

    assert exc_info.value.field == field
    assert exc_info.value.to_detail()["field"] == field


def test_validate_request_accepts_well_formed_cart() -> None:
    validate_request(_request([ItemRequest(product_id=1, quantity=3)], client_id=7))


def test_build_sale_prices_each_line_in_order(coordinator, make_product) -> None:
    first = make_product(price="10.00", stock=5)
    second = make_product(price="2.35", stock=10)

    request = _request(
        [ItemRequest(product_id=first, quantity=2), ItemRequest(product_id=second, quantity=3)],
        payment_method=" pix ",
    )

    sale = coordinator.run_atomic(lambda db: build_sale(db, request))

    assert [item.product_id for item in sale.items] == [first, second]
    assert [item.unit_price for item in sale.items] == [Decimal("10.00"), Decimal("2.35")]
    assert [item.subtotal for item in sale.items] == [Decimal("20.00"), Decimal("7.05")]
    assert sale.total_amount == Decimal("27.05")
    assert sale.status == SaleStatus.CONCLUDED.value
    assert sale.payment_method == "pix"
    assert sale.sold_at is not None


def test_build_sale_failure_drops_earlier_decrements(coordinator, make_product, product_state) -> None:
    in_stock = make_product(stock=5)
    sold_out = make_product(stock=0)

    request = _request(
        [ItemRequest(product_id=in_stock, quantity=2), ItemRequest(product_id=sold_out, quantity=1)]
    )

    with pytest.raises(InsufficientStock):
        coordinator.run_atomic(lambda db: build_sale(db, request))

    assert product_state(in_stock)[0] == 5


def test_items_from_payload_keeps_values_as_sent() -> None:
    items = items_from_payload([{"product_id": 4, "quantity": True}, {"quantity": 2}])

    assert items == [
        ItemRequest(product_id=4, quantity=True),
        ItemRequest(product_id=None, quantity=2),
    ]

    # A bool is not a quantity, even though it is an int subclass
    with pytest.raises(InvalidRequest) as exc_info:
        validate_request(_request(items))
    assert exc_info.value.field == "items[0].quantity"


@pytest.mark.parametrize(
    "raw, field",
    [
        (None, "items"),
        ({"product_id": 1, "quantity": 1}, "items"),
        ("1x2", "items"),
        ([{"product_id": 1, "quantity": 1}, 5], "items[1]"),
    ],
)
def test_items_from_payload_rejects_non_list_shapes(raw, field) -> None:
    with pytest.raises(InvalidRequest) as exc_info:
        items_from_payload(raw)

    assert exc_info.value.field == field


def test_validate_request_rejects_float_quantity_and_non_text_payment() -> None:
    with pytest.raises(InvalidRequest) as exc_info:
        validate_request(_request([ItemRequest(product_id=1, quantity=2.5)]))
    assert exc_info.value.field == "items[0].quantity"

    with pytest.raises(InvalidRequest) as exc_info:
        validate_request(_request([ItemRequest(product_id=1, quantity=1)], payment_method=10))
    assert exc_info.value.field == "payment_method"
