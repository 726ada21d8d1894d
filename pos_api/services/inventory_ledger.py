# =========================================================
# INVENTORY LEDGER
#
# Stock count and sale price per product.
#
# Both operations must run inside an atomic scope. The product
# row lock taken by reserve_and_decrement() is what keeps stock
# from going negative: two sales against the same product block
# on it and run one after the other.
# =========================================================

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from pos_api.core.errors import InsufficientStock, ProductNotFound
from pos_api.models.products import Product


@dataclass(frozen=True)
class Reservation:
    product: Product
    quantity: int
    unit_price: Decimal


def lock_product(db: Session, product_id: int):
    """
    Lock and read one active product row.

    Blocks while another transaction holds the lock on the same row,
    for at most the scope's lock timeout. Returns None when no active
    product has this id.
    """

    return (
        db.query(Product)
        .filter(Product.id == product_id, Product.active.is_(True))
        .with_for_update()
        .first()
    )


def reserve_and_decrement(db: Session, product_id: int, quantity: int) -> Reservation:
    product = lock_product(db, product_id)

    if product is None:
        raise ProductNotFound(product_id)

    if product.stock < quantity:
        raise InsufficientStock(product_id, requested=quantity, available=product.stock)

    # Price and stock come from the same locked read
    unit_price = Decimal(product.sale_price)

    product.stock -= quantity
    product.updated_at = datetime.now(timezone.utc)
    db.flush()

    return Reservation(product=product, quantity=quantity, unit_price=unit_price)


def restore(db: Session, product_id: int, quantity: int) -> None:
    # Inactive products get their stock back too
    result = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock=Product.stock + quantity,
            updated_at=datetime.now(timezone.utc),
        )
    )

    if result.rowcount == 0:
        raise ProductNotFound(product_id)
