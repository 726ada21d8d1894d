# =========================================================
# SALE LIFECYCLE MANAGER
#
# create_sale / cancel_sale each open exactly one atomic scope.
# get_sale_with_items / list_sales are plain reads, no locks.
#
# A sale moves Concluded -> Cancelled once. Cancelling twice is
# rejected with SaleAlreadyCancelled, and the sale row is locked
# before its status is read so two concurrent cancels cannot both
# restore stock.
# =========================================================

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from pos_api.core.errors import SaleAlreadyCancelled, SaleNotFound
from pos_api.database import SessionLocal
from pos_api.models.sales import Sale, SaleStatus
from pos_api.models.sale_items import SaleItem
from pos_api.services import inventory_ledger
from pos_api.services.sale_builder import SaleRequest, build_sale, validate_request
from pos_api.services.transaction import TransactionCoordinator, translate_storage_error

logger = logging.getLogger("pos_api")


def _load_sale_with_items(db: Session, sale_id: int):
    return (
        db.query(Sale)
        .options(joinedload(Sale.items).joinedload(SaleItem.product))
        .filter(Sale.id == sale_id)
        .first()
    )


class SaleLifecycleManager:
    def __init__(
        self,
        coordinator: TransactionCoordinator | None = None,
        session_factory: sessionmaker = SessionLocal,
    ):
        self.coordinator = coordinator or TransactionCoordinator()
        self.session_factory = session_factory

    # =========================================================
    # CREATE SALE
    # =========================================================
    def create_sale(self, request: SaleRequest) -> Sale:
        # Malformed input never reaches the data store
        validate_request(request)

        def _create(db: Session) -> Sale:
            sale = build_sale(db, request)
            db.add(sale)
            db.flush()
            return sale

        sale = self.coordinator.run_atomic(_create)

        logger.info(
            f"Sale {sale.id} created by user {sale.user_id} "
            f"Total: {sale.total_amount} Items: {len(sale.items)}"
        )
        return sale

    # =========================================================
    # CANCEL SALE
    # =========================================================
    def cancel_sale(self, sale_id: int) -> Sale:
        def _cancel(db: Session) -> Sale:
            sale = (
                db.query(Sale)
                .filter(Sale.id == sale_id)
                .with_for_update()
                .first()
            )

            if sale is None:
                raise SaleNotFound(sale_id)

            if sale.status == SaleStatus.CANCELLED.value:
                raise SaleAlreadyCancelled(sale_id)

            items = (
                db.query(SaleItem)
                .filter(SaleItem.sale_id == sale_id)
                .order_by(SaleItem.id)
                .all()
            )

            for item in items:
                inventory_ledger.restore(db, item.product_id, item.quantity)

            sale.status = SaleStatus.CANCELLED.value
            sale.updated_at = datetime.now(timezone.utc)
            db.flush()

            # Reload so the returned sale carries restored product state
            db.expire_all()
            return _load_sale_with_items(db, sale_id)

        sale = self.coordinator.run_atomic(_cancel)

        logger.info(f"Sale {sale_id} cancelled, stock restored for {len(sale.items)} items")
        return sale

    # =========================================================
    # READ PATH
    # =========================================================
    def get_sale_with_items(self, sale_id: int) -> Sale:
        try:
            with self.session_factory() as db:
                sale = _load_sale_with_items(db, sale_id)
        except SQLAlchemyError as exc:
            raise translate_storage_error(exc) from exc

        if sale is None:
            raise SaleNotFound(sale_id)

        return sale

    def list_sales(self, limit: int = 20, offset: int = 0) -> list[Sale]:
        try:
            with self.session_factory() as db:
                return (
                    db.query(Sale)
                    .order_by(Sale.sold_at.desc(), Sale.id.desc())
                    .limit(limit)
                    .offset(offset)
                    .all()
                )
        except SQLAlchemyError as exc:
            raise translate_storage_error(exc) from exc
