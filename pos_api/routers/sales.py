# =========================================================
# SALES ROUTER
#
# SELLERS (and admins):
# - Create sales
# - List sales and read a sale with its items
#
# ADMINS ONLY:
# - Cancel a sale (restores stock)
#
# The operator of a new sale is always the authenticated user.
# =========================================================

from fastapi import APIRouter, Depends, HTTPException, Query, status, Request

from pos_api.core.auth import require_role
from pos_api.core.config import settings
from pos_api.core.errors import SaleError
from pos_api.core.rate_limiter import limiter
from pos_api.models.users import ROLE_ADMIN, ROLE_SELLER
from pos_api.schemas.sale import SaleCreate, SaleResponse, SaleSummaryResponse
from pos_api.services.sale_builder import SaleRequest, items_from_payload
from pos_api.services.sale_lifecycle import SaleLifecycleManager

router = APIRouter(prefix="/sales", tags=["Sales"])

_manager = SaleLifecycleManager()


def get_sale_manager() -> SaleLifecycleManager:
    return _manager


def _to_http_error(exc: SaleError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


# =========================================================
# CREATE SALE
# =========================================================
@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.SALES_RATE_LIMIT)
def create_sale(
    request: Request,
    sale_data: SaleCreate,
    manager: SaleLifecycleManager = Depends(get_sale_manager),
    current_user=Depends(require_role(ROLE_SELLER)),
):
    try:
        sale_request = SaleRequest(
            operator_id=current_user.id,
            client_id=sale_data.client_id,
            payment_method=sale_data.payment_method,
            items=items_from_payload(sale_data.items),
        )
        return manager.create_sale(sale_request)
    except SaleError as exc:
        raise _to_http_error(exc)


# =========================================================
# LIST SALES
# =========================================================
@router.get("", response_model=list[SaleSummaryResponse])
def list_sales(
    manager: SaleLifecycleManager = Depends(get_sale_manager),
    current_user=Depends(require_role(ROLE_SELLER)),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    try:
        return manager.list_sales(limit=limit, offset=offset)
    except SaleError as exc:
        raise _to_http_error(exc)


# =========================================================
# GET SINGLE SALE WITH ITEMS
# =========================================================
@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(
    sale_id: int,
    manager: SaleLifecycleManager = Depends(get_sale_manager),
    current_user=Depends(require_role(ROLE_SELLER)),
):
    try:
        return manager.get_sale_with_items(sale_id)
    except SaleError as exc:
        raise _to_http_error(exc)


# =========================================================
# CANCEL SALE
# =========================================================
@router.put("/{sale_id}/cancel", response_model=SaleResponse)
def cancel_sale(
    sale_id: int,
    manager: SaleLifecycleManager = Depends(get_sale_manager),
    current_user=Depends(require_role(ROLE_ADMIN)),
):
    try:
        return manager.cancel_sale(sale_id)
    except SaleError as exc:
        raise _to_http_error(exc)
