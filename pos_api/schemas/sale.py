# schemas/sale.py

from pydantic import BaseModel
from datetime import datetime
from typing import Any, List, Optional
from decimal import Decimal

# The create body is accepted as sent. The sale builder checks every
# field so that a malformed cart always fails with 400 invalid_request
# naming the field, never with pydantic coercion (true -> 1) or a 422.

class SaleCreate(BaseModel):
    client_id: Any = None
    payment_method: Any = None
    items: Any = None

class SaleItemResponse(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    current_price: Optional[Decimal] = None

    class Config:
        from_attributes = True

class SaleSummaryResponse(BaseModel):
    id: int
    client_id: Optional[int]
    user_id: int
    sold_at: datetime
    total_amount: Decimal
    payment_method: str
    status: str
    updated_at: datetime

    class Config:
        from_attributes = True

class SaleResponse(SaleSummaryResponse):
    items: List[SaleItemResponse]
