from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from product_genius.models.order import OrderStatus


class OrderItemResponse(BaseModel):
    id: int
    product_id: Optional[int]
    title: str
    unit_price_cents: int
    quantity: int

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    total_cents: int
    currency: str
    status: OrderStatus
    created_at: datetime
    items: List[OrderItemResponse]

    class Config:
        from_attributes = True
