from pydantic import BaseModel
from typing import Any, List, Optional
from datetime import datetime

from product_genius.models.subscription import SubscriptionStatus


class PlanResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    price: float
    interval: str
    features: Optional[List[Any]] = None

    class Config:
        from_attributes = True


class SubscriptionResponse(BaseModel):
    id: int
    status: SubscriptionStatus
    starts_at: Optional[datetime]
    ends_at: Optional[datetime]
    trial_ends_at: Optional[datetime]
    cancel_at_period_end: bool
    plan: PlanResponse

    class Config:
        from_attributes = True
