from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from product_genius.core.rate_limiter import limiter
from product_genius.db.session import get_db
from product_genius.models.plan import Plan
from product_genius.schemas.plan import PlanResponse
from product_genius.utils.response import success

router = APIRouter()


@router.get("")
@limiter.limit("100/minute")
def list_plans(request: Request, db: Session = Depends(get_db)):
    """List active subscription plans, cheapest first"""
    plans = db.query(Plan).filter(Plan.active == True).order_by(Plan.price.asc()).all()
    return success(
        data=[PlanResponse.model_validate(plan) for plan in plans],
        message="Plans retrieved",
    )
