import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from product_genius.api.deps import require_admin
from product_genius.core.exceptions import SupplierNotFound
from product_genius.core.rate_limiter import limiter
from product_genius.db.session import get_db
from product_genius.models.supplier import Supplier
from product_genius.models.user import User
from product_genius.schemas.supplier import SupplierCreate, SupplierResponse
from product_genius.utils.response import success

router = APIRouter()
logger = structlog.get_logger()


@router.get("")
@limiter.limit("100/minute")
def list_suppliers(
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    suppliers = db.query(Supplier).order_by(Supplier.name.asc()).all()
    return success(
        data=[SupplierResponse.model_validate(s) for s in suppliers],
        message="Suppliers retrieved",
    )


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_supplier(
    request: Request,
    payload: SupplierCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    supplier = Supplier(**payload.model_dump())
    db.add(supplier)
    db.commit()
    db.refresh(supplier)

    logger.info("supplier_created", supplier_id=supplier.id, admin_user_id=admin.id)
    return success(
        data=SupplierResponse.model_validate(supplier),
        message="Supplier created successfully",
    )


@router.delete("/{supplier_id}")
@limiter.limit("30/minute")
def delete_supplier(
    request: Request,
    supplier_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
    if not supplier:
        raise SupplierNotFound()

    db.delete(supplier)
    db.commit()

    logger.info("supplier_deleted", supplier_id=supplier_id, admin_user_id=admin.id)
    return success(message="Supplier deleted successfully")
