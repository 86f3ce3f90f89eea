from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session, selectinload

from product_genius.api.deps import require_admin
from product_genius.core.exceptions import CategoryNotFound
from product_genius.core.rate_limiter import limiter
from product_genius.db.session import get_db
from product_genius.models.category import Category
from product_genius.models.product import Product
from product_genius.models.user import User
from product_genius.schemas.category import CategoryCreate, CategoryUpdate
from product_genius.services import category_service
from product_genius.utils.i18n import resolve_locale
from product_genius.utils.response import success

router = APIRouter()
logger = structlog.get_logger()


def _get_category_or_404(db: Session, category_id: int) -> Category:
    category = (
        db.query(Category)
        .options(selectinload(Category.translations))
        .filter(Category.id == category_id)
        .first()
    )
    if not category:
        raise CategoryNotFound()
    return category


def _product_count(db: Session, category_id: int) -> int:
    return db.query(Product.id).filter(Product.category_id == category_id).count()


@router.get("", response_model=dict)
@router.get("/", response_model=dict)
@limiter.limit("100/minute")
def list_categories(
    request: Request,
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", pattern="^(createdAt|name)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    filter_by: str = Query("all", alias="filter", pattern="^(all|with_products|without_products)$"),
    locale: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """List categories with their translations and product counts"""
    categories = category_service.list_categories(
        db,
        locale=resolve_locale(request, locale),
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        filter_by=filter_by,
    )
    return success(data=categories, message="Categories retrieved")


@router.get("/{category_id}", response_model=dict)
@limiter.limit("100/minute")
def get_category(
    request: Request,
    category_id: int,
    locale: Optional[str] = None,
    db: Session = Depends(get_db),
):
    category = _get_category_or_404(db, category_id)
    return success(
        data=category_service.category_to_dict(
            category, resolve_locale(request, locale), _product_count(db, category.id)
        ),
        message="Category retrieved",
    )


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_category(
    request: Request,
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    category = Category()
    db.add(category)
    category_service.replace_translations(db, category, payload.translations)
    db.commit()
    db.refresh(category)

    logger.info("category_created", category_id=category.id, admin_user_id=admin.id)
    return success(
        data=category_service.category_to_dict(category, resolve_locale(request), 0),
        message="Category created successfully",
    )


@router.put("/{category_id}")
@limiter.limit("30/minute")
def update_category(
    request: Request,
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    category = _get_category_or_404(db, category_id)
    try:
        category_service.replace_translations(db, category, payload.translations)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(category)

    logger.info("category_updated", category_id=category.id, admin_user_id=admin.id)
    return success(
        data=category_service.category_to_dict(
            category, resolve_locale(request), _product_count(db, category.id)
        ),
        message="Category updated successfully",
    )


@router.delete("/{category_id}")
@limiter.limit("30/minute")
def delete_category(
    request: Request,
    category_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    category = _get_category_or_404(db, category_id)
    if _product_count(db, category.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete category that has products assigned to it",
        )

    db.delete(category)
    db.commit()

    logger.info("category_deleted", category_id=category_id, admin_user_id=admin.id)
    return success(message="Category deleted successfully")
