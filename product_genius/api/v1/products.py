import json
from typing import List, Optional, Tuple, Type

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from product_genius.api.deps import get_current_user, get_optional_user, require_admin
from product_genius.core.exceptions import ProductNotFound
from product_genius.core.rate_limiter import limiter
from product_genius.db.session import get_db
from product_genius.models.product import Product, ProductTranslation
from product_genius.models.user import User
from product_genius.schemas.product import ProductCreate, ProductUpdate
from product_genius.services import product_service
from product_genius.services.price_comparison_service import build_price_comparison
from product_genius.utils.i18n import resolve_locale
from product_genius.utils.response import paginated_response, success
from product_genius.utils.search import LIKE_ESCAPE, contains_pattern

router = APIRouter()
logger = structlog.get_logger()

PRODUCT_DATA_FIELD = "productData"
MEDIA_FIELD_PREFIX = "media_"


def _upload_sort_order(key: str) -> int:
    """Sort order from a ``media_<n>[_suffix]`` field name, 0 when unparsable."""
    index = key[len(MEDIA_FIELD_PREFIX):].split("_", 1)[0]
    try:
        return max(int(index), 0)
    except ValueError:
        return 0


async def _read_product_payload(
    request: Request,
    schema: Type[BaseModel],
) -> Tuple[BaseModel, List[Tuple[int, UploadFile]]]:
    """Parse a JSON body, or multipart ``productData`` plus ``media_<n>`` files."""
    uploads: List[Tuple[int, UploadFile]] = []
    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        try:
            raw = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON in product data") from exc
    else:
        form = await request.form()
        product_data = form.get(PRODUCT_DATA_FIELD)
        if not product_data or not isinstance(product_data, str):
            raise HTTPException(status_code=400, detail="Product data is required")
        try:
            raw = json.loads(product_data)
        except json.JSONDecodeError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON in product data") from exc

        for key, value in form.multi_items():
            if key.startswith(MEDIA_FIELD_PREFIX) and isinstance(value, UploadFile):
                uploads.append((_upload_sort_order(key), value))

    try:
        data = schema.model_validate(raw)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc
    return data, uploads


def _get_product_or_404(db: Session, product_id: int, user: Optional[User] = None) -> Product:
    product = product_service.product_query(db).filter(Product.id == product_id).first()
    if not product:
        raise ProductNotFound()
    if user is not None and not user.is_staff and not product.is_active:
        raise ProductNotFound()
    return product


@router.get("", response_model=dict)
@router.get("/", response_model=dict)
@limiter.limit("100/minute")
def get_products(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    sort_by: str = Query("newest", pattern="^(newest|oldest|price_asc|price_desc|popular)$"),
    locale: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Get products with filtering and pagination
    """
    query = product_service.product_query(db)

    # Only staff can see inactive products
    if current_user is None or not current_user.is_staff:
        query = query.filter(Product.is_active == True)
    elif is_active is not None:
        query = query.filter(Product.is_active == is_active)

    if category_id is not None:
        query = query.filter(Product.category_id == category_id)

    if search:
        search_term = contains_pattern(search.strip())
        query = query.filter(
            Product.translations.any(ProductTranslation.title.ilike(search_term, escape=LIKE_ESCAPE))
        )

    # Sorting
    if sort_by == "oldest":
        query = query.order_by(Product.created_at.asc(), Product.id.asc())
    elif sort_by == "price_asc":
        query = query.order_by(Product.suggested_price.asc().nullslast(), Product.id.desc())
    elif sort_by == "price_desc":
        query = query.order_by(Product.suggested_price.desc().nullslast(), Product.id.desc())
    elif sort_by == "popular":
        query = query.order_by(
            Product.popularity_score.desc(), Product.views.desc(), Product.likes.desc(), Product.id.desc()
        )
    else:
        query = query.order_by(Product.created_at.desc(), Product.id.desc())

    # Pagination
    total = query.count()
    products = query.offset((page - 1) * limit).limit(limit).all()

    request_locale = resolve_locale(request, locale)
    return paginated_response(
        [product_service.product_to_dict(p, request_locale, detail=False) for p in products],
        total=total,
        page=page,
        limit=limit,
        message="Products retrieved",
    )


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_product(
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    data, uploads = await _read_product_payload(request, ProductCreate)
    product = product_service.create_product(db, data, uploads)
    product = _get_product_or_404(db, product.id)
    return success(
        data=product_service.product_to_dict(product, resolve_locale(request)),
        message="Product created successfully",
    )


@router.get("/{product_id}")
@limiter.limit("100/minute")
def get_product(
    request: Request,
    product_id: int,
    locale: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = _get_product_or_404(db, product_id, current_user)

    if not current_user.is_staff:
        product.views += 1
        db.commit()
        db.refresh(product)

    return success(
        data=product_service.product_to_dict(product, resolve_locale(request, locale)),
        message="Product retrieved",
    )


@router.put("/{product_id}")
@limiter.limit("30/minute")
async def update_product(
    request: Request,
    product_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    product = _get_product_or_404(db, product_id)
    data, uploads = await _read_product_payload(request, ProductUpdate)
    product_service.update_product(db, product, data, uploads)
    product = _get_product_or_404(db, product_id)
    return success(
        data=product_service.product_to_dict(product, resolve_locale(request)),
        message="Product updated successfully",
    )


@router.delete("/{product_id}")
@limiter.limit("30/minute")
def delete_product(
    request: Request,
    product_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    product = _get_product_or_404(db, product_id)
    product_service.delete_product(db, product)
    return success(message="Product deleted successfully")


@router.get("/{product_id}/offers")
@limiter.limit("100/minute")
def get_product_offers(
    request: Request,
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Supplier and marketplace price comparison for a product"""
    product = _get_product_or_404(db, product_id, current_user)
    return success(data=build_price_comparison(product), message="Offers retrieved")


@router.post("/{product_id}/like")
@limiter.limit("30/minute")
def like_product(
    request: Request,
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = _get_product_or_404(db, product_id, current_user)
    product.likes += 1
    db.commit()
    return success(data={"id": product.id, "likes": product.likes}, message="Product liked")
