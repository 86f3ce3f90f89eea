from typing import List, Optional, Sequence, Tuple

import structlog
from fastapi import HTTPException, UploadFile, status
from slugify import slugify
from sqlalchemy.orm import Session, selectinload

from product_genius.core.exceptions import SkuAlreadyExists
from product_genius.models.category import Category
from product_genius.models.product import Media, Product, ProductTranslation
from product_genius.models.supplier import ProductSupplier, Supplier
from product_genius.schemas.product import (
    ProductCreate,
    ProductMediaIn,
    ProductSupplierIn,
    ProductTranslationIn,
    ProductUpdate,
)
from product_genius.services.category_service import category_to_dict
from product_genius.utils.i18n import select_translation
from product_genius.utils.media_storage import (
    delete_media_files,
    is_local_upload,
    save_product_media,
)

logger = structlog.get_logger()

# (sort_order, file) pairs taken from ``media_<sort_order>`` form fields
MediaUploads = Sequence[Tuple[int, UploadFile]]


def product_query(db: Session):
    return db.query(Product).options(
        selectinload(Product.translations),
        selectinload(Product.media),
        selectinload(Product.category).selectinload(Category.translations),
        selectinload(Product.suppliers).selectinload(ProductSupplier.supplier),
    )


# --------------------------------------------------
# Serialization
# --------------------------------------------------
def media_to_dict(media: Media) -> dict:
    return {
        "id": media.id,
        "url": media.url,
        "type": media.type,
        "provider": media.provider,
        "alt": media.alt,
        "sort_order": media.sort_order,
        "metadata": media.extra_metadata,
    }


def supplier_link_to_dict(link: ProductSupplier) -> dict:
    return {
        "id": link.id,
        "supplier_id": link.supplier_id,
        "supplier_name": link.supplier.name if link.supplier else None,
        "url": link.url,
        "marketplace": link.marketplace,
        "price": link.price,
        "currency": link.currency,
        "is_primary": link.is_primary,
        "notes": link.notes,
    }


def product_to_dict(product: Product, locale: str, *, detail: bool = True) -> dict:
    """Serialize a product with its title/description resolved for ``locale``.

    List items only carry the first media item; detail payloads carry the full
    media list, category translations and supplier links.
    """
    selected = select_translation(product.translations, locale)
    data = {
        "id": product.id,
        "sku": product.sku,
        "title": selected.title if selected else None,
        "description": selected.description if selected else None,
        "slug": selected.slug if selected else None,
        "suggested_price": product.suggested_price,
        "currency": product.currency,
        "category_id": product.category_id,
        "is_active": product.is_active,
        "metadata": product.extra_metadata,
        "views": product.views,
        "likes": product.likes,
        "popularity_score": product.popularity_score,
        "translations": [
            {
                "id": t.id,
                "locale": t.locale,
                "title": t.title,
                "description": t.description,
                "slug": t.slug,
            }
            for t in product.translations
        ],
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }

    if detail:
        data["media"] = [media_to_dict(m) for m in product.media]
        data["category"] = category_to_dict(product.category, locale) if product.category else None
        data["suppliers"] = [supplier_link_to_dict(link) for link in product.suppliers]
    else:
        data["media"] = [media_to_dict(m) for m in product.media[:1]]
        category_translation = (
            select_translation(product.category.translations, locale) if product.category else None
        )
        data["category"] = (
            {"id": product.category.id, "title": category_translation.title if category_translation else None}
            if product.category
            else None
        )
    return data


# --------------------------------------------------
# Validation against the database
# --------------------------------------------------
def _ensure_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    if not db.query(Category.id).filter(Category.id == category_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid category_id: {category_id}",
        )


def _ensure_sku_available(db: Session, sku: Optional[str], product_id: Optional[int] = None) -> None:
    if sku is None:
        return
    query = db.query(Product.id).filter(Product.sku == sku)
    if product_id is not None:
        query = query.filter(Product.id != product_id)
    if query.first():
        raise SkuAlreadyExists()


def _ensure_suppliers(db: Session, suppliers: Optional[List[ProductSupplierIn]]) -> None:
    if not suppliers:
        return
    ids = {s.supplier_id for s in suppliers}
    if len(ids) != len(suppliers):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Each supplier can only be linked once",
        )
    found = {row[0] for row in db.query(Supplier.id).filter(Supplier.id.in_(ids)).all()}
    missing = sorted(ids - found)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid supplier_id: {missing[0]}",
        )


# --------------------------------------------------
# Child collections
# --------------------------------------------------
def _build_translations(translations: List[ProductTranslationIn]) -> List[ProductTranslation]:
    return [
        ProductTranslation(
            locale=t.locale,
            title=t.title,
            description=t.description,
            slug=slugify(t.title),
        )
        for t in translations
    ]


def _build_supplier_links(suppliers: List[ProductSupplierIn]) -> List[ProductSupplier]:
    return [
        ProductSupplier(
            supplier_id=s.supplier_id,
            url=s.url,
            marketplace=s.marketplace,
            price=s.price,
            currency=s.currency.upper() if s.currency else None,
            is_primary=s.is_primary,
            notes=s.notes,
        )
        for s in suppliers
    ]


def _store_uploads(uploads: MediaUploads, product_id: int, saved_urls: List[str]) -> List[dict]:
    stored = []
    for sort_order, file in uploads:
        saved = save_product_media(file, product_id)
        saved_urls.append(saved["url"])
        stored.append(
            {
                "url": saved["url"],
                "type": saved["type"],
                "sort_order": sort_order,
                "provider": "local",
                "alt": None,
                "metadata": {"original_name": file.filename} if file.filename else None,
            }
        )
    return stored


def _media_entries(media: List[ProductMediaIn]) -> List[dict]:
    return [
        {
            "url": m.url,
            "type": m.type,
            "sort_order": m.sort_order,
            "provider": m.provider,
            "alt": m.alt,
            "metadata": m.metadata,
        }
        for m in media
    ]


# --------------------------------------------------
# Operations
# --------------------------------------------------
def create_product(db: Session, data: ProductCreate, uploads: MediaUploads = ()) -> Product:
    """Create a product with translations, media and supplier links in one transaction.

    Files written for ``uploads`` are removed again if anything fails before commit.
    """
    _ensure_sku_available(db, data.sku)
    _ensure_category(db, data.category_id)
    _ensure_suppliers(db, data.suppliers)

    saved_urls: List[str] = []
    try:
        product = Product(
            sku=data.sku,
            suggested_price=data.suggested_price,
            currency=data.currency,
            category_id=data.category_id,
            is_active=data.is_active,
            extra_metadata=data.metadata,
        )
        product.translations = _build_translations(data.translations)
        product.suppliers = _build_supplier_links(data.suppliers)
        db.add(product)
        db.flush()

        entries = _media_entries(data.media) + _store_uploads(uploads, product.id, saved_urls)
        entries.sort(key=lambda entry: entry["sort_order"])
        product.media = [
            Media(
                url=entry["url"],
                type=entry["type"],
                sort_order=entry["sort_order"],
                provider=entry["provider"] or "external",
                alt=entry["alt"],
                extra_metadata=entry["metadata"],
            )
            for entry in entries
        ]

        db.commit()
    except Exception:
        db.rollback()
        delete_media_files(saved_urls)
        raise

    logger.info(
        "product_created",
        product_id=product.id,
        translations=len(data.translations),
        media=len(product.media),
    )
    return product


def update_product(db: Session, product: Product, data: ProductUpdate, uploads: MediaUploads = ()) -> Product:
    """Replace a product's fields, translations and media list.

    Kept media and new uploads are ordered by sort order and re-indexed from 0.
    Supplier links are only replaced when ``data.suppliers`` is given. Local files
    that drop out of the media list are deleted after the commit.
    """
    _ensure_sku_available(db, data.sku, product.id)
    _ensure_category(db, data.category_id)
    _ensure_suppliers(db, data.suppliers)

    previous_urls = [m.url for m in product.media]
    saved_urls: List[str] = []
    try:
        product.sku = data.sku
        product.suggested_price = data.suggested_price
        product.currency = data.currency
        product.category_id = data.category_id
        product.is_active = data.is_active
        product.extra_metadata = data.metadata

        entries = _media_entries(data.media) + _store_uploads(uploads, product.id, saved_urls)
        entries.sort(key=lambda entry: entry["sort_order"])

        product.translations.clear()
        product.media.clear()
        if data.suppliers is not None:
            product.suppliers.clear()
        # Old rows must be gone before rows with the same unique keys are inserted.
        db.flush()

        product.translations.extend(_build_translations(data.translations))
        product.media.extend(
            Media(
                url=entry["url"],
                type=entry["type"],
                sort_order=index,
                provider="local" if is_local_upload(entry["url"]) else "external",
                alt=entry["alt"],
                extra_metadata=entry["metadata"],
            )
            for index, entry in enumerate(entries)
        )
        if data.suppliers is not None:
            product.suppliers.extend(_build_supplier_links(data.suppliers))

        db.commit()
    except Exception:
        db.rollback()
        delete_media_files(saved_urls)
        raise

    kept_urls = {entry["url"] for entry in entries}
    dropped = [url for url in previous_urls if url not in kept_urls]
    delete_media_files(dropped)

    logger.info(
        "product_updated",
        product_id=product.id,
        media=len(entries),
        removed_files=len([url for url in dropped if is_local_upload(url)]),
    )
    return product


def delete_product(db: Session, product: Product) -> None:
    local_files = [m.url for m in product.media if is_local_upload(m.url)]
    product_id = product.id

    db.delete(product)
    db.commit()

    delete_media_files(local_files)
    logger.info("product_deleted", product_id=product_id, removed_files=len(local_files))
