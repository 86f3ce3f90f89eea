from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from product_genius.models.category import Category, CategoryTranslation
from product_genius.models.product import Product
from product_genius.schemas.category import CategoryTranslationIn
from product_genius.utils.i18n import select_translation
from product_genius.utils.search import LIKE_ESCAPE, contains_pattern

SORT_FIELDS = ("createdAt", "name")
FILTERS = ("all", "with_products", "without_products")


def translation_to_dict(translation) -> dict:
    return {
        "id": translation.id,
        "locale": translation.locale,
        "title": translation.title,
        "description": translation.description or "",
    }


def category_to_dict(category: Category, locale: Optional[str] = None, product_count: Optional[int] = None) -> dict:
    selected = select_translation(category.translations, locale) if locale else None
    data = {
        "id": category.id,
        "translations": [translation_to_dict(t) for t in category.translations],
        "created_at": category.created_at,
        "updated_at": category.updated_at,
    }
    if locale:
        data["title"] = selected.title if selected else None
        data["description"] = selected.description if selected else None
    if product_count is not None:
        data["product_count"] = product_count
    return data


def product_counts(db: Session) -> dict:
    rows = (
        db.query(Product.category_id, func.count(Product.id))
        .filter(Product.category_id.isnot(None))
        .group_by(Product.category_id)
        .all()
    )
    return {category_id: count for category_id, count in rows}


def list_categories(
    db: Session,
    *,
    locale: str,
    search: Optional[str] = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    filter_by: str = "all",
) -> List[dict]:
    query = db.query(Category).options(selectinload(Category.translations))

    if search:
        term = contains_pattern(search.strip().lower())
        query = query.filter(
            Category.translations.any(
                or_(
                    func.lower(CategoryTranslation.title).like(term, escape=LIKE_ESCAPE),
                    func.lower(CategoryTranslation.description).like(term, escape=LIKE_ESCAPE),
                )
            )
        )

    if filter_by == "with_products":
        query = query.filter(Category.products.any())
    elif filter_by == "without_products":
        query = query.filter(~Category.products.any())

    descending = sort_order == "desc"
    if sort_by == "createdAt":
        created = Category.created_at.desc() if descending else Category.created_at.asc()
        query = query.order_by(created, Category.id.desc() if descending else Category.id.asc())
        categories = query.all()
    else:
        # Titles live on the translation rows, so order by the locale's title here.
        categories = sorted(
            query.all(),
            key=lambda c: (select_translation(c.translations, locale).title.lower() if c.translations else ""),
            reverse=descending,
        )

    counts = product_counts(db)
    return [category_to_dict(c, locale, counts.get(c.id, 0)) for c in categories]


def replace_translations(db: Session, category: Category, translations: List[CategoryTranslationIn]) -> None:
    category.translations.clear()
    # Old rows must be gone before rows with the same locale are inserted.
    db.flush()
    for translation in translations:
        category.translations.append(
            CategoryTranslation(
                locale=translation.locale,
                title=translation.title,
                description=translation.description,
            )
        )
