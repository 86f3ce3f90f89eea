from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from product_genius.models.category import Category, CategoryTranslation
from product_genius.models.product import Product, ProductTranslation


def _create_category(client: TestClient, headers: dict, translations: list):
    return client.post(
        "/api/v1/categories",
        json={"translations": translations},
        headers=headers,
    )


def _seed_category(db_session: Session, title: str, description: str = "", locale: str = "en") -> Category:
    category = Category()
    category.translations.append(CategoryTranslation(locale=locale, title=title, description=description))
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


def test_create_category_with_translations(client: TestClient, admin_headers):
    response = _create_category(
        client,
        admin_headers,
        [
            {"locale": "en", "title": "Electronics", "description": "Gadgets and devices"},
            {"locale": "FR", "title": "Electronique"},
        ],
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["title"] == "Electronics"
    assert data["product_count"] == 0
    translations = {t["locale"]: t for t in data["translations"]}
    assert set(translations) == {"en", "fr"}
    assert translations["fr"]["description"] == ""


def test_create_category_strips_markup(client: TestClient, admin_headers):
    response = _create_category(
        client,
        admin_headers,
        [{"locale": "en", "title": "<b>Garden</b>", "description": "<script>x</script>Outdoor"}],
    )

    assert response.status_code == 201
    translation = response.json()["data"]["translations"][0]
    assert translation["title"] == "Garden"
    assert "<script>" not in translation["description"]


def test_create_category_requires_translation(client: TestClient, admin_headers):
    response = _create_category(client, admin_headers, [])

    assert response.status_code == 422
    assert response.json()["message"] == "Validation failed"


def test_create_category_rejects_blank_title(client: TestClient, admin_headers):
    response = _create_category(client, admin_headers, [{"locale": "en", "title": "   "}])

    assert response.status_code == 422


def test_create_category_rejects_duplicate_locales(client: TestClient, admin_headers):
    response = _create_category(
        client,
        admin_headers,
        [{"locale": "en", "title": "One"}, {"locale": "en", "title": "Two"}],
    )

    assert response.status_code == 422


def test_create_category_rejects_unsupported_locale(client: TestClient, admin_headers):
    response = _create_category(client, admin_headers, [{"locale": "xx", "title": "Unknown"}])

    assert response.status_code == 422


def test_create_category_requires_admin(client: TestClient, user_headers):
    response = _create_category(client, user_headers, [{"locale": "en", "title": "Nope"}])

    assert response.status_code == 403


def test_list_categories_is_public_and_localized(client: TestClient, db_session: Session):
    category = Category()
    category.translations.extend(
        [
            CategoryTranslation(locale="en", title="Kitchen", description=""),
            CategoryTranslation(locale="de", title="Kueche", description=""),
        ]
    )
    db_session.add(category)
    db_session.commit()

    english = client.get("/api/v1/categories").json()["data"]
    german = client.get("/api/v1/categories", params={"locale": "de"}).json()["data"]
    fallback = client.get("/api/v1/categories", params={"locale": "ja"}).json()["data"]

    assert english[0]["title"] == "Kitchen"
    assert german[0]["title"] == "Kueche"
    assert fallback[0]["title"] == "Kueche"


def test_list_categories_search_sort_and_filter(client: TestClient, db_session: Session):
    toys = _seed_category(db_session, "Toys", "Games for kids")
    _seed_category(db_session, "Apparel", "Clothing")
    _seed_category(db_session, "Books", "Paperbacks")

    product = Product(sku="TOY-1", category_id=toys.id)
    product.translations.append(
        ProductTranslation(locale="en", title="Robot", description="A robot", slug="robot")
    )
    db_session.add(product)
    db_session.commit()

    searched = client.get("/api/v1/categories", params={"search": "GAMES"}).json()["data"]
    assert [c["title"] for c in searched] == ["Toys"]

    by_name = client.get("/api/v1/categories", params={"sort_by": "name", "sort_order": "asc"}).json()["data"]
    assert [c["title"] for c in by_name] == ["Apparel", "Books", "Toys"]

    newest_first = client.get("/api/v1/categories").json()["data"]
    assert [c["title"] for c in newest_first] == ["Books", "Apparel", "Toys"]

    with_products = client.get("/api/v1/categories", params={"filter": "with_products"}).json()["data"]
    assert [(c["title"], c["product_count"]) for c in with_products] == [("Toys", 1)]

    without_products = client.get("/api/v1/categories", params={"filter": "without_products"}).json()["data"]
    assert {c["title"] for c in without_products} == {"Apparel", "Books"}

    invalid = client.get("/api/v1/categories", params={"sort_by": "price"})
    assert invalid.status_code == 422


def test_category_search_treats_wildcards_literally(client: TestClient, db_session: Session):
    _seed_category(db_session, "Outlet", "50% off everything")
    _seed_category(db_session, "Garden", "Plants and tools")

    percent = client.get("/api/v1/categories", params={"search": "%"}).json()["data"]
    assert [c["title"] for c in percent] == ["Outlet"]

    underscore = client.get("/api/v1/categories", params={"search": "_"}).json()["data"]
    assert underscore == []


def test_get_category(client: TestClient, db_session: Session):
    category = _seed_category(db_session, "Sports")

    response = client.get(f"/api/v1/categories/{category.id}")

    assert response.status_code == 200
    assert response.json()["data"]["title"] == "Sports"

    missing = client.get("/api/v1/categories/9999")
    assert missing.status_code == 404
    assert missing.json()["message"] == "Category not found"


def test_update_category_replaces_translations(client: TestClient, db_session: Session, admin_headers):
    category = _seed_category(db_session, "Old title")

    response = client.put(
        f"/api/v1/categories/{category.id}",
        json={
            "translations": [
                {"locale": "en", "title": "New title"},
                {"locale": "es", "title": "Nuevo titulo"},
            ]
        },
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "New title"
    assert sorted(t["locale"] for t in data["translations"]) == ["en", "es"]
    assert db_session.query(CategoryTranslation).count() == 2


def test_delete_category(client: TestClient, db_session: Session, admin_headers):
    category = _seed_category(db_session, "Temporary")

    response = client.delete(f"/api/v1/categories/{category.id}", headers=admin_headers)

    assert response.status_code == 200
    assert db_session.query(Category).count() == 0
    assert db_session.query(CategoryTranslation).count() == 0


def test_delete_category_with_products_is_rejected(client: TestClient, db_session: Session, admin_headers):
    category = _seed_category(db_session, "Busy")
    db_session.add(Product(sku="BUSY-1", category_id=category.id))
    db_session.commit()

    response = client.delete(f"/api/v1/categories/{category.id}", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete category that has products assigned to it"
