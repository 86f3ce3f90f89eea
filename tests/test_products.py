import json
from io import BytesIO
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.orm import Session

from product_genius.models.category import Category, CategoryTranslation
from product_genius.models.product import Media, Product
from product_genius.models.supplier import Supplier


def _png_bytes(color: str = "red") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color).save(buffer, format="PNG")
    return buffer.getvalue()


def _product_payload(**overrides) -> dict:
    payload = {
        "sku": "MOUSE-001",
        "suggested_price": 29.99,
        "currency": "usd",
        "translations": [
            {"locale": "en", "title": "Wireless Mouse", "description": "Quiet clicks"},
            {"locale": "fr", "title": "Souris sans fil", "description": "Clics silencieux"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def category(db_session: Session) -> Category:
    category = Category()
    category.translations.append(CategoryTranslation(locale="en", title="Electronics", description=""))
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture()
def create_product(client: TestClient, admin_headers):
    def _create(**overrides) -> dict:
        response = client.post("/api/v1/products", json=_product_payload(**overrides), headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


def _file_for(media_root: str, url: str) -> Path:
    return Path(media_root) / url.lstrip("/")


def test_create_product_from_json(client: TestClient, admin_headers, category):
    response = client.post(
        "/api/v1/products",
        json=_product_payload(
            category_id=category.id,
            metadata={"source": "import"},
            media=[
                {"url": "https://cdn.example.com/b.jpg", "type": "IMAGE", "sort_order": 2},
                {"url": "https://cdn.example.com/a.mp4", "type": "VIDEO", "sort_order": 1, "alt": "Demo"},
            ],
        ),
        headers=admin_headers,
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["sku"] == "MOUSE-001"
    assert data["currency"] == "USD"
    assert data["title"] == "Wireless Mouse"
    assert data["slug"] == "wireless-mouse"
    assert data["metadata"] == {"source": "import"}
    assert data["category"]["title"] == "Electronics"
    assert [m["url"] for m in data["media"]] == [
        "https://cdn.example.com/a.mp4",
        "https://cdn.example.com/b.jpg",
    ]
    assert data["media"][0]["type"] == "VIDEO"
    assert data["media"][0]["provider"] == "external"
    assert {t["slug"] for t in data["translations"]} == {"wireless-mouse", "souris-sans-fil"}


def test_create_product_with_uploaded_media(client: TestClient, admin_headers, media_root, db_session: Session):
    response = client.post(
        "/api/v1/products",
        data={"productData": json.dumps(_product_payload())},
        files={"media_0": ("photo.png", _png_bytes(), "image/png")},
        headers=admin_headers,
    )

    assert response.status_code == 201, response.text
    data = response.json()["data"]
    media = data["media"][0]
    assert media["provider"] == "local"
    assert media["type"] == "IMAGE"
    assert media["url"].startswith(f"/uploads/products/{data['id']}/")
    assert media["url"].endswith(".png")
    assert media["metadata"] == {"original_name": "photo.png"}
    assert _file_for(media_root, media["url"]).is_file()


def test_create_product_rejects_invalid_upload(client: TestClient, admin_headers, media_root, db_session: Session):
    response = client.post(
        "/api/v1/products",
        data={"productData": json.dumps(_product_payload())},
        files={"media_0": ("evil.png", b"not really an image", "image/png")},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "evil.png: Invalid image file"
    assert db_session.query(Product).count() == 0


def test_create_product_requires_product_data(client: TestClient, admin_headers):
    response = client.post("/api/v1/products", data={"other": "value"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Product data is required"


def test_create_product_rejects_malformed_product_data(client: TestClient, admin_headers):
    response = client.post("/api/v1/products", data={"productData": "{not json"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid JSON in product data"


def test_create_product_validation_errors(client: TestClient, admin_headers):
    response = client.post(
        "/api/v1/products",
        json=_product_payload(translations=[]),
        headers=admin_headers,
    )

    assert response.status_code == 422
    assert response.json()["errors"]


def test_create_product_unknown_category(client: TestClient, admin_headers):
    response = client.post("/api/v1/products", json=_product_payload(category_id=999), headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid category_id: 999"


def test_create_product_requires_admin(client: TestClient, user_headers):
    response = client.post("/api/v1/products", json=_product_payload(), headers=user_headers)

    assert response.status_code == 403


def test_list_products_paginates_and_hides_inactive(client: TestClient, create_product, admin_headers):
    for index in range(3):
        create_product(sku=f"SKU-{index}")
    create_product(sku="SKU-HIDDEN", is_active=False)

    response = client.get("/api/v1/products", params={"page": 1, "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["meta"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert [p["sku"] for p in body["data"]] == ["SKU-2", "SKU-1"]

    staff_view = client.get("/api/v1/products", params={"limit": 10}, headers=admin_headers).json()
    assert staff_view["meta"]["total"] == 4

    inactive_only = client.get("/api/v1/products", params={"is_active": False}, headers=admin_headers).json()
    assert [p["sku"] for p in inactive_only["data"]] == ["SKU-HIDDEN"]


def test_list_products_search_and_locale(client: TestClient, create_product):
    create_product()
    create_product(
        sku="LAMP-001",
        translations=[{"locale": "en", "title": "Desk Lamp", "description": "Warm light"}],
    )

    searched = client.get("/api/v1/products", params={"search": "lamp"}).json()["data"]
    assert [p["sku"] for p in searched] == ["LAMP-001"]

    french = client.get("/api/v1/products", params={"search": "mouse", "locale": "fr"}).json()["data"]
    assert french[0]["title"] == "Souris sans fil"


def test_get_product_counts_views_for_shoppers(client: TestClient, create_product, user_headers, admin_headers):
    product = create_product()

    assert client.get(f"/api/v1/products/{product['id']}").status_code == 401

    first = client.get(f"/api/v1/products/{product['id']}", headers=user_headers)
    second = client.get(f"/api/v1/products/{product['id']}", headers=user_headers)
    staff = client.get(f"/api/v1/products/{product['id']}", headers=admin_headers)

    assert first.json()["data"]["views"] == 1
    assert second.json()["data"]["views"] == 2
    assert staff.json()["data"]["views"] == 2


def test_inactive_product_hidden_from_shoppers(client: TestClient, create_product, user_headers, admin_headers):
    product = create_product(is_active=False)

    assert client.get(f"/api/v1/products/{product['id']}", headers=user_headers).status_code == 404
    assert client.get(f"/api/v1/products/{product['id']}", headers=admin_headers).status_code == 200


def test_update_product_reorders_media_and_removes_dropped_files(
    client: TestClient, admin_headers, media_root, db_session: Session
):
    created = client.post(
        "/api/v1/products",
        data={"productData": json.dumps(_product_payload())},
        files=[
            ("media_0", ("first.png", _png_bytes("red"), "image/png")),
            ("media_1", ("second.png", _png_bytes("blue"), "image/png")),
        ],
        headers=admin_headers,
    ).json()["data"]
    first_url, second_url = [m["url"] for m in created["media"]]

    response = client.put(
        f"/api/v1/products/{created['id']}",
        json=_product_payload(
            sku="MOUSE-002",
            translations=[{"locale": "en", "title": "Silent Mouse", "description": "Even quieter"}],
            media=[
                {"url": second_url, "type": "IMAGE", "sort_order": 5},
                {"url": "https://cdn.example.com/extra.jpg", "type": "IMAGE", "sort_order": 1},
            ],
        ),
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["sku"] == "MOUSE-002"
    assert data["slug"] == "silent-mouse"
    assert [t["locale"] for t in data["translations"]] == ["en"]
    assert [(m["url"], m["sort_order"], m["provider"]) for m in data["media"]] == [
        ("https://cdn.example.com/extra.jpg", 0, "external"),
        (second_url, 1, "local"),
    ]
    assert not _file_for(media_root, first_url).exists()
    assert _file_for(media_root, second_url).is_file()
    assert db_session.query(Media).count() == 2


def test_update_product_keeps_suppliers_unless_given(client: TestClient, admin_headers, db_session: Session):
    supplier = Supplier(name="Acme Wholesale")
    db_session.add(supplier)
    db_session.commit()

    created = client.post(
        "/api/v1/products",
        json=_product_payload(
            suppliers=[{"supplier_id": supplier.id, "url": "https://acme.example.com/mouse", "price": 12.5}]
        ),
        headers=admin_headers,
    ).json()["data"]
    assert len(created["suppliers"]) == 1

    kept = client.put(f"/api/v1/products/{created['id']}", json=_product_payload(), headers=admin_headers)
    assert len(kept.json()["data"]["suppliers"]) == 1

    cleared = client.put(
        f"/api/v1/products/{created['id']}",
        json=_product_payload(suppliers=[]),
        headers=admin_headers,
    )
    assert cleared.json()["data"]["suppliers"] == []


def test_create_product_rejects_unknown_supplier(client: TestClient, admin_headers):
    response = client.post(
        "/api/v1/products",
        json=_product_payload(suppliers=[{"supplier_id": 42, "url": "https://example.com/x"}]),
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid supplier_id: 42"


def test_delete_product_removes_local_files(client: TestClient, admin_headers, media_root, db_session: Session):
    created = client.post(
        "/api/v1/products",
        data={"productData": json.dumps(_product_payload())},
        files={"media_0": ("photo.png", _png_bytes(), "image/png")},
        headers=admin_headers,
    ).json()["data"]
    stored_file = _file_for(media_root, created["media"][0]["url"])
    assert stored_file.is_file()

    response = client.delete(f"/api/v1/products/{created['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert not stored_file.exists()
    assert db_session.query(Product).count() == 0
    assert db_session.query(Media).count() == 0

    assert client.delete(f"/api/v1/products/{created['id']}", headers=admin_headers).status_code == 404


def test_offers_use_sample_catalogue_without_suppliers(client: TestClient, create_product, user_headers):
    product = create_product(currency=None)

    response = client.get(f"/api/v1/products/{product['id']}/offers", headers=user_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["currency"] == "USD"
    assert len(data["suppliers"]) == 5
    assert all(offer["is_sample"] for offer in data["suppliers"])
    assert data["summary"] == {
        "lowest_supplier_price": 275.0,
        "lowest_supplier": "Bulk Suppliers",
        "lowest_marketplace_price": 295.0,
        "lowest_marketplace": "eBay",
        "potential_margin": 20.0,
    }


def test_offers_prefer_linked_suppliers(client: TestClient, admin_headers, user_headers, db_session: Session):
    cheap = Supplier(name="Cheap Co", marketplace="AliExpress")
    primary = Supplier(name="Primary Co")
    db_session.add_all([cheap, primary])
    db_session.commit()

    product = client.post(
        "/api/v1/products",
        json=_product_payload(
            suppliers=[
                {"supplier_id": cheap.id, "url": "https://cheap.example.com/p", "price": 10.0},
                {
                    "supplier_id": primary.id,
                    "url": "https://primary.example.com/p",
                    "price": 15.0,
                    "is_primary": True,
                },
            ]
        ),
        headers=admin_headers,
    ).json()["data"]

    data = client.get(f"/api/v1/products/{product['id']}/offers", headers=user_headers).json()["data"]

    assert [offer["name"] for offer in data["suppliers"]] == ["Primary Co", "Cheap Co"]
    assert data["suppliers"][1]["marketplace"] == "AliExpress"
    assert data["summary"]["lowest_supplier"] == "Cheap Co"
    assert data["summary"]["potential_margin"] == 285.0


def test_like_product(client: TestClient, create_product, user_headers):
    product = create_product()

    response = client.post(f"/api/v1/products/{product['id']}/like", headers=user_headers)

    assert response.status_code == 200
    assert response.json()["data"] == {"id": product["id"], "likes": 1}


def test_duplicate_sku_is_a_conflict(client: TestClient, create_product, admin_headers, db_session: Session):
    mouse = create_product()
    lamp = create_product(
        sku="LAMP-001",
        translations=[{"locale": "en", "title": "Desk Lamp", "description": ""}],
    )

    duplicate = client.post("/api/v1/products", json=_product_payload(), headers=admin_headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "SKU already exists"
    assert db_session.query(Product).count() == 2

    taken = client.put(f"/api/v1/products/{lamp['id']}", json=_product_payload(), headers=admin_headers)
    assert taken.status_code == 409
    assert taken.json()["message"] == "SKU already exists"

    unchanged = client.put(f"/api/v1/products/{mouse['id']}", json=_product_payload(), headers=admin_headers)
    assert unchanged.status_code == 200
    assert unchanged.json()["data"]["sku"] == "MOUSE-001"


def test_upload_sort_order_comes_from_field_name(client: TestClient, admin_headers, media_root):
    response = client.post(
        "/api/v1/products",
        data={"productData": json.dumps(_product_payload())},
        files=[
            ("media_2_front", ("front.png", _png_bytes("red"), "image/png")),
            ("media_-1", ("back.png", _png_bytes("blue"), "image/png")),
        ],
        headers=admin_headers,
    )

    assert response.status_code == 201, response.text
    media = response.json()["data"]["media"]
    assert [(m["metadata"]["original_name"], m["sort_order"]) for m in media] == [
        ("back.png", 0),
        ("front.png", 2),
    ]


def test_search_treats_wildcards_literally(client: TestClient, create_product):
    create_product()
    create_product(
        sku="TEE-100",
        translations=[{"locale": "en", "title": "100% Cotton Tee", "description": ""}],
    )

    percent = client.get("/api/v1/products", params={"search": "%"}).json()["data"]
    assert [p["sku"] for p in percent] == ["TEE-100"]

    underscore = client.get("/api/v1/products", params={"search": "_"}).json()["data"]
    assert underscore == []
