from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from product_genius.models.supplier import ProductSupplier, Supplier
from product_genius.models.product import Product


def test_create_and_list_suppliers(client: TestClient, admin_headers):
    created = client.post(
        "/api/v1/suppliers",
        json={"name": "Zeta Imports", "marketplace": "Alibaba", "notes": "<i>MOQ 50</i>"},
        headers=admin_headers,
    )
    client.post("/api/v1/suppliers", json={"name": "Alpha Trading"}, headers=admin_headers)

    assert created.status_code == 201
    assert created.json()["data"]["notes"] == "MOQ 50"

    listed = client.get("/api/v1/suppliers", headers=admin_headers).json()["data"]
    assert [s["name"] for s in listed] == ["Alpha Trading", "Zeta Imports"]


def test_create_supplier_requires_name(client: TestClient, admin_headers):
    response = client.post("/api/v1/suppliers", json={"name": "  "}, headers=admin_headers)

    assert response.status_code == 422


def test_delete_supplier_removes_product_links(client: TestClient, db_session: Session, admin_headers):
    supplier = Supplier(name="Gone Supplies")
    product = Product(sku="LINKED-1")
    product.suppliers.append(ProductSupplier(supplier=supplier, url="https://gone.example.com/p"))
    db_session.add(product)
    db_session.commit()

    response = client.delete(f"/api/v1/suppliers/{supplier.id}", headers=admin_headers)

    assert response.status_code == 200
    assert db_session.query(Supplier).count() == 0
    assert db_session.query(ProductSupplier).count() == 0
    assert db_session.query(Product).count() == 1


def test_delete_missing_supplier(client: TestClient, admin_headers):
    response = client.delete("/api/v1/suppliers/404", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Supplier not found"


def test_suppliers_are_admin_only(client: TestClient, user_headers):
    assert client.post("/api/v1/suppliers", json={"name": "X"}, headers=user_headers).status_code == 403
