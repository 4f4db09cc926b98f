"""FastAPI endpoint tests."""

from fastapi.testclient import TestClient

from catalogsvc.dependencies import get_stock_reconciler
from catalogsvc.exceptions import StorageFault


def test_health_check(api_test_client: TestClient) -> None:
    response = api_test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_import_then_discount_round_trip(api_test_client: TestClient, memory_repository) -> None:
    response = api_test_client.post(
        "/stock/import",
        json=[
            {"name": "P1", "categories": ["A"], "price": 10, "quantity": 5},
            {"name": "P2", "categories": ["a"], "price": "20.00", "quantity": 5},
        ],
    )
    assert response.status_code == 200
    assert response.json() == {
        "message": "Stock import finished. Processed: 2, Products Created: 2, Products Updated: 0."
    }

    p1 = memory_repository.get_product_by_name("P1")
    p2 = memory_repository.get_product_by_name("P2")
    response = api_test_client.post(
        "/basket/calculate-discount",
        json={
            "items": [
                {"productId": p1.product_id, "quantity": 1},
                {"productId": p2.product_id, "quantity": 1},
            ]
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert float(data["originalTotal"]) == 30.0
    assert float(data["discountAmount"]) == 1.5
    assert float(data["finalTotal"]) == 28.5
    assert len(data["appliedDiscountMessages"]) == 2
    assert data["errorMessage"] is None


def test_discount_unknown_product_is_business_rejection(api_test_client: TestClient) -> None:
    response = api_test_client.post(
        "/basket/calculate-discount",
        json={"items": [{"productId": 77, "quantity": 1}]},
    )

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["errorMessage"] == "Product with ID 77 not found."


def test_discount_rejects_empty_basket(api_test_client: TestClient) -> None:
    response = api_test_client.post("/basket/calculate-discount", json={"items": []})
    assert response.status_code == 422


def test_discount_rejects_zero_quantity(api_test_client: TestClient) -> None:
    response = api_test_client.post(
        "/basket/calculate-discount",
        json={"items": [{"productId": 1, "quantity": 0}]},
    )
    assert response.status_code == 422


def test_import_empty_list_returns_message(api_test_client: TestClient) -> None:
    response = api_test_client.post("/stock/import", json=[])
    assert response.status_code == 200
    assert response.json() == {"message": "No stock items provided for import."}


def test_import_rejects_non_positive_price(api_test_client: TestClient) -> None:
    response = api_test_client.post(
        "/stock/import",
        json=[{"name": "X", "categories": ["CPU"], "price": 0, "quantity": 1}],
    )
    assert response.status_code == 422


def test_import_storage_fault_maps_to_error_payload(
    api_test_app, api_test_client: TestClient
) -> None:
    class _FailingReconciler:
        def reconcile(self, rows):
            raise StorageFault("database unavailable")

    api_test_app.dependency_overrides[get_stock_reconciler] = lambda: _FailingReconciler()
    try:
        response = api_test_client.post(
            "/stock/import",
            json=[{"name": "X", "categories": ["CPU"], "price": 5, "quantity": 1}],
        )
    finally:
        api_test_app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "STORAGE_FAULT"


def test_import_unexpected_error_returns_500(api_test_app, api_test_client: TestClient) -> None:
    class _BrokenReconciler:
        def reconcile(self, rows):
            raise RuntimeError("unexpected")

    api_test_app.dependency_overrides[get_stock_reconciler] = lambda: _BrokenReconciler()
    try:
        response = api_test_client.post(
            "/stock/import",
            json=[{"name": "X", "categories": ["CPU"], "price": 5, "quantity": 1}],
        )
    finally:
        api_test_app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["detail"] == "An unexpected error occurred during stock import."
