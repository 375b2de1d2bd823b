import pytest
from fastapi.testclient import TestClient

from tests.conftest import InMemoryQuoteRepository
from app.auth.dependencies import get_current_user
from app.routers.quotes import get_quote_service
from app.schemas.quote import QuoteStatus
from app.services.quote_service import QuoteService
from main import app


BUYER = {"id": 7, "username": "acheteur", "role": "buyer", "actif": True}
SUPPLIER = {"id": 101, "username": "fournisseur", "role": "supplier", "supplier_id": 2, "actif": True}


@pytest.fixture
def api(make_quote):
    """Client HTTP branché sur un repository en mémoire"""
    state = {
        "user": BUYER,
        "repository": InMemoryQuoteRepository([
            make_quote(supplier_id=1, total_amount=500, total_score=60),
            make_quote(supplier_id=2, total_amount=300, status=QuoteStatus.UNDER_REVIEW),
            make_quote(supplier_id=3, status=QuoteStatus.REJECTED, total_score=20),
        ]),
    }
    app.dependency_overrides[get_current_user] = lambda: state["user"]
    app.dependency_overrides[get_quote_service] = lambda: QuoteService(state["repository"])

    with TestClient(app) as client:
        client.fake = state
        yield client

    app.dependency_overrides.clear()


def test_root():
    response = TestClient(app).get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


def test_requires_token():
    response = TestClient(app).get("/api/quotes/1")
    assert response.status_code == 401


def test_get_quote(api):
    response = api.get("/api/quotes/1")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == 1
    assert body["status"] == "evaluated"
    assert body["is_expired"] is False


def test_get_unknown_quote(api):
    response = api.get("/api/quotes/99")

    assert response.status_code == 404
    assert "99" in response.json()["detail"]


def test_list_quotes_for_rfq(api):
    response = api.get("/api/quotes/rfq/RFQ-1")

    assert response.status_code == 200
    assert response.json()["total"] == 3


def test_submit_quote(api):
    payload = {
        "requisition_id": "REQ-1",
        "rfq_id": "RFQ-1",
        "supplier_id": 44,
        "buyer_id": 7,
        "items": [{"description": "Compteur", "quantity": 10, "unit_price": 12.5}],
        "delivery_time": "3 weeks",
    }

    response = api.post("/api/quotes", json=payload)

    assert response.status_code == 201
    body = response.json()
    assert body["total_amount"] == 125
    assert body["delivery_time"] == {"value": 3, "unit": "weeks"}
    assert body["quote_number"].startswith("QUO-")


def test_submit_duplicate_quote(api):
    payload = {
        "requisition_id": "REQ-1",
        "rfq_id": "RFQ-1",
        "supplier_id": 1,
        "buyer_id": 7,
        "items": [{"description": "Compteur", "quantity": 1, "unit_price": 1}],
    }

    assert api.post("/api/quotes", json=payload).status_code == 409


def test_submit_without_items(api):
    payload = {"requisition_id": "REQ-1", "rfq_id": "RFQ-1", "supplier_id": 44, "buyer_id": 7, "items": []}

    assert api.post("/api/quotes", json=payload).status_code == 422


def test_evaluate_quote(api):
    response = api.post(
        "/api/quotes/2/evaluate",
        json={"quality_score": 80, "cost_score": 60, "delivery_score": 90}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["evaluation"]["total_score"] == 75.5
    assert body["evaluation"]["evaluated_by"] == BUYER["id"]
    assert body["comparison_metrics"]["overall_rank"] == 1


def test_evaluate_with_null_lists(api):
    response = api.post(
        "/api/quotes/2/evaluate",
        json={"quality_score": 80, "cost_score": 60, "delivery_score": 90, "strengths": None}
    )

    assert response.status_code == 200
    assert response.json()["evaluation"]["strengths"] == []


def test_evaluate_rejected_quote(api):
    response = api.post("/api/quotes/3/evaluate", json={"quality_score": 80})

    assert response.status_code == 400
    assert "rejected" in response.json()["detail"]


def test_supplier_cannot_evaluate(api):
    api.fake["user"] = SUPPLIER

    response = api.post("/api/quotes/2/evaluate", json={"quality_score": 80})

    assert response.status_code == 403


def test_comparison(api):
    response = api.post("/api/quotes/rfq/RFQ-1/comparison")

    assert response.status_code == 200
    body = response.json()
    assert [r["quote_id"] for r in body["rankings"]] == [1, 3]
    assert body["failed"] == {}


def test_comparison_with_failed_write(api, make_quote):
    api.fake["repository"] = InMemoryQuoteRepository(
        [make_quote(supplier_id=1, total_score=90), make_quote(supplier_id=2, total_score=80)],
        fail_ids={2}
    )

    response = api.post("/api/quotes/rfq/RFQ-1/comparison")

    assert response.status_code == 207
    body = response.json()
    assert body["updated"] == [1]
    assert list(body["failed"]) == ["2"]


def test_select_quote(api):
    response = api.post("/api/quotes/1/select", json={"reason": "Meilleur score"})

    assert response.status_code == 200
    body = response.json()
    assert body["selected"]["status"] == "selected"
    assert body["rejected"] == [2]


def test_clarification_round_trip(api):
    response = api.post("/api/quotes/2/clarifications", json={"question": "Garantie ?"})
    assert response.status_code == 200
    assert response.json()["status"] == "clarification_requested"

    api.fake["user"] = SUPPLIER
    response = api.post("/api/quotes/2/clarifications/0/response", json={"response": "24 mois"})
    assert response.status_code == 200
    assert response.json()["status"] == "responded"

    response = api.post("/api/quotes/2/clarifications/5/response", json={"response": "?"})
    assert response.status_code == 404


def test_buyer_stats(api):
    response = api.get("/api/quotes/stats/buyer")

    assert response.status_code == 200
    assert response.json()["total"] == 3


def test_supplier_sees_only_own_quotes(api):
    api.fake["user"] = SUPPLIER

    response = api.get("/api/quotes/rfq/RFQ-1")

    assert response.status_code == 200
    assert [q["supplier_id"] for q in response.json()["quotes"]] == [2]


def test_supplier_cannot_read_another_supplier_quote(api):
    api.fake["user"] = SUPPLIER

    assert api.get("/api/quotes/2").status_code == 200
    assert api.get("/api/quotes/1").status_code == 403


def test_supplier_cannot_submit_for_another_supplier(api):
    api.fake["user"] = SUPPLIER
    payload = {
        "requisition_id": "REQ-2",
        "rfq_id": "RFQ-2",
        "supplier_id": 44,
        "buyer_id": 7,
        "items": [{"description": "Compteur", "quantity": 1, "unit_price": 1}],
    }

    assert api.post("/api/quotes", json=payload).status_code == 403
