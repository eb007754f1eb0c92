import pytest
from fastapi.testclient import TestClient

from app.core import app_state
from app.main import app
from app.routes.dependencies import get_substitute_engine
from app.services.substitute_service import SubstituteEngine

from conftest import USER_LAT, USER_LNG


USER_LOCATION = {"lat": USER_LAT, "lng": USER_LNG}


class BrokenPriceOracle:
    def average_price(self, medicine_id):
        raise RuntimeError("price feed offline")


@pytest.fixture
def client(monkeypatch, sample_catalog, two_pharmacy_store):
    monkeypatch.setattr(app_state, "CATALOG", None)
    monkeypatch.setattr(app_state, "STORE", None)
    app_state.install(sample_catalog, two_pharmacy_store)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    """Test the health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "pharmacy_finder"}


def test_search(client):
    """Test medicine search over HTTP."""
    response = client.get("/api/medicines/search", params={"query": "paracetamol"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["results"][0]["id"] == "med_para"


def test_search_blank_query_is_bad_request(client):
    """Test a blank search query returns 400."""
    response = client.get("/api/medicines/search", params={"query": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "Search query is required"


def test_unknown_medicine_is_not_found(client):
    """Test an unknown medicine returns 404."""
    response = client.get("/api/medicines/med_missing")
    assert response.status_code == 404
    assert response.json()["detail"] == "Medicine med_missing not found"


def test_substitutes(client):
    """Test the substitutes endpoint."""
    response = client.get("/api/medicines/med_para/substitutes")

    assert response.status_code == 200
    body = response.json()
    assert body["original_medicine"]["id"] == "med_para"
    assert [s["medicine"]["id"] for s in body["substitutes"]] == ["med_crocin", "med_ibu"]
    assert body["substitutes"][0]["substitute_type"] == "generic"


def test_no_substitutes_is_an_empty_success(client):
    """Test no substitutes is a 200 with an empty list."""
    response = client.get("/api/medicines/med_other/substitutes")

    assert response.status_code == 200
    assert response.json()["substitutes"] == []
    assert response.json()["total"] == 0


def test_substitute_failure_is_a_server_error(client, sample_catalog):
    """Test a failed substitute computation returns 500."""
    app.dependency_overrides[get_substitute_engine] = lambda: SubstituteEngine(
        sample_catalog, price_oracle=BrokenPriceOracle()
    )

    response = client.get("/api/medicines/med_para/substitutes")

    assert response.status_code == 500
    assert response.json()["detail"] == "Substitute computation failed"


def test_advanced_substitutes(client):
    """Test the advanced substitutes endpoint."""
    response = client.post(
        "/api/medicines/med_para/substitutes/advanced",
        json={"prefer_generic": True},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["preferences"]["prefer_generic"] is True
    assert body["substitutes"][0]["medicine"]["id"] == "med_crocin"
    assert body["substitutes"][0]["advanced_score"] >= 1.1


def test_interactions(client):
    """Test the interaction endpoint and its 404."""
    response = client.get("/api/medicines/interactions", params={"first": "med_para", "second": "med_ibu"})

    assert response.status_code == 200
    assert response.json()["has_interaction"] is True

    missing = client.get("/api/medicines/interactions", params={"first": "med_para", "second": "med_nope"})
    assert missing.status_code == 404


def test_recommend_pharmacies(client):
    """Test the pharmacy recommendation endpoint."""
    response = client.post(
        "/api/recommendations/pharmacy",
        json={"medicine_id": "med_para", "user_location": USER_LOCATION},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["medicine"]["id"] == "med_para"
    assert body["criteria"] == {"price": 0.4, "distance": 0.4, "availability": 0.2}
    assert [r["pharmacy"]["id"] for r in body["recommendations"]] == ["P2", "P1"]
    assert body["recommendations"][0]["total_score"] == pytest.approx(0.9)
    assert body["total"] == 2


def test_recommend_unknown_medicine(client):
    """Test recommending an unknown medicine returns 404."""
    response = client.post(
        "/api/recommendations/pharmacy",
        json={"medicine_id": "med_missing", "user_location": USER_LOCATION},
    )
    assert response.status_code == 404


def test_recommend_rejects_bad_location(client):
    """Test an out-of-range location returns 422."""
    response = client.post(
        "/api/recommendations/pharmacy",
        json={"medicine_id": "med_para", "user_location": {"lat": 123, "lng": 0}},
    )
    assert response.status_code == 422


def test_best_pharmacy(client):
    """Test the best pharmacy endpoint."""
    response = client.post(
        "/api/recommendations/best-pharmacy",
        json={"medicine_id": "med_para", "user_location": USER_LOCATION, "urgency": "budget"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["urgency"] == "budget"
    assert body["best"]["pharmacy"]["id"] == "P2"
    assert [r["pharmacy"]["id"] for r in body["alternatives"]] == ["P1"]


def test_personalized(client):
    """Test the personalized recommendation endpoint."""
    response = client.post(
        "/api/recommendations/personalized",
        json={
            "medicine_id": "med_para",
            "user_location": USER_LOCATION,
            "weights": {"price": 0.2, "distance": 0.4, "availability": 0.2},
            "preferred_pharmacies": ["P1"],
        },
    )

    assert response.status_code == 200
    recommendations = response.json()["recommendations"]
    assert recommendations[0]["pharmacy"]["id"] == "P1"
    assert recommendations[0]["reasoning"].endswith("Preferred pharmacy")


def test_price_trend(client):
    """Test the price trend endpoint."""
    response = client.get("/api/recommendations/price-trend/med_para", params={"days": 7})

    assert response.status_code == 200
    body = response.json()
    assert len(body["price_trend"]) == 8
    assert body["simulated"] is True
    assert body["analysis"]["trend"] in {"increasing", "decreasing", "stable"}


def test_price_trend_rejects_bad_days(client):
    """Test an invalid day count returns 400."""
    response = client.get("/api/recommendations/price-trend/med_para", params={"days": 0})
    assert response.status_code == 400


def test_nearby_pharmacies(client):
    """Test the nearby pharmacies endpoint."""
    close = client.get("/api/pharmacies/nearby", params={"lat": USER_LAT, "lng": USER_LNG, "radius": 1})
    assert [p["id"] for p in close.json()["pharmacies"]] == ["P1", "P3"]

    wider = client.get(
        "/api/pharmacies/nearby",
        params={"lat": USER_LAT, "lng": USER_LNG, "radius": 5, "medicine_id": "med_para"},
    )
    body = wider.json()
    assert [p["id"] for p in body["pharmacies"]] == ["P1", "P2"]
    assert body["pharmacies"][1]["distance"] == 2.0


def test_compare_prices(client):
    """Test the price comparison endpoint."""
    response = client.get("/api/pharmacies/compare/med_para")

    assert response.status_code == 200
    comparisons = response.json()["comparisons"]
    assert [c["pharmacy"]["id"] for c in comparisons] == ["P2", "P1"]
    assert comparisons[0]["distance"] is None


def test_pharmacy_detail(client):
    """Test the pharmacy detail endpoint and its 404."""
    response = client.get("/api/pharmacies/P1")

    assert response.status_code == 200
    assert [e["medicine_id"] for e in response.json()["inventory"]] == ["med_para"]
    assert client.get("/api/pharmacies/P9").status_code == 404


def test_pharmacy_medicine(client):
    """Test the pharmacy medicine endpoint and its 404."""
    response = client.get("/api/pharmacies/P1/medicines/med_para")
    assert response.status_code == 200
    assert response.json()["medicine"]["price"] == 100

    missing = client.get("/api/pharmacies/P1/medicines/med_other")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Medicine not available at this pharmacy"


def test_upsert_known_medicine(client, two_pharmacy_store):
    """Test stocking a known medicine at a pharmacy."""
    response = client.post(
        "/api/pharmacies/P1/medicines",
        json={"name": "Crocin 650mg Tablet", "price": 30, "stock": 12},
    )

    assert response.status_code == 200
    assert response.json() == {
        "pharmacy_id": "P1",
        "medicine_id": "med_crocin",
        "price": 30,
        "stock": 12,
        "created_medicine": False,
    }
    assert two_pharmacy_store.get_pharmacy("P1").find_entry("med_crocin").stock == 12


def test_upsert_unknown_medicine_registers_it(client, sample_catalog):
    """Test stocking an unknown medicine registers it."""
    response = client.post("/api/pharmacies/P2/medicines", json={"name": "Herbal Tonic", "price": 80})

    assert response.status_code == 200
    body = response.json()
    assert body["created_medicine"] is True
    assert body["medicine_id"] == "med_custom_1"
    assert body["stock"] == 10
    assert "med_custom_1" in sample_catalog


def test_upsert_with_new_pharmacy(client, two_pharmacy_store):
    """Test stocking a medicine at a newly registered pharmacy."""
    response = client.post(
        "/api/pharmacies/self/medicines",
        json={"name": "Crocin 650mg Tablet", "price": 30, "pharmacy_name": "Corner Chemist"},
    )

    assert response.status_code == 200
    assert response.json()["pharmacy_id"] == "pharm_custom_1"
    assert len(two_pharmacy_store) == 4


def test_upsert_rejects_negative_price(client):
    """Test a negative price returns 422."""
    response = client.post("/api/pharmacies/P1/medicines", json={"name": "Crocin 650mg Tablet", "price": -5})
    assert response.status_code == 422


def test_upsert_unknown_pharmacy(client):
    """Test stocking at an unknown pharmacy returns 404."""
    response = client.post("/api/pharmacies/P9/medicines", json={"name": "Crocin 650mg Tablet", "price": 5})
    assert response.status_code == 404


def test_rejected_upsert_creates_nothing(client, sample_catalog, two_pharmacy_store):
    """Test a rejected inventory update leaves the store and catalog unchanged."""
    pharmacies_before = len(two_pharmacy_store)
    medicines_before = len(sample_catalog)

    response = client.post(
        "/api/pharmacies/self/medicines",
        json={"name": "   ", "price": 10, "stock": 5, "pharmacy_name": "Ghost Pharmacy"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Search query is required"
    assert len(two_pharmacy_store) == pharmacies_before
    assert all(p.name != "Ghost Pharmacy" for p in two_pharmacy_store)
    assert len(sample_catalog) == medicines_before


def test_compare_prices_needs_both_coordinates(client):
    """Test price comparison rejects a location with only one coordinate."""
    response = client.get("/api/pharmacies/compare/med_para", params={"lat": USER_LAT})

    assert response.status_code == 400
    assert response.json()["detail"] == "lat and lng must be given together"


def test_compare_prices_with_location(client):
    """Test price comparison keeps only pharmacies inside the radius."""
    response = client.get(
        "/api/pharmacies/compare/med_para", params={"lat": USER_LAT, "lng": USER_LNG, "radius": 1}
    )

    assert response.status_code == 200
    comparisons = response.json()["comparisons"]
    assert [c["pharmacy"]["id"] for c in comparisons] == ["P1"]
    assert comparisons[0]["distance"] == 0
