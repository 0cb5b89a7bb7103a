"""GET /api/materials: filters, search tiers, pagination, sorting, error shape."""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api import materials as materials_api
from marketplace.services import search as search_service


def _titles(r) -> list[str]:
    return [m["title"] for m in r.json()["materials"]]


async def test_unexpected_error_returns_500_body(api_client: AsyncClient, monkeypatch):
    async def boom(db, query):
        raise RuntimeError("connection reset")
    monkeypatch.setattr(materials_api, "list_materials", boom)
    r = await api_client.get("/api/materials")
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error", "code": "INTERNAL_ERROR"}


async def test_lists_only_published_and_public(client: AsyncClient, catalogue):
    r = await client.get("/api/materials")
    assert r.status_code == 200
    data = r.json()
    titles = _titles(r)
    assert "Bruchrechnen Entwurf" not in titles
    assert "Bruchrechnen ungeprüft" not in titles
    assert data["pagination"] == {"page": 1, "limit": 20, "total": 4, "totalPages": 1}
    # newest first
    assert titles == [
        "Bruchrechnen Übungsblätter",
        "Zahlenraum bis 100",
        "Geometrie Flächen",
        "Leseverständnis Tiergeschichten",
    ]


async def test_summary_shape(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?subject=MA&minPrice=10")
    materials = r.json()["materials"]
    assert len(materials) == 1
    m = materials[0]
    assert m["id"] == str(catalogue["paid_ma"].id)
    assert m["priceFormatted"] == "CHF 12.99"
    assert m["subject"] == "MA"
    assert m["cycle"] == "2"
    assert m["averageRating"] == 4.5
    assert m["reviewCount"] == 2
    assert m["isMiIntegrated"] is True
    assert m["seller"]["display_name"] == "Frau Keller"
    assert m["seller"]["is_verified_seller"] is True


async def test_free_maths_materials(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?maxPrice=0&subject=MA")
    assert r.status_code == 200
    assert sorted(_titles(r)) == ["Bruchrechnen Übungsblätter", "Zahlenraum bis 100"]
    assert r.json()["pagination"]["total"] == 2


async def test_subject_and_cycle_intersect(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?subject=MA&cycle=2")
    assert sorted(_titles(r)) == ["Bruchrechnen Übungsblätter", "Geometrie Flächen"]

    r = await client.get("/api/materials?subject=D&cycle=3")
    assert r.json()["materials"] == []
    assert r.json()["pagination"]["total"] == 0


async def test_unknown_competency_short_circuits(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?competency=XX.999.ZZZ&page=2&limit=5")
    assert r.status_code == 200
    assert r.json() == {
        "materials": [],
        "pagination": {"page": 2, "limit": 5, "total": 0, "totalPages": 0},
    }


async def test_competency_matches_with_and_without_dots(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?competency=ma.1.a")
    assert _titles(r) == ["Zahlenraum bis 100"]
    badge = r.json()["materials"][0]["competencies"][0]
    assert badge["code"] == "MA.1.A.1"
    assert badge["subjectCode"] == "MA"

    r = await client.get("/api/materials?competency=MA1A1")
    assert _titles(r) == ["Zahlenraum bis 100"]


async def test_page_and_limit_are_clamped(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?page=0&limit=1000")
    assert r.status_code == 200
    pagination = r.json()["pagination"]
    assert pagination["page"] == 1
    assert pagination["limit"] == 100


async def test_pagination_pages(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?limit=3&page=2")
    data = r.json()
    assert data["pagination"] == {"page": 2, "limit": 3, "total": 4, "totalPages": 2}
    assert _titles(r) == ["Leseverständnis Tiergeschichten"]


async def test_price_sorting(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?sort=price-high")
    prices = [m["price"] for m in r.json()["materials"]]
    assert prices == sorted(prices, reverse=True)
    assert prices[0] == 1299

    r = await client.get("/api/materials?sort=price-low")
    prices = [m["price"] for m in r.json()["materials"]]
    assert prices == sorted(prices)


async def test_unmatched_canton_is_empty(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?cantons=TI,GE")
    assert r.json()["materials"] == []

    r = await client.get("/api/materials?cantons=BE")
    assert sorted(_titles(r)) == ["Leseverständnis Tiergeschichten", "Zahlenraum bis 100"]


async def test_dialect_includes_both(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?dialect=SWISS")
    assert sorted(_titles(r)) == [
        "Bruchrechnen Übungsblätter",
        "Leseverständnis Tiergeschichten",
        "Zahlenraum bis 100",
    ]


async def test_formats(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?formats=word,ppt")
    assert sorted(_titles(r)) == ["Geometrie Flächen", "Zahlenraum bis 100"]

    r = await client.get("/api/materials?formats=other")
    assert _titles(r) == ["Leseverständnis Tiergeschichten"]


async def test_mi_integrated(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?mi_integrated=true")
    assert _titles(r) == ["Geometrie Flächen"]


async def test_lehrmittel_filters(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?lehrmittel=not-a-uuid")
    assert r.json()["materials"] == []
    r = await client.get(f"/api/materials?lehrmittel={uuid4()}")
    assert r.json()["materials"] == []


async def test_full_text_search(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?search=Geometrie")
    assert _titles(r) == ["Geometrie Flächen"]


async def test_fuzzy_search_fallback(client: AsyncClient, catalogue):
    # Misspelled: no lexeme match, trigram similarity still finds it
    r = await client.get("/api/materials?search=Bruchrechen")
    assert r.status_code == 200
    assert "Bruchrechnen Übungsblätter" in _titles(r)
    assert "Bruchrechnen Entwurf" not in _titles(r)


async def test_search_without_match_is_empty(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?search=qqqqxxxxzzzz")
    assert r.json()["materials"] == []
    assert r.json()["pagination"]["total"] == 0


async def test_search_combined_with_filter(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?search=Geometrie&subject=D")
    assert r.json()["materials"] == []


async def test_lp21_code_search_uses_plain_contains(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?search=MA.9")
    assert r.status_code == 200
    assert r.json()["materials"] == []


async def test_fuzzy_failure_yields_empty_page(client: AsyncClient, catalogue, monkeypatch):
    async def no_trgm(db, q):
        raise DBAPIError("SELECT similarity(...)", {}, Exception("function similarity does not exist"))
    monkeypatch.setattr(search_service, "fuzzy_ranks", no_trgm)
    r = await client.get("/api/materials?search=Bruchrechen")
    assert r.status_code == 200
    assert r.json()["materials"] == []


@pytest.mark.parametrize("params", ["sort=bogus", "dialect=KLINGON", "formats=zip", "mi_integrated=yes"])
async def test_invalid_values_fall_back(client: AsyncClient, catalogue, params):
    r = await client.get(f"/api/materials?{params}")
    assert r.status_code == 200
    assert r.json()["pagination"]["total"] == 4


async def test_transversal_filter(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?transversal=pk")
    assert _titles(r) == ["Leseverständnis Tiergeschichten"]
    badge = r.json()["materials"][0]["transversals"][0]
    assert badge["code"] == "PK"
    assert badge["icon"] == "user"


async def test_unknown_transversal_is_empty(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?transversal=XYZ")
    assert r.status_code == 200
    assert r.json()["materials"] == []
    assert r.json()["pagination"]["total"] == 0


async def test_bne_filter(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?bne=natur")
    assert _titles(r) == ["Bruchrechnen Übungsblätter"]
    assert r.json()["materials"][0]["bneThemes"][0]["code"] == "BNE_NATUR"


async def test_unknown_bne_is_empty(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?bne=BNE_WIRTSCHAFT")
    assert r.status_code == 200
    assert r.json()["materials"] == []
    assert r.json()["pagination"]["total"] == 0


async def test_huge_price_bounds_do_not_fail(client: AsyncClient, catalogue):
    r = await client.get("/api/materials?maxPrice=99999999&minPrice=-99999999")
    assert r.status_code == 200
    assert r.json()["pagination"]["total"] == 4


async def test_relevance_sort_orders_page_by_rank(client: AsyncClient, db: AsyncSession, catalogue, resource_factory):
    now = datetime.now(timezone.utc)
    seller = catalogue["zh_seller"]
    strong = resource_factory(
        seller, "Vulkan Werkstatt", description="Vulkan Aufbau: so entsteht ein Vulkan",
        price=500, created_at=now - timedelta(days=10),
    )
    weak = resource_factory(
        seller, "Geografie Mappe", description="Ein Kapitel zum Vulkan",
        price=900, created_at=now,
    )
    db.add_all([strong, weak])
    await db.commit()

    # Newer first by created_at; the title match ranks higher
    r = await client.get("/api/materials?search=Vulkan&sort=relevance")
    assert r.status_code == 200
    assert _titles(r) == ["Vulkan Werkstatt", "Geografie Mappe"]

    # Price sorts keep SQL order
    r = await client.get("/api/materials?search=Vulkan&sort=price-high")
    assert _titles(r) == ["Geografie Mappe", "Vulkan Werkstatt"]
