from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from compdesk.cache import InMemoryResponseCache, get_cache
from compdesk.database import Base, get_session
from compdesk.main import app
from compdesk.models import DistributorPeriod

from helpers import row, seed_network


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def cache():
    return InMemoryResponseCache()


@pytest.fixture()
def client(db_session, cache):
    def override_session():
        try:
            yield db_session
        finally:
            db_session.rollback()

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_cache] = lambda: cache

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_session, None)
    app.dependency_overrides.pop(get_cache, None)


def _seed_data(session):
    december = seed_network(
        session,
        [
            row(1, plan="Platino", personal=200, name="Ana Root"),
            row(2, sponsor=1, plan="Bronce", personal=150, group=2000, name="Beto"),
            row(3, sponsor=2, personal=50, group=800, name="Carla"),
            row(4, sponsor=1, personal=120, group=400, name="Dario"),
        ],
        name_period="Diciembre 2024",
        start=date(2024, 12, 1),
        end=date(2024, 12, 31),
        status="closed",
    )
    january = seed_network(
        session,
        [
            row(1, plan="Platino", personal=200, name="Ana Root"),
            row(2, sponsor=1, plan="Plata", personal=150, group=2000, name="Beto"),
            row(3, sponsor=2, personal=50, group=1000, name="Carla"),
            row(4, sponsor=1, personal=120, group=400, name="Dario"),
            row(5, sponsor=4, group=300, name="Elena"),
        ],
        name_period="Enero 2025",
        start=date(2025, 1, 1),
        end=date(2025, 1, 31),
        status="open",
    )
    return december, january


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_periods(client, db_session):
    december, january = _seed_data(db_session)

    periods = client.get("/api/periods").json()["periods"]
    assert [item["id_period"] for item in periods] == [january.id_period, december.id_period]
    assert periods[0]["start_date"] == "2025-01-01"

    current = client.get("/api/periods/current").json()
    assert current["name_period"] == "Enero 2025"

    missing = client.get("/api/periods/999")
    assert missing.status_code == 404
    assert missing.json()["error_type"] == "not_found"


def test_distributor_and_summary(client, db_session):
    _seed_data(db_session)

    distributor = client.get("/api/distributors/2").json()
    assert distributor["sponsor_name"] == "Ana Root"
    assert distributor["name_plan"] == "Plata"

    summary = client.get("/api/distributors/1/summary").json()
    assert summary["period"]["name_period"] == "Enero 2025"
    assert summary["network"] == {"total_distributors": 4, "qualified_frontals": 2}
    assert summary["commissions"]["total"] == 158.0
    assert summary["currency"]["code"] == "MXN"
    assert summary["diagnostics"] == []


def test_unknown_distributor_is_not_found(client, db_session):
    _seed_data(db_session)

    response = client.get("/api/distributors/999/summary")

    assert response.status_code == 404
    assert response.json()["error_type"] == "not_found"


def test_commission_breakdowns(client, db_session):
    _seed_data(db_session)

    generations = client.get("/api/commissions/1/by-generation").json()["generations"]
    assert [item["generation"] for item in generations] == [0, 1, 2, 3, 4]
    assert generations[0] == {
        "generation": 0,
        "personas": 3,
        "pts_negocio": 2700,
        "comision": 108.0,
        "porcentaje": 4.0,
    }
    assert generations[1]["comision"] == 50.0

    levels = client.get("/api/commissions/1/by-level").json()["levels"]
    assert [item["nivel"] for item in levels] == [1, 2, 3]
    assert levels[0]["porcentaje_nivel"] == 15.0
    assert sum(item["comision"] for item in levels) == pytest.approx(158.0)

    cells = client.get("/api/commissions/1/by-level-generation").json()["data"]
    assert [(item["nivel"], item["generation"]) for item in cells] == [(1, 0), (2, 0), (2, 1)]


def test_commission_details_pagination_and_filters(client, db_session):
    _seed_data(db_session)

    page = client.get("/api/commissions/1/details", params={"limit": 2}).json()
    assert [item["id_customers"] for item in page["data"]] == [2, 3]
    assert page["pagination"] == {"total": 4, "limit": 2, "offset": 0, "has_more": True}

    filtered = client.get("/api/commissions/1/details", params={"generation": 1}).json()
    assert [item["id_customers"] for item in filtered["data"]] == [3]
    assert filtered["data"][0]["percentage_generation"] == 5.0

    assert client.get("/api/commissions/1/details", params={"limit": 0}).status_code == 422


def test_commission_history(client, db_session):
    _seed_data(db_session)

    history = client.get("/api/commissions/1/history", params={"months": 12}).json()["history"]

    assert [item["name_period"] for item in history] == ["Diciembre 2024", "Enero 2025"]
    assert [item["subtotal_earnings"] for item in history] == [128.0, 158.0]


def test_rollover(client, db_session):
    _seed_data(db_session)

    summary = client.get("/api/rollover/1/summary").json()
    assert summary["distributor_rank"] == "Platino"
    assert summary["rollover_config"] == {
        "v_grupal_required": 10000,
        "rollover_percent": 50.0,
        "max_per_leg": 5000.0,
    }

    analysis = client.get("/api/rollover/1/analysis").json()
    assert [leg["id_customers"] for leg in analysis["legs"]] == [2, 4]
    assert analysis["legs"][0]["points"] == 1150
    assert analysis["legs"][0]["exceeds_limit"] is False


def test_network_views(client, db_session):
    _seed_data(db_session)

    tree = client.get("/api/network/1/tree", params={"depth": 1}).json()["tree"]
    assert tree["id"] == 1
    assert [child["id"] for child in tree["children"]] == [2, 4]
    assert all(child["children"] == [] for child in tree["children"])

    frontals = client.get("/api/network/1/first-level").json()["frontals"]
    assert frontals[0] == {
        "id": 2,
        "name": "Beto",
        "plan": "Plata",
        "personal_points": 150,
        "subnet_size": 2,
        "subnet_points": 3000,
    }

    stats = client.get("/api/network/1/stats-by-level").json()["stats"]
    assert stats == [
        {"nivel": 1, "count": 2, "total_points": 2400},
        {"nivel": 2, "count": 2, "total_points": 1300},
    ]

    assert client.get("/api/network/1/tree", params={"depth": 11}).status_code == 422


def test_diagnostics(client, db_session):
    _seed_data(db_session)

    analysis = client.get("/api/diagnostic/1/dilution").json()["analysis"]
    assert analysis["problem_type"] == "healthy"
    assert analysis["impact"]["monetary"] == -10.0

    comparison = client.get("/api/diagnostic/1/comparison").json()["comparison"]
    assert comparison["previous_period"]["name_period"] == "Diciembre 2024"
    assert comparison["changes"]["commission_change"] == 30.0
    assert comparison["changes"]["network_change"] == 1
    assert comparison["changes"]["new_plata_plus_count"] == 1

    full = client.get("/api/diagnostic/1/full").json()
    assert set(full) == {"dilution", "comparison"}


def test_vertical_growth(client, db_session):
    _seed_data(db_session)

    growth = client.get("/api/diagnostic/1/vertical-growth").json()

    assert growth["summary"]["total_plata_plus_in_network"] == 1
    assert growth["summary"]["total_dilution_amount"] == 10.0
    assert growth["summary"]["most_impacted_generation_shift"] == "G0→G1"
    assert growth["summary"]["health_score"] == 100
    chain = growth["dilution_chains"][0]
    assert chain["plata_distributor"]["id_customers"] == 2
    affected = chain["affected_distributors"][0]
    assert affected["commission_lost"] == 10.0
    # Rates in this payload are fractions; the dashboard multiplies by 100 itself.
    assert affected["rate_before"] == 0.04
    assert affected["rate_after"] == 0.05
    assert [item["rate"] for item in growth["generation_distribution"]] == [0.04, 0.05, 0.05, 0.02, 0.02]
    assert growth["hypothetical_scenario"]["commission_if_no_platas"] == 148.0


def test_simulator(client, db_session):
    _seed_data(db_session)

    frontals = client.get("/api/simulator/1/new-frontals", params={"count": 3, "points": 1000}).json()["simulation"]
    assert frontals["scenario_type"] == "new_frontals"
    assert frontals["impact"]["commission_change"] == 120.0
    assert frontals["impact"]["is_positive"] is True

    plata = client.get("/api/simulator/1/new-plata", params={"target": 4}).json()["simulation"]
    assert plata["impact"]["commission_change"] == 3.0
    assert plata["input"] == {"target": 4}

    volume = client.get("/api/simulator/1/volume-increase", params={"percentage": 50}).json()["simulation"]
    assert volume["impact"]["commission_change"] == 79.0

    invalid = client.get("/api/simulator/1/new-plata", params={"target": 1})
    assert invalid.status_code == 400
    assert invalid.json()["error_type"] == "invalid_input"

    candidates = client.get("/api/simulator/1/candidates").json()["candidates"]
    assert [item["id_customers"] for item in candidates] == [3, 4, 5]


def test_responses_are_cached_until_invalidated(client, db_session, cache):
    _, january = _seed_data(db_session)

    first = client.get("/api/distributors/1/summary").json()
    snapshot = (
        db_session.query(DistributorPeriod)
        .filter(DistributorPeriod.id_customers == 5, DistributorPeriod.id_period == january.id_period)
        .one()
    )
    snapshot.group_points = 1300
    db_session.commit()

    assert client.get("/api/distributors/1/summary").json() == first

    response = client.post("/api/cache/invalidate", json={"root_id": 1})
    assert response.json() == {"invalidated": 1, "root_id": 1}

    assert client.get("/api/distributors/1/summary").json()["commissions"]["total"] == 198.0


def test_new_ranks_reports(client, db_session):
    december, january = _seed_data(db_session)

    assert client.get("/api/reports/new-ranks/years").json() == [2025, 2024]

    summary = client.get("/api/reports/new-ranks/summary", params={"year": 2025}).json()
    assert summary == [
        {
            "period_id": january.id_period,
            "period_name": "Enero 2025",
            "rank_id": 2,
            "rank_name": "Plata",
            "count": 1,
        }
    ]

    detail = client.get("/api/reports/new-ranks/detail", params={"year": 2025}).json()
    assert [(item["id_customers"], item["previous_rank_name"], item["new_rank_name"]) for item in detail] == [
        (2, "Bronce", "Plata")
    ]

    # The first loaded period has nothing to compare against.
    assert client.get("/api/reports/new-ranks/summary", params={"year": 2024}).json() == []
    assert client.get("/api/reports/new-ranks/summary").status_code == 422
