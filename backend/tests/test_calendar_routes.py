"""
Tests for the calendar HTTP endpoints.
"""

from datetime import date, datetime

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from league_calendar.models import ScheduledMatch, Team


def test_generate_returns_summary(client: TestClient, make_season):
    season = make_season(team_count=5, rounds_planned=2, max_games_per_day=4)

    response = client.post(f"/api/seasons/{season.id}/calendar:generate")

    assert response.status_code == 200
    data = response.json()
    assert data["seasonId"] == season.id
    assert data["outcome"] == "success"
    assert data["dryRun"] is False
    assert data["matchdaysCreated"] == 2
    assert data["matchesCreated"] == 4
    assert sorted(data["byeDistribution"].values()) == [0, 0, 0, 1, 1]
    assert data["warnings"] == []
    assert data["generationLogId"] is not None
    assert len(data["stats"]["teams"]) == 5
    assert "matchdays" not in data or data["matchdays"] is None


def test_generate_dry_run_from_body(client: TestClient, session: Session, make_season):
    season = make_season(team_count=4, vueltas=1)

    response = client.post(f"/api/seasons/{season.id}/calendar:generate", json={"dryRun": True})

    assert response.status_code == 200
    data = response.json()
    assert data["dryRun"] is True
    assert len(data["matchdays"]) == 3
    assert session.exec(select(ScheduledMatch)).all() == []


def test_generate_dry_run_from_query(client: TestClient, make_season):
    season = make_season(team_count=4, vueltas=1)

    response = client.post(f"/api/seasons/{season.id}/calendar:generate?dryRun=true")

    assert response.status_code == 200
    assert response.json()["dryRun"] is True


def test_generate_conflict_is_409(client: TestClient, make_season):
    season = make_season(team_count=4, vueltas=1, slot_count=1, max_games_per_day=1, end_date=date(2026, 1, 17))

    response = client.post(f"/api/seasons/{season.id}/calendar:generate")

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "SCHEDULING_CONFLICT"
    assert data["blockingPairing"]["round"] == 2
    assert set(data["blockingPairing"]) == {"round", "teamA", "teamB"}
    assert data["reason"]


def test_dry_run_conflict_is_200(client: TestClient, make_season):
    season = make_season(team_count=4, vueltas=1, slot_count=1, max_games_per_day=1, end_date=date(2026, 1, 17))

    response = client.post(f"/api/seasons/{season.id}/calendar:generate", json={"dryRun": True})

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "failure"
    assert data["conflict"]["blockingPairing"]["round"] == 2


def test_generate_configuration_error_is_422(client: TestClient, session: Session, make_season):
    season = make_season(team_count=2)
    for team in session.exec(select(Team).where(Team.league_id == season.league_id)).all():
        team.is_active = False
        session.add(team)
    session.commit()

    response = client.post(f"/api/seasons/{season.id}/calendar:generate")

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "CONFIGURATION_ERROR"
    assert "active teams" in data["reason"]


def test_generate_while_running_is_409(client: TestClient, session: Session, make_season):
    season = make_season()
    season.generation_in_progress = True
    season.generation_started_at = datetime.utcnow()
    session.add(season)
    session.commit()

    response = client.post(f"/api/seasons/{season.id}/calendar:generate")

    assert response.status_code == 409
    assert response.json()["error"] == "GENERATION_ALREADY_RUNNING"


def test_generate_unknown_season_is_404(client: TestClient, session: Session):
    response = client.post("/api/seasons/999/calendar:generate")

    assert response.status_code == 404
    assert response.json()["error"] == "SEASON_NOT_FOUND"


def test_get_calendar(client: TestClient, make_season):
    season = make_season(team_count=5, rounds_planned=2, max_games_per_day=4)
    client.post(f"/api/seasons/{season.id}/calendar:generate")

    response = client.get(f"/api/seasons/{season.id}/calendar")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "generated"
    assert [md["number"] for md in data["matchdays"]] == [1, 2]
    assert [md["day_date"] for md in data["matchdays"]] == ["2026-01-03", "2026-01-10"]
    assert all(len(md["matches"]) == 3 for md in data["matchdays"])


def test_get_calendar_unknown_season(client: TestClient, session: Session):
    response = client.get("/api/seasons/999/calendar")
    assert response.status_code == 404


def test_generation_logs_newest_first(client: TestClient, make_season):
    season = make_season(team_count=4, vueltas=1)
    client.post(f"/api/seasons/{season.id}/calendar:generate", json={"dryRun": True})
    client.post(f"/api/seasons/{season.id}/calendar:generate")

    response = client.get(f"/api/seasons/{season.id}/calendar/logs")

    assert response.status_code == 200
    logs = response.json()
    assert [log["dry_run"] for log in logs] == [False, True]
    assert all(log["outcome"] == "success" for log in logs)


def test_rest_counters(client: TestClient, make_season):
    season = make_season(team_count=5, vueltas=1)
    client.post(f"/api/seasons/{season.id}/calendar:generate")

    response = client.get(f"/api/seasons/{season.id}/rest-counters")

    assert response.status_code == 200
    counters = response.json()
    assert len(counters) == 5
    assert all(c["byes_assigned"] == 1 and c["total_byes"] == 1 for c in counters)


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
