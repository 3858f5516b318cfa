import os

# Keep the app's own engine off disk; must happen before league_calendar.database is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date, time  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from league_calendar.database import get_session  # noqa: E402
from league_calendar.main import app  # noqa: E402
from league_calendar.models import League, PlayingField, SeasonConfig, Team, TimeSlot  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are created and dropped around every test
# 4. App dependency overridden to use test_engine (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

_league_codes = count(1)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the entire duration.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="make_season")
def make_season_fixture(session: Session):
    """Factory: league with teams, fields and time slots plus one draft season.

    Defaults: 5 teams, 1 field, 2 time slots, Saturdays 2026-01-03 .. 2026-03-28,
    2 matches per day at most.
    """

    def _make(
        team_count: int = 5,
        field_count: int = 1,
        slot_count: int = 2,
        start_date: date = date(2026, 1, 3),
        end_date: date = date(2026, 3, 28),
        **season_kwargs,
    ) -> SeasonConfig:
        code = next(_league_codes)
        league = League(name=f"Liga Sabatina {code}", code=f"LS{code}")
        session.add(league)
        session.commit()
        session.refresh(league)

        session.add_all([Team(league_id=league.id, name=f"Team {i:02d}") for i in range(1, team_count + 1)])
        session.add_all(
            [PlayingField(league_id=league.id, name=f"Field {i}", sort_order=i) for i in range(1, field_count + 1)]
        )
        session.add_all(
            [
                TimeSlot(
                    league_id=league.id,
                    name=f"M{i}",
                    start_time=time(8 + 2 * (i - 1), 0),
                    end_time=time(10 + 2 * (i - 1), 0),
                    sort_order=i,
                )
                for i in range(1, slot_count + 1)
            ]
        )

        season_kwargs.setdefault("max_games_per_day", 2)
        season = SeasonConfig(
            league_id=league.id,
            name="Temporada 2026",
            start_date=start_date,
            end_date=end_date,
            **season_kwargs,
        )
        session.add(season)
        session.commit()
        session.refresh(season)
        return season

    return _make
