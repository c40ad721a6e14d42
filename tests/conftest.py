"""Pytest configuration and shared fixtures.

Provides formats, a seeded random generator, a controllable clock, team
and judge factories, and a ``TournamentManager`` on a temporary SQLite
database.
"""

import os
import random
from datetime import datetime, timedelta

import pytest

from config.settings import AppConfig, TabConfig
from formats import AsianParliamentaryFormat, BritishParliamentaryFormat
from tournaments.manager import TournamentManager
from tournaments.models import (
    ExperienceTier,
    Judge,
    JudgeRegistration,
    Room,
    RoomSlot,
    Team,
    TeamRegistration,
    Tournament,
    TournamentCreateRequest,
    TournamentFormat,
)

# Keep web.api from writing a config file into the working directory on import
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")

ORGANIZER = "organizer-1"


# =============================================================================
# TEST DOUBLES
# =============================================================================


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 14, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_team(team_id: int, institution: str = "", points: int = 0, speaks: float = 0.0,
              speakers: int = 2) -> Team:
    return Team(
        id=team_id,
        tournament_id=1,
        name=f"Team {team_id}",
        institution=institution or f"Uni {team_id}",
        members=[f"t{team_id}s{n}" for n in range(1, speakers + 1)],
        total_points=points,
        total_speaks=speaks,
    )


def make_judge(judge_id: int, institution: str = "", experience: ExperienceTier = ExperienceTier.EXPERIENCED,
               conflicts: list[str] | None = None, available: bool = True) -> Judge:
    return Judge(
        id=judge_id,
        tournament_id=1,
        name=f"Judge {judge_id}",
        institution=institution or f"Judging College {judge_id}",
        experience=experience,
        conflict_institutions=conflicts or [],
        available=available,
    )


def make_room(team_ids: list[int | None], positions: list[str], ranks: list[int] | None = None,
              room_id: int = 1) -> Room:
    slots = []
    for index, (team_id, position) in enumerate(zip(team_ids, positions)):
        slots.append(
            RoomSlot(
                team_id=team_id,
                position=position,
                is_placeholder=team_id is None,
                rank=ranks[index] if ranks and team_id is not None else None,
            )
        )
    return Room(
        id=room_id,
        tournament_id=1,
        round_id=1,
        room_name=f"Room {room_id}",
        slots=slots,
        has_results=ranks is not None,
    )


# =============================================================================
# SHARED FIXTURES - Available to all test modules
# =============================================================================


@pytest.fixture
def bp_format() -> BritishParliamentaryFormat:
    return BritishParliamentaryFormat()


@pytest.fixture
def ap_format() -> AsianParliamentaryFormat:
    return AsianParliamentaryFormat()


@pytest.fixture
def rng() -> random.Random:
    """Seeded generator so shuffles are repeatable."""
    return random.Random(1234)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def eight_teams() -> list[Team]:
    """Eight teams from eight different institutions."""
    return [make_team(i) for i in range(1, 9)]


@pytest.fixture
def manager(tmp_path, clock: FakeClock) -> TournamentManager:
    """Manager on a fresh database with a fixed clock and seed."""
    config = AppConfig(tab=TabConfig(draw_seed=7))
    return TournamentManager(
        db_path=str(tmp_path / "tab.db"),
        config=config,
        clock=clock,
        rng=random.Random(7),
    )


@pytest.fixture
def bp_tournament(manager: TournamentManager) -> Tournament:
    """BP tournament with eight teams, six judges and two preliminary rounds."""
    tournament = manager.create_tournament(
        TournamentCreateRequest(
            name="Spring Open", format=TournamentFormat.BP, number_of_rounds=2
        ),
        ORGANIZER,
    )
    for n in range(1, 9):
        manager.register_team(
            tournament.id,
            TeamRegistration(
                name=f"Team {n}", institution=f"Uni {n}", members=[f"t{n}a", f"t{n}b"]
            ),
            ORGANIZER,
        )
    for n in range(1, 7):
        manager.register_judge(
            tournament.id,
            JudgeRegistration(
                name=f"Judge {n}",
                user_id=f"judge-{n}",
                institution=f"Judging College {n}",
                experience=ExperienceTier.SENIOR if n == 1 else ExperienceTier.EXPERIENCED,
            ),
            ORGANIZER,
        )
    return manager.get_tournament(tournament.id)


# =============================================================================
# PYTEST CONFIGURATION HOOKS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that use the database or HTTP app"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
