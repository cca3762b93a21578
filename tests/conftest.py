"""
Pytest fixtures for tests.

Performance optimization: Uses a session-scoped schema template so migrations
run once; each test copies the resulting database file instead of
re-initializing it.

Import TEST_GUILD_ID from here instead of defining it locally.
"""

import shutil
import time

import pytest

from database import Database
from infrastructure.service_container import ServiceConfig, ServiceContainer
from odds_calculator import OddsCalculator
from repositories.bet_repository import BetRepository
from repositories.duel_repository import DuelRepository
from repositories.economy_repository import EconomyRepository
from repositories.match_repository import MatchRepository
from repositories.parlay_repository import ParlayRepository
from repositories.title_repository import TitleRepository
from repositories.tournament_repository import TournamentRepository
from repositories.user_repository import UserRepository
from services.odds_service import OddsService
from services.settlement_service import SettlementService
from services.wager_events import WagerEventBus
from services.wager_service import WagerService


# =============================================================================
# CENTRALIZED CONSTANTS
# =============================================================================

TEST_GUILD_ID = 12345
"""Standard guild ID for single-guild tests. Import and use this constant."""

TEST_GUILD_ID_SECONDARY = 67890
"""Secondary guild ID for multi-guild isolation tests."""

HOME_TEAM = "Karmine Corp"
ALICE = 1001
BOB = 1002
CAROL = 1003


@pytest.fixture(scope="session")
def _schema_template_path(tmp_path_factory):
    """
    Create a schema template database once per test session.

    All migrations run ONCE here. Tests copy from this template.
    """
    template_dir = tmp_path_factory.mktemp("schema_template")
    template_path = str(template_dir / "template.db")
    Database(template_path)
    yield template_path


@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path (no schema)."""
    path = str(tmp_path / "temp.db")
    yield path


@pytest.fixture
def repo_db_path(_schema_template_path, tmp_path):
    """
    Create a temporary database with initialized schema for repository tests.

    Fast: file copy instead of schema initialization.
    """
    test_db_path = str(tmp_path / "test.db")
    shutil.copy2(_schema_template_path, test_db_path)
    yield test_db_path


# =============================================================================
# REPOSITORIES
# =============================================================================


@pytest.fixture
def user_repository(repo_db_path):
    return UserRepository(repo_db_path)


@pytest.fixture
def match_repository(repo_db_path):
    return MatchRepository(repo_db_path)


@pytest.fixture
def bet_repository(repo_db_path):
    return BetRepository(repo_db_path)


@pytest.fixture
def duel_repository(repo_db_path):
    return DuelRepository(repo_db_path)


@pytest.fixture
def parlay_repository(repo_db_path):
    return ParlayRepository(repo_db_path)


@pytest.fixture
def title_repository(repo_db_path):
    return TitleRepository(repo_db_path)


@pytest.fixture
def economy_repository(repo_db_path):
    return EconomyRepository(repo_db_path)


@pytest.fixture
def tournament_repository(repo_db_path):
    return TournamentRepository(repo_db_path)


# =============================================================================
# SERVICES
# =============================================================================


@pytest.fixture
def event_bus():
    return WagerEventBus()


@pytest.fixture
def odds_service(match_repository, bet_repository):
    return OddsService(match_repository, bet_repository, OddsCalculator())


@pytest.fixture
def wager_service(user_repository, match_repository, bet_repository, duel_repository, parlay_repository, odds_service, event_bus):
    return WagerService(
        user_repo=user_repository,
        match_repo=match_repository,
        bet_repo=bet_repository,
        duel_repo=duel_repository,
        parlay_repo=parlay_repository,
        odds_service=odds_service,
        event_bus=event_bus,
    )


@pytest.fixture
def settlement_service(match_repository, bet_repository, duel_repository, parlay_repository, event_bus):
    return SettlementService(
        match_repo=match_repository,
        bet_repo=bet_repository,
        duel_repo=duel_repository,
        parlay_repo=parlay_repository,
        event_bus=event_bus,
    )


@pytest.fixture
def container(repo_db_path):
    """Fully wired container (event subscriptions included) on a temp database."""
    c = ServiceContainer(ServiceConfig(db_path=repo_db_path))
    c.initialize_sync()
    return c


# =============================================================================
# MATCH HELPERS
# =============================================================================


@pytest.fixture
def make_match(match_repository):
    """
    Factory for upcoming matches.

    Each call creates a distinct match starting in one hour unless overridden.
    """
    counter = {"next_id": 1}

    def _make(
        opponent: str = "Vitality",
        number_of_games: int = 3,
        begin_at: int | None = None,
        status: str = "not_started",
        score: str | None = None,
        match_id: int | None = None,
    ) -> dict:
        if match_id is None:
            match_id = counter["next_id"]
        counter["next_id"] = max(counter["next_id"], match_id) + 1
        match_repository.upsert_match(
            match_id=match_id,
            home_team=HOME_TEAM,
            opponent=opponent,
            begin_at=begin_at if begin_at is not None else int(time.time()) + 3600,
            status=status,
            score=score,
            number_of_games=number_of_games,
            tournament_name="LEC",
        )
        return match_repository.get_match(match_id)

    return _make


@pytest.fixture
def finish_match(match_repository):
    """Mark a match finished with a home-first score."""

    def _finish(match: dict, score: str) -> dict:
        match_repository.upsert_match(
            match_id=match["match_id"],
            home_team=match["home_team"],
            opponent=match["opponent"],
            begin_at=match["begin_at"],
            status="finished",
            score=score,
            number_of_games=match["number_of_games"],
            tournament_name=match.get("tournament_name"),
        )
        return match_repository.get_match(match["match_id"])

    return _finish
