"""Tests for ServiceContainer."""

import time

import pytest

from domain.models.wager import LegSelection, WagerType
from infrastructure.service_container import ServiceConfig, ServiceContainer
from tests.conftest import ALICE, BOB, HOME_TEAM, TEST_GUILD_ID


@pytest.fixture
def config(temp_db_path):
    """Create a test configuration."""
    return ServiceConfig(
        db_path=temp_db_path,
        starting_balance=2000,
        min_stake=10,
    )


class TestServiceContainerInitialization:
    """Tests for ServiceContainer initialization."""

    @pytest.mark.asyncio
    async def test_initialize_creates_all_repositories(self, config):
        """All repositories are created after initialization."""
        container = ServiceContainer(config)
        await container.initialize()

        assert container.user_repo is not None
        assert container.match_repo is not None
        assert container.bet_repo is not None
        assert container.duel_repo is not None
        assert container.parlay_repo is not None
        assert container.title_repo is not None
        assert container.economy_repo is not None
        assert container.tournament_repo is not None

    @pytest.mark.asyncio
    async def test_initialize_creates_all_services(self, config):
        """All services are created after initialization."""
        container = ServiceContainer(config)
        await container.initialize()

        assert container.odds_service is not None
        assert container.wager_service is not None
        assert container.settlement_service is not None
        assert container.economy_service is not None
        assert container.title_service is not None
        assert container.tournament_service is not None
        assert container.notification_service is not None

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, config):
        """Calling initialize multiple times is safe."""
        container = ServiceContainer(config)

        await container.initialize()
        first_wager_service = container.wager_service

        await container.initialize()
        second_wager_service = container.wager_service

        # Same instance should be returned
        assert first_wager_service is second_wager_service

    @pytest.mark.asyncio
    async def test_is_initialized_flag(self, config):
        """is_initialized returns correct state."""
        container = ServiceContainer(config)

        assert container.is_initialized is False

        await container.initialize()

        assert container.is_initialized is True


class TestServiceContainerConfig:
    """Configuration values reach the services."""

    def test_config_is_applied(self, config):
        container = ServiceContainer(config)
        container.initialize_sync()

        assert container.wager_service.min_stake == 10
        assert container.user_repo.ensure_user(ALICE)["points"] == 2000
        assert container.economy_service.base_reward == config.daily_base_reward
        assert container.title_service.placement_min_participants == 20
        assert container.odds_service.calculator.MARKET_HALF_WEIGHT == config.market_pressure_scale


class TestServiceContainerBotExposure:
    """Tests for expose_to_bot functionality."""

    def test_expose_to_bot_sets_attributes(self, config):
        """expose_to_bot sets all expected attributes on bot."""
        container = ServiceContainer(config)
        container.initialize_sync()

        class MockBot:
            pass

        bot = MockBot()
        container.expose_to_bot(bot)

        for name in (
            "event_bus",
            "odds_service",
            "wager_service",
            "settlement_service",
            "economy_service",
            "title_service",
            "tournament_service",
            "notification_service",
        ):
            assert getattr(bot, name) is getattr(container, name)


class TestServiceDependencies:
    """Tests for proper service dependency wiring."""

    def test_services_share_one_event_bus(self, config):
        container = ServiceContainer(config)
        container.initialize_sync()

        assert container.wager_service.event_bus is container.event_bus
        assert container.settlement_service.event_bus is container.event_bus
        assert container.economy_service.event_bus is container.event_bus
        assert container.title_service.event_bus is container.event_bus

    def test_tournament_awards_through_title_service(self, config):
        container = ServiceContainer(config)
        container.initialize_sync()
        assert container.tournament_service.title_service is container.title_service


class TestEndToEnd:
    """A full wager cycle through the wired container."""

    def _match(self, container, match_id, opponent):
        container.match_repo.upsert_match(
            match_id=match_id,
            home_team=HOME_TEAM,
            opponent=opponent,
            begin_at=int(time.time()) + 3600,
            number_of_games=3,
        )
        return container.match_repo.get_match(match_id)

    def _finish(self, container, match, score):
        container.match_repo.upsert_match(
            match_id=match["match_id"],
            home_team=match["home_team"],
            opponent=match["opponent"],
            begin_at=match["begin_at"],
            status="finished",
            score=score,
            number_of_games=match["number_of_games"],
        )

    def test_bet_duel_parlay_cycle(self, container):
        wagers = container.wager_service
        m1 = self._match(container, 1, "Vitality")
        m2 = self._match(container, 2, "G2")

        tournament = container.tournament_service.create_tournament(
            TEST_GUILD_ID, "Cup", ALICE, registration_minutes=5, duration_days=7, now=int(time.time()) - 10
        ).value
        container.tournament_service.join(tournament.tournament_id, ALICE)
        container.tournament_service.join(tournament.tournament_id, BOB)
        container.tournament_service.set_end(TEST_GUILD_ID, 7, now=int(time.time()) - 5)

        assert wagers.place_bet(TEST_GUILD_ID, ALICE, 1, "TEAM", HOME_TEAM, 100).success
        duel = wagers.create_duel(TEST_GUILD_ID, ALICE, BOB, 1, HOME_TEAM, 100).value
        assert wagers.accept_duel(duel["duel_id"], BOB).success
        assert wagers.place_parlay(
            TEST_GUILD_ID,
            BOB,
            50,
            [LegSelection(1, WagerType.TEAM, "Vitality"), LegSelection(2, WagerType.SCORE, "2-0")],
        ).success

        self._finish(container, m1, "2-1")
        reports = container.settlement_service.settle_finished_matches()
        assert [r.match_id for r in reports] == [1]

        # bet +100 net, duel +100
        assert container.user_repo.get_balance(ALICE) == 1000 + 100 + 100
        assert container.user_repo.get_balance(BOB) == 1000 - 100 - 50

        standings = container.tournament_service.standings(tournament.tournament_id)
        by_user = {s.discord_id: s for s in standings}
        assert by_user[ALICE].points == 200
        assert by_user[BOB].points == -200
        assert by_user[BOB].parlays_lost == 1

        titles = container.title_service.get_unlocked_titles(ALICE)
        assert "Parieur" in titles
        assert "Gladiateur" in titles

        notices = container.notification_service.drain()
        messages = {(n.discord_id, n.message) for n in notices}
        assert (ALICE, "Nouveau titre débloqué : **Parieur**") in messages
        assert any(uid == BOB and "lost" in msg for uid, msg in messages)

        self._finish(container, m2, "2-0")
        assert container.settlement_service.settle_finished_matches()[0].settled_count == 0

    def test_daily_and_transfer_through_container(self, container):
        claim = container.economy_service.claim_daily(ALICE)
        assert claim.success
        assert container.title_service.get_unlocked_titles(ALICE) == ["Débutant"]

        assert container.economy_service.send_points(ALICE, BOB, 10).success
        assert container.user_repo.get_balance(BOB) == 1010
