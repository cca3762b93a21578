"""
Service container for dependency injection and initialization.

This module centralizes service creation and event wiring so bot.py and the
tests build the same object graph.

Usage:
    container = ServiceContainer(config)
    await container.initialize()

    # Access services
    wager_service = container.wager_service
    settlement_service = container.settlement_service
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from services.economy_service import EconomyService
    from services.notification_service import NotificationService
    from services.odds_service import OddsService
    from services.settlement_service import SettlementService
    from services.title_service import TitleService
    from services.tournament_service import TournamentService
    from services.wager_service import WagerService

from database import Database
from services.wager_events import WagerEventBus

# Repositories
from repositories.bet_repository import BetRepository
from repositories.duel_repository import DuelRepository
from repositories.economy_repository import EconomyRepository
from repositories.match_repository import MatchRepository
from repositories.parlay_repository import ParlayRepository
from repositories.title_repository import TitleRepository
from repositories.tournament_repository import TournamentRepository
from repositories.user_repository import UserRepository

logger = logging.getLogger("wager_bot.infrastructure.container")


@dataclass
class RepositoryContainer:
    """Container for all repositories."""

    user: UserRepository | None = None
    match: MatchRepository | None = None
    bet: BetRepository | None = None
    duel: DuelRepository | None = None
    parlay: ParlayRepository | None = None
    title: TitleRepository | None = None
    economy: EconomyRepository | None = None
    tournament: TournamentRepository | None = None


@dataclass
class ServiceConfig:
    """Configuration for service initialization."""

    # Database
    db_path: str = "wager_bot.db"

    # Wallet and placement
    starting_balance: int = 1000
    min_stake: int = 25
    odds_tolerance: float = 0.01

    # Odds history windows
    base_history_months: int = 18
    base_history_limit: int = 50
    score_history_months: int = 24
    score_history_limit: int = 100
    market_pressure_scale: float = 3000.0

    # Daily reward
    daily_base_reward: int = 200
    daily_streak_bonus: int = 50
    daily_max_streak: int = 6

    # Tournaments
    tournament_default_stake: int = 100
    tournament_placement_min_participants: int = 20

    # Notifications
    notify_title_unlocks: bool = True
    notify_settlements: bool = True


class ServiceContainer:
    """
    Central container for all application services.

    Handles initialization order, dependency injection and subscribing the
    side-effect services (titles, tournaments, notifications) to the
    wager event bus.

    Example:
        container = ServiceContainer(config)
        await container.initialize()

        # Services are now available
        wager_service = container.wager_service
    """

    def __init__(self, config: ServiceConfig | None = None):
        """
        Initialize the container with configuration.

        Args:
            config: Service configuration (uses defaults if None)
        """
        self.config = config or ServiceConfig()
        self._initialized = False
        self._repos = RepositoryContainer()
        self.event_bus = WagerEventBus()

        self._database: Database | None = None
        self._services: dict[str, Any] = {}

    @property
    def is_initialized(self) -> bool:
        """Check if container has been initialized."""
        return self._initialized

    async def initialize(self) -> None:
        """
        Initialize all services in correct order.

        This method is idempotent - calling it multiple times has no effect.
        """
        self.initialize_sync()

    def initialize_sync(self) -> None:
        if self._initialized:
            logger.debug("ServiceContainer already initialized, skipping")
            return

        logger.info("Initializing ServiceContainer...")

        self._init_database()
        self._init_repositories()
        self._init_wager_services()
        self._init_side_effect_services()
        self._wire_dependencies()

        self._initialized = True
        logger.info("ServiceContainer initialization complete")

    def _init_database(self) -> None:
        """Initialize database and run migrations."""
        logger.debug(f"Initializing database at {self.config.db_path}")
        self._database = Database(self.config.db_path)

    def _init_repositories(self) -> None:
        """Initialize all repositories."""
        logger.debug("Initializing repositories")

        db_path = self.config.db_path
        balance = self.config.starting_balance
        self._repos.user = UserRepository(db_path, starting_balance=balance)
        self._repos.match = MatchRepository(db_path)
        self._repos.bet = BetRepository(db_path, starting_balance=balance)
        self._repos.duel = DuelRepository(db_path, starting_balance=balance)
        self._repos.parlay = ParlayRepository(db_path, starting_balance=balance)
        self._repos.title = TitleRepository(db_path)
        self._repos.economy = EconomyRepository(db_path, starting_balance=balance)
        self._repos.tournament = TournamentRepository(db_path)

    def _init_wager_services(self) -> None:
        """Initialize odds, ledger and settlement."""
        logger.debug("Initializing wager services")

        from odds_calculator import OddsCalculator
        from services.odds_service import OddsService
        from services.settlement_service import SettlementService
        from services.wager_service import WagerService

        self._services["odds"] = OddsService(
            match_repo=self._repos.match,
            bet_repo=self._repos.bet,
            calculator=OddsCalculator(market_half_weight=self.config.market_pressure_scale),
            base_history_months=self.config.base_history_months,
            base_history_limit=self.config.base_history_limit,
            score_history_months=self.config.score_history_months,
            score_history_limit=self.config.score_history_limit,
        )

        self._services["wager"] = WagerService(
            user_repo=self._repos.user,
            match_repo=self._repos.match,
            bet_repo=self._repos.bet,
            duel_repo=self._repos.duel,
            parlay_repo=self._repos.parlay,
            odds_service=self._services["odds"],
            event_bus=self.event_bus,
            min_stake=self.config.min_stake,
            odds_tolerance=self.config.odds_tolerance,
        )

        self._services["settlement"] = SettlementService(
            match_repo=self._repos.match,
            bet_repo=self._repos.bet,
            duel_repo=self._repos.duel,
            parlay_repo=self._repos.parlay,
            event_bus=self.event_bus,
        )

    def _init_side_effect_services(self) -> None:
        """Initialize economy extras, titles, tournaments and notifications."""
        logger.debug("Initializing side-effect services")

        from services.economy_service import EconomyService
        from services.notification_service import NotificationService
        from services.title_service import TitleService
        from services.tournament_service import TournamentService

        self._services["economy"] = EconomyService(
            economy_repo=self._repos.economy,
            event_bus=self.event_bus,
            base_reward=self.config.daily_base_reward,
            streak_bonus=self.config.daily_streak_bonus,
            max_streak=self.config.daily_max_streak,
        )

        self._services["title"] = TitleService(
            title_repo=self._repos.title,
            user_repo=self._repos.user,
            bet_repo=self._repos.bet,
            duel_repo=self._repos.duel,
            parlay_repo=self._repos.parlay,
            placement_min_participants=self.config.tournament_placement_min_participants,
        )

        self._services["tournament"] = TournamentService(
            tournament_repo=self._repos.tournament,
            title_service=self._services["title"],
            default_stake=self.config.tournament_default_stake,
        )

        self._services["notification"] = NotificationService(
            notify_titles=self.config.notify_title_unlocks,
            notify_settlements=self.config.notify_settlements,
        )

    def _wire_dependencies(self) -> None:
        """Subscribe side-effect services to the event bus."""
        logger.debug("Wiring event subscriptions")

        # Tournament links must exist before a wager can be resolved
        self._services["tournament"].subscribe(self.event_bus)
        self._services["title"].subscribe(self.event_bus)
        self._services["notification"].subscribe(self.event_bus)

    # =========================================================================
    # Service accessors
    # =========================================================================

    @property
    def user_repo(self) -> UserRepository:
        return self._repos.user

    @property
    def match_repo(self) -> MatchRepository:
        return self._repos.match

    @property
    def bet_repo(self) -> BetRepository:
        return self._repos.bet

    @property
    def duel_repo(self) -> DuelRepository:
        return self._repos.duel

    @property
    def parlay_repo(self) -> ParlayRepository:
        return self._repos.parlay

    @property
    def title_repo(self) -> TitleRepository:
        return self._repos.title

    @property
    def economy_repo(self) -> EconomyRepository:
        return self._repos.economy

    @property
    def tournament_repo(self) -> TournamentRepository:
        return self._repos.tournament

    @property
    def odds_service(self) -> "OddsService | None":
        return self._services.get("odds")

    @property
    def wager_service(self) -> "WagerService | None":
        return self._services.get("wager")

    @property
    def settlement_service(self) -> "SettlementService | None":
        return self._services.get("settlement")

    @property
    def economy_service(self) -> "EconomyService | None":
        return self._services.get("economy")

    @property
    def title_service(self) -> "TitleService | None":
        return self._services.get("title")

    @property
    def tournament_service(self) -> "TournamentService | None":
        return self._services.get("tournament")

    @property
    def notification_service(self) -> "NotificationService | None":
        return self._services.get("notification")

    def expose_to_bot(self, bot) -> None:
        """
        Expose all services to a Discord bot object.

        Cogs read their dependencies via bot.<service_name>.

        Args:
            bot: The Discord bot instance
        """
        bot.user_repo = self.user_repo
        bot.match_repo = self.match_repo

        bot.event_bus = self.event_bus
        bot.odds_service = self.odds_service
        bot.wager_service = self.wager_service
        bot.settlement_service = self.settlement_service
        bot.economy_service = self.economy_service
        bot.title_service = self.title_service
        bot.tournament_service = self.tournament_service
        bot.notification_service = self.notification_service

        logger.info("Services exposed to bot object")
