"""
Application services layer.

Services orchestrate wager operations using repositories and publish domain
events for the side-effect services (titles, tournaments, notifications).
"""

from services.economy_service import EconomyService
from services.notification_service import NotificationService
from services.odds_service import OddsService
from services.permissions import has_admin_permission, require_admin

# Result type for consistent error handling
from services.result import Result
from services.settlement_service import SettlementService
from services.title_service import TitleService
from services.tournament_service import TournamentService
from services.wager_events import WagerEventBus
from services.wager_service import WagerService

__all__ = [
    # Concrete services
    "OddsService",
    "WagerService",
    "SettlementService",
    "EconomyService",
    "TitleService",
    "TournamentService",
    "NotificationService",
    "WagerEventBus",
    # Permissions
    "has_admin_permission",
    "require_admin",
    # Result type
    "Result",
]
