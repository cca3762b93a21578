"""
Domain models - pure data structures representing wager entities.
"""

from domain.models.match import MatchResult, parse_score
from domain.models.tournament import Standing, Tournament, TournamentStatus
from domain.models.wager import (
    LegSelection,
    OddsChanged,
    PricedLeg,
    WagerKind,
    WagerOutcome,
    WagerReceipt,
    WagerStatus,
    WagerType,
)

__all__ = [
    "MatchResult",
    "parse_score",
    "Standing",
    "Tournament",
    "TournamentStatus",
    "LegSelection",
    "OddsChanged",
    "PricedLeg",
    "WagerKind",
    "WagerOutcome",
    "WagerReceipt",
    "WagerStatus",
    "WagerType",
]
