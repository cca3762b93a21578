"""
Repository layer for data access abstraction.
"""

from repositories.base_repository import BaseRepository
from repositories.bet_repository import BetRepository
from repositories.duel_repository import DuelRepository
from repositories.economy_repository import EconomyRepository
from repositories.interfaces import (
    IBetRepository,
    IDuelRepository,
    IEconomyRepository,
    IMatchRepository,
    IParlayRepository,
    ITitleRepository,
    ITournamentRepository,
    IUserRepository,
)
from repositories.match_repository import MatchRepository
from repositories.parlay_repository import ParlayRepository
from repositories.title_repository import TitleRepository
from repositories.tournament_repository import TournamentRepository
from repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "MatchRepository",
    "BetRepository",
    "DuelRepository",
    "ParlayRepository",
    "TitleRepository",
    "EconomyRepository",
    "TournamentRepository",
    "IUserRepository",
    "IMatchRepository",
    "IBetRepository",
    "IDuelRepository",
    "IParlayRepository",
    "ITitleRepository",
    "IEconomyRepository",
    "ITournamentRepository",
]
