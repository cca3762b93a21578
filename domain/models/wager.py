"""
Wager domain models: bets, duels, parlays and the values the ledger returns.
"""

import math
from dataclasses import dataclass, field
from enum import Enum


class WagerType(Enum):
    """What a bet or parlay leg is placed on."""

    TEAM = "TEAM"  # selection is a team name
    SCORE = "SCORE"  # selection is an exact home-first score, e.g. "2-1"

    @classmethod
    def parse(cls, value: "str | WagerType") -> "WagerType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unknown bet type: {value}") from None


class WagerKind(Enum):
    BET = "bet"
    DUEL = "duel"
    PARLAY = "parlay"


class WagerStatus:
    """Status strings stored in the wager tables."""

    ACTIVE = "ACTIVE"
    WON = "WON"
    LOST = "LOST"
    CANCELLED = "CANCELLED"

    # Duel lifecycle
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    RESOLVED = "RESOLVED"

    TERMINAL = (WON, LOST)


class WagerOutcome(Enum):
    WON = "WON"
    LOST = "LOST"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class LegSelection:
    """
    A parlay leg as chosen by the user.

    Odds are re-priced at confirmation; quoted_odds is what the user was
    shown and is only used to detect a moved price.
    """

    match_id: int
    bet_type: WagerType
    selection: str
    quoted_odds: float | None = None


@dataclass(frozen=True)
class PricedLeg:
    match_id: int
    bet_type: WagerType
    selection: str
    odds: float


@dataclass(frozen=True)
class WagerReceipt:
    """
    Result of a successful placement.

    potential_payout is what a win credits (stake included).
    """

    kind: WagerKind
    wager_id: int
    amount: int
    odds: float
    new_balance: int
    potential_payout: int = 0
    legs: tuple[PricedLeg, ...] = field(default_factory=tuple)

    @staticmethod
    def payout_for(amount: int, odds: float) -> int:
        return math.floor(amount * odds)


@dataclass(frozen=True)
class OddsChanged:
    """Carried as the value of an ODDS_CHANGED failure so callers can requote."""

    quoted: float
    current: float
    match_id: int | None = None
