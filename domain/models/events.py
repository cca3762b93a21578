"""
Domain events published by the wager ledger and settlement engine.

Titles and the tournament ladder react to these instead of being called
inline from the ledger.
"""

from dataclasses import dataclass, field

from domain.models.wager import WagerKind, WagerOutcome, WagerType


@dataclass(frozen=True)
class WagerPlaced:
    kind: WagerKind
    wager_id: int
    guild_id: int
    user_ids: tuple[int, ...]
    amount: int
    odds: float
    created_at: int
    bet_type: WagerType | None = None
    leg_count: int = 0


@dataclass(frozen=True)
class DuelAccepted:
    duel_id: int
    guild_id: int
    challenger_id: int
    opponent_id: int
    amount: int


@dataclass(frozen=True)
class WagerResolved:
    """
    A wager left its active state.

    participant_ids always lists everyone holding the wager. For duels
    winner_ids/loser_ids hold one id each; for bets and parlays the bettor is
    in exactly one of them, or neither when cancelled.
    """

    kind: WagerKind
    wager_id: int
    guild_id: int
    outcome: WagerOutcome
    amount: int
    odds: float
    participant_ids: tuple[int, ...]
    payout: int = 0
    winner_ids: tuple[int, ...] = field(default_factory=tuple)
    loser_ids: tuple[int, ...] = field(default_factory=tuple)
    bet_type: WagerType | None = None
    leg_count: int = 0


@dataclass(frozen=True)
class DailyClaimed:
    discord_id: int
    amount: int
    streak: int
    first_claim: bool


@dataclass(frozen=True)
class PointsTransferred:
    sender_id: int
    recipient_id: int
    amount: int


@dataclass(frozen=True)
class TitleUnlocked:
    discord_id: int
    title: str
