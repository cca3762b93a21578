"""
Tournament ladder models.
"""

from dataclasses import dataclass


class TournamentStatus:
    REGISTRATION = "REGISTRATION"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"

    OPEN = (REGISTRATION, ACTIVE)


@dataclass
class Tournament:
    tournament_id: int
    guild_id: int
    name: str
    status: str
    virtual_stake: int
    created_at: int
    created_by: int | None = None
    registration_ends_at: int | None = None
    starts_at: int | None = None
    ends_at: int | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Tournament":
        return cls(
            tournament_id=row["tournament_id"],
            guild_id=row["guild_id"],
            name=row["name"],
            status=row["status"],
            virtual_stake=row["virtual_stake"],
            created_at=row["created_at"],
            created_by=row.get("created_by"),
            registration_ends_at=row.get("registration_ends_at"),
            starts_at=row.get("starts_at"),
            ends_at=row.get("ends_at"),
        )

    def accepts_wager_at(self, ts: int) -> bool:
        """Whether a wager created at ts falls inside the ladder window."""
        if self.starts_at is not None and ts < self.starts_at:
            return False
        if self.ends_at is not None and ts > self.ends_at:
            return False
        return True


@dataclass(frozen=True)
class Standing:
    rank: int
    discord_id: int
    points: int
    bets_won: int = 0
    bets_lost: int = 0
    duels_won: int = 0
    duels_lost: int = 0
    parlays_won: int = 0
    parlays_lost: int = 0

    @property
    def wins(self) -> int:
        return self.bets_won + self.duels_won + self.parlays_won

    @property
    def losses(self) -> int:
        return self.bets_lost + self.duels_lost + self.parlays_lost
