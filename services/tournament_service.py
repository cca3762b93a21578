"""
Tournament ladder: a guild-scoped, time-boxed competition that mirrors
wager outcomes at a fixed virtual stake without touching wallet points.
"""

from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING

from domain.models.events import WagerPlaced, WagerResolved
from domain.models.tournament import Standing, Tournament, TournamentStatus
from domain.models.wager import WagerKind, WagerOutcome
from services import error_codes
from services.result import Result
from services.wager_events import WagerEventBus

if TYPE_CHECKING:
    from repositories.interfaces import ITournamentRepository
    from services.title_service import TitleService

logger = logging.getLogger("wager_bot.services.tournament")

SECONDS_PER_DAY = 86_400

_WIN_COUNTER = {
    WagerKind.BET: "bets_won",
    WagerKind.DUEL: "duels_won",
    WagerKind.PARLAY: "parlays_won",
}
_LOSS_COUNTER = {
    WagerKind.BET: "bets_lost",
    WagerKind.DUEL: "duels_lost",
    WagerKind.PARLAY: "parlays_lost",
}


def ladder_deltas(event: WagerResolved, virtual_stake: int) -> list[tuple[int, int, str]]:
    """
    Ladder point changes for a resolved wager, at the tournament's stake.

    Bets and parlays win floor(stake * (odds - 1)) or lose the stake; duels
    move the stake from loser to winner. Cancelled wagers change nothing.
    """
    if event.outcome is WagerOutcome.CANCELLED:
        return []
    if event.kind is WagerKind.DUEL:
        return [(uid, virtual_stake, "duels_won") for uid in event.winner_ids] + [
            (uid, -virtual_stake, "duels_lost") for uid in event.loser_ids
        ]
    if event.outcome is WagerOutcome.WON:
        gain = math.floor(virtual_stake * (event.odds - 1))
        return [(uid, gain, _WIN_COUNTER[event.kind]) for uid in event.winner_ids]
    return [(uid, -virtual_stake, _LOSS_COUNTER[event.kind]) for uid in event.loser_ids]


class TournamentService:
    """Manages tournament lifecycle, wager links and standings."""

    def __init__(
        self,
        tournament_repo: ITournamentRepository,
        title_service: TitleService | None = None,
        default_stake: int = 100,
    ):
        self.tournament_repo = tournament_repo
        self.title_service = title_service
        self.default_stake = default_stake

    def subscribe(self, bus: WagerEventBus) -> None:
        bus.subscribe(WagerPlaced, self.on_wager_placed)
        bus.subscribe(WagerResolved, self.on_wager_resolved)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create_tournament(
        self,
        guild_id: int | None,
        name: str,
        created_by: int | None,
        registration_minutes: int,
        duration_days: int,
        virtual_stake: int | None = None,
        now: int | None = None,
    ) -> Result[Tournament]:
        """
        Open a tournament for registration.

        Error codes:
            VALIDATION_ERROR, TOURNAMENT_ALREADY_OPEN
        """
        if not name or not name.strip():
            return Result.fail("Tournament name is required.", code=error_codes.VALIDATION_ERROR)
        if registration_minutes <= 0:
            return Result.fail("Registration window must be positive.", code=error_codes.VALIDATION_ERROR)
        if duration_days <= 0:
            return Result.fail("Duration must be positive.", code=error_codes.VALIDATION_ERROR)
        stake = max(1, virtual_stake if virtual_stake is not None else self.default_stake)

        now = int(time.time()) if now is None else now
        try:
            tournament_id = self.tournament_repo.create_tournament(
                guild_id=guild_id,
                name=name.strip(),
                created_by=created_by,
                registration_ends_at=now + registration_minutes * 60,
                ends_at=now + duration_days * SECONDS_PER_DAY,
                virtual_stake=stake,
            )
        except ValueError as exc:
            return Result.fail(str(exc), code=error_codes.TOURNAMENT_ALREADY_OPEN)

        logger.info(f"Tournament {tournament_id} '{name}' created in guild {guild_id} (stake={stake})")
        return Result.ok(Tournament.from_row(self.tournament_repo.get_tournament(tournament_id)))

    def join(self, tournament_id: int, discord_id: int, now: int | None = None) -> Result[bool]:
        """
        Register for a tournament. Joining twice is not an error.

        Returns:
            Result whose value is True when newly registered
        """
        now = int(time.time()) if now is None else now
        row = self.tournament_repo.get_tournament(tournament_id)
        if not row:
            return Result.fail("Tournament not found.", code=error_codes.TOURNAMENT_NOT_FOUND)
        if row["status"] == TournamentStatus.REGISTRATION and row["registration_ends_at"] <= now:
            self.tournament_repo.activate(tournament_id, now)
        try:
            added = self.tournament_repo.join(tournament_id, discord_id)
        except ValueError as exc:
            return Result.fail(str(exc), code=error_codes.REGISTRATION_CLOSED)
        if added:
            logger.info(f"User {discord_id} joined tournament {tournament_id}")
        return Result.ok(added)

    def get_current(self, guild_id: int | None, now: int | None = None) -> Tournament | None:
        """
        The open tournament, or the most recent one when none is open.

        A tournament whose registration window has passed is moved to
        ACTIVE here, starting now unless a start was already set.
        """
        now = int(time.time()) if now is None else now
        row = self.tournament_repo.get_open_tournament(guild_id)
        if row:
            if row["status"] == TournamentStatus.REGISTRATION and row["registration_ends_at"] <= now:
                if self.tournament_repo.activate(row["tournament_id"], now):
                    logger.info(f"Tournament {row['tournament_id']} registration closed; now active")
                row = self.tournament_repo.get_tournament(row["tournament_id"])
            return Tournament.from_row(row)
        row = self.tournament_repo.get_latest_tournament(guild_id)
        return Tournament.from_row(row) if row else None

    def get_active(self, guild_id: int | None, now: int | None = None) -> Tournament | None:
        now = int(time.time()) if now is None else now
        row = self.tournament_repo.get_active_tournament(guild_id, now)
        return Tournament.from_row(row) if row else None

    def set_end(self, guild_id: int | None, days: int, now: int | None = None) -> Result[Tournament]:
        """Move the end date to `days` from now; starts a tournament still in registration."""
        if days <= 0:
            return Result.fail("Duration must be positive.", code=error_codes.VALIDATION_ERROR)
        now = int(time.time()) if now is None else now
        current = self.get_current(guild_id, now)
        if current is None:
            return Result.fail("No tournament found.", code=error_codes.TOURNAMENT_NOT_FOUND)
        if current.status == TournamentStatus.REGISTRATION:
            self.tournament_repo.activate(current.tournament_id, now)
        ends_at = now + days * SECONDS_PER_DAY
        self.tournament_repo.set_ends_at(current.tournament_id, ends_at)
        logger.info(f"Tournament {current.tournament_id} end moved to {ends_at}")
        return Result.ok(Tournament.from_row(self.tournament_repo.get_tournament(current.tournament_id)))

    def stop(self, guild_id: int | None, now: int | None = None) -> Result[list[Standing]]:
        """
        Finish the open tournament and award podium titles.

        Returns:
            Result with the final standings
        """
        now = int(time.time()) if now is None else now
        row = self.tournament_repo.get_open_tournament(guild_id)
        if not row:
            return Result.fail("No open tournament.", code=error_codes.TOURNAMENT_NOT_FOUND)
        if not self.tournament_repo.finish(row["tournament_id"], now):
            return Result.fail("Tournament is already finished.", code=error_codes.STATE_ERROR)

        final = self.standings(row["tournament_id"])
        participants = self.tournament_repo.count_participants(row["tournament_id"])
        logger.info(f"Tournament {row['tournament_id']} finished with {participants} participants")
        if self.title_service is not None:
            self.title_service.award_placements(final[:3], participants)
        return Result.ok(final)

    def standings(self, tournament_id: int, limit: int | None = None) -> list[Standing]:
        rows = self.tournament_repo.get_standings(tournament_id, limit)
        return [
            Standing(
                rank=rank,
                discord_id=row["discord_id"],
                points=row["points"],
                bets_won=row["bets_won"],
                bets_lost=row["bets_lost"],
                duels_won=row["duels_won"],
                duels_lost=row["duels_lost"],
                parlays_won=row["parlays_won"],
                parlays_lost=row["parlays_lost"],
            )
            for rank, row in enumerate(rows, start=1)
        ]

    # =========================================================================
    # Wager mirroring
    # =========================================================================

    def link_wager(self, event: WagerPlaced) -> bool:
        """
        Attach a new wager to the guild's active tournament.

        Every placing user must be a participant and the wager must be
        created inside the ladder window.
        """
        # closes a registration window that lapsed since the last lookup
        self.get_current(event.guild_id, event.created_at)
        row = self.tournament_repo.get_active_tournament(event.guild_id, event.created_at)
        if not row:
            return False
        tournament = Tournament.from_row(row)
        if not tournament.accepts_wager_at(event.created_at):
            return False
        if not all(self.tournament_repo.is_participant(tournament.tournament_id, uid) for uid in event.user_ids):
            return False
        linked = self.tournament_repo.link_wager(tournament.tournament_id, event.kind.value, event.wager_id)
        if linked:
            logger.debug(f"{event.kind.value} {event.wager_id} linked to tournament {tournament.tournament_id}")
        return linked

    def mirror(self, event: WagerResolved) -> bool:
        """Apply a resolved wager to its tournament ladder, at most once."""
        link = self.tournament_repo.get_linked_tournament(event.kind.value, event.wager_id)
        if not link or link["mirrored"]:
            return False
        deltas = ladder_deltas(event, link["virtual_stake"])
        if not deltas:
            return False
        applied = self.tournament_repo.apply_resolution_atomic(
            link["tournament_id"], event.kind.value, event.wager_id, deltas
        )
        if applied:
            logger.info(
                f"Tournament {link['tournament_id']}: mirrored {event.kind.value} {event.wager_id} "
                f"({event.outcome.value})"
            )
        return applied

    def on_wager_placed(self, event: WagerPlaced) -> None:
        try:
            self.link_wager(event)
        except Exception as exc:
            logger.warning(f"Could not link {event.kind.value} {event.wager_id} to a tournament: {exc}", exc_info=True)

    def on_wager_resolved(self, event: WagerResolved) -> None:
        try:
            self.mirror(event)
        except Exception as exc:
            logger.warning(f"Could not mirror {event.kind.value} {event.wager_id}: {exc}", exc_info=True)
