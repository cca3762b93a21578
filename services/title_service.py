"""
Title evaluator: unlocks cosmetic titles from wager, economy and ladder activity.

Every hook is best-effort. A failure is logged and swallowed so the action
that triggered it (a bet, a settlement, a daily claim) is never affected.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

from domain.models.events import (
    DailyClaimed,
    DuelAccepted,
    PointsTransferred,
    TitleUnlocked,
    WagerPlaced,
    WagerResolved,
)
from domain.models.wager import WagerKind, WagerOutcome, WagerStatus, WagerType
from services import error_codes
from services.result import Result
from services.wager_events import WagerEventBus

if TYPE_CHECKING:
    from domain.models.tournament import Standing
    from repositories.interfaces import (
        IBetRepository,
        IDuelRepository,
        IParlayRepository,
        ITitleRepository,
        IUserRepository,
    )

logger = logging.getLogger("wager_bot.services.titles")

FIRST_BET = "Parieur"
FIRST_PARLAY = "Stratège"
FIRST_DUEL = "Gladiateur"
FIRST_DAILY = "Débutant"
DAILY_WEEK = "Organisé"
HIGH_ODDS_TEAM_WIN = "Prise de Risque"
PARLAY_MANY_LEGS = "Maestro du Combiné"
PARLAY_HIGH_ODDS = "Jackpot"
WEALTH = "Rothschild"
CAPSTONE = "Better"

BET_COUNT_MILESTONES = {
    25: "Parieur Bronze",
    50: "Parieur Argent",
    100: "Parieur Or",
    500: "Parieur Légende",
}
DUEL_WIN_MILESTONES = {
    10: "Duelliste Bronze",
    25: "Duelliste Argent",
    50: "Duelliste Or",
    100: "Maître Duelliste",
}
BET_STREAKS = {5: "Bet Warrior", 10: "Bet Prince", 25: "Bet King", 50: "Bet God"}
DUEL_STREAKS = {
    5: "Duellist Warrior",
    10: "Duellist Prince",
    25: "Duellist King",
    50: "Duellist God",
}
PARLAY_STREAKS = {
    5: "Combiner Warrior",
    10: "Combiner Prince",
    25: "Combiner King",
    50: "Combiner God",
}
# Highest tier first; a transfer unlocks only the best tier it reaches
TRANSFER_TIERS = ((100_000, "Mécène 100K"), (50_000, "Mécène 50K"), (10_000, "Mécène 10K"))
PLACEMENT_TITLES = {1: "Champion", 2: "Vice-Champion", 3: "Troisième"}
CAPSTONE_REQUIRES = ("Combiner God", "Duellist God", "Bet God")

HIGH_ODDS_TEAM_THRESHOLD = 3.0
PARLAY_LEGS_THRESHOLD = 10
PARLAY_ODDS_THRESHOLD = 20.0
WEALTH_THRESHOLD = 1_000_000
DAILY_WEEK_LENGTH = 7
STREAK_SCAN_LIMIT = 100


class StreakCalculator(Protocol):
    def current_streak(self, results: Sequence[str]) -> int:
        """Consecutive wins at the head of a newest-first result list."""
        ...


class ScanningStreakCalculator:
    """Counts WON results from the newest until the first non-win."""

    def current_streak(self, results: Sequence[str]) -> int:
        streak = 0
        for status in results:
            if status != WagerStatus.WON:
                break
            streak += 1
        return streak


class TitleService:
    """Evaluates title predicates and manages the displayed title."""

    def __init__(
        self,
        title_repo: ITitleRepository,
        user_repo: IUserRepository,
        bet_repo: IBetRepository,
        duel_repo: IDuelRepository,
        parlay_repo: IParlayRepository,
        event_bus: WagerEventBus | None = None,
        streak_calculator: StreakCalculator | None = None,
        placement_min_participants: int = 20,
    ):
        self.title_repo = title_repo
        self.user_repo = user_repo
        self.bet_repo = bet_repo
        self.duel_repo = duel_repo
        self.parlay_repo = parlay_repo
        self.event_bus = event_bus
        self.streak_calculator = streak_calculator or ScanningStreakCalculator()
        self.placement_min_participants = placement_min_participants

    def subscribe(self, bus: WagerEventBus) -> None:
        self.event_bus = bus
        bus.subscribe(WagerPlaced, self.on_wager_placed)
        bus.subscribe(DuelAccepted, self.on_duel_accepted)
        bus.subscribe(WagerResolved, self.on_wager_resolved)
        bus.subscribe(DailyClaimed, self.on_daily_claimed)
        bus.subscribe(PointsTransferred, self.on_points_transferred)

    # =========================================================================
    # Unlocking
    # =========================================================================

    def unlock(self, discord_id: int, name: str) -> bool:
        """
        Unlock a title and make it the displayed one.

        Returns:
            True only the first time; repeat unlocks are silent no-ops
        """
        if not self.title_repo.unlock(discord_id, name):
            return False
        logger.info(f"User {discord_id} unlocked title '{name}'")
        if self.event_bus is not None:
            self.event_bus.publish(TitleUnlocked(discord_id=discord_id, title=name))
        return True

    def _unlock_streak(self, discord_id: int, results: Sequence[str], labels: dict[int, str]) -> bool:
        # Thresholds fire on the exact streak value only
        streak = self.streak_calculator.current_streak(results)
        name = labels.get(streak)
        return self.unlock(discord_id, name) if name else False

    def _check_wealth(self, discord_id: int) -> bool:
        if self.user_repo.get_balance(discord_id) >= WEALTH_THRESHOLD:
            return self.unlock(discord_id, WEALTH)
        return False

    def _check_capstone(self, discord_id: int) -> bool:
        owned = set(self.title_repo.get_unlocked_titles(discord_id))
        if all(name in owned for name in CAPSTONE_REQUIRES):
            return self.unlock(discord_id, CAPSTONE)
        return False

    # =========================================================================
    # Event hooks
    # =========================================================================

    def on_wager_placed(self, event: WagerPlaced) -> None:
        try:
            if event.kind is WagerKind.BET:
                for user_id in event.user_ids:
                    count = self.bet_repo.count_user_bets(user_id)
                    if count == 1:
                        self.unlock(user_id, FIRST_BET)
                    milestone = BET_COUNT_MILESTONES.get(count)
                    if milestone:
                        self.unlock(user_id, milestone)
            elif event.kind is WagerKind.PARLAY:
                for user_id in event.user_ids:
                    if self.parlay_repo.count_user_parlays(user_id) == 1:
                        self.unlock(user_id, FIRST_PARLAY)
        except Exception as exc:
            logger.warning(f"Title check failed for placed {event.kind.value} {event.wager_id}: {exc}", exc_info=True)

    def on_duel_accepted(self, event: DuelAccepted) -> None:
        for user_id in (event.challenger_id, event.opponent_id):
            try:
                if self.duel_repo.count_accepted_duels(user_id) == 1:
                    self.unlock(user_id, FIRST_DUEL)
            except Exception as exc:
                logger.warning(f"Title check failed for duel {event.duel_id} user {user_id}: {exc}", exc_info=True)

    def on_wager_resolved(self, event: WagerResolved) -> None:
        if event.outcome is not WagerOutcome.WON:
            return
        for user_id in event.winner_ids:
            try:
                if event.kind is WagerKind.BET:
                    self._on_bet_won(user_id, event)
                elif event.kind is WagerKind.DUEL:
                    self._on_duel_won(user_id)
                elif event.kind is WagerKind.PARLAY:
                    self._on_parlay_won(user_id, event)
                self._check_wealth(user_id)
                self._check_capstone(user_id)
            except Exception as exc:
                logger.warning(
                    f"Title check failed for {event.kind.value} {event.wager_id} user {user_id}: {exc}",
                    exc_info=True,
                )

    def _on_bet_won(self, user_id: int, event: WagerResolved) -> None:
        self._unlock_streak(user_id, self.bet_repo.get_recent_results(user_id, STREAK_SCAN_LIMIT), BET_STREAKS)
        if event.bet_type is WagerType.TEAM and event.odds > HIGH_ODDS_TEAM_THRESHOLD:
            self.unlock(user_id, HIGH_ODDS_TEAM_WIN)

    def _on_duel_won(self, user_id: int) -> None:
        milestone = DUEL_WIN_MILESTONES.get(self.duel_repo.count_duel_wins(user_id))
        if milestone:
            self.unlock(user_id, milestone)
        self._unlock_streak(user_id, self.duel_repo.get_recent_results(user_id, STREAK_SCAN_LIMIT), DUEL_STREAKS)

    def _on_parlay_won(self, user_id: int, event: WagerResolved) -> None:
        if event.leg_count > PARLAY_LEGS_THRESHOLD:
            self.unlock(user_id, PARLAY_MANY_LEGS)
        if event.odds > PARLAY_ODDS_THRESHOLD:
            self.unlock(user_id, PARLAY_HIGH_ODDS)
        self._unlock_streak(
            user_id, self.parlay_repo.get_recent_results(user_id, STREAK_SCAN_LIMIT), PARLAY_STREAKS
        )

    def on_daily_claimed(self, event: DailyClaimed) -> None:
        try:
            if event.first_claim:
                self.unlock(event.discord_id, FIRST_DAILY)
            # today's claim extends the streak of prior days by one
            if event.streak + 1 >= DAILY_WEEK_LENGTH:
                self.unlock(event.discord_id, DAILY_WEEK)
            self._check_wealth(event.discord_id)
        except Exception as exc:
            logger.warning(f"Title check failed for daily claim of {event.discord_id}: {exc}", exc_info=True)

    def on_points_transferred(self, event: PointsTransferred) -> None:
        try:
            for threshold, name in TRANSFER_TIERS:
                if event.amount >= threshold:
                    self.unlock(event.sender_id, name)
                    break
            self._check_wealth(event.recipient_id)
        except Exception as exc:
            logger.warning(
                f"Title check failed for transfer {event.sender_id}->{event.recipient_id}: {exc}",
                exc_info=True,
            )

    def award_placements(self, standings: list[Standing], participant_count: int) -> list[tuple[int, str]]:
        """
        Award podium titles for a finished tournament.

        Nothing is awarded below the minimum field size.

        Returns:
            (discord_id, title) pairs newly unlocked
        """
        if participant_count < self.placement_min_participants:
            return []
        awarded = []
        for standing in standings:
            name = PLACEMENT_TITLES.get(standing.rank)
            if not name:
                continue
            try:
                if self.unlock(standing.discord_id, name):
                    awarded.append((standing.discord_id, name))
            except Exception as exc:
                logger.warning(f"Could not award '{name}' to {standing.discord_id}: {exc}", exc_info=True)
        return awarded

    # =========================================================================
    # Profile
    # =========================================================================

    def get_unlocked_titles(self, discord_id: int) -> list[str]:
        return self.title_repo.get_unlocked_titles(discord_id)

    def set_displayed_title(self, discord_id: int, name: str) -> Result[str]:
        if not self.title_repo.set_displayed_title(discord_id, name):
            return Result.fail(f"You have not unlocked the title '{name}'.", code=error_codes.TITLE_NOT_UNLOCKED)
        return Result.ok(name)

    def get_profile(self, discord_id: int) -> dict:
        user = self.user_repo.get_user(discord_id) or {}
        return {
            "discord_id": discord_id,
            "username": user.get("username"),
            "points": user.get("points", 0),
            "title": self.title_repo.get_displayed_title(discord_id),
            "titles": self.title_repo.get_unlocked_titles(discord_id),
            "bets": self.bet_repo.count_user_bets(discord_id),
            "parlays": self.parlay_repo.count_user_parlays(discord_id),
            "duels": self.duel_repo.count_accepted_duels(discord_id),
            "duel_wins": self.duel_repo.count_duel_wins(discord_id),
        }
