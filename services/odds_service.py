"""
Odds quotes for upcoming matches.

Loads head-to-head history and pooled stakes, then delegates the math to
OddsCalculator.
"""

import calendar
import logging
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from domain.models.wager import WagerType
from odds_calculator import OddsCalculator, TeamOdds, get_possible_scores
from repositories.interfaces import IBetRepository, IMatchRepository

logger = logging.getLogger("wager_bot.services.odds")


def months_before(ts: float, months: int) -> int:
    """Unix time `months` calendar months before ts (day clamped to month length)."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return int(dt.replace(year=year, month=month, day=day).timestamp())


def series_length(match: dict) -> int:
    return match.get("number_of_games") or 1


@dataclass(frozen=True)
class TeamQuote:
    match_id: int
    home_team: str
    opponent: str
    base: TeamOdds
    live: TeamOdds
    pool_home: int = 0
    pool_opponent: int = 0

    def odds_for(self, team: str) -> float | None:
        if team == self.home_team:
            return self.live.home
        if team == self.opponent:
            return self.live.opponent
        return None


@dataclass(frozen=True)
class ScoreQuote:
    match_id: int
    number_of_games: int
    odds: dict[str, float]


class OddsService:
    """
    Prices team and exact-score wagers.

    Base odds look at up to 50 settled matches against the same opponent in
    the last 18 months; score odds at up to 100 with the same series length
    in the last 24 months.
    """

    def __init__(
        self,
        match_repo: IMatchRepository,
        bet_repo: IBetRepository,
        calculator: OddsCalculator | None = None,
        base_history_months: int = 18,
        base_history_limit: int = 50,
        score_history_months: int = 24,
        score_history_limit: int = 100,
    ):
        self.match_repo = match_repo
        self.bet_repo = bet_repo
        self.calculator = calculator or OddsCalculator()
        self.base_history_months = base_history_months
        self.base_history_limit = base_history_limit
        self.score_history_months = score_history_months
        self.score_history_limit = score_history_limit

    @staticmethod
    def is_bettable(match: dict, now: float | None = None) -> bool:
        """Only matches that have not started can take new wagers."""
        now = time.time() if now is None else now
        return match.get("status") == "not_started" and match["begin_at"] > now

    def base_odds(self, opponent: str, now: float | None = None) -> TeamOdds:
        now = time.time() if now is None else now
        try:
            history = self.match_repo.get_history_vs(
                opponent,
                since_ts=months_before(now, self.base_history_months),
                limit=self.base_history_limit,
            )
        except sqlite3.Error as exc:
            logger.error(f"Could not load history vs {opponent}, using even odds: {exc}")
            return TeamOdds(OddsCalculator.DEFAULT_ODDS, OddsCalculator.DEFAULT_ODDS)
        return self.calculator.base_odds(history, now)

    def score_odds(self, opponent: str, number_of_games: int, now: float | None = None) -> dict[str, float]:
        now = time.time() if now is None else now
        try:
            history = self.match_repo.get_history_vs(
                opponent,
                since_ts=months_before(now, self.score_history_months),
                limit=self.score_history_limit,
                number_of_games=number_of_games,
            )
        except sqlite3.Error as exc:
            logger.error(f"Could not load score history vs {opponent}, using prior: {exc}")
            return self.calculator.prior_score_odds(number_of_games)
        return self.calculator.score_odds(history, number_of_games, now)

    def quote_team_for_match(self, match: dict, now: float | None = None) -> TeamQuote:
        """Base odds adjusted by the money currently on each side."""
        base = self.base_odds(match["opponent"], now)
        pools = self.bet_repo.get_team_pool_totals(match["match_id"])
        pool_home = pools.get(match["home_team"], 0)
        pool_opp = pools.get(match["opponent"], 0)
        live = self.calculator.dynamic_odds(base, pool_home, pool_opp)
        return TeamQuote(
            match_id=match["match_id"],
            home_team=match["home_team"],
            opponent=match["opponent"],
            base=base,
            live=live,
            pool_home=pool_home,
            pool_opponent=pool_opp,
        )

    def quote_team(self, match_id: int, now: float | None = None) -> TeamQuote | None:
        match = self.match_repo.get_match(match_id)
        if not match:
            return None
        return self.quote_team_for_match(match, now)

    def quote_scores_for_match(self, match: dict, now: float | None = None) -> ScoreQuote:
        games = series_length(match)
        return ScoreQuote(
            match_id=match["match_id"],
            number_of_games=games,
            odds=self.score_odds(match["opponent"], games, now),
        )

    def quote_scores(self, match_id: int, now: float | None = None) -> ScoreQuote | None:
        match = self.match_repo.get_match(match_id)
        if not match:
            return None
        return self.quote_scores_for_match(match, now)

    def price_selection(
        self,
        match: dict,
        bet_type: WagerType,
        selection: str,
        now: float | None = None,
    ) -> float | None:
        """
        Live odds for one selection on a match.

        Returns:
            The odds, or None when the selection is not valid for this match
        """
        if bet_type is WagerType.TEAM:
            return self.quote_team_for_match(match, now).odds_for(selection)
        if bet_type is WagerType.SCORE:
            if selection not in get_possible_scores(series_length(match)):
                return None
            return self.quote_scores_for_match(match, now).odds.get(selection)
        raise ValueError(f"Unhandled bet type: {bet_type}")

    def quote_leg(
        self, match_id: int, bet_type: WagerType, selection: str, now: float | None = None
    ) -> float | None:
        """Live odds for one parlay leg; None for an unknown match or invalid selection."""
        match = self.match_repo.get_match(match_id)
        if not match:
            return None
        return self.price_selection(match, bet_type, selection, now)
