"""
Odds model for org-team matches.

Pure math over match history rows and pooled stakes; the I/O side lives in
services/odds_service.py.
"""

import logging
import math
from dataclasses import dataclass

from domain.models.match import parse_score

logger = logging.getLogger("wager_bot.odds")

SECONDS_PER_DAY = 86_400


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def logistic(x: float) -> float:
    return 1.0 / (1.0 + math.exp(-x))


def round2(value: float) -> float:
    """Round to 2 decimals with halves rounded up (1.125 -> 1.13)."""
    return math.floor(value * 100 + 0.5) / 100


@dataclass(frozen=True)
class TeamOdds:
    """Decimal odds for both sides of a match (home is the org team)."""

    home: float
    opponent: float


def get_possible_scores(number_of_games: int) -> list[str]:
    """
    Every final series score for a best-of-N, home-first.

    One side must reach ceil(N/2) wins and the total cannot exceed N.
    Draw scores only appear for even N, e.g. "1-1" in a best-of-2.
    """
    max_wins = math.ceil(number_of_games / 2)
    scores = []
    for home_wins in range(max_wins + 1):
        for opp_wins in range(max_wins + 1):
            if home_wins + opp_wins <= number_of_games and (
                home_wins == max_wins or opp_wins == max_wins
            ):
                scores.append(f"{home_wins}-{opp_wins}")
    return scores


class OddsCalculator:
    """
    Computes base, market-adjusted and exact-score odds.

    Handles:
    - Base odds from a recency/series/margin weighted head-to-head record
    - Blending base probability with where the money is (market pressure)
    - Exact-score odds from a smoothed, win-bias adjusted score histogram
    """

    DEFAULT_ODDS = 2.0

    # Team odds bounds
    MIN_PROBABILITY = 0.05
    MAX_PROBABILITY = 0.95
    MIN_TEAM_ODDS = 1.10
    MAX_TEAM_ODDS = 5.00
    STRENGTH_SCALE = 2.0
    BASE_RECENCY_DAYS = 180.0

    # Market pressure: pooled amount at which money and history weigh equally
    MARKET_HALF_WEIGHT = 3000.0
    MAX_MARKET_WEIGHT = 0.9

    # Score odds
    SCORE_RECENCY_DAYS = 240.0
    SCORE_PRIOR_DECAY = 0.7
    SCORE_BIAS_SCALE = 0.3
    MIN_SCORE_PROBABILITY = 0.01
    MAX_SCORE_PROBABILITY = 0.9
    MAX_SCORE_ODDS = 15.0

    def __init__(self, market_half_weight: float | None = None):
        if market_half_weight is not None:
            self.MARKET_HALF_WEIGHT = market_half_weight

    def _team_odds_from_probability(self, p_home: float) -> TeamOdds:
        p = clamp(p_home, self.MIN_PROBABILITY, self.MAX_PROBABILITY)
        return TeamOdds(
            home=round2(clamp(1 / p, self.MIN_TEAM_ODDS, self.MAX_TEAM_ODDS)),
            opponent=round2(clamp(1 / (1 - p), self.MIN_TEAM_ODDS, self.MAX_TEAM_ODDS)),
        )

    def base_odds(self, history: list[dict], now_ts: float) -> TeamOdds:
        """
        Odds from past results against one opponent.

        Each match contributes its signed outcome weighted by recency
        (exp(-age/180d)), series length (games/5 in [0.2, 1]) and margin
        (|diff| / wins needed). The normalizer leaves the margin out, so
        narrow wins pull strength toward zero.

        Args:
            history: Match rows with score, number_of_games and begin_at
            now_ts: Reference time (unix seconds)
        """
        strength_sum = 0.0
        weight_sum = 0.0

        for match in history:
            parsed = parse_score(match.get("score"))
            if parsed is None:
                continue
            home, opp = parsed
            games = match.get("number_of_games") or 1
            max_wins = math.ceil(games / 2)
            margin_factor = clamp(abs(home - opp) / max_wins, 0, 1)
            series_weight = clamp(games / 5, 0.2, 1)
            age_days = (now_ts - match["begin_at"]) / SECONDS_PER_DAY
            recency = math.exp(-age_days / self.BASE_RECENCY_DAYS)
            signed = 1 if home > opp else -1 if home < opp else 0
            strength_sum += signed * recency * series_weight * margin_factor
            weight_sum += recency * series_weight

        if weight_sum == 0:
            return TeamOdds(self.DEFAULT_ODDS, self.DEFAULT_ODDS)

        strength = strength_sum / weight_sum
        return self._team_odds_from_probability(logistic(self.STRENGTH_SCALE * strength))

    def dynamic_odds(
        self,
        base: TeamOdds,
        pooled_home: float,
        pooled_opponent: float,
    ) -> TeamOdds:
        """
        Shift base odds toward the share of money on each side.

        The weight of the pool grows as total/(total + 3000), capped at 0.9,
        so a small pool barely moves the line.
        """
        total = pooled_home + pooled_opponent
        implied_home = 1 / base.home
        implied_opp = 1 / base.opponent
        norm = implied_home + implied_opp
        p0 = implied_home / norm if norm > 0 else 0.5
        if total > 0:
            q = pooled_home / total
            w = clamp(total / (total + self.MARKET_HALF_WEIGHT), 0, self.MAX_MARKET_WEIGHT)
        else:
            q = 0.5
            w = 0.0
        return self._team_odds_from_probability((1 - w) * p0 + w * q)

    def _score_prior(self, scores: list[str]) -> dict[str, float]:
        prior = {}
        for s in scores:
            a, b = parse_score(s)
            prior[s] = math.exp(-self.SCORE_PRIOR_DECAY * abs(a - b))
        return prior

    def _score_odds_from_probabilities(self, probs: dict[str, float]) -> dict[str, float]:
        return {
            s: round2(
                clamp(
                    1 / clamp(p, self.MIN_SCORE_PROBABILITY, self.MAX_SCORE_PROBABILITY),
                    self.MIN_TEAM_ODDS,
                    self.MAX_SCORE_ODDS,
                )
            )
            for s, p in probs.items()
        }

    def prior_score_odds(self, number_of_games: int) -> dict[str, float]:
        """Score odds from the margin prior alone (no history)."""
        prior = self._score_prior(get_possible_scores(number_of_games))
        z = sum(prior.values())
        return self._score_odds_from_probabilities({s: v / z for s, v in prior.items()})

    def score_odds(self, history: list[dict], number_of_games: int, now_ts: float) -> dict[str, float]:
        """
        Exact-score odds for a best-of-N against one opponent.

        Observed scores (recency weighted, exp(-age/240d)) are smoothed with
        a prior exp(-0.7 * margin) scaled by alpha = 2 + ln(1 + total weight),
        then tilted toward whichever side has won more often. Falls back to
        the prior alone if anything in the history cannot be used.
        """
        try:
            scores = get_possible_scores(number_of_games)
            counts: dict[str, float] = {}
            home_win_weight = 0.0
            opp_win_weight = 0.0

            for match in history:
                parsed = parse_score(match.get("score"))
                if parsed is None:
                    continue
                home, opp = parsed
                age_days = (now_ts - match["begin_at"]) / SECONDS_PER_DAY
                recency = math.exp(-age_days / self.SCORE_RECENCY_DAYS)
                key = f"{home}-{opp}"
                counts[key] = counts.get(key, 0.0) + recency
                if home > opp:
                    home_win_weight += recency
                elif opp > home:
                    opp_win_weight += recency

            prior = self._score_prior(scores)
            decided = home_win_weight + opp_win_weight
            bias_raw = (home_win_weight - opp_win_weight) / decided if decided > 0 else 0.0
            bias = clamp(bias_raw * self.SCORE_BIAS_SCALE, -self.SCORE_BIAS_SCALE, self.SCORE_BIAS_SCALE)
            alpha = 2 + math.log(1 + sum(counts.values()))

            probs: dict[str, float] = {}
            for s in scores:
                a, b = parse_score(s)
                direction = 1 if a > b else -1 if a < b else 0
                base = counts.get(s, 0.0) + alpha * prior[s]
                probs[s] = max(base * (1 + bias * direction), 1e-6)
            z = sum(probs.values())
            return self._score_odds_from_probabilities({s: p / z for s, p in probs.items()})
        except (ArithmeticError, KeyError, TypeError, ValueError) as exc:
            logger.error(f"Score odds failed for best-of-{number_of_games}, using prior: {exc}")
            return self.prior_score_odds(number_of_games)
