"""
Settlement engine: resolves every open wager on a finished match.

Each wager is settled in its own transaction guarded by its active status,
so running settlement twice (or concurrently) never pays twice, and one
failing wager never blocks the others.
"""

import logging
import math
from dataclasses import dataclass, field

from domain.models.events import WagerResolved
from domain.models.match import MatchResult
from domain.models.wager import PricedLeg, WagerKind, WagerOutcome, WagerStatus, WagerType
from repositories.interfaces import (
    IBetRepository,
    IDuelRepository,
    IMatchRepository,
    IParlayRepository,
)
from repositories.match_repository import SETTLED_STATUSES
from services import error_codes
from services.result import Result
from services.wager_events import WagerEventBus

logger = logging.getLogger("wager_bot.services.settlement")


def leg_wins(leg: PricedLeg, result: MatchResult) -> bool:
    """A TEAM leg needs a decisive winner; a SCORE leg needs the exact score."""
    if leg.bet_type is WagerType.TEAM:
        return result.winner is not None and leg.selection == result.winner
    if leg.bet_type is WagerType.SCORE:
        return leg.selection == result.score
    raise ValueError(f"Unhandled bet type: {leg.bet_type}")


@dataclass
class SettlementReport:
    match_id: int
    score: str
    bets_won: int = 0
    bets_lost: int = 0
    bets_cancelled: int = 0
    duels_resolved: int = 0
    duels_cancelled: int = 0
    parlays_won: int = 0
    parlays_lost: int = 0
    parlays_waiting: int = 0
    already_settled: int = 0
    total_credited: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def settled_count(self) -> int:
        return (
            self.bets_won
            + self.bets_lost
            + self.bets_cancelled
            + self.duels_resolved
            + self.duels_cancelled
            + self.parlays_won
            + self.parlays_lost
        )


class SettlementService:
    """
    Resolves bets, duels and parlays once a match has a final score.

    Payouts:
    - Bet won: floor(amount * odds); drawn match: stake refunded (CANCELLED)
    - Duel: winner receives both stakes; drawn match: both refunded
    - Parlay: lost as soon as any leg fails; won only when every leg's
      match has finished and every leg passed, paying floor(amount * total_odds)
    """

    def __init__(
        self,
        match_repo: IMatchRepository,
        bet_repo: IBetRepository,
        duel_repo: IDuelRepository,
        parlay_repo: IParlayRepository,
        event_bus: WagerEventBus | None = None,
    ):
        self.match_repo = match_repo
        self.bet_repo = bet_repo
        self.duel_repo = duel_repo
        self.parlay_repo = parlay_repo
        self.event_bus = event_bus or WagerEventBus()

    def settle_match(self, match_id: int, score: str | None = None) -> Result[SettlementReport]:
        """
        Settle every open wager referencing a match.

        Args:
            match_id: Match to settle
            score: Final home-first score; defaults to the stored score. When
                given it is recorded on the match first, so parlays settled
                later judge this leg on the same score.

        Error codes:
            MATCH_NOT_FOUND, INVALID_RESULT (missing or malformed score; nothing is settled)
        """
        match = self.match_repo.get_match(match_id)
        if not match:
            logger.warning(f"Settlement requested for unknown match {match_id}")
            return Result.fail(f"Match {match_id} not found.", code=error_codes.MATCH_NOT_FOUND)

        result = MatchResult.from_row(match, score)
        if result is None:
            raw = score if score is not None else match.get("score")
            logger.error(f"Cannot settle match {match_id}: unusable score {raw!r}")
            return Result.fail(f"Unusable score {raw!r}.", code=error_codes.INVALID_RESULT)

        if score is not None:
            self.match_repo.record_result(match_id, result.score)

        logger.info(
            f"Settling match {match_id}: {result.home_team} vs {result.opponent} "
            f"({result.score}, winner={result.winner or 'draw'})"
        )
        report = SettlementReport(match_id=match_id, score=result.score)
        self._settle_bets(result, report)
        self._settle_duels(result, report)
        self._settle_parlays(result, report)

        logger.info(
            f"Match {match_id} settled: {report.settled_count} wagers, "
            f"{report.parlays_waiting} parlays waiting, {report.total_credited} points credited, "
            f"{len(report.failures)} failures"
        )
        return Result.ok(report)

    def settle_finished_matches(self) -> list[SettlementReport]:
        """Settle and mark announced every finished match not processed yet."""
        reports = []
        for match in self.match_repo.get_finished_unannounced():
            settled = self.settle_match(match["match_id"])
            if not settled:
                continue
            reports.append(settled.value)
            if not settled.value.failures:
                self.match_repo.mark_announced(match["match_id"])
        return reports

    # =========================================================================
    # Bets
    # =========================================================================

    def _settle_bets(self, result: MatchResult, report: SettlementReport) -> None:
        for bet in self.bet_repo.get_active_bets_for_match(result.match_id):
            try:
                self._settle_bet(bet, result, report)
            except Exception as exc:
                logger.error(f"Failed to settle bet {bet['bet_id']}: {exc}", exc_info=True)
                report.failures.append(f"bet:{bet['bet_id']}")

    def _settle_bet(self, bet: dict, result: MatchResult, report: SettlementReport) -> None:
        bet_type = WagerType(bet["bet_type"])
        amount = bet["amount"]
        if result.is_draw:
            status, outcome, payout = WagerStatus.CANCELLED, WagerOutcome.CANCELLED, amount
        elif leg_wins(PricedLeg(bet["match_id"], bet_type, bet["selection"], bet["odds"]), result):
            status, outcome = WagerStatus.WON, WagerOutcome.WON
            payout = math.floor(amount * bet["odds"])
        else:
            status, outcome, payout = WagerStatus.LOST, WagerOutcome.LOST, 0

        if not self.bet_repo.settle_bet_atomic(bet["bet_id"], status, payout):
            report.already_settled += 1
            return

        if outcome is WagerOutcome.WON:
            report.bets_won += 1
        elif outcome is WagerOutcome.LOST:
            report.bets_lost += 1
        else:
            report.bets_cancelled += 1
        report.total_credited += payout
        logger.info(
            f"Bet {bet['bet_id']} {status}: user={bet['discord_id']} "
            f"{bet_type.value}={bet['selection']} amount={amount} payout={payout}"
        )

        user = bet["discord_id"]
        self.event_bus.publish(
            WagerResolved(
                kind=WagerKind.BET,
                wager_id=bet["bet_id"],
                guild_id=bet["guild_id"],
                outcome=outcome,
                amount=amount,
                odds=bet["odds"],
                participant_ids=(user,),
                payout=payout,
                winner_ids=(user,) if outcome is WagerOutcome.WON else (),
                loser_ids=(user,) if outcome is WagerOutcome.LOST else (),
                bet_type=bet_type,
            )
        )

    # =========================================================================
    # Duels
    # =========================================================================

    def _settle_duels(self, result: MatchResult, report: SettlementReport) -> None:
        for duel in self.duel_repo.get_accepted_duels_for_match(result.match_id):
            try:
                self._settle_duel(duel, result, report)
            except Exception as exc:
                logger.error(f"Failed to settle duel {duel['duel_id']}: {exc}", exc_info=True)
                report.failures.append(f"duel:{duel['duel_id']}")

        # Proposals nobody accepted before the match hold no funds; close them
        for duel in self.duel_repo.get_pending_duels_for_match(result.match_id):
            try:
                if self.duel_repo.cancel_pending(duel["duel_id"]):
                    logger.info(f"Duel {duel['duel_id']} expired unaccepted")
            except Exception as exc:
                logger.error(f"Failed to expire duel {duel['duel_id']}: {exc}", exc_info=True)
                report.failures.append(f"duel:{duel['duel_id']}")

    def _settle_duel(self, duel: dict, result: MatchResult, report: SettlementReport) -> None:
        challenger, opponent = duel["challenger_id"], duel["opponent_id"]
        amount = duel["amount"]

        if result.is_draw:
            if not self.duel_repo.refund_accepted_atomic(duel["duel_id"]):
                report.already_settled += 1
                return
            report.duels_cancelled += 1
            report.total_credited += 2 * amount
            logger.info(f"Duel {duel['duel_id']} drawn: {amount} refunded to each side")
            self.event_bus.publish(
                WagerResolved(
                    kind=WagerKind.DUEL,
                    wager_id=duel["duel_id"],
                    guild_id=duel["guild_id"],
                    outcome=WagerOutcome.CANCELLED,
                    amount=amount,
                    odds=2.0,
                    participant_ids=(challenger, opponent),
                    payout=amount,
                )
            )
            return

        if duel["challenger_team"] == result.winner:
            winner, loser = challenger, opponent
        else:
            winner, loser = opponent, challenger
        pot = 2 * amount

        if not self.duel_repo.resolve_duel_atomic(duel["duel_id"], winner, pot):
            report.already_settled += 1
            return
        report.duels_resolved += 1
        report.total_credited += pot
        logger.info(f"Duel {duel['duel_id']} resolved: {winner} beat {loser} and receives {pot}")
        self.event_bus.publish(
            WagerResolved(
                kind=WagerKind.DUEL,
                wager_id=duel["duel_id"],
                guild_id=duel["guild_id"],
                outcome=WagerOutcome.WON,
                amount=amount,
                odds=2.0,
                participant_ids=(challenger, opponent),
                payout=pot,
                winner_ids=(winner,),
                loser_ids=(loser,),
            )
        )

    # =========================================================================
    # Parlays
    # =========================================================================

    def _settle_parlays(self, result: MatchResult, report: SettlementReport) -> None:
        for parlay in self.parlay_repo.get_active_parlays_with_leg_on(result.match_id):
            try:
                self._settle_parlay(parlay, result, report)
            except Exception as exc:
                logger.error(f"Failed to settle parlay {parlay['parlay_id']}: {exc}", exc_info=True)
                report.failures.append(f"parlay:{parlay['parlay_id']}")

    def _final_results(self, legs: list[PricedLeg], current: MatchResult) -> dict[int, MatchResult] | None:
        """Final result for every leg's match, or None while any is still undecided."""
        results = {current.match_id: current}
        others = [leg.match_id for leg in legs if leg.match_id != current.match_id]
        matches = self.match_repo.get_matches(others)
        for match_id in others:
            match = matches.get(match_id)
            if not match or match["status"] not in SETTLED_STATUSES:
                return None
            final = MatchResult.from_row(match)
            if final is None:
                return None
            results[match_id] = final
        return results

    def _settle_parlay(self, parlay: dict, result: MatchResult, report: SettlementReport) -> None:
        legs = self.parlay_repo.get_legs(parlay["parlay_id"])
        this_leg = next((leg for leg in legs if leg.match_id == result.match_id), None)
        if this_leg is None:
            return

        if not leg_wins(this_leg, result):
            won = False
        else:
            finals = self._final_results(legs, result)
            if finals is None:
                report.parlays_waiting += 1
                logger.info(
                    f"Parlay {parlay['parlay_id']} leg on match {result.match_id} passed; "
                    "waiting for other matches"
                )
                return
            won = all(leg_wins(leg, finals[leg.match_id]) for leg in legs)

        amount = parlay["amount"]
        payout = math.floor(amount * parlay["total_odds"]) if won else 0
        status = WagerStatus.WON if won else WagerStatus.LOST
        if not self.parlay_repo.settle_parlay_atomic(parlay["parlay_id"], status, payout):
            report.already_settled += 1
            return

        if won:
            report.parlays_won += 1
        else:
            report.parlays_lost += 1
        report.total_credited += payout
        logger.info(
            f"Parlay {parlay['parlay_id']} {status}: user={parlay['discord_id']} "
            f"legs={len(legs)} total_odds={parlay['total_odds']:.2f} payout={payout}"
        )

        user = parlay["discord_id"]
        outcome = WagerOutcome.WON if won else WagerOutcome.LOST
        self.event_bus.publish(
            WagerResolved(
                kind=WagerKind.PARLAY,
                wager_id=parlay["parlay_id"],
                guild_id=parlay["guild_id"],
                outcome=outcome,
                amount=amount,
                odds=parlay["total_odds"],
                participant_ids=(user,),
                payout=payout,
                winner_ids=(user,) if won else (),
                loser_ids=() if won else (user,),
                leg_count=len(legs),
            )
        )
