"""
Wager ledger: places bets, duels and parlays.

Every placement re-prices at commit time and debits through a conditional
decrement, so a stale quote or a concurrent debit can never overdraw a
wallet. Side effects (titles, tournament links) run after the commit via
the event bus.
"""

import logging
import math
import time

from domain.models.events import DuelAccepted, WagerPlaced
from domain.models.wager import (
    LegSelection,
    OddsChanged,
    PricedLeg,
    WagerKind,
    WagerReceipt,
    WagerStatus,
    WagerType,
)
from repositories.interfaces import (
    IBetRepository,
    IDuelRepository,
    IMatchRepository,
    IParlayRepository,
    IUserRepository,
)
from services import error_codes
from services.odds_service import OddsService
from services.result import Result
from services.wager_events import WagerEventBus

logger = logging.getLogger("wager_bot.services.wager")


def _map_ledger_error(exc: ValueError) -> Result:
    """Translate a repository ValueError into a coded failure."""
    msg = str(exc)
    lowered = msg.lower()
    if "insufficient balance" in lowered:
        return Result.fail(msg, code=error_codes.INSUFFICIENT_FUNDS)
    if "no longer pending" in lowered:
        return Result.fail(msg, code=error_codes.DUEL_NOT_PENDING)
    return Result.fail(msg, code=error_codes.VALIDATION_ERROR)


class WagerService:
    """
    Places and inspects wagers.

    Validation order for a bet: stake, match, selection, price, funds.
    A moved price is reported as ODDS_CHANGED with the fresh odds so the
    caller can ask the user to confirm again.
    """

    MIN_PARLAY_LEGS = 2

    def __init__(
        self,
        user_repo: IUserRepository,
        match_repo: IMatchRepository,
        bet_repo: IBetRepository,
        duel_repo: IDuelRepository,
        parlay_repo: IParlayRepository,
        odds_service: OddsService,
        event_bus: WagerEventBus | None = None,
        min_stake: int = 25,
        odds_tolerance: float = 0.01,
    ):
        self.user_repo = user_repo
        self.match_repo = match_repo
        self.bet_repo = bet_repo
        self.duel_repo = duel_repo
        self.parlay_repo = parlay_repo
        self.odds_service = odds_service
        self.event_bus = event_bus or WagerEventBus()
        self.min_stake = min_stake
        self.odds_tolerance = odds_tolerance

    def _odds_moved(self, quoted: float | None, current: float) -> bool:
        # Small epsilon so a drift of exactly the tolerance still passes
        return quoted is not None and abs(current - quoted) > self.odds_tolerance + 1e-9

    def _check_stake(self, amount: int) -> Result | None:
        if amount < self.min_stake:
            return Result.fail(
                f"Minimum stake is {self.min_stake} points.",
                code=error_codes.INVALID_STAKE,
            )
        return None

    def _load_bettable_match(self, match_id: int, now: float) -> Result:
        match = self.match_repo.get_match(match_id)
        if not match:
            return Result.fail(f"Match {match_id} not found.", code=error_codes.MATCH_NOT_FOUND)
        if not self.odds_service.is_bettable(match, now):
            return Result.fail(
                f"Betting is closed for {match['home_team']} vs {match['opponent']}.",
                code=error_codes.MATCH_NOT_BETTABLE,
            )
        return Result.ok(match)

    # =========================================================================
    # Single bets
    # =========================================================================

    def place_bet(
        self,
        guild_id: int | None,
        discord_id: int,
        match_id: int,
        bet_type: WagerType | str,
        selection: str,
        amount: int,
        quoted_odds: float | None = None,
    ) -> Result[WagerReceipt]:
        """
        Place a TEAM or SCORE bet at the live price.

        Args:
            quoted_odds: Odds the user was shown; if the live price moved by
                more than the tolerance the bet is not placed

        Error codes:
            INVALID_STAKE, MATCH_NOT_FOUND, MATCH_NOT_BETTABLE,
            INVALID_SELECTION, ODDS_CHANGED (value is OddsChanged),
            INSUFFICIENT_FUNDS
        """
        bet_type = WagerType.parse(bet_type)
        now = time.time()

        failure = self._check_stake(amount)
        if failure:
            return failure

        loaded = self._load_bettable_match(match_id, now)
        if not loaded:
            return loaded
        match = loaded.value

        odds = self.odds_service.price_selection(match, bet_type, selection, now)
        if odds is None:
            return Result.fail(
                f"'{selection}' is not a valid {bet_type.value.lower()} pick for this match.",
                code=error_codes.INVALID_SELECTION,
            )
        if self._odds_moved(quoted_odds, odds):
            return Result.fail(
                f"Odds changed from {quoted_odds:.2f} to {odds:.2f}.",
                code=error_codes.ODDS_CHANGED,
                value=OddsChanged(quoted=quoted_odds, current=odds, match_id=match_id),
            )

        try:
            placed = self.bet_repo.place_bet_atomic(
                guild_id=guild_id,
                discord_id=discord_id,
                match_id=match_id,
                bet_type=bet_type,
                selection=selection,
                amount=amount,
                odds=odds,
                created_at=int(now),
            )
        except ValueError as exc:
            return _map_ledger_error(exc)

        logger.info(
            f"Bet {placed['bet_id']} placed: user={discord_id} match={match_id} "
            f"{bet_type.value}={selection} amount={amount} odds={odds}"
        )
        self.event_bus.publish(
            WagerPlaced(
                kind=WagerKind.BET,
                wager_id=placed["bet_id"],
                guild_id=guild_id or 0,
                user_ids=(discord_id,),
                amount=amount,
                odds=odds,
                created_at=placed["created_at"],
                bet_type=bet_type,
            )
        )
        return Result.ok(
            WagerReceipt(
                kind=WagerKind.BET,
                wager_id=placed["bet_id"],
                amount=amount,
                odds=odds,
                new_balance=placed["new_balance"],
                potential_payout=WagerReceipt.payout_for(amount, odds),
            )
        )

    # =========================================================================
    # Duels
    # =========================================================================

    def create_duel(
        self,
        guild_id: int | None,
        challenger_id: int,
        opponent_id: int,
        match_id: int,
        team: str,
        amount: int,
    ) -> Result[dict]:
        """
        Propose a duel; the opponent gets the other team.

        Nothing is debited until the opponent accepts, but the challenger
        must be able to cover the stake now.
        """
        now = time.time()
        if challenger_id == opponent_id:
            return Result.fail("You cannot duel yourself.", code=error_codes.SELF_DUEL)
        failure = self._check_stake(amount)
        if failure:
            return failure

        loaded = self._load_bettable_match(match_id, now)
        if not loaded:
            return loaded
        match = loaded.value

        if team == match["home_team"]:
            opponent_team = match["opponent"]
        elif team == match["opponent"]:
            opponent_team = match["home_team"]
        else:
            return Result.fail(
                f"'{team}' is not playing in this match.",
                code=error_codes.INVALID_SELECTION,
            )

        self.user_repo.ensure_user(challenger_id)
        if self.user_repo.get_balance(challenger_id) < amount:
            return Result.fail(
                f"Insufficient balance: {amount} points required.",
                code=error_codes.INSUFFICIENT_FUNDS,
            )

        created = self.duel_repo.create_duel(
            guild_id=guild_id,
            match_id=match_id,
            challenger_id=challenger_id,
            opponent_id=opponent_id,
            challenger_team=team,
            opponent_team=opponent_team,
            amount=amount,
            created_at=int(now),
        )
        logger.info(
            f"Duel {created['duel_id']} proposed: {challenger_id} ({team}) vs "
            f"{opponent_id} ({opponent_team}) on match {match_id} for {amount}"
        )
        self.event_bus.publish(
            WagerPlaced(
                kind=WagerKind.DUEL,
                wager_id=created["duel_id"],
                guild_id=guild_id or 0,
                user_ids=(challenger_id, opponent_id),
                amount=amount,
                odds=2.0,
                created_at=created["created_at"],
                bet_type=WagerType.TEAM,
            )
        )
        return Result.ok(self.duel_repo.get_duel(created["duel_id"]))

    def _load_pending_duel(self, duel_id: int) -> Result:
        duel = self.duel_repo.get_duel(duel_id)
        if not duel:
            return Result.fail("Duel not found.", code=error_codes.DUEL_NOT_FOUND)
        if duel["status"] != WagerStatus.PENDING:
            return Result.fail(
                f"This duel is already {duel['status'].lower()}.",
                code=error_codes.DUEL_NOT_PENDING,
            )
        return Result.ok(duel)

    def accept_duel(self, duel_id: int, discord_id: int) -> Result[dict]:
        """
        Accept a pending duel: both stakes are debited atomically.

        If either party cannot cover the stake nothing changes and the
        result is INSUFFICIENT_FUNDS.
        """
        loaded = self._load_pending_duel(duel_id)
        if not loaded:
            return loaded
        duel = loaded.value
        if duel["opponent_id"] != discord_id:
            return Result.fail(
                "Only the challenged user can accept this duel.",
                code=error_codes.PERMISSION_DENIED,
            )
        match_loaded = self._load_bettable_match(duel["match_id"], time.time())
        if not match_loaded:
            return match_loaded

        try:
            balances = self.duel_repo.accept_duel_atomic(duel_id)
        except ValueError as exc:
            return _map_ledger_error(exc)

        logger.info(f"Duel {duel_id} accepted by {discord_id}; {duel['amount']} escrowed from each side")
        self.event_bus.publish(
            DuelAccepted(
                duel_id=duel_id,
                guild_id=duel["guild_id"],
                challenger_id=duel["challenger_id"],
                opponent_id=duel["opponent_id"],
                amount=duel["amount"],
            )
        )
        accepted = self.duel_repo.get_duel(duel_id)
        accepted.update(balances)
        return Result.ok(accepted)

    def reject_duel(self, duel_id: int, discord_id: int) -> Result[dict]:
        """The challenged user declines; no balance effect."""
        loaded = self._load_pending_duel(duel_id)
        if not loaded:
            return loaded
        if loaded.value["opponent_id"] != discord_id:
            return Result.fail(
                "Only the challenged user can reject this duel.",
                code=error_codes.PERMISSION_DENIED,
            )
        return self._cancel_pending(duel_id, discord_id, "rejected")

    def cancel_duel(self, duel_id: int, discord_id: int) -> Result[dict]:
        """The challenger withdraws a duel that was not accepted yet."""
        loaded = self._load_pending_duel(duel_id)
        if not loaded:
            return loaded
        if loaded.value["challenger_id"] != discord_id:
            return Result.fail(
                "Only the challenger can cancel this duel.",
                code=error_codes.PERMISSION_DENIED,
            )
        return self._cancel_pending(duel_id, discord_id, "cancelled")

    def _cancel_pending(self, duel_id: int, discord_id: int, verb: str) -> Result[dict]:
        if not self.duel_repo.cancel_pending(duel_id):
            return Result.fail("This duel is no longer pending.", code=error_codes.DUEL_NOT_PENDING)
        logger.info(f"Duel {duel_id} {verb} by {discord_id}")
        return Result.ok(self.duel_repo.get_duel(duel_id))

    # =========================================================================
    # Parlays
    # =========================================================================

    def price_legs(self, legs: list[LegSelection], now: float | None = None) -> Result[list[PricedLeg]]:
        """
        Validate and price every leg at the live odds.

        Used both for the running slip preview and at confirmation.
        """
        now = time.time() if now is None else now
        match_ids = [leg.match_id for leg in legs]
        if len(set(match_ids)) != len(match_ids):
            return Result.fail(
                "A parlay can only contain one leg per match.",
                code=error_codes.INVALID_SELECTION,
            )

        matches = self.match_repo.get_matches(match_ids)
        priced = []
        for leg in legs:
            match = matches.get(leg.match_id)
            if not match:
                return Result.fail(f"Match {leg.match_id} not found.", code=error_codes.MATCH_NOT_FOUND)
            if not self.odds_service.is_bettable(match, now):
                return Result.fail(
                    f"Betting is closed for {match['home_team']} vs {match['opponent']}.",
                    code=error_codes.MATCH_NOT_BETTABLE,
                )
            odds = self.odds_service.price_selection(match, leg.bet_type, leg.selection, now)
            if odds is None:
                return Result.fail(
                    f"'{leg.selection}' is not a valid pick for match {leg.match_id}.",
                    code=error_codes.INVALID_SELECTION,
                )
            if self._odds_moved(leg.quoted_odds, odds):
                return Result.fail(
                    f"Odds changed from {leg.quoted_odds:.2f} to {odds:.2f} on match {leg.match_id}.",
                    code=error_codes.ODDS_CHANGED,
                    value=OddsChanged(quoted=leg.quoted_odds, current=odds, match_id=leg.match_id),
                )
            priced.append(PricedLeg(leg.match_id, leg.bet_type, leg.selection, odds))
        return Result.ok(priced)

    def requote_legs(self, legs: list[LegSelection], now: float | None = None) -> Result[list[LegSelection]]:
        """Refresh the quoted odds of every leg on a slip at once."""
        unquoted = [LegSelection(leg.match_id, leg.bet_type, leg.selection) for leg in legs]
        priced = self.price_legs(unquoted, now)
        if not priced:
            return priced
        return Result.ok(
            [LegSelection(leg.match_id, leg.bet_type, leg.selection, quoted_odds=leg.odds) for leg in priced.value]
        )

    def place_parlay(
        self,
        guild_id: int | None,
        discord_id: int,
        amount: int,
        legs: list[LegSelection],
    ) -> Result[WagerReceipt]:
        """
        Place a parlay of at least two legs on distinct matches.

        The combined odds are the product of the live leg odds, frozen at
        placement. A WON parlay pays floor(amount * total_odds).
        """
        if len(legs) < self.MIN_PARLAY_LEGS:
            return Result.fail(
                f"A parlay needs at least {self.MIN_PARLAY_LEGS} legs.",
                code=error_codes.TOO_FEW_LEGS,
            )
        failure = self._check_stake(amount)
        if failure:
            return failure

        now = time.time()
        priced_result = self.price_legs(legs, now)
        if not priced_result:
            return priced_result
        priced = priced_result.value
        total_odds = math.prod(leg.odds for leg in priced)

        try:
            placed = self.parlay_repo.place_parlay_atomic(
                guild_id=guild_id,
                discord_id=discord_id,
                amount=amount,
                total_odds=total_odds,
                legs=priced,
                created_at=int(now),
            )
        except ValueError as exc:
            return _map_ledger_error(exc)

        logger.info(
            f"Parlay {placed['parlay_id']} placed: user={discord_id} legs={len(priced)} "
            f"amount={amount} total_odds={total_odds:.2f}"
        )
        self.event_bus.publish(
            WagerPlaced(
                kind=WagerKind.PARLAY,
                wager_id=placed["parlay_id"],
                guild_id=guild_id or 0,
                user_ids=(discord_id,),
                amount=amount,
                odds=total_odds,
                created_at=placed["created_at"],
                leg_count=len(priced),
            )
        )
        return Result.ok(
            WagerReceipt(
                kind=WagerKind.PARLAY,
                wager_id=placed["parlay_id"],
                amount=amount,
                odds=total_odds,
                new_balance=placed["new_balance"],
                potential_payout=WagerReceipt.payout_for(amount, total_odds),
                legs=tuple(priced),
            )
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_balance(self, discord_id: int, username: str | None = None) -> int:
        return self.user_repo.ensure_user(discord_id, username)["points"]

    def get_leaderboard(self, limit: int = 20) -> list[dict]:
        """Richest users first; ties keep a stable order by id."""
        return self.user_repo.get_leaderboard(max(1, limit))

    def get_active_wagers(self, discord_id: int) -> dict:
        """Open bets, pending/accepted duels and active parlays (with legs)."""
        parlays = []
        for parlay in self.parlay_repo.get_user_active_parlays(discord_id):
            parlay["legs"] = self.parlay_repo.get_legs(parlay["parlay_id"])
            parlays.append(parlay)
        return {
            "bets": self.bet_repo.get_user_active_bets(discord_id),
            "duels": self.duel_repo.get_user_duels(
                discord_id, (WagerStatus.PENDING, WagerStatus.ACCEPTED)
            ),
            "parlays": parlays,
        }
