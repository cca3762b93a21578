"""
Daily rewards and user-to-user point transfers.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING

from domain.models.events import DailyClaimed, PointsTransferred
from services import error_codes
from services.result import Result
from services.wager_events import WagerEventBus

if TYPE_CHECKING:
    from repositories.interfaces import IEconomyRepository

logger = logging.getLogger("wager_bot.services.economy")


def utc_day(ts: float) -> date:
    return datetime.fromtimestamp(ts, tz=timezone.utc).date()


def prior_streak(today: date, claim_days: list[str]) -> int:
    """
    Number of consecutive days right before today with a claim.

    Args:
        claim_days: ISO dates, newest first
    """
    streak = 0
    expected = today - timedelta(days=1)
    for raw in claim_days:
        day = date.fromisoformat(raw)
        if day >= today:
            continue
        if day != expected:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


@dataclass(frozen=True)
class DailyReward:
    amount: int
    streak: int
    new_balance: int
    first_claim: bool


class EconomyService:
    """
    Daily claim: base reward plus a bonus per consecutive prior day, capped.
    Transfers: atomic debit and credit between two users.
    """

    def __init__(
        self,
        economy_repo: IEconomyRepository,
        event_bus: WagerEventBus | None = None,
        base_reward: int = 200,
        streak_bonus: int = 50,
        max_streak: int = 6,
    ):
        self.economy_repo = economy_repo
        self.event_bus = event_bus or WagerEventBus()
        self.base_reward = base_reward
        self.streak_bonus = streak_bonus
        self.max_streak = max_streak

    def reward_for(self, streak: int) -> int:
        return self.base_reward + self.streak_bonus * min(streak, self.max_streak)

    def claim_daily(
        self, discord_id: int, username: str | None = None, now: float | None = None
    ) -> Result[DailyReward]:
        """
        Claim today's reward (UTC calendar day).

        Error codes:
            ALREADY_CLAIMED
        """
        now = time.time() if now is None else now
        today = utc_day(now)
        recent = self.economy_repo.get_recent_claim_days(discord_id, 30)
        if today.isoformat() in recent:
            return Result.fail("Daily reward already claimed today.", code=error_codes.ALREADY_CLAIMED)

        streak = prior_streak(today, recent)
        amount = self.reward_for(streak)
        try:
            new_balance = self.economy_repo.claim_daily_atomic(
                discord_id, today.isoformat(), amount, streak, username
            )
        except ValueError as exc:
            return Result.fail(str(exc), code=error_codes.ALREADY_CLAIMED)

        reward = DailyReward(amount=amount, streak=streak, new_balance=new_balance, first_claim=not recent)
        logger.info(f"User {discord_id} claimed daily reward {amount} (streak={streak})")
        self.event_bus.publish(
            DailyClaimed(
                discord_id=discord_id,
                amount=amount,
                streak=streak,
                first_claim=reward.first_claim,
            )
        )
        return Result.ok(reward)

    def send_points(self, sender_id: int, recipient_id: int, amount: int) -> Result[dict]:
        """
        Transfer points to another user.

        Error codes:
            VALIDATION_ERROR, SELF_TRANSFER, INSUFFICIENT_FUNDS
        """
        if amount < 1:
            return Result.fail("Transfer amount must be positive.", code=error_codes.VALIDATION_ERROR)
        if sender_id == recipient_id:
            return Result.fail("You cannot send points to yourself.", code=error_codes.SELF_TRANSFER)

        try:
            transfer = self.economy_repo.transfer_atomic(sender_id, recipient_id, amount)
        except ValueError as exc:
            code = (
                error_codes.INSUFFICIENT_FUNDS
                if "insufficient balance" in str(exc).lower()
                else error_codes.VALIDATION_ERROR
            )
            return Result.fail(str(exc), code=code)

        logger.info(f"Transfer {transfer['transfer_id']}: {sender_id} sent {amount} to {recipient_id}")
        self.event_bus.publish(PointsTransferred(sender_id=sender_id, recipient_id=recipient_id, amount=amount))
        return Result.ok(transfer)
