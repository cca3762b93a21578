"""
Repository for parlays (combined bets) and their legs.
"""

from domain.models.wager import PricedLeg, WagerStatus, WagerType
from repositories.base_repository import BaseRepository
from repositories.interfaces import IParlayRepository


class ParlayRepository(BaseRepository, IParlayRepository):
    def place_parlay_atomic(
        self,
        *,
        guild_id: int | None,
        discord_id: int,
        amount: int,
        total_odds: float,
        legs: list[PricedLeg],
        created_at: int | None = None,
    ) -> dict:
        """
        Debit the stake, insert the parlay and all legs in one transaction.

        Raises:
            ValueError: On insufficient balance or duplicate match legs
        """
        if amount <= 0:
            raise ValueError("Parlay amount must be positive.")

        created_at = created_at if created_at is not None else self.now()
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            new_balance = self._debit_points(cursor, discord_id, amount)
            cursor.execute(
                """
                INSERT INTO parlays (guild_id, discord_id, amount, total_odds, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    self.normalize_guild_id(guild_id),
                    discord_id,
                    amount,
                    float(total_odds),
                    WagerStatus.ACTIVE,
                    created_at,
                ),
            )
            parlay_id = cursor.lastrowid
            cursor.executemany(
                """
                INSERT INTO parlay_legs (parlay_id, match_id, bet_type, selection, odds)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (parlay_id, leg.match_id, leg.bet_type.value, leg.selection, float(leg.odds))
                    for leg in legs
                ],
            )
            return {"parlay_id": parlay_id, "new_balance": new_balance, "created_at": created_at}

    def get_parlay(self, parlay_id: int) -> dict | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM parlays WHERE parlay_id = ?", (parlay_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_legs(self, parlay_id: int) -> list[PricedLeg]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM parlay_legs WHERE parlay_id = ? ORDER BY leg_id",
                (parlay_id,),
            )
            return [
                PricedLeg(
                    match_id=row["match_id"],
                    bet_type=WagerType(row["bet_type"]),
                    selection=row["selection"],
                    odds=row["odds"],
                )
                for row in cursor.fetchall()
            ]

    def get_active_parlays_with_leg_on(self, match_id: int) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT DISTINCT p.*
                FROM parlays p
                JOIN parlay_legs l ON l.parlay_id = p.parlay_id
                WHERE l.match_id = ? AND p.status = ?
                ORDER BY p.parlay_id
                """,
                (match_id, WagerStatus.ACTIVE),
            )
            return [dict(row) for row in cursor.fetchall()]

    def settle_parlay_atomic(self, parlay_id: int, status: str, payout: int) -> bool:
        """
        Move an ACTIVE parlay to WON/LOST and credit payout in one transaction.

        Returns:
            False if the parlay was already settled
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE parlays SET status = ?, payout = ?, settled_at = ?
                WHERE parlay_id = ? AND status = ?
                """,
                (status, payout, self.now(), parlay_id, WagerStatus.ACTIVE),
            )
            if cursor.rowcount != 1:
                return False
            if payout > 0:
                cursor.execute("SELECT discord_id FROM parlays WHERE parlay_id = ?", (parlay_id,))
                self._credit_points(cursor, cursor.fetchone()["discord_id"], payout)
            return True

    def get_user_active_parlays(self, discord_id: int) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM parlays
                WHERE discord_id = ? AND status = ?
                ORDER BY created_at DESC, parlay_id DESC
                """,
                (discord_id, WagerStatus.ACTIVE),
            )
            return [dict(row) for row in cursor.fetchall()]

    def count_user_parlays(self, discord_id: int) -> int:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS n FROM parlays WHERE discord_id = ?", (discord_id,))
            return int(cursor.fetchone()["n"])

    def get_recent_results(self, discord_id: int, limit: int = 100) -> list[str]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT status FROM parlays
                WHERE discord_id = ? AND status IN (?, ?)
                ORDER BY settled_at DESC, parlay_id DESC
                LIMIT ?
                """,
                (discord_id, *WagerStatus.TERMINAL, limit),
            )
            return [row["status"] for row in cursor.fetchall()]
