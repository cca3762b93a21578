"""
Repository for daily reward claims and user-to-user point transfers.
"""

from repositories.base_repository import BaseRepository
from repositories.interfaces import IEconomyRepository


class EconomyRepository(BaseRepository, IEconomyRepository):
    def get_recent_claim_days(self, discord_id: int, limit: int = 30) -> list[str]:
        """ISO dates (YYYY-MM-DD) of the user's claims, newest first."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT claim_day FROM daily_rewards
                WHERE discord_id = ?
                ORDER BY claim_day DESC
                LIMIT ?
                """,
                (discord_id, limit),
            )
            return [row["claim_day"] for row in cursor.fetchall()]

    def claim_daily_atomic(
        self,
        discord_id: int,
        claim_day: str,
        amount: int,
        streak: int,
        username: str | None = None,
    ) -> int:
        """
        Record today's claim and credit the reward.

        The (discord_id, claim_day) unique key makes a second claim on the
        same day fail even when two requests race.

        Returns:
            The new balance

        Raises:
            ValueError: If the reward was already claimed for claim_day
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            self._ensure_user(cursor, discord_id, username)
            cursor.execute(
                """
                INSERT OR IGNORE INTO daily_rewards (discord_id, claim_day, amount, streak, claimed_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (discord_id, claim_day, amount, streak, self.now()),
            )
            if cursor.rowcount != 1:
                raise ValueError("Daily reward already claimed today.")
            return self._credit_points(cursor, discord_id, amount)

    def transfer_atomic(self, sender_id: int, recipient_id: int, amount: int) -> dict:
        """
        Move points between users in one transaction.

        Raises:
            ValueError: On a non-positive amount, self-transfer or insufficient balance
        """
        if amount <= 0:
            raise ValueError("Transfer amount must be positive.")
        if sender_id == recipient_id:
            raise ValueError("You cannot send points to yourself.")

        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            sender_balance = self._debit_points(cursor, sender_id, amount)
            recipient_balance = self._credit_points(cursor, recipient_id, amount)
            cursor.execute(
                """
                INSERT INTO point_transfers (sender_id, recipient_id, amount, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (sender_id, recipient_id, amount, self.now()),
            )
            return {
                "transfer_id": cursor.lastrowid,
                "sender_balance": sender_balance,
                "recipient_balance": recipient_balance,
            }

    def get_transfers_by_sender(self, sender_id: int, limit: int = 10) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM point_transfers
                WHERE sender_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (sender_id, limit),
            )
            return [dict(row) for row in cursor.fetchall()]
