"""
Repository for 1v1 duels.

Both stakes are escrowed when the opponent accepts; a pending duel holds
no funds.
"""

from domain.models.wager import WagerStatus
from repositories.base_repository import BaseRepository
from repositories.interfaces import IDuelRepository


class DuelRepository(BaseRepository, IDuelRepository):
    def create_duel(
        self,
        *,
        guild_id: int | None,
        match_id: int,
        challenger_id: int,
        opponent_id: int,
        challenger_team: str,
        opponent_team: str,
        amount: int,
        created_at: int | None = None,
    ) -> dict:
        created_at = created_at if created_at is not None else self.now()
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO duels (
                    guild_id, match_id, challenger_id, opponent_id,
                    challenger_team, opponent_team, amount, status, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    self.normalize_guild_id(guild_id),
                    match_id,
                    challenger_id,
                    opponent_id,
                    challenger_team,
                    opponent_team,
                    amount,
                    WagerStatus.PENDING,
                    created_at,
                ),
            )
            return {"duel_id": cursor.lastrowid, "created_at": created_at}

    def get_duel(self, duel_id: int) -> dict | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM duels WHERE duel_id = ?", (duel_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def accept_duel_atomic(self, duel_id: int) -> dict:
        """
        Flip PENDING -> ACCEPTED and debit both stakes in one transaction.

        Returns:
            Dict with the new balances of both parties

        Raises:
            ValueError: If the duel is no longer pending or either party
                cannot cover the stake (nothing is changed in that case)
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE duels SET status = ?, accepted_at = ? WHERE duel_id = ? AND status = ?",
                (WagerStatus.ACCEPTED, self.now(), duel_id, WagerStatus.PENDING),
            )
            if cursor.rowcount != 1:
                raise ValueError("This duel is no longer pending.")
            cursor.execute("SELECT * FROM duels WHERE duel_id = ?", (duel_id,))
            duel = cursor.fetchone()
            amount = int(duel["amount"])
            try:
                challenger_balance = self._debit_points(cursor, duel["challenger_id"], amount)
            except ValueError:
                raise ValueError("Insufficient balance: the challenger can no longer cover this duel.")
            opponent_balance = self._debit_points(cursor, duel["opponent_id"], amount)
            return {
                "challenger_balance": challenger_balance,
                "opponent_balance": opponent_balance,
            }

    def cancel_pending(self, duel_id: int) -> bool:
        """PENDING -> CANCELLED. No funds are held, so nothing is refunded."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE duels SET status = ?, settled_at = ? WHERE duel_id = ? AND status = ?",
                (WagerStatus.CANCELLED, self.now(), duel_id, WagerStatus.PENDING),
            )
            return cursor.rowcount == 1

    def get_accepted_duels_for_match(self, match_id: int) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM duels WHERE match_id = ? AND status = ? ORDER BY duel_id",
                (match_id, WagerStatus.ACCEPTED),
            )
            return [dict(row) for row in cursor.fetchall()]

    def get_pending_duels_for_match(self, match_id: int) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM duels WHERE match_id = ? AND status = ? ORDER BY duel_id",
                (match_id, WagerStatus.PENDING),
            )
            return [dict(row) for row in cursor.fetchall()]

    def resolve_duel_atomic(self, duel_id: int, winner_id: int, payout: int) -> bool:
        """
        ACCEPTED -> RESOLVED with the pot credited to the winner.

        Returns:
            False if the duel was not ACCEPTED anymore
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE duels SET status = ?, winner_id = ?, settled_at = ?
                WHERE duel_id = ? AND status = ?
                """,
                (WagerStatus.RESOLVED, winner_id, self.now(), duel_id, WagerStatus.ACCEPTED),
            )
            if cursor.rowcount != 1:
                return False
            self._credit_points(cursor, winner_id, payout)
            return True

    def refund_accepted_atomic(self, duel_id: int) -> bool:
        """ACCEPTED -> CANCELLED with both stakes returned (drawn match)."""
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE duels SET status = ?, settled_at = ? WHERE duel_id = ? AND status = ?",
                (WagerStatus.CANCELLED, self.now(), duel_id, WagerStatus.ACCEPTED),
            )
            if cursor.rowcount != 1:
                return False
            cursor.execute("SELECT * FROM duels WHERE duel_id = ?", (duel_id,))
            duel = cursor.fetchone()
            self._credit_points(cursor, duel["challenger_id"], duel["amount"])
            self._credit_points(cursor, duel["opponent_id"], duel["amount"])
            return True

    def get_user_duels(self, discord_id: int, statuses: tuple[str, ...]) -> list[dict]:
        placeholders = ",".join("?" * len(statuses))
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT d.*, m.home_team, m.opponent, m.begin_at
                FROM duels d
                LEFT JOIN matches m ON m.match_id = d.match_id
                WHERE (d.challenger_id = ? OR d.opponent_id = ?)
                  AND d.status IN ({placeholders})
                ORDER BY d.created_at DESC, d.duel_id DESC
                """,
                (discord_id, discord_id, *statuses),
            )
            return [dict(row) for row in cursor.fetchall()]

    def count_accepted_duels(self, discord_id: int) -> int:
        """Duels the user took part in that were ever accepted."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT COUNT(*) AS n FROM duels
                WHERE (challenger_id = ? OR opponent_id = ?) AND accepted_at IS NOT NULL
                """,
                (discord_id, discord_id),
            )
            return int(cursor.fetchone()["n"])

    def count_duel_wins(self, discord_id: int) -> int:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COUNT(*) AS n FROM duels WHERE status = ? AND winner_id = ?",
                (WagerStatus.RESOLVED, discord_id),
            )
            return int(cursor.fetchone()["n"])

    def get_recent_results(self, discord_id: int, limit: int = 100) -> list[str]:
        """WON/LOST from the user's point of view for resolved duels, newest first."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT CASE WHEN winner_id = ? THEN 'WON' ELSE 'LOST' END AS result
                FROM duels
                WHERE status = ? AND (challenger_id = ? OR opponent_id = ?)
                ORDER BY settled_at DESC, duel_id DESC
                LIMIT ?
                """,
                (discord_id, WagerStatus.RESOLVED, discord_id, discord_id, limit),
            )
            return [row["result"] for row in cursor.fetchall()]
