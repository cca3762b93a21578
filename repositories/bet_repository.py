"""
Repository for single bets (team winner or exact score).
"""

from domain.models.wager import WagerStatus, WagerType
from repositories.base_repository import BaseRepository
from repositories.interfaces import IBetRepository


class BetRepository(BaseRepository, IBetRepository):
    def place_bet_atomic(
        self,
        *,
        guild_id: int | None,
        discord_id: int,
        match_id: int,
        bet_type: WagerType,
        selection: str,
        amount: int,
        odds: float,
        created_at: int | None = None,
    ) -> dict:
        """
        Atomically debit the stake and insert the bet row.

        The debit is a conditional decrement, so two concurrent placements
        for one user can never both pass on a balance that covers only one.

        Returns:
            Dict with bet_id, new_balance and created_at

        Raises:
            ValueError: On a non-positive amount or insufficient balance
        """
        if amount <= 0:
            raise ValueError("Bet amount must be positive.")

        created_at = created_at if created_at is not None else self.now()
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            new_balance = self._debit_points(cursor, discord_id, amount)
            cursor.execute(
                """
                INSERT INTO bets (
                    guild_id, discord_id, match_id, bet_type, selection,
                    amount, odds, status, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    self.normalize_guild_id(guild_id),
                    discord_id,
                    match_id,
                    bet_type.value,
                    selection,
                    amount,
                    float(odds),
                    WagerStatus.ACTIVE,
                    created_at,
                ),
            )
            return {
                "bet_id": cursor.lastrowid,
                "new_balance": new_balance,
                "created_at": created_at,
            }

    def get_bet(self, bet_id: int) -> dict | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM bets WHERE bet_id = ?", (bet_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_active_bets_for_match(self, match_id: int) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM bets WHERE match_id = ? AND status = ? ORDER BY bet_id",
                (match_id, WagerStatus.ACTIVE),
            )
            return [dict(row) for row in cursor.fetchall()]

    def get_team_pool_totals(self, match_id: int) -> dict[str, int]:
        """
        Sum of TEAM-bet stakes per selected team, cancelled bets excluded.

        Settled bets still count; the pool reflects all money placed on the match.
        """
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT selection, COALESCE(SUM(amount), 0) AS total
                FROM bets
                WHERE match_id = ? AND bet_type = ? AND status != ?
                GROUP BY selection
                """,
                (match_id, WagerType.TEAM.value, WagerStatus.CANCELLED),
            )
            return {row["selection"]: int(row["total"]) for row in cursor.fetchall()}

    def settle_bet_atomic(self, bet_id: int, status: str, payout: int) -> bool:
        """
        Move an ACTIVE bet to a final status and credit payout in one transaction.

        Returns:
            False if the bet had already left ACTIVE (nothing is credited)
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE bets SET status = ?, payout = ?, settled_at = ?
                WHERE bet_id = ? AND status = ?
                """,
                (status, payout, self.now(), bet_id, WagerStatus.ACTIVE),
            )
            if cursor.rowcount != 1:
                return False
            if payout > 0:
                cursor.execute("SELECT discord_id FROM bets WHERE bet_id = ?", (bet_id,))
                self._credit_points(cursor, cursor.fetchone()["discord_id"], payout)
            return True

    def get_user_active_bets(self, discord_id: int) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT b.*, m.home_team, m.opponent, m.begin_at
                FROM bets b
                LEFT JOIN matches m ON m.match_id = b.match_id
                WHERE b.discord_id = ? AND b.status = ?
                ORDER BY b.created_at DESC, b.bet_id DESC
                """,
                (discord_id, WagerStatus.ACTIVE),
            )
            return [dict(row) for row in cursor.fetchall()]

    def count_user_bets(self, discord_id: int) -> int:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS n FROM bets WHERE discord_id = ?", (discord_id,))
            return int(cursor.fetchone()["n"])

    def get_recent_results(self, discord_id: int, limit: int = 100) -> list[str]:
        """WON/LOST statuses for the user's settled bets, most recently settled first."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT status FROM bets
                WHERE discord_id = ? AND status IN (?, ?)
                ORDER BY settled_at DESC, bet_id DESC
                LIMIT ?
                """,
                (discord_id, *WagerStatus.TERMINAL, limit),
            )
            return [row["status"] for row in cursor.fetchall()]
