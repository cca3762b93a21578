"""
Repository for user wallets.
"""

from repositories.base_repository import BaseRepository
from repositories.interfaces import IUserRepository


class UserRepository(BaseRepository, IUserRepository):
    """Data access for the users table (balance in points)."""

    def ensure_user(self, discord_id: int, username: str | None = None) -> dict:
        """
        Create the user on first touch with the starting balance.

        Returns:
            The user row as a dict
        """
        with self.connection() as conn:
            cursor = conn.cursor()
            self._ensure_user(cursor, discord_id, username)
            cursor.execute("SELECT * FROM users WHERE discord_id = ?", (discord_id,))
            return dict(cursor.fetchone())

    def get_user(self, discord_id: int) -> dict | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM users WHERE discord_id = ?", (discord_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_balance(self, discord_id: int) -> int:
        """Return the balance, or 0 for an unknown user."""
        with self.connection() as conn:
            return self._read_points(conn.cursor(), discord_id)

    def set_balance(self, discord_id: int, points: int) -> None:
        """Admin/test helper to set an absolute balance."""
        if points < 0:
            raise ValueError("Balance cannot be negative.")
        with self.connection() as conn:
            cursor = conn.cursor()
            self._ensure_user(cursor, discord_id)
            cursor.execute(
                "UPDATE users SET points = ? WHERE discord_id = ?",
                (points, discord_id),
            )

    def get_leaderboard(self, limit: int = 10) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT discord_id, username, points
                FROM users
                ORDER BY points DESC, discord_id ASC
                LIMIT ?
                """,
                (limit,),
            )
            return [dict(row) for row in cursor.fetchall()]
