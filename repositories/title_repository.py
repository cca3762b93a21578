"""
Repository for cosmetic titles and user profiles.
"""

from repositories.base_repository import BaseRepository
from repositories.interfaces import ITitleRepository


class TitleRepository(BaseRepository, ITitleRepository):
    def get_or_create_title(self, name: str) -> int:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("INSERT OR IGNORE INTO titles (name) VALUES (?)", (name,))
            cursor.execute("SELECT title_id FROM titles WHERE name = ?", (name,))
            return int(cursor.fetchone()["title_id"])

    def unlock(self, discord_id: int, name: str) -> bool:
        """
        Idempotently add a title to the user's unlocked set and display it.

        Returns:
            True only the first time the user unlocks this title
        """
        title_id = self.get_or_create_title(name)
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO user_unlocked_titles (discord_id, title_id, unlocked_at)
                VALUES (?, ?, ?)
                """,
                (discord_id, title_id, self.now()),
            )
            if cursor.rowcount != 1:
                return False
            cursor.execute(
                """
                INSERT INTO user_profiles (discord_id, title_id) VALUES (?, ?)
                ON CONFLICT(discord_id) DO UPDATE SET title_id = excluded.title_id
                """,
                (discord_id, title_id),
            )
            return True

    def has_title(self, discord_id: int, name: str) -> bool:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT 1 FROM user_unlocked_titles u
                JOIN titles t ON t.title_id = u.title_id
                WHERE u.discord_id = ? AND t.name = ?
                """,
                (discord_id, name),
            )
            return cursor.fetchone() is not None

    def get_unlocked_titles(self, discord_id: int) -> list[str]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT t.name FROM user_unlocked_titles u
                JOIN titles t ON t.title_id = u.title_id
                WHERE u.discord_id = ?
                ORDER BY u.unlocked_at ASC, t.title_id ASC
                """,
                (discord_id,),
            )
            return [row["name"] for row in cursor.fetchall()]

    def set_displayed_title(self, discord_id: int, name: str) -> bool:
        """Display an already-unlocked title. Returns False if it is not unlocked."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT t.title_id FROM user_unlocked_titles u
                JOIN titles t ON t.title_id = u.title_id
                WHERE u.discord_id = ? AND t.name = ?
                """,
                (discord_id, name),
            )
            row = cursor.fetchone()
            if not row:
                return False
            cursor.execute(
                """
                INSERT INTO user_profiles (discord_id, title_id) VALUES (?, ?)
                ON CONFLICT(discord_id) DO UPDATE SET title_id = excluded.title_id
                """,
                (discord_id, row["title_id"]),
            )
            return True

    def get_displayed_title(self, discord_id: int) -> str | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT t.name FROM user_profiles p
                JOIN titles t ON t.title_id = p.title_id
                WHERE p.discord_id = ?
                """,
                (discord_id,),
            )
            row = cursor.fetchone()
            return row["name"] if row else None
