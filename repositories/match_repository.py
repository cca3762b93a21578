"""
Repository for esports match records.

The wager engine only reads matches; the upsert/announce helpers exist for
the ingestion side and for the settlement poller.
"""

from repositories.base_repository import BaseRepository
from repositories.interfaces import IMatchRepository

SETTLED_STATUSES = ("finished", "announced")


class MatchRepository(BaseRepository, IMatchRepository):
    def upsert_match(
        self,
        match_id: int,
        home_team: str,
        opponent: str,
        begin_at: int,
        status: str = "not_started",
        score: str | None = None,
        number_of_games: int | None = None,
        tournament_name: str | None = None,
    ) -> None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO matches (
                    match_id, home_team, opponent, begin_at, status, score,
                    number_of_games, tournament_name, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(match_id) DO UPDATE SET
                    home_team = excluded.home_team,
                    opponent = excluded.opponent,
                    begin_at = excluded.begin_at,
                    status = CASE
                        WHEN matches.status = 'announced' THEN matches.status
                        ELSE excluded.status
                    END,
                    score = excluded.score,
                    number_of_games = excluded.number_of_games,
                    tournament_name = excluded.tournament_name,
                    updated_at = excluded.updated_at
                """,
                (
                    match_id,
                    home_team,
                    opponent,
                    int(begin_at),
                    status,
                    score,
                    number_of_games,
                    tournament_name,
                    self.now(),
                ),
            )

    def get_match(self, match_id: int) -> dict | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM matches WHERE match_id = ?", (match_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_matches(self, match_ids: list[int]) -> dict[int, dict]:
        if not match_ids:
            return {}
        placeholders = ",".join("?" * len(match_ids))
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM matches WHERE match_id IN ({placeholders})",
                tuple(match_ids),
            )
            return {row["match_id"]: dict(row) for row in cursor.fetchall()}

    def get_history_vs(
        self,
        opponent: str,
        since_ts: int,
        limit: int,
        number_of_games: int | None = None,
    ) -> list[dict]:
        """
        Settled matches against an opponent, most recent first.

        Args:
            opponent: Opponent team name
            since_ts: Only matches with begin_at >= since_ts
            limit: Maximum rows returned
            number_of_games: Restrict to one best-of format when given
        """
        query = """
            SELECT * FROM matches
            WHERE opponent = ?
              AND status IN (?, ?)
              AND score IS NOT NULL
              AND begin_at >= ?
        """
        params: list = [opponent, *SETTLED_STATUSES, int(since_ts)]
        if number_of_games is not None:
            query += " AND number_of_games = ?"
            params.append(number_of_games)
        query += " ORDER BY begin_at DESC LIMIT ?"
        params.append(limit)

        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            return [dict(row) for row in cursor.fetchall()]

    def get_upcoming(self, now_ts: int, limit: int = 10) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM matches
                WHERE status = 'not_started' AND begin_at > ?
                ORDER BY begin_at ASC
                LIMIT ?
                """,
                (int(now_ts), limit),
            )
            return [dict(row) for row in cursor.fetchall()]

    def get_finished_unannounced(self) -> list[dict]:
        """Matches with a final score that settlement has not processed yet."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM matches
                WHERE status = 'finished' AND score IS NOT NULL
                ORDER BY begin_at ASC
                """
            )
            return [dict(row) for row in cursor.fetchall()]

    def mark_announced(self, match_id: int) -> bool:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE matches SET status = 'announced', updated_at = ? WHERE match_id = ? AND status = 'finished'",
                (self.now(), match_id),
            )
            return cursor.rowcount == 1

    def record_result(self, match_id: int, score: str) -> bool:
        """Store a final home-first score and mark the match finished (announced rows keep their status)."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE matches
                SET score = ?,
                    status = CASE WHEN status = 'announced' THEN status ELSE 'finished' END,
                    updated_at = ?
                WHERE match_id = ?
                """,
                (score, self.now(), match_id),
            )
            return cursor.rowcount == 1
