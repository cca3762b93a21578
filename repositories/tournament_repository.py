"""
Repository for tournament ladders, participants and wager links.
"""

from domain.models.tournament import TournamentStatus
from repositories.base_repository import BaseRepository
from repositories.interfaces import ITournamentRepository

LADDER_COUNTERS = (
    "bets_won",
    "bets_lost",
    "duels_won",
    "duels_lost",
    "parlays_won",
    "parlays_lost",
)


class TournamentRepository(BaseRepository, ITournamentRepository):
    def create_tournament(
        self,
        *,
        guild_id: int | None,
        name: str,
        created_by: int | None,
        registration_ends_at: int,
        ends_at: int | None,
        virtual_stake: int,
    ) -> int:
        """
        Create a tournament in REGISTRATION.

        Raises:
            ValueError: If the guild already has an open tournament
        """
        normalized_guild = self.normalize_guild_id(guild_id)
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT tournament_id FROM tournaments WHERE guild_id = ? AND status IN (?, ?)",
                (normalized_guild, *TournamentStatus.OPEN),
            )
            if cursor.fetchone():
                raise ValueError("A tournament is already open in this server.")
            cursor.execute(
                """
                INSERT INTO tournaments (
                    guild_id, name, status, created_by, registration_ends_at,
                    ends_at, virtual_stake, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    normalized_guild,
                    name,
                    TournamentStatus.REGISTRATION,
                    created_by,
                    registration_ends_at,
                    ends_at,
                    virtual_stake,
                    self.now(),
                ),
            )
            return cursor.lastrowid

    def get_tournament(self, tournament_id: int) -> dict | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM tournaments WHERE tournament_id = ?", (tournament_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_open_tournament(self, guild_id: int | None) -> dict | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM tournaments
                WHERE guild_id = ? AND status IN (?, ?)
                ORDER BY created_at DESC, tournament_id DESC
                LIMIT 1
                """,
                (self.normalize_guild_id(guild_id), *TournamentStatus.OPEN),
            )
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_latest_tournament(self, guild_id: int | None) -> dict | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM tournaments
                WHERE guild_id = ?
                ORDER BY created_at DESC, tournament_id DESC
                LIMIT 1
                """,
                (self.normalize_guild_id(guild_id),),
            )
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_active_tournament(self, guild_id: int | None, now_ts: int) -> dict | None:
        """ACTIVE tournament whose end date is unset or still in the future."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM tournaments
                WHERE guild_id = ? AND status = ?
                  AND (ends_at IS NULL OR ends_at > ?)
                ORDER BY created_at DESC, tournament_id DESC
                LIMIT 1
                """,
                (self.normalize_guild_id(guild_id), TournamentStatus.ACTIVE, now_ts),
            )
            row = cursor.fetchone()
            return dict(row) if row else None

    def activate(self, tournament_id: int, starts_at: int) -> bool:
        """REGISTRATION -> ACTIVE; keeps an existing starts_at."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE tournaments
                SET status = ?, starts_at = COALESCE(starts_at, ?)
                WHERE tournament_id = ? AND status = ?
                """,
                (TournamentStatus.ACTIVE, starts_at, tournament_id, TournamentStatus.REGISTRATION),
            )
            return cursor.rowcount == 1

    def set_ends_at(self, tournament_id: int, ends_at: int) -> None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE tournaments SET ends_at = ? WHERE tournament_id = ?",
                (ends_at, tournament_id),
            )

    def finish(self, tournament_id: int, ended_at: int) -> bool:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE tournaments
                SET status = ?, ends_at = COALESCE(MIN(ends_at, ?), ?)
                WHERE tournament_id = ? AND status IN (?, ?)
                """,
                (
                    TournamentStatus.FINISHED,
                    ended_at,
                    ended_at,
                    tournament_id,
                    *TournamentStatus.OPEN,
                ),
            )
            return cursor.rowcount == 1

    def join(self, tournament_id: int, discord_id: int) -> bool:
        """
        Register a participant; idempotent.

        Returns:
            True if the user was newly added

        Raises:
            ValueError: If the tournament does not exist or registration is closed
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT status FROM tournaments WHERE tournament_id = ?", (tournament_id,))
            row = cursor.fetchone()
            if not row or row["status"] != TournamentStatus.REGISTRATION:
                raise ValueError("Tournament is not open for registration.")
            cursor.execute(
                """
                INSERT OR IGNORE INTO tournament_participants (tournament_id, discord_id, joined_at)
                VALUES (?, ?, ?)
                """,
                (tournament_id, discord_id, self.now()),
            )
            return cursor.rowcount == 1

    def is_participant(self, tournament_id: int, discord_id: int) -> bool:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT 1 FROM tournament_participants WHERE tournament_id = ? AND discord_id = ?",
                (tournament_id, discord_id),
            )
            return cursor.fetchone() is not None

    def count_participants(self, tournament_id: int) -> int:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COUNT(*) AS n FROM tournament_participants WHERE tournament_id = ?",
                (tournament_id,),
            )
            return int(cursor.fetchone()["n"])

    def link_wager(self, tournament_id: int, wager_kind: str, wager_id: int) -> bool:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO tournament_wagers (tournament_id, wager_kind, wager_id)
                VALUES (?, ?, ?)
                """,
                (tournament_id, wager_kind, wager_id),
            )
            return cursor.rowcount == 1

    def get_linked_tournament(self, wager_kind: str, wager_id: int) -> dict | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT t.*, w.mirrored
                FROM tournament_wagers w
                JOIN tournaments t ON t.tournament_id = w.tournament_id
                WHERE w.wager_kind = ? AND w.wager_id = ?
                """,
                (wager_kind, wager_id),
            )
            row = cursor.fetchone()
            return dict(row) if row else None

    def apply_resolution_atomic(
        self,
        tournament_id: int,
        wager_kind: str,
        wager_id: int,
        deltas: list[tuple[int, int, str]],
    ) -> bool:
        """
        Apply ladder deltas for a linked wager exactly once.

        Args:
            deltas: (discord_id, points_delta, counter_column) per participant

        Returns:
            False if this wager was already mirrored
        """
        for _, _, counter in deltas:
            if counter not in LADDER_COUNTERS:
                raise ValueError(f"Unknown ladder counter: {counter}")

        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE tournament_wagers SET mirrored = 1
                WHERE wager_kind = ? AND wager_id = ? AND tournament_id = ? AND mirrored = 0
                """,
                (wager_kind, wager_id, tournament_id),
            )
            if cursor.rowcount != 1:
                return False
            for discord_id, points_delta, counter in deltas:
                cursor.execute(
                    f"""
                    UPDATE tournament_participants
                    SET points = points + ?, {counter} = {counter} + 1
                    WHERE tournament_id = ? AND discord_id = ?
                    """,
                    (points_delta, tournament_id, discord_id),
                )
            return True

    def get_standings(self, tournament_id: int, limit: int | None = None) -> list[dict]:
        query = """
            SELECT * FROM tournament_participants
            WHERE tournament_id = ?
            ORDER BY points DESC, joined_at ASC, discord_id ASC
        """
        params: tuple = (tournament_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (tournament_id, limit)
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]
