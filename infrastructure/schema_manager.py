"""
Schema and migration management for SQLite database.
"""

import logging
import sqlite3

logger = logging.getLogger("wager_bot.schema")


class SchemaManager:
    """
    Owns schema creation and migrations.

    Call initialize() to ensure schema is present and migrations are applied.
    """

    def __init__(self, db_path: str, use_uri: bool = False):
        self.db_path = db_path
        self.use_uri = use_uri

    def initialize(self) -> None:
        """Create base schema and apply migrations."""
        logger.info(f"Initializing database schema: {self.db_path}")
        with self._connect() as conn:
            cursor = conn.cursor()
            self._create_base_schema(cursor)
            self._create_schema_migrations_table(cursor)
            self._run_migrations(cursor)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, uri=self.use_uri)
        conn.row_factory = sqlite3.Row
        if not self.use_uri:  # Skip WAL for in-memory databases
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
        return conn

    def _create_base_schema(self, cursor) -> None:
        # Wallets; points can never go below zero
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                discord_id INTEGER PRIMARY KEY,
                username TEXT,
                points INTEGER NOT NULL DEFAULT 1000 CHECK (points >= 0),
                created_at INTEGER NOT NULL
            )
            """
        )

        # Esports matches. Written by ingestion, read by the wager engine.
        # Scores are stored home-first ("2-1" means the home team won 2 games to 1).
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS matches (
                match_id INTEGER PRIMARY KEY,
                home_team TEXT NOT NULL,
                opponent TEXT NOT NULL,
                begin_at INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'not_started',
                score TEXT,
                number_of_games INTEGER,
                tournament_name TEXT,
                updated_at INTEGER
            )
            """
        )

    def _create_schema_migrations_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                name TEXT PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    def _run_migrations(self, cursor) -> None:
        applied = {row["name"] for row in cursor.execute("SELECT name FROM schema_migrations")}
        for name, action in self._get_migrations():
            if name in applied:
                continue
            logger.info(f"Applying migration: {name}")
            action(cursor)
            cursor.execute(
                "INSERT INTO schema_migrations (name) VALUES (?)",
                (name,),
            )

    def _get_migrations(self):
        return [
            ("create_bets_table", self._migration_create_bets_table),
            ("create_duels_table", self._migration_create_duels_table),
            ("create_parlay_tables", self._migration_create_parlay_tables),
            ("create_title_tables", self._migration_create_title_tables),
            ("create_economy_tables", self._migration_create_economy_tables),
            ("create_tournament_tables", self._migration_create_tournament_tables),
            ("add_indexes_v1", self._migration_add_indexes_v1),
        ]

    # --- Migrations ---

    def _migration_create_bets_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS bets (
                bet_id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL DEFAULT 0,
                discord_id INTEGER NOT NULL,
                match_id INTEGER NOT NULL,
                bet_type TEXT NOT NULL,
                selection TEXT NOT NULL,
                amount INTEGER NOT NULL,
                odds REAL NOT NULL,
                status TEXT NOT NULL DEFAULT 'ACTIVE',
                payout INTEGER,
                created_at INTEGER NOT NULL,
                settled_at INTEGER,
                FOREIGN KEY (discord_id) REFERENCES users(discord_id),
                FOREIGN KEY (match_id) REFERENCES matches(match_id)
            )
            """
        )

    def _migration_create_duels_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS duels (
                duel_id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL DEFAULT 0,
                match_id INTEGER NOT NULL,
                challenger_id INTEGER NOT NULL,
                opponent_id INTEGER NOT NULL,
                challenger_team TEXT NOT NULL,
                opponent_team TEXT NOT NULL,
                amount INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'PENDING',
                winner_id INTEGER,
                created_at INTEGER NOT NULL,
                accepted_at INTEGER,
                settled_at INTEGER,
                FOREIGN KEY (match_id) REFERENCES matches(match_id)
            )
            """
        )

    def _migration_create_parlay_tables(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS parlays (
                parlay_id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL DEFAULT 0,
                discord_id INTEGER NOT NULL,
                amount INTEGER NOT NULL,
                total_odds REAL NOT NULL,
                status TEXT NOT NULL DEFAULT 'ACTIVE',
                payout INTEGER,
                created_at INTEGER NOT NULL,
                settled_at INTEGER
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS parlay_legs (
                leg_id INTEGER PRIMARY KEY AUTOINCREMENT,
                parlay_id INTEGER NOT NULL,
                match_id INTEGER NOT NULL,
                bet_type TEXT NOT NULL,
                selection TEXT NOT NULL,
                odds REAL NOT NULL,
                FOREIGN KEY (parlay_id) REFERENCES parlays(parlay_id),
                UNIQUE (parlay_id, match_id)
            )
            """
        )

    def _migration_create_title_tables(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS titles (
                title_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS user_unlocked_titles (
                discord_id INTEGER NOT NULL,
                title_id INTEGER NOT NULL,
                unlocked_at INTEGER NOT NULL,
                PRIMARY KEY (discord_id, title_id),
                FOREIGN KEY (title_id) REFERENCES titles(title_id)
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS user_profiles (
                discord_id INTEGER PRIMARY KEY,
                title_id INTEGER,
                FOREIGN KEY (title_id) REFERENCES titles(title_id)
            )
            """
        )

    def _migration_create_economy_tables(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS daily_rewards (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                discord_id INTEGER NOT NULL,
                claim_day TEXT NOT NULL,
                amount INTEGER NOT NULL,
                streak INTEGER NOT NULL DEFAULT 0,
                claimed_at INTEGER NOT NULL,
                UNIQUE (discord_id, claim_day)
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS point_transfers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                sender_id INTEGER NOT NULL,
                recipient_id INTEGER NOT NULL,
                amount INTEGER NOT NULL,
                created_at INTEGER NOT NULL
            )
            """
        )

    def _migration_create_tournament_tables(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS tournaments (
                tournament_id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL DEFAULT 0,
                name TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'REGISTRATION',
                created_by INTEGER,
                registration_ends_at INTEGER,
                starts_at INTEGER,
                ends_at INTEGER,
                virtual_stake INTEGER NOT NULL DEFAULT 100,
                created_at INTEGER NOT NULL
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS tournament_participants (
                tournament_id INTEGER NOT NULL,
                discord_id INTEGER NOT NULL,
                points INTEGER NOT NULL DEFAULT 0,
                bets_won INTEGER NOT NULL DEFAULT 0,
                bets_lost INTEGER NOT NULL DEFAULT 0,
                duels_won INTEGER NOT NULL DEFAULT 0,
                duels_lost INTEGER NOT NULL DEFAULT 0,
                parlays_won INTEGER NOT NULL DEFAULT 0,
                parlays_lost INTEGER NOT NULL DEFAULT 0,
                joined_at INTEGER NOT NULL,
                PRIMARY KEY (tournament_id, discord_id),
                FOREIGN KEY (tournament_id) REFERENCES tournaments(tournament_id)
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS tournament_wagers (
                tournament_id INTEGER NOT NULL,
                wager_kind TEXT NOT NULL,
                wager_id INTEGER NOT NULL,
                mirrored INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (wager_kind, wager_id),
                FOREIGN KEY (tournament_id) REFERENCES tournaments(tournament_id)
            )
            """
        )

    def _migration_add_indexes_v1(self, cursor) -> None:
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_matches_opponent ON matches(opponent, begin_at)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_matches_status ON matches(status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_bets_match_status ON bets(match_id, status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_bets_user ON bets(discord_id, status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_duels_match_status ON duels(match_id, status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_parlay_legs_match ON parlay_legs(match_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_parlays_user ON parlays(discord_id, status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_tournaments_guild ON tournaments(guild_id, status)")
