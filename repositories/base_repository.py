"""
Base repository with common database operations.
"""

import logging
import sqlite3
import time
from abc import ABC
from contextlib import contextmanager

from database import Database

logger = logging.getLogger("wager_bot.repositories")


class BaseRepository(ABC):
    """
    Base class for all repositories.

    Provides connection management plus the wallet primitives every
    wager table shares: conditional debit and credit inside an open
    transaction.
    """

    # Track DB paths that have already had schema initialization performed
    _schema_initialized_paths = set()

    def __init__(self, db_path: str, starting_balance: int = 1000):
        """
        Initialize repository with database path.

        Args:
            db_path: Path to SQLite database file
            starting_balance: Points credited to a user on first touch
        """
        self.db_path = db_path
        self.starting_balance = starting_balance
        # Ensure schema is initialized for this database path (idempotent)
        if db_path not in BaseRepository._schema_initialized_paths:
            Database(db_path)
            BaseRepository._schema_initialized_paths.add(db_path)

    @staticmethod
    def normalize_guild_id(guild_id: int | None) -> int:
        """
        Normalize guild_id for database storage.

        Converts None to 0 so DMs and tests can pass guild_id=None.
        """
        return guild_id if guild_id is not None else 0

    @staticmethod
    def now() -> int:
        return int(time.time())

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory enabled."""
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    @contextmanager
    def connection(self):
        """
        Context manager for database connections.

        Automatically commits on success, rolls back on exception,
        and always closes the connection.
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def atomic_transaction(self):
        """
        Context manager for atomic transactions with immediate write lock.

        Uses BEGIN IMMEDIATE so concurrent wager placements and settlements
        serialize on the write lock instead of interleaving.

        Usage:
            with self.atomic_transaction() as conn:
                cursor = conn.cursor()
                self._debit_points(cursor, discord_id, amount)
                cursor.execute(...)

        The transaction commits on success and rolls back on exception.
        """
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def cursor(self):
        """
        Context manager that yields a cursor with automatic connection management.
        """
        with self.connection() as conn:
            yield conn.cursor()

    # --- Wallet primitives (caller owns the transaction) ---

    def _ensure_user(self, cursor, discord_id: int, username: str | None = None) -> None:
        cursor.execute(
            """
            INSERT INTO users (discord_id, username, points, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(discord_id) DO UPDATE SET
                username = COALESCE(excluded.username, users.username)
            """,
            (discord_id, username, self.starting_balance, self.now()),
        )

    def _debit_points(self, cursor, discord_id: int, amount: int) -> int:
        """
        Conditionally decrement a balance and return the new balance.

        The WHERE clause is the only balance check; a read-then-write here
        would let two concurrent debits both pass.

        Raises:
            ValueError: If the balance is lower than amount
        """
        self._ensure_user(cursor, discord_id)
        cursor.execute(
            "UPDATE users SET points = points - ? WHERE discord_id = ? AND points >= ?",
            (amount, discord_id, amount),
        )
        if cursor.rowcount != 1:
            raise ValueError(f"Insufficient balance: {amount} points required.")
        return self._read_points(cursor, discord_id)

    def _credit_points(self, cursor, discord_id: int, amount: int) -> int:
        self._ensure_user(cursor, discord_id)
        cursor.execute(
            "UPDATE users SET points = points + ? WHERE discord_id = ?",
            (amount, discord_id),
        )
        return self._read_points(cursor, discord_id)

    def _read_points(self, cursor, discord_id: int) -> int:
        cursor.execute("SELECT points FROM users WHERE discord_id = ?", (discord_id,))
        row = cursor.fetchone()
        return int(row["points"]) if row else 0
