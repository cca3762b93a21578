import sqlite3

import pytest

from infrastructure.schema_manager import SchemaManager


def _tables(db_path):
    with sqlite3.connect(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
        return {row[0] for row in cursor.fetchall()}


def test_schema_manager_initializes_tables(tmp_path):
    """Test that SchemaManager creates all required tables."""
    db_path = str(tmp_path / "test.db")
    mgr = SchemaManager(db_path)
    mgr.initialize()

    required = {
        "users",
        "matches",
        "bets",
        "duels",
        "parlays",
        "parlay_legs",
        "titles",
        "user_unlocked_titles",
        "user_profiles",
        "daily_rewards",
        "point_transfers",
        "tournaments",
        "tournament_participants",
        "tournament_wagers",
        "schema_migrations",
    }
    assert required.issubset(_tables(db_path))


def test_initialize_is_idempotent(tmp_path):
    db_path = str(tmp_path / "test.db")
    SchemaManager(db_path).initialize()
    SchemaManager(db_path).initialize()

    with sqlite3.connect(db_path) as conn:
        names = [row[0] for row in conn.execute("SELECT name FROM schema_migrations")]
    assert len(names) == len(set(names))
    assert "create_tournament_tables" in names


def test_negative_balance_is_rejected_by_schema(tmp_path):
    db_path = str(tmp_path / "test.db")
    SchemaManager(db_path).initialize()

    with sqlite3.connect(db_path) as conn:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("INSERT INTO users (discord_id, points, created_at) VALUES (1, -1, 0)")
