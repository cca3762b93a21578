"""
Database bootstrap for the SQLite store.

Repositories own their queries and connections; this module only
guarantees that the schema and migrations exist for a database file.
"""

import logging

from infrastructure.schema_manager import SchemaManager

logger = logging.getLogger("wager_bot.database")


class Database:
    """Ensures schema and migrations are applied for a database file."""

    def __init__(self, db_path: str = "wager_bot.db"):
        self.db_path = db_path
        SchemaManager(db_path).initialize()
        logger.debug(f"Database ready: {db_path}")
