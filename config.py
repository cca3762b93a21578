"""
Centralized configuration for the esports wager bot.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _parse_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_bool(env_var: str, default: bool) -> bool:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _parse_int_list(env_var: str, default: list[int]) -> list[int]:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return [int(x.strip()) for x in raw.split(",") if x.strip()]
    except ValueError:
        return default


DB_PATH = os.getenv("DB_PATH", "wager_bot.db")
DISCORD_BOT_TOKEN = os.getenv("DISCORD_BOT_TOKEN")
ADMIN_USER_IDS: list[int] = _parse_int_list("ADMIN_USER_IDS", [])

# Wallet
STARTING_BALANCE = _parse_int("STARTING_BALANCE", 1000)
MIN_STAKE = _parse_int("MIN_STAKE", 25)

# Odds engine
ODDS_TOLERANCE = _parse_float("ODDS_TOLERANCE", 0.01)  # max drift between quote and commit
BASE_ODDS_HISTORY_MONTHS = _parse_int("BASE_ODDS_HISTORY_MONTHS", 18)
BASE_ODDS_HISTORY_LIMIT = _parse_int("BASE_ODDS_HISTORY_LIMIT", 50)
SCORE_ODDS_HISTORY_MONTHS = _parse_int("SCORE_ODDS_HISTORY_MONTHS", 24)
SCORE_ODDS_HISTORY_LIMIT = _parse_int("SCORE_ODDS_HISTORY_LIMIT", 100)
MARKET_PRESSURE_SCALE = _parse_float("MARKET_PRESSURE_SCALE", 3000.0)

# Multi-step chat flows (parlay slip, quoted bet)
SESSION_TTL_SECONDS = _parse_int("SESSION_TTL_SECONDS", 120)

# Settlement poller
SETTLEMENT_POLL_SECONDS = _parse_int("SETTLEMENT_POLL_SECONDS", 60)

# Daily reward
DAILY_BASE_REWARD = _parse_int("DAILY_BASE_REWARD", 200)
DAILY_STREAK_BONUS = _parse_int("DAILY_STREAK_BONUS", 50)
DAILY_MAX_STREAK = _parse_int("DAILY_MAX_STREAK", 6)

# Tournaments
TOURNAMENT_DEFAULT_STAKE = _parse_int("TOURNAMENT_DEFAULT_STAKE", 100)
TOURNAMENT_PLACEMENT_MIN_PARTICIPANTS = _parse_int("TOURNAMENT_PLACEMENT_MIN_PARTICIPANTS", 20)

# Notifications
NOTIFY_TITLE_UNLOCKS = _parse_bool("NOTIFY_TITLE_UNLOCKS", True)
NOTIFY_SETTLEMENTS = _parse_bool("NOTIFY_SETTLEMENTS", True)
