"""
Shared formatting helpers for wager messages.
"""

from collections.abc import Iterable
from datetime import datetime, timezone

from domain.models.tournament import Standing
from domain.models.wager import PricedLeg, WagerType

POINTS_LABEL = "pts"

STATUS_EMOJIS = {
    "ACTIVE": "⏳",
    "PENDING": "✉️",
    "ACCEPTED": "⚔️",
    "WON": "✅",
    "LOST": "❌",
    "CANCELLED": "↩️",
    "RESOLVED": "🏁",
}

PODIUM = {1: "🥇", 2: "🥈", 3: "🥉"}


def format_points(amount: int) -> str:
    """Return points with thousands separators (e.g., '12,500 pts')."""
    return f"{amount:,} {POINTS_LABEL}"


def format_odds(odds: float) -> str:
    return f"x{odds:.2f}"


def format_timestamp(ts: int | None) -> str:
    """Discord relative timestamp, or a placeholder when unset."""
    if ts is None:
        return "—"
    return f"<t:{int(ts)}:R>"


def format_utc(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def format_match(match: dict) -> str:
    """One-line match description: '#42 Home vs Opponent (Bo3) starts in 2h'."""
    series = f" (Bo{match['number_of_games']})" if match.get("number_of_games") else ""
    return (
        f"#{match['match_id']} **{match['home_team']}** vs **{match['opponent']}**{series} "
        f"{format_timestamp(match.get('begin_at'))}"
    )


def format_selection(bet_type: WagerType | str, selection: str) -> str:
    kind = bet_type.value if isinstance(bet_type, WagerType) else str(bet_type)
    return f"score {selection}" if kind == WagerType.SCORE.value else selection


def format_leg(leg: PricedLeg) -> str:
    return f"#{leg.match_id} {format_selection(leg.bet_type, leg.selection)} @ {format_odds(leg.odds)}"


def format_score_table(odds: dict[str, float]) -> str:
    return "\n".join(f"`{score}` {format_odds(value)}" for score, value in odds.items())


def format_standings(standings: Iterable[Standing]) -> str:
    lines = []
    for s in standings:
        medal = PODIUM.get(s.rank, f"{s.rank}.")
        lines.append(f"{medal} <@{s.discord_id}> **{s.points}** ({s.wins}W/{s.losses}L)")
    return "\n".join(lines) or "No participants yet."


def format_leaderboard(entries: Iterable[dict]) -> str:
    lines = []
    for rank, entry in enumerate(entries, start=1):
        medal = PODIUM.get(rank, f"{rank}.")
        lines.append(f"{medal} <@{entry['discord_id']}> {format_points(entry['points'])}")
    return "\n".join(lines) or "Nobody on the leaderboard yet."
