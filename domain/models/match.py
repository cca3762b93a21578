"""
Match result model.
"""

from dataclasses import dataclass


def parse_score(score: str | None) -> tuple[int, int] | None:
    """
    Parse a home-first "H-O" score.

    Returns:
        (home, opponent) games won, or None if the score is missing or malformed
    """
    if not score or not isinstance(score, str):
        return None
    parts = score.strip().split("-")
    if len(parts) != 2:
        return None
    try:
        home, opp = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if home < 0 or opp < 0:
        return None
    return home, opp


@dataclass(frozen=True)
class MatchResult:
    """Final state of a finished match as seen by settlement."""

    match_id: int
    home_team: str
    opponent: str
    home_score: int
    opponent_score: int

    @property
    def score(self) -> str:
        return f"{self.home_score}-{self.opponent_score}"

    @property
    def is_draw(self) -> bool:
        return self.home_score == self.opponent_score

    @property
    def winner(self) -> str | None:
        if self.is_draw:
            return None
        return self.home_team if self.home_score > self.opponent_score else self.opponent

    @classmethod
    def from_row(cls, match: dict, score: str | None = None) -> "MatchResult | None":
        """Build from a match row; an explicit score overrides the stored one."""
        parsed = parse_score(score if score is not None else match.get("score"))
        if parsed is None:
            return None
        return cls(
            match_id=match["match_id"],
            home_team=match["home_team"],
            opponent=match["opponent"],
            home_score=parsed[0],
            opponent_score=parsed[1],
        )
