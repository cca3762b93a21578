"""
Result type returned by the wager services.

Repositories raise ValueError for rule violations; services turn those into
Result.fail(...) with an error code from services.error_codes so cogs can
branch on the code instead of parsing messages.

    result = wager_service.place_bet(guild_id, user_id, match_id, "TEAM", team, 100)
    if result.error_code == error_codes.ODDS_CHANGED:
        fresh = result.value   # OddsChanged carrying the current price
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a service call.

    Attributes:
        success: Whether the operation went through
        value: Payload on success; on failure, optional context for the
               caller such as the fresh price when odds moved
        error: Human readable message when failed
        error_code: Machine readable code when failed
    """

    success: bool
    value: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, code: str | None = None, value: T | None = None) -> "Result[T]":
        return cls(success=False, value=value, error=error, error_code=code)

    def __bool__(self) -> bool:
        return self.success

    def unwrap(self) -> T:
        """Return the value, raising ValueError when the call failed."""
        if not self.success:
            raise ValueError(f"Cannot unwrap failed result: {self.error} ({self.error_code})")
        return self.value  # type: ignore
