"""
Standard error codes for service layer.

These error codes allow command handlers to programmatically handle
specific error conditions without parsing error message text.

Usage:
    from services.error_codes import INVALID_STAKE, INSUFFICIENT_FUNDS
    from services.result import Result

    if amount < min_stake:
        return Result.fail(f"Minimum stake is {min_stake}", code=INVALID_STAKE)
"""

# General errors
NOT_FOUND = "not_found"
VALIDATION_ERROR = "validation_error"
STATE_ERROR = "state_error"
PERMISSION_DENIED = "permission_denied"
RATE_LIMITED = "rate_limited"

# Match errors
MATCH_NOT_FOUND = "match_not_found"
MATCH_NOT_BETTABLE = "match_not_bettable"
INVALID_RESULT = "invalid_result"

# Wager placement
INVALID_STAKE = "invalid_stake"
INSUFFICIENT_FUNDS = "insufficient_funds"
INVALID_SELECTION = "invalid_selection"
ODDS_CHANGED = "odds_changed"
TOO_FEW_LEGS = "too_few_legs"

# Duel errors
DUEL_NOT_FOUND = "duel_not_found"
SELF_DUEL = "self_duel"
DUEL_NOT_PENDING = "duel_not_pending"

# Economy errors
ALREADY_CLAIMED = "already_claimed"
SELF_TRANSFER = "self_transfer"

# Title errors
TITLE_NOT_UNLOCKED = "title_not_unlocked"

# Tournament errors
TOURNAMENT_NOT_FOUND = "tournament_not_found"
TOURNAMENT_ALREADY_OPEN = "tournament_already_open"
REGISTRATION_CLOSED = "registration_closed"
