"""
Abstract repository interfaces for data access.

These interfaces define the contracts implemented by concrete repositories.
"""

from abc import ABC, abstractmethod


class IUserRepository(ABC):
    @abstractmethod
    def ensure_user(self, discord_id: int, username: str | None = None) -> dict: ...

    @abstractmethod
    def get_user(self, discord_id: int) -> dict | None: ...

    @abstractmethod
    def get_balance(self, discord_id: int) -> int: ...

    @abstractmethod
    def get_leaderboard(self, limit: int = 10) -> list[dict]: ...


class IMatchRepository(ABC):
    @abstractmethod
    def upsert_match(
        self,
        match_id: int,
        home_team: str,
        opponent: str,
        begin_at: int,
        status: str = "not_started",
        score: str | None = None,
        number_of_games: int | None = None,
        tournament_name: str | None = None,
    ) -> None: ...

    @abstractmethod
    def get_match(self, match_id: int) -> dict | None: ...

    @abstractmethod
    def get_matches(self, match_ids: list[int]) -> dict[int, dict]: ...

    @abstractmethod
    def get_history_vs(
        self,
        opponent: str,
        since_ts: int,
        limit: int,
        number_of_games: int | None = None,
    ) -> list[dict]: ...

    @abstractmethod
    def get_finished_unannounced(self) -> list[dict]: ...

    @abstractmethod
    def mark_announced(self, match_id: int) -> bool: ...

    @abstractmethod
    def record_result(self, match_id: int, score: str) -> bool: ...


class IBetRepository(ABC):
    @abstractmethod
    def place_bet_atomic(self, **kwargs) -> dict: ...

    @abstractmethod
    def get_active_bets_for_match(self, match_id: int) -> list[dict]: ...

    @abstractmethod
    def get_team_pool_totals(self, match_id: int) -> dict[str, int]: ...

    @abstractmethod
    def settle_bet_atomic(self, bet_id: int, status: str, payout: int) -> bool: ...

    @abstractmethod
    @abstractmethod
    def get_user_active_bets(self, discord_id: int) -> list[dict]: ...

    @abstractmethod
    def count_user_bets(self, discord_id: int) -> int: ...

    def get_recent_results(self, discord_id: int, limit: int = 100) -> list[str]: ...


class IDuelRepository(ABC):
    @abstractmethod
    def create_duel(self, **kwargs) -> dict: ...

    @abstractmethod
    def get_duel(self, duel_id: int) -> dict | None: ...

    @abstractmethod
    def accept_duel_atomic(self, duel_id: int) -> dict: ...

    @abstractmethod
    def cancel_pending(self, duel_id: int) -> bool: ...

    @abstractmethod
    def get_accepted_duels_for_match(self, match_id: int) -> list[dict]: ...

    @abstractmethod
    def resolve_duel_atomic(self, duel_id: int, winner_id: int, payout: int) -> bool: ...

    @abstractmethod
    def refund_accepted_atomic(self, duel_id: int) -> bool: ...

    @abstractmethod
    @abstractmethod
    def get_pending_duels_for_match(self, match_id: int) -> list[dict]: ...

    @abstractmethod
    def get_user_duels(self, discord_id: int, statuses: tuple[str, ...]) -> list[dict]: ...

    @abstractmethod
    def count_accepted_duels(self, discord_id: int) -> int: ...

    @abstractmethod
    def count_duel_wins(self, discord_id: int) -> int: ...

    def get_recent_results(self, discord_id: int, limit: int = 100) -> list[str]: ...


class IParlayRepository(ABC):
    @abstractmethod
    def place_parlay_atomic(self, **kwargs) -> dict: ...

    @abstractmethod
    def get_legs(self, parlay_id: int): ...

    @abstractmethod
    def get_active_parlays_with_leg_on(self, match_id: int) -> list[dict]: ...

    @abstractmethod
    def settle_parlay_atomic(self, parlay_id: int, status: str, payout: int) -> bool: ...

    @abstractmethod
    @abstractmethod
    def get_user_active_parlays(self, discord_id: int) -> list[dict]: ...

    @abstractmethod
    def count_user_parlays(self, discord_id: int) -> int: ...

    def get_recent_results(self, discord_id: int, limit: int = 100) -> list[str]: ...


class ITitleRepository(ABC):
    @abstractmethod
    def unlock(self, discord_id: int, name: str) -> bool: ...

    @abstractmethod
    def has_title(self, discord_id: int, name: str) -> bool: ...

    @abstractmethod
    def get_unlocked_titles(self, discord_id: int) -> list[str]: ...

    @abstractmethod
    def set_displayed_title(self, discord_id: int, name: str) -> bool: ...

    @abstractmethod
    def get_displayed_title(self, discord_id: int) -> str | None: ...


class IEconomyRepository(ABC):
    @abstractmethod
    def get_recent_claim_days(self, discord_id: int, limit: int = 30) -> list[str]: ...

    @abstractmethod
    def claim_daily_atomic(
        self,
        discord_id: int,
        claim_day: str,
        amount: int,
        streak: int,
        username: str | None = None,
    ) -> int: ...

    @abstractmethod
    def transfer_atomic(self, sender_id: int, recipient_id: int, amount: int) -> dict: ...


class ITournamentRepository(ABC):
    @abstractmethod
    def create_tournament(self, **kwargs) -> int: ...

    @abstractmethod
    def get_open_tournament(self, guild_id: int | None) -> dict | None: ...

    @abstractmethod
    def get_active_tournament(self, guild_id: int | None, now_ts: int) -> dict | None: ...

    @abstractmethod
    def join(self, tournament_id: int, discord_id: int) -> bool: ...

    @abstractmethod
    def link_wager(self, tournament_id: int, wager_kind: str, wager_id: int) -> bool: ...

    @abstractmethod
    def apply_resolution_atomic(
        self,
        tournament_id: int,
        wager_kind: str,
        wager_id: int,
        deltas: list[tuple[int, int, str]],
    ) -> bool: ...

    @abstractmethod
    def get_standings(self, tournament_id: int, limit: int | None = None) -> list[dict]: ...

    @abstractmethod
    def get_tournament(self, tournament_id: int) -> dict | None: ...

    @abstractmethod
    def get_latest_tournament(self, guild_id: int | None) -> dict | None: ...

    @abstractmethod
    def activate(self, tournament_id: int, starts_at: int) -> bool: ...

    @abstractmethod
    def set_ends_at(self, tournament_id: int, ends_at: int) -> None: ...

    @abstractmethod
    def finish(self, tournament_id: int, ended_at: int) -> bool: ...

    @abstractmethod
    def is_participant(self, tournament_id: int, discord_id: int) -> bool: ...

    @abstractmethod
    def count_participants(self, tournament_id: int) -> int: ...

    @abstractmethod
    def get_linked_tournament(self, wager_kind: str, wager_id: int) -> dict | None: ...
