"""Tests for TitleService unlock rules and the displayed title."""

import pytest

from domain.models.events import (
    DailyClaimed,
    DuelAccepted,
    PointsTransferred,
    TitleUnlocked,
    WagerPlaced,
    WagerResolved,
)
from domain.models.tournament import Standing
from domain.models.wager import WagerKind, WagerOutcome, WagerType
from services import error_codes
from services import title_service as titles
from services.title_service import ScanningStreakCalculator, TitleService
from tests.conftest import ALICE, BOB, HOME_TEAM, TEST_GUILD_ID


class FixedStreak:
    """Streak calculator returning a preset value."""

    def __init__(self, value):
        self.value = value

    def current_streak(self, results):
        return self.value


@pytest.fixture
def title_service(title_repository, user_repository, bet_repository, duel_repository, parlay_repository, event_bus):
    service = TitleService(
        title_repo=title_repository,
        user_repo=user_repository,
        bet_repo=bet_repository,
        duel_repo=duel_repository,
        parlay_repo=parlay_repository,
    )
    service.subscribe(event_bus)
    return service


@pytest.fixture
def unlocked(event_bus):
    events = []
    event_bus.subscribe(TitleUnlocked, events.append)
    return events


def _won(kind=WagerKind.BET, user=ALICE, odds=2.0, bet_type=WagerType.TEAM, leg_count=0, wager_id=1):
    return WagerResolved(
        kind=kind,
        wager_id=wager_id,
        guild_id=TEST_GUILD_ID,
        outcome=WagerOutcome.WON,
        amount=100,
        odds=odds,
        participant_ids=(user,),
        payout=int(100 * odds),
        winner_ids=(user,),
        bet_type=bet_type,
        leg_count=leg_count,
    )


class TestStreakCalculator:
    def test_counts_wins_until_first_loss(self):
        calc = ScanningStreakCalculator()
        assert calc.current_streak(["WON", "WON", "LOST", "WON"]) == 2
        assert calc.current_streak(["LOST", "WON"]) == 0
        assert calc.current_streak([]) == 0


class TestFirstTitles:
    def test_first_bet_unlocks_and_displays(self, title_service, wager_service, title_repository, make_match, unlocked):
        match = make_match()
        wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 100)
        wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 100)

        assert title_repository.get_unlocked_titles(ALICE) == [titles.FIRST_BET]
        assert title_repository.get_displayed_title(ALICE) == titles.FIRST_BET
        assert [e.title for e in unlocked] == [titles.FIRST_BET]

    def test_first_duel_on_accept_for_both(self, title_service, wager_service, title_repository, make_match):
        match = make_match()
        duel = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 100).value
        assert not title_repository.has_title(ALICE, titles.FIRST_DUEL)

        wager_service.accept_duel(duel["duel_id"], BOB)

        assert title_repository.has_title(ALICE, titles.FIRST_DUEL)
        assert title_repository.has_title(BOB, titles.FIRST_DUEL)

    def test_first_parlay(self, title_service, title_repository, parlay_repository, event_bus):
        parlay_repository.count_user_parlays = lambda discord_id: 1
        event_bus.publish(
            WagerPlaced(WagerKind.PARLAY, 1, TEST_GUILD_ID, (ALICE,), 100, 4.0, created_at=0, leg_count=2)
        )
        assert title_repository.has_title(ALICE, titles.FIRST_PARLAY)

    def test_bet_count_milestone(self, title_service, title_repository, bet_repository, event_bus):
        bet_repository.count_user_bets = lambda discord_id: 25
        event_bus.publish(WagerPlaced(WagerKind.BET, 25, TEST_GUILD_ID, (ALICE,), 100, 2.0, created_at=0))
        assert title_repository.get_unlocked_titles(ALICE) == ["Parieur Bronze"]


class TestStreakTitles:
    @pytest.mark.parametrize("streak,expected", [(5, "Bet Warrior"), (10, "Bet Prince"), (25, "Bet King"), (50, "Bet God")])
    def test_bet_streak_exact_values(self, title_service, title_repository, streak, expected):
        title_service.streak_calculator = FixedStreak(streak)
        title_service.on_wager_resolved(_won())
        assert expected in title_repository.get_unlocked_titles(ALICE)

    @pytest.mark.parametrize("streak", [4, 6, 11, 49, 51])
    def test_off_threshold_streak_unlocks_nothing(self, title_service, title_repository, streak):
        title_service.streak_calculator = FixedStreak(streak)
        title_service.on_wager_resolved(_won())
        assert title_repository.get_unlocked_titles(ALICE) == []

    def test_duel_and_parlay_streaks_use_their_own_labels(self, title_service, title_repository):
        title_service.streak_calculator = FixedStreak(10)
        title_service.on_wager_resolved(_won(kind=WagerKind.DUEL))
        title_service.on_wager_resolved(_won(kind=WagerKind.PARLAY, odds=3.0, leg_count=2))
        owned = title_repository.get_unlocked_titles(ALICE)
        assert "Duellist Prince" in owned
        assert "Combiner Prince" in owned

    def test_real_streak_from_settled_bets(self, title_service, wager_service, settlement_service, title_repository, make_match, finish_match):
        for i in range(5):
            match = make_match(opponent=f"Team {i}")
            wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 25)
            finish_match(match, "2-0")
            settlement_service.settle_match(match["match_id"])
        assert title_repository.has_title(ALICE, "Bet Warrior")

    def test_losses_and_cancellations_are_ignored(self, title_service, title_repository):
        title_service.streak_calculator = FixedStreak(5)
        lost = WagerResolved(
            WagerKind.BET, 1, TEST_GUILD_ID, WagerOutcome.LOST, 100, 2.0, (ALICE,), loser_ids=(ALICE,)
        )
        title_service.on_wager_resolved(lost)
        assert title_repository.get_unlocked_titles(ALICE) == []


class TestOddsTitles:
    def test_high_odds_team_win(self, title_service, title_repository):
        title_service.on_wager_resolved(_won(odds=3.01))
        assert title_repository.has_title(ALICE, titles.HIGH_ODDS_TEAM_WIN)

    def test_high_odds_score_win_does_not_count(self, title_service, title_repository):
        title_service.on_wager_resolved(_won(odds=6.0, bet_type=WagerType.SCORE))
        assert not title_repository.has_title(ALICE, titles.HIGH_ODDS_TEAM_WIN)

    def test_parlay_thresholds_are_strict(self, title_service, title_repository):
        title_service.on_wager_resolved(_won(kind=WagerKind.PARLAY, odds=20.0, leg_count=10))
        assert title_repository.get_unlocked_titles(ALICE) == []
        title_service.on_wager_resolved(_won(kind=WagerKind.PARLAY, odds=20.5, leg_count=11, wager_id=2))
        owned = title_repository.get_unlocked_titles(ALICE)
        assert titles.PARLAY_MANY_LEGS in owned
        assert titles.PARLAY_HIGH_ODDS in owned

    def test_duel_win_milestone(self, title_service, title_repository, duel_repository):
        duel_repository.count_duel_wins = lambda discord_id: 10
        title_service.on_wager_resolved(_won(kind=WagerKind.DUEL))
        assert title_repository.has_title(ALICE, "Duelliste Bronze")


class TestEconomyTitles:
    def test_first_daily(self, title_service, title_repository):
        title_service.on_daily_claimed(DailyClaimed(ALICE, amount=200, streak=0, first_claim=True))
        assert title_repository.get_unlocked_titles(ALICE) == [titles.FIRST_DAILY]

    def test_week_of_claims(self, title_service, title_repository):
        title_service.on_daily_claimed(DailyClaimed(ALICE, amount=200, streak=5, first_claim=False))
        assert not title_repository.has_title(ALICE, titles.DAILY_WEEK)
        title_service.on_daily_claimed(DailyClaimed(ALICE, amount=200, streak=6, first_claim=False))
        assert title_repository.has_title(ALICE, titles.DAILY_WEEK)

    @pytest.mark.parametrize(
        "amount,expected",
        [(9_999, None), (10_000, "Mécène 10K"), (75_000, "Mécène 50K"), (100_000, "Mécène 100K")],
    )
    def test_transfer_unlocks_highest_tier_only(self, title_service, title_repository, amount, expected):
        title_service.on_points_transferred(PointsTransferred(ALICE, BOB, amount))
        owned = title_repository.get_unlocked_titles(ALICE)
        assert owned == ([expected] if expected else [])

    def test_wealth_reached_by_recipient(self, title_service, title_repository, user_repository):
        user_repository.set_balance(BOB, 1_000_000)
        title_service.on_points_transferred(PointsTransferred(ALICE, BOB, 50))
        assert title_repository.has_title(BOB, titles.WEALTH)


class TestCapstone:
    def test_needs_all_three_gods(self, title_service, title_repository):
        title_repository.unlock(ALICE, "Bet God")
        title_repository.unlock(ALICE, "Duellist God")
        title_service.on_wager_resolved(_won(odds=1.5))
        assert not title_repository.has_title(ALICE, titles.CAPSTONE)

        title_repository.unlock(ALICE, "Combiner God")
        title_service.on_wager_resolved(_won(odds=1.5, wager_id=2))
        assert title_repository.has_title(ALICE, titles.CAPSTONE)


class TestPlacements:
    def _podium(self):
        return [Standing(rank=1, discord_id=ALICE, points=500), Standing(rank=2, discord_id=BOB, points=100)]

    def test_small_field_awards_nothing(self, title_service, title_repository):
        assert title_service.award_placements(self._podium(), participant_count=19) == []
        assert title_repository.get_unlocked_titles(ALICE) == []

    def test_podium_titles(self, title_service):
        awarded = title_service.award_placements(self._podium(), participant_count=20)
        assert awarded == [(ALICE, "Champion"), (BOB, "Vice-Champion")]


class TestDisplayedTitle:
    def test_set_requires_unlock(self, title_service):
        result = title_service.set_displayed_title(ALICE, "Champion")
        assert result.error_code == error_codes.TITLE_NOT_UNLOCKED

    def test_switch_between_unlocked_titles(self, title_service, title_repository):
        title_service.unlock(ALICE, titles.FIRST_BET)
        title_service.unlock(ALICE, titles.FIRST_DAILY)
        assert title_repository.get_displayed_title(ALICE) == titles.FIRST_DAILY

        assert title_service.set_displayed_title(ALICE, titles.FIRST_BET).success
        assert title_repository.get_displayed_title(ALICE) == titles.FIRST_BET

    def test_profile(self, title_service, user_repository):
        user_repository.ensure_user(ALICE, "alice")
        title_service.unlock(ALICE, titles.FIRST_DAILY)
        profile = title_service.get_profile(ALICE)
        assert profile["username"] == "alice"
        assert profile["points"] == 1000
        assert profile["title"] == titles.FIRST_DAILY
        assert profile["titles"] == [titles.FIRST_DAILY]
        assert profile["bets"] == 0


class TestFailureIsolation:
    def test_repository_error_never_escapes(self, title_service, bet_repository, event_bus):
        def boom(discord_id):
            raise RuntimeError("db gone")

        bet_repository.count_user_bets = boom
        title_service.on_wager_placed(WagerPlaced(WagerKind.BET, 1, TEST_GUILD_ID, (ALICE,), 100, 2.0, created_at=0))
        assert event_bus.publish(
            WagerPlaced(WagerKind.BET, 2, TEST_GUILD_ID, (ALICE,), 100, 2.0, created_at=0)
        ) == 0

    def test_failing_title_check_does_not_block_bet(self, title_service, wager_service, bet_repository, user_repository, make_match):
        def boom(discord_id):
            raise RuntimeError("boom")

        bet_repository.count_user_bets = boom
        match = make_match()
        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 100)
        assert result.success
        assert user_repository.get_balance(ALICE) == 900
