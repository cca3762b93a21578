"""Tests for the wager ledger: bets, duels and parlays."""

import threading

import pytest

from domain.models.events import DuelAccepted, WagerPlaced
from domain.models.wager import LegSelection, OddsChanged, WagerKind, WagerStatus, WagerType
from services import error_codes
from tests.conftest import ALICE, BOB, CAROL, HOME_TEAM, TEST_GUILD_ID


@pytest.fixture
def published(event_bus):
    """Collect every WagerPlaced / DuelAccepted published during a test."""
    events = []
    event_bus.subscribe(WagerPlaced, events.append)
    event_bus.subscribe(DuelAccepted, events.append)
    return events


class TestPlaceBet:
    """Tests for single TEAM/SCORE bets."""

    def test_team_bet_debits_and_freezes_odds(self, wager_service, user_repository, bet_repository, make_match):
        match = make_match()

        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "team", HOME_TEAM, 100)

        assert result.success
        receipt = result.value
        assert receipt.kind is WagerKind.BET
        assert receipt.odds == 2.0
        assert receipt.potential_payout == 200
        assert receipt.new_balance == 900
        assert user_repository.get_balance(ALICE) == 900
        bet = bet_repository.get_bet(receipt.wager_id)
        assert bet["status"] == WagerStatus.ACTIVE
        assert bet["odds"] == 2.0
        assert bet["guild_id"] == TEST_GUILD_ID

    def test_score_bet(self, wager_service, make_match):
        match = make_match(number_of_games=3)
        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], WagerType.SCORE, "2-1", 50)
        assert result.success
        assert result.value.odds == 2.99
        assert result.value.potential_payout == 149

    def test_stake_below_minimum(self, wager_service, make_match):
        match = make_match()
        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 24)
        assert result.error_code == error_codes.INVALID_STAKE

    def test_unknown_match(self, wager_service):
        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, 404, "TEAM", HOME_TEAM, 100)
        assert result.error_code == error_codes.MATCH_NOT_FOUND

    def test_started_match_is_closed(self, wager_service, make_match):
        match = make_match(begin_at=1)
        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 100)
        assert result.error_code == error_codes.MATCH_NOT_BETTABLE

    def test_live_match_is_closed(self, wager_service, make_match):
        match = make_match(status="live")
        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 100)
        assert result.error_code == error_codes.MATCH_NOT_BETTABLE

    @pytest.mark.parametrize("bet_type,selection", [("TEAM", "G2"), ("SCORE", "3-0"), ("SCORE", "1-1")])
    def test_invalid_selection(self, wager_service, make_match, bet_type, selection):
        match = make_match(number_of_games=3)
        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], bet_type, selection, 100)
        assert result.error_code == error_codes.INVALID_SELECTION

    def test_unknown_bet_type_raises(self, wager_service, make_match):
        match = make_match()
        with pytest.raises(ValueError):
            wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "HANDICAP", HOME_TEAM, 100)

    def test_insufficient_funds_leaves_balance(self, wager_service, user_repository, make_match):
        match = make_match()
        user_repository.ensure_user(ALICE)
        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 1001)
        assert result.error_code == error_codes.INSUFFICIENT_FUNDS
        assert user_repository.get_balance(ALICE) == 1000

    def test_stale_quote_is_rejected_with_fresh_odds(self, wager_service, user_repository, make_match):
        match = make_match()
        user_repository.ensure_user(ALICE)
        result = wager_service.place_bet(
            TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 100, quoted_odds=2.5
        )
        assert result.error_code == error_codes.ODDS_CHANGED
        assert result.value == OddsChanged(quoted=2.5, current=2.0, match_id=match["match_id"])
        assert user_repository.get_balance(ALICE) == 1000

    def test_quote_within_tolerance_is_accepted(self, wager_service, make_match):
        match = make_match()
        result = wager_service.place_bet(
            TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 100, quoted_odds=2.01
        )
        assert result.success
        assert result.value.odds == 2.0

    def test_each_bet_moves_the_next_price(self, wager_service, make_match):
        match = make_match()
        first = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 900)
        second = wager_service.place_bet(TEST_GUILD_ID, BOB, match["match_id"], "TEAM", HOME_TEAM, 100)
        assert first.value.odds == 2.0
        assert second.value.odds < first.value.odds

    def test_publishes_wager_placed(self, wager_service, make_match, published):
        match = make_match()
        result = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 100)
        assert len(published) == 1
        event = published[0]
        assert event.kind is WagerKind.BET
        assert event.wager_id == result.value.wager_id
        assert event.user_ids == (ALICE,)
        assert event.bet_type is WagerType.TEAM

    def test_concurrent_bets_never_overdraw(self, wager_service, user_repository, make_match):
        """Ten threads each stake 300 from a 1000 wallet: at most three succeed."""
        match = make_match()
        user_repository.ensure_user(ALICE)
        results = []
        lock = threading.Lock()

        def place():
            r = wager_service.place_bet(TEST_GUILD_ID, ALICE, match["match_id"], "TEAM", HOME_TEAM, 300)
            with lock:
                results.append(r)

        threads = [threading.Thread(target=place) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        successes = [r for r in results if r.success]
        assert len(successes) == 3
        assert all(r.error_code == error_codes.INSUFFICIENT_FUNDS for r in results if not r.success)
        assert user_repository.get_balance(ALICE) == 100


class TestDuels:
    """Tests for the duel lifecycle."""

    def test_create_does_not_debit(self, wager_service, user_repository, make_match, published):
        match = make_match()
        result = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 200)
        assert result.success
        duel = result.value
        assert duel["status"] == WagerStatus.PENDING
        assert duel["opponent_team"] == "Vitality"
        assert user_repository.get_balance(ALICE) == 1000
        assert published[0].kind is WagerKind.DUEL
        assert published[0].user_ids == (ALICE, BOB)

    def test_self_duel(self, wager_service, make_match):
        match = make_match()
        result = wager_service.create_duel(TEST_GUILD_ID, ALICE, ALICE, match["match_id"], HOME_TEAM, 100)
        assert result.error_code == error_codes.SELF_DUEL

    def test_team_must_play(self, wager_service, make_match):
        match = make_match()
        result = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], "G2", 100)
        assert result.error_code == error_codes.INVALID_SELECTION

    def test_challenger_must_cover_stake(self, wager_service, make_match):
        match = make_match()
        result = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 5000)
        assert result.error_code == error_codes.INSUFFICIENT_FUNDS

    def test_accept_debits_both(self, wager_service, user_repository, make_match, published):
        match = make_match()
        duel = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 200).value

        result = wager_service.accept_duel(duel["duel_id"], BOB)

        assert result.success
        assert result.value["status"] == WagerStatus.ACCEPTED
        assert user_repository.get_balance(ALICE) == 800
        assert user_repository.get_balance(BOB) == 800
        assert isinstance(published[-1], DuelAccepted)

    def test_only_opponent_can_accept(self, wager_service, make_match):
        match = make_match()
        duel = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 200).value
        assert wager_service.accept_duel(duel["duel_id"], CAROL).error_code == error_codes.PERMISSION_DENIED
        assert wager_service.accept_duel(duel["duel_id"], ALICE).error_code == error_codes.PERMISSION_DENIED

    def test_accept_fails_atomically_when_opponent_is_short(self, wager_service, user_repository, make_match):
        match = make_match()
        duel = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 600).value
        user_repository.ensure_user(BOB)
        user_repository.set_balance(BOB, 100)

        result = wager_service.accept_duel(duel["duel_id"], BOB)

        assert result.error_code == error_codes.INSUFFICIENT_FUNDS
        assert user_repository.get_balance(ALICE) == 1000
        assert user_repository.get_balance(BOB) == 100
        assert wager_service.duel_repo.get_duel(duel["duel_id"])["status"] == WagerStatus.PENDING

    def test_accept_twice(self, wager_service, make_match):
        match = make_match()
        duel = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 100).value
        assert wager_service.accept_duel(duel["duel_id"], BOB).success
        assert wager_service.accept_duel(duel["duel_id"], BOB).error_code == error_codes.DUEL_NOT_PENDING

    def test_reject_and_cancel(self, wager_service, user_repository, make_match):
        match = make_match()
        first = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 100).value
        second = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 100).value

        assert wager_service.reject_duel(first["duel_id"], ALICE).error_code == error_codes.PERMISSION_DENIED
        assert wager_service.reject_duel(first["duel_id"], BOB).value["status"] == WagerStatus.CANCELLED
        assert wager_service.cancel_duel(second["duel_id"], BOB).error_code == error_codes.PERMISSION_DENIED
        assert wager_service.cancel_duel(second["duel_id"], ALICE).value["status"] == WagerStatus.CANCELLED
        assert user_repository.get_balance(ALICE) == 1000

    def test_cannot_cancel_accepted(self, wager_service, make_match):
        match = make_match()
        duel = wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, match["match_id"], HOME_TEAM, 100).value
        wager_service.accept_duel(duel["duel_id"], BOB)
        assert wager_service.cancel_duel(duel["duel_id"], ALICE).error_code == error_codes.DUEL_NOT_PENDING

    def test_unknown_duel(self, wager_service):
        assert wager_service.accept_duel(77, BOB).error_code == error_codes.DUEL_NOT_FOUND


class TestParlays:
    """Tests for multi-leg parlays."""

    def test_place_parlay_multiplies_live_odds(self, wager_service, user_repository, parlay_repository, make_match):
        m1 = make_match()
        m2 = make_match(opponent="G2")
        legs = [
            LegSelection(m1["match_id"], WagerType.TEAM, HOME_TEAM),
            LegSelection(m2["match_id"], WagerType.SCORE, "2-1"),
        ]

        result = wager_service.place_parlay(TEST_GUILD_ID, ALICE, 100, legs)

        assert result.success
        receipt = result.value
        assert receipt.odds == pytest.approx(2.0 * 2.99)
        assert receipt.potential_payout == 598
        assert len(receipt.legs) == 2
        assert user_repository.get_balance(ALICE) == 900
        stored = parlay_repository.get_legs(receipt.wager_id)
        assert [leg.odds for leg in stored] == [2.0, 2.99]

    def test_needs_two_legs(self, wager_service, make_match):
        m1 = make_match()
        result = wager_service.place_parlay(TEST_GUILD_ID, ALICE, 100, [LegSelection(m1["match_id"], WagerType.TEAM, HOME_TEAM)])
        assert result.error_code == error_codes.TOO_FEW_LEGS

    def test_one_leg_per_match(self, wager_service, make_match):
        m1 = make_match()
        legs = [
            LegSelection(m1["match_id"], WagerType.TEAM, HOME_TEAM),
            LegSelection(m1["match_id"], WagerType.SCORE, "2-0"),
        ]
        assert wager_service.place_parlay(TEST_GUILD_ID, ALICE, 100, legs).error_code == error_codes.INVALID_SELECTION

    def test_closed_leg_rejects_whole_parlay(self, wager_service, user_repository, make_match):
        m1 = make_match()
        m2 = make_match(opponent="G2", begin_at=1)
        user_repository.ensure_user(ALICE)
        legs = [
            LegSelection(m1["match_id"], WagerType.TEAM, HOME_TEAM),
            LegSelection(m2["match_id"], WagerType.TEAM, HOME_TEAM),
        ]
        assert wager_service.place_parlay(TEST_GUILD_ID, ALICE, 100, legs).error_code == error_codes.MATCH_NOT_BETTABLE
        assert user_repository.get_balance(ALICE) == 1000

    def test_moved_leg_reports_which_match(self, wager_service, make_match):
        m1 = make_match()
        m2 = make_match(opponent="G2")
        legs = [
            LegSelection(m1["match_id"], WagerType.TEAM, HOME_TEAM, quoted_odds=2.0),
            LegSelection(m2["match_id"], WagerType.TEAM, HOME_TEAM, quoted_odds=1.5),
        ]
        result = wager_service.place_parlay(TEST_GUILD_ID, ALICE, 100, legs)
        assert result.error_code == error_codes.ODDS_CHANGED
        assert result.value.match_id == m2["match_id"]
        assert result.value.current == 2.0

    def test_requote_refreshes_every_moved_leg(self, wager_service, user_repository, make_match):
        m1 = make_match()
        m2 = make_match(opponent="G2")
        m3 = make_match(opponent="Fnatic")
        slip = [
            LegSelection(m1["match_id"], WagerType.TEAM, HOME_TEAM, quoted_odds=1.4),
            LegSelection(m2["match_id"], WagerType.TEAM, HOME_TEAM, quoted_odds=2.0),
            LegSelection(m3["match_id"], WagerType.SCORE, "2-1", quoted_odds=4.5),
        ]
        assert wager_service.place_parlay(TEST_GUILD_ID, ALICE, 100, slip).error_code == error_codes.ODDS_CHANGED

        requoted = wager_service.requote_legs(slip)

        assert requoted.success
        assert [leg.quoted_odds for leg in requoted.value] == [2.0, 2.0, 2.99]
        assert [leg.selection for leg in requoted.value] == [HOME_TEAM, HOME_TEAM, "2-1"]
        # one confirmation is enough after a single requote
        placed = wager_service.place_parlay(TEST_GUILD_ID, ALICE, 100, requoted.value)
        assert placed.success, placed.error
        assert user_repository.get_balance(ALICE) == 900

    def test_requote_reports_closed_leg(self, wager_service, make_match):
        m1 = make_match()
        m2 = make_match(opponent="G2", begin_at=1)
        slip = [
            LegSelection(m1["match_id"], WagerType.TEAM, HOME_TEAM, quoted_odds=2.0),
            LegSelection(m2["match_id"], WagerType.TEAM, HOME_TEAM, quoted_odds=2.0),
        ]
        assert wager_service.requote_legs(slip).error_code == error_codes.MATCH_NOT_BETTABLE

    def test_active_wagers_lists_everything(self, wager_service, make_match):
        m1 = make_match()
        m2 = make_match(opponent="G2")
        wager_service.place_bet(TEST_GUILD_ID, ALICE, m1["match_id"], "TEAM", HOME_TEAM, 100)
        wager_service.create_duel(TEST_GUILD_ID, ALICE, BOB, m1["match_id"], HOME_TEAM, 100)
        wager_service.place_parlay(
            TEST_GUILD_ID,
            ALICE,
            100,
            [
                LegSelection(m1["match_id"], WagerType.TEAM, HOME_TEAM),
                LegSelection(m2["match_id"], WagerType.TEAM, "G2"),
            ],
        )

        wagers = wager_service.get_active_wagers(ALICE)

        assert len(wagers["bets"]) == 1
        assert len(wagers["duels"]) == 1
        assert len(wagers["parlays"]) == 1
        assert len(wagers["parlays"][0]["legs"]) == 2


class TestLeaderboard:
    def test_richest_first(self, wager_service, user_repository):
        user_repository.set_balance(ALICE, 500)
        user_repository.set_balance(BOB, 2500)
        user_repository.set_balance(CAROL, 1200)

        board = wager_service.get_leaderboard()

        assert [row["discord_id"] for row in board] == [BOB, CAROL, ALICE]
        assert [row["points"] for row in board] == [2500, 1200, 500]

    def test_limit_and_tie_order(self, wager_service, user_repository):
        for discord_id in (ALICE, BOB, CAROL):
            user_repository.ensure_user(discord_id)

        board = wager_service.get_leaderboard(limit=2)

        assert [row["discord_id"] for row in board] == sorted([ALICE, BOB, CAROL])[:2]
