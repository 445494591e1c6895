"""Tests for multi-day match rules: follow-on, declarations, sessions and results."""

import pytest

from cricsim.engine.conditions import MatchConditions
from cricsim.engine.match_state import MatchState
from cricsim.errors import PreconditionError
from cricsim.schemas.common import OutcomeKind, ResultType
from cricsim.schemas.match import TestMatchConfig

from conftest import bowl, bowl_out, score_runs


def next_innings(state):
    assert state.switch_innings()
    state.set_bowler(state.bowling_team.players[7])


def first_two_innings(state, first_runs, second_runs):
    bowl_out(state, first_runs)
    next_innings(state)
    bowl_out(state, second_runs)


def play_to_fourth_innings(state):
    """Home 200 and 100, away 150: away need 151."""
    first_two_innings(state, 200, 150)
    next_innings(state)
    bowl_out(state, 100)
    next_innings(state)


class TestFollowOn:
    """Tests for the follow-on."""

    def test_deficit_below_margin(self, test_state):
        """Test that a 199-run deficit does not allow the follow-on."""
        first_two_innings(test_state, 400, 201)
        assert not test_state.check_follow_on()
        assert not test_state.enforce_follow_on()

    def test_deficit_at_margin(self, test_state):
        """Test that a 200-run deficit allows the follow-on."""
        first_two_innings(test_state, 400, 200)
        assert test_state.check_follow_on()

    def test_not_available_before_second_innings_ends(self, test_state):
        """Test that the follow-on waits for the second innings to end."""
        bowl_out(test_state, 400)
        next_innings(test_state)
        bowl(test_state, OutcomeKind.WICKET)
        assert not test_state.check_follow_on()

    def test_enforced_order(self, test_state, home, away):
        """Test that the follow-on sends the same side straight back in."""
        first_two_innings(test_state, 400, 200)
        assert test_state.enforce_follow_on()
        next_innings(test_state)
        assert test_state.innings_number == 3
        assert test_state.batting_team.id == away.id
        assert test_state.bowling_team.id == home.id
        assert test_state.snapshot().follow_on_enforced

    def test_normal_order(self, test_state, home):
        """Test that without the follow-on the sides alternate."""
        first_two_innings(test_state, 400, 250)
        next_innings(test_state)
        assert test_state.batting_team.id == home.id

    def test_innings_victory(self, test_state, home):
        """Test that a side following on can lose by an innings."""
        first_two_innings(test_state, 400, 200)
        test_state.enforce_follow_on()
        next_innings(test_state)
        bowl_out(test_state, 150)

        assert test_state.is_match_complete()
        result = test_state.determine_match_result()
        assert result.result == ResultType.WIN
        assert result.winner_id == home.id
        assert result.margin == "an innings and 50 runs"
        assert not test_state.switch_innings()


class TestFourthInnings:
    """Tests for the chase."""

    def test_target(self, test_state):
        """Test that the fourth-innings target is the deficit plus one."""
        play_to_fourth_innings(test_state)
        assert test_state.innings_number == 4
        assert test_state.target == 151
        assert test_state.runs_required() == 151

    def test_exact_chase_ends_match_on_same_ball(self, test_state, away):
        """Test that reaching the target ends innings and match on that ball."""
        play_to_fourth_innings(test_state)
        score_runs(test_state, 150)
        assert not test_state.is_innings_complete()

        record = bowl(test_state, OutcomeKind.ONE)[0]
        assert record.innings_complete
        assert test_state.is_innings_complete()
        assert test_state.is_match_complete()

        result = test_state.determine_match_result()
        assert result.winner_id == away.id
        assert result.margin == "10 wickets"
        assert not test_state.switch_innings()
        with pytest.raises(PreconditionError):
            bowl(test_state, OutcomeKind.DOT)

    def test_defended(self, test_state, home):
        """Test that a defended fourth-innings target wins by runs."""
        play_to_fourth_innings(test_state)
        bowl_out(test_state, 120)
        result = test_state.determine_match_result()
        assert result.winner_id == home.id
        assert result.margin == "30 runs"

    def test_tie(self, test_state):
        """Test that equal aggregates tie the match."""
        play_to_fourth_innings(test_state)
        bowl_out(test_state, 150)
        assert test_state.determine_match_result().result == ResultType.TIE

    def test_no_fifth_innings(self, test_state):
        """Test that there is no fifth innings."""
        play_to_fourth_innings(test_state)
        bowl_out(test_state, 10)
        assert not test_state.switch_innings()
        assert test_state.innings_number == 4


class TestDeclaration:
    """Tests for declarations."""

    def test_needs_minimum_overs(self, test_state):
        """Test that a declaration needs sixty overs."""
        score_runs(test_state, 360)
        bowl(test_state, *[OutcomeKind.DOT] * 294)
        assert test_state.ledger.completed_overs == 59
        assert not test_state.can_declare()
        assert not test_state.declare_innings()

        bowl(test_state, *[OutcomeKind.DOT] * 6)
        assert test_state.can_declare()
        assert test_state.declare_innings()
        assert test_state.is_innings_complete()

        next_innings(test_state)
        assert test_state.archive[0].declared
        assert test_state.archive[0].runs == 360

    def test_needs_a_big_first_innings_total(self, test_state):
        """Test that a first-innings declaration needs 350."""
        score_runs(test_state, 300)
        bowl(test_state, *[OutcomeKind.DOT] * 310)
        assert test_state.ledger.completed_overs >= 60
        assert not test_state.can_declare()

    def test_not_in_second_innings(self, test_state):
        """Test that the side batting second cannot declare in innings two."""
        bowl_out(test_state, 100)
        next_innings(test_state)
        score_runs(test_state, 400)
        bowl(test_state, *[OutcomeKind.DOT] * 300)
        assert not test_state.can_declare()

    def test_third_innings_needs_a_big_lead(self, test_state):
        """Test that a third-innings declaration needs a lead of 300."""
        first_two_innings(test_state, 200, 150)
        next_innings(test_state)
        score_runs(test_state, 249)
        bowl(test_state, *[OutcomeKind.DOT] * (360 - test_state.ledger.balls))
        assert test_state.ledger.completed_overs == 60
        assert test_state.lead() == 299
        assert not test_state.can_declare()
        assert not test_state.declare_innings()

        bowl(test_state, OutcomeKind.ONE)
        assert test_state.lead() == 300
        assert test_state.declare_innings()

    def test_following_on_side_trailing_cannot_declare(self, test_state):
        """Test that a side following on cannot declare until it leads by 300."""
        first_two_innings(test_state, 400, 200)
        assert test_state.enforce_follow_on()
        next_innings(test_state)
        score_runs(test_state, 150)
        bowl(test_state, *[OutcomeKind.DOT] * (360 - test_state.ledger.balls))
        assert test_state.lead() == -50
        assert not test_state.can_declare()

        score_runs(test_state, 350)
        assert test_state.lead() == 300
        assert test_state.can_declare()


class TestSessions:
    """Tests for sessions and days."""

    def test_session_complete_after_thirty_overs(self, test_state):
        """Test that a session completes after thirty overs."""
        bowl(test_state, *[OutcomeKind.DOT] * 174)
        assert not test_state.is_session_complete()
        bowl(test_state, *[OutcomeKind.DOT] * 6)
        assert test_state.is_session_complete()
        assert not test_state.is_day_complete()

    def test_next_session(self, test_state):
        """Test that closing a session records its runs, wickets and overs."""
        bowl(test_state, OutcomeKind.FOUR, OutcomeKind.WICKET, *[OutcomeKind.DOT] * 178)
        assert test_state.next_session()
        assert test_state.session == 2
        assert test_state.day == 1
        snapshot = test_state.clock.sessions[0]
        assert (snapshot.runs, snapshot.wickets, snapshot.overs) == (4, 1, 30)
        assert not test_state.is_session_complete()

    def test_third_session_rolls_into_next_day(self, test_state):
        """Test that the third session rolls into the next day."""
        for _ in range(3):
            bowl(test_state, *[OutcomeKind.DOT] * 180)
            test_state.next_session()
        assert test_state.day == 2
        assert test_state.session == 1
        assert test_state.clock.days[0].overs == 90
        assert len(test_state.clock.days[0].sessions) == 3

    def test_innings_ending_mid_over_uses_the_over(self, test_state):
        """Test that an innings ending mid-over still uses up that over of the day."""
        bowl(test_state, *[OutcomeKind.DOT] * 10)
        bowl_out(test_state)
        assert test_state.ledger.overs == "3.2"
        clock = test_state.clock
        assert (clock.overs_in_session, clock.overs_today, clock.total_overs) == (4, 4, 4)
        assert test_state.rules.remaining_balls(test_state) == (450 - 4) * 6

    def test_declaration_mid_over_uses_the_over(self, test_state):
        """Test that declaring mid-over still uses up that over of the day."""
        score_runs(test_state, 360)
        bowl(test_state, *[OutcomeKind.DOT] * 303)
        assert test_state.ledger.overs == "60.3"
        assert test_state.declare_innings()
        assert test_state.clock.total_overs == 61

    def test_overnight_recovery(self, test_state, away):
        """Test that bowlers recover and the pitch wears overnight."""
        bowler = away.players[7]
        bowler.fitness = 60
        test_state.conditions.update_dew_factor(20)
        wear = test_state.conditions.pitch_wear
        assert test_state.next_day()
        assert bowler.fitness == 75
        assert test_state.conditions.pitch_wear == pytest.approx(wear + 5)
        assert test_state.conditions.dew_factor == 0

    def test_wear_per_over(self, test_state):
        """Test that the pitch wears with each over."""
        bowl(test_state, *[OutcomeKind.DOT] * 24)
        assert test_state.conditions.pitch_wear == pytest.approx(1.0)

    def test_out_of_time_is_a_draw(self, test_state):
        """Test that running out of days is a draw."""
        first_two_innings(test_state, 300, 250)
        next_innings(test_state)
        for _ in range(5):
            assert test_state.next_day()

        assert test_state.day == 6
        assert test_state.is_match_complete()
        result = test_state.determine_match_result()
        assert result.result == ResultType.DRAW
        assert result.winner_id is None
        assert not test_state.next_day()
        assert not test_state.next_session()
        with pytest.raises(PreconditionError):
            bowl(test_state, OutcomeKind.DOT)

    def test_draw_with_two_innings_complete(self, home, away):
        """Test that a one-day Test with two innings done is drawn."""
        state = MatchState(home, away, home.id, TestMatchConfig(days=1), MatchConditions())
        state.start_innings()
        state.set_bowler(away.players[7])
        first_two_innings(state, 300, 280)
        assert state.next_day()
        assert state.determine_match_result().result == ResultType.DRAW
        assert len(state.archive) == 1


class TestMultiDaySnapshot:
    """Tests for multi-day snapshots."""

    def test_snapshot_day_and_session(self, test_state):
        """Test that the snapshot carries day and session."""
        snapshot = test_state.snapshot()
        assert snapshot.format == "test"
        assert snapshot.day == 1
        assert snapshot.session == 1

    def test_fourth_innings_required_rate(self, test_state):
        """Test that the fourth-innings snapshot has a required rate."""
        play_to_fourth_innings(test_state)
        assert test_state.snapshot().target == 151
        assert test_state.snapshot().required_run_rate is not None

    def test_lead_from_the_second_innings(self, test_state):
        """Test that the lead is the batting side's aggregate margin, negative when trailing."""
        assert test_state.lead() is None
        assert test_state.snapshot().lead is None

        first_two_innings(test_state, 200, 150)
        assert test_state.lead() == -50
        next_innings(test_state)
        assert test_state.snapshot().lead == 50

    def test_fourth_innings_situation(self, test_state):
        """Test that the fourth innings reports runs needed and a deficit, with no limited-overs odds."""
        play_to_fourth_innings(test_state)
        snapshot = test_state.snapshot()
        assert snapshot.runs_needed == 151
        assert snapshot.lead == -150
        assert snapshot.projected_score is None
        assert snapshot.win_probability is None
