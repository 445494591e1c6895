"""Tests for limited-overs match state."""

import pytest
from pydantic import ValidationError

from cricsim.engine.conditions import MatchConditions
from cricsim.engine.match_state import MatchState
from cricsim.errors import PreconditionError
from cricsim.schemas.common import OutcomeKind, ResultType
from cricsim.schemas.match import LimitedOversConfig

from conftest import bowl, make_team, start


@pytest.fixture
def one_over(home, away):
    """A one-over-a-side match, home batting first."""
    state = MatchState(home, away, home.id, LimitedOversConfig(overs=1), MatchConditions())
    return start(state)


def second_innings(state):
    assert state.switch_innings()
    state.set_bowler(state.bowling_team.players[7])
    return state


class TestSetup:
    """Tests for match setup."""

    def test_same_team_rejected(self, home):
        """Test that a team cannot play itself."""
        with pytest.raises(PreconditionError):
            MatchState(home, home, home.id, LimitedOversConfig())

    def test_shared_player_rejected(self, home):
        """Test that a player cannot appear for both sides."""
        other = make_team("other")
        other.players[0] = home.players[0]
        with pytest.raises(PreconditionError):
            MatchState(home, other, home.id, LimitedOversConfig())

    def test_unknown_batting_side(self, home, away):
        """Test that the batting-first team must be one of the two."""
        with pytest.raises(PreconditionError):
            MatchState(home, away, "nobody", LimitedOversConfig())

    def test_away_side_can_bat_first(self, home, away):
        """Test that the away side can bat first."""
        state = MatchState(home, away, away.id, LimitedOversConfig())
        assert state.batting_team.id == away.id
        assert state.bowling_team.id == home.id

    def test_bowling_before_setup(self, home, away):
        """Test that bowling before openers and bowler are set fails."""
        state = MatchState(home, away, home.id, LimitedOversConfig())
        with pytest.raises(PreconditionError):
            bowl(state, OutcomeKind.DOT)
        state.start_innings()
        with pytest.raises(PreconditionError):
            bowl(state, OutcomeKind.DOT)

    def test_bowler_from_batting_side(self, limited_state, home):
        """Test that the bowler must come from the fielding side."""
        with pytest.raises(PreconditionError):
            limited_state.set_bowler(home.players[8])


class TestStrikeRotation:
    """Tests for who faces the next ball."""

    def test_scripted_over(self, limited_state, home):
        """Test that strike follows odd runs and the end of the over."""
        opener, partner = home.players[0].id, home.players[1].id
        expected = [
            (OutcomeKind.ONE, partner),
            (OutcomeKind.DOT, partner),
            (OutcomeKind.WIDE, partner),
            (OutcomeKind.TWO, partner),
            (OutcomeKind.THREE, opener),
            (OutcomeKind.DOT, opener),
            (OutcomeKind.FOUR, partner),  # End of over swaps ends
        ]
        for kind, on_strike in expected:
            bowl(limited_state, kind)
            assert limited_state.striker.id == on_strike

        assert limited_state.ledger.score == 11
        assert limited_state.ledger.balls == 6
        assert limited_state.ledger.overs == "1.0"

    def test_single_off_last_ball_keeps_strike(self, limited_state, home):
        """Test that a single off the last ball keeps the striker on strike."""
        bowl(limited_state, *[OutcomeKind.DOT] * 5, OutcomeKind.ONE)
        assert limited_state.striker.id == home.players[0].id
        assert limited_state.last_delivery.strike_rotated

    def test_new_batter_takes_strike(self, limited_state, home):
        """Test that the incoming batter takes strike."""
        bowl(limited_state, OutcomeKind.WICKET)
        assert limited_state.striker.id == home.players[2].id
        assert limited_state.non_striker.id == home.players[1].id


class TestInningsEnd:
    """Tests for the end of a limited-overs innings."""

    def test_overs_exhausted(self, one_over, home):
        """Test that the innings ends when the overs run out."""
        records = bowl(one_over, *[OutcomeKind.DOT] * 6)
        assert records[-1].innings_complete
        assert one_over.is_innings_complete()
        assert not one_over.is_match_complete()
        # No end-of-over swap once the innings is over
        assert one_over.striker.id == home.players[0].id

    def test_no_delivery_after_innings(self, one_over):
        """Test that no ball can be bowled after the innings ends."""
        bowl(one_over, *[OutcomeKind.DOT] * 6)
        with pytest.raises(PreconditionError):
            bowl(one_over, OutcomeKind.DOT)

    def test_all_out(self, limited_state):
        """Test that ten wickets end the innings."""
        bowl(limited_state, *[OutcomeKind.WICKET] * 10)
        assert limited_state.is_innings_complete()
        assert limited_state.ledger.overs == "1.4"

    def test_switch_rejected_mid_innings(self, limited_state):
        """Test that the innings cannot switch while live."""
        bowl(limited_state, OutcomeKind.DOT)
        assert not limited_state.switch_innings()
        assert limited_state.innings_number == 1

    def test_switch_innings(self, one_over, home, away):
        """Test that switching sets the target and swaps the sides."""
        bowl(one_over, OutcomeKind.SIX, *[OutcomeKind.DOT] * 5)
        second_innings(one_over)
        assert one_over.innings_number == 2
        assert one_over.batting_team.id == away.id
        assert one_over.bowling_team.id == home.id
        assert one_over.striker.id == away.players[0].id
        assert one_over.archive[0].runs == 6
        assert one_over.target == 7
        assert one_over.ledger.score == 0

    def test_archive_is_frozen(self, one_over):
        """Test that archived innings cannot be changed."""
        bowl(one_over, *[OutcomeKind.DOT] * 6)
        second_innings(one_over)
        with pytest.raises(ValidationError):
            one_over.archive[0].runs = 100


class TestResult:
    """Tests for limited-overs results."""

    def test_chase_completes_on_target(self, one_over, away):
        """Test that the chase ends on the ball that reaches the target."""
        bowl(one_over, OutcomeKind.SIX, OutcomeKind.ONE, *[OutcomeKind.DOT] * 4)
        second_innings(one_over)
        assert one_over.required_run_rate() == 8.0

        records = bowl(one_over, OutcomeKind.SIX, OutcomeKind.TWO)
        assert records[-1].innings_complete
        assert one_over.is_match_complete()
        result = one_over.determine_match_result()
        assert result.result == ResultType.WIN
        assert result.winner_id == away.id
        assert result.margin == "10 wickets"
        assert not one_over.switch_innings()
        with pytest.raises(PreconditionError):
            bowl(one_over, OutcomeKind.DOT)

    def test_defended(self, one_over, home):
        """Test that a defended total wins by runs."""
        bowl(one_over, OutcomeKind.SIX, OutcomeKind.ONE, *[OutcomeKind.DOT] * 4)
        second_innings(one_over)
        bowl(one_over, OutcomeKind.SIX, *[OutcomeKind.DOT] * 5)
        result = one_over.determine_match_result()
        assert result.winner_id == home.id
        assert result.margin == "1 run"
        assert result.description == f"{home.name} won by 1 run"

    def test_tie(self, one_over):
        """Test that equal scores tie the match."""
        bowl(one_over, OutcomeKind.SIX, *[OutcomeKind.DOT] * 5)
        second_innings(one_over)
        bowl(one_over, OutcomeKind.FOUR, OutcomeKind.TWO, *[OutcomeKind.DOT] * 4)
        assert one_over.determine_match_result().result == ResultType.TIE

    def test_no_result_while_in_progress(self, limited_state):
        """Test that there is no result while the match is live."""
        bowl(limited_state, OutcomeKind.FOUR)
        assert limited_state.determine_match_result() is None
        assert limited_state.snapshot().result is None


class TestFormatOnlyTransitions:
    """Test-match transitions are rejected in limited-overs play."""

    def test_sessions_and_declarations_rejected(self, limited_state):
        """Test that Test-only transitions are refused."""
        assert not limited_state.next_session()
        assert not limited_state.next_day()
        assert not limited_state.can_declare()
        assert not limited_state.declare_innings()
        assert not limited_state.check_follow_on()
        assert not limited_state.enforce_follow_on()
        assert limited_state.day is None
        assert limited_state.session is None


class TestConditionsDuringPlay:
    """Tests for wear and dew while overs are bowled."""

    def test_wear_each_over(self, limited_state):
        """Test that wear grows with each over."""
        bowl(limited_state, *[OutcomeKind.DOT] * 12)
        assert limited_state.conditions.pitch_wear == pytest.approx(0.6)

    def test_dew_in_second_innings(self, home, away):
        """Test that dew only builds late in the second innings."""
        state = start(MatchState(home, away, home.id, LimitedOversConfig(overs=20), MatchConditions()))
        bowl(state, *[OutcomeKind.WICKET] * 10)
        second_innings(state)
        bowl(state, *[OutcomeKind.DOT] * 60)
        assert state.conditions.dew_factor == 0
        bowl(state, *[OutcomeKind.DOT] * 12)
        assert state.conditions.dew_factor == pytest.approx(4.0)


class TestSnapshot:
    """Tests for published snapshots."""

    def test_snapshot(self, limited_state, home, away):
        """Test that a snapshot reflects the live innings."""
        bowl(limited_state, OutcomeKind.FOUR, OutcomeKind.WIDE, OutcomeKind.ONE)
        snapshot = limited_state.snapshot()
        assert snapshot.format == "limited"
        assert snapshot.score == 6
        assert snapshot.extras == 1
        assert snapshot.overs == "0.2"
        assert snapshot.striker_id == home.players[1].id
        assert snapshot.bowler_id == away.players[7].id
        assert snapshot.partnership.runs == 5
        assert snapshot.current_run_rate == 18.0
        assert snapshot.last_delivery.outcome.kind == OutcomeKind.ONE
        assert snapshot.target is None

    def test_snapshot_is_immutable(self, limited_state):
        """Test that a snapshot cannot be changed and does not follow play."""
        snapshot = limited_state.snapshot()
        with pytest.raises(ValidationError):
            snapshot.score = 500
        bowl(limited_state, OutcomeKind.SIX)
        assert snapshot.score == 0


class TestMatchSituation:
    """Tests for projections and chase odds during play."""

    def test_first_innings_projection(self, limited_state):
        """Test that the first innings projects a total and has no chase odds."""
        bowl(limited_state, OutcomeKind.SIX, OutcomeKind.SIX, *[OutcomeKind.DOT] * 4)
        assert limited_state.projected_score() == 240
        snapshot = limited_state.snapshot()
        assert snapshot.projected_score == 240
        assert snapshot.win_probability is None
        assert snapshot.runs_needed is None
        assert snapshot.lead is None

    def test_chase_odds_follow_the_chase(self, one_over):
        """Test that the chasing side's chance moves with each ball and settles at 100."""
        bowl(one_over, OutcomeKind.SIX, OutcomeKind.ONE, *[OutcomeKind.DOT] * 4)
        second_innings(one_over)
        snapshot = one_over.snapshot()
        assert snapshot.runs_needed == 8
        assert snapshot.win_probability == 45
        assert snapshot.projected_score is None

        bowl(one_over, OutcomeKind.SIX)
        assert one_over.runs_required() == 2
        assert one_over.win_probability() == 95

        bowl(one_over, OutcomeKind.TWO)
        assert one_over.snapshot().runs_needed == 0
        assert one_over.win_probability() == 100
