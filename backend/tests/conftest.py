"""Shared factories and fixtures."""

import random
from typing import List, Optional

import pytest

from cricsim.engine.conditions import MatchConditions
from cricsim.engine.match_state import MatchState
from cricsim.schemas.common import (
    BattingStyle,
    BowlingStyle,
    DismissalType,
    OutcomeKind,
    PlayerRole,
)
from cricsim.schemas.match import BallOutcome, LimitedOversConfig, Team, TestMatchConfig
from cricsim.schemas.player import BattingSkills, BowlingSkills, Participant


def make_player(
    player_id: str,
    role: PlayerRole = PlayerRole.BATTER,
    batting: int = 50,
    bowling: int = 50,
    bowling_style: BowlingStyle = BowlingStyle.MEDIUM,
    batting_style: BattingStyle = BattingStyle.BALANCED,
    **state,
) -> Participant:
    """Player with every rating in a group set to the same value."""
    return Participant(
        id=player_id,
        name=player_id.replace("-", " ").title(),
        role=role,
        batting=BattingSkills(
            timing=batting, power=batting, technique=batting, temperament=batting, style=batting_style,
        ),
        bowling=BowlingSkills(
            pace=bowling, accuracy=bowling, variation=bowling, stamina=bowling, style=bowling_style,
        ),
        **state,
    )


def make_team(team_id: str) -> Team:
    """Eleven in batting order: five batters, keeper, all-rounder, three quicks and a spinner."""
    players: List[Participant] = [
        make_player(f"{team_id}-bat{i}", batting=70 - i, bowling=20) for i in range(1, 6)
    ]
    players.append(make_player(f"{team_id}-keeper", PlayerRole.WICKET_KEEPER, batting=60, bowling=10))
    players.append(make_player(
        f"{team_id}-allrounder", PlayerRole.ALL_ROUNDER, batting=55, bowling=60,
        bowling_style=BowlingStyle.MEDIUM,
    ))
    players += [
        make_player(f"{team_id}-quick1", PlayerRole.BOWLER, batting=25, bowling=80, bowling_style=BowlingStyle.FAST),
        make_player(f"{team_id}-quick2", PlayerRole.BOWLER, batting=22, bowling=75, bowling_style=BowlingStyle.FAST),
        make_player(
            f"{team_id}-quick3", PlayerRole.BOWLER, batting=20, bowling=70, bowling_style=BowlingStyle.FAST_MEDIUM,
        ),
        make_player(
            f"{team_id}-spinner", PlayerRole.BOWLER, batting=18, bowling=72, bowling_style=BowlingStyle.OFF_SPIN,
        ),
    ]
    return Team(id=team_id, name=team_id.title(), players=players)


def bowl(state: MatchState, *kinds: OutcomeKind, dismissal: DismissalType = DismissalType.BOWLED) -> list:
    """Apply scripted deliveries; wickets use ``dismissal``."""
    records = []
    for kind in kinds:
        outcome = BallOutcome.of(kind, dismissal if kind == OutcomeKind.WICKET else None)
        records.append(state.apply_ball(outcome))
    return records


def score_runs(state: MatchState, runs: int) -> None:
    """Add exactly ``runs`` with sixes and singles."""
    bowl(state, *([OutcomeKind.SIX] * (runs // 6) + [OutcomeKind.ONE] * (runs % 6)))


def bowl_out(state: MatchState, runs: int = 0) -> None:
    """Score ``runs`` then lose all ten wickets."""
    score_runs(state, runs)
    bowl(state, *([OutcomeKind.WICKET] * (10 - state.ledger.wickets)))


def start(state: MatchState, bowler: Optional[Participant] = None) -> MatchState:
    """Openers in and a bowler set: the first quick of the fielding side unless given."""
    state.start_innings()
    state.set_bowler(bowler or state.bowling_team.players[7])
    return state


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def home():
    return make_team("home")


@pytest.fixture
def away():
    return make_team("away")


@pytest.fixture
def limited_state(home, away):
    state = MatchState(home, away, home.id, LimitedOversConfig(overs=20), MatchConditions())
    return start(state)


@pytest.fixture
def test_state(home, away):
    state = MatchState(home, away, home.id, TestMatchConfig(), MatchConditions())
    return start(state)
