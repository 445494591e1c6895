"""
Core Match Engine for Cricket Simulation.

Drives a MatchState ball by ball: samples outcomes, applies them, rotates
bowlers at the end of each over and handles Test session and day breaks.
Bulk simulation is a generator so callers can stop at any delivery.
"""

import random
from typing import Iterator, List, Optional, Tuple, Union

from cricsim.config import Settings, get_settings
from cricsim.engine.bowling_scheduler import BowlingScheduler
from cricsim.engine.conditions import MatchConditions
from cricsim.engine.lineup import get_bowlers
from cricsim.engine.match_state import MatchState
from cricsim.engine.outcome_engine import OutcomeEngine
from cricsim.engine.probability_model import get_probability_model
from cricsim.logging_config import engine_logger
from cricsim.schemas.common import AdvanceUntil, MatchFormat
from cricsim.schemas.match import (
    BallRecord,
    FeedbackConfig,
    LimitedOversConfig,
    MatchResult,
    MatchSnapshot,
    SpellRules,
    Team,
    TestMatchConfig,
)
from cricsim.schemas.player import Participant


class MatchEngine:
    """
    Cricket match simulation engine.

    Uses the outcome engine for each delivery and the bowling scheduler for
    each over; the match state enforces the rules.
    """

    def __init__(
        self,
        state: MatchState,
        outcome_engine: Optional[OutcomeEngine] = None,
        rng: Optional[random.Random] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.state = state
        self.rng = rng or random.Random(self.settings.random_seed)
        self.outcome_engine = outcome_engine or OutcomeEngine(get_probability_model(), self.rng)
        self.spell_rules = SpellRules(**self.outcome_engine.model.params["bowling_rotation"])
        self.deliveries: List[BallRecord] = []  # Bowled by the latest advance() call

        self.scheduler = self._new_scheduler()
        self._open_innings()

    @classmethod
    def create(
        cls,
        home: Team,
        away: Team,
        batting_first_id: str,
        config: Union[LimitedOversConfig, TestMatchConfig],
        conditions: Optional[MatchConditions] = None,
        seed: Optional[int] = None,
        settings: Optional[Settings] = None,
    ) -> "MatchEngine":
        """Build a ready-to-play match; conditions are drawn at random when omitted."""
        settings = settings or get_settings()
        rng = random.Random(seed if seed is not None else settings.random_seed)
        model = get_probability_model()

        if conditions is None:
            conditions = MatchConditions.generate_random(MatchFormat(config.format), rng)
        feedback = FeedbackConfig(**model.params["feedback"])
        state = MatchState(home, away, batting_first_id, config, conditions, feedback)

        engine_logger.log_analytics_event("match_started", {
            "format": config.format,
            "home": home.id,
            "away": away.id,
            "batting_first": batting_first_id,
            "conditions": conditions.description(),
            "seed": seed,
        })
        return cls(state, OutcomeEngine(model, rng), rng, settings)

    # ============================================
    # SETUP
    # ============================================

    def _new_scheduler(self) -> BowlingScheduler:
        config = self.state.config
        bowlers = get_bowlers(self.state.bowling_team.players)
        if isinstance(config, LimitedOversConfig):
            return BowlingScheduler(bowlers, self.spell_rules, config.quota(), config.overs)
        return BowlingScheduler(bowlers, self.spell_rules)

    def _open_innings(self) -> None:
        self.state.start_innings()
        opener = self.scheduler.select_next_bowler(self.state.ledger.completed_overs, self.state)
        self.state.set_bowler(opener)

    # ============================================
    # SINGLE STEPS
    # ============================================

    def simulate_ball(self) -> Optional[BallRecord]:
        """Bowl one delivery. Returns None once the innings or match is over."""
        state = self.state
        if state.is_match_complete() or state.is_innings_complete():
            return None

        bowler = state.bowler
        outcome = self.outcome_engine.compute_outcome(state.striker, bowler, state, state.conditions)
        fielder = None
        if outcome.is_wicket:
            fielder = self.outcome_engine.choose_fielder(outcome.dismissal, bowler, state.bowling_team.players)

        record = state.apply_ball(outcome, fielder)
        if record.over_completed:
            self._end_of_over(bowler)
        elif record.innings_complete:
            self._take_break_if_due()
        return record

    def _end_of_over(self, bowler: Participant) -> None:
        state = self.state
        completed = state.ledger.completed_overs
        self.scheduler.update_spell(bowler, completed)
        self._take_break_if_due()

        if state.is_innings_complete() or state.is_match_complete():
            return
        state.set_bowler(self.scheduler.select_next_bowler(completed, state, bowler))

    def _take_break_if_due(self) -> None:
        """Close a finished Test session; the scheduler resets spells, or ends overnight."""
        state = self.state
        if not (state.is_test and state.is_session_complete()) or state.is_match_complete():
            return
        end_of_day = state.is_day_complete()
        state.next_session()
        if end_of_day:
            self.scheduler.reset_for_end_of_day(state)
        else:
            self.scheduler.reset_for_session_break(state)

    def next_innings(self, enforce_follow_on: bool = False) -> bool:
        """Start the next innings, enforcing the follow-on first when asked and available."""
        state = self.state
        self._take_break_if_due()
        if enforce_follow_on and state.check_follow_on():
            state.enforce_follow_on()
        if not state.switch_innings():
            return False
        self.scheduler = self._new_scheduler()
        self._open_innings()
        return True

    # ============================================
    # BULK SIMULATION
    # ============================================

    def _marker(self) -> Tuple[int, Optional[int], Optional[int]]:
        return (self.state.innings_number, self.state.day, self.state.session)

    def _reached(self, until: AdvanceUntil, start: Tuple, record: BallRecord) -> bool:
        state = self.state
        if record.innings_complete or state.is_match_complete():
            return True
        if until == AdvanceUntil.BALL:
            return True
        if until == AdvanceUntil.OVER:
            return record.over_completed
        if until == AdvanceUntil.SESSION and state.is_test:
            return self._marker() != start
        return False

    def advance(
        self,
        max_balls: Optional[int] = None,
        until: AdvanceUntil = AdvanceUntil.INNINGS,
    ) -> Iterator[MatchSnapshot]:
        """
        Bowl deliveries until ``until`` is reached, yielding progress snapshots.

        A snapshot is yielded every ``snapshot_every`` deliveries and once at
        the stopping point. At most ``fast_forward_ball_limit`` deliveries are
        bowled per call; closing the generator stops at the last delivery.
        """
        ceiling = self.settings.fast_forward_ball_limit
        limit = min(max_balls, ceiling) if max_balls else ceiling
        every = self.settings.snapshot_every
        start = self._marker()
        self.deliveries = []

        while len(self.deliveries) < limit:
            record = self.simulate_ball()
            if record is None:
                break
            self.deliveries.append(record)
            if self._reached(until, start, record):
                break
            if len(self.deliveries) % every == 0:
                yield self.state.snapshot()

        yield self.state.snapshot()

    def _run_until(self, until: AdvanceUntil) -> MatchSnapshot:
        """Repeat advance() calls until the boundary is reached."""
        state = self.state
        start = self._marker()
        bowled = 0
        snapshot = state.snapshot()

        while bowled < self.settings.max_match_deliveries:
            for snapshot in self.advance(until=until):
                pass
            bowled += len(self.deliveries)
            if not self.deliveries:
                break
            last = self.deliveries[-1]
            if last.innings_complete or state.is_match_complete():
                break
            if until in (AdvanceUntil.BALL, AdvanceUntil.OVER) and self._reached(until, start, last):
                break
            if until == AdvanceUntil.SESSION and state.is_test and self._marker() != start:
                break
        return snapshot

    def simulate_over(self) -> MatchSnapshot:
        return self._run_until(AdvanceUntil.OVER)

    def simulate_session(self) -> MatchSnapshot:
        """A Test session; in limited-overs play this runs to the end of the innings."""
        return self._run_until(AdvanceUntil.SESSION)

    def simulate_innings(self) -> MatchSnapshot:
        return self._run_until(AdvanceUntil.INNINGS)

    def simulate_match(self, auto_declare: bool = True, enforce_follow_on: bool = True) -> Optional[MatchResult]:
        """Play the match out and return its result."""
        state = self.state
        bowled = 0

        while not state.is_match_complete():
            if state.is_innings_complete():
                if not self.next_innings(enforce_follow_on=enforce_follow_on):
                    break
                continue
            if auto_declare and state.can_declare():
                state.declare_innings()
                continue

            self.simulate_ball()
            bowled += 1
            if bowled >= self.settings.max_match_deliveries:
                engine_logger.log_warning(
                    "simulate_match stopped at delivery limit",
                    {"deliveries": bowled, "innings": state.innings_number},
                )
                break

        return state.determine_match_result()
