"""
Match State.

Owns a match from the first ball to the result: the live InningsLedger,
the append-only archive of finished innings, and the format rules that
decide when an innings or the match is over. Limited-overs and Test
behaviour are separate rules objects selected by the config's ``format``
tag; the ledger does the ball-by-ball bookkeeping for both.

Rejected transitions (switching past the last innings, declaring outside
the window, follow-on when not available, session moves outside Test play)
return False and log a warning. Calls that can only come from a bug
(bowling before the openers or bowler are set) raise PreconditionError.
"""

from typing import Dict, List, Optional, Union

from cricsim.engine.conditions import MatchConditions
from cricsim.engine.innings import InningsLedger
from cricsim.engine.stats import (
    BALLS_PER_OVER,
    MAX_WICKETS,
    projected_score,
    required_run_rate,
    run_rate,
    win_probability,
)
from cricsim.errors import PreconditionError
from cricsim.logging_config import engine_logger
from cricsim.schemas.common import MatchFormat, ResultType
from cricsim.schemas.match import (
    BallOutcome,
    BallRecord,
    DaySummary,
    FeedbackConfig,
    InningsSummary,
    LimitedOversConfig,
    MatchResult,
    MatchSnapshot,
    SessionSnapshot,
    Team,
    TestMatchConfig,
)
from cricsim.schemas.player import BowlerStat, Participant


class TestClock:
    """Day and session counters for a Test match."""
    __test__ = False  # Not a pytest class

    def __init__(self):
        self.day = 1
        self.session = 1
        self.overs_in_session = 0
        self.overs_today = 0
        self.total_overs = 0

        self.session_runs = 0
        self.session_wickets = 0
        self.day_runs = 0
        self.day_wickets = 0

        self.sessions: List[SessionSnapshot] = []
        self.days: List[DaySummary] = []

    def record_ball(self, outcome: BallOutcome) -> None:
        self.session_runs += outcome.runs
        self.day_runs += outcome.runs
        if outcome.is_wicket:
            self.session_wickets += 1
            self.day_wickets += 1

    def record_over(self) -> None:
        self.overs_in_session += 1
        self.overs_today += 1
        self.total_overs += 1


class LimitedOversRules:
    """One innings each, fixed overs, second innings chases a target."""

    def __init__(self, config: LimitedOversConfig):
        self.config = config

    @property
    def max_innings(self) -> int:
        return self.config.max_innings

    def target(self, state: "MatchState") -> Optional[int]:
        if state.innings_number != 2 or not state.archive:
            return None
        return state.archive[0].runs + 1

    def remaining_balls(self, state: "MatchState") -> int:
        return self.config.overs * BALLS_PER_OVER - state.ledger.balls

    def innings_over(self, state: "MatchState") -> bool:
        if state.ledger.balls >= self.config.overs * BALLS_PER_OVER:
            return True
        target = self.target(state)
        return target is not None and state.ledger.score >= target

    def on_over_complete(self, state: "MatchState") -> None:
        state.conditions.update_pitch_wear(self.config.wear_per_over)
        if state.innings_number == 2 and state.ledger.completed_overs > self.config.dew_after_over:
            state.conditions.update_dew_factor(self.config.dew_per_over)

    def match_complete(self, state: "MatchState") -> bool:
        return state.innings_number == 2 and state.is_innings_complete()

    def result(self, state: "MatchState") -> MatchResult:
        first = state.archive[0]
        setting = state.team(first.batting_team_id)
        chasing = state.batting_team
        ledger = state.ledger

        if ledger.score > first.runs:
            wickets_left = 10 - ledger.wickets
            return _win(chasing, f"{wickets_left} wicket{'s' if wickets_left != 1 else ''}")
        if ledger.score == first.runs:
            return MatchResult(result=ResultType.TIE, description="Match tied")
        margin = first.runs - ledger.score
        return _win(setting, f"{margin} run{'s' if margin != 1 else ''}")


class TestMatchRules:
    """Up to four innings over a fixed number of days."""
    __test__ = False  # Not a pytest class

    def __init__(self, config: TestMatchConfig):
        self.config = config

    @property
    def max_innings(self) -> int:
        return self.config.max_innings

    def target(self, state: "MatchState") -> Optional[int]:
        if state.innings_number != 4:
            return None
        batting_id = state.batting_team.id
        return state.aggregate(state.bowling_team.id) - state.aggregate(batting_id, include_live=False) + 1

    def remaining_balls(self, state: "MatchState") -> int:
        cfg = self.config
        scheduled = cfg.days * cfg.sessions_per_day * cfg.overs_per_session
        # A finished innings has already charged its part-over to the clock
        partial = 0 if state.is_innings_complete() else state.ledger.balls % BALLS_PER_OVER
        return (scheduled - state.clock.total_overs) * BALLS_PER_OVER - partial

    def innings_over(self, state: "MatchState") -> bool:
        target = self.target(state)
        return target is not None and state.ledger.score >= target

    def on_over_complete(self, state: "MatchState") -> None:
        state.clock.record_over()
        state.conditions.update_pitch_wear(self.config.wear_per_over)

    def out_of_time(self, state: "MatchState") -> bool:
        return state.clock.day > self.config.days

    def innings_victory(self, state: "MatchState") -> bool:
        """Side batting third finished its innings still behind."""
        if state.innings_number != 3 or not state.is_innings_complete():
            return False
        return state.aggregate(state.batting_team.id) < state.aggregate(state.bowling_team.id)

    def match_complete(self, state: "MatchState") -> bool:
        if self.out_of_time(state):
            return True
        if state.innings_number == 4 and state.is_innings_complete():
            return True
        return self.innings_victory(state)

    def result(self, state: "MatchState") -> MatchResult:
        if self.innings_victory(state):
            winner = state.bowling_team
            margin = state.aggregate(winner.id) - state.aggregate(state.batting_team.id)
            return _win(winner, f"an innings and {margin} run{'s' if margin != 1 else ''}")

        if state.innings_number == 4 and state.is_innings_complete():
            chasing = state.batting_team
            defending = state.bowling_team
            chased = state.aggregate(chasing.id)
            defended = state.aggregate(defending.id)
            if chased > defended:
                wickets_left = 10 - state.ledger.wickets
                return _win(chasing, f"{wickets_left} wicket{'s' if wickets_left != 1 else ''}")
            if chased == defended:
                return MatchResult(result=ResultType.TIE, description="Match tied")
            margin = defended - chased
            return _win(defending, f"{margin} run{'s' if margin != 1 else ''}")

        return MatchResult(result=ResultType.DRAW, description="Match drawn")


def _win(team: Team, margin: str) -> MatchResult:
    return MatchResult(
        result=ResultType.WIN,
        winner_id=team.id,
        margin=margin,
        description=f"{team.name} won by {margin}",
    )


Rules = Union[LimitedOversRules, TestMatchRules]


class MatchState:
    """
    Live state of one match.

    MatchState (through its ledger) is the single writer of participant
    form, fitness and confidence for the duration of the match.
    """

    def __init__(
        self,
        home: Team,
        away: Team,
        batting_first_id: str,
        config: Union[LimitedOversConfig, TestMatchConfig],
        conditions: Optional[MatchConditions] = None,
        feedback: Optional[FeedbackConfig] = None,
    ):
        if home.id == away.id:
            raise PreconditionError("a match needs two different teams")
        if {p.id for p in home.players} & {p.id for p in away.players}:
            raise PreconditionError("a player cannot appear for both teams")
        if batting_first_id not in (home.id, away.id):
            raise PreconditionError(f"unknown batting-first team {batting_first_id!r}")

        self.home = home
        self.away = away
        self.config = config
        self.conditions = conditions or MatchConditions()
        self.feedback = feedback or FeedbackConfig()

        first, second = (home, away) if batting_first_id == home.id else (away, home)
        self.first_batting = first
        self.second_batting = second
        self.batting_team = first
        self.bowling_team = second

        if isinstance(config, TestMatchConfig):
            self.rules: Rules = TestMatchRules(config)
            self.clock: Optional[TestClock] = TestClock()
        else:
            self.rules = LimitedOversRules(config)
            self.clock = None

        self.innings_number = 1
        self.archive: List[InningsSummary] = []
        self.follow_on_enforced = False
        self.ledger = InningsLedger(1, first, second, self.feedback)
        self.last_delivery: Optional[BallRecord] = None
        self._result: Optional[MatchResult] = None

    # ============================================
    # BASIC QUERIES
    # ============================================

    @property
    def match_format(self) -> MatchFormat:
        return MatchFormat(self.config.format)

    @property
    def is_test(self) -> bool:
        return self.clock is not None

    @property
    def total_overs(self) -> Optional[int]:
        return None if self.is_test else self.config.overs

    @property
    def day(self) -> Optional[int]:
        return self.clock.day if self.clock else None

    @property
    def session(self) -> Optional[int]:
        return self.clock.session if self.clock else None

    @property
    def striker(self) -> Optional[Participant]:
        return self.ledger.striker

    @property
    def non_striker(self) -> Optional[Participant]:
        return self.ledger.non_striker

    @property
    def bowler(self) -> Optional[Participant]:
        return self.ledger.bowler

    def team(self, team_id: str) -> Team:
        return self.home if self.home.id == team_id else self.away

    def bowler_stat(self, player_id: str) -> Optional[BowlerStat]:
        return self.ledger.bowler_stats.get(player_id)

    def aggregate(self, team_id: str, include_live: bool = True) -> int:
        """Runs a team has scored across its innings so far."""
        total = sum(s.runs for s in self.archive if s.batting_team_id == team_id)
        if include_live and self.batting_team.id == team_id:
            total += self.ledger.score
        return total

    @property
    def target(self) -> Optional[int]:
        return self.rules.target(self)

    def runs_required(self) -> Optional[int]:
        target = self.target
        if target is None:
            return None
        return max(0, target - self.ledger.score)

    def required_run_rate(self) -> Optional[float]:
        target = self.target
        if target is None:
            return None
        return required_run_rate(target, self.ledger.score, self.rules.remaining_balls(self))

    def current_run_rate(self) -> float:
        return run_rate(self.ledger.score, self.ledger.balls)

    def projected_score(self) -> Optional[int]:
        """Limited-overs first innings: the total at the current run rate."""
        if self.is_test or self.target is not None:
            return None
        return projected_score(self.ledger.score, self.ledger.balls, self.config.overs * BALLS_PER_OVER)

    def win_probability(self) -> Optional[int]:
        """Limited-overs chase: the batting side's chance of winning, in percent."""
        if self.is_test or self.target is None:
            return None
        return win_probability(
            self.runs_required(),
            self.rules.remaining_balls(self),
            MAX_WICKETS - self.ledger.wickets,
            self.current_run_rate(),
        )

    def lead(self) -> Optional[int]:
        """Test matches from the second innings: batting side's aggregate lead, negative when trailing."""
        if not self.is_test or self.innings_number == 1:
            return None
        return self.aggregate(self.batting_team.id) - self.aggregate(self.bowling_team.id)

    # ============================================
    # BALL FLOW
    # ============================================

    def start_innings(self) -> None:
        self.ledger.start()

    def set_bowler(self, bowler: Participant) -> None:
        self.ledger.set_bowler(bowler)

    def apply_ball(self, outcome: BallOutcome, fielder: Optional[Participant] = None) -> BallRecord:
        """Apply one delivery; rotates strike at the end of a live over."""
        if self.is_match_complete() or self.is_innings_complete():
            raise PreconditionError("the innings is over; no more deliveries can be bowled")

        record = self.ledger.apply(outcome, fielder)
        if self.clock is not None:
            self.clock.record_ball(outcome)
        if record.over_completed:
            self.rules.on_over_complete(self)

        complete = self.is_innings_complete()
        if record.over_completed and not complete:
            self.ledger.rotate_strike()

        if complete:
            if not record.over_completed:
                self._charge_partial_over()
            record = record.model_copy(update={"innings_complete": True})
            self.ledger.deliveries[-1] = record
        self.last_delivery = record
        return record

    def _charge_partial_over(self) -> None:
        """A Test innings that ends mid-over still uses up that over of the day."""
        if self.clock is not None and self.ledger.balls % BALLS_PER_OVER:
            self.clock.record_over()

    def rotate_strike(self) -> None:
        self.ledger.rotate_strike()

    def is_innings_complete(self) -> bool:
        ledger = self.ledger
        return ledger.is_all_out or ledger.declared or self.rules.innings_over(self)

    def is_match_complete(self) -> bool:
        if self._result is not None:
            return True
        return self.rules.match_complete(self)

    # ============================================
    # INNINGS TRANSITIONS
    # ============================================

    def _reject(self, action: str, reason: str) -> bool:
        engine_logger.log_warning(
            f"{action} rejected",
            {"reason": reason, "innings": self.innings_number, "day": self.day, "session": self.session},
        )
        return False

    def _batting_order(self, innings_number: int) -> Team:
        first, second = self.first_batting, self.second_batting
        if self.follow_on_enforced:
            return [first, second, second, first][innings_number - 1]
        return [first, second, first, second][innings_number - 1]

    def switch_innings(self) -> bool:
        """Archive the finished innings and send the next side in."""
        if self.is_match_complete():
            return self._reject("switch_innings", "match is complete")
        if self.innings_number >= self.rules.max_innings:
            return self._reject("switch_innings", "no innings left")
        if not self.is_innings_complete():
            return self._reject("switch_innings", "current innings is still in progress")

        summary = self.ledger.summary()
        next_number = self.innings_number + 1
        batting = self._batting_order(next_number)
        bowling = self.second_batting if batting.id == self.first_batting.id else self.first_batting

        self.archive.append(summary)
        # Roles swap together with the new ledger; nothing reads a half-switched state
        self.batting_team, self.bowling_team, self.ledger, self.innings_number = (
            batting,
            bowling,
            InningsLedger(next_number, batting, bowling, self.feedback),
            next_number,
        )
        self.ledger.start()

        engine_logger.log_analytics_event("innings_complete", {
            "innings": summary.innings_number,
            "batting_team": summary.batting_team_id,
            "runs": summary.runs,
            "wickets": summary.wickets,
            "overs": summary.overs,
            "declared": summary.declared,
        })
        return True

    def can_declare(self) -> bool:
        if not self.is_test or self.is_match_complete() or self.is_innings_complete():
            return False
        cfg: TestMatchConfig = self.config
        if self.innings_number not in (1, 3):
            return False
        if self.ledger.completed_overs < cfg.declaration_min_overs:
            return False
        if self.innings_number == 1:
            return self.ledger.score >= cfg.declaration_first_innings_score
        return self.lead() >= cfg.declaration_lead

    def declare_innings(self) -> bool:
        if not self.can_declare():
            return self._reject("declare_innings", "declaration not available")
        self.ledger.declared = True
        self._charge_partial_over()
        return True

    def check_follow_on(self) -> bool:
        """Follow-on is open after a completed second innings trailing by the margin."""
        if not self.is_test or self.follow_on_enforced:
            return False
        if self.innings_number != 2 or not self.is_innings_complete() or not self.archive:
            return False
        deficit = self.archive[0].runs - self.ledger.score
        return deficit >= self.config.follow_on_margin

    def enforce_follow_on(self) -> bool:
        if not self.check_follow_on():
            return self._reject("enforce_follow_on", "follow-on not available")
        self.follow_on_enforced = True
        return True

    # ============================================
    # SESSIONS AND DAYS
    # ============================================

    def is_session_complete(self) -> bool:
        return self.is_test and self.clock.overs_in_session >= self.config.overs_per_session

    def is_day_complete(self) -> bool:
        return (
            self.is_session_complete()
            and self.clock.session >= self.config.sessions_per_day
        )

    def _close_session(self) -> None:
        clock = self.clock
        clock.sessions.append(SessionSnapshot(
            day=clock.day,
            session=clock.session,
            innings_number=self.innings_number,
            batting_team_id=self.batting_team.id,
            runs=clock.session_runs,
            wickets=clock.session_wickets,
            overs=clock.overs_in_session,
            score=self.ledger.score,
            total_wickets=self.ledger.wickets,
        ))
        engine_logger.log_analytics_event("session_complete", {
            "day": clock.day,
            "session": clock.session,
            "runs": clock.session_runs,
            "wickets": clock.session_wickets,
        })
        clock.overs_in_session = 0
        clock.session_runs = 0
        clock.session_wickets = 0

    def _advance_day(self) -> None:
        clock = self.clock
        cfg: TestMatchConfig = self.config
        clock.days.append(DaySummary(
            day=clock.day,
            runs=clock.day_runs,
            wickets=clock.day_wickets,
            overs=clock.overs_today,
            sessions=[s for s in clock.sessions if s.day == clock.day],
        ))
        engine_logger.log_analytics_event("day_complete", {
            "day": clock.day,
            "runs": clock.day_runs,
            "wickets": clock.day_wickets,
            "overs": clock.overs_today,
        })

        clock.day += 1
        clock.session = 1
        clock.overs_today = 0
        clock.day_runs = 0
        clock.day_wickets = 0

        for player in self.bowling_team.players:
            player.fitness = min(100.0, player.fitness + cfg.overnight_fitness_recovery)
        self.conditions.update_pitch_wear(cfg.overnight_wear)
        self.conditions.reset_dew()

    def next_session(self) -> bool:
        """Close the current session; the last session of a day rolls into the next day."""
        if not self.is_test:
            return self._reject("next_session", "sessions only exist in Test matches")
        if self.is_match_complete():
            return self._reject("next_session", "match is complete")

        self._close_session()
        if self.clock.session >= self.config.sessions_per_day:
            self._advance_day()
        else:
            self.clock.session += 1
        return True

    def next_day(self) -> bool:
        """Close the day early (bad light, rain) and start the next one."""
        if not self.is_test:
            return self._reject("next_day", "days only exist in Test matches")
        if self.is_match_complete():
            return self._reject("next_day", "match is complete")

        self._close_session()
        self._advance_day()
        return True

    # ============================================
    # RESULT AND VIEWS
    # ============================================

    def determine_match_result(self) -> Optional[MatchResult]:
        """Result once the match is complete, otherwise None."""
        if self._result is not None:
            return self._result
        if not self.rules.match_complete(self):
            return None
        self._result = self.rules.result(self)
        engine_logger.log_analytics_event("match_complete", {
            "result": self._result.result.value,
            "winner": self._result.winner_id,
            "margin": self._result.margin,
            "innings_played": self.innings_number,
        })
        return self._result

    def innings_summary(self, top_n: int = 3) -> InningsSummary:
        return self.ledger.summary(top_n)

    def snapshot(self) -> MatchSnapshot:
        ledger = self.ledger
        partnership = ledger.partnership.model_copy() if ledger.partnership is not None else None
        complete = self.is_match_complete()
        return MatchSnapshot(
            format=self.config.format,
            innings_number=self.innings_number,
            batting_team_id=self.batting_team.id,
            bowling_team_id=self.bowling_team.id,
            score=ledger.score,
            wickets=ledger.wickets,
            balls=ledger.balls,
            overs=ledger.overs,
            extras=ledger.extras,
            striker_id=ledger.striker.id if ledger.striker else None,
            non_striker_id=ledger.non_striker.id if ledger.non_striker else None,
            bowler_id=ledger.bowler.id if ledger.bowler else None,
            partnership=partnership,
            target=self.target,
            required_run_rate=self.required_run_rate(),
            current_run_rate=self.current_run_rate(),
            runs_needed=self.runs_required(),
            projected_score=self.projected_score(),
            win_probability=self.win_probability(),
            lead=self.lead(),
            day=self.day,
            session=self.session,
            follow_on_enforced=self.follow_on_enforced,
            last_delivery=self.last_delivery,
            innings_complete=self.is_innings_complete(),
            match_complete=complete,
            result=self.determine_match_result() if complete else None,
            innings_summaries=list(self.archive),
        )

    def players(self) -> Dict[str, Participant]:
        return {p.id: p for p in self.home.players + self.away.players}
