"""Match and simulation schemas."""

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cricsim.schemas.common import (
    AdvanceUntil,
    DismissalType,
    OutcomeKind,
    OUTCOME_RUNS,
    ResultType,
)
from cricsim.schemas.player import BatsmanStat, BowlerStat, Participant
from cricsim.engine.conditions import MatchConditions


# ============================================
# BALL OUTCOME SCHEMAS
# ============================================

_EXTRAS = (OutcomeKind.WIDE, OutcomeKind.NO_BALL)


class BallOutcome(BaseModel):
    """The result of one delivery. Immutable once produced."""
    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    runs: int = Field(0, ge=0, le=6)
    is_legal_delivery: bool = True
    dismissal: Optional[DismissalType] = None

    @model_validator(mode="after")
    def check_consistency(self) -> "BallOutcome":
        if self.runs != OUTCOME_RUNS[self.kind]:
            raise ValueError(f"{self.kind.value} carries {OUTCOME_RUNS[self.kind]} runs, not {self.runs}")
        if self.is_legal_delivery == (self.kind in _EXTRAS):
            raise ValueError(f"{self.kind.value} has the wrong legality flag")
        if (self.dismissal is not None) != (self.kind == OutcomeKind.WICKET):
            raise ValueError("dismissal must be set exactly when the outcome is a wicket")
        return self

    @classmethod
    def of(cls, kind: OutcomeKind, dismissal: Optional[DismissalType] = None) -> "BallOutcome":
        """Build a consistent outcome for ``kind``."""
        return cls(
            kind=kind,
            runs=OUTCOME_RUNS[kind],
            is_legal_delivery=kind not in _EXTRAS,
            dismissal=dismissal if kind == OutcomeKind.WICKET else None,
        )

    @property
    def is_wicket(self) -> bool:
        return self.kind == OutcomeKind.WICKET

    @property
    def is_boundary(self) -> bool:
        return self.kind in (OutcomeKind.FOUR, OutcomeKind.SIX)


class BallRecord(BaseModel):
    """A delivery as applied to the match state."""
    model_config = ConfigDict(frozen=True)

    innings_number: int
    over: int  # Completed overs before this delivery
    label: str  # e.g. "14.3" after the delivery
    batter_id: str
    bowler_id: str
    outcome: BallOutcome
    fielder_id: Optional[str] = None
    dismissal_text: Optional[str] = None
    score: int
    wickets: int
    strike_rotated: bool = False
    over_completed: bool = False
    innings_complete: bool = False


class OverSummary(BaseModel):
    """Summary of a completed over."""
    over_number: int
    bowler_id: str
    runs: int
    wickets: int
    maiden: bool


# ============================================
# INNINGS RECORDS
# ============================================

class FallOfWicket(BaseModel):
    """Record of a wicket falling."""
    model_config = ConfigDict(frozen=True)

    player_id: str
    player_name: str
    score: int  # Team score when wicket fell
    wicket_number: int
    over: str  # e.g. "14.3"


class Partnership(BaseModel):
    """Runs and balls added by the current pair of not-out batters."""
    batter_ids: List[str]
    runs: int = 0
    balls: int = 0


class BatterLine(BaseModel):
    """Batter entry in a top-N listing."""
    player_id: str
    name: str
    runs: int
    balls: int
    fours: int
    sixes: int
    strike_rate: float
    is_out: bool
    dismissal: Optional[str] = None


class BowlerLine(BaseModel):
    """Bowler entry in a top-N listing."""
    player_id: str
    name: str
    overs: str
    maidens: int
    runs: int
    wickets: int
    economy: float


class InningsSummary(BaseModel):
    """Archived record of a finished innings. Never mutated after archival."""
    model_config = ConfigDict(frozen=True)

    innings_number: int
    batting_team_id: str
    bowling_team_id: str
    runs: int
    wickets: int
    balls: int
    overs: str
    extras: int
    declared: bool = False
    fall_of_wickets: List[FallOfWicket] = []
    partnerships: List[Partnership] = []
    top_batters: List[BatterLine] = []
    top_bowlers: List[BowlerLine] = []
    batsman_stats: Dict[str, BatsmanStat] = {}
    bowler_stats: Dict[str, BowlerStat] = {}


class SessionSnapshot(BaseModel):
    """Statistics for one Test session."""
    model_config = ConfigDict(frozen=True)

    day: int
    session: int
    innings_number: int
    batting_team_id: str
    runs: int  # Scored in the session
    wickets: int  # Fallen in the session
    overs: int  # Bowled in the session
    score: int  # Innings score at the break
    total_wickets: int


class DaySummary(BaseModel):
    """Statistics for one Test day."""
    model_config = ConfigDict(frozen=True)

    day: int
    runs: int
    wickets: int
    overs: int
    sessions: List[SessionSnapshot]


class MatchResult(BaseModel):
    """Final outcome of a match."""
    model_config = ConfigDict(frozen=True)

    result: ResultType
    winner_id: Optional[str] = None
    margin: Optional[str] = None
    description: str


# ============================================
# TEAMS AND CONFIGURATION
# ============================================

class Team(BaseModel):
    """A side's playing line-up, in batting order."""
    id: str
    name: str
    players: List[Participant] = Field(min_length=11, max_length=11)


class FeedbackConfig(BaseModel):
    """Confidence and fitness feedback applied as deliveries are played."""
    wicket_confidence_loss: float = 10
    confidence_floor: float = 20
    wicket_taker_confidence_gain: float = 15
    boundary_confidence_gain: float = 5
    milestone_confidence_gain: float = 10
    milestones: List[int] = [50, 100, 150, 200]
    fatigue_interval_balls: int = 18  # Legal balls bowled between fitness drains
    fatigue_drain: float = 3
    fitness_floor: float = 50


class SpellRules(BaseModel):
    """Spell length and rest rules for the bowling scheduler."""
    pace_spell_limit: int = 8
    pace_spell_max: int = 10
    spin_spell_limit: int = 12
    spin_spell_max: int = 15
    wicket_extension: int = 2  # Wickets in the spell that earn an extension
    economy_extension: float = 3.0  # Spell economy below this earns an extension
    fitness_floor: float = 60
    pace_rest_overs: int = 10
    spin_rest_overs: int = 5
    opening_phase_end: int = 10
    first_change_phase_end: int = 25


class LimitedOversConfig(BaseModel):
    """One innings per side with a fixed number of overs."""
    format: Literal["limited"] = "limited"
    overs: int = Field(20, ge=1, le=50)
    bowler_quota: Optional[int] = Field(None, ge=1)  # Defaults to a fifth of the overs
    wear_per_over: float = 0.3
    dew_after_over: int = 10
    dew_per_over: float = 2.0

    @property
    def max_innings(self) -> int:
        return 2

    def quota(self) -> int:
        if self.bowler_quota is not None:
            return self.bowler_quota
        return max(1, -(-self.overs // 5))


class TestMatchConfig(BaseModel):
    """Multi-day match with up to two innings per side."""
    __test__ = False  # Not a pytest class

    format: Literal["test"] = "test"
    days: int = Field(5, ge=1, le=5)
    sessions_per_day: int = 3
    overs_per_session: int = Field(30, ge=1)
    follow_on_margin: int = 200
    declaration_min_overs: int = 60
    declaration_first_innings_score: int = 350
    declaration_lead: int = 300
    overnight_fitness_recovery: float = 15
    wear_per_over: float = 0.25
    overnight_wear: float = 5.0

    @property
    def max_innings(self) -> int:
        return 4


MatchConfig = Annotated[
    Union[LimitedOversConfig, TestMatchConfig],
    Field(discriminator="format"),
]


# ============================================
# SNAPSHOTS
# ============================================

class MatchSnapshot(BaseModel):
    """Immutable view of the match published to observers after each step."""
    model_config = ConfigDict(frozen=True)

    format: str
    innings_number: int
    batting_team_id: str
    bowling_team_id: str
    score: int
    wickets: int
    balls: int
    overs: str
    extras: int
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
    partnership: Optional[Partnership] = None
    target: Optional[int] = None
    required_run_rate: Optional[float] = None
    current_run_rate: float = 0.0
    runs_needed: Optional[int] = None
    projected_score: Optional[int] = None  # Limited-overs first innings
    win_probability: Optional[int] = None  # Limited-overs chase, percent
    lead: Optional[int] = None  # Tests from innings 2; negative when trailing
    day: Optional[int] = None
    session: Optional[int] = None
    follow_on_enforced: bool = False
    last_delivery: Optional[BallRecord] = None
    innings_complete: bool = False
    match_complete: bool = False
    result: Optional[MatchResult] = None
    innings_summaries: List[InningsSummary] = []


# ============================================
# API REQUEST/RESPONSE SCHEMAS
# ============================================

class CreateMatchRequest(BaseModel):
    """Request to start a new match."""
    home: Team
    away: Team
    batting_first_id: str
    config: MatchConfig = Field(default_factory=LimitedOversConfig)
    conditions: Optional[MatchConditions] = None  # Random when omitted
    seed: Optional[int] = None


class CreateMatchResponse(BaseModel):
    """Response after creating a match."""
    match_id: str
    conditions: MatchConditions
    snapshot: MatchSnapshot


class AdvanceRequest(BaseModel):
    """Request to bowl deliveries up to a boundary."""
    until: AdvanceUntil = AdvanceUntil.OVER
    max_balls: Optional[int] = Field(None, ge=1)


class AdvanceResponse(BaseModel):
    """Deliveries bowled and the resulting snapshot."""
    deliveries: List[BallRecord]
    snapshot: MatchSnapshot


class TransitionResponse(BaseModel):
    """Whether a requested state transition was accepted."""
    accepted: bool
    snapshot: MatchSnapshot


class MatchResultResponse(BaseModel):
    """Result once the match is complete."""
    complete: bool
    result: Optional[MatchResult] = None
