"""Common types and enums used across schemas."""

from enum import Enum


# Player enums
class PlayerRole(str, Enum):
    BATTER = "batter"
    BOWLER = "bowler"
    ALL_ROUNDER = "all_rounder"
    WICKET_KEEPER = "wicket_keeper"


class BattingStyle(str, Enum):
    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"
    DEFENSIVE = "defensive"
    ANCHOR = "anchor"


class BowlingStyle(str, Enum):
    FAST = "fast"
    FAST_MEDIUM = "fast_medium"
    MEDIUM = "medium"
    OFF_SPIN = "off_spin"
    LEG_SPIN = "leg_spin"
    LEFT_ARM_SPIN = "left_arm_spin"

    @property
    def is_spin(self) -> bool:
        return self in (BowlingStyle.OFF_SPIN, BowlingStyle.LEG_SPIN, BowlingStyle.LEFT_ARM_SPIN)

    @property
    def is_pace(self) -> bool:
        """Fast and fast-medium; medium pacers get no pace/spin condition bonus."""
        return self in (BowlingStyle.FAST, BowlingStyle.FAST_MEDIUM)


# Condition enums
class PitchType(str, Enum):
    BATTING = "batting"
    BOWLING = "bowling"
    BALANCED = "balanced"
    TURNING = "turning"
    SLOW = "slow"
    BOUNCY = "bouncy"


class Weather(str, Enum):
    SUNNY = "sunny"
    OVERCAST = "overcast"
    HUMID = "humid"
    RAIN = "rain"
    WINDY = "windy"


class GroundSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Altitude(str, Enum):
    SEA_LEVEL = "sea_level"
    HIGH = "high"


# Match enums
class MatchFormat(str, Enum):
    LIMITED = "limited"
    TEST = "test"


class MatchPhase(str, Enum):
    POWERPLAY = "powerplay"
    MIDDLE = "middle"
    DEATH = "death"


class OutcomeKind(str, Enum):
    DOT = "dot"
    ONE = "one"
    TWO = "two"
    THREE = "three"
    FOUR = "four"
    SIX = "six"
    WICKET = "wicket"
    WIDE = "wide"
    NO_BALL = "no_ball"


class DismissalType(str, Enum):
    BOWLED = "bowled"
    CAUGHT = "caught"
    LBW = "lbw"
    RUN_OUT = "run_out"
    STUMPED = "stumped"
    HIT_WICKET = "hit_wicket"


class ResultType(str, Enum):
    WIN = "win"
    DRAW = "draw"
    TIE = "tie"


class AdvanceUntil(str, Enum):
    BALL = "ball"
    OVER = "over"
    SESSION = "session"
    INNINGS = "innings"


# Runs carried by each outcome kind
OUTCOME_RUNS = {
    OutcomeKind.DOT: 0,
    OutcomeKind.ONE: 1,
    OutcomeKind.TWO: 2,
    OutcomeKind.THREE: 3,
    OutcomeKind.FOUR: 4,
    OutcomeKind.SIX: 6,
    OutcomeKind.WICKET: 0,
    OutcomeKind.WIDE: 1,
    OutcomeKind.NO_BALL: 1,
}
