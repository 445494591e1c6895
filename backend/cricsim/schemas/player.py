"""Player-related schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cricsim.schemas.common import (
    PlayerRole,
    BattingStyle,
    BowlingStyle,
)


class BattingSkills(BaseModel):
    """Batting skill attributes (1-100 each)."""
    timing: int = Field(50, ge=1, le=100, description="Finding gaps, placement")
    power: int = Field(50, ge=1, le=100, description="Boundary hitting ability")
    technique: int = Field(50, ge=1, le=100, description="Ability to survive, play proper shots")
    temperament: int = Field(50, ge=1, le=100, description="Patience over a long innings")
    style: BattingStyle = BattingStyle.BALANCED


class BowlingSkills(BaseModel):
    """Bowling skill attributes (1-100 each)."""
    pace: int = Field(50, ge=1, le=100, description="Pace or spin sharpness")
    accuracy: int = Field(50, ge=1, le=100, description="Line and length consistency")
    variation: int = Field(50, ge=1, le=100, description="Different deliveries in arsenal")
    stamina: int = Field(50, ge=1, le=100, description="Maintain quality over long spells")
    style: BowlingStyle = BowlingStyle.MEDIUM


class FieldingSkills(BaseModel):
    """Fielding skill attributes (1-100 each)."""
    catching: int = Field(50, ge=1, le=100)
    throwing: int = Field(50, ge=1, le=100)
    agility: int = Field(50, ge=1, le=100)


class MentalSkills(BaseModel):
    """Mental attributes (1-100 each)."""
    concentration: int = Field(50, ge=1, le=100)
    pressure: int = Field(50, ge=1, le=100)
    adaptability: int = Field(50, ge=1, le=100)


def _clamp_state(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class Participant(BaseModel):
    """
    A player taking part in a match.

    Ratings are fixed for the match. ``form``, ``fitness`` and ``confidence``
    are short-term state: while a match is running the match state machine is
    their only writer, everything else reads them between deliveries.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str
    role: PlayerRole

    # Skills
    batting: BattingSkills = Field(default_factory=BattingSkills)
    bowling: BowlingSkills = Field(default_factory=BowlingSkills)
    fielding: FieldingSkills = Field(default_factory=FieldingSkills)
    mental: MentalSkills = Field(default_factory=MentalSkills)

    # Dynamic state (0-100, clamped)
    form: float = 50.0
    fitness: float = 100.0
    confidence: float = 50.0

    @field_validator("form", "fitness", "confidence", mode="before")
    @classmethod
    def clamp_state(cls, value: float) -> float:
        return _clamp_state(value)

    def batting_rating(self) -> int:
        b = self.batting
        return round((b.timing + b.power + b.technique + b.temperament) / 4)

    def bowling_rating(self) -> int:
        b = self.bowling
        return round((b.pace + b.accuracy + b.variation + b.stamina) / 4)

    def fielding_rating(self) -> int:
        f = self.fielding
        return round((f.catching + f.throwing + f.agility) / 3)

    def overall_rating(self) -> int:
        """Role-weighted blend of the rating groups."""
        if self.role == PlayerRole.BATTER:
            return round(self.batting_rating() * 0.7 + self.fielding_rating() * 0.3)
        if self.role == PlayerRole.BOWLER:
            return round(self.bowling_rating() * 0.7 + self.fielding_rating() * 0.3)
        if self.role == PlayerRole.ALL_ROUNDER:
            return round(
                self.batting_rating() * 0.4
                + self.bowling_rating() * 0.4
                + self.fielding_rating() * 0.2
            )
        return round(self.batting_rating() * 0.5 + self.fielding_rating() * 0.5)

    @property
    def is_spinner(self) -> bool:
        return self.bowling.style.is_spin

    @property
    def is_pace(self) -> bool:
        return self.bowling.style.is_pace


class BatsmanStat(BaseModel):
    """Individual batter stats for an innings."""
    player_id: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    is_out: bool = False
    dismissal: Optional[str] = None

    @property
    def strike_rate(self) -> float:
        if self.balls == 0:
            return 0.0
        return round(self.runs / self.balls * 100, 2)


class BowlerStat(BaseModel):
    """Individual bowler stats for an innings."""
    player_id: str
    balls: int = 0  # Legal deliveries
    overs: int = 0  # Completed overs
    maidens: int = 0
    runs: int = 0
    wickets: int = 0
    dots: int = 0
    wides: int = 0
    no_balls: int = 0

    # Current over bookkeeping
    over_balls: int = 0
    over_runs: int = 0

    @property
    def overs_display(self) -> str:
        return f"{self.balls // 6}.{self.balls % 6}"

    @property
    def economy(self) -> float:
        if self.balls == 0:
            return 0.0
        return round(self.runs / self.balls * 6, 2)
