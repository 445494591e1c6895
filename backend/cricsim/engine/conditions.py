"""
Match conditions.

Pitch, weather and ground state for a match, exposed as multiplier bundles
that the probability model folds into its outcome table. Wear and dew only
ever grow while a day is in progress; the match state advances them as
overs are bowled.
"""

import random
from typing import Dict, Optional

from pydantic import BaseModel, Field

from cricsim.errors import PreconditionError
from cricsim.schemas.common import (
    Altitude,
    BowlingStyle,
    GroundSize,
    MatchFormat,
    PitchType,
    Weather,
)

# Pitch-type deltas over the neutral bundle
_PITCH_TABLE: Dict[PitchType, Dict[str, float]] = {
    PitchType.BATTING: {
        "boundaries": 1.3, "dot": 0.8, "wickets": 0.7,
        "pace_effectiveness": 0.8, "spin_effectiveness": 0.8,
    },
    PitchType.BOWLING: {
        "boundaries": 0.7, "dot": 1.2, "wickets": 1.4,
        "pace_effectiveness": 1.4, "spin_effectiveness": 0.9,
    },
    PitchType.TURNING: {
        "boundaries": 0.9, "dot": 1.1, "wickets": 1.2,
        "pace_effectiveness": 0.8, "spin_effectiveness": 1.5,
    },
    PitchType.SLOW: {
        "boundaries": 0.8, "one": 1.2, "dot": 1.1, "wickets": 0.9,
        "pace_effectiveness": 0.7,
    },
    PitchType.BOUNCY: {
        "boundaries": 1.1, "wickets": 1.1,
        "pace_effectiveness": 1.3, "spin_effectiveness": 0.9,
    },
    PitchType.BALANCED: {},
}

_WEATHER_TABLE: Dict[Weather, Dict[str, float]] = {
    Weather.SUNNY: {"spin_effectiveness": 1.1},
    Weather.OVERCAST: {"swing": 1.5, "pace_effectiveness": 1.2, "visibility": 0.9},
    Weather.HUMID: {"stamina_drain": 1.4, "swing": 1.2},
    Weather.RAIN: {"swing": 1.3, "pace_effectiveness": 0.8, "spin_effectiveness": 0.7},
    Weather.WINDY: {"swing": 0.8, "spin_effectiveness": 0.9},
}

_GROUND_TABLE: Dict[GroundSize, Dict[str, float]] = {
    GroundSize.SMALL: {"six": 1.5, "four": 1.3, "two": 0.8, "three": 0.7},
    GroundSize.MEDIUM: {},
    GroundSize.LARGE: {"six": 0.6, "four": 0.8, "two": 1.3, "three": 1.5},
}

MIN_EFFECTIVENESS = 0.5
MAX_EFFECTIVENESS = 2.0


class MatchConditions(BaseModel):
    """Environmental state of a match."""

    pitch_type: PitchType = PitchType.BALANCED
    weather: Weather = Weather.SUNNY
    ground_size: GroundSize = GroundSize.MEDIUM
    altitude: Altitude = Altitude.SEA_LEVEL
    pitch_wear: float = Field(0.0, ge=0, le=100)
    dew_factor: float = Field(0.0, ge=0, le=100)

    def pitch_modifiers(self) -> Dict[str, float]:
        """Modifiers from pitch type and wear."""
        modifiers = {
            "dot": 1.0,
            "one": 1.0,
            "boundaries": 1.0,
            "wickets": 1.0,
            "pace_effectiveness": 1.0,
            "spin_effectiveness": 1.0,
        }
        modifiers.update(_PITCH_TABLE[self.pitch_type])

        # Worn pitches turn more, seam less and slow the ball down
        wear = self.pitch_wear / 100
        modifiers["spin_effectiveness"] *= 1 + wear * 0.5
        modifiers["pace_effectiveness"] *= 1 - wear * 0.3
        modifiers["boundaries"] *= 1 - wear * 0.2
        return modifiers

    def weather_modifiers(self) -> Dict[str, float]:
        """Modifiers from weather and dew."""
        modifiers = {
            "swing": 1.0,
            "pace_effectiveness": 1.0,
            "spin_effectiveness": 1.0,
            "visibility": 1.0,
            "stamina_drain": 1.0,
        }
        modifiers.update(_WEATHER_TABLE[self.weather])

        if self.dew_factor > 0:
            dew = self.dew_factor / 100
            modifiers["swing"] *= 1 - dew * 0.3
            modifiers["spin_effectiveness"] *= 1 - dew * 0.4
            modifiers["pace_effectiveness"] *= 1 + dew * 0.2
        return modifiers

    def ground_modifiers(self) -> Dict[str, float]:
        """Modifiers from ground size and altitude."""
        modifiers = {"six": 1.0, "four": 1.0, "two": 1.0, "three": 1.0}
        modifiers.update(_GROUND_TABLE[self.ground_size])

        if self.altitude == Altitude.HIGH:
            modifiers["six"] *= 1.2
            modifiers["four"] *= 1.1
        return modifiers

    def all_modifiers(self) -> Dict[str, Dict[str, float]]:
        return {
            "pitch": self.pitch_modifiers(),
            "weather": self.weather_modifiers(),
            "ground": self.ground_modifiers(),
        }

    def bowling_effectiveness(self, style: Optional[BowlingStyle]) -> float:
        """Combined pitch and weather multiplier for a bowling style."""
        if style is None:
            return 1.0
        if style.is_pace:
            value = self.pitch_modifiers()["pace_effectiveness"] * self.weather_modifiers()["pace_effectiveness"]
        elif style.is_spin:
            value = self.pitch_modifiers()["spin_effectiveness"] * self.weather_modifiers()["spin_effectiveness"]
        else:
            return 1.0
        return max(MIN_EFFECTIVENESS, min(MAX_EFFECTIVENESS, value))

    def update_pitch_wear(self, amount: float) -> float:
        """Wear the pitch by ``amount`` (capped at 100) and return the new value."""
        if amount < 0:
            raise PreconditionError("pitch wear cannot decrease")
        self.pitch_wear = min(100.0, self.pitch_wear + amount)
        return self.pitch_wear

    def update_dew_factor(self, amount: float) -> float:
        """Add ``amount`` of dew (capped at 100) and return the new value."""
        if amount < 0:
            raise PreconditionError("dew factor cannot decrease during play")
        self.dew_factor = min(100.0, self.dew_factor + amount)
        return self.dew_factor

    def reset_dew(self) -> None:
        """Dry outfield at the start of a new day or innings."""
        self.dew_factor = 0.0

    @classmethod
    def generate_random(
        cls,
        match_format: MatchFormat = MatchFormat.LIMITED,
        rng: Optional[random.Random] = None,
    ) -> "MatchConditions":
        """Random conditions drawn from ``rng``."""
        rng = rng or random.Random()
        pitch = rng.choice(list(PitchType))
        weather = rng.choice(list(Weather))
        ground = rng.choice(list(GroundSize))
        altitude = Altitude.HIGH if rng.random() < 0.1 else Altitude.SEA_LEVEL

        # Evening dew is a limited-overs phenomenon
        dew = 0.0
        if match_format == MatchFormat.LIMITED and rng.random() < 0.3:
            dew = float(rng.randrange(30))

        return cls(
            pitch_type=pitch,
            weather=weather,
            ground_size=ground,
            altitude=altitude,
            pitch_wear=0.0,
            dew_factor=dew,
        )

    def description(self) -> str:
        parts = [f"Pitch: {self.pitch_type.value}", f"Weather: {self.weather.value}"]
        if self.pitch_wear > 50:
            parts.append("Pitch showing signs of wear")
        if self.dew_factor > 30:
            parts.append("Dew settling in")
        parts.append(f"Ground: {self.ground_size.value}")
        if self.altitude == Altitude.HIGH:
            parts.append("High altitude")
        return ", ".join(parts)
