"""
Probability Model for Cricket Match Simulation.

Loads parameters from YAML and calculates outcome probabilities
based on player skills, match conditions and match context.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import yaml

from cricsim.config import get_settings
from cricsim.engine.conditions import MatchConditions
from cricsim.schemas.common import BowlingStyle, MatchFormat, MatchPhase
from cricsim.schemas.player import Participant

OUTCOME_KEYS = ("dot", "one", "two", "three", "four", "six", "wicket", "wide", "no_ball")


@dataclass
class SimulationContext:
    """All context needed for probability calculation."""
    striker: Participant
    bowler: Participant
    conditions: MatchConditions
    match_format: MatchFormat
    over: int  # Completed overs in the innings
    total_overs: Optional[int] = None  # Limited overs only
    balls_faced: int = 0  # By this batter
    day: Optional[int] = None
    session: Optional[int] = None
    innings_number: int = 1


def get_phase(over: int, total_overs: int, powerplay_fraction: float = 0.3, death_fraction: float = 0.8) -> MatchPhase:
    """Phase of a limited-overs innings for a given completed-over count."""
    if over < total_overs * powerplay_fraction:
        return MatchPhase.POWERPLAY
    if over >= total_overs * death_fraction:
        return MatchPhase.DEATH
    return MatchPhase.MIDDLE


def normalize(probs: Dict[str, float]) -> Dict[str, float]:
    """Proportionally rescale probabilities to sum to 100."""
    total = sum(probs.values())
    if total <= 0:
        raise ValueError("cannot normalise an empty probability table")
    return {k: v / total * 100 for k, v in probs.items()}


class ProbabilityModel:
    """
    Calculate outcome probabilities based on loaded YAML parameters.

    Applies modifiers in this order:
    1. Base outcomes for the format
    2. Skill differential
    3. Batting style
    4. Psychology (patience and concentration in Tests, form, confidence)
    5. Pitch, ground and bowling-style effectiveness
    6. Phase (limited) or new ball, session and day (Test)
    7. Bowler and batter fatigue
    8. Normalisation to 100
    """

    def __init__(self, params_path: Optional[Path] = None):
        if params_path is None:
            params_path = get_settings().probability_params_path

        with open(params_path) as f:
            self.params = yaml.safe_load(f)

    def calculate_probabilities(self, ctx: SimulationContext) -> Dict[str, float]:
        """Calculate outcome probabilities (percentages) for a single ball."""
        fmt = ctx.match_format.value
        probs = {k: float(v) for k, v in self.params["base_outcomes"][fmt].items()}

        probs = self._apply_skill_modifiers(probs, ctx)

        style_mods = self.params["batting_styles"][fmt].get(ctx.striker.batting.style.value, {})
        probs = self._apply_mods(probs, style_mods)

        probs = self._apply_psychology(probs, ctx)
        probs = self._apply_conditions(probs, ctx)

        if ctx.match_format == MatchFormat.LIMITED:
            probs = self._apply_phase(probs, ctx)
        else:
            probs = self._apply_test_situation(probs, ctx)

        probs = self._apply_fatigue(probs, ctx)

        return normalize(probs)

    def _apply_mods(self, probs: Dict[str, float], mods: Dict[str, float]) -> Dict[str, float]:
        """Multiply each named rate by its modifier."""
        result = dict(probs)
        for key, value in mods.items():
            result[key] *= value
        return result

    def _apply_skill_modifiers(self, probs: Dict[str, float], ctx: SimulationContext) -> Dict[str, float]:
        """Apply skill differential to probabilities."""
        skill = self.params["skill"]
        limit = skill["max_factor"]
        diff = ctx.striker.batting_rating() - ctx.bowler.bowling_rating()
        factor = max(-limit, min(limit, diff / 100))

        coeffs = skill[ctx.match_format.value]
        result = dict(probs)
        result["dot"] *= 1 - factor * coeffs["dot"]
        result["four"] *= 1 + factor * coeffs["four"]
        result["six"] *= 1 + factor * coeffs["six"]
        result["wicket"] *= 1 - factor * coeffs["wicket"]
        return result

    def _apply_psychology(self, probs: Dict[str, float], ctx: SimulationContext) -> Dict[str, float]:
        """Patience, concentration, form and confidence."""
        fmt = ctx.match_format.value
        striker = ctx.striker
        result = dict(probs)

        if ctx.match_format == MatchFormat.TEST:
            psych = self.params["test_psychology"]
            patience = striker.batting.temperament / 100
            p = psych["patience"]
            result["dot"] *= p["dot_base"] + patience * p["dot_scale"]
            result["wicket"] *= p["wicket_base"] - patience * p["wicket_scale"]

            concentration = striker.mental.concentration / 100
            c = psych["concentration"]
            result["wicket"] *= c["wicket_base"] - concentration * c["wicket_scale"]

        form_factor = (striker.form - 50) / 100
        form = self.params["form"][fmt]
        result["dot"] *= 1 - form_factor * form["dot"]
        result["four"] *= 1 + form_factor * form["four"]
        result["six"] *= 1 + form_factor * form["six"]

        confidence_factor = (striker.confidence - 50) / 100
        conf = self.params["confidence"][fmt]
        result["wicket"] *= 1 - confidence_factor * conf["wicket"]
        result["four"] *= 1 + confidence_factor * conf["four"]
        return result

    def _apply_conditions(self, probs: Dict[str, float], ctx: SimulationContext) -> Dict[str, float]:
        """Pitch, ground and bowling-style effectiveness."""
        conditions = ctx.conditions
        pitch = conditions.pitch_modifiers()
        ground = conditions.ground_modifiers()
        result = dict(probs)

        result["dot"] *= pitch["dot"]
        result["one"] *= pitch["one"]
        result["two"] *= ground["two"]
        result["three"] *= ground["three"]
        result["four"] *= pitch["boundaries"] * ground["four"]
        result["six"] *= pitch["boundaries"] * ground["six"]
        result["wicket"] *= pitch["wickets"]

        # Effectiveness is clamped to [0.5, 2.0]; boundaries take the reciprocal
        effectiveness = conditions.bowling_effectiveness(ctx.bowler.bowling.style)
        result["wicket"] *= effectiveness
        result["dot"] *= effectiveness
        result["four"] /= effectiveness
        result["six"] /= effectiveness
        return result

    def _apply_phase(self, probs: Dict[str, float], ctx: SimulationContext) -> Dict[str, float]:
        phases = self.params["phase_modifiers"]
        total = ctx.total_overs or get_settings().default_overs
        phase = get_phase(ctx.over, total, phases["powerplay_fraction"], phases["death_fraction"])
        return self._apply_mods(probs, phases[phase.value])

    def _apply_test_situation(self, probs: Dict[str, float], ctx: SimulationContext) -> Dict[str, float]:
        """New ball, session, day and later-innings effects."""
        style: BowlingStyle = ctx.bowler.bowling.style
        result = dict(probs)

        new_ball = self.params["new_ball"]
        ball_age = ctx.over % new_ball["cycle_overs"]
        if ball_age < new_ball["new_window"]:
            if style.is_pace:
                result = self._apply_mods(result, new_ball["new_pace"])
        elif ball_age > new_ball["old_after"]:
            if style.is_spin:
                result = self._apply_mods(result, new_ball["old_spin"])
            else:
                result = self._apply_mods(result, new_ball["old_other"])

        if ctx.session is not None:
            result = self._apply_mods(result, self.params["sessions"].get(ctx.session, {}))

        days = self.params["days"]
        if ctx.day is not None:
            if ctx.day <= days["early_days"] and style.is_pace:
                result = self._apply_mods(result, days["early_pace"])
            if ctx.day >= days["spin_from_day"] and style.is_spin:
                result = self._apply_mods(result, days["late_spin"])

        if ctx.innings_number >= days["later_innings_from"]:
            result = self._apply_mods(result, days["later_innings"])
        return result

    def _apply_fatigue(self, probs: Dict[str, float], ctx: SimulationContext) -> Dict[str, float]:
        fatigue = self.params["fatigue"]
        result = dict(probs)

        bowler = fatigue["bowler"]
        if ctx.bowler.fitness < bowler["fitness_threshold"]:
            ff = (100 - ctx.bowler.fitness) / 100
            result["four"] *= 1 + ff * bowler["boundary_scale"]
            result["six"] *= 1 + ff * bowler["boundary_scale"]
            result["wicket"] *= 1 - ff * bowler["wicket_scale"]

        # Long innings wear down the batter in multi-day play
        batter = fatigue["batter"]
        if ctx.match_format == MatchFormat.TEST and ctx.balls_faced > batter["balls_threshold"]:
            level = min((ctx.balls_faced - batter["balls_threshold"]) / batter["ramp_balls"], batter["max_level"])
            result["wicket"] *= 1 + level * batter["wicket_scale"]
            result["dot"] *= 1 + level * batter["dot_scale"]
        return result

    def dismissal_probabilities(self, match_format: MatchFormat, style: Optional[BowlingStyle]) -> Dict[str, float]:
        """Wicket-kind table for a bowling style, normalised to 100."""
        table = self.params["dismissals"]
        probs = {k: float(v) for k, v in table[match_format.value].items()}
        if style is not None and style.is_pace:
            probs = self._apply_mods(probs, table["pace"])
        elif style is not None and style.is_spin:
            probs = self._apply_mods(probs, table["spin"])
        return normalize(probs)

    @property
    def keeper_catch_bonus(self) -> float:
        return self.params["fielding"]["keeper_catch_bonus"]


@lru_cache
def get_probability_model() -> ProbabilityModel:
    """Get cached probability model instance."""
    return ProbabilityModel()
