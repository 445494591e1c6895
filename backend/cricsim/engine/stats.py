"""Scorecard arithmetic and top-N listings."""

from typing import Dict, List, Optional, Sequence

from cricsim.schemas.match import BatterLine, BowlerLine
from cricsim.schemas.player import BatsmanStat, BowlerStat, Participant

BALLS_PER_OVER = 6
MAX_WICKETS = 10

# (required rate ceiling, win chance) for a chase; steeper asks fall to CHASE_FLOOR
CHASE_BANDS = ((4, 85), (6, 70), (8, 55), (10, 35), (12, 20))
CHASE_FLOOR = 10
MOMENTUM_SWING = 10


def balls_to_overs(balls: int) -> str:
    """Cricket over notation, e.g. 87 balls -> "14.3"."""
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"


def format_score(runs: int, wickets: int, declared: bool = False) -> str:
    if wickets >= MAX_WICKETS:
        return str(runs)
    score = f"{runs}/{wickets}"
    return f"{score}d" if declared else score


def run_rate(runs: int, balls: int) -> float:
    if balls == 0:
        return 0.0
    return round(runs / balls * BALLS_PER_OVER, 2)


def strike_rate(runs: int, balls: int) -> float:
    if balls == 0:
        return 0.0
    return round(runs / balls * 100, 2)


def economy(runs: int, balls: int) -> float:
    return run_rate(runs, balls)


def required_run_rate(target: int, score: int, balls_remaining: int) -> Optional[float]:
    """Runs per over still needed; None once the chase is won or no balls remain."""
    needed = target - score
    if needed <= 0 or balls_remaining <= 0:
        return None
    return round(needed / balls_remaining * BALLS_PER_OVER, 2)


def projected_score(runs: int, balls: int, total_balls: int) -> int:
    """Final total if the current run rate holds for the rest of the innings."""
    if balls == 0:
        return 0
    return round(runs + runs / balls * (total_balls - balls))


def win_probability(runs_needed: int, balls_remaining: int, wickets_in_hand: int, current_rate: float) -> int:
    """
    Chasing side's chance of winning, in percent.

    Banded on the required rate, scaled by wickets in hand and moved ten
    points either way by momentum (current rate against required rate).
    100 once the target is reached, 0 with no wickets or balls left,
    otherwise clamped to 5-95.
    """
    if runs_needed <= 0:
        return 100
    if wickets_in_hand <= 0 or balls_remaining <= 0:
        return 0

    required = runs_needed / balls_remaining * BALLS_PER_OVER
    probability = next(
        (chance for ceiling, chance in CHASE_BANDS if required <= ceiling),
        CHASE_FLOOR,
    )
    probability *= 0.5 + wickets_in_hand / MAX_WICKETS * 0.5
    if current_rate > required:
        probability += MOMENTUM_SWING
    elif current_rate < required * 0.7:
        probability -= MOMENTUM_SWING
    return max(5, min(95, round(probability)))


def check_milestone(previous: int, current: int, milestones: Sequence[int]) -> Optional[int]:
    """Highest milestone passed when a score moves from ``previous`` to ``current``."""
    crossed = [m for m in milestones if previous < m <= current]
    return max(crossed) if crossed else None


def top_batters(
    stats: Dict[str, BatsmanStat],
    players: Dict[str, Participant],
    n: int = 3,
) -> List[BatterLine]:
    """Highest scorers, fewer balls first on equal runs."""
    ranked = sorted(
        (s for s in stats.values() if s.balls > 0 or s.runs > 0 or s.is_out),
        key=lambda s: (-s.runs, s.balls),
    )
    return [
        BatterLine(
            player_id=s.player_id,
            name=players[s.player_id].name if s.player_id in players else s.player_id,
            runs=s.runs,
            balls=s.balls,
            fours=s.fours,
            sixes=s.sixes,
            strike_rate=s.strike_rate,
            is_out=s.is_out,
            dismissal=s.dismissal,
        )
        for s in ranked[:n]
    ]


def top_bowlers(
    stats: Dict[str, BowlerStat],
    players: Dict[str, Participant],
    n: int = 3,
) -> List[BowlerLine]:
    """Most wickets, cheapest first on equal wickets."""
    ranked = sorted(
        (s for s in stats.values() if s.balls > 0 or s.runs > 0),
        key=lambda s: (-s.wickets, s.economy),
    )
    return [
        BowlerLine(
            player_id=s.player_id,
            name=players[s.player_id].name if s.player_id in players else s.player_id,
            overs=s.overs_display,
            maidens=s.maidens,
            runs=s.runs,
            wickets=s.wickets,
            economy=s.economy,
        )
        for s in ranked[:n]
    ]
