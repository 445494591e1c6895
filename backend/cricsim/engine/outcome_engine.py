"""
Outcome Engine.

Turns the probability table for the current delivery into a concrete
BallOutcome, and picks the fielder involved in a dismissal. All sampling
draws from one injected random.Random so a seeded match is reproducible.
"""

import random
from typing import TYPE_CHECKING, Dict, List, Optional

from cricsim.engine.conditions import MatchConditions
from cricsim.engine.probability_model import (
    ProbabilityModel,
    SimulationContext,
    get_probability_model,
    normalize,
)
from cricsim.errors import PreconditionError
from cricsim.schemas.common import DismissalType, OutcomeKind, PlayerRole
from cricsim.schemas.match import BallOutcome
from cricsim.schemas.player import Participant

if TYPE_CHECKING:
    from cricsim.engine.match_state import MatchState


class OutcomeEngine:
    """Sample ball outcomes from the probability model."""

    def __init__(self, model: Optional[ProbabilityModel] = None, rng: Optional[random.Random] = None):
        self.model = model or get_probability_model()
        self.rng = rng or random.Random()

    def build_context(
        self,
        batter: Participant,
        bowler: Participant,
        state: "MatchState",
        conditions: MatchConditions,
    ) -> SimulationContext:
        """Collect what the probability model needs from the live match."""
        ledger = state.ledger
        return SimulationContext(
            striker=batter,
            bowler=bowler,
            conditions=conditions,
            match_format=state.match_format,
            over=ledger.completed_overs,
            total_overs=state.total_overs,
            balls_faced=ledger.balls_faced(batter.id),
            day=state.day,
            session=state.session,
            innings_number=state.innings_number,
        )

    def compute_outcome(
        self,
        batter: Optional[Participant],
        bowler: Optional[Participant],
        state: "MatchState",
        conditions: Optional[MatchConditions] = None,
    ) -> BallOutcome:
        """Sample the outcome of one delivery."""
        if batter is None or bowler is None:
            raise PreconditionError("both a batter and a bowler are required to bowl a delivery")

        ctx = self.build_context(batter, bowler, state, conditions or state.conditions)
        probs = self.model.calculate_probabilities(ctx)
        kind = OutcomeKind(self.select(probs, fallback=OutcomeKind.DOT.value))

        if kind != OutcomeKind.WICKET:
            return BallOutcome.of(kind)

        dismissal_probs = self.model.dismissal_probabilities(ctx.match_format, bowler.bowling.style)
        dismissal = DismissalType(self.select(dismissal_probs, fallback=DismissalType.CAUGHT.value))
        return BallOutcome.of(kind, dismissal)

    def select(self, probs: Dict[str, float], fallback: str) -> str:
        """
        Cumulative-weight selection over a table that sums to 100.

        Float drift can leave the running sum just short of the draw; the
        fallback key covers that case.
        """
        draw = self.rng.random() * 100
        cumulative = 0.0
        for key, probability in probs.items():
            cumulative += probability
            if draw < cumulative:
                return key
        return fallback

    def choose_fielder(
        self,
        dismissal: Optional[DismissalType],
        bowler: Participant,
        fielding_side: List[Participant],
    ) -> Optional[Participant]:
        """Fielder credited with a dismissal, or None when nobody else is involved."""
        if dismissal == DismissalType.CAUGHT:
            weights = {}
            for player in fielding_side:
                weight = float(player.fielding.catching)
                if player.role == PlayerRole.WICKET_KEEPER:
                    weight *= self.model.keeper_catch_bonus
                weights[player.id] = weight
            return self._pick(weights, fielding_side)

        if dismissal == DismissalType.STUMPED:
            keeper = next((p for p in fielding_side if p.role == PlayerRole.WICKET_KEEPER), None)
            if keeper is not None:
                return keeper
            # Nobody named as keeper: the best gloveman who is not bowling
            others = [p for p in fielding_side if p.id != bowler.id] or fielding_side
            return max(others, key=lambda p: p.fielding.catching)

        if dismissal == DismissalType.RUN_OUT:
            weights = {p.id: float(p.fielding.throwing) for p in fielding_side}
            return self._pick(weights, fielding_side)

        return None

    def _pick(self, weights: Dict[str, float], players: List[Participant]) -> Optional[Participant]:
        if not players:
            return None
        chosen = self.select(normalize(weights), fallback=players[-1].id)
        return next(p for p in players if p.id == chosen)
