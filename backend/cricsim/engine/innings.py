"""
Innings Ledger.

Ball application shared by every match format: score, wickets, strike,
partnerships, fall of wickets, batter and bowler figures, plus the
confidence and fitness feedback applied to participants. Format rules
(when an innings ends, what happens between overs) live in match_state.
"""

from typing import Dict, List, Optional

from cricsim.errors import MatchDataError, PreconditionError
from cricsim.engine.stats import (
    BALLS_PER_OVER,
    MAX_WICKETS,
    balls_to_overs,
    check_milestone,
    top_batters,
    top_bowlers,
)
from cricsim.schemas.common import DismissalType, OutcomeKind
from cricsim.schemas.match import (
    BallOutcome,
    BallRecord,
    FallOfWicket,
    FeedbackConfig,
    InningsSummary,
    OverSummary,
    Partnership,
    Team,
)
from cricsim.schemas.player import BatsmanStat, BowlerStat, Participant


def dismissal_text(
    dismissal: DismissalType,
    bowler: Participant,
    fielder: Optional[Participant] = None,
) -> str:
    """Scorecard description of a dismissal, e.g. "c Smith b Jones"."""
    fielder_name = fielder.name if fielder is not None else "sub"
    if dismissal == DismissalType.BOWLED:
        return f"b {bowler.name}"
    if dismissal == DismissalType.CAUGHT:
        if fielder is None or fielder.id == bowler.id:
            return f"c & b {bowler.name}"
        return f"c {fielder.name} b {bowler.name}"
    if dismissal == DismissalType.LBW:
        return f"lbw b {bowler.name}"
    if dismissal == DismissalType.STUMPED:
        return f"st {fielder_name} b {bowler.name}"
    if dismissal == DismissalType.RUN_OUT:
        return f"run out ({fielder_name})"
    return f"hit wicket b {bowler.name}"


class InningsLedger:
    """
    Running record of one innings.

    The ledger is the only writer of participant ``confidence`` and
    ``fitness`` while it is live; readers see those values between
    deliveries.
    """

    def __init__(
        self,
        innings_number: int,
        batting_team: Team,
        bowling_team: Team,
        feedback: Optional[FeedbackConfig] = None,
    ):
        self.innings_number = innings_number
        self.batting_team = batting_team
        self.bowling_team = bowling_team
        self.feedback = feedback or FeedbackConfig()

        self.lineup: List[Participant] = list(batting_team.players)
        self._next_batter = 0
        self._bowling_ids = {p.id for p in bowling_team.players}

        self.score = 0
        self.wickets = 0
        self.balls = 0  # Legal deliveries
        self.wides = 0
        self.no_balls = 0
        self.declared = False

        self.striker: Optional[Participant] = None
        self.non_striker: Optional[Participant] = None
        self.bowler: Optional[Participant] = None

        self.batsman_stats: Dict[str, BatsmanStat] = {}
        self.bowler_stats: Dict[str, BowlerStat] = {}
        self.fall_of_wickets: List[FallOfWicket] = []
        self.partnership: Optional[Partnership] = None
        self.partnerships: List[Partnership] = []
        self.over_summaries: List[OverSummary] = []
        self.deliveries: List[BallRecord] = []

        self._over_wickets = 0

    # ============================================
    # SETUP
    # ============================================

    def start(self) -> None:
        """Send out the openers."""
        if self.striker is not None:
            return
        self.striker = self._next_in()
        self.non_striker = self._next_in()
        self.partnership = Partnership(batter_ids=[self.striker.id, self.non_striker.id])

    def set_bowler(self, bowler: Participant) -> None:
        if bowler.id not in self._bowling_ids:
            raise PreconditionError(f"{bowler.name} is not in the bowling side")
        self.bowler = bowler
        self.bowler_stats.setdefault(bowler.id, BowlerStat(player_id=bowler.id))

    def _next_in(self) -> Participant:
        if self._next_batter >= len(self.lineup):
            raise MatchDataError(
                f"no batter left in {self.batting_team.name}'s line-up at {self.wickets} wickets"
            )
        batter = self.lineup[self._next_batter]
        self._next_batter += 1
        self.batsman_stats.setdefault(batter.id, BatsmanStat(player_id=batter.id))
        return batter

    # ============================================
    # QUERIES
    # ============================================

    @property
    def extras(self) -> int:
        return self.wides + self.no_balls

    @property
    def completed_overs(self) -> int:
        return self.balls // BALLS_PER_OVER

    @property
    def overs(self) -> str:
        return balls_to_overs(self.balls)

    @property
    def is_all_out(self) -> bool:
        return self.wickets >= MAX_WICKETS

    def balls_faced(self, player_id: str) -> int:
        stat = self.batsman_stats.get(player_id)
        return stat.balls if stat else 0

    def players(self) -> Dict[str, Participant]:
        everyone = self.batting_team.players + self.bowling_team.players
        return {p.id: p for p in everyone}

    # ============================================
    # BALL APPLICATION
    # ============================================

    def apply(self, outcome: BallOutcome, fielder: Optional[Participant] = None) -> BallRecord:
        """
        Apply one delivery and return its record.

        Strike is swapped here for odd runs only; the end-of-over swap
        belongs to the caller, which knows whether the innings is alive.
        """
        if self.striker is None or self.non_striker is None:
            raise PreconditionError("no batters at the crease")
        if self.bowler is None:
            raise PreconditionError("no bowler has been set")

        striker, bowler = self.striker, self.bowler
        over_before = self.completed_overs
        bowler_stat = self.bowler_stats[bowler.id]
        batter_stat = self.batsman_stats[striker.id]
        rotated = False
        dismissal = None

        self.score += outcome.runs
        bowler_stat.runs += outcome.runs
        bowler_stat.over_runs += outcome.runs

        if outcome.kind == OutcomeKind.WIDE:
            self.wides += 1
            bowler_stat.wides += 1
        elif outcome.kind == OutcomeKind.NO_BALL:
            self.no_balls += 1
            bowler_stat.no_balls += 1
        else:
            self.balls += 1
            bowler_stat.balls += 1
            bowler_stat.over_balls += 1
            batter_stat.balls += 1
            self.partnership.balls += 1
            if outcome.runs == 0:
                bowler_stat.dots += 1
            self._apply_bowler_fatigue(bowler, bowler_stat)

        label = f"{over_before}.{self.balls - over_before * BALLS_PER_OVER}"

        if outcome.is_wicket:
            dismissal = dismissal_text(outcome.dismissal, bowler, fielder)
            self._apply_wicket(outcome, striker, bowler, batter_stat, bowler_stat, dismissal, label)
        elif outcome.is_legal_delivery:
            previous_runs = batter_stat.runs
            batter_stat.runs += outcome.runs
            if outcome.kind == OutcomeKind.FOUR:
                batter_stat.fours += 1
            elif outcome.kind == OutcomeKind.SIX:
                batter_stat.sixes += 1
            self.partnership.runs += outcome.runs
            self._apply_batting_feedback(striker, outcome, previous_runs, batter_stat.runs)
            if outcome.runs % 2 == 1:
                self.rotate_strike()
                rotated = True

        over_completed = outcome.is_legal_delivery and bowler_stat.over_balls == BALLS_PER_OVER
        if over_completed:
            self._close_over(bowler, bowler_stat, over_before)

        record = BallRecord(
            innings_number=self.innings_number,
            over=over_before,
            label=label,
            batter_id=striker.id,
            bowler_id=bowler.id,
            outcome=outcome,
            fielder_id=fielder.id if fielder is not None else None,
            dismissal_text=dismissal,
            score=self.score,
            wickets=self.wickets,
            strike_rotated=rotated,
            over_completed=over_completed,
        )
        self.deliveries.append(record)
        return record

    def _apply_wicket(
        self,
        outcome: BallOutcome,
        striker: Participant,
        bowler: Participant,
        batter_stat: BatsmanStat,
        bowler_stat: BowlerStat,
        dismissal: str,
        label: str,
    ) -> None:
        self.wickets += 1
        self._over_wickets += 1
        batter_stat.is_out = True
        batter_stat.dismissal = dismissal

        if outcome.dismissal != DismissalType.RUN_OUT:
            bowler_stat.wickets += 1
            bowler.confidence = bowler.confidence + self.feedback.wicket_taker_confidence_gain

        if striker.confidence > self.feedback.confidence_floor:
            striker.confidence = max(
                self.feedback.confidence_floor,
                striker.confidence - self.feedback.wicket_confidence_loss,
            )

        self.fall_of_wickets.append(FallOfWicket(
            player_id=striker.id,
            player_name=striker.name,
            score=self.score,
            wicket_number=self.wickets,
            over=label,
        ))

        if self.partnership.runs >= 1:
            self.partnerships.append(self.partnership)

        if self.is_all_out:
            self.striker = None
            self.partnership = Partnership(batter_ids=[self.non_striker.id])
            return

        self.striker = self._next_in()
        self.partnership = Partnership(batter_ids=[self.striker.id, self.non_striker.id])

    def _apply_batting_feedback(self, striker: Participant, outcome: BallOutcome, before: int, after: int) -> None:
        fb = self.feedback
        if outcome.is_boundary:
            striker.confidence = striker.confidence + fb.boundary_confidence_gain
        if check_milestone(before, after, fb.milestones) is not None:
            striker.confidence = striker.confidence + fb.milestone_confidence_gain

    def _apply_bowler_fatigue(self, bowler: Participant, stat: BowlerStat) -> None:
        fb = self.feedback
        if stat.balls % fb.fatigue_interval_balls == 0 and bowler.fitness > fb.fitness_floor:
            bowler.fitness = max(fb.fitness_floor, bowler.fitness - fb.fatigue_drain)

    def _close_over(self, bowler: Participant, stat: BowlerStat, over_number: int) -> None:
        # Six legal balls plus any extras in the over, all without a run
        maiden = stat.over_runs == 0
        stat.overs += 1
        if maiden:
            stat.maidens += 1

        self.over_summaries.append(OverSummary(
            over_number=over_number,
            bowler_id=bowler.id,
            runs=stat.over_runs,
            wickets=self._over_wickets,
            maiden=maiden,
        ))
        stat.over_balls = 0
        stat.over_runs = 0
        self._over_wickets = 0

    def rotate_strike(self) -> None:
        if self.striker is None:
            # Last man standing stays on strike
            return
        self.striker, self.non_striker = self.non_striker, self.striker

    # ============================================
    # SUMMARY
    # ============================================

    def summary(self, top_n: int = 3) -> InningsSummary:
        players = self.players()
        partnerships = list(self.partnerships)
        if self.partnership is not None and self.partnership.runs >= 1:
            partnerships.append(self.partnership)
        return InningsSummary(
            innings_number=self.innings_number,
            batting_team_id=self.batting_team.id,
            bowling_team_id=self.bowling_team.id,
            runs=self.score,
            wickets=self.wickets,
            balls=self.balls,
            overs=self.overs,
            extras=self.extras,
            declared=self.declared,
            fall_of_wickets=list(self.fall_of_wickets),
            partnerships=[p.model_copy() for p in partnerships],
            top_batters=top_batters(self.batsman_stats, players, top_n),
            top_bowlers=top_bowlers(self.bowler_stats, players, top_n),
            batsman_stats={k: v.model_copy() for k, v in self.batsman_stats.items()},
            bowler_stats={k: v.model_copy() for k, v in self.bowler_stats.items()},
        )
