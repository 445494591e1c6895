"""
Bowling Scheduler.

Chooses who bowls each over. Bowlers are split once into openers, first
change and spinners; two ends alternate so the bowler who just finished an
over is never picked for the next one. Spell lengths, rest clocks and daily
workloads are owned here; the match state is only read for spell figures.
"""

from typing import Dict, List, Optional, Protocol, Tuple

from cricsim.errors import PreconditionError
from cricsim.schemas.match import SpellRules
from cricsim.schemas.player import BowlerStat, Participant

END_A = "A"
END_B = "B"

# (runs, wickets, legal balls) from the bowler's figures when the spell began
_Figures = Tuple[int, int, int]


class BowlerFigures(Protocol):
    def bowler_stat(self, player_id: str) -> Optional[BowlerStat]:
        ...


class BowlingScheduler:
    """Two-end bowling rotation with spells, rest and optional quotas."""

    def __init__(
        self,
        bowlers: List[Participant],
        rules: Optional[SpellRules] = None,
        over_quota: Optional[int] = None,
        innings_overs: Optional[int] = None,
    ):
        if len(bowlers) < 2:
            raise PreconditionError("at least two bowlers are needed to bowl from both ends")

        self.bowlers = list(bowlers)
        self.rules = rules or SpellRules()
        self.over_quota = over_quota
        self.innings_overs = innings_overs  # Needed with a quota to plan the last overs

        pace = sorted((b for b in self.bowlers if not b.is_spinner), key=lambda b: -b.bowling_rating())
        self.openers = pace[:2]
        self.first_change = pace[2:5]
        self.reserves = pace[5:]
        self.spinners = sorted((b for b in self.bowlers if b.is_spinner), key=lambda b: -b.bowling_rating())

        self.ends: Dict[str, Optional[str]] = {END_A: None, END_B: None}
        self.active_end = END_B  # Flipped before the first over

        self._spell: Dict[str, int] = {}
        self._spell_start: Dict[str, _Figures] = {}
        self._rested_at: Dict[str, Optional[int]] = {}
        self._total: Dict[str, int] = {}
        self._today: Dict[str, int] = {}
        self.reset_innings()

    # ============================================
    # SELECTION
    # ============================================

    def select_next_bowler(
        self,
        current_over: int,
        state: Optional[BowlerFigures] = None,
        previous_bowler: Optional[Participant] = None,
    ) -> Participant:
        """
        Bowler for over ``current_over`` (0-based), at the end not used last over.

        The bowler already holding the end keeps it unless a change is forced;
        otherwise a replacement is chosen by phase priority.
        """
        self.active_end = END_A if self.active_end == END_B else END_B
        other_end = END_B if self.active_end == END_A else END_A

        excluded = {self.ends[other_end]}
        if previous_bowler is not None:
            excluded.add(previous_bowler.id)

        incumbent = self._by_id(self.ends[self.active_end])
        if incumbent is not None and incumbent.id not in excluded:
            if not self.should_change_bowler(incumbent, state) and self._quota_feasible(incumbent, current_over):
                return incumbent
            self.rest_bowler(incumbent, current_over)

        replacement = self._replacement(current_over, excluded)
        self.ends[self.active_end] = replacement.id
        self._start_spell(replacement, state)
        return replacement

    def _replacement(self, current_over: int, excluded: set) -> Participant:
        rules = self.rules
        ready = [
            b for b in self.bowlers
            if b.id not in excluded
            and self.can_bowl_again(b, current_over)
            and not self._quota_reached(b)
            and b.fitness >= rules.fitness_floor
        ]
        ready_ids = {b.id for b in ready}

        def available(group: List[Participant]) -> List[Participant]:
            return [b for b in group if b.id in ready_ids]

        def least_bowled(group: List[Participant]) -> List[Participant]:
            return sorted(available(group), key=lambda b: self._total[b.id])

        if current_over < rules.opening_phase_end:
            ranked = available(self.openers) + least_bowled(self.first_change) + least_bowled(self.spinners)
        elif current_over < rules.first_change_phase_end:
            ranked = least_bowled(self.first_change) + available(self.openers) + least_bowled(self.spinners)
        else:
            priority = {b.id: 3 for b in self.spinners}
            priority.update({b.id: 2 for b in self.openers})
            priority.update({b.id: 1 for b in self.first_change})
            ranked = sorted(
                (b for b in ready if b.id in priority),
                key=lambda b: (-priority[b.id], self._total[b.id]),
            )

        for group in (ranked, least_bowled(self.reserves)):
            feasible = [b for b in group if self._quota_feasible(b, current_over)]
            if feasible:
                return feasible[0]
        return self._last_resort(current_over, excluded)

    def _last_resort(self, current_over: int, excluded: set) -> Participant:
        """Anyone not bowling from the other end; quotas only break if nothing else works."""
        candidates = [b for b in self.bowlers if b.id not in excluded]
        if not candidates:
            candidates = [b for b in self.bowlers if b.id != self.ends[END_B if self.active_end == END_A else END_A]]

        within_quota = [b for b in candidates if not self._quota_reached(b)]
        pool = within_quota or candidates
        pool = [b for b in pool if self._quota_feasible(b, current_over)] or pool
        return min(
            pool,
            key=lambda b: (not self.can_bowl_again(b, current_over), self._total[b.id]),
        )

    def _quota_feasible(self, bowler: Participant, current_over: int) -> bool:
        """
        Whether the overs after this one can still be shared out within the
        quota, with nobody bowling two in a row, if ``bowler`` bowls it.

        Always True without a quota or a known innings length.
        """
        if self.over_quota is None or self.innings_overs is None:
            return True

        overs_left = self.innings_overs - current_over - 1
        left = {b.id: self.over_quota - self._total[b.id] for b in self.bowlers}
        left[bowler.id] -= 1
        if left[bowler.id] < 0:
            return False

        capacity = sum(max(0, n) for n in left.values())
        if capacity < overs_left:
            return False
        for player_id, n in left.items():
            # Overs only this bowler can cover must fit in alternate overs
            forced = overs_left - (capacity - max(0, n))
            slots = overs_left // 2 if player_id == bowler.id else (overs_left + 1) // 2
            if forced > slots:
                return False
        return True

    # ============================================
    # SPELLS AND REST
    # ============================================

    def should_change_bowler(self, bowler: Participant, state: Optional[BowlerFigures] = None) -> bool:
        """Whether the bowler holding an end must be taken off."""
        rules = self.rules
        if bowler.fitness < rules.fitness_floor:
            return True
        if self._quota_reached(bowler):
            return True

        spell = self._spell[bowler.id]
        if bowler.is_spinner:
            limit, ceiling = rules.spin_spell_limit, rules.spin_spell_max
        else:
            limit, ceiling = rules.pace_spell_limit, rules.pace_spell_max

        if spell >= ceiling:
            return True
        if spell < limit:
            return False

        # In the extension band: keep going while taking wickets or keeping it tight
        runs, wickets, balls = self._spell_figures(bowler, state)
        if wickets >= rules.wicket_extension:
            return False
        if balls > 0 and runs / balls * 6 < rules.economy_extension:
            return False
        return True

    def can_bowl_again(self, bowler: Participant, current_over: int) -> bool:
        rested_at = self._rested_at[bowler.id]
        if rested_at is None:
            return True
        needed = self.rules.spin_rest_overs if bowler.is_spinner else self.rules.pace_rest_overs
        return current_over - rested_at >= needed

    def update_spell(self, bowler: Participant, current_over: int) -> None:
        """Record a completed over by ``bowler``."""
        self._spell[bowler.id] += 1
        self._total[bowler.id] += 1
        self._today[bowler.id] += 1

    def rest_bowler(self, bowler: Participant, current_over: int) -> None:
        """Take a bowler off: spell ends and the rest clock starts."""
        self._spell[bowler.id] = 0
        self._spell_start.pop(bowler.id, None)
        self._rested_at[bowler.id] = current_over
        for end, holder in self.ends.items():
            if holder == bowler.id:
                self.ends[end] = None

    def reset_for_session_break(self, state: Optional[BowlerFigures] = None) -> None:
        """Fresh spells after a break; ends and workloads are kept."""
        for bowler in self.bowlers:
            self._spell[bowler.id] = 0
            if bowler.id in self._spell_start:
                self._spell_start[bowler.id] = self._current_figures(bowler, state)

    def reset_for_end_of_day(self, state: Optional[BowlerFigures] = None) -> None:
        """Overnight: everyone is rested and both ends are reopened for the new ball."""
        self.reset_for_session_break(state)
        for bowler in self.bowlers:
            self._rested_at[bowler.id] = None
            self._today[bowler.id] = 0
        self._spell_start.clear()
        self.ends = {END_A: None, END_B: None}
        self.active_end = END_B

    def reset_innings(self) -> None:
        for bowler in self.bowlers:
            self._spell[bowler.id] = 0
            self._rested_at[bowler.id] = None
            self._total[bowler.id] = 0
            self._today[bowler.id] = 0
        self._spell_start.clear()
        self.ends = {END_A: None, END_B: None}
        self.active_end = END_B

    def spell_length(self, bowler: Participant) -> int:
        return self._spell.get(bowler.id, 0)

    def total_overs(self, bowler: Participant) -> int:
        return self._total.get(bowler.id, 0)

    def overs_today(self, bowler: Participant) -> int:
        return self._today.get(bowler.id, 0)

    # ============================================
    # HELPERS
    # ============================================

    def _by_id(self, player_id: Optional[str]) -> Optional[Participant]:
        if player_id is None:
            return None
        return next((b for b in self.bowlers if b.id == player_id), None)

    def _quota_reached(self, bowler: Participant) -> bool:
        return self.over_quota is not None and self._total[bowler.id] >= self.over_quota

    def _current_figures(self, bowler: Participant, state: Optional[BowlerFigures]) -> _Figures:
        stat = state.bowler_stat(bowler.id) if state is not None else None
        if stat is None:
            return (0, 0, 0)
        return (stat.runs, stat.wickets, stat.balls)

    def _start_spell(self, bowler: Participant, state: Optional[BowlerFigures]) -> None:
        if self._spell[bowler.id] == 0:
            self._spell_start[bowler.id] = self._current_figures(bowler, state)

    def _spell_figures(self, bowler: Participant, state: Optional[BowlerFigures]) -> _Figures:
        """Runs, wickets and legal balls since the spell began."""
        runs, wickets, balls = self._current_figures(bowler, state)
        start_runs, start_wickets, start_balls = self._spell_start.get(bowler.id, (0, 0, 0))
        return (runs - start_runs, wickets - start_wickets, balls - start_balls)
