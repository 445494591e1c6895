"""Playing XI and bowling-attack selection from a squad."""

from typing import List

from cricsim.schemas.common import PlayerRole
from cricsim.schemas.player import Participant

XI_SIZE = 11
MIN_BOWLERS = 5


def select_playing_xi(squad: List[Participant]) -> List[Participant]:
    """
    Pick a balanced XI: five batters, up to two all-rounders, the best
    keeper, three pace bowlers and a spinner, then the best remaining
    bowlers. Returns batting order; the input list is not modified.
    """
    def by_batting(players):
        return sorted(players, key=lambda p: -p.batting_rating())

    def by_bowling(players):
        return sorted(players, key=lambda p: -p.bowling_rating())

    batters = [p for p in squad if p.role == PlayerRole.BATTER]
    all_rounders = [p for p in squad if p.role == PlayerRole.ALL_ROUNDER]
    keepers = [p for p in squad if p.role == PlayerRole.WICKET_KEEPER]
    bowlers = [p for p in squad if p.role == PlayerRole.BOWLER]

    xi: List[Participant] = by_batting(batters)[:5]
    xi += sorted(all_rounders, key=lambda p: -(p.batting_rating() + p.bowling_rating()))[:2]
    if keepers:
        xi.append(by_batting(keepers)[0])

    pace = by_bowling([b for b in bowlers if b.is_pace])
    spin = by_bowling([b for b in bowlers if b.is_spinner])
    xi += pace[:3]
    if len(xi) < XI_SIZE and spin:
        xi.append(spin[0])

    if len(xi) < XI_SIZE:
        chosen = {p.id for p in xi}
        rest = by_bowling([b for b in bowlers if b.id not in chosen])
        xi += rest[:XI_SIZE - len(xi)]

    return xi[:XI_SIZE]


def get_bowlers(players: List[Participant]) -> List[Participant]:
    """Bowlers and all-rounders by bowling rating, topped up to five from the rest."""
    attack = sorted(
        (p for p in players if p.role in (PlayerRole.BOWLER, PlayerRole.ALL_ROUNDER)),
        key=lambda p: -p.bowling_rating(),
    )
    if len(attack) < MIN_BOWLERS:
        chosen = {p.id for p in attack}
        part_timers = sorted(
            (p for p in players if p.id not in chosen and p.role != PlayerRole.WICKET_KEEPER),
            key=lambda p: -p.bowling_rating(),
        )
        attack += part_timers[:MIN_BOWLERS - len(attack)]
    return attack
