"""
Rest Fairness Tracker

Counts byes per team across a pairing plan (plus byes carried over from a previous
season) and evens them out so that max - min <= 1 whenever that is reachable.

Adjustment works on the trailing partial cycle only: inside a complete cycle every
team already sits out exactly once, so moving byes there cannot help. A swap exchanges
two teams' seats across every round of that partial cycle, which moves the bye from
one to the other while each round stays a valid set of pairings. Rounds holding a
fixed (already played) pairing for either team are never touched.

Imbalance that cannot be fixed is reported as a warning, never as an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from league_calendar.services.pairing_generator import Pairing, PairingPlan, Round

logger = logging.getLogger(__name__)


@dataclass
class FairnessResult:
    plan: PairingPlan
    bye_counts: Dict[int, int]  # byes inside this plan
    carried: Dict[int, int]  # byes from the continued season
    swaps: List[Tuple[int, int]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def totals(self) -> Dict[int, int]:
        return {t: self.bye_counts.get(t, 0) + self.carried.get(t, 0) for t in self.plan.team_ids}

    @property
    def gap(self) -> int:
        return bye_gap(self.totals)


def count_byes(plan: PairingPlan) -> Dict[int, int]:
    counts = {t: 0 for t in plan.team_ids}
    for rnd in plan.rounds:
        bye_team = rnd.bye_team_id
        if bye_team is not None:
            counts[bye_team] += 1
    return counts


def bye_gap(counts: Mapping[int, int]) -> int:
    if not counts:
        return 0
    return max(counts.values()) - min(counts.values())


def _partial_cycle_start(plan: PairingPlan) -> int:
    """Index of the first round after the last complete cycle."""
    if not plan.cycle_length:
        return len(plan.rounds)
    return (len(plan.rounds) // plan.cycle_length) * plan.cycle_length


def _swap_teams(pairing: Pairing, a: int, b: int) -> Pairing:
    mapping = {a: b, b: a}
    home = mapping.get(pairing.home_team_id, pairing.home_team_id)
    if pairing.is_bye:
        return replace(pairing, home_team_id=home)
    return replace(pairing, home_team_id=home, away=mapping.get(pairing.away, pairing.away))


def _copy_plan(plan: PairingPlan) -> PairingPlan:
    return PairingPlan(
        team_ids=list(plan.team_ids),
        rounds=[Round(number=r.number, vuelta=r.vuelta, pairings=list(r.pairings)) for r in plan.rounds],
        cycle_length=plan.cycle_length,
        warnings=list(plan.warnings),
    )


def balance_byes(
    plan: PairingPlan,
    carried: Optional[Mapping[int, int]] = None,
    fixed_keys: FrozenSet[Tuple[int, int, object]] = frozenset(),
) -> FairnessResult:
    """
    Even out bye totals with greedy minimal swaps.

    Args:
        plan: Pairing plan from the generator (not modified)
        carried: Prior bye totals per team (season continuation); unknown teams ignored
        fixed_keys: Pairing keys (round, home, away) that must not change

    Returns:
        FairnessResult with the adjusted plan copy and per-team counts
    """
    adjusted = _copy_plan(plan)
    carried_counts = {t: int((carried or {}).get(t, 0)) for t in adjusted.team_ids}
    result = FairnessResult(plan=adjusted, bye_counts=count_byes(adjusted), carried=carried_counts)

    if result.gap <= 1:
        return result

    order = {t: i for i, t in enumerate(adjusted.team_ids)}
    window = adjusted.rounds[_partial_cycle_start(adjusted):]

    def window_byes(team_id: int) -> int:
        return sum(1 for r in window if r.bye_team_id == team_id)

    def touches_fixed(team_id: int) -> bool:
        for r in window:
            for p in r.pairings:
                if p.key in fixed_keys and team_id in p.team_ids:
                    return True
        return False

    while result.gap > 1:
        totals = result.totals
        over = sorted(totals, key=lambda t: (-totals[t], order[t]))
        under = sorted(totals, key=lambda t: (totals[t], order[t]))

        chosen = None
        for x in over:
            for y in under:
                if totals[x] - totals[y] < 2:
                    break
                moved = window_byes(x) - window_byes(y)
                if moved <= 0 or moved > totals[x] - totals[y] - 1:
                    continue
                if touches_fixed(x) or touches_fixed(y):
                    continue
                chosen = (x, y)
                break
            if chosen:
                break

        if chosen is None:
            break

        x, y = chosen
        for r in window:
            r.pairings = [_swap_teams(p, x, y) for p in r.pairings]
        result.swaps.append(chosen)
        result.bye_counts = count_byes(adjusted)
        logger.info("FAIRNESS: moved bye from team %s to team %s", x, y)

    if result.gap > 1:
        totals = result.totals
        message = (
            f"Bye distribution could not be balanced: max {max(totals.values())}, "
            f"min {min(totals.values())} (no safe swap left in the partial cycle)"
        )
        result.warnings.append(message)
        logger.warning("FAIRNESS: %s", message)

    return result
