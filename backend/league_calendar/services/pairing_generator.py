"""
Round-Robin Pairing Generator

Produces the ordered list of rounds for a season using the circle method:
position 0 stays fixed, every other position rotates one step per round.

- Odd team counts get a synthetic BYE opponent, so the team drawn against it sits out.
- One cycle is n-1 rounds (even n) or n rounds (odd n).
- Requests longer than one cycle repeat the rotation; with alternation enabled every
  second pass swaps home and away, so two passes give each pair one home game each.

Pure and deterministic: same team order and round count -> same plan.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple, Union


# ============================================================================
# Opponent variant
# ============================================================================


@dataclass(frozen=True)
class Bye:
    """Synthetic opponent: the team drawn against it does not play that round."""

    def __repr__(self) -> str:
        return "BYE"


BYE = Bye()

Opponent = Union[int, Bye]


@dataclass(frozen=True)
class Pairing:
    round_number: int  # 1-based, global across the season
    sequence: int  # 1-based, stable order inside the round
    vuelta: int  # 1-based pass through the cycle
    home_team_id: int
    away: Opponent

    @property
    def is_bye(self) -> bool:
        return isinstance(self.away, Bye)

    @property
    def away_team_id(self):
        return None if self.is_bye else self.away

    @property
    def team_ids(self) -> Tuple[int, ...]:
        if self.is_bye:
            return (self.home_team_id,)
        return (self.home_team_id, self.away)

    @property
    def key(self) -> Tuple[int, int, object]:
        """Identity used to match a pairing against an already played match."""
        return (self.round_number, self.home_team_id, self.away_team_id)

    def describe(self) -> Dict[str, object]:
        return {
            "round": self.round_number,
            "teamA": self.home_team_id,
            "teamB": "bye" if self.is_bye else self.away,
        }


@dataclass
class Round:
    number: int
    vuelta: int
    pairings: List[Pairing] = field(default_factory=list)

    @property
    def bye_team_id(self):
        for p in self.pairings:
            if p.is_bye:
                return p.home_team_id
        return None

    @property
    def matches(self) -> List[Pairing]:
        return [p for p in self.pairings if not p.is_bye]


@dataclass
class PairingPlan:
    team_ids: List[int]
    rounds: List[Round] = field(default_factory=list)
    cycle_length: int = 0
    warnings: List[str] = field(default_factory=list)

    def all_pairings(self) -> List[Pairing]:
        return [p for r in self.rounds for p in r.pairings]

    @property
    def match_count(self) -> int:
        return sum(len(r.matches) for r in self.rounds)

    @property
    def bye_count(self) -> int:
        return sum(1 for r in self.rounds if r.bye_team_id is not None)


class PairingError(ValueError):
    """Raised when pairings cannot be produced for the given teams"""

    pass


# ============================================================================
# Cycle helpers
# ============================================================================


def cycle_length(team_count: int) -> int:
    """Rounds in one full pass: n-1 for even n, n for odd n (one bye each round)."""
    if team_count < 2:
        return 0
    return team_count - 1 if team_count % 2 == 0 else team_count


def rounds_for_vueltas(team_count: int, vueltas: int) -> int:
    return cycle_length(team_count) * max(vueltas, 0)


def _rotate(positions: List[Opponent]) -> List[Opponent]:
    # Keep position 0, move last to second, shift others
    return [positions[0]] + [positions[-1]] + positions[1:-1]


# ============================================================================
# Generator
# ============================================================================


def generate_pairings(
    team_ids: Sequence[int],
    round_count: int,
    alternate_home_away: bool = True,
) -> PairingPlan:
    """
    Build `round_count` rounds of circle-method pairings.

    Args:
        team_ids: Active team identifiers in their deterministic order
        round_count: Number of rounds to produce (may span several cycles)
        alternate_home_away: Reverse home/away on every second pass through the cycle

    Returns:
        PairingPlan; inside each round playing pairings come first, the bye last.

    Raises:
        PairingError: Fewer than 2 teams, duplicate ids, or negative round count
    """
    teams = list(team_ids)
    if len(teams) < 2:
        raise PairingError(f"At least 2 teams are required to build pairings (got {len(teams)})")
    if len(set(teams)) != len(teams):
        raise PairingError("Team identifiers must be unique")
    if round_count < 0:
        raise PairingError(f"Round count must not be negative (got {round_count})")

    length = cycle_length(len(teams))
    plan = PairingPlan(team_ids=teams, cycle_length=length)

    if round_count == 0:
        plan.warnings.append("Zero rounds requested; the pairing plan is empty")
        return plan

    positions: List[Opponent] = list(teams)
    if len(positions) % 2 == 1:
        positions.append(BYE)
    size = len(positions)
    half = size // 2

    for index in range(round_count):
        cycle_index, position_in_cycle = divmod(index, length)
        if position_in_cycle == 0:
            # Every pass restarts from the same seating so passes mirror each other
            seating = list(positions)
        reverse = alternate_home_away and cycle_index % 2 == 1

        round_number = index + 1
        vuelta = cycle_index + 1
        playing: List[Tuple[int, int]] = []
        bye_team = None
        for i in range(half):
            a, b = seating[i], seating[size - 1 - i]
            if isinstance(a, Bye) or isinstance(b, Bye):
                bye_team = b if isinstance(a, Bye) else a
                continue
            # Fixed seat alternates home/away round by round inside the cycle
            if i == 0 and position_in_cycle % 2 == 1:
                a, b = b, a
            if reverse:
                a, b = b, a
            playing.append((a, b))

        rnd = Round(number=round_number, vuelta=vuelta)
        for seq, (home, away) in enumerate(playing, start=1):
            rnd.pairings.append(Pairing(round_number, seq, vuelta, home, away))
        if bye_team is not None:
            rnd.pairings.append(Pairing(round_number, len(playing) + 1, vuelta, bye_team, BYE))
        plan.rounds.append(rnd)

        seating = _rotate(seating)

    return plan


# ============================================================================
# Validation
# ============================================================================


def validate_plan(plan: PairingPlan) -> List[str]:
    """
    Structural checks on a pairing plan.

    1. No team appears twice in one round and no team plays itself
    2. At most one bye per round, and only when the team count is odd
    3. Every team appears in every round (as player or bye)
    4. Within each complete cycle every pair meets exactly once

    Returns a list of error strings; empty means valid.
    """
    errors: List[str] = []
    team_set = set(plan.team_ids)
    odd = len(plan.team_ids) % 2 == 1

    for rnd in plan.rounds:
        seen: Counter = Counter()
        byes = 0
        for p in rnd.pairings:
            for t in p.team_ids:
                seen[t] += 1
            if p.is_bye:
                byes += 1
            elif p.home_team_id == p.away:
                errors.append(f"Round {rnd.number}: team {p.home_team_id} paired with itself")
        for t, count in seen.items():
            if count > 1:
                errors.append(f"Round {rnd.number}: team {t} appears {count} times")
            if t not in team_set:
                errors.append(f"Round {rnd.number}: unknown team {t}")
        missing = team_set - set(seen)
        if missing:
            errors.append(f"Round {rnd.number}: teams missing {sorted(missing)}")
        if byes > 1 or (byes == 1 and not odd):
            errors.append(f"Round {rnd.number}: unexpected bye count {byes}")

    if plan.cycle_length:
        full_cycles = len(plan.rounds) // plan.cycle_length
        for c in range(full_cycles):
            meetings: Counter = Counter()
            for rnd in plan.rounds[c * plan.cycle_length:(c + 1) * plan.cycle_length]:
                for p in rnd.matches:
                    meetings[frozenset((p.home_team_id, p.away))] += 1
            expected = len(team_set) * (len(team_set) - 1) // 2
            if len(meetings) != expected or any(v != 1 for v in meetings.values()):
                errors.append(f"Cycle {c + 1}: pairs do not meet exactly once")

    return errors
