from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, FrozenSet, Hashable, List, Mapping, Optional, Sequence, Set

DEFAULT_MAX_ATTEMPTS = 1000
DEFAULT_MAX_SEARCH_STEPS = 100_000


class AssignmentError(RuntimeError):
    pass


class InsufficientParticipants(AssignmentError):
    pass


class DuplicateParticipant(AssignmentError):
    pass


class GenerationFailed(AssignmentError):
    def __init__(self, attempts: int) -> None:
        super().__init__("Impossible to generate a valid assignment.")
        self.attempts = attempts


@dataclass(frozen=True)
class Participant:
    id: Hashable
    excluded_ids: FrozenSet[Hashable] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "excluded_ids", frozenset(self.excluded_ids) | {self.id})


def _build_exclusions(participants: Sequence[Participant]) -> Dict[Hashable, AbstractSet[Hashable]]:
    exclusions: Dict[Hashable, AbstractSet[Hashable]] = {}
    for participant in participants:
        if participant.id in exclusions:
            raise DuplicateParticipant(f"Participant {participant.id!r} is listed more than once.")
        exclusions[participant.id] = participant.excluded_ids
    return exclusions


def _pairing_is_valid(
    givers: Sequence[Hashable],
    receivers: Sequence[Hashable],
    exclusions: Mapping[Hashable, AbstractSet[Hashable]],
) -> bool:
    # excluded_ids always holds the giver itself, so this also rejects fixed points
    return not any(receiver in exclusions[giver] for giver, receiver in zip(givers, receivers))


def _search(
    givers: Sequence[Hashable],
    exclusions: Mapping[Hashable, AbstractSet[Hashable]],
    rng: random.Random,
    max_steps: int,
) -> Optional[Dict[Hashable, Hashable]]:
    """Backtrack over givers, fewest remaining choices first.

    Uses an explicit stack so large groups do not hit the recursion limit.
    Gives up after ``max_steps`` tentative pairings.
    """
    allowed = {giver: set(givers) - exclusions[giver] for giver in givers}
    if any(not receivers for receivers in allowed.values()):
        return None

    assignments: Dict[Hashable, Hashable] = {}
    remaining: Set[Hashable] = set(givers)

    def next_frame() -> List:
        unassigned = [giver for giver in givers if giver not in assignments]
        giver = min(unassigned, key=lambda g: len(allowed[g] & remaining))
        choices = [receiver for receiver in givers if receiver in allowed[giver] and receiver in remaining]
        rng.shuffle(choices)
        return [giver, choices]

    stack = [next_frame()]
    steps = 0
    while stack:
        giver, choices = stack[-1]
        if giver in assignments:
            remaining.add(assignments.pop(giver))
        if not choices:
            stack.pop()
            continue

        steps += 1
        if steps > max_steps:
            return None

        receiver = choices.pop()
        assignments[giver] = receiver
        remaining.remove(receiver)
        if len(assignments) == len(givers):
            return {g: assignments[g] for g in givers}
        stack.append(next_frame())
    return None


def generate_assignment(
    participants: Sequence[Participant],
    *,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    exhaustive_fallback: bool = False,
    max_search_steps: int = DEFAULT_MAX_SEARCH_STEPS,
) -> Dict[Hashable, Hashable]:
    """Draw a giver -> recipient mapping that respects every exclusion.

    Uniform random permutations are tried until one has no fixed point and no
    excluded pair, at most ``max_attempts`` times. With ``exhaustive_fallback``
    a backtracking search of at most ``max_search_steps`` pairings runs once
    the random budget is spent; if it completes without a match, no valid
    assignment exists at all.

    ``rng`` wins over ``seed``; pass either to make the draw reproducible.
    """
    if len({participant.id for participant in participants}) < 2:
        raise InsufficientParticipants("At least 2 participants are required.")
    exclusions = _build_exclusions(participants)
    if max_attempts < 1:
        raise ValueError("max_attempts must be a positive integer.")

    if rng is None:
        rng = random.Random(seed)

    givers: List[Hashable] = [participant.id for participant in participants]
    receivers = list(givers)

    for _ in range(max_attempts):
        rng.shuffle(receivers)
        if _pairing_is_valid(givers, receivers, exclusions):
            return dict(zip(givers, receivers))

    if exhaustive_fallback:
        found = _search(givers, exclusions, rng, max_search_steps)
        if found is not None:
            return found

    raise GenerationFailed(max_attempts)


def is_valid_assignment(
    participants: Sequence[Participant],
    assignment: Mapping[Hashable, Hashable],
) -> bool:
    ids = {participant.id for participant in participants}
    if set(assignment.keys()) != ids or set(assignment.values()) != ids:
        return False
    if len(assignment) != len(participants):
        return False
    return all(assignment[participant.id] not in participant.excluded_ids for participant in participants)
