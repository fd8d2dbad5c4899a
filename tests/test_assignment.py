import random

import pytest

from santa.services.assignment import (
    DuplicateParticipant,
    GenerationFailed,
    InsufficientParticipants,
    Participant,
    generate_assignment,
    is_valid_assignment,
)


class ForbiddenRandom(random.Random):
    def shuffle(self, x):
        raise AssertionError("randomness should not be consumed")


class IdentityRandom(random.Random):
    def shuffle(self, x):
        pass


def people(*ids, exclusions=None):
    exclusions = exclusions or {}
    return [Participant(id=pid, excluded_ids=frozenset(exclusions.get(pid, ()))) for pid in ids]


def test_assignment_basic_bijection():
    participants = people(1, 2, 3, 4)
    assignments = generate_assignment(participants, seed=42)
    assert set(assignments.keys()) == {1, 2, 3, 4}
    assert set(assignments.values()) == {1, 2, 3, 4}
    assert all(giver != receiver for giver, receiver in assignments.items())
    assert is_valid_assignment(participants, assignments)


def test_assignment_two_people():
    assignments = generate_assignment(people(10, 20), seed=1)
    assert assignments == {10: 20, 20: 10}


def test_assignment_deterministic_seed():
    participants = people(1, 2, 3, 4, 5)
    first = generate_assignment(participants, seed=123)
    second = generate_assignment(participants, seed=123)
    assert first == second


def test_assignment_deterministic_injected_rng():
    participants = people("a", "b", "c", "d", "e", "f")
    first = generate_assignment(participants, rng=random.Random(99))
    second = generate_assignment(participants, rng=random.Random(99))
    assert first == second


def test_assignment_rng_wins_over_seed():
    participants = people("a", "b", "c", "d", "e", "f")
    first = generate_assignment(participants, seed=1, rng=random.Random(7))
    second = generate_assignment(participants, seed=2, rng=random.Random(7))
    assert first == second


def test_assignment_three_people_is_a_cycle():
    participants = people("A", "B", "C")
    seen = set()
    for seed in range(50):
        assignments = generate_assignment(participants, seed=seed)
        assert is_valid_assignment(participants, assignments)
        for giver, receiver in assignments.items():
            assert assignments[receiver] != giver
        seen.add(tuple(sorted(assignments.items())))
    assert seen == {
        (("A", "B"), ("B", "C"), ("C", "A")),
        (("A", "C"), ("B", "A"), ("C", "B")),
    }


def test_assignment_respects_exclusions():
    participants = people(1, 2, 3, exclusions={1: {2}})
    for seed in range(20):
        assignments = generate_assignment(participants, seed=seed)
        assert assignments[1] == 3
        assert is_valid_assignment(participants, assignments)


def test_assignment_explicit_self_exclusion_is_harmless():
    participants = people("A", "B", exclusions={"A": {"A"}, "B": {"B"}})
    assert generate_assignment(participants, seed=3) == {"A": "B", "B": "A"}


def test_assignment_unknown_excluded_id_is_ignored():
    participants = people("A", "B", exclusions={"A": {"Z"}})
    assert generate_assignment(participants, seed=3) == {"A": "B", "B": "A"}


def test_participant_always_excludes_itself():
    assert Participant(id="A").excluded_ids == frozenset({"A"})
    assert Participant(id="A", excluded_ids={"B"}).excluded_ids == frozenset({"A", "B"})


@pytest.mark.parametrize(
    "participants",
    [[], [Participant(id="solo")], [Participant(id="A"), Participant(id="A", excluded_ids={"B"})]],
)
def test_assignment_fails_for_too_few_participants(participants):
    with pytest.raises(InsufficientParticipants):
        generate_assignment(participants, rng=ForbiddenRandom())


def test_assignment_rejects_duplicate_ids():
    with pytest.raises(DuplicateParticipant):
        generate_assignment(people("A", "B", "A"), seed=1)


def test_assignment_rejects_non_positive_budget():
    with pytest.raises(ValueError):
        generate_assignment(people("A", "B"), max_attempts=0)


def test_assignment_fails_for_tight_constraints():
    participants = people("A", "B", exclusions={"A": {"B"}})
    with pytest.raises(GenerationFailed) as info:
        generate_assignment(participants, seed=7, max_attempts=50)
    assert info.value.attempts == 50


def test_assignment_tight_constraints_fail_with_fallback():
    participants = people("A", "B", exclusions={"A": {"B"}})
    with pytest.raises(GenerationFailed):
        generate_assignment(participants, seed=7, max_attempts=5, exhaustive_fallback=True)


def test_assignment_fallback_finds_unique_solution():
    ids = ["A", "B", "C", "D"]
    only = {"A": "B", "B": "C", "C": "D", "D": "A"}
    participants = people(
        *ids,
        exclusions={giver: set(ids) - {receiver} for giver, receiver in only.items()},
    )
    for seed in range(10):
        assert generate_assignment(participants, seed=seed, max_attempts=1, exhaustive_fallback=True) == only


def test_assignment_dense_but_feasible_always_succeeds():
    participants = people(
        "A", "B", "C", "D",
        exclusions={"A": {"B"}, "B": {"C"}, "C": {"D"}, "D": {"A"}},
    )
    successes = 0
    for seed in range(300):
        assignments = generate_assignment(participants, seed=seed)
        assert is_valid_assignment(participants, assignments)
        successes += 1
    assert successes == 300


def test_assignment_unique_receivers():
    participants = people(*range(1, 31))
    assignments = generate_assignment(participants, seed=77)
    assert len(set(assignments.values())) == len(participants)
    assert is_valid_assignment(participants, assignments)


def test_is_valid_assignment_detects_violations():
    participants = people("A", "B", "C", exclusions={"A": {"B"}})
    assert not is_valid_assignment(participants, {"A": "A", "B": "C", "C": "B"})
    assert not is_valid_assignment(participants, {"A": "B", "B": "C", "C": "A"})
    assert not is_valid_assignment(participants, {"A": "C", "B": "C", "C": "B"})
    assert not is_valid_assignment(participants, {"A": "C", "B": "A"})
    assert is_valid_assignment(participants, {"A": "C", "B": "A", "C": "B"})


def unique_cycle(ids):
    only = {giver: ids[(index + 1) % len(ids)] for index, giver in enumerate(ids)}
    participants = people(
        *ids,
        exclusions={giver: set(ids) - {receiver} for giver, receiver in only.items()},
    )
    return participants, only


def test_assignment_fallback_respects_step_ceiling():
    participants, only = unique_cycle(["A", "B", "C", "D"])

    with pytest.raises(GenerationFailed):
        generate_assignment(
            participants,
            rng=IdentityRandom(),
            max_attempts=1,
            exhaustive_fallback=True,
            max_search_steps=3,
        )

    found = generate_assignment(
        participants,
        rng=IdentityRandom(),
        max_attempts=1,
        exhaustive_fallback=True,
        max_search_steps=4,
    )
    assert found == only


def test_assignment_fallback_handles_groups_deeper_than_recursion_limit():
    participants, only = unique_cycle(list(range(1100)))
    found = generate_assignment(
        participants,
        rng=IdentityRandom(),
        max_attempts=1,
        exhaustive_fallback=True,
    )
    assert found == only
