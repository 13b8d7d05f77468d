"""
Recovery Suggestion Tests

Checks minimal termination search, preemption candidates and the
guarantees they rely on (sufficiency, conservation, no mutation).
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from algorithms.detection import detect_matrix
from algorithms.wfg import detect_wfg
from algorithms.recovery import (
    ActionType, find_minimal_termination_set, generate_recovery,
    simulate_termination, suggest_preemption_targets
)
from utils.samples import get_sample, list_samples
from utils.state_loader import state_to_dict


def _two_separate_cycles():
    """Single-instance cycles 0 <-> 3 and 1 <-> 2; P0 also waits on P1."""
    from models.process import Process
    from models.resource import ResourceType
    from models.system_state import SystemState

    return SystemState(
        processes=[Process(pid=i, name=f"P{i}") for i in range(4)],
        resource_types=[ResourceType(rid=j, name=f"R{j}", instances=1) for j in range(4)],
        available=[0, 0, 0, 0],
        allocation=[[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 1, 0], [0, 0, 0, 1]],
        request=[[0, 1, 0, 1], [0, 0, 1, 0], [0, 1, 0, 0], [1, 0, 0, 0]],
    )


def test_two_process_minimal_termination():
    """Scenario: killing either process of a two-process deadlock is enough."""
    print("\n" + "="*60)
    print("TEST 1: Two-Process Minimal Termination")
    print("="*60)

    state = get_sample("Two Process Deadlock (Single-Instance)")
    detection = detect_wfg(state)
    suggestions = find_minimal_termination_set(state, detection.deadlocked_processes)

    for s in suggestions:
        print(f"  {s.description}")

    assert len(suggestions[0].processes) == 1
    assert [s.processes for s in suggestions] == [(0,), (1,)]
    assert all(s.action_type == ActionType.TERMINATE for s in suggestions)
    assert suggestions[0].description == "Terminate 1 process(es): Process A"
    assert "After termination:" in suggestions[0].explanation
    assert "Matrix-Based Deadlock Detection" in suggestions[0].explanation
    print("  ✓ Two size-1 suggestions")


def test_partial_deadlock_termination():
    """Every size-1 subset of the partial deadlock resolves it."""
    print("\n" + "="*60)
    print("TEST 2: Partial Deadlock Termination")
    print("="*60)

    state = get_sample("Partial Deadlock")
    deadlocked = detect_matrix(state).deadlocked_processes
    suggestions = find_minimal_termination_set(state, deadlocked)

    assert [s.processes for s in suggestions] == [(0,), (1,), (2,)]


def test_termination_needs_two():
    """When no single victim works, only size-2 sets are returned."""
    print("\n" + "="*60)
    print("TEST 3: Larger Minimal Set")
    print("="*60)

    from models.process import Process
    from models.resource import ResourceType
    from models.system_state import SystemState

    # P0 needs both instances of R0 (held by P1 and P2); P1 and P2 each need
    # both instances of R1 (held by P0 and P3); P3 needs R0 too.
    state = SystemState(
        processes=[Process(pid=i, name=f"P{i}") for i in range(4)],
        resource_types=[ResourceType(rid=0, name="R0", instances=2),
                        ResourceType(rid=1, name="R1", instances=2)],
        available=[0, 0],
        allocation=[[0, 1], [1, 0], [1, 0], [0, 1]],
        request=[[2, 0], [0, 2], [0, 2], [2, 0]],
    )
    deadlocked = detect_matrix(state).deadlocked_processes
    assert deadlocked == (0, 1, 2, 3)

    suggestions = find_minimal_termination_set(state, deadlocked)
    sets = [s.processes for s in suggestions]
    print(f"  Minimal sets: {sets}")

    assert all(len(s) == 2 for s in sets)
    assert sets == [(0, 3), (1, 2)]


def test_sufficiency_on_samples():
    """Terminating every deadlocked process always leaves a safe state."""
    print("\n" + "="*60)
    print("TEST 4: Sufficiency")
    print("="*60)

    for name in list_samples():
        state = get_sample(name)
        deadlocked = detect_matrix(state).deadlocked_processes
        if not deadlocked:
            continue

        result = simulate_termination(state, deadlocked)
        assert not result.deadlocked, name

        suggestions = find_minimal_termination_set(state, deadlocked)
        assert suggestions, f"No termination suggestion for {name}"
        sizes = {len(s.processes) for s in suggestions}
        assert len(sizes) == 1, f"Mixed sizes for {name}: {sizes}"
        print(f"  ✓ {name}: minimal size {sizes.pop()}")


def test_sufficiency_with_wfg_sets():
    """Sets from the wait-for graph detector are also enough to terminate."""
    print("\n" + "="*60)
    print("TEST 5: Sufficiency (Wait-For Graph)")
    print("="*60)

    for name in list_samples():
        state = get_sample(name)
        if not state.is_single_instance:
            continue
        deadlocked = detect_wfg(state).deadlocked_processes
        if not deadlocked:
            continue

        assert not simulate_termination(state, deadlocked).deadlocked, name
        assert find_minimal_termination_set(state, deadlocked), f"No termination suggestion for {name}"
        print(f"  ✓ {name}: {len(deadlocked)} deadlocked")

    state = _two_separate_cycles()
    deadlocked = detect_wfg(state).deadlocked_processes
    assert deadlocked == (0, 1, 2, 3)

    suggestions = find_minimal_termination_set(state, deadlocked)
    # One victim from each of the cycles 0 <-> 3 and 1 <-> 2
    assert [s.processes for s in suggestions] == [(0, 1), (0, 2), (1, 3), (2, 3)]
    print("  ✓ One victim per cycle")


def test_terminate_everything():
    """Removing every process leaves an empty, non-deadlocked state."""
    print("\n" + "="*60)
    print("TEST 6: Terminate Everything")
    print("="*60)

    state = get_sample("Multi-Instance Deadlock")
    result = simulate_termination(state, range(state.num_processes))

    assert not result.deadlocked
    assert result.finish == []


def test_preemption_targets():
    """Each deadlocked process holding resources gets one advisory suggestion."""
    print("\n" + "="*60)
    print("TEST 7: Preemption Targets")
    print("="*60)

    state = get_sample("Partial Deadlock")
    suggestions = suggest_preemption_targets(state, [2, 0, 1])

    for s in suggestions:
        print(f"  {s.description}")

    assert [s.processes for s in suggestions] == [(0,), (1,), (2,)]
    assert [s.resources for s in suggestions] == [(0,), (0, 1), (1,)]
    assert [s.released_instances for s in suggestions] == [1, 2, 1]
    assert all(s.action_type == ActionType.PREEMPT for s in suggestions)
    assert "releases 2 resource instance(s)" in suggestions[1].explanation
    assert "rolled back and restarted" in suggestions[1].explanation

    # P3 holds nothing: no suggestion
    assert suggest_preemption_targets(state, [3]) == []


def test_empty_deadlocked_set():
    """No deadlocked processes means no suggestions of either kind."""
    print("\n" + "="*60)
    print("TEST 8: Empty Deadlocked Set")
    print("="*60)

    state = get_sample("Safe State")
    plan = generate_recovery(state, [])

    assert plan.termination == []
    assert plan.preemption == []
    assert not plan.search_skipped


def test_search_limit():
    """Sets larger than the search limit skip termination but keep preemption."""
    print("\n" + "="*60)
    print("TEST 9: Search Limit")
    print("="*60)

    state = get_sample("Dining Philosophers (Deadlock)")
    deadlocked = detect_wfg(state).deadlocked_processes

    plan = generate_recovery(state, deadlocked, search_limit=3)
    assert plan.search_skipped
    assert plan.termination == []
    assert len(plan.preemption) == 5

    plan = generate_recovery(state, deadlocked, search_limit=5)
    assert not plan.search_skipped
    assert len(plan.termination) == 5
    print("  ✓ Limit respected")


def test_unknown_process_rejected():
    """Indices outside the system are a caller error."""
    print("\n" + "="*60)
    print("TEST 10: Unknown Process")
    print("="*60)

    state = get_sample("Two Process Deadlock (Single-Instance)")
    try:
        generate_recovery(state, [0, 7])
        assert False, "Should reject process index 7"
    except ValueError as e:
        print(f"  ✓ Correctly rejected: {e}")


def test_recovery_does_not_mutate():
    """The analysed state is identical before and after recovery."""
    print("\n" + "="*60)
    print("TEST 11: No Mutation")
    print("="*60)

    state = get_sample("Circular Deadlock (Single-Instance)")
    before = state_to_dict(state)

    plan = generate_recovery(state, detect_wfg(state).deadlocked_processes)
    assert len(plan.termination) == 3
    assert len(plan.preemption) == 3

    assert state_to_dict(state) == before
    state.assert_resource_conservation("after recovery search")


def main():
    """Run all recovery tests."""
    print("\n" + "="*70)
    print(" "*20 + "RECOVERY SUGGESTION TESTS")
    print("="*70)

    try:
        test_two_process_minimal_termination()
        test_partial_deadlock_termination()
        test_termination_needs_two()
        test_sufficiency_on_samples()
        test_sufficiency_with_wfg_sets()
        test_terminate_everything()
        test_preemption_targets()
        test_empty_deadlocked_set()
        test_search_limit()
        test_unknown_process_rejected()
        test_recovery_does_not_mutate()

        print("\n✅ ALL RECOVERY TESTS PASSED\n")
        return 0

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
