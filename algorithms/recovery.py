"""
Deadlock Recovery Suggestions for Deadlock Detective.

Proposes process termination and resource preemption strategies.
Nothing here changes the analysed state: termination candidates are
checked against derived states, preemption candidates are advisory.
"""

from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Iterable, List, Optional, Tuple

from models.system_state import SystemState
from algorithms.detection import MatrixResult, detect_matrix


class ActionType(Enum):
    """Kinds of recovery action."""
    TERMINATE = "terminate"
    PREEMPT = "preempt"


@dataclass
class RecoverySuggestion:
    """
    A proposed recovery action.

    Attributes:
        description: One-line summary
        processes: Sorted indices of processes affected
        explanation: Multi-line justification
        action_type: Kind of action
    """
    description: str
    processes: Tuple[int, ...]
    explanation: str
    action_type: ActionType


@dataclass
class TerminationSuggestion(RecoverySuggestion):
    """Terminate every process in `processes`; verified to break the deadlock."""
    action_type: ActionType = ActionType.TERMINATE


@dataclass
class PreemptionSuggestion(RecoverySuggestion):
    """
    Preempt everything one process holds.

    Attributes:
        resources: Sorted indices of resource types the process holds
        released_instances: Total instances returned to Available
    """
    action_type: ActionType = ActionType.PREEMPT
    resources: Tuple[int, ...] = ()
    released_instances: int = 0


@dataclass
class RecoveryPlan:
    """
    Recovery suggestions for one deadlocked state.

    Attributes:
        termination: All minimal-cardinality termination sets found
        preemption: One preemption candidate per deadlocked process holding resources
        search_skipped: True if the termination search was refused by the search limit
    """
    termination: List[TerminationSuggestion] = field(default_factory=list)
    preemption: List[PreemptionSuggestion] = field(default_factory=list)
    search_skipped: bool = False


def _sorted_pids(system_state: SystemState, deadlocked_pids: Iterable[int]) -> List[int]:
    pids = sorted(set(deadlocked_pids))
    for pid in pids:
        if pid < 0 or pid >= system_state.num_processes:
            raise ValueError(f"Unknown process index {pid} (system has {system_state.num_processes})")
    return pids


def simulate_termination(system_state: SystemState, terminated: Iterable[int]) -> MatrixResult:
    """
    Re-run matrix detection as if some processes had been terminated.

    Process termination:
    - Remove the victims (survivors are reindexed, order preserved)
    - Return everything the victims held to Available
    - Run the Work/Finish detector on what is left

    Args:
        system_state: Original snapshot (not modified)
        terminated: Indices of processes to terminate

    Returns:
        MatrixResult for the derived state
    """
    terminated = list(terminated)
    derived = system_state.without_processes(terminated)

    # SANITY CHECK: released instances must all land in Available
    derived.assert_resource_conservation(
        f"after terminating {[system_state.process_name(p) for p in terminated]}"
    )

    return detect_matrix(derived)


def find_minimal_termination_set(
    system_state: SystemState,
    deadlocked_pids: Iterable[int]
) -> List[TerminationSuggestion]:
    """
    Find the smallest sets of processes whose termination breaks the deadlock.

    Tries subsets of the deadlocked processes by increasing size, each size
    in lexicographic order, and returns every subset of the first size that
    leaves a deadlock-free state. Terminating all deadlocked processes always
    works, so a non-empty deadlocked set yields at least one suggestion.

    This is an exhaustive search: up to 2^|D| detector runs.

    Args:
        system_state: Original snapshot (not modified)
        deadlocked_pids: Processes reported deadlocked by a detector

    Returns:
        Suggestions of minimal cardinality (empty if deadlocked_pids is empty)
    """
    suggestions = []
    candidates = _sorted_pids(system_state, deadlocked_pids)

    for size in range(1, len(candidates) + 1):
        for subset in combinations(candidates, size):
            result = simulate_termination(system_state, subset)
            if result.deadlocked:
                continue

            names = ", ".join(system_state.process_name(pid) for pid in subset)
            explanation = (
                f"Terminating {names} releases their allocated resources.\n"
                "After termination:\n" + "\n".join(result.trace)
            )
            suggestions.append(TerminationSuggestion(
                description=f"Terminate {size} process(es): {names}",
                processes=tuple(subset),
                explanation=explanation,
            ))

        # Smallest working size found: stop here
        if suggestions:
            return suggestions

    return suggestions


def suggest_preemption_targets(
    system_state: SystemState,
    deadlocked_pids: Iterable[int]
) -> List[PreemptionSuggestion]:
    """
    Suggest preempting resources from deadlocked processes.

    Resource preemption:
    - One candidate per deadlocked process that holds anything
    - Lists every resource type it holds and how many instances return
    - The process would need rollback and restart
    - Not re-simulated: whether it breaks the deadlock is not checked

    Args:
        system_state: Original snapshot (not modified)
        deadlocked_pids: Processes reported deadlocked by a detector

    Returns:
        Suggestions in ascending process order
    """
    suggestions = []
    allocation = system_state.allocation_matrix

    for pid in _sorted_pids(system_state, deadlocked_pids):
        held = tuple(j for j in range(system_state.num_resources) if allocation[pid][j] > 0)
        if not held:
            continue

        total_held = int(sum(allocation[pid][j] for j in held))
        name = system_state.process_name(pid)
        resource_names = ", ".join(system_state.resource_name(j) for j in held)

        explanation = (
            f"Preempt resources {resource_names} from {name}.\n"
            f"This releases {total_held} resource instance(s) back to the available pool.\n"
            f"{name} would need to be rolled back and restarted later."
        )
        suggestions.append(PreemptionSuggestion(
            description=f"Preempt resources from {name}: {resource_names}",
            processes=(pid,),
            explanation=explanation,
            resources=held,
            released_instances=total_held,
        ))

    return suggestions


def generate_recovery(
    system_state: SystemState,
    deadlocked_pids: Iterable[int],
    search_limit: Optional[int] = None
) -> RecoveryPlan:
    """
    Generate all recovery suggestions for a deadlocked system.

    Args:
        system_state: Original snapshot (not modified)
        deadlocked_pids: Processes reported deadlocked by a detector
        search_limit: Largest deadlocked set to run the exhaustive
            termination search on (None = no limit)

    Returns:
        RecoveryPlan with termination and preemption suggestions
    """
    pids = _sorted_pids(system_state, deadlocked_pids)

    plan = RecoveryPlan(preemption=suggest_preemption_targets(system_state, pids))
    if search_limit is not None and len(pids) > search_limit:
        plan.search_skipped = True
    else:
        plan.termination = find_minimal_termination_set(system_state, pids)

    return plan
