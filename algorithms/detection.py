"""
Matrix-Based Deadlock Detection for Deadlock Detective.

Implements the Work/Finish detection algorithm for multi-instance
resource systems, using the Available vector and the Allocation and
Request matrices.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Tuple

from models.system_state import SystemState
from analysis.events import (
    TraceEvent, TraceEventType, TraceLog, format_processes, format_vector
)


@dataclass
class MatrixResult:
    """
    Outcome of a Work/Finish detection run.

    Attributes:
        deadlocked: True if at least one process cannot finish
        deadlocked_processes: Sorted indices of processes with Finish[i] == False
        finish: Final Finish vector [P]
        execution_order: Processes in the order the simulation let them finish
        trace: Human-readable trace lines
        events: Structured trace behind the lines
    """
    deadlocked: bool
    deadlocked_processes: Tuple[int, ...]
    finish: List[bool]
    execution_order: List[int]
    trace: List[str] = field(default_factory=list)
    events: List[TraceEvent] = field(default_factory=list, repr=False)


def _finish_str(finish) -> str:
    return "[" + ", ".join("True" if f else "False" for f in finish) + "]"


def detect_matrix(system_state: SystemState) -> MatrixResult:
    """
    Detect deadlock using the matrix-based Work/Finish algorithm.

    Algorithm (Multi-Instance Resources):
    1. Initialize Work = Available.copy(), Finish = [False] * num_processes
    2. Scan processes in index order; for each i with Finish[i] == False
       and Request[i] <= Work (element-wise): Finish[i] = True,
       Work += Allocation[i], and keep scanning the same pass with the
       updated Work
    3. Repeat passes until one completes with no new finishes
    4. Deadlock exists if any Finish[i] == False

    Uses Request[i] (current pending request), not the Banker's Need[i].
    The final Finish vector does not depend on scan order; only
    execution_order does.

    Time Complexity: O(P²×R)

    Args:
        system_state: Validated snapshot (not modified)

    Returns:
        MatrixResult with Finish vector, execution order and trace

    References:
        Silberschatz, A., Galvin, P. B., & Gagne, G. (2018).
        Operating System Concepts (10th ed.). Chapter 7.6: Deadlock Detection.
    """
    log = TraceLog()
    n = system_state.num_processes
    m = system_state.num_resources

    log.note("=== Matrix-Based Deadlock Detection ===")
    log.note(f"System: {n} processes, {m} resource types")
    log.note("")

    allocation = system_state.allocation_matrix
    request = system_state.request_matrix

    log.note("Initial State:")
    log.note(f"Available = {format_vector(system_state.available_vector)}")
    log.note("Allocation Matrix:")
    for i in range(n):
        log.note(f"  {system_state.process_name(i)}: {format_vector(allocation[i])}")
    log.note("Request Matrix:")
    for i in range(n):
        log.note(f"  {system_state.process_name(i)}: {format_vector(request[i])}")
    log.note("")

    # Step 1: Initialize Work and Finish vectors
    work = system_state.available_vector.copy()
    finish = np.zeros(n, dtype=bool)
    execution_order = []

    log.note(f"Work = Available = {format_vector(work)}")
    log.note(f"Finish = {_finish_str(finish)}")
    log.note("")

    # Step 2-3: Passes until no progress
    progress = n > 0
    iteration = 0
    while progress:
        progress = False
        iteration += 1
        log.note(f"--- Iteration {iteration} ---")

        for i in range(n):
            if finish[i]:
                continue

            name = system_state.process_name(i)
            can_finish = bool(np.all(request[i] <= work))
            log.add(TraceEvent(
                event_type=TraceEventType.CHECK,
                message=(
                    f"Checking {name}: Request[{i}] = {format_vector(request[i])}, "
                    f"Work = {format_vector(work)} -> "
                    + ("Request <= Work, can finish" if can_finish else "Request > Work, cannot finish")
                ),
                iteration=iteration,
                process_id=i,
                vector=tuple(int(x) for x in request[i]),
                outcome=can_finish,
            ))

            if can_finish:
                finish[i] = True
                execution_order.append(i)
                work += allocation[i]
                progress = True
                log.add(TraceEvent(
                    event_type=TraceEventType.RELEASE,
                    message=(
                        f"  {name} finishes and releases {format_vector(allocation[i])}; "
                        f"Finish[{i}] = True, Work = {format_vector(work)}"
                    ),
                    iteration=iteration,
                    process_id=i,
                    vector=tuple(int(x) for x in work),
                ))

        if not progress:
            log.note("No more processes can finish.")

    # Step 4: Identify deadlocked processes
    deadlocked_processes = tuple(i for i in range(n) if not finish[i])
    deadlocked = len(deadlocked_processes) > 0

    log.note("")
    log.note("--- Final Results ---")
    log.note(f"Finish = {_finish_str(finish)}")
    if deadlocked:
        message = "System is DEADLOCKED. Deadlocked processes: " + \
            format_processes(system_state, deadlocked_processes)
    else:
        message = "All processes can finish. System is deadlock-free."
        if execution_order:
            message += " Safe execution sequence: " + " -> ".join(
                system_state.process_name(p) for p in execution_order)
    log.add(TraceEvent(
        event_type=TraceEventType.VERDICT,
        message=message,
        processes=deadlocked_processes,
        outcome=deadlocked,
    ))
    if deadlocked and execution_order:
        log.note("Processes that finished: " + format_processes(system_state, execution_order))

    return MatrixResult(
        deadlocked=deadlocked,
        deadlocked_processes=deadlocked_processes,
        finish=[bool(f) for f in finish],
        execution_order=execution_order,
        trace=log.lines(),
        events=log.events,
    )
