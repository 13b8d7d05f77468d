"""
Structural validation for Deadlock Detective.

Checks a SystemState snapshot before any detection algorithm runs.
Checks fail fast: the first violation found is raised.
"""

from typing import List, Optional, Tuple, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from models.system_state import SystemState


class ValidationError(ValueError):
    """
    Raised when a system state violates a structural invariant.

    Attributes:
        process: Index of the offending process, if any
        resource: Index of the offending resource type, if any
    """

    def __init__(self, message: str, process: Optional[int] = None,
                 resource: Optional[int] = None):
        super().__init__(message)
        self.process = process
        self.resource = resource


def _is_vector(value) -> bool:
    """True for lists, tuples and numpy arrays."""
    return isinstance(value, (list, tuple, np.ndarray))


def _is_count(value) -> bool:
    """True for Python or numpy integers (bool excluded)."""
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


def validate(state: "SystemState", strict_requests: bool = False) -> None:
    """
    Validate a system state.

    Checks, in order:
    1. Dense identifiers: processes[i].pid == i, resource_types[j].rid == j
    2. Dimensional consistency of available, allocation and request
    3. Integer, non-negative entries
    4. Resource conservation: available[j] + sum(allocation[:, j]) == instances[j]
    5. Request feasibility (only when strict_requests is set)

    Args:
        state: Snapshot to check
        strict_requests: Reject requests exceeding a resource's total instances

    Raises:
        ValidationError: On the first violated invariant
    """
    _validate_identifiers(state)
    _validate_dimensions(state)
    _validate_entries(state)
    _validate_conservation(state)

    if strict_requests:
        overruns = _request_overruns(state)
        if overruns:
            i, j = overruns[0]
            raise ValidationError(_overrun_message(state, i, j), process=i, resource=j)


def _validate_identifiers(state: "SystemState") -> None:
    for i, process in enumerate(state.processes):
        if process.pid != i:
            raise ValidationError(
                f"Process at position {i} has pid {process.pid}; pids must be dense and 0-indexed",
                process=i
            )
    for j, resource in enumerate(state.resource_types):
        if resource.rid != j:
            raise ValidationError(
                f"Resource type at position {j} has rid {resource.rid}; rids must be dense and 0-indexed",
                resource=j
            )


def _validate_dimensions(state: "SystemState") -> None:
    n = len(state.processes)
    m = len(state.resource_types)

    if not _is_vector(state.available):
        raise ValidationError(f"Available must be a list, got {type(state.available).__name__}")
    if len(state.available) != m:
        raise ValidationError(
            f"Available vector must have {m} elements, got {len(state.available)}"
        )

    for label, matrix in (("Allocation", state.allocation), ("Request", state.request)):
        if not _is_vector(matrix):
            raise ValidationError(f"{label} matrix must be a list of rows, got {type(matrix).__name__}")
        if len(matrix) != n:
            raise ValidationError(f"{label} matrix must have {n} rows, got {len(matrix)}")
        for i, row in enumerate(matrix):
            if not _is_vector(row):
                raise ValidationError(
                    f"{label}[{i}] must be a list, got {type(row).__name__}",
                    process=i
                )
            if len(row) != m:
                raise ValidationError(
                    f"{label}[{i}] must have {m} columns, got {len(row)}",
                    process=i
                )


def _validate_entries(state: "SystemState") -> None:
    for j, value in enumerate(state.available):
        if not _is_count(value):
            raise ValidationError(f"Available[{j}] must be an integer, got {value!r}", resource=j)
        if value < 0:
            raise ValidationError(f"Available[{j}] must be non-negative, got {value}", resource=j)

    for label, matrix in (("Allocation", state.allocation), ("Request", state.request)):
        for i, row in enumerate(matrix):
            for j, value in enumerate(row):
                if not _is_count(value):
                    raise ValidationError(
                        f"{label}[{i}][{j}] must be an integer, got {value!r}",
                        process=i, resource=j
                    )
                if value < 0:
                    raise ValidationError(
                        f"{label}[{i}][{j}] must be non-negative, got {value}",
                        process=i, resource=j
                    )


def _validate_conservation(state: "SystemState") -> None:
    for j, resource in enumerate(state.resource_types):
        allocated = sum(row[j] for row in state.allocation)
        total = state.available[j] + allocated
        if total != resource.instances:
            raise ValidationError(
                f"Resource conservation violated for {resource.name} (R{j}): "
                f"Available({state.available[j]}) + Allocated({allocated}) = {total} "
                f"!= Total({resource.instances})",
                resource=j
            )


def request_warnings(state: "SystemState") -> List[str]:
    """
    Report requests that exceed a resource type's total instances.

    Such a request can never be granted; the detectors still run and
    report the process as unable to finish.

    Returns:
        One message per offending (process, resource) pair, in index order
    """
    return [_overrun_message(state, i, j) for i, j in _request_overruns(state)]


def _request_overruns(state: "SystemState") -> List[Tuple[int, int]]:
    """(process, resource) pairs whose request exceeds the total instances."""
    return [
        (i, j)
        for i, row in enumerate(state.request)
        for j, value in enumerate(row)
        if value > state.resource_types[j].instances
    ]


def _overrun_message(state: "SystemState", i: int, j: int) -> str:
    resource = state.resource_types[j]
    return (
        f"Request[{i}][{j}] = {state.request[i][j]} exceeds total instances of "
        f"{resource.name} (R{j}) = {resource.instances}"
    )
