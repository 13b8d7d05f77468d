"""
System State model for Deadlock Detective.

Holds one resource-allocation snapshot: processes, resource types,
the Available vector and the Allocation/Request matrices.
"""

import numpy as np
from typing import Iterable, List, Optional
from dataclasses import dataclass, field

from models.process import Process
from models.resource import ResourceType


@dataclass
class SystemState:
    """
    Resource-allocation snapshot analysed by the detectors.

    The snapshot is treated as immutable once built. The numpy views are
    derived lazily from the plain lists and are read-only; algorithms copy
    them before mutating (e.g. the Work vector).

    Attributes:
        processes: Processes, position i has pid i
        resource_types: Resource types, position j has rid j
        available: [R] Free instances per resource type
        allocation: [P][R] Instances currently held by each process
        request: [P][R] Instances requested but not yet granted
    """
    processes: List[Process] = field(default_factory=list)
    resource_types: List[ResourceType] = field(default_factory=list)
    available: List[int] = field(default_factory=list)
    allocation: List[List[int]] = field(default_factory=list)
    request: List[List[int]] = field(default_factory=list)

    # Cached read-only views (built on first access)
    _available_vector: Optional[np.ndarray] = field(default=None, init=False, repr=False, compare=False)
    _allocation_matrix: Optional[np.ndarray] = field(default=None, init=False, repr=False, compare=False)
    _request_matrix: Optional[np.ndarray] = field(default=None, init=False, repr=False, compare=False)
    _total_vector: Optional[np.ndarray] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def empty(cls, num_processes: int = 3, num_resources: int = 3) -> "SystemState":
        """
        Create a blank state: single-instance resources, nothing held or requested.

        Args:
            num_processes: Number of processes (named P0, P1, ...)
            num_resources: Number of resource types (named R0, R1, ...)
        """
        return cls(
            processes=[Process(pid=i, name=f"P{i}") for i in range(num_processes)],
            resource_types=[ResourceType(rid=j, name=f"R{j}", instances=1) for j in range(num_resources)],
            available=[1] * num_resources,
            allocation=[[0] * num_resources for _ in range(num_processes)],
            request=[[0] * num_resources for _ in range(num_processes)],
        )

    @property
    def num_processes(self) -> int:
        """Number of processes in the system."""
        return len(self.processes)

    @property
    def num_resources(self) -> int:
        """Number of resource types in the system."""
        return len(self.resource_types)

    @property
    def is_single_instance(self) -> bool:
        """True when every resource type has exactly one instance."""
        return all(r.is_single_instance for r in self.resource_types)

    @property
    def available_vector(self) -> np.ndarray:
        """Get available resources vector [R]."""
        if self._available_vector is None:
            self._available_vector = self._freeze(np.array(self.available, dtype=int).reshape(self.num_resources))
        return self._available_vector

    @property
    def allocation_matrix(self) -> np.ndarray:
        """Get allocation matrix [P][R]."""
        if self._allocation_matrix is None:
            self._allocation_matrix = self._build_matrix(self.allocation)
        return self._allocation_matrix

    @property
    def request_matrix(self) -> np.ndarray:
        """Get pending request matrix [P][R]."""
        if self._request_matrix is None:
            self._request_matrix = self._build_matrix(self.request)
        return self._request_matrix

    @property
    def total_vector(self) -> np.ndarray:
        """Get total instances vector [R]."""
        if self._total_vector is None:
            self._total_vector = self._freeze(
                np.array([r.instances for r in self.resource_types], dtype=int).reshape(self.num_resources)
            )
        return self._total_vector

    def _build_matrix(self, rows: List[List[int]]) -> np.ndarray:
        """Build a [P][R] matrix; shape stays (n, m) even when n or m is 0."""
        matrix = np.zeros((self.num_processes, self.num_resources), dtype=int)
        for i, row in enumerate(rows):
            for j in range(self.num_resources):
                matrix[i][j] = row[j]
        return self._freeze(matrix)

    @staticmethod
    def _freeze(array: np.ndarray) -> np.ndarray:
        array.setflags(write=False)
        return array

    def process_name(self, pid: int) -> str:
        """Display name of the process at index pid."""
        return self.processes[pid].name

    def resource_name(self, rid: int) -> str:
        """Display name of the resource type at index rid."""
        return self.resource_types[rid].name

    def without_processes(self, terminated: Iterable[int]) -> "SystemState":
        """
        Derive the state left after terminating some processes.

        Survivors keep their names and relative order but are reindexed
        densely from 0. Every instance held by a terminated process is
        returned to Available, so conservation still holds. The receiver
        is not modified.

        Args:
            terminated: Indices of processes to remove

        Returns:
            New SystemState over the surviving processes
        """
        removed = set(terminated)
        survivors = [i for i in range(self.num_processes) if i not in removed]

        new_available = self.available_vector.copy()
        for pid in sorted(removed):
            new_available += self.allocation_matrix[pid]

        return SystemState(
            processes=[Process(pid=new_pid, name=self.processes[old].name)
                       for new_pid, old in enumerate(survivors)],
            resource_types=list(self.resource_types),
            available=[int(x) for x in new_available],
            allocation=[list(self.allocation[old]) for old in survivors],
            request=[list(self.request[old]) for old in survivors],
        )

    def display(self) -> str:
        """
        Generate readable string representation of system state.

        Returns:
            Formatted string showing resources, Available and both matrices
        """
        output = []
        output.append("\n" + "="*60)
        output.append("SYSTEM STATE")
        output.append("="*60)

        output.append("\nResource Types:")
        for r in self.resource_types:
            output.append(f"  R{r.rid}: {r.name:16} instances={r.instances}")

        output.append("\nAvailable Resources:")
        output.append("  [" + ", ".join(
            f"R{j}:{self.available_vector[j]:2}" for j in range(self.num_resources)) + "]")

        header = "         " + " ".join([f"R{j:<3}" for j in range(self.num_resources)])
        for title, matrix in (("Allocation Matrix:", self.allocation_matrix),
                              ("Request Matrix (Pending):", self.request_matrix)):
            output.append("\n" + title)
            output.append(header)
            for i, process in enumerate(self.processes):
                row = f"  P{process.pid:<4}: "
                row += " ".join([f"{matrix[i][j]:3} " for j in range(self.num_resources)])
                output.append(row)

        output.append("\n" + "="*60)
        return "\n".join(output)

    def assert_resource_conservation(self, context=""):
        """Verify resource conservation: allocated + available = total for all resources.

        Args:
            context: Description of when this check is being run (for error messages)

        Raises:
            AssertionError: If resource conservation is violated
        """
        for r_idx in range(self.num_resources):
            allocated = self.allocation_matrix[:, r_idx].sum()
            available = self.available_vector[r_idx]
            total = self.total_vector[r_idx]

            assert allocated + available == total, (
                f"Resource conservation violated for R{r_idx} {context}\n"
                f"  Allocated: {allocated}, Available: {available}, Total: {total}\n"
                f"  Allocated + Available = {allocated + available} != {total}"
            )

            assert available >= 0, (
                f"Negative available resources for R{r_idx} {context}\n"
                f"  Available: {available}"
            )
