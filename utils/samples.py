"""
Built-in sample systems for Deadlock Detective.

Each sample uses the JSON document layout (without schema_version).
"""

from typing import List

from models.system_state import SystemState
from utils.state_loader import build_state


def _numbered(prefix: str, count: int) -> List[dict]:
    return [{'pid': i, 'name': f"{prefix}{i}"} for i in range(count)]


def _resources(*specs) -> List[dict]:
    return [{'rid': j, 'name': name, 'instances': instances}
            for j, (name, instances) in enumerate(specs)]


# Deadlock scenarios

CIRCULAR_DEADLOCK = {
    'processes': _numbered("P", 3),
    'resource_types': _resources(("R0", 1), ("R1", 1), ("R2", 1)),
    'available': [0, 0, 0],
    'allocation': [[1, 0, 0], [0, 1, 0], [0, 0, 1]],
    'request': [[0, 1, 0], [0, 0, 1], [1, 0, 0]],
}

TWO_PROCESS_DEADLOCK = {
    'processes': [{'pid': 0, 'name': "Process A"}, {'pid': 1, 'name': "Process B"}],
    'resource_types': _resources(("File1", 1), ("File2", 1)),
    'available': [0, 0],
    'allocation': [[1, 0], [0, 1]],
    'request': [[0, 1], [1, 0]],
}

CHAIN_DEADLOCK = {
    'processes': _numbered("P", 4),
    'resource_types': _resources(("Printer", 1), ("Scanner", 1), ("Plotter", 1), ("CD-ROM", 1)),
    'available': [0, 0, 0, 0],
    'allocation': [[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 1, 0], [0, 0, 0, 1]],
    'request': [[0, 1, 0, 0], [0, 0, 1, 0], [0, 0, 0, 1], [1, 0, 0, 0]],
}

DATABASE_DEADLOCK = {
    'processes': [{'pid': i, 'name': f"Transaction T{i + 1}"} for i in range(3)],
    'resource_types': _resources(("Table Lock A", 1), ("Table Lock B", 1), ("Table Lock C", 1)),
    'available': [0, 0, 0],
    'allocation': [[1, 0, 0], [0, 1, 0], [0, 0, 1]],
    'request': [[0, 1, 0], [0, 0, 1], [1, 0, 0]],
}

DINING_PHILOSOPHERS = {
    'processes': _numbered("Philosopher ", 5),
    'resource_types': _resources(*[(f"Fork {j}", 1) for j in range(5)]),
    'available': [0, 0, 0, 0, 0],
    'allocation': [[1 if j == i else 0 for j in range(5)] for i in range(5)],
    'request': [[1 if j == (i + 1) % 5 else 0 for j in range(5)] for i in range(5)],
}

MULTI_INSTANCE_DEADLOCK = {
    'processes': _numbered("P", 4),
    'resource_types': _resources(("R0", 3), ("R1", 2)),
    'available': [0, 0],
    'allocation': [[1, 0], [1, 1], [1, 0], [0, 1]],
    'request': [[0, 1], [0, 1], [1, 0], [1, 0]],
}

PARTIAL_DEADLOCK = {
    'processes': _numbered("P", 4),
    'resource_types': _resources(("R0", 2), ("R1", 2)),
    'available': [0, 0],
    'allocation': [[1, 0], [1, 1], [0, 1], [0, 0]],
    'request': [[0, 1], [0, 1], [1, 0], [0, 0]],
}

# Safe scenarios

SAFE_STATE = {
    'processes': _numbered("P", 3),
    'resource_types': _resources(("R0", 10), ("R1", 5), ("R2", 7)),
    'available': [3, 3, 2],
    'allocation': [[0, 1, 0], [2, 0, 0], [5, 1, 5]],
    'request': [[7, 4, 3], [1, 2, 2], [0, 0, 0]],
}

SIMPLE_SAFE = {
    'processes': _numbered("P", 3),
    'resource_types': _resources(("R0", 5), ("R1", 3)),
    'available': [2, 1],
    'allocation': [[2, 0], [1, 1], [0, 1]],
    'request': [[1, 2], [1, 1], [2, 1]],
}

SINGLE_INSTANCE_SAFE = {
    'processes': _numbered("P", 3),
    'resource_types': _resources(("Mutex A", 1), ("Mutex B", 1), ("Mutex C", 1)),
    'available': [0, 1, 0],
    'allocation': [[1, 0, 0], [0, 0, 1], [0, 0, 0]],
    'request': [[0, 0, 0], [0, 1, 0], [1, 0, 0]],
}

SEQUENTIAL_SAFE = {
    'processes': _numbered("P", 4),
    'resource_types': _resources(("Lock 0", 1), ("Lock 1", 1), ("Lock 2", 1)),
    'available': [1, 0, 0],
    'allocation': [[0, 1, 0], [0, 0, 1], [0, 0, 0], [0, 0, 0]],
    'request': [[0, 0, 0], [0, 0, 0], [1, 0, 0], [0, 1, 0]],
}

NO_REQUESTS = {
    'processes': _numbered("P", 3),
    'resource_types': _resources(("R0", 4), ("R1", 2), ("R2", 3)),
    'available': [2, 1, 1],
    'allocation': [[1, 0, 1], [1, 1, 0], [0, 0, 1]],
    'request': [[0, 0, 0], [0, 0, 0], [0, 0, 0]],
}

BANKERS_SAFE = {
    'processes': _numbered("P", 5),
    'resource_types': _resources(("A", 10), ("B", 5), ("C", 7)),
    'available': [3, 3, 2],
    'allocation': [[0, 1, 0], [2, 0, 0], [3, 0, 2], [2, 1, 1], [0, 0, 2]],
    'request': [[7, 4, 3], [1, 2, 2], [6, 0, 0], [0, 1, 1], [4, 3, 1]],
}

COMPLEX_SAFE = {
    'processes': _numbered("P", 5),
    'resource_types': _resources(("R0", 10), ("R1", 5), ("R2", 7)),
    'available': [0, 0, 0],
    'allocation': [[3, 2, 2], [2, 1, 1], [3, 0, 2], [1, 1, 1], [1, 1, 1]],
    'request': [[0, 0, 0], [2, 0, 0], [0, 0, 0], [1, 0, 0], [0, 0, 2]],
}

LARGE_SAFE = {
    'processes': _numbered("P", 6),
    'resource_types': _resources(("CPU", 6), ("Memory", 8), ("Disk", 4), ("Network", 3)),
    'available': [1, 2, 1, 1],
    'allocation': [
        [1, 1, 0, 0],
        [1, 2, 1, 0],
        [1, 0, 1, 1],
        [0, 1, 0, 0],
        [1, 1, 0, 1],
        [1, 1, 1, 0],
    ],
    'request': [
        [0, 1, 1, 0],
        [0, 0, 1, 1],
        [1, 1, 0, 0],
        [1, 0, 0, 1],
        [0, 1, 0, 0],
        [0, 0, 0, 1],
    ],
}

SAMPLES = {
    'Circular Deadlock (Single-Instance)': CIRCULAR_DEADLOCK,
    'Two Process Deadlock (Single-Instance)': TWO_PROCESS_DEADLOCK,
    'Chain Deadlock (Single-Instance)': CHAIN_DEADLOCK,
    'Database Lock Deadlock (Single-Instance)': DATABASE_DEADLOCK,
    'Dining Philosophers (Deadlock)': DINING_PHILOSOPHERS,
    'Multi-Instance Deadlock': MULTI_INSTANCE_DEADLOCK,
    'Partial Deadlock': PARTIAL_DEADLOCK,
    'Safe State': SAFE_STATE,
    'Simple Safe State': SIMPLE_SAFE,
    'Single-Instance Safe': SINGLE_INSTANCE_SAFE,
    'Sequential Safe (Single-Instance)': SEQUENTIAL_SAFE,
    'No Requests (Trivial Safe)': NO_REQUESTS,
    "Banker's Algorithm (Safe)": BANKERS_SAFE,
    'Complex Safe State': COMPLEX_SAFE,
    'Large System (Safe)': LARGE_SAFE,
}


def list_samples() -> List[str]:
    """Names of all built-in samples, deadlocked ones first."""
    return list(SAMPLES)


def get_sample(name: str) -> SystemState:
    """
    Build a fresh, validated state for a built-in sample.

    Raises:
        KeyError: If no sample has this name
    """
    if name not in SAMPLES:
        raise KeyError(f"Unknown sample '{name}'. Available: {', '.join(SAMPLES)}")
    return build_state(SAMPLES[name])
