"""
State Loader for Deadlock Detective.

Imports and exports system states as JSON documents:

    {
        "schema_version": "1.0",
        "processes": [{"pid": 0, "name": "P0"}, ...],
        "resource_types": [{"rid": 0, "name": "R0", "instances": 1}, ...],
        "available": [...],
        "allocation": [[...], ...],
        "request": [[...], ...]
    }

Every loaded state is validated before it is returned.
"""

import json
from typing import Any, Dict, List, Union
from pathlib import Path

from models.process import Process
from models.resource import ResourceType
from models.system_state import SystemState
from models.validation import ValidationError, validate

SCHEMA_VERSION = "1.0"

REQUIRED_FIELDS = ['processes', 'resource_types', 'available', 'allocation', 'request']


class StateLoadError(ValidationError):
    """Exception raised when a state document cannot be loaded or is invalid."""
    pass


def load_state(file_path: Union[str, Path]) -> SystemState:
    """
    Load a system state from a JSON file.

    Args:
        file_path: Path to state JSON file

    Returns:
        Validated SystemState

    Raises:
        StateLoadError: If the file cannot be read or the document is invalid
        ValidationError: If the state breaks a structural invariant
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            text = f.read()
    except FileNotFoundError:
        raise StateLoadError(f"State file not found: {file_path}")
    except OSError as e:
        raise StateLoadError(f"Cannot read state file {file_path}: {e}")

    return loads_state(text)


def loads_state(text: str) -> SystemState:
    """Parse and validate a state from a JSON string."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise StateLoadError(f"Invalid JSON in state document: {e}")

    return state_from_dict(data)


def state_from_dict(data: Dict[str, Any]) -> SystemState:
    """
    Build a state from a parsed JSON document.

    A schema_version other than SCHEMA_VERSION is rejected, never upgraded.

    Raises:
        StateLoadError: On version mismatch, missing fields or wrong field types
        ValidationError: If the state breaks a structural invariant
    """
    if not isinstance(data, dict):
        raise StateLoadError(f"State document must be a JSON object, got {type(data).__name__}")

    version = data.get('schema_version')
    if version != SCHEMA_VERSION:
        raise StateLoadError(
            f"Schema version mismatch: expected '{SCHEMA_VERSION}', got '{version}'"
        )

    return build_state(data)


def build_state(data: Dict[str, Any]) -> SystemState:
    """
    Build and validate a state from its fields (schema_version not required).

    Used for documents already known to be current, such as built-in samples.
    """
    for name in REQUIRED_FIELDS:
        if name not in data:
            raise StateLoadError(f"State document missing '{name}' field")

    processes = _load_processes(data['processes'])
    resource_types = _load_resource_types(data['resource_types'])

    state = SystemState(
        processes=processes,
        resource_types=resource_types,
        available=_load_vector(data['available'], 'available'),
        allocation=_load_matrix(data['allocation'], 'allocation'),
        request=_load_matrix(data['request'], 'request'),
    )

    validate(state)
    return state


def _require_int(value: Any, where: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise StateLoadError(f"{where} must be an integer, got {value!r}")
    return value


def _require_str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise StateLoadError(f"{where} must be a string, got {value!r}")
    return value


def _require_list(value: Any, where: str) -> List:
    if not isinstance(value, list):
        raise StateLoadError(f"'{where}' must be a list, got {type(value).__name__}")
    return value


def _load_processes(process_data: Any) -> List[Process]:
    processes = []

    for idx, proc in enumerate(_require_list(process_data, 'processes')):
        if not isinstance(proc, dict):
            raise StateLoadError(f"processes[{idx}] must be an object")
        for key in ('pid', 'name'):
            if key not in proc:
                raise StateLoadError(f"processes[{idx}] missing '{key}' field")

        processes.append(Process(
            pid=_require_int(proc['pid'], f"processes[{idx}].pid"),
            name=_require_str(proc['name'], f"processes[{idx}].name"),
        ))

    return processes


def _load_resource_types(resource_data: Any) -> List[ResourceType]:
    resources = []

    for idx, res in enumerate(_require_list(resource_data, 'resource_types')):
        if not isinstance(res, dict):
            raise StateLoadError(f"resource_types[{idx}] must be an object")
        for key in ('rid', 'name', 'instances'):
            if key not in res:
                raise StateLoadError(f"resource_types[{idx}] missing '{key}' field")

        resources.append(ResourceType(
            rid=_require_int(res['rid'], f"resource_types[{idx}].rid"),
            name=_require_str(res['name'], f"resource_types[{idx}].name"),
            instances=_require_int(res['instances'], f"resource_types[{idx}].instances"),
        ))

    return resources


def _load_vector(values: Any, where: str) -> List[int]:
    return [_require_int(v, f"{where}[{j}]") for j, v in enumerate(_require_list(values, where))]


def _load_matrix(rows: Any, where: str) -> List[List[int]]:
    return [_load_vector(row, f"{where}[{i}]") for i, row in enumerate(_require_list(rows, where))]


def state_to_dict(state: SystemState) -> Dict[str, Any]:
    """Convert a state to a JSON-serializable document."""
    return {
        'schema_version': SCHEMA_VERSION,
        'processes': [{'pid': p.pid, 'name': p.name} for p in state.processes],
        'resource_types': [
            {'rid': r.rid, 'name': r.name, 'instances': r.instances}
            for r in state.resource_types
        ],
        'available': [int(x) for x in state.available],
        'allocation': [[int(x) for x in row] for row in state.allocation],
        'request': [[int(x) for x in row] for row in state.request],
    }


def dumps_state(state: SystemState) -> str:
    """Export a state as a JSON string."""
    return json.dumps(state_to_dict(state), indent=2)


def save_state(state: SystemState, file_path: Union[str, Path]) -> None:
    """Write a state to a JSON file."""
    with open(file_path, 'w', encoding='utf-8') as f:
        f.write(dumps_state(state))
        f.write("\n")
