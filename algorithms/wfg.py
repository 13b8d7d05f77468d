"""
Wait-For Graph Deadlock Detection for Deadlock Detective.

Implements cycle detection on the wait-for graph. A cycle implies
deadlock only when every resource type has a single instance; on
multi-instance systems a cycle may be a false positive.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from models.system_state import SystemState
from analysis.events import TraceEvent, TraceEventType, TraceLog, format_processes


@dataclass(frozen=True)
class WaitForEdge:
    """
    Directed wait-for relationship.

    Attributes:
        from_pid: Waiting process
        to_pid: Process holding the resource
        resource_id: Resource type being waited for
    """
    from_pid: int
    to_pid: int
    resource_id: int


@dataclass
class Cycle:
    """A cycle in the wait-for graph, closed from the last process back to the first."""
    processes: List[int]
    edges: List[WaitForEdge]


@dataclass
class WfgResult:
    """
    Outcome of a wait-for graph detection run.

    Attributes:
        deadlocked: True if at least one cycle was found
        deadlocked_processes: Sorted indices of processes on a reported cycle
        cycles: Reported cycles, covering every process on a wait-for cycle
        wait_for_edges: Every wait-for edge, including parallel ones
        trace: Human-readable trace lines
        events: Structured trace behind the lines
    """
    deadlocked: bool
    deadlocked_processes: Tuple[int, ...]
    cycles: List[Cycle]
    wait_for_edges: List[WaitForEdge]
    trace: List[str] = field(default_factory=list)
    events: List[TraceEvent] = field(default_factory=list, repr=False)


def build_wait_for_graph(system_state: SystemState) -> Tuple[Dict[int, List[int]], List[WaitForEdge]]:
    """
    Build the wait-for graph.

    Process i waits for process k (k != i) when i requests resource j and
    k holds at least one instance of j. Edges are enumerated in increasing
    i, then j, then k order. A process never waits for itself.

    Returns:
        Tuple of (adjacency, edges)
        - adjacency: pid -> successors in first-insertion order, no duplicates
        - edges: every labelled edge
    """
    n = system_state.num_processes
    m = system_state.num_resources
    request = system_state.request_matrix
    allocation = system_state.allocation_matrix

    adjacency = {i: [] for i in range(n)}
    edges = []

    for i in range(n):
        for j in range(m):
            if request[i][j] <= 0:
                continue
            for k in range(n):
                if k != i and allocation[k][j] > 0:
                    if k not in adjacency[i]:
                        adjacency[i].append(k)
                    edges.append(WaitForEdge(from_pid=i, to_pid=k, resource_id=j))

    return adjacency, edges


def find_cycles(adjacency: Dict[int, List[int]], n: int) -> List[List[int]]:
    """
    Find cycles with depth-first search.

    Every unvisited node, in index order, roots a DFS that keeps a
    recursion stack. An edge back to a node on the stack closes a cycle:
    the stack segment from that node to the current one. The current node
    then stops exploring its remaining successors and the search
    backtracks, so each node reports at most one cycle.

    Cross edges into already-finished nodes can hide a cycle from the DFS.
    A second pass over the strongly connected components reports the
    shortest cycle through every process on a cycle that is not yet
    covered, so the union of reported cycles is exactly the set of
    processes on some wait-for cycle. Not every simple cycle is listed.

    Args:
        adjacency: pid -> ordered successors
        n: Number of processes

    Returns:
        List of cycles, each a list of pids in traversal order
    """
    cycles = []
    visited = set()

    for root in range(n):
        if root in visited:
            continue

        visited.add(root)
        path = [root]
        on_stack = {root: 0}
        frames = [iter(adjacency.get(root, ()))]

        while frames:
            neighbor = next(frames[-1], None)

            if neighbor is not None and neighbor in on_stack:
                cycles.append(path[on_stack[neighbor]:])
                neighbor = None

            if neighbor is None:
                frames.pop()
                del on_stack[path.pop()]
                continue

            if neighbor not in visited:
                visited.add(neighbor)
                on_stack[neighbor] = len(path)
                path.append(neighbor)
                frames.append(iter(adjacency.get(neighbor, ())))

    covered = {pid for cycle in cycles for pid in cycle}
    for component in strongly_connected_components(adjacency, n):
        if len(component) < 2:
            continue
        members = set(component)
        for pid in component:
            if pid not in covered:
                cycle = _shortest_cycle(pid, adjacency, members)
                cycles.append(cycle)
                covered.update(cycle)

    return cycles


def strongly_connected_components(adjacency: Dict[int, List[int]], n: int) -> List[List[int]]:
    """
    Kosaraju's algorithm with explicit stacks.

    Returns:
        Components as sorted pid lists, ordered by their lowest pid
    """
    order = []
    seen = set()
    for root in range(n):
        if root in seen:
            continue
        seen.add(root)
        stack = [(root, iter(adjacency.get(root, ())))]
        while stack:
            node, successors = stack[-1]
            nxt = next((s for s in successors if s not in seen), None)
            if nxt is None:
                stack.pop()
                order.append(node)
            else:
                seen.add(nxt)
                stack.append((nxt, iter(adjacency.get(nxt, ()))))

    reverse = {i: [] for i in range(n)}
    for node in range(n):
        for succ in adjacency.get(node, ()):
            reverse[succ].append(node)

    components = []
    assigned = set()
    for node in reversed(order):
        if node in assigned:
            continue
        assigned.add(node)
        component = [node]
        stack = [node]
        while stack:
            for pred in reverse[stack.pop()]:
                if pred not in assigned:
                    assigned.add(pred)
                    component.append(pred)
                    stack.append(pred)
        components.append(sorted(component))

    return sorted(components)


def _shortest_cycle(start: int, adjacency: Dict[int, List[int]], members: Set[int]) -> List[int]:
    """Breadth-first search for the shortest cycle through start inside one component."""
    parent = {start: None}
    queue = deque([start])
    while queue:
        node = queue.popleft()
        for succ in adjacency.get(node, ()):
            if succ not in members:
                continue
            if succ == start:
                path = [node]
                while parent[path[-1]] is not None:
                    path.append(parent[path[-1]])
                return path[::-1]
            if succ not in parent:
                parent[succ] = node
                queue.append(succ)
    return []


def _cycle_edges(cycle: List[int], edges: List[WaitForEdge]) -> List[WaitForEdge]:
    """Close a cycle with its edges, labelling each by the lowest linking resource."""
    closed = []
    for idx, from_pid in enumerate(cycle):
        to_pid = cycle[(idx + 1) % len(cycle)]
        resource_id = min(e.resource_id for e in edges
                          if e.from_pid == from_pid and e.to_pid == to_pid)
        closed.append(WaitForEdge(from_pid=from_pid, to_pid=to_pid, resource_id=resource_id))
    return closed


def detect_wfg(system_state: SystemState) -> WfgResult:
    """
    Detect deadlock using the wait-for graph.

    Callers should only rely on the verdict when every resource type has
    exactly one instance (see SystemState.is_single_instance).

    Complexity: O(P²×R) to build edges, O(P + E) to search for cycles.

    Args:
        system_state: Validated snapshot (not modified)

    Returns:
        WfgResult with edges, cycles and trace
    """
    log = TraceLog()
    n = system_state.num_processes

    log.note("=== Wait-For Graph Deadlock Detection ===")
    log.note(f"System: {n} processes, {system_state.num_resources} resource types")
    log.note("")
    log.note("Building wait-for graph...")

    adjacency, edges = build_wait_for_graph(system_state)

    log.note(f"Wait-for edges ({len(edges)}):")
    if not edges:
        log.note("  No wait-for edges found. No process is waiting.")
    for edge in edges:
        log.add(TraceEvent(
            event_type=TraceEventType.EDGE,
            message=(
                f"  {system_state.process_name(edge.from_pid)} -> "
                f"{system_state.process_name(edge.to_pid)} "
                f"(waiting for {system_state.resource_name(edge.resource_id)})"
            ),
            process_id=edge.from_pid,
            target_id=edge.to_pid,
            resource_type=edge.resource_id,
        ))
    log.note("")
    log.note("Detecting cycles in wait-for graph...")

    cycles = [
        Cycle(processes=cycle, edges=_cycle_edges(cycle, edges))
        for cycle in find_cycles(adjacency, n)
    ]
    deadlocked_processes = tuple(sorted({pid for cycle in cycles for pid in cycle.processes}))

    for idx, cycle in enumerate(cycles, start=1):
        names = [system_state.process_name(pid) for pid in cycle.processes]
        log.add(TraceEvent(
            event_type=TraceEventType.CYCLE,
            message=f"Cycle {idx}: " + " -> ".join(names + names[:1]),
            processes=tuple(cycle.processes),
        ))

    if cycles:
        message = (
            f"Found {len(cycles)} cycle(s). System is DEADLOCKED. Deadlocked processes: "
            + format_processes(system_state, deadlocked_processes)
        )
    else:
        message = "No cycles detected. System is deadlock-free."
    log.add(TraceEvent(
        event_type=TraceEventType.VERDICT,
        message=message,
        processes=deadlocked_processes,
        outcome=bool(cycles),
    ))

    return WfgResult(
        deadlocked=bool(cycles),
        deadlocked_processes=deadlocked_processes,
        cycles=cycles,
        wait_for_edges=edges,
        trace=log.lines(),
        events=log.events,
    )
