"""
Trace Event Model for Deadlock Detective.

Defines the structured trace the detectors record while they run.
Each event keeps the data behind a decision (which process, which
resource, what was compared) next to its human-readable line.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class TraceEventType(Enum):
    """Types of events in a detection trace."""
    NOTE = "note"
    EDGE = "edge"
    CYCLE = "cycle"
    CHECK = "check"
    RELEASE = "release"
    VERDICT = "verdict"


@dataclass
class TraceEvent:
    """
    Represents a single step of a detection run.

    Attributes:
        event_type: Type of event
        message: Human-readable description
        iteration: Pass number of the Work/Finish simulation (if applicable)
        process_id: Process involved (if applicable)
        target_id: Process waited on, for wait-for edges
        resource_type: Resource type involved (if applicable)
        processes: Processes involved, for cycles and verdicts
        vector: Vector snapshot (Work after a release, Request during a check)
        outcome: Result of a comparison or verdict
    """
    event_type: TraceEventType
    message: str = ""
    iteration: Optional[int] = None
    process_id: Optional[int] = None
    target_id: Optional[int] = None
    resource_type: Optional[int] = None
    processes: Tuple[int, ...] = ()
    vector: Tuple[int, ...] = ()
    outcome: Optional[bool] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class TraceLog:
    """Ordered collection of trace events."""
    events: List[TraceEvent] = field(default_factory=list)

    def add(self, event: TraceEvent) -> None:
        """Add an event to the log."""
        self.events.append(event)

    def note(self, message: str) -> None:
        """Add a free-text line."""
        self.add(TraceEvent(event_type=TraceEventType.NOTE, message=message))

    def get_events_by_type(self, event_type: TraceEventType) -> List[TraceEvent]:
        """Get all events of a specific type."""
        return [e for e in self.events if e.event_type == event_type]

    def lines(self) -> List[str]:
        """Render the trace as one string per event."""
        return [str(event) for event in self.events]

    def display(self) -> str:
        """Format all events for display."""
        return "\n".join(self.lines())


def format_vector(vector) -> str:
    """Format a vector as '[a, b, c]'."""
    return "[" + ", ".join(str(int(x)) for x in vector) + "]"


def format_processes(state, pids) -> str:
    """Format process indices as a comma-separated list of names."""
    return ", ".join(state.process_name(pid) for pid in pids)
