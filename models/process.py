"""
Process model for Deadlock Detective.

Represents a process in an allocation snapshot.
"""

from dataclasses import dataclass

from models.validation import ValidationError


@dataclass(frozen=True)
class Process:
    """
    Represents a process that holds and requests resource instances.

    Attributes:
        pid: Process identifier, equal to the process's row in every matrix
        name: Display name (non-empty)
    """
    pid: int
    name: str

    def __post_init__(self):
        """Validate process identity."""
        if self.pid < 0:
            raise ValidationError(f"Process ID must be non-negative, got {self.pid}")
        if not self.name or not self.name.strip():
            raise ValidationError(f"P{self.pid}: process name cannot be empty")

    def __str__(self) -> str:
        return self.name
