"""
Resource model for Deadlock Detective.

Represents a resource type with a fixed number of interchangeable instances.
"""

from dataclasses import dataclass

from models.validation import ValidationError


@dataclass(frozen=True)
class ResourceType:
    """
    Represents a resource type in an allocation snapshot.

    Attributes:
        rid: Resource type identifier, equal to the type's column in every matrix
        name: Display name (non-empty)
        instances: Total number of instances in the system

    Invariant:
        instances >= 0
    """
    rid: int
    name: str
    instances: int

    def __post_init__(self):
        """Validate resource type definition."""
        if self.rid < 0:
            raise ValidationError(f"Resource ID must be non-negative, got {self.rid}")
        if not self.name or not self.name.strip():
            raise ValidationError(f"R{self.rid}: resource name cannot be empty")
        if self.instances < 0:
            raise ValidationError(
                f"R{self.rid}: instance count must be non-negative, got {self.instances}",
                resource=self.rid
            )

    @property
    def is_single_instance(self) -> bool:
        """True when exactly one instance of this type exists."""
        return self.instances == 1

    def __str__(self) -> str:
        return self.name
