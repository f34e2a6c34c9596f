"""Status transition tables."""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Generic, TypeVar

S = TypeVar("S", bound=Enum)


class StatusMachine(Generic[S]):
    """
    Allowed-transitions table keyed by current status.

    A status with no outgoing transitions is terminal.
    """

    def __init__(self, name: str, transitions: Mapping[S, Iterable[S]]):
        """Initialize with an entity name (used in messages) and the transition table."""
        self.name = name
        self.transitions: dict[S, frozenset[S]] = {
            current: frozenset(targets) for current, targets in transitions.items()
        }

    def is_terminal(self, status: S) -> bool:
        """Check whether no further transition is permitted from a status."""
        return not self.transitions.get(status)

    @property
    def terminal_states(self) -> frozenset[S]:
        """All terminal statuses."""
        return frozenset(status for status in self.transitions if self.is_terminal(status))

    def can_transition(self, current: S, target: S) -> bool:
        """
        Check whether moving from one status to another is allowed.

        Re-asserting the current status of a non-terminal entity is allowed.
        """
        if self.is_terminal(current):
            return False
        return target == current or target in self.transitions[current]

    def describe(self, current: S, target: S) -> str:
        """Explain why a transition is rejected."""
        if self.is_terminal(current):
            return f"Cannot change {self.name} status: it is already {current.value}"
        allowed = ", ".join(sorted(s.value for s in self.transitions[current]))
        return (
            f"Cannot change {self.name} status from {current.value} to {target.value} "
            f"(allowed: {allowed})"
        )
