"""Loading of test interfaces from entry points."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from importlib.metadata import entry_points

from protocol_engine.interfaces.base import TestInterface

ENTRY_POINT_GROUP = "protocol_engine.interfaces"

log = logging.getLogger(__name__)


class InterfaceNotFoundError(Exception):
    """Raised when a test interface is not found."""


@dataclass(frozen=True)
class InterfaceRegistry:
    """Immutable name to test interface mapping.

    Built once at startup and handed explicitly to whoever needs to resolve
    a program's interface.
    """

    interfaces: Mapping[str, TestInterface] = field(default_factory=dict)

    def get(self, key: str) -> TestInterface:
        """Return the interface registered under key.

        Raises:
            InterfaceNotFoundError: If no interface with the given key exists

        """
        try:
            return self.interfaces[key]
        except KeyError:
            raise InterfaceNotFoundError(
                f"Interface '{key}' not found. "
                f"Available interfaces: {self.names()}"
            ) from None

    def names(self) -> Sequence[str]:
        return sorted(self.interfaces)

    def __contains__(self, key: object) -> bool:
        return key in self.interfaces


def load_interface_registry() -> InterfaceRegistry:
    """Load every registered test interface into a registry."""
    interfaces: dict[str, TestInterface] = {}
    for entry in entry_points(group=ENTRY_POINT_GROUP):
        interfaces[entry.name] = entry.load()
    log.debug("Loaded test interfaces: %s", ", ".join(sorted(interfaces)))
    return InterfaceRegistry(interfaces)
