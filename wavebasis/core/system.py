"""System base class.

Systems read required components from entities and attach the components
they produce. Each system runs in one of two directions:
- 'forward': analysis (signal to packets to basis)
- 'inverse': synthesis (packets back to a signal)

Example:
    >>> class Energy(System):
    ...     def required_components(self):
    ...         return [Packets]
    ...     def produced_components(self):
    ...         return [Features]
    ...     def run(self, world, eids):
    ...         for eid in eids:
    ...             tree = world.get_component(eid, Packets).tree
    ...             world.add_component(eid, Features(...))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal

from wavebasis.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from wavebasis.core.world import World


class System(ABC):
    """Base class for all systems.

    Attributes:
        mode: Transformation direction ('forward' or 'inverse')
    """

    def __init__(self, mode: Literal["forward", "inverse"] = "forward") -> None:
        if mode not in ("forward", "inverse"):
            raise InvalidArgumentError(f"mode must be 'forward' or 'inverse', got {mode!r}")
        self.mode = mode

    @abstractmethod
    def required_components(self) -> list[type]:
        """Component types every processed entity must hold."""

    @abstractmethod
    def produced_components(self) -> list[type]:
        """Component types attached to every processed entity."""

    @abstractmethod
    def run(self, world: World, eids: list[int]) -> None:
        """Execute the system on the given entities."""

    def can_run(self, world: World, eid: int) -> bool:
        return all(world.has_component(eid, ct) for ct in self.required_components())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(mode={self.mode})"
