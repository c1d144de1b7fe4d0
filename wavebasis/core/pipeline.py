"""Fluent pipelines of systems over a group of entities."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from wavebasis.core.system import System
    from wavebasis.core.world import World

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class Pipe:
    """Fluent pipeline builder.

    Systems are chained with `.to()` or the `|` operator and run in order by
    `.execute()`, `.out()` or `.collect()`. Every system receives all
    entities of the pipe that hold its required components, so joint systems
    see the whole ensemble at once.

    Example:
        >>> basis = (
        ...     world.pipe(*eids)
        ...     | PacketDecompose(wavelet="db2")
        ...     | BestBasisSelect(method="jbb")
        ... ).out(Basis)
    """

    def __init__(self, world: World, entities: list[int]) -> None:
        self.world = world
        self.entities = list(entities)
        self.systems: list[System] = []

    def to(self, system: System) -> Pipe:
        self.systems.append(system)
        return self

    def __or__(self, system: System) -> Pipe:
        return self.to(system)

    def execute(self) -> None:
        """Run all systems in order.

        Raises:
            RuntimeError: If no entity holds the components a system requires
        """
        for system in self.systems:
            runnable = [eid for eid in self.entities if system.can_run(self.world, eid)]
            if not runnable:
                required = [ct.__name__ for ct in system.required_components()]
                raise RuntimeError(
                    f"System {type(system).__name__} cannot run: "
                    f"entities missing required components {required}. "
                    f"Available entities: {self.entities}"
                )
            logger.debug(f"Running {system!r} on {len(runnable)} entities")
            system.run(self.world, runnable)

    def out(self, component_type: type[T]) -> T:
        """Execute and return the component of the first entity."""
        self.execute()
        return self.world.get_component(self.entities[0], component_type)

    def collect(self, component_type: type[T]) -> list[T]:
        """Execute and return the component of every entity, in pipe order."""
        self.execute()
        return [self.world.get_component(eid, component_type) for eid in self.entities]
