"""World: entity registry for signal ensembles.

The World manages:
- Entity creation (integer IDs)
- Component storage (type -> entity -> component mapping)
- Component queries (entities holding a given combination of components)
- The signal arena (input signals and reconstructions)

Example:
    >>> world = World()
    >>> eids = world.spawn_ensemble(np.random.randn(5, 16))
    >>> world.pipe(*eids).to(PacketDecompose()).to(BestBasisSelect(method="jbb")).execute()
    >>> world.query(Signal, Basis)
    [0, 1, 2, 3, 4]
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence, TypeVar

import numpy as np
from pydantic import BaseModel

from wavebasis.core.arena import Arena
from wavebasis.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from wavebasis.core.pipeline import Pipe

logger = logging.getLogger(__name__)

Component = BaseModel

T = TypeVar("T", bound=Component)


class World:
    """Central registry of entities, components and signal memory.

    Attributes:
        arena: Memory arena for signals and reconstructions
        metadata: Per-entity metadata dict
    """

    def __init__(self, arena_bytes: int = 64 << 20):
        """Create World with specified arena size.

        Args:
            arena_bytes: Arena size in bytes (default 64 MB)
        """
        self.arena = Arena(size_bytes=arena_bytes)
        self._next_eid = 0
        self._components: dict[type[Component], dict[int, Component]] = {}
        self.metadata: dict[int, dict[str, Any]] = {}

    def new_entity(self) -> int:
        eid = self._next_eid
        self._next_eid += 1
        self.metadata[eid] = {}
        return eid

    @staticmethod
    def _as_signal(x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        if x.ndim not in (1, 2) or x.size == 0:
            raise InvalidArgumentError(
                f"Expected a non-empty 1-D signal or 2-D image, got shape {x.shape}"
            )
        return x

    def spawn_signal(self, x: np.ndarray) -> int:
        """Ingest one signal (1-D) or image (2-D).

        Returns:
            Entity ID with a Signal component attached
        """
        from wavebasis.components.signal import Signal

        x = self._as_signal(x)
        eid = self.new_entity()
        self.add_component(eid, Signal(x=self.arena.copy_tensor(x)))
        self.metadata[eid]["signal_shape"] = x.shape
        return eid

    def spawn_ensemble(self, signals: np.ndarray | Sequence[np.ndarray]) -> list[int]:
        """Ingest equally shaped signals into one contiguous batch.

        Args:
            signals: Sequence of equally shaped signals, or a 2-D array with
                one signal per row

        Returns:
            Entity IDs with Signal components, one per signal

        Raises:
            InvalidArgumentError: If the signals differ in shape
        """
        from wavebasis.components.signal import Signal

        if len(signals) == 0:
            return []
        members = [self._as_signal(s) for s in signals]
        ref_shape = members[0].shape
        for i, s in enumerate(members):
            if s.shape != ref_shape:
                raise InvalidArgumentError(
                    f"Signal {i} has shape {s.shape}, expected {ref_shape}"
                )

        batch_ref = self.arena.alloc_tensor((len(members),) + ref_shape, np.float64)
        batch = self.arena.view(batch_ref)
        eids = []
        for i, s in enumerate(members):
            batch[i] = s
            eid = self.new_entity()
            self.add_component(eid, Signal(x=batch_ref.row(i)))
            self.metadata[eid]["signal_shape"] = ref_shape
            self.metadata[eid]["batch_index"] = i
            eids.append(eid)
        logger.debug(f"Spawned ensemble of {len(eids)} signals with shape {ref_shape}")
        return eids

    def clear(self) -> None:
        """Reset arena and drop all entities. Invalidates every TensorRef."""
        self.arena.reset()
        self._next_eid = 0
        self._components.clear()
        self.metadata.clear()

    def add_component(self, eid: int, component: Component) -> None:
        """Attach a component to an entity, replacing one of the same type.

        Raises:
            ValueError: If entity does not exist
        """
        if eid not in self.metadata:
            raise ValueError(f"Entity {eid} does not exist")
        self._components.setdefault(type(component), {})[eid] = component

    def get_component(self, eid: int, comp_type: type[T]) -> T:
        """Retrieve a component from an entity.

        Raises:
            KeyError: If entity does not have the component
        """
        if comp_type not in self._components:
            raise KeyError(f"No entities have component type {comp_type.__name__}")
        if eid not in self._components[comp_type]:
            raise KeyError(f"Entity {eid} does not have component {comp_type.__name__}")
        return self._components[comp_type][eid]  # type: ignore

    def has_component(self, eid: int, comp_type: type[Component]) -> bool:
        return comp_type in self._components and eid in self._components[comp_type]

    def remove_component(self, eid: int, comp_type: type[Component]) -> None:
        if not self.has_component(eid, comp_type):
            raise KeyError(f"Entity {eid} does not have component {comp_type.__name__}")
        del self._components[comp_type][eid]

    def query(self, *comp_types: type[Component]) -> list[int]:
        """Entities that have ALL given component types (all entities if none given)."""
        if not comp_types:
            return list(self.metadata.keys())

        result_set = set(self._components.get(comp_types[0], {}).keys())
        for comp_type in comp_types[1:]:
            if comp_type not in self._components:
                return []
            result_set &= set(self._components[comp_type].keys())
        return sorted(result_set)

    def destroy_entity(self, eid: int) -> None:
        """Remove entity and all its components.

        Arena memory is only reclaimed by clear().
        """
        if eid not in self.metadata:
            raise ValueError(f"Entity {eid} does not exist")
        for comp_store in self._components.values():
            comp_store.pop(eid, None)
        del self.metadata[eid]

    def pipe(self, *entities: int) -> Pipe:
        """Start a fluent pipeline over one or more entities.

        Example:
            >>> basis = world.pipe(eid).to(PacketDecompose()).to(BestBasisSelect()).out(Basis)
        """
        from wavebasis.core.pipeline import Pipe

        if not entities:
            raise InvalidArgumentError("pipe() needs at least one entity")
        return Pipe(world=self, entities=list(entities))

    def __repr__(self) -> str:
        return (
            f"World(entities={len(self.metadata)}, component_types={len(self._components)}, "
            f"arena={self.arena})"
        )
