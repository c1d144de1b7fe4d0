"""Best basis selection system: Packets -> Basis.

BB and SIBB select one basis per entity. JBB and LSDB run once over all
entities given to the system and attach the same basis to each of them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wavebasis.bestbasis.costs import CostKind, parse_cost
from wavebasis.bestbasis.search import SelectionMethod, best_basis, parse_method
from wavebasis.components.basis import Basis
from wavebasis.components.packets import Packets
from wavebasis.core.system import System
from wavebasis.dsp.siwpd import ShiftTree

if TYPE_CHECKING:
    from wavebasis.core.world import World

logger = logging.getLogger(__name__)

_JOINT_METHODS = (SelectionMethod.JBB, SelectionMethod.LSDB)


class BestBasisSelect(System):
    """Select the basis of each entity's packet tree.

    Attributes:
        method: Selection method; None picks SIBB for shift trees, BB otherwise
        cost: Cost functional
        p: Exponent of the norm cost
        redundant: Force the redundant normalization (None: infer from tree)
    """

    def __init__(
        self,
        method: SelectionMethod | str | None = None,
        cost: CostKind | str = CostKind.SHANNON,
        p: float = 1.0,
        redundant: bool | None = None,
    ):
        super().__init__(mode="forward")
        self.method = parse_method(method) if method is not None else None
        self.cost = parse_cost(cost)
        self.p = p
        self.redundant = redundant

    def required_components(self) -> list[type]:
        return [Packets]

    def produced_components(self) -> list[type]:
        return [Basis]

    def _method_for(self, tree: object) -> SelectionMethod:
        if self.method is not None:
            return self.method
        return SelectionMethod.SIBB if isinstance(tree, ShiftTree) else SelectionMethod.BB

    def run(self, world: World, eids: list[int]) -> None:
        trees = [world.get_component(eid, Packets).tree for eid in eids]
        if self.method in _JOINT_METHODS:
            basis = best_basis(trees, self.method, self.cost, self.p, self.redundant)
            for eid in eids:
                world.add_component(
                    eid, Basis(basis=basis, method=self.method.value, cost=self.cost.value)
                )
            logger.debug(f"{self.method.value} basis shared by {len(eids)} entities")
            return

        for eid, tree in zip(eids, trees):
            method = self._method_for(tree)
            basis = best_basis(tree, method, self.cost, self.p, self.redundant)
            world.add_component(
                eid, Basis(basis=basis, method=method.value, cost=self.cost.value)
            )

    def __repr__(self) -> str:
        method = self.method.value if self.method is not None else "auto"
        return f"BestBasisSelect(method={method}, cost={self.cost.value})"
