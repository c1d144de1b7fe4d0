"""Wavelet packet decomposition system.

Forward mode: Signal -> Packets
Inverse mode: Packets (+ Basis when attached) -> ReconSignal
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from wavebasis.components.basis import Basis
from wavebasis.components.packets import Packets
from wavebasis.components.signal import ReconSignal, Signal
from wavebasis.core.system import System
from wavebasis.dsp.decompose import decompose, reconstruct
from wavebasis.dsp.filters import qmf_pair
from wavebasis.dsp.packets import DecompositionMode, parse_mode
from wavebasis.dsp.siwpd import ExpansionPolicy

if TYPE_CHECKING:
    from wavebasis.core.world import World

logger = logging.getLogger(__name__)


class PacketDecompose(System):
    """Wavelet packet decomposition of every entity's signal.

    Attributes:
        wavelet: Orthogonal PyWavelets wavelet name
        depth: Number of levels (None: maximum per signal)
        decomposition: Packet family
        policy: Expansion policy of the shift-invariant family
    """

    def __init__(
        self,
        wavelet: str = "haar",
        depth: int | None = None,
        decomposition: DecompositionMode | str = DecompositionMode.ORDINARY,
        policy: ExpansionPolicy | None = None,
        mode: Literal["forward", "inverse"] = "forward",
    ):
        super().__init__(mode=mode)
        self.wavelet = wavelet
        self.filters = qmf_pair(wavelet)
        self.depth = depth
        self.decomposition = parse_mode(decomposition)
        self.policy = policy

    def required_components(self) -> list[type]:
        if self.mode == "forward":
            return [Signal]
        return [Packets]

    def produced_components(self) -> list[type]:
        if self.mode == "forward":
            return [Packets]
        return [ReconSignal]

    def run(self, world: World, eids: list[int]) -> None:
        if self.mode == "forward":
            self._run_forward(world, eids)
        else:
            self._run_inverse(world, eids)

    def _run_forward(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            signal = world.get_component(eid, Signal)
            x = world.arena.view(signal.x, readonly=True)
            tree = decompose(x, self.filters, self.depth, self.decomposition, self.policy)
            world.add_component(eid, Packets(tree=tree, wavelet=self.wavelet))

    def _run_inverse(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            packets = world.get_component(eid, Packets)
            basis = (
                world.get_component(eid, Basis).basis
                if world.has_component(eid, Basis)
                else None
            )
            x = reconstruct(packets.tree, basis)
            world.add_component(eid, ReconSignal(x=world.arena.copy_tensor(x)))

    def __repr__(self) -> str:
        return (
            f"PacketDecompose(wavelet={self.wavelet}, depth={self.depth}, "
            f"decomposition={self.decomposition.value}, mode={self.mode})"
        )
