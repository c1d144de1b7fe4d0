"""Packet tree component."""

from pydantic import Field, InstanceOf

from wavebasis.components.signal import Component
from wavebasis.dsp.packets import PacketTree
from wavebasis.dsp.siwpd import ShiftTree


class Packets(Component):
    """Wavelet packet decomposition of an entity's signal.

    Attributes:
        tree: Complete PacketTree, or ShiftTree for the shift-invariant family
        wavelet: Wavelet name the tree was built with
    """

    tree: InstanceOf[PacketTree] | InstanceOf[ShiftTree]
    wavelet: str = Field(default="haar")

    @property
    def depth(self) -> int:
        return self.tree.depth
