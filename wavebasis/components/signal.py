"""Signal components: Signal, ReconSignal."""

from pydantic import BaseModel

from wavebasis.core.arena import TensorRef


class Component(BaseModel):
    """Base class for all components.

    Components are pydantic data containers. Signal data is stored as
    TensorRef handles into the world arena.
    """

    model_config = {"arbitrary_types_allowed": True}


class Signal(Component):
    """Input signal (1-D) or image (2-D).

    Attributes:
        x: TensorRef to float64 samples
    """

    x: TensorRef


class ReconSignal(Component):
    """Signal rebuilt from a packet tree and, when present, its basis.

    Attributes:
        x: TensorRef to float64 samples
    """

    x: TensorRef
