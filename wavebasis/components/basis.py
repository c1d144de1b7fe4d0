"""Best basis component."""

from pydantic import Field, InstanceOf

from wavebasis.bestbasis.basis import BasisTree
from wavebasis.components.signal import Component


class Basis(Component):
    """Selected basis of an entity's packet tree.

    Joint methods attach the same BasisTree to every entity of the ensemble.

    Attributes:
        basis: Selected cut (RotatedBasis for LSDB, ShiftBasis for SIBB)
        method: Selection method value, e.g. 'jbb'
        cost: Cost functional value, e.g. 'shannon-entropy'
    """

    basis: InstanceOf[BasisTree]
    method: str = Field(default="bb")
    cost: str = Field(default="shannon-entropy")
