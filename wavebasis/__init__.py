"""Wavelet packet decomposition and best-basis selection.

This package provides:
- Wavelet packet trees in four families: ordinary, stationary,
  autocorrelation and shift-invariant
- Best-basis search: BB, joint (JBB), least statistically dependent (LSDB)
  and shift-invariant (SIBB)
- An entity pipeline (World, systems, Pipe) for signal ensembles

Quick Start:
    >>> import numpy as np
    >>> from wavebasis import decompose, select_basis, is_valid_basis
    >>>
    >>> x = np.random.randn(64)
    >>> tree = decompose(x, "db2", mode="stationary")
    >>> basis = select_basis(tree, cost="log-energy-entropy")
    >>> is_valid_basis(len(x), basis)
    True

For ensembles, use the pipeline:
    >>> from wavebasis import World
    >>> from wavebasis.components.basis import Basis
    >>> from wavebasis.systems.bestbasis import BestBasisSelect
    >>> from wavebasis.systems.wavelet import PacketDecompose
    >>>
    >>> world = World()
    >>> eids = world.spawn_ensemble(np.random.randn(5, 64))
    >>> bases = (
    ...     world.pipe(*eids)
    ...     | PacketDecompose(wavelet="db2")
    ...     | BestBasisSelect(method="lsdb")
    ... ).collect(Basis)
"""

__version__ = "0.1.0"

from wavebasis.api import (
    Analysis,
    analyze,
    basis_coefficients,
    decompose,
    decompose_ensemble,
    is_valid_basis,
    reconstruct,
    select_basis,
)
from wavebasis.bestbasis.basis import BasisTree, RotatedBasis, ShiftBasis
from wavebasis.bestbasis.costs import CostKind
from wavebasis.bestbasis.search import SelectionMethod
from wavebasis.bestbasis.tree import tree_selection
from wavebasis.core.arena import Arena, TensorRef
from wavebasis.core.indexing import max_transform_levels
from wavebasis.core.world import World
from wavebasis.dsp.filters import FilterPair, available_wavelets, qmf_pair
from wavebasis.dsp.packets import DecompositionMode, PacketTree
from wavebasis.dsp.siwpd import ExpansionPolicy, ShiftTree
from wavebasis.exceptions import (
    ConsistencyError,
    InvalidArgumentError,
    LengthMismatchError,
    UnsupportedModeError,
    WaveBasisError,
)

__all__ = [
    "__version__",
    "Analysis",
    "Arena",
    "BasisTree",
    "ConsistencyError",
    "CostKind",
    "DecompositionMode",
    "ExpansionPolicy",
    "FilterPair",
    "InvalidArgumentError",
    "LengthMismatchError",
    "PacketTree",
    "RotatedBasis",
    "SelectionMethod",
    "ShiftBasis",
    "ShiftTree",
    "TensorRef",
    "UnsupportedModeError",
    "WaveBasisError",
    "World",
    "analyze",
    "available_wavelets",
    "basis_coefficients",
    "decompose",
    "decompose_ensemble",
    "is_valid_basis",
    "max_transform_levels",
    "qmf_pair",
    "reconstruct",
    "select_basis",
    "tree_selection",
]
