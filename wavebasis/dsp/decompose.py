"""Family dispatch for decomposition and reconstruction."""

from __future__ import annotations

from typing import Callable

import numpy as np
import pywt

from wavebasis.bestbasis.basis import BasisTree, ShiftBasis, is_valid_basis
from wavebasis.dsp.filters import FilterPair, resolve_filters
from wavebasis.dsp.packets import (
    DecompositionMode,
    PacketTree,
    acwpd,
    parse_mode,
    reconstruct_packets,
    swpd,
    wpd,
)
from wavebasis.dsp.siwpd import (
    ExpansionPolicy,
    ShiftTree,
    reconstruct_shift,
    siwpd,
    unshifted_keys,
)
from wavebasis.exceptions import InvalidArgumentError

_BUILDERS: dict[DecompositionMode, Callable[[np.ndarray, FilterPair, int | None], PacketTree]] = {
    DecompositionMode.ORDINARY: wpd,
    DecompositionMode.STATIONARY: swpd,
    DecompositionMode.AUTOCORRELATION: acwpd,
}


def decompose(
    signal: np.ndarray,
    filters: FilterPair | str | pywt.Wavelet = "haar",
    depth: int | None = None,
    mode: DecompositionMode | str = DecompositionMode.ORDINARY,
    policy: ExpansionPolicy | None = None,
) -> PacketTree | ShiftTree:
    """Decompose a signal into a packet tree of the requested family.

    Args:
        signal: 1-D signal, or 2-D image for the ordinary family
        filters: FilterPair or orthogonal PyWavelets wavelet name
        depth: Number of levels (default: maximum the length allows)
        mode: 'ordinary', 'stationary', 'autocorrelation' or 'shift-invariant'
        policy: Expansion policy of the shift-invariant family

    Returns:
        PacketTree, or ShiftTree for the shift-invariant family

    Raises:
        LengthMismatchError: If the length is not divisible by 2**depth
        UnsupportedModeError: For 3-D+ signals or non-ordinary 2-D requests
    """
    mode = parse_mode(mode)
    pair = resolve_filters(filters)
    if mode is DecompositionMode.SHIFT_INVARIANT:
        return siwpd(signal, pair, depth, policy)
    if policy is not None:
        raise InvalidArgumentError("An expansion policy applies to the shift-invariant mode only")
    return _BUILDERS[mode](signal, pair, depth)


def check_cut(tree: PacketTree | ShiftTree, basis: BasisTree) -> None:
    """Raise InvalidArgumentError unless ``basis`` is a valid cut of ``tree``."""
    if basis.depth != tree.depth or basis.arity != tree.arity:
        raise InvalidArgumentError(
            f"Basis (depth {basis.depth}, arity {basis.arity}) does not fit "
            f"tree (depth {tree.depth}, arity {tree.arity})"
        )
    if not is_valid_basis(tree.signal_shape, basis):
        raise InvalidArgumentError(
            f"Selected nodes {basis.selected()} do not form a cut of the depth-{tree.depth} tree"
        )


def reconstruct(
    tree: PacketTree | ShiftTree, basis: BasisTree | None = None
) -> np.ndarray:
    """Rebuild the signal from the nodes selected by ``basis``.

    Without a basis a PacketTree is rebuilt from its deepest level and a
    ShiftTree from its unshifted cut.
    """
    if isinstance(tree, ShiftTree):
        if basis is None:
            return reconstruct_shift(tree, unshifted_keys(tree))
        if not isinstance(basis, ShiftBasis):
            raise InvalidArgumentError("A ShiftTree is reconstructed from a ShiftBasis")
        return reconstruct_shift(tree, basis.keys())
    if not isinstance(tree, PacketTree):
        raise InvalidArgumentError(f"Cannot reconstruct a {type(tree).__name__}")
    if basis is None:
        return reconstruct_packets(tree)
    check_cut(tree, basis)
    return reconstruct_packets(tree, basis.flags)


def basis_coefficients(tree: PacketTree | ShiftTree, basis: BasisTree) -> np.ndarray:
    """Concatenate the coefficients of the selected nodes, breadth-first."""
    if isinstance(tree, ShiftTree):
        if not isinstance(basis, ShiftBasis):
            raise InvalidArgumentError("A ShiftTree needs a ShiftBasis")
        check_cut(tree, basis)
        missing = [key for key in basis.keys() if key not in tree]
        if missing:
            raise InvalidArgumentError(f"Nodes {missing} are not part of the shift tree")
        parts = [tree[key].coefficients.ravel() for key in basis.keys()]
    else:
        check_cut(tree, basis)
        parts = [tree.node(d, i).ravel() for d, i in basis.selected()]
    return np.concatenate(parts) if parts else np.empty(0)
