"""Shift-invariant best basis over a ShiftTree.

Each node resolves to the cheaper of keeping itself or splitting through its
best retained shift variant. Costs of circularly shifted signals agree only
up to rounding, so comparisons use a relative tolerance.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from wavebasis.bestbasis.basis import ShiftBasis
from wavebasis.bestbasis.costs import CostKind, cost_of
from wavebasis.dsp.siwpd import NodeKey, ShiftTree
from wavebasis.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

_RTOL = 1e-9
_ATOL = 1e-12


def _close(a: float, b: float) -> bool:
    return bool(np.isclose(a, b, rtol=_RTOL, atol=_ATOL))


def _best_variant(
    tree: ShiftTree, key: NodeKey, best: dict[NodeKey, float]
) -> tuple[int, float] | None:
    """Pick the split variant of ``key``.

    Lowest resolved cost wins; ties go to the variant whose children have the
    larger coefficient sum, then to the unshifted variant.
    """
    chosen: tuple[int, float, float] | None = None
    for bit in tree.variants(key):
        lo, hi = tree.children(key, bit)
        total = best[lo] + best[hi]
        mass = float(tree[lo].coefficients.sum() + tree[hi].coefficients.sum())
        if chosen is None:
            chosen = (bit, total, mass)
            continue
        _, chosen_total, chosen_mass = chosen
        if _close(total, chosen_total):
            if mass > chosen_mass and not _close(mass, chosen_mass):
                chosen = (bit, total, mass)
        elif total < chosen_total:
            chosen = (bit, total, mass)
    return None if chosen is None else chosen[:2]


def sibb_tree(
    tree: ShiftTree, cost: CostKind | str = CostKind.SHANNON, p: float = 1.0
) -> ShiftBasis:
    """Shift-invariant best basis of one ShiftTree."""
    if not isinstance(tree, ShiftTree):
        raise InvalidArgumentError(f"SIBB needs a ShiftTree, got {type(tree).__name__}")

    own = {
        key: cost_of(node.coefficients, cost, p, norm=tree.root_norm)
        for key, node in tree.items()
    }
    best: dict[NodeKey, float] = {}
    split: dict[NodeKey, int] = {}
    for key in sorted(tree, key=lambda k: k[0], reverse=True):
        variant = None if tree[key].is_leaf else _best_variant(tree, key, best)
        if variant is None:
            best[key] = own[key]
            continue
        bit, total = variant
        if own[key] <= total or _close(own[key], total):
            best[key] = own[key]
        else:
            best[key] = total
            split[key] = bit

    flags = [np.zeros(2**d, dtype=bool) for d in range(tree.depth + 1)]
    shifts: dict[tuple[int, int], int] = {}
    costs: dict[tuple[int, int], float] = {}
    stack = [(0, 0, 0)]
    while stack:
        key = stack.pop()
        d, i, s = key
        if key in split:
            stack.extend(tree.children(key, split[key]))
            continue
        flags[d][i] = True
        shifts[(d, i)] = s
        costs[(d, i)] = own[key]

    basis = ShiftBasis(flags=tuple(flags), arity=2, shifts=shifts, costs=costs)
    logger.debug(
        f"SIBB selected {len(shifts)} nodes from {len(tree)} (cost {best[(0, 0, 0)]:.6g})"
    )
    return basis


def sibb(
    trees: ShiftTree | Sequence[ShiftTree],
    cost: CostKind | str = CostKind.SHANNON,
    p: float = 1.0,
) -> ShiftBasis | list[ShiftBasis]:
    """SIBB of one tree, or one basis per tree of a sequence."""
    if isinstance(trees, ShiftTree):
        return sibb_tree(trees, cost, p)
    return [sibb_tree(tree, cost, p) for tree in trees]
