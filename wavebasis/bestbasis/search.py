"""Best-basis search over complete packet trees: BB, JBB and LSDB.

All three reduce to ``select_levels`` over per-depth node costs:

- BB scores each node of a single tree.
- JBB scores the amplitude ``sqrt(sum_k y_k**2)`` of the normalized node
  vectors of an ensemble and returns one shared basis.
- LSDB first centres and rotates each node position onto the eigenvectors of
  its ensemble covariance, then scores the rotated vectors like JBB.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

import numpy as np

from wavebasis.bestbasis.basis import BasisTree, NodeRotation, RotatedBasis
from wavebasis.bestbasis.costs import CostKind, evaluate, parse_cost
from wavebasis.bestbasis.sibb import sibb
from wavebasis.bestbasis.tree import select_levels
from wavebasis.dsp.packets import PacketTree
from wavebasis.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


class SelectionMethod(str, Enum):
    BB = "bb"
    JBB = "jbb"
    LSDB = "lsdb"
    SIBB = "sibb"


def parse_method(method: SelectionMethod | str) -> SelectionMethod:
    if isinstance(method, SelectionMethod):
        return method
    try:
        return SelectionMethod(str(method).lower())
    except ValueError as e:
        choices = ", ".join(m.value for m in SelectionMethod)
        raise InvalidArgumentError(
            f"Unknown selection method {method!r}; expected one of {choices}"
        ) from e


def level_norm(tree: PacketTree, depth: int, redundant: bool | None = None) -> float:
    """Normalization of depth ``depth``: the root norm, times sqrt(2**depth) if redundant."""
    if redundant is None:
        redundant = tree.redundant
    norm = tree.root_norm
    return norm * np.sqrt(2.0**depth) if redundant else norm


def tree_costs(
    tree: PacketTree,
    cost: CostKind | str = CostKind.SHANNON,
    p: float = 1.0,
    redundant: bool | None = None,
) -> list[np.ndarray]:
    """Per-depth node costs of one tree."""
    return [
        evaluate(tree.level(d), cost, p, norm=level_norm(tree, d, redundant))
        for d in range(tree.depth + 1)
    ]


def _check_ensemble(trees: Sequence[PacketTree], minimum: int = 1) -> None:
    if len(trees) < minimum:
        raise InvalidArgumentError(
            f"Joint selection needs at least {minimum} tree(s), got {len(trees)}"
        )
    first = trees[0]
    for k, tree in enumerate(trees):
        if not isinstance(tree, PacketTree):
            raise InvalidArgumentError(
                f"Tree {k} is a {type(tree).__name__}, expected PacketTree"
            )
        if (tree.mode, tree.depth, tree.signal_shape) != (
            first.mode,
            first.depth,
            first.signal_shape,
        ):
            raise InvalidArgumentError(
                f"Tree {k} ({tree.mode.value}, depth {tree.depth}, shape {tree.signal_shape}) "
                f"does not match tree 0 ({first.mode.value}, depth {first.depth}, "
                f"shape {first.signal_shape})"
            )


def _normalized_level(
    trees: Sequence[PacketTree], depth: int, redundant: bool | None
) -> np.ndarray:
    """Stack of normalized levels, shape (N, arity**depth, m)."""
    levels = []
    for tree in trees:
        norm = level_norm(tree, depth, redundant)
        level = tree.level(depth).reshape(tree.arity**depth, -1)
        levels.append(level / norm if norm != 0 else level)
    return np.stack(levels)


def bb(
    tree: PacketTree,
    cost: CostKind | str = CostKind.SHANNON,
    p: float = 1.0,
    redundant: bool | None = None,
) -> BasisTree:
    """Best basis of a single tree."""
    if not isinstance(tree, PacketTree):
        raise InvalidArgumentError(f"BB needs a PacketTree, got {type(tree).__name__}")
    return select_levels(tree_costs(tree, cost, p, redundant), "min", tree.arity)


def jbb(
    trees: Sequence[PacketTree],
    cost: CostKind | str = CostKind.SHANNON,
    p: float = 1.0,
    redundant: bool | None = None,
) -> BasisTree:
    """Joint best basis of an ensemble of identically shaped trees."""
    trees = list(trees)
    _check_ensemble(trees)
    parse_cost(cost)
    level_costs = []
    for d in range(trees[0].depth + 1):
        y = _normalized_level(trees, d, redundant)
        amplitude = np.sqrt(np.square(y).sum(axis=0))
        level_costs.append(evaluate(amplitude, cost, p))
    return select_levels(level_costs, "min", trees[0].arity)


def node_rotation(x: np.ndarray) -> NodeRotation:
    """Karhunen-Loeve rotation of ensemble vectors ``x`` of shape (N, m)."""
    mean = x.mean(axis=0)
    centred = x - mean
    cov = centred.T @ centred / max(x.shape[0] - 1, 1)
    eigenvalues, vectors = np.linalg.eigh(cov)
    order = np.argsort(eigenvalues)[::-1]
    return NodeRotation(mean=mean, vectors=vectors[:, order], eigenvalues=eigenvalues[order])


def lsdb(
    trees: Sequence[PacketTree],
    cost: CostKind | str = CostKind.SHANNON,
    p: float = 1.0,
    redundant: bool | None = None,
) -> RotatedBasis:
    """Least statistically dependent basis of an ensemble.

    Returns:
        RotatedBasis whose ``rotations`` hold the rotation of every selected
        node
    """
    trees = list(trees)
    _check_ensemble(trees, minimum=2)
    parse_cost(cost)
    level_costs = []
    rotations: dict[tuple[int, int], NodeRotation] = {}
    for d in range(trees[0].depth + 1):
        y = _normalized_level(trees, d, redundant)
        costs = np.empty(y.shape[1])
        for i in range(y.shape[1]):
            rotation = node_rotation(y[:, i, :])
            rotated = rotation.apply(y[:, i, :])
            amplitude = np.sqrt(np.square(rotated).sum(axis=0))
            costs[i] = evaluate(amplitude, cost, p)[0]
            rotations[(d, i)] = rotation
        level_costs.append(costs)

    basis = select_levels(level_costs, "min", trees[0].arity)
    return RotatedBasis(
        flags=basis.flags,
        arity=basis.arity,
        rotations={key: rotations[key] for key in basis.selected()},
    )


def best_basis(
    trees: PacketTree | Sequence[PacketTree],
    method: SelectionMethod | str = SelectionMethod.BB,
    cost: CostKind | str = CostKind.SHANNON,
    p: float = 1.0,
    redundant: bool | None = None,
) -> BasisTree | list[BasisTree]:
    """Dispatch to the requested selection method.

    BB over a sequence of trees returns one basis per tree; JBB and LSDB
    return one shared basis.
    """
    method = parse_method(method)
    if method is SelectionMethod.SIBB:
        return sibb(trees, cost, p)
    if method is SelectionMethod.BB:
        if isinstance(trees, PacketTree):
            return bb(trees, cost, p, redundant)
        return [bb(tree, cost, p, redundant) for tree in trees]
    if isinstance(trees, PacketTree):
        trees = [trees]
    return _JOINT[method](trees, cost, p, redundant)


_JOINT = {
    SelectionMethod.JBB: jbb,
    SelectionMethod.LSDB: lsdb,
}
