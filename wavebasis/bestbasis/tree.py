"""Bottom-up tree selection over node costs.

The DP runs from the deepest internal level to the root. A node whose own
cost does not lose to the resolved cost of its children is kept (ties keep
the coarser node) and everything below it is discarded; otherwise the
children's resolved cost propagates upward.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Literal

import numpy as np

from wavebasis.bestbasis.basis import BasisTree
from wavebasis.core.indexing import depth_for_count, max_transform_levels, split_levels
from wavebasis.exceptions import ConsistencyError, InvalidArgumentError

logger = logging.getLogger(__name__)


def select_levels(
    level_costs: Sequence[np.ndarray],
    kind: Literal["min", "max"] = "min",
    arity: int = 2,
) -> BasisTree:
    """Select the optimal cut from per-depth cost arrays.

    Args:
        level_costs: ``level_costs[d]`` has shape ``(arity**d,)``
        kind: Minimize or maximize the total cost
        arity: Tree arity

    Returns:
        BasisTree with one flag array per depth
    """
    if kind not in ("min", "max"):
        raise InvalidArgumentError(f"kind must be 'min' or 'max', got {kind!r}")
    depth = len(level_costs) - 1
    best = [np.asarray(c, dtype=np.float64).reshape(-1) for c in level_costs]
    keep = [np.ones_like(c, dtype=bool) for c in best]

    for d in range(depth - 1, -1, -1):
        own = best[d]
        children = best[d + 1].reshape(-1, arity).sum(axis=1)
        keep[d] = own <= children if kind == "min" else own >= children
        best[d] = np.where(keep[d], own, children)

    flags = []
    reachable = np.ones(1, dtype=bool)
    for d in range(depth + 1):
        flags.append(reachable & keep[d])
        reachable = np.repeat(reachable & ~keep[d], arity)

    basis = BasisTree(flags=tuple(flags), arity=arity)
    logger.debug(f"Selected {len(basis.selected())} of {len(basis)} nodes (depth {depth})")
    return basis


def tree_selection(
    costs: np.ndarray,
    signal_length: int | Sequence[int],
    kind: Literal["min", "max"] = "min",
    *,
    arity: int = 2,
    depth: int | None = None,
) -> BasisTree:
    """Best basis from a flat breadth-first cost vector.

    Args:
        costs: One cost per node, breadth-first
        signal_length: Length (or shape) of the decomposed signal
        kind: "min" or "max"
        arity: 2 for 1-D trees, 4 for 2-D trees
        depth: Tree depth (default: the depth implied by the number of costs)

    Raises:
        InvalidArgumentError: If ``depth`` exceeds the signal's levels or
            ``kind`` is unknown
        ConsistencyError: If the number of costs is not a complete tree, does
            not match ``depth``, or implies more levels than the signal has
    """
    costs = np.asarray(costs, dtype=np.float64).reshape(-1)
    max_levels = max_transform_levels(signal_length)
    if depth is not None and not 0 <= depth <= max_levels:
        raise InvalidArgumentError(
            f"depth {depth} is outside [0, {max_levels}] for signal {signal_length}"
        )

    implied = depth_for_count(costs.size, arity)
    if implied is None:
        raise ConsistencyError(
            f"{costs.size} node costs do not form a complete tree of arity {arity}"
        )
    if depth is None and implied > max_levels:
        raise ConsistencyError(
            f"{costs.size} node costs imply depth {implied}, but signal {signal_length} "
            f"has {max_levels} levels"
        )
    if depth is not None and implied != depth:
        raise ConsistencyError(
            f"Got {costs.size} node costs (depth {implied}); expected a depth-{depth} tree"
        )
    depth = implied
    if kind not in ("min", "max"):
        raise InvalidArgumentError(f"kind must be 'min' or 'max', got {kind!r}")

    return select_levels(split_levels(costs, depth, arity), kind, arity)
