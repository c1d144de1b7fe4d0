"""Additive cost functionals on normalized coefficients.

Each functional is a sum of per-coefficient terms, so the cost of a parent
compares directly with the summed cost of its children. Costs are evaluated
over the trailing axes, one value per leading row.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

import numpy as np

from wavebasis.exceptions import InvalidArgumentError


class CostKind(str, Enum):
    SHANNON = "shannon-entropy"
    LOG_ENERGY = "log-energy-entropy"
    NORM = "norm"


def parse_cost(cost: CostKind | str) -> CostKind:
    try:
        return CostKind(cost)
    except ValueError as e:
        choices = ", ".join(c.value for c in CostKind)
        raise InvalidArgumentError(
            f"Unknown cost {cost!r}; expected one of {choices}"
        ) from e


def _energies(y: np.ndarray) -> np.ndarray:
    return np.square(y).reshape(y.shape[0], -1)


def _shannon(y: np.ndarray, p: float) -> np.ndarray:
    e = _energies(y)
    positive = e > 0
    terms = np.zeros_like(e)
    terms[positive] = e[positive] * np.log(e[positive])
    return -terms.sum(axis=1)


def _log_energy(y: np.ndarray, p: float) -> np.ndarray:
    e = _energies(y)
    positive = e > 0
    terms = np.zeros_like(e)
    terms[positive] = np.log(e[positive])
    return terms.sum(axis=1)


def _lp_norm(y: np.ndarray, p: float) -> np.ndarray:
    return np.power(np.abs(y), p).reshape(y.shape[0], -1).sum(axis=1)


_COSTS: dict[CostKind, Callable[[np.ndarray, float], np.ndarray]] = {
    CostKind.SHANNON: _shannon,
    CostKind.LOG_ENERGY: _log_energy,
    CostKind.NORM: _lp_norm,
}


def normalize(values: np.ndarray, norm: float | np.ndarray | None) -> np.ndarray:
    """Divide by ``norm``; a zero (or missing) norm leaves the data unscaled.

    ``norm`` may be a scalar or one value per leading row.
    """
    x = np.asarray(values, dtype=np.float64)
    if norm is None:
        return x
    scale = np.asarray(norm, dtype=np.float64)
    scale = np.where(scale == 0, 1.0, scale)
    if scale.ndim == 1:
        scale = scale.reshape((-1,) + (1,) * (x.ndim - 1))
    return x / scale


def evaluate(
    values: np.ndarray,
    cost: CostKind | str = CostKind.SHANNON,
    p: float = 1.0,
    norm: float | np.ndarray | None = None,
) -> np.ndarray:
    """Cost of each row of ``values``.

    Args:
        values: Coefficients, shape (k, ...); one cost per row
        cost: Cost functional
        p: Exponent of the l^p norm cost
        norm: Normalization applied before the cost

    Returns:
        Array of shape (k,)
    """
    kind = parse_cost(cost)
    if kind is CostKind.NORM and p <= 0:
        raise InvalidArgumentError(f"Norm cost needs p > 0, got {p}")
    y = normalize(values, norm)
    if y.ndim == 0:
        y = y.reshape(1, 1)
    elif y.ndim == 1:
        y = y.reshape(1, -1)
    return _COSTS[kind](y, p)


def cost_of(
    vector: np.ndarray,
    cost: CostKind | str = CostKind.SHANNON,
    p: float = 1.0,
    norm: float | None = None,
) -> float:
    """Cost of a single coefficient vector."""
    v = np.asarray(vector, dtype=np.float64).reshape(1, -1)
    return float(evaluate(v, cost, p, norm)[0])
