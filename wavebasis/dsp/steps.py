"""One-level filter-bank steps with periodic boundary extension.

Every step works along the last axis of its input, so a batch of vectors
(for instance all nodes of one tree level) is transformed in one call.
Each tap maps output positions onto distinct input positions, which lets the
inverse steps overlap-add tap contributions with plain fancy indexing.

For a coefficient vector ``v`` of length ``n`` and taps of length ``L``::

    lo[i] = sum_j g[L-1-j] * v[(2i + j) mod n]
    hi[i] = sum_j h[j]     * v[(2i + 1 - j) mod n]
"""

from __future__ import annotations

import numpy as np

from wavebasis.dsp.filters import FilterPair
from wavebasis.exceptions import LengthMismatchError, UnsupportedModeError

_SQRT2 = np.sqrt(2.0)


def _result_dtype(v: np.ndarray) -> np.dtype:
    return np.result_type(v.dtype, np.float64)


def dwt_step(v: np.ndarray, filters: FilterPair) -> tuple[np.ndarray, np.ndarray]:
    """Critically downsampled one-level transform.

    Args:
        v: Coefficients, shape (..., n) with n even
        filters: Quadrature filter pair

    Returns:
        (lo, hi) each of shape (..., n // 2)

    Raises:
        LengthMismatchError: If n is odd
    """
    v = np.asarray(v)
    n = v.shape[-1]
    if n % 2:
        raise LengthMismatchError(f"One-step transform needs an even length, got {n}")

    positions = 2 * np.arange(n // 2)
    low_taps = filters.g[::-1]
    lo = np.zeros(v.shape[:-1] + (n // 2,), dtype=_result_dtype(v))
    hi = np.zeros_like(lo)
    for j in range(len(filters)):
        lo += low_taps[j] * v[..., (positions + j) % n]
        hi += filters.h[j] * v[..., (positions + 1 - j) % n]
    return lo, hi


def idwt_step(lo: np.ndarray, hi: np.ndarray, filters: FilterPair) -> np.ndarray:
    """Inverse of ``dwt_step`` (adjoint, exact for orthogonal pairs)."""
    lo = np.asarray(lo)
    hi = np.asarray(hi)
    if lo.shape != hi.shape:
        raise LengthMismatchError(f"Child shapes differ: {lo.shape} vs {hi.shape}")

    n = 2 * lo.shape[-1]
    positions = 2 * np.arange(lo.shape[-1])
    low_taps = filters.g[::-1]
    v = np.zeros(lo.shape[:-1] + (n,), dtype=np.result_type(_result_dtype(lo), hi.dtype))
    for j in range(len(filters)):
        v[..., (positions + j) % n] += low_taps[j] * lo
        v[..., (positions + 1 - j) % n] += filters.h[j] * hi
    return v


def sdwt_step(
    v: np.ndarray, filters: FilterPair, level: int
) -> tuple[np.ndarray, np.ndarray]:
    """Stationary (undecimated) one-level transform with taps dilated by 2**level."""
    v = np.asarray(v)
    n = v.shape[-1]
    stride = 1 << level
    positions = np.arange(n)
    low_taps = filters.g[::-1]
    lo = np.zeros(v.shape, dtype=_result_dtype(v))
    hi = np.zeros_like(lo)
    for j in range(len(filters)):
        lo += low_taps[j] * v[..., (positions + j * stride) % n]
        hi += filters.h[j] * v[..., (positions + (1 - j) * stride) % n]
    return lo, hi


def isdwt_step(
    lo: np.ndarray, hi: np.ndarray, filters: FilterPair, level: int
) -> np.ndarray:
    """Inverse of ``sdwt_step``; the undecimated frame has bound 2."""
    lo = np.asarray(lo)
    hi = np.asarray(hi)
    if lo.shape != hi.shape:
        raise LengthMismatchError(f"Child shapes differ: {lo.shape} vs {hi.shape}")

    n = lo.shape[-1]
    stride = 1 << level
    positions = np.arange(n)
    low_taps = filters.g[::-1]
    v = np.zeros(lo.shape, dtype=np.result_type(_result_dtype(lo), hi.dtype))
    for j in range(len(filters)):
        v[..., (positions + j * stride) % n] += low_taps[j] * lo
        v[..., (positions + (1 - j) * stride) % n] += filters.h[j] * hi
    return v / 2.0


def acwt_step(
    v: np.ndarray, shell: FilterPair, level: int
) -> tuple[np.ndarray, np.ndarray]:
    """Autocorrelation-shell one-level transform.

    Args:
        v: Coefficients, shape (..., n)
        shell: Symmetric filters from ``autocorrelation_shell``
        level: Current depth; lags are dilated by 2**level
    """
    v = np.asarray(v)
    n = v.shape[-1]
    stride = 1 << level
    positions = np.arange(n)
    centre = len(shell) // 2
    lo = np.zeros(v.shape, dtype=_result_dtype(v))
    hi = np.zeros_like(lo)
    for k in range(len(shell)):
        shifted = v[..., (positions + (k - centre) * stride) % n]
        lo += shell.g[k] * shifted
        hi += shell.h[k] * shifted
    return lo, hi


def iacwt_step(lo: np.ndarray, hi: np.ndarray) -> np.ndarray:
    """Inverse of ``acwt_step``: the shell filters sum to sqrt(2) * delta."""
    return (np.asarray(lo) + np.asarray(hi)) / _SQRT2


def dwt_step_2d(
    v: np.ndarray, filters: FilterPair, standard: bool = True
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Separable one-level 2-D transform: columns first, then rows.

    Returns:
        (ll, lh, hl, hh): low/high pass along columns, then along rows

    Raises:
        UnsupportedModeError: For the non-standard transform
    """
    if not standard:
        raise UnsupportedModeError("Non-standard 2-D transform is not implemented")
    v = np.asarray(v)
    if v.ndim < 2:
        raise LengthMismatchError(f"2-D step needs at least 2 dimensions, got {v.ndim}")

    col_lo, col_hi = dwt_step(np.swapaxes(v, -1, -2), filters)
    col_lo = np.swapaxes(col_lo, -1, -2)
    col_hi = np.swapaxes(col_hi, -1, -2)
    ll, lh = dwt_step(col_lo, filters)
    hl, hh = dwt_step(col_hi, filters)
    return ll, lh, hl, hh


def idwt_step_2d(
    ll: np.ndarray,
    lh: np.ndarray,
    hl: np.ndarray,
    hh: np.ndarray,
    filters: FilterPair,
    standard: bool = True,
) -> np.ndarray:
    """Inverse of ``dwt_step_2d``: rows first, then columns."""
    if not standard:
        raise UnsupportedModeError("Non-standard 2-D transform is not implemented")
    col_lo = idwt_step(ll, lh, filters)
    col_hi = idwt_step(hl, hh, filters)
    v = idwt_step(np.swapaxes(col_lo, -1, -2), np.swapaxes(col_hi, -1, -2), filters)
    return np.swapaxes(v, -1, -2)
