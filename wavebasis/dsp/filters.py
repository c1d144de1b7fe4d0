"""Quadrature filter pairs built from the PyWavelets catalog."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import pywt

from wavebasis.exceptions import InvalidArgumentError


@dataclass(frozen=True)
class FilterPair:
    """High-pass / low-pass filter taps of equal length.

    Attributes:
        h: High-pass taps
        g: Low-pass taps
        name: Catalog name the pair was built from, if any
    """

    h: np.ndarray
    g: np.ndarray
    name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        h = np.array(self.h, dtype=np.float64)
        g = np.array(self.g, dtype=np.float64)
        if h.ndim != 1 or g.ndim != 1:
            raise InvalidArgumentError("Filter taps must be 1-D sequences")
        if h.size == 0 or h.size != g.size:
            raise InvalidArgumentError(
                f"Filters must be non-empty and of equal length, got {h.size} and {g.size}"
            )
        h.flags.writeable = False
        g.flags.writeable = False
        object.__setattr__(self, "h", h)
        object.__setattr__(self, "g", g)

    def __len__(self) -> int:
        return int(self.h.size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilterPair):
            return NotImplemented
        return np.array_equal(self.h, other.h) and np.array_equal(self.g, other.g)

    def __hash__(self) -> int:
        return hash((self.h.tobytes(), self.g.tobytes()))


# tolerance on sum(g**2) == 1; FIR approximations such as dmey miss it
_UNIT_ENERGY_ATOL = 1e-9


def _exact_qmf(wt: pywt.Wavelet) -> bool:
    if not wt.orthogonal:
        return False
    g = np.asarray(wt.dec_lo, dtype=np.float64)
    return abs(float(np.sum(g**2)) - 1.0) <= _UNIT_ENERGY_ATOL


def available_wavelets() -> list[str]:
    """Names of the orthogonal discrete wavelets usable with ``qmf_pair``.

    Wavelets whose taps are only approximately orthogonal (``dmey``) are
    left out because they cannot reconstruct exactly.
    """
    return [name for name in pywt.wavelist(kind="discrete") if _exact_qmf(pywt.Wavelet(name))]


def qmf_pair(wavelet: str | pywt.Wavelet) -> FilterPair:
    """Build the orthogonal quadrature mirror pair for a named wavelet.

    The low-pass ``g`` is the PyWavelets decomposition low-pass; the
    high-pass is its alternating-sign mirror, ``h[j] = (-1)**(j+1) g[L-1-j]``,
    which makes the periodic one-step transform orthogonal.

    Raises:
        InvalidArgumentError: If the name is unknown or the wavelet is not
            exactly orthogonal
    """
    if isinstance(wavelet, pywt.Wavelet):
        wt = wavelet
    else:
        try:
            wt = pywt.Wavelet(wavelet)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown wavelet {wavelet!r}") from e
    if not wt.orthogonal:
        raise InvalidArgumentError(
            f"Wavelet {wt.name!r} is not orthogonal; a quadrature mirror pair is required"
        )
    if not _exact_qmf(wt):
        raise InvalidArgumentError(
            f"Wavelet {wt.name!r} is only approximately orthogonal and cannot reconstruct exactly"
        )

    g = np.asarray(wt.dec_lo, dtype=np.float64)
    taps = g[::-1]
    signs = np.where(np.arange(taps.size) % 2 == 0, -1.0, 1.0)
    return FilterPair(h=signs * taps, g=g, name=wt.name)


def autocorrelation_shell(filters: FilterPair) -> FilterPair:
    """Symmetric autocorrelation-shell filters of an orthogonal pair.

    Returns taps of length ``2L-1`` centred on lag 0, scaled so that
    ``p + q = sqrt(2) * delta``.
    """
    scale = 1.0 / np.sqrt(2.0)
    p = np.correlate(filters.g, filters.g, mode="full") * scale
    q = np.correlate(filters.h, filters.h, mode="full") * scale
    name = f"{filters.name}-autocorrelation" if filters.name else None
    return FilterPair(h=q, g=p, name=name)


def resolve_filters(filters: FilterPair | str | pywt.Wavelet) -> FilterPair:
    """Accept a FilterPair or anything ``qmf_pair`` accepts."""
    if isinstance(filters, FilterPair):
        return filters
    if isinstance(filters, (str, pywt.Wavelet)):
        return qmf_pair(filters)
    raise InvalidArgumentError(
        f"Expected FilterPair or wavelet name, got {type(filters).__name__}"
    )
