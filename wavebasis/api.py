"""High-level API for wavelet packet analysis.

Provides decompose(), select_basis() and reconstruct() for direct use, and
analyze() which runs the configured decomposition and selection through the
entity pipeline.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pywt

from wavebasis.bestbasis.basis import BasisTree, is_valid_basis
from wavebasis.bestbasis.costs import CostKind
from wavebasis.bestbasis.search import SelectionMethod, best_basis, parse_method
from wavebasis.components.basis import Basis
from wavebasis.components.packets import Packets
from wavebasis.config import Settings, load_settings
from wavebasis.core.world import World
from wavebasis.dsp.decompose import basis_coefficients, decompose, reconstruct
from wavebasis.dsp.filters import FilterPair, resolve_filters
from wavebasis.dsp.packets import DecompositionMode, PacketTree
from wavebasis.dsp.siwpd import ExpansionPolicy, ShiftTree
from wavebasis.exceptions import InvalidArgumentError
from wavebasis.systems.bestbasis import BestBasisSelect
from wavebasis.systems.wavelet import PacketDecompose

logger = logging.getLogger(__name__)

__all__ = [
    "Analysis",
    "analyze",
    "basis_coefficients",
    "decompose",
    "decompose_ensemble",
    "is_valid_basis",
    "reconstruct",
    "select_basis",
]


def _as_ensemble(signals: np.ndarray | Sequence[np.ndarray]) -> list[np.ndarray]:
    if isinstance(signals, np.ndarray):
        if signals.ndim == 1:
            return [signals]
        return list(signals)
    members = [np.asarray(s, dtype=np.float64) for s in signals]
    if not members:
        raise InvalidArgumentError("Expected at least one signal")
    if all(m.ndim == 0 for m in members):
        return [np.asarray(members, dtype=np.float64)]
    return members


def decompose_ensemble(
    signals: np.ndarray | Sequence[np.ndarray],
    filters: FilterPair | str | pywt.Wavelet = "haar",
    depth: int | None = None,
    mode: DecompositionMode | str = DecompositionMode.ORDINARY,
    policy: ExpansionPolicy | None = None,
) -> list[PacketTree | ShiftTree]:
    """Decompose each signal of an ensemble with the same settings.

    Args:
        signals: Sequence of equally shaped signals, or a 2-D array with one
            signal per row

    Raises:
        InvalidArgumentError: If the signals differ in shape
    """
    members = _as_ensemble(signals)
    shapes = {np.shape(m) for m in members}
    if len(shapes) != 1:
        raise InvalidArgumentError(f"Ensemble signals differ in shape: {sorted(shapes)}")
    pair = resolve_filters(filters)
    return [decompose(m, pair, depth, mode, policy) for m in members]


def _infer_method(trees: object) -> SelectionMethod:
    if isinstance(trees, ShiftTree):
        return SelectionMethod.SIBB
    if isinstance(trees, PacketTree):
        return SelectionMethod.BB
    trees = list(trees)  # type: ignore[call-overload]
    if trees and all(isinstance(t, ShiftTree) for t in trees):
        return SelectionMethod.SIBB
    return SelectionMethod.JBB


def select_basis(
    trees: PacketTree | ShiftTree | Sequence[PacketTree | ShiftTree],
    cost: CostKind | str = CostKind.SHANNON,
    method: SelectionMethod | str | None = None,
    redundant: bool | None = None,
    p: float = 1.0,
) -> BasisTree | list[BasisTree]:
    """Select the best basis of one tree or an ensemble of trees.

    Without a method, a single PacketTree uses BB, a ShiftTree (or a
    sequence of them) uses SIBB and a sequence of PacketTrees uses JBB.

    Args:
        trees: Tree or sequence of trees
        cost: Cost functional
        method: 'bb', 'jbb', 'lsdb' or 'sibb'
        redundant: Redundant normalization (None: infer from the trees)
        p: Exponent of the norm cost

    Returns:
        One basis, or one basis per tree for BB and SIBB over a sequence
    """
    method = _infer_method(trees) if method is None else parse_method(method)
    if not isinstance(trees, (PacketTree, ShiftTree)):
        trees = list(trees)
    return best_basis(trees, method, cost, p, redundant)


@dataclass(frozen=True)
class Analysis:
    """Result of analyze(): one tree and one basis per signal.

    Joint methods share a single basis object across all signals.
    """

    settings: Settings
    trees: tuple[PacketTree | ShiftTree, ...]
    bases: tuple[BasisTree, ...]

    def __len__(self) -> int:
        return len(self.trees)

    def coefficients(self, index: int) -> np.ndarray:
        return basis_coefficients(self.trees[index], self.bases[index])

    def reconstruct(self, index: int) -> np.ndarray:
        return reconstruct(self.trees[index], self.bases[index])


def analyze(
    signals: np.ndarray | Sequence[np.ndarray],
    config_path: str | None = None,
    *,
    wavelet: str | None = None,
    mode: DecompositionMode | str | None = None,
    depth: int | None = None,
    cost: CostKind | str | None = None,
    method: SelectionMethod | str | None = None,
    p: float | None = None,
) -> Analysis:
    """Decompose signals and select their best bases in one call.

    Settings come from the configuration file (see ``wavebasis.config``);
    keyword arguments override them. Without a configured method, SIBB is
    used for the shift-invariant mode, JBB for several signals and BB for one.

    Args:
        signals: One 1-D signal, a sequence of signals, or a 2-D array with
            one signal per row
        config_path: Path to wavebasis.toml (auto-detected if None)

    Returns:
        Analysis with one tree and one basis per signal

    Example:
        >>> result = analyze(np.random.randn(4, 64), wavelet="db2", method="lsdb")
        >>> result.bases[0] is result.bases[3]
        True
    """
    settings = load_settings(config_path).merged(
        wavelet=wavelet, mode=mode, depth=depth, cost=cost, method=method, p=p
    )
    members = _as_ensemble(signals)
    chosen = settings.method
    if chosen is None:
        if settings.mode is DecompositionMode.SHIFT_INVARIANT:
            chosen = SelectionMethod.SIBB
        elif len(members) > 1:
            chosen = SelectionMethod.JBB
        else:
            chosen = SelectionMethod.BB

    nbytes = sum(np.asarray(m).size for m in members) * np.dtype(np.float64).itemsize
    world = World(arena_bytes=max(2 * nbytes, 1 << 16))
    try:
        eids = world.spawn_ensemble(members)
        policy = (
            settings.expansion
            if settings.mode is DecompositionMode.SHIFT_INVARIANT
            else None
        )
        pipeline = (
            world.pipe(*eids)
            | PacketDecompose(
                wavelet=settings.wavelet,
                depth=settings.depth,
                decomposition=settings.mode,
                policy=policy,
            )
            | BestBasisSelect(method=chosen, cost=settings.cost, p=settings.p)
        )
        bases = pipeline.collect(Basis)
        trees = [world.get_component(eid, Packets).tree for eid in eids]
    finally:
        world.clear()

    logger.info(
        f"Analyzed {len(members)} signal(s): {settings.mode.value} {settings.wavelet} "
        f"packets, {chosen.value} basis with {settings.cost.value}"
    )
    return Analysis(
        settings=settings,
        trees=tuple(trees),
        bases=tuple(b.basis for b in bases),
    )
