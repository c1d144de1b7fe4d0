"""Tests for complete packet trees: ordinary, stationary, autocorrelation, 2-D."""

import numpy as np
import pytest

from wavebasis.bestbasis.basis import BasisTree, ShiftBasis
from wavebasis.core.indexing import node_count
from wavebasis.dsp.decompose import basis_coefficients, decompose, reconstruct
from wavebasis.dsp.filters import available_wavelets, qmf_pair
from wavebasis.dsp.packets import DecompositionMode, PacketTree, swpd, wpd
from wavebasis.dsp.siwpd import ExpansionPolicy
from wavebasis.dsp.steps import dwt_step, sdwt_step
from wavebasis.exceptions import (
    InvalidArgumentError,
    LengthMismatchError,
    UnsupportedModeError,
)

COMPLETE_MODES = ["ordinary", "stationary", "autocorrelation"]

# every root-to-leaf path of a depth-3 binary tree crosses exactly one flag
MIXED_CUT = (
    [False],
    [True, False],
    [False, False, True, False],
    [False, False, False, False, False, False, True, True],
)


@pytest.fixture
def signal() -> np.ndarray:
    return np.random.default_rng(42).standard_normal(32)


class TestOrdinaryPackets:
    """Tests for the ordinary wavelet packet decomposition."""

    def test_level_shapes(self, signal: np.ndarray) -> None:
        """Test that node length halves at every depth."""
        tree = wpd(signal, qmf_pair("db2"))
        assert tree.depth == 5
        for d in range(tree.depth + 1):
            assert tree.level(d).shape == (2**d, 32 >> d)
        assert len(tree) == node_count(5)

    def test_children_are_one_step(self, signal: np.ndarray) -> None:
        """Test that node (d+1, 2i) and (d+1, 2i+1) split node (d, i)."""
        pair = qmf_pair("db2")
        tree = wpd(signal, pair, depth=3)
        for d in range(3):
            for i in range(2**d):
                lo, hi = dwt_step(tree.node(d, i), pair)
                np.testing.assert_allclose(tree.node(d + 1, 2 * i), lo)
                np.testing.assert_allclose(tree.node(d + 1, 2 * i + 1), hi)

    def test_energy_per_level(self, signal: np.ndarray) -> None:
        """Test that every level of an orthogonal tree keeps the energy."""
        tree = wpd(signal, qmf_pair("sym4"))
        energy = np.sum(signal**2)
        for d in range(tree.depth + 1):
            assert np.sum(tree.level(d) ** 2) == pytest.approx(energy)

    def test_views_are_readonly(self, signal: np.ndarray) -> None:
        """Test that a built tree cannot be modified."""
        tree = wpd(signal, qmf_pair("haar"))
        assert not tree.node(2, 1).flags.writeable
        assert tree.arena.frozen

    def test_nodes_breadth_first(self) -> None:
        """Test that nodes() walks the tree breadth-first."""
        tree = wpd(np.arange(8.0), qmf_pair("haar"))
        addresses = [(d, i) for d, i, _ in tree.nodes()]
        assert addresses == [(d, i) for d in range(4) for i in range(2**d)]

    def test_node_out_of_range(self, signal: np.ndarray) -> None:
        """Test that bad addresses raise IndexError."""
        tree = wpd(signal, qmf_pair("haar"), depth=2)
        with pytest.raises(IndexError, match="Depth"):
            tree.node(3, 0)
        with pytest.raises(IndexError, match="Node index"):
            tree.node(1, 2)

    def test_root_norm(self, signal: np.ndarray) -> None:
        """Test the cached root norm."""
        tree = wpd(signal, qmf_pair("haar"))
        assert tree.root_norm == pytest.approx(np.linalg.norm(signal))


class TestRedundantPackets:
    """Tests for the stationary and autocorrelation decompositions."""

    @pytest.mark.parametrize("mode", ["stationary", "autocorrelation"])
    def test_level_shapes(self, signal: np.ndarray, mode: str) -> None:
        """Test that nodes keep the full length."""
        tree = decompose(signal, "db2", mode=mode)
        assert tree.redundant
        for d in range(tree.depth + 1):
            assert tree.level(d).shape == (2**d, 32)

    def test_stationary_dilation(self, signal: np.ndarray) -> None:
        """Test that depth d splits with taps dilated by 2**d."""
        pair = qmf_pair("db2")
        tree = swpd(signal, pair, depth=3)
        lo, hi = sdwt_step(tree.node(2, 3), pair, 2)
        np.testing.assert_allclose(tree.node(3, 6), lo)
        np.testing.assert_allclose(tree.node(3, 7), hi)

    def test_stationary_frame_energy(self, signal: np.ndarray) -> None:
        """Test that level d of the stationary tree holds 2**d times the energy."""
        tree = swpd(signal, qmf_pair("haar"))
        energy = np.sum(signal**2)
        for d in range(tree.depth + 1):
            assert np.sum(tree.level(d) ** 2) == pytest.approx(2**d * energy)


class TestDecomposeValidation:
    """Tests for decompose() argument checks."""

    def test_default_depth(self) -> None:
        """Test that the depth defaults to the dyadic levels of the length."""
        assert decompose(np.ones(24)).depth == 3

    @pytest.mark.parametrize("mode", COMPLETE_MODES + ["shift-invariant"])
    def test_length_not_divisible(self, mode: str) -> None:
        """Test that depth beyond the dyadic levels raises LengthMismatchError."""
        with pytest.raises(LengthMismatchError, match="not divisible"):
            decompose(np.ones(12), depth=3, mode=mode)

    def test_negative_depth(self) -> None:
        """Test that negative depths are rejected."""
        with pytest.raises(InvalidArgumentError, match="non-negative"):
            decompose(np.ones(8), depth=-1)

    def test_empty_signal(self) -> None:
        """Test that empty signals are rejected."""
        with pytest.raises(InvalidArgumentError, match="non-empty"):
            decompose(np.array([]))

    def test_three_dimensional(self) -> None:
        """Test that 3-D signals are unsupported."""
        with pytest.raises(UnsupportedModeError, match="3-D"):
            decompose(np.ones((4, 4, 4)))

    @pytest.mark.parametrize("mode", ["stationary", "autocorrelation", "shift-invariant"])
    def test_two_dimensional_redundant(self, mode: str) -> None:
        """Test that 2-D signals support the ordinary family only."""
        with pytest.raises(UnsupportedModeError, match="ordinary mode only"):
            decompose(np.ones((8, 8)), mode=mode)

    def test_unknown_mode(self) -> None:
        """Test that unknown modes raise InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError, match="Unknown decomposition mode"):
            decompose(np.ones(8), mode="wavelet")

    def test_policy_outside_shift_invariant(self) -> None:
        """Test that an expansion policy is refused by complete families."""
        with pytest.raises(InvalidArgumentError, match="shift-invariant"):
            decompose(np.ones(8), policy=ExpansionPolicy(shift_depth=1))

    def test_mode_enum(self) -> None:
        """Test that modes are accepted as enum members."""
        tree = decompose(np.ones(8), mode=DecompositionMode.STATIONARY)
        assert tree.mode is DecompositionMode.STATIONARY


class TestReconstruction:
    """Tests for reconstruct() on complete trees."""

    @pytest.mark.parametrize("mode", COMPLETE_MODES)
    @pytest.mark.parametrize("name", ["haar", "db2", "db4", "sym3", "coif1"])
    def test_from_deepest_level(self, signal: np.ndarray, mode: str, name: str) -> None:
        """Test perfect reconstruction from the finest level."""
        tree = decompose(signal, name, mode=mode)
        np.testing.assert_allclose(reconstruct(tree), signal, atol=1e-10)

    @pytest.mark.parametrize("mode", COMPLETE_MODES)
    @pytest.mark.parametrize("depth", [1, 2, 4])
    def test_partial_depth(self, signal: np.ndarray, mode: str, depth: int) -> None:
        """Test perfect reconstruction for every depth >= 1."""
        tree = decompose(signal, "db3", depth=depth, mode=mode)
        np.testing.assert_allclose(reconstruct(tree), signal, atol=1e-10)

    @pytest.mark.parametrize("mode", COMPLETE_MODES)
    def test_mixed_cut(self, signal: np.ndarray, mode: str) -> None:
        """Test reconstruction from a cut spanning several depths."""
        tree = decompose(signal, "db2", depth=3, mode=mode)
        np.testing.assert_allclose(
            reconstruct(tree, BasisTree(flags=MIXED_CUT)), signal, atol=1e-10
        )

    def test_root_only(self, signal: np.ndarray) -> None:
        """Test that selecting the root returns the signal itself."""
        tree = decompose(signal, "haar", depth=3)
        flags = ([True], [False] * 2, [False] * 4, [False] * 8)
        np.testing.assert_allclose(reconstruct(tree, BasisTree(flags=flags)), signal)

    def test_depth_mismatch(self, signal: np.ndarray) -> None:
        """Test that a basis of another depth is rejected."""
        tree = decompose(signal, "haar", depth=2)
        with pytest.raises(InvalidArgumentError, match="depth"):
            reconstruct(tree, BasisTree(flags=MIXED_CUT))

    @pytest.mark.parametrize("mode", COMPLETE_MODES)
    def test_empty_cut(self, mode: str) -> None:
        """Test that a basis selecting no node is rejected."""
        tree = decompose(np.arange(8.0), "haar", depth=3, mode=mode)
        flags = ([False], [False] * 2, [False] * 4, [False] * 8)
        with pytest.raises(InvalidArgumentError, match="do not form a cut"):
            reconstruct(tree, BasisTree(flags=flags))

    def test_overlapping_cut(self) -> None:
        """Test that a basis selecting a node and its descendant is rejected."""
        tree = decompose(np.arange(8.0), "haar", depth=3)
        flags = ([False], [True, True], [True, False, False, False], [False] * 8)
        with pytest.raises(InvalidArgumentError, match="do not form a cut"):
            reconstruct(tree, BasisTree(flags=flags))

    def test_partial_cut(self) -> None:
        """Test that a basis leaving part of the signal uncovered is rejected."""
        tree = decompose(np.ones((8, 8)), "haar", depth=1)
        flags = ([False], [True, True, False, True])
        with pytest.raises(InvalidArgumentError, match="do not form a cut"):
            reconstruct(tree, BasisTree(flags=flags, arity=4))

    def test_every_catalog_wavelet(self, signal: np.ndarray) -> None:
        """Test perfect reconstruction for every wavelet of the catalog."""
        for name in available_wavelets():
            tree = decompose(signal, name, depth=3)
            np.testing.assert_allclose(reconstruct(tree), signal, atol=1e-9, err_msg=name)


class TestTwoDimensional:
    """Tests for the quaternary decomposition of images."""

    def test_level_shapes(self) -> None:
        """Test the quaternary level layout."""
        image = np.random.default_rng(3).standard_normal((8, 16))
        tree = decompose(image, "haar")
        assert tree.arity == 4
        assert tree.depth == 3
        for d in range(4):
            assert tree.level(d).shape == (4**d, 8 >> d, 16 >> d)
        assert len(tree) == node_count(3, 4)

    @pytest.mark.parametrize("name", ["haar", "db2"])
    def test_perfect_reconstruction(self, name: str) -> None:
        """Test perfect reconstruction of an image."""
        image = np.random.default_rng(4).standard_normal((16, 16))
        tree = decompose(image, name, depth=2)
        assert isinstance(tree, PacketTree)
        np.testing.assert_allclose(reconstruct(tree), image, atol=1e-10)

    def test_mixed_cut(self) -> None:
        """Test reconstruction from a quaternary cut across two depths."""
        image = np.random.default_rng(5).standard_normal((8, 8))
        tree = decompose(image, "db2", depth=2)
        flags = (
            [False],
            [True, False, True, True],
            [False] * 4 + [True] * 4 + [False] * 8,
        )
        np.testing.assert_allclose(
            reconstruct(tree, BasisTree(flags=flags, arity=4)), image, atol=1e-10
        )


class TestBasisCoefficients:
    """Tests for basis_coefficients()."""

    def test_concatenation_order(self) -> None:
        """Test that selected nodes are concatenated breadth-first."""
        x = np.random.default_rng(6).standard_normal(16)
        tree = decompose(x, "haar", depth=3)
        coeffs = basis_coefficients(tree, BasisTree(flags=MIXED_CUT))
        expected = np.concatenate([tree.node(1, 0), tree.node(2, 2), tree.node(3, 6), tree.node(3, 7)])
        np.testing.assert_array_equal(coeffs, expected)
        assert coeffs.size == 16

    def test_invalid_cut(self) -> None:
        """Test that an empty or overlapping selection is rejected."""
        tree = decompose(np.arange(8.0), "haar", depth=2)
        empty = ([False], [False] * 2, [False] * 4)
        overlapping = ([True], [True, False], [False] * 4)
        for flags in (empty, overlapping):
            with pytest.raises(InvalidArgumentError, match="do not form a cut"):
                basis_coefficients(tree, BasisTree(flags=flags))

    def test_shift_tree_cut(self) -> None:
        """Test that shift trees refuse an invalid shift basis."""
        tree = decompose(np.arange(8.0), "haar", depth=2, mode="shift-invariant")
        basis = ShiftBasis(flags=([False], [False] * 2, [False] * 4), shifts={}, costs={})
        with pytest.raises(InvalidArgumentError, match="do not form a cut"):
            basis_coefficients(tree, basis)

    def test_orthogonal_cut_keeps_energy(self) -> None:
        """Test that an orthogonal cut preserves the signal energy."""
        x = np.random.default_rng(7).standard_normal(16)
        tree = decompose(x, "db2", depth=3)
        coeffs = basis_coefficients(tree, BasisTree(flags=MIXED_CUT))
        assert np.sum(coeffs**2) == pytest.approx(np.sum(x**2))
