"""Tests for the shift-invariant best basis."""

import numpy as np
import pytest

from wavebasis.bestbasis.basis import ShiftBasis, is_valid_basis
from wavebasis.bestbasis.search import bb, best_basis, tree_costs
from wavebasis.bestbasis.sibb import sibb, sibb_tree
from wavebasis.dsp.decompose import basis_coefficients, decompose, reconstruct
from wavebasis.dsp.filters import qmf_pair
from wavebasis.dsp.packets import wpd
from wavebasis.dsp.siwpd import ExpansionPolicy, siwpd
from wavebasis.exceptions import InvalidArgumentError


def node_sums(tree, basis: ShiftBasis) -> list[float]:
    return sorted(float(tree[key].coefficients.sum()) for key in basis.keys())


class TestSIBB:
    """Tests for SIBB over shift trees."""

    @pytest.mark.parametrize("name", ["haar", "db2"])
    @pytest.mark.parametrize("cost", ["shannon-entropy", "log-energy-entropy", "norm"])
    def test_valid(self, name: str, cost: str) -> None:
        """Test that SIBB returns a valid cut."""
        x = np.random.default_rng(5).standard_normal(32)
        basis = sibb_tree(siwpd(x, qmf_pair(name)), cost)
        assert isinstance(basis, ShiftBasis)
        assert is_valid_basis(32, basis)
        assert sorted(basis.shifts) == basis.selected()

    def test_shift_invariance(self) -> None:
        """Test that a circular shift leaves the selected costs and node sums unchanged."""
        x = np.random.default_rng(1234).standard_normal(16)
        tree0 = siwpd(x, qmf_pair("haar"))
        tree4 = siwpd(np.roll(x, 4), qmf_pair("haar"))
        basis0 = sibb_tree(tree0)
        basis4 = sibb_tree(tree4)

        assert sorted(basis0.costs.values()) == pytest.approx(sorted(basis4.costs.values()))
        assert node_sums(tree0, basis0) == pytest.approx(node_sums(tree4, basis4))

    @pytest.mark.parametrize("shift", [1, 3, 8])
    def test_shift_invariance_other_shifts(self, shift: int) -> None:
        """Test invariance of the total cost for other circular shifts."""
        x = np.random.default_rng(99).standard_normal(16)
        basis0 = sibb_tree(siwpd(x, qmf_pair("haar")))
        basis1 = sibb_tree(siwpd(np.roll(x, shift), qmf_pair("haar")))
        assert sum(basis0.costs.values()) == pytest.approx(sum(basis1.costs.values()))

    def test_not_worse_than_bb(self) -> None:
        """Test that exploring shifts never costs more than the ordinary best basis."""
        x = np.random.default_rng(7).standard_normal(32)
        pair = qmf_pair("db2")
        ordinary = wpd(x, pair)
        costs = tree_costs(ordinary)
        bb_total = sum(costs[d][i] for d, i in bb(ordinary).selected())
        basis = sibb_tree(siwpd(x, pair))
        assert sum(basis.costs.values()) <= bb_total + 1e-9

    def test_without_shifts_matches_bb(self) -> None:
        """Test that a tree without shifted variants selects the BB cut."""
        x = np.random.default_rng(8).standard_normal(16)
        pair = qmf_pair("db2")
        tree = siwpd(x, pair, policy=ExpansionPolicy(shift_depth=0))
        basis = sibb_tree(tree)
        assert basis.selected() == bb(wpd(x, pair)).selected()
        assert set(basis.shifts.values()) == {0}

    def test_reconstruction(self) -> None:
        """Test perfect reconstruction from the selected shifted nodes."""
        x = np.random.default_rng(9).standard_normal(32)
        tree = siwpd(x, qmf_pair("db2"))
        basis = sibb_tree(tree)
        np.testing.assert_allclose(reconstruct(tree, basis), x, atol=1e-10)

    def test_coefficients_keep_energy(self) -> None:
        """Test that the selected orthogonal coefficients keep the signal energy."""
        x = np.random.default_rng(10).standard_normal(16)
        tree = siwpd(x, qmf_pair("sym4"))
        coeffs = basis_coefficients(tree, sibb_tree(tree))
        assert coeffs.size == 16
        assert np.sum(coeffs**2) == pytest.approx(np.sum(x**2))


class TestVariantTieBreak:
    """Tests for the choice between equally cheap shift variants."""

    def test_larger_sum_wins(self) -> None:
        """Test that the variant whose children sum higher is chosen."""
        tree = siwpd(np.array([1.0, 1.1]), qmf_pair("haar"))
        basis = sibb_tree(tree)
        assert basis.selected() == [(1, 0), (1, 1)]
        assert basis.shifts == {(1, 0): 1, (1, 1): 1}

    def test_unshifted_when_already_larger(self) -> None:
        """Test that the unshifted variant is kept when it sums higher."""
        tree = siwpd(np.array([1.1, 1.0]), qmf_pair("haar"))
        basis = sibb_tree(tree)
        assert basis.shifts == {(1, 0): 0, (1, 1): 0}

    def test_concentrated_signal_keeps_root(self) -> None:
        """Test that an impulse keeps the root under the Shannon cost."""
        x = np.zeros(8)
        x[3] = 2.0
        basis = sibb_tree(siwpd(x, qmf_pair("haar")))
        assert basis.selected() == [(0, 0)]


class TestDispatch:
    """Tests for SIBB entry points."""

    def test_sequence(self) -> None:
        """Test one basis per shift tree."""
        rng = np.random.default_rng(3)
        trees = [siwpd(rng.standard_normal(8), qmf_pair("haar")) for _ in range(3)]
        bases = sibb(trees)
        assert len(bases) == 3
        assert all(isinstance(b, ShiftBasis) for b in bases)

    def test_best_basis_method(self) -> None:
        """Test dispatch through best_basis()."""
        tree = decompose(np.random.default_rng(4).standard_normal(8), "haar", mode="shift-invariant")
        assert isinstance(best_basis(tree, "sibb"), ShiftBasis)

    def test_rejects_packet_tree(self) -> None:
        """Test that complete packet trees are refused."""
        with pytest.raises(InvalidArgumentError, match="ShiftTree"):
            sibb_tree(wpd(np.ones(8), qmf_pair("haar")))  # type: ignore[arg-type]
