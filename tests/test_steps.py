"""Tests for one-level filter-bank steps."""

import numpy as np
import pytest

from wavebasis.dsp.filters import autocorrelation_shell, qmf_pair
from wavebasis.dsp.steps import (
    acwt_step,
    dwt_step,
    dwt_step_2d,
    iacwt_step,
    idwt_step,
    idwt_step_2d,
    isdwt_step,
    sdwt_step,
)
from wavebasis.exceptions import LengthMismatchError, UnsupportedModeError

WAVELETS = ["haar", "db2", "db3", "sym4", "coif1"]


class TestDwtStep:
    """Tests for the critically downsampled step."""

    def test_haar_values(self) -> None:
        """Test Haar coefficients against the closed form."""
        lo, hi = dwt_step(np.array([1.0, 2.0, 3.0, 4.0]), qmf_pair("haar"))
        a = 1 / np.sqrt(2)
        np.testing.assert_allclose(lo, [3 * a, 7 * a])
        np.testing.assert_allclose(hi, [-a, -a])

    @pytest.mark.parametrize("name", WAVELETS)
    def test_energy_preserved(self, name: str) -> None:
        """Test that the step is orthogonal."""
        rng = np.random.default_rng(0)
        v = rng.standard_normal(32)
        lo, hi = dwt_step(v, qmf_pair(name))
        assert lo.shape == hi.shape == (16,)
        assert np.sum(lo**2) + np.sum(hi**2) == pytest.approx(np.sum(v**2))

    @pytest.mark.parametrize("name", WAVELETS)
    def test_perfect_reconstruction(self, name: str) -> None:
        """Test that idwt_step inverts dwt_step."""
        rng = np.random.default_rng(1)
        v = rng.standard_normal(16)
        pair = qmf_pair(name)
        np.testing.assert_allclose(idwt_step(*dwt_step(v, pair), pair), v, atol=1e-12)

    def test_short_vector_with_long_filter(self) -> None:
        """Test that periodic wrapping still inverts when taps exceed the length."""
        v = np.array([1.0, -2.0])
        pair = qmf_pair("db4")
        np.testing.assert_allclose(idwt_step(*dwt_step(v, pair), pair), v, atol=1e-12)

    def test_batch_along_last_axis(self) -> None:
        """Test that a batch of vectors matches per-vector steps."""
        rng = np.random.default_rng(2)
        batch = rng.standard_normal((3, 8))
        pair = qmf_pair("db2")
        lo, hi = dwt_step(batch, pair)
        for k in range(3):
            lo_k, hi_k = dwt_step(batch[k], pair)
            np.testing.assert_allclose(lo[k], lo_k)
            np.testing.assert_allclose(hi[k], hi_k)

    def test_odd_length(self) -> None:
        """Test that odd lengths raise LengthMismatchError."""
        with pytest.raises(LengthMismatchError, match="even length"):
            dwt_step(np.ones(5), qmf_pair("haar"))

    def test_mismatched_children(self) -> None:
        """Test that the inverse rejects children of different shapes."""
        with pytest.raises(LengthMismatchError, match="Child shapes differ"):
            idwt_step(np.ones(4), np.ones(3), qmf_pair("haar"))


class TestStationaryStep:
    """Tests for the undecimated step."""

    @pytest.mark.parametrize("name", WAVELETS)
    @pytest.mark.parametrize("level", [0, 1, 2])
    def test_perfect_reconstruction(self, name: str, level: int) -> None:
        """Test that isdwt_step inverts sdwt_step at every dilation."""
        rng = np.random.default_rng(3)
        v = rng.standard_normal(16)
        pair = qmf_pair(name)
        lo, hi = sdwt_step(v, pair, level)
        assert lo.shape == hi.shape == v.shape
        np.testing.assert_allclose(isdwt_step(lo, hi, pair, level), v, atol=1e-12)

    def test_even_phase_matches_decimated(self) -> None:
        """Test that even outputs at level 0 equal the decimated step."""
        rng = np.random.default_rng(4)
        v = rng.standard_normal(8)
        pair = qmf_pair("db2")
        lo, hi = sdwt_step(v, pair, 0)
        dlo, dhi = dwt_step(v, pair)
        np.testing.assert_allclose(lo[0::2], dlo)
        np.testing.assert_allclose(hi[0::2], dhi)

    def test_frame_energy(self) -> None:
        """Test that the undecimated step doubles the energy."""
        rng = np.random.default_rng(5)
        v = rng.standard_normal(16)
        lo, hi = sdwt_step(v, qmf_pair("sym4"), 1)
        assert np.sum(lo**2) + np.sum(hi**2) == pytest.approx(2 * np.sum(v**2))


class TestAutocorrelationStep:
    """Tests for the autocorrelation-shell step."""

    @pytest.mark.parametrize("name", WAVELETS)
    @pytest.mark.parametrize("level", [0, 1, 3])
    def test_perfect_reconstruction(self, name: str, level: int) -> None:
        """Test that iacwt_step inverts acwt_step."""
        rng = np.random.default_rng(6)
        v = rng.standard_normal(16)
        lo, hi = acwt_step(v, autocorrelation_shell(qmf_pair(name)), level)
        np.testing.assert_allclose(iacwt_step(lo, hi), v, atol=1e-12)

    def test_constant_signal(self) -> None:
        """Test that a constant signal has no high-pass content."""
        v = np.full(8, 3.0)
        lo, hi = acwt_step(v, autocorrelation_shell(qmf_pair("db2")), 0)
        np.testing.assert_allclose(hi, 0.0, atol=1e-12)
        np.testing.assert_allclose(lo, 3.0 * np.sqrt(2.0))


class TestStep2D:
    """Tests for the separable 2-D step."""

    @pytest.mark.parametrize("name", ["haar", "db2"])
    def test_perfect_reconstruction(self, name: str) -> None:
        """Test that idwt_step_2d inverts dwt_step_2d."""
        rng = np.random.default_rng(7)
        image = rng.standard_normal((8, 16))
        pair = qmf_pair(name)
        quads = dwt_step_2d(image, pair)
        assert all(q.shape == (4, 8) for q in quads)
        np.testing.assert_allclose(idwt_step_2d(*quads, pair), image, atol=1e-12)

    def test_constant_image(self) -> None:
        """Test that a constant image lands entirely in the ll band."""
        image = np.ones((4, 4))
        ll, lh, hl, hh = dwt_step_2d(image, qmf_pair("haar"))
        np.testing.assert_allclose(ll, 2.0)
        for band in (lh, hl, hh):
            np.testing.assert_allclose(band, 0.0, atol=1e-12)

    def test_non_standard_unsupported(self) -> None:
        """Test that the non-standard transform raises UnsupportedModeError."""
        with pytest.raises(UnsupportedModeError, match="Non-standard"):
            dwt_step_2d(np.ones((4, 4)), qmf_pair("haar"), standard=False)
        with pytest.raises(UnsupportedModeError):
            idwt_step_2d(*[np.ones((2, 2))] * 4, qmf_pair("haar"), standard=False)
