"""Unit tests for delta coefficients."""
import numpy as np
import pytest

from speakervec.core.errors import ConfigError
from speakervec.features.delta import compute_delta


def test_constant_sequence_has_zero_delta():
    """Test that regression over a constant signal is zero."""
    descriptors = np.tile(np.arange(20, dtype=np.float64), (15, 1))

    delta = compute_delta(descriptors)

    assert delta.shape == descriptors.shape
    assert np.all(delta == 0.0)


def test_linear_ramp_interior_and_edges():
    """Test the regression slope and the replicated edges."""
    slope = 3.0
    descriptors = slope * np.arange(10, dtype=np.float64).reshape(-1, 1) * np.ones((1, 4))

    delta = compute_delta(descriptors, order=2)

    # Interior frames see the full neighbourhood: delta equals the slope
    np.testing.assert_allclose(delta[2:-2], slope)
    # t=0: (1*(d1-d0) + 2*(d2-d0)) / 10 = 5*slope/10
    np.testing.assert_allclose(delta[0], 0.5 * slope)
    # t=1: (1*(d2-d0) + 2*(d3-d0)) / 10 = 8*slope/10
    np.testing.assert_allclose(delta[1], 0.8 * slope)
    np.testing.assert_allclose(delta[-1], 0.5 * slope)


def test_formula_against_direct_sum():
    """Test the vectorized result against the written-out formula."""
    rng = np.random.RandomState(3)
    descriptors = rng.normal(size=(7, 5))
    order = 2
    last = len(descriptors) - 1

    expected = np.zeros_like(descriptors)
    for t in range(len(descriptors)):
        for n in range(1, order + 1):
            expected[t] += n * (descriptors[min(last, t + n)] - descriptors[max(0, t - n)])
    expected /= 10.0

    np.testing.assert_allclose(compute_delta(descriptors, order=order), expected)


def test_order_one_denominator():
    """Test N=1 uses denominator 2."""
    descriptors = np.array([[0.0], [2.0], [4.0]])

    delta = compute_delta(descriptors, order=1)

    np.testing.assert_allclose(delta[:, 0], [1.0, 2.0, 1.0])


def test_input_is_not_modified():
    """Test that deltas are returned as a new array."""
    descriptors = np.random.RandomState(0).normal(size=(6, 3))
    original = descriptors.copy()

    delta = compute_delta(descriptors)

    np.testing.assert_array_equal(descriptors, original)
    assert not np.shares_memory(delta, descriptors)


def test_single_frame_and_empty_sequences():
    """Test degenerate sequence lengths."""
    np.testing.assert_array_equal(compute_delta(np.ones((1, 4))), np.zeros((1, 4)))
    assert compute_delta(np.zeros((0, 4))).shape == (0, 4)


def test_invalid_order_rejected():
    """Test that the regression order must be positive."""
    with pytest.raises(ConfigError):
        compute_delta(np.ones((3, 2)), order=0)


def test_one_dimensional_input_rejected():
    """Test that a flat vector is not a descriptor matrix."""
    with pytest.raises(ValueError):
        compute_delta(np.ones(5))
