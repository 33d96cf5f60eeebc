"""Unit tests for vector assembly and normalization."""
import numpy as np
import pytest

from speakervec.core.config import EmbeddingMode, NormalizationMode
from speakervec.core.errors import ConfigError
from speakervec.features.assembler import VectorAssembler, normalize_global, normalize_per_frame


@pytest.fixture
def descriptors():
    return np.random.RandomState(7).normal(size=(12, 20))


def test_sequence_mode_concatenates_per_frame(descriptors):
    """Test that each frame vector is [static, delta]."""
    delta = descriptors * 0.1
    assembler = VectorAssembler(num_coefficients=20)

    vectors = assembler.assemble(descriptors, delta)

    assert vectors.shape == (12, 40)
    np.testing.assert_array_equal(vectors[:, :20], descriptors)
    np.testing.assert_array_equal(vectors[:, 20:], delta)
    assert assembler.output_dimension == 40


def test_aggregate_mode_pools_mean_then_std(descriptors):
    """Test the pooled vector layout [mean, std] of the combined matrix."""
    delta = np.random.RandomState(8).normal(size=descriptors.shape)
    assembler = VectorAssembler(num_coefficients=20, mode=EmbeddingMode.AGGREGATE)

    vector = assembler.assemble(descriptors, delta)
    combined = np.hstack([descriptors, delta])

    assert vector.shape == (80,)
    assert assembler.output_dimension == 80
    np.testing.assert_allclose(vector[:40], combined.mean(axis=0))
    np.testing.assert_allclose(vector[40:], combined.std(axis=0))


def test_aggregate_of_single_frame_has_zero_spread():
    """Test pooling a one-frame signal."""
    static = np.arange(4, dtype=np.float64).reshape(1, 4)
    vector = VectorAssembler(num_coefficients=4, mode="aggregate").assemble(static, np.zeros((1, 4)))

    np.testing.assert_array_equal(vector[:8], [0, 1, 2, 3, 0, 0, 0, 0])
    np.testing.assert_array_equal(vector[8:], np.zeros(8))


def test_mismatched_shapes_rejected(descriptors):
    """Test that static and delta matrices must align."""
    assembler = VectorAssembler(num_coefficients=20)

    with pytest.raises(ValueError):
        assembler.assemble(descriptors, descriptors[:-1])


def test_wrong_descriptor_width_rejected():
    """Test that descriptors must have num_coefficients columns."""
    assembler = VectorAssembler(num_coefficients=13)
    matrix = np.ones((5, 20))

    with pytest.raises(ValueError, match="width 13"):
        assembler.assemble(matrix, matrix)


def test_declared_dimension_checked_eagerly():
    """Test that a store dimension mismatch is a configuration error."""
    with pytest.raises(ConfigError, match="dimension 64"):
        VectorAssembler(num_coefficients=20, vector_dimension=64)

    VectorAssembler(num_coefficients=20, vector_dimension=40)
    VectorAssembler(num_coefficients=20, mode=EmbeddingMode.AGGREGATE, vector_dimension=80)


def test_per_frame_normalization(descriptors):
    """Test each row gets unit norm and zero rows pass through."""
    descriptors = descriptors.copy()
    descriptors[3] = 0.0

    normalized = normalize_per_frame(descriptors)
    norms = np.linalg.norm(normalized, axis=1)

    np.testing.assert_allclose(np.delete(norms, 3), 1.0)
    assert np.all(normalized[3] == 0.0)


def test_per_frame_normalization_is_length_independent(descriptors):
    """Test that a frame's scaled value does not depend on other frames."""
    full = normalize_per_frame(descriptors)
    head = normalize_per_frame(descriptors[:4])

    np.testing.assert_allclose(full[:4], head)


def test_global_normalization(descriptors):
    """Test the whole matrix is divided by its Frobenius norm."""
    normalized = normalize_global(descriptors)

    assert np.linalg.norm(normalized) == pytest.approx(1.0)
    np.testing.assert_allclose(normalized, descriptors / np.linalg.norm(descriptors))
    np.testing.assert_array_equal(normalize_global(np.zeros((2, 3))), np.zeros((2, 3)))


def test_assembler_normalize_follows_policy(descriptors):
    """Test the configured normalization policy is applied."""
    frame = VectorAssembler(20, normalization=NormalizationMode.FRAME).normalize(descriptors)
    whole = VectorAssembler(20, normalization=NormalizationMode.GLOBAL).normalize(descriptors)

    np.testing.assert_allclose(frame, normalize_per_frame(descriptors))
    np.testing.assert_allclose(whole, normalize_global(descriptors))
