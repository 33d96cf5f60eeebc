"""Delta (dynamics) coefficients over a descriptor sequence."""
import numpy as np

from speakervec.core.errors import ConfigError


def compute_delta(descriptors: np.ndarray, order: int = 2) -> np.ndarray:
    """
    Compute first-order regression deltas.

    delta[t] = sum_{n=1..N} n * (d[t+n] - d[t-n]) / (2 * sum_{n=1..N} n^2)

    Neighbour indices are clamped to [0, T-1], so edge frames are
    replicated rather than zero-padded. The input is not modified.

    Args:
        descriptors: Array of shape (T, num_coefficients)
        order: Regression half-width N (default 2, denominator 10)

    Returns:
        New array with the same shape as ``descriptors``
    """
    if order < 1:
        raise ConfigError(f"delta order must be at least 1, got {order}")

    descriptors = np.asarray(descriptors, dtype=np.float64)
    if descriptors.ndim != 2:
        raise ValueError(f"Expected a 2-D descriptor matrix, got shape {descriptors.shape}")

    num_frames = descriptors.shape[0]
    if num_frames == 0:
        return np.zeros_like(descriptors)

    last = num_frames - 1
    t = np.arange(num_frames)
    delta = np.zeros_like(descriptors)
    for n in range(1, order + 1):
        ahead = np.clip(t + n, 0, last)
        behind = np.clip(t - n, 0, last)
        delta += n * (descriptors[ahead] - descriptors[behind])

    denominator = 2 * sum(n * n for n in range(1, order + 1))
    return delta / denominator
