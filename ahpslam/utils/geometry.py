"""
Small geometric helpers shared by the frame and landmark modules.

Provides functions for:
- Shape-checked conversion of inputs to float64 vectors
- Skew-symmetric (cross product) matrices
- Singularity thresholds for range-dependent Jacobians
"""

import numpy as np

from ahpslam.errors import ShapeMismatchError


# Singularity threshold constants
EPSILON_RANGE = 1e-10  # Minimum sensor-to-landmark range for inverse distance
EPSILON_DIRECTION = 1e-12  # Minimum norm of a direction vector


def as_vector(x, size: int, name: str = "vector") -> np.ndarray:
    """
    Convert input to a float64 vector of a fixed length.

    Args:
        x: Array-like input.
        size: Required number of elements.
        name: Name used in the error message.

    Returns:
        New float64 array of shape (size,).

    Raises:
        ShapeMismatchError: If the input does not have shape (size,).

    Example:
        >>> as_vector([1, 2, 3], 3)
        array([1., 2., 3.])
    """
    arr = np.array(x, dtype=np.float64)
    if arr.shape != (size,):
        raise ShapeMismatchError(
            f"{name} must have shape ({size},), got {arr.shape}"
        )
    return arr


def skew(v: np.ndarray) -> np.ndarray:
    """
    Skew-symmetric matrix [v]x such that [v]x @ u == cross(v, u).

    Args:
        v: 3-vector.

    Returns:
        3x3 skew-symmetric matrix.
    """
    return np.array(
        [
            [0.0, -v[2], v[1]],
            [v[2], 0.0, -v[0]],
            [-v[1], v[0], 0.0],
        ],
        dtype=np.float64,
    )
