"""Quaternion rotation operations and their Jacobians.

This module provides the rotation primitives used by the frame and
landmark transforms, each in a value-only form and a value+Jacobian form:
- Rotation of a 3-vector by a quaternion, R(q) @ v
- Inverse rotation, R(q).T @ v
- Quaternion conjugate (inverse of a unit quaternion)
- Quaternion product (Hamilton convention)

Conventions:
- Quaternions: [qw, qx, qy, qz] where qw is the scalar part
- R(q) maps vectors from the local frame to the parent frame:
  v_parent = R(q) @ v_local
- R(q) is evaluated in homogeneous form
      R = (qw² - r·r) I + 2 r rᵀ + 2 qw [r]x,   r = [qx, qy, qz]
  so that R(conj(q)) == R(q).T holds exactly, also for the slightly
  non-unit quaternions produced by numerical differentiation.
- Jacobians wrt a quaternion are 3x4 (or 4x4), wrt a vector 3x3.

Inputs to the public functions must be unit quaternions; anything off
the unit sphere by more than QUAT_NORM_TOL raises InvalidFrameError.
"""

from typing import Tuple

import numpy as np
from numpy.typing import NDArray

from ahpslam.errors import InvalidFrameError
from ahpslam.utils.geometry import as_vector, skew


# Allowed deviation of |q| from 1
QUAT_NORM_TOL = 1e-5

# Jacobian of the conjugate: diag(1, -1, -1, -1)
CONJUGATE_JACOBIAN = np.diag([1.0, -1.0, -1.0, -1.0])


def check_unit_quaternion(q) -> NDArray[np.float64]:
    """Validate a quaternion and return it as a float64 array.

    Args:
        q: Quaternion [qw, qx, qy, qz].

    Returns:
        The quaternion as a new float64 array of shape (4,).

    Raises:
        ShapeMismatchError: If q does not have 4 elements.
        InvalidFrameError: If |q| differs from 1 by more than QUAT_NORM_TOL.
    """
    q = as_vector(q, 4, "quaternion")
    norm = np.linalg.norm(q)
    if not np.isfinite(norm) or abs(norm - 1.0) > QUAT_NORM_TOL:
        raise InvalidFrameError(
            f"Quaternion must be unit norm (tolerance {QUAT_NORM_TOL}), "
            f"got |q| = {norm}"
        )
    return q


def quat_to_rotation_matrix(q) -> NDArray[np.float64]:
    """Convert a unit quaternion to a 3x3 rotation matrix.

    Args:
        q: Unit quaternion [qw, qx, qy, qz].

    Returns:
        3x3 rotation matrix R such that v_parent = R @ v_local.

    Example:
        >>> R = quat_to_rotation_matrix(np.array([1.0, 0.0, 0.0, 0.0]))
        >>> np.allclose(R, np.eye(3))
        True
    """
    q = check_unit_quaternion(q)
    return _rotation_matrix(q)


def _rotation_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    qw, qx, qy, qz = q
    ww, xx, yy, zz = qw * qw, qx * qx, qy * qy, qz * qz

    R = np.array(
        [
            [ww + xx - yy - zz, 2.0 * (qx * qy - qw * qz), 2.0 * (qx * qz + qw * qy)],
            [2.0 * (qx * qy + qw * qz), ww - xx + yy - zz, 2.0 * (qy * qz - qw * qx)],
            [2.0 * (qx * qz - qw * qy), 2.0 * (qy * qz + qw * qx), ww - xx - yy + zz],
        ],
        dtype=np.float64,
    )

    return R


def _rotate_by_dq(q: NDArray[np.float64], v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Jacobian of R(q) @ v wrt q, 3x4.

    d(R v)/dq = 2 [ qw v + r x v  |  (r·v) I + r vᵀ - v rᵀ - qw [v]x ]
    """
    qw = q[0]
    r = q[1:]

    J = np.empty((3, 4), dtype=np.float64)
    J[:, 0] = qw * v + np.cross(r, v)
    J[:, 1:] = np.dot(r, v) * np.eye(3) + np.outer(r, v) - np.outer(v, r) - qw * skew(v)

    return 2.0 * J


def rotate(q, v) -> NDArray[np.float64]:
    """Rotate a vector from the local frame to the parent frame.

    Args:
        q: Unit quaternion [qw, qx, qy, qz].
        v: 3-vector in the local frame.

    Returns:
        R(q) @ v.
    """
    q = check_unit_quaternion(q)
    v = as_vector(v, 3, "v")
    return _rotation_matrix(q) @ v


def rotate_jac(
    q, v
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Rotate a vector, with Jacobians.

    Args:
        q: Unit quaternion [qw, qx, qy, qz].
        v: 3-vector in the local frame.

    Returns:
        Tuple (vp, VP_q, VP_v):
            - vp: R(q) @ v, shape (3,)
            - VP_q: Jacobian wrt q, shape (3, 4)
            - VP_v: Jacobian wrt v, shape (3, 3), equal to R(q)
    """
    q = check_unit_quaternion(q)
    v = as_vector(v, 3, "v")
    R = _rotation_matrix(q)
    return R @ v, _rotate_by_dq(q, v), R


def rotate_inverse(q, v) -> NDArray[np.float64]:
    """Rotate a vector from the parent frame to the local frame, R(q).T @ v."""
    q = check_unit_quaternion(q)
    v = as_vector(v, 3, "v")
    return _rotation_matrix(q).T @ v


def rotate_inverse_jac(
    q, v
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Inverse rotation with Jacobians.

    Returns:
        Tuple (vp, VP_q, VP_v) with vp = R(q).T @ v, VP_q of shape (3, 4)
        and VP_v = R(q).T of shape (3, 3).
    """
    q = check_unit_quaternion(q)
    v = as_vector(v, 3, "v")
    Rt = _rotation_matrix(q).T
    VP_q = _rotate_by_dq(q * np.array([1.0, -1.0, -1.0, -1.0]), v) @ CONJUGATE_JACOBIAN
    return Rt @ v, VP_q, Rt


def quat_conjugate(q) -> NDArray[np.float64]:
    """Conjugate of a quaternion, which is its inverse when |q| = 1.

    Example:
        >>> quat_conjugate(np.array([1.0, 0.0, 0.0, 0.0]))
        array([ 1., -0., -0., -0.])
    """
    q = check_unit_quaternion(q)
    return q * np.array([1.0, -1.0, -1.0, -1.0])


def quat_conjugate_jac(q) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Conjugate with Jacobian (constant 4x4 diag(1, -1, -1, -1))."""
    return quat_conjugate(q), CONJUGATE_JACOBIAN.copy()


def quat_left_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Matrix [q]_L such that q ⊗ p == [q]_L @ p."""
    qw, qx, qy, qz = q
    return np.array(
        [
            [qw, -qx, -qy, -qz],
            [qx, qw, -qz, qy],
            [qy, qz, qw, -qx],
            [qz, -qy, qx, qw],
        ],
        dtype=np.float64,
    )


def quat_right_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Matrix [q]_R such that p ⊗ q == [q]_R @ p."""
    qw, qx, qy, qz = q
    return np.array(
        [
            [qw, -qx, -qy, -qz],
            [qx, qw, qz, -qy],
            [qy, -qz, qw, qx],
            [qz, qy, -qx, qw],
        ],
        dtype=np.float64,
    )


def quat_multiply(q1, q2) -> NDArray[np.float64]:
    """Hamilton product q1 ⊗ q2.

    With this convention R(q1 ⊗ q2) == R(q1) @ R(q2).
    """
    q1 = check_unit_quaternion(q1)
    q2 = check_unit_quaternion(q2)
    return quat_left_matrix(q1) @ q2


def quat_multiply_jac(
    q1, q2
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Hamilton product with Jacobians.

    Returns:
        Tuple (q, Q_q1, Q_q2) with q = q1 ⊗ q2, Q_q1 = [q2]_R and
        Q_q2 = [q1]_L, both 4x4.
    """
    q1 = check_unit_quaternion(q1)
    q2 = check_unit_quaternion(q2)
    Q_q2 = quat_left_matrix(q1)
    return Q_q2 @ q2, quat_right_matrix(q2), Q_q2


def quat_from_axis_angle(axis, angle: float) -> NDArray[np.float64]:
    """Build a unit quaternion from a rotation axis and angle.

    Args:
        axis: Rotation axis (3-vector, any nonzero norm).
        angle: Rotation angle in radians.

    Returns:
        Unit quaternion [qw, qx, qy, qz].

    Raises:
        ValueError: If the axis has zero norm.

    Example:
        >>> q = quat_from_axis_angle([0, 0, 1], np.pi / 2)  # 90° yaw
        >>> np.allclose(rotate(q, [1, 0, 0]), [0, 1, 0])
        True
    """
    axis = as_vector(axis, 3, "axis")
    norm = np.linalg.norm(axis)
    if norm == 0.0:
        raise ValueError("Rotation axis must be nonzero")
    half = 0.5 * angle
    return np.concatenate([[np.cos(half)], np.sin(half) * axis / norm])


def random_unit_quaternion(rng: np.random.Generator) -> NDArray[np.float64]:
    """Draw a quaternion uniformly distributed on the unit sphere."""
    q = rng.normal(size=4)
    return q / np.linalg.norm(q)
