"""Unit tests for quaternion rotation operations.

Test cases include:
- Identity and known rotations (90° about each axis)
- Agreement with scipy's rotation matrices (scalar-last convention there)
- Composition: R(q1 ⊗ q2) == R(q1) @ R(q2)
- Unit-norm and shape validation at the boundary
"""

import unittest

import numpy as np
from scipy.spatial.transform import Rotation

from ahpslam.coords.quaternions import (
    QUAT_NORM_TOL,
    check_unit_quaternion,
    quat_conjugate,
    quat_from_axis_angle,
    quat_multiply,
    quat_to_rotation_matrix,
    random_unit_quaternion,
    rotate,
    rotate_inverse,
)
from ahpslam.errors import InvalidFrameError, ShapeMismatchError


class TestRotationMatrix(unittest.TestCase):
    """Test cases for quaternion to rotation matrix conversion."""

    def test_identity(self) -> None:
        """Test identity quaternion gives identity matrix."""
        R = quat_to_rotation_matrix(np.array([1.0, 0.0, 0.0, 0.0]))
        np.testing.assert_allclose(R, np.eye(3), atol=1e-12)

    def test_matches_scipy(self) -> None:
        """Test against scipy for random quaternions."""
        rng = np.random.default_rng(7)
        for _ in range(50):
            q = random_unit_quaternion(rng)
            expected = Rotation.from_quat([q[1], q[2], q[3], q[0]]).as_matrix()
            np.testing.assert_allclose(quat_to_rotation_matrix(q), expected, atol=1e-12)

    def test_orthonormal(self) -> None:
        """Test R^T R = I and det(R) = 1."""
        q = quat_from_axis_angle([1.0, 2.0, -0.5], 0.7)
        R = quat_to_rotation_matrix(q)

        np.testing.assert_allclose(R.T @ R, np.eye(3), atol=1e-12)
        self.assertAlmostEqual(np.linalg.det(R), 1.0, places=12)


class TestRotate(unittest.TestCase):
    """Test cases for vector rotation."""

    def test_90_degree_yaw(self) -> None:
        """Test 90° about z rotates x-axis to y-axis."""
        q = quat_from_axis_angle([0.0, 0.0, 1.0], np.pi / 2.0)
        np.testing.assert_allclose(rotate(q, [1.0, 0.0, 0.0]), [0.0, 1.0, 0.0], atol=1e-12)

    def test_90_degree_roll(self) -> None:
        """Test 90° about x rotates y-axis to z-axis."""
        q = quat_from_axis_angle([1.0, 0.0, 0.0], np.pi / 2.0)
        np.testing.assert_allclose(rotate(q, [0.0, 1.0, 0.0]), [0.0, 0.0, 1.0], atol=1e-12)

    def test_inverse_rotation_round_trip(self) -> None:
        """Test rotate_inverse undoes rotate."""
        rng = np.random.default_rng(3)
        for _ in range(20):
            q = random_unit_quaternion(rng)
            v = rng.normal(size=3)
            np.testing.assert_allclose(rotate_inverse(q, rotate(q, v)), v, atol=1e-12)

    def test_conjugate_is_inverse_rotation(self) -> None:
        """Test R(conj(q)) @ v == R(q).T @ v."""
        q = quat_from_axis_angle([0.3, -1.0, 0.2], 1.1)
        v = np.array([0.5, -2.0, 1.5])
        np.testing.assert_allclose(rotate(quat_conjugate(q), v), rotate_inverse(q, v), atol=1e-12)


class TestQuaternionProduct(unittest.TestCase):
    """Test cases for the Hamilton product."""

    def test_identity_product(self) -> None:
        """Test q ⊗ 1 == q."""
        q = quat_from_axis_angle([1.0, 1.0, 0.0], 0.4)
        identity = np.array([1.0, 0.0, 0.0, 0.0])

        np.testing.assert_allclose(quat_multiply(q, identity), q, atol=1e-12)
        np.testing.assert_allclose(quat_multiply(identity, q), q, atol=1e-12)

    def test_product_composes_rotations(self) -> None:
        """Test R(q1 ⊗ q2) == R(q1) @ R(q2)."""
        rng = np.random.default_rng(11)
        for _ in range(20):
            q1 = random_unit_quaternion(rng)
            q2 = random_unit_quaternion(rng)
            np.testing.assert_allclose(
                quat_to_rotation_matrix(quat_multiply(q1, q2)),
                quat_to_rotation_matrix(q1) @ quat_to_rotation_matrix(q2),
                atol=1e-12,
            )

    def test_product_with_conjugate(self) -> None:
        """Test q ⊗ conj(q) == identity."""
        q = quat_from_axis_angle([0.0, 1.0, 0.0], -2.0)
        np.testing.assert_allclose(
            quat_multiply(q, quat_conjugate(q)), [1.0, 0.0, 0.0, 0.0], atol=1e-12
        )


class TestValidation(unittest.TestCase):
    """Test boundary checks on quaternions."""

    def test_non_unit_quaternion_rejected(self) -> None:
        """Test that a non-unit quaternion raises InvalidFrameError."""
        with self.assertRaises(InvalidFrameError):
            rotate(np.array([2.0, 0.0, 0.0, 0.0]), np.ones(3))

    def test_zero_quaternion_rejected(self) -> None:
        with self.assertRaises(InvalidFrameError):
            check_unit_quaternion(np.zeros(4))

    def test_nan_quaternion_rejected(self) -> None:
        with self.assertRaises(InvalidFrameError):
            check_unit_quaternion(np.array([np.nan, 0.0, 0.0, 0.0]))

    def test_small_norm_error_accepted(self) -> None:
        """Test that deviations within tolerance pass unchanged."""
        q = np.array([1.0 + 0.5 * QUAT_NORM_TOL, 0.0, 0.0, 0.0])
        np.testing.assert_array_equal(check_unit_quaternion(q), q)

    def test_wrong_shape_rejected(self) -> None:
        """Test that a 3-element quaternion raises ShapeMismatchError."""
        with self.assertRaises(ShapeMismatchError):
            check_unit_quaternion(np.array([1.0, 0.0, 0.0]))

    def test_invalid_frame_is_value_error(self) -> None:
        """Test errors can be caught as ValueError."""
        with self.assertRaises(ValueError):
            check_unit_quaternion(np.array([0.5, 0.0, 0.0, 0.0]))

    def test_zero_axis_rejected(self) -> None:
        with self.assertRaises(ValueError):
            quat_from_axis_angle([0.0, 0.0, 0.0], 1.0)


if __name__ == "__main__":
    unittest.main()
