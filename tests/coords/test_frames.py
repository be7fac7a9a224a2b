"""Unit tests for ahpslam.coords.frames.

Tests rigid frame composition, inversion and point/vector transforms.
"""

import numpy as np
import pytest

from ahpslam.coords import (
    Frame,
    as_frame_array,
    compose_frames,
    invert_frame,
    point_from_frame,
    point_to_frame,
    quat_from_axis_angle,
    random_unit_quaternion,
    vector_from_frame,
    vector_to_frame,
)
from ahpslam.errors import InvalidFrameError, ShapeMismatchError


IDENTITY = np.array([0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0])


def make_frame(t, axis, angle):
    return np.concatenate([t, quat_from_axis_angle(axis, angle)])


class TestFrameDataclass:
    """Test suite for the Frame dataclass."""

    def test_identity(self):
        """Test identity frame array."""
        np.testing.assert_array_equal(Frame.identity().to_array(), IDENTITY)

    def test_array_round_trip(self):
        """Test from_array(to_array()) preserves the frame."""
        F = Frame(t=np.array([1.0, 2.0, 3.0]), q=quat_from_axis_angle([0, 0, 1], 0.3))
        G = Frame.from_array(F.to_array())
        np.testing.assert_array_equal(G.t, F.t)
        np.testing.assert_array_equal(G.q, F.q)

    def test_invalid_quaternion_rejected(self):
        """Test that a non-unit quaternion fails at construction."""
        with pytest.raises(InvalidFrameError):
            Frame(t=np.zeros(3), q=np.array([1.0, 1.0, 0.0, 0.0]))

    def test_wrong_size_rejected(self):
        with pytest.raises(ShapeMismatchError):
            Frame.from_array(np.zeros(6))

    def test_functions_accept_frame_instances(self):
        """Test that Frame and 7-array inputs are interchangeable."""
        arr = make_frame([1.0, -1.0, 0.5], [1, 0, 0], 0.4)
        p = np.array([0.2, 0.3, 0.4])
        np.testing.assert_array_equal(
            point_from_frame(Frame.from_array(arr), p), point_from_frame(arr, p)
        )
        np.testing.assert_array_equal(as_frame_array(Frame.from_array(arr)), arr)


class TestCompose:
    """Test suite for compose_frames."""

    def test_compose_identity(self):
        """Test identity ⊕ F = F ⊕ identity = F."""
        F = make_frame([1.0, 2.0, 3.0], [0, 1, 0], 0.5)
        np.testing.assert_allclose(compose_frames(IDENTITY, F), F, atol=1e-12)
        np.testing.assert_allclose(compose_frames(F, IDENTITY), F, atol=1e-12)

    def test_compose_rotation_then_translation(self):
        """Test 90° yaw then 1m forward ends at (0, 1, 0)."""
        G = make_frame([0.0, 0.0, 0.0], [0, 0, 1], np.pi / 2)
        L = make_frame([1.0, 0.0, 0.0], [0, 0, 1], 0.0)
        F = compose_frames(G, L)
        np.testing.assert_allclose(F[:3], [0.0, 1.0, 0.0], atol=1e-12)

    def test_compose_matches_point_chain(self):
        """Test (G ⊕ L) applied to p == G applied to (L applied to p)."""
        rng = np.random.default_rng(5)
        for _ in range(20):
            G = np.concatenate([rng.normal(size=3), random_unit_quaternion(rng)])
            L = np.concatenate([rng.normal(size=3), random_unit_quaternion(rng)])
            p = rng.normal(size=3)
            np.testing.assert_allclose(
                point_from_frame(compose_frames(G, L), p),
                point_from_frame(G, point_from_frame(L, p)),
                atol=1e-12,
            )

    def test_compose_with_inverse_is_identity(self):
        """Test F ⊕ F⁻¹ = identity (up to quaternion sign)."""
        F = make_frame([1.0, -2.0, 0.5], [1, 1, 1], 1.2)
        result = compose_frames(F, invert_frame(F))
        np.testing.assert_allclose(result[:3], 0.0, atol=1e-12)
        np.testing.assert_allclose(np.abs(result[3]), 1.0, atol=1e-12)
        np.testing.assert_allclose(result[4:], 0.0, atol=1e-12)


class TestPointTransforms:
    """Test suite for point and vector transforms."""

    def test_point_round_trip(self):
        """Test point_to_frame inverts point_from_frame."""
        F = make_frame([3.0, 0.0, -1.0], [0, 1, 1], -0.8)
        p = np.array([1.0, 2.0, 3.0])
        np.testing.assert_allclose(point_to_frame(F, point_from_frame(F, p)), p, atol=1e-12)

    def test_point_translation_only(self):
        F = make_frame([10.0, 5.0, 0.0], [0, 0, 1], 0.0)
        np.testing.assert_allclose(point_from_frame(F, [1.0, 0.0, 0.0]), [11.0, 5.0, 0.0])

    def test_vector_ignores_translation(self):
        """Test vector transforms only rotate."""
        F = make_frame([10.0, 5.0, 0.0], [0, 0, 1], np.pi / 2)
        np.testing.assert_allclose(vector_from_frame(F, [1.0, 0.0, 0.0]), [0.0, 1.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(vector_to_frame(F, [0.0, 1.0, 0.0]), [1.0, 0.0, 0.0], atol=1e-12)

    def test_inverse_frame_maps_back(self):
        """Test point_from_frame(F⁻¹, p) == point_to_frame(F, p)."""
        F = make_frame([0.5, 0.5, 2.0], [1, 0, 1], 2.1)
        p = np.array([-1.0, 4.0, 0.3])
        np.testing.assert_allclose(
            point_from_frame(invert_frame(F), p), point_to_frame(F, p), atol=1e-12
        )

    def test_wrong_point_shape_rejected(self):
        with pytest.raises(ShapeMismatchError):
            point_to_frame(IDENTITY, np.zeros(2))
