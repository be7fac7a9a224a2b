"""Frames and rotations for landmark transforms.

This module provides the rotation and rigid-frame primitives that the
landmark parametrizations are built on:
- Quaternion rotation, conjugation and product, with Jacobians
- Frame composition, inversion and point/vector transforms, with Jacobians

Conventions:
- Quaternions are scalar first: [qw, qx, qy, qz]
- Frames are 7-vectors [t, q] with v_parent = t + R(q) @ v_local
"""

from ahpslam.coords.frames import (
    FRAME_SIZE,
    Frame,
    as_frame_array,
    compose_frames,
    compose_frames_jac,
    invert_frame,
    invert_frame_jac,
    point_from_frame,
    point_from_frame_jac,
    point_to_frame,
    point_to_frame_jac,
    split_frame,
    vector_from_frame,
    vector_from_frame_jac,
    vector_to_frame,
    vector_to_frame_jac,
)
from ahpslam.coords.quaternions import (
    QUAT_NORM_TOL,
    check_unit_quaternion,
    quat_conjugate,
    quat_conjugate_jac,
    quat_from_axis_angle,
    quat_multiply,
    quat_multiply_jac,
    quat_to_rotation_matrix,
    random_unit_quaternion,
    rotate,
    rotate_inverse,
    rotate_inverse_jac,
    rotate_jac,
)

__all__ = [
    # Frames
    "FRAME_SIZE",
    "Frame",
    "as_frame_array",
    "split_frame",
    "compose_frames",
    "compose_frames_jac",
    "invert_frame",
    "invert_frame_jac",
    "point_from_frame",
    "point_from_frame_jac",
    "point_to_frame",
    "point_to_frame_jac",
    "vector_from_frame",
    "vector_from_frame_jac",
    "vector_to_frame",
    "vector_to_frame_jac",
    # Quaternions
    "QUAT_NORM_TOL",
    "check_unit_quaternion",
    "quat_to_rotation_matrix",
    "quat_conjugate",
    "quat_conjugate_jac",
    "quat_multiply",
    "quat_multiply_jac",
    "quat_from_axis_angle",
    "random_unit_quaternion",
    "rotate",
    "rotate_jac",
    "rotate_inverse",
    "rotate_inverse_jac",
]
