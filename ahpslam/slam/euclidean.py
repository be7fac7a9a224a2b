"""Euclidean point landmark transforms.

A Euclidean landmark is the 3-vector p of its position in the global
frame. It offers the same operations as the AHP parametrization, using
rigid transforms only (there is no inverse-depth component):

    - from_frame / to_frame: p = t + R(q) @ p_f,  p_f = R(q).T @ (p - t)
    - to_euclidean: identity
    - to_bearing_only_frame: v = R(q).T @ (p - t), inv_dist = 1 / |p - t|
    - from_bearing_only_frame: p = t + R(q) @ v / (rho * |v|)
"""

import warnings

import numpy as np

from ahpslam.coords.frames import (
    FRAME_SIZE,
    point_from_frame,
    point_from_frame_jac,
    point_to_frame,
    point_to_frame_jac,
    split_frame,
)
from ahpslam.coords.quaternions import rotate, rotate_jac
from ahpslam.errors import SingularDepthError
from ahpslam.utils.geometry import EPSILON_DIRECTION, EPSILON_RANGE, as_vector


SIZE = 3


def from_frame(F, p_f):
    """Express a point given in frame F in the global frame."""
    return point_from_frame(F, p_f)


def from_frame_jac(F, p_f):
    """From-frame transform, returns (p, P_f 3x7, P_pf 3x3)."""
    return point_from_frame_jac(F, p_f)


def to_frame(F, p):
    """Express a global point in frame F."""
    return point_to_frame(F, p)


def to_frame_jac(F, p):
    """To-frame transform, returns (p_f, PF_f 3x7, PF_p 3x3)."""
    return point_to_frame_jac(F, p)


def to_euclidean(p):
    return as_vector(p, SIZE, "p")


def to_euclidean_jac(p):
    return as_vector(p, SIZE, "p"), np.eye(SIZE)


def _inverse_distance(w):
    dist = np.linalg.norm(w)
    if dist < EPSILON_RANGE:
        warnings.warn(
            f"Sensor at landmark position (|w| = {dist:.3e} < {EPSILON_RANGE}). "
            "Inverse distance is infinite; setting its Jacobian to zero.",
            RuntimeWarning,
        )
        return np.inf
    return 1.0 / dist


def to_bearing_only_frame(s, p, return_inv_dist: bool = False):
    """
    Bring a Euclidean landmark into a bearing-only sensor frame.

    Args:
        s: Sensor frame [t, q].
        p: Landmark position in the global frame.
        return_inv_dist: Also return 1 / |p - t|.

    Returns:
        v of shape (3,), or the tuple (v, inv_dist).
    """
    t_s, _ = split_frame(s)
    p = as_vector(p, SIZE, "p")
    v = point_to_frame(s, p)
    if return_inv_dist:
        return v, _inverse_distance(p - t_s)
    return v


def to_bearing_only_frame_jac(s, p, return_inv_dist: bool = False):
    """
    Bring a Euclidean landmark into a bearing-only sensor frame, with Jacobians.

    Returns:
        (v, V_s 3x7, V_p 3x3), or (v, inv_dist, V_s 4x7, V_p 4x3) where the
        last row holds the Jacobian of inv_dist.
    """
    t_s, _ = split_frame(s)
    p = as_vector(p, SIZE, "p")
    v, PF_s, PF_p = point_to_frame_jac(s, p)

    if not return_inv_dist:
        return v, PF_s, PF_p

    w = p - t_s
    inv_dist = _inverse_distance(w)

    V_s = np.zeros((4, FRAME_SIZE))
    V_s[:3, :] = PF_s
    V_p = np.zeros((4, SIZE))
    V_p[:3, :] = PF_p

    if np.isfinite(inv_dist):
        D_w = -w / np.linalg.norm(w) ** 3
        V_s[3, :3] = -D_w
        V_p[3, :] = D_w

    return v, inv_dist, V_s, V_p


def _check_retro_projection(v, rho):
    norm_v = np.linalg.norm(v)
    if norm_v < EPSILON_DIRECTION:
        raise ValueError("Retro-projected direction v must be nonzero")
    if rho == 0.0:
        raise SingularDepthError(
            "A Euclidean point cannot be placed at infinite distance (rho == 0)"
        )
    if not rho > 0.0:
        raise ValueError(f"Inverse distance must be > 0, got {rho}")
    return norm_v


def from_bearing_only_frame(s, v, rho):
    """
    Build a Euclidean landmark from a retro-projected direction and an
    inverse distance.

    Raises:
        SingularDepthError: If rho == 0.
        ValueError: If v is zero or rho is negative.
    """
    t_s, q_s = split_frame(s)
    v = as_vector(v, 3, "v")
    norm_v = _check_retro_projection(v, rho)
    return t_s + rotate(q_s, v) / (rho * norm_v)


def from_bearing_only_frame_jac(s, v, rho):
    """
    Euclidean landmark from bearing-only retro-projection, with Jacobians.

    Returns:
        Tuple (p, P_s 3x7, P_v 3x3, P_rho 3x1).
    """
    t_s, q_s = split_frame(s)
    v = as_vector(v, 3, "v")
    norm_v = _check_retro_projection(v, rho)
    Rv, RV_q, R = rotate_jac(q_s, v)
    scale = 1.0 / (rho * norm_v)

    P_s = np.zeros((SIZE, FRAME_SIZE))
    P_s[:, :3] = np.eye(3)
    P_s[:, 3:] = RV_q * scale

    P_v = R @ (np.eye(3) - np.outer(v, v) / norm_v**2) * scale
    P_rho = (-Rv / (rho * rho * norm_v)).reshape(SIZE, 1)

    return t_s + Rv / (rho * norm_v), P_s, P_v, P_rho
