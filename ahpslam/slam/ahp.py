"""Anchored Homogeneous Point (AHP) landmark transforms.

An AHP landmark is the 7-vector

    ahp = [p0, m, rho]

where p0 (3) is the anchor, the position of the sensor when the landmark
was first observed; m (3) is a direction vector in the global frame
pointing from the anchor to the landmark; and rho (1) is the inverse
distance along m, so that the Euclidean point is

    p = p0 + m / rho

rho == 0 encodes a point at infinity: the direction is known but the
point has no finite Euclidean coordinates. The magnitude of m is free;
normalize() rescales m to unit length without moving the point.

Every transform has a value-only form and a *_jac form returning the
value together with its Jacobians. Both forms evaluate the same formula.

Frames and sensor frames are 7-vectors [t, q] with scalar-first unit
quaternions (see ahpslam.coords.frames).

References:
    J. Solà, T. Vidal-Calleja, J. Civera, J. M. M. Montiel, "Impact of
    landmark parametrization on monocular EKF-SLAM with points and lines",
    International Journal of Computer Vision, 2012.
"""

import warnings
from typing import Tuple, Union

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import block_diag

from ahpslam.coords.frames import (
    FRAME_SIZE,
    FrameLike,
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
    rotate,
    rotate_inverse,
    rotate_inverse_jac,
    rotate_jac,
)
from ahpslam.errors import SingularDepthError
from ahpslam.utils.geometry import EPSILON_DIRECTION, EPSILON_RANGE, as_vector


# State layout
SIZE = 7
P0_SLICE = slice(0, 3)
M_SLICE = slice(3, 6)
RHO_INDEX = 6


def split_ahp(ahp) -> Tuple[NDArray[np.float64], NDArray[np.float64], float]:
    """
    Validate an AHP vector and split it into (p0, m, rho).

    Raises:
        ShapeMismatchError: If ahp is not a 7-vector.
    """
    ahp = as_vector(ahp, SIZE, "ahp")
    return ahp[P0_SLICE], ahp[M_SLICE], float(ahp[RHO_INDEX])


def _block_diag_rotation(R: NDArray[np.float64]) -> NDArray[np.float64]:
    """7x7 Jacobian blockdiag(R, R, 1) shared by from_frame and to_frame."""
    return block_diag(R, R, 1.0)


def from_frame(F: FrameLike, ahp_f) -> NDArray[np.float64]:
    """
    Express an AHP point given in frame F in the global frame.

        p0 = t + R(q) @ p0_f
        m  = R(q) @ m_f
        rho = rho_f

    Args:
        F: Frame [t, q] in which ahp_f is expressed.
        ahp_f: AHP point in F.

    Returns:
        AHP point in the global frame, shape (7,).
    """
    p0_f, m_f, rho_f = split_ahp(ahp_f)
    ahp = np.empty(SIZE)
    ahp[P0_SLICE] = point_from_frame(F, p0_f)
    ahp[M_SLICE] = vector_from_frame(F, m_f)
    ahp[RHO_INDEX] = rho_f
    return ahp


def from_frame_jac(
    F: FrameLike, ahp_f
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """
    From-frame transform, with Jacobians.

    Args:
        F: Frame [t, q] in which ahp_f is expressed.
        ahp_f: AHP point in F.

    Returns:
        Tuple (ahp, AHP_f, AHP_ahpf):
            - ahp: AHP point in the global frame, shape (7,)
            - AHP_f: Jacobian wrt F, shape (7, 7)
            - AHP_ahpf: Jacobian wrt ahp_f, shape (7, 7)
    """
    p0_f, m_f, rho_f = split_ahp(ahp_f)
    p0, P0_f, R = point_from_frame_jac(F, p0_f)
    m, M_f, _ = vector_from_frame_jac(F, m_f)

    ahp = np.empty(SIZE)
    ahp[P0_SLICE] = p0
    ahp[M_SLICE] = m
    ahp[RHO_INDEX] = rho_f

    AHP_f = np.zeros((SIZE, FRAME_SIZE))
    AHP_f[P0_SLICE, :] = P0_f
    AHP_f[M_SLICE, :] = M_f

    return ahp, AHP_f, _block_diag_rotation(R)


def to_frame(F: FrameLike, ahp) -> NDArray[np.float64]:
    """
    Express a global AHP point in frame F. Inverse of from_frame().

        p0_f = R(q).T @ (p0 - t)
        m_f  = R(q).T @ m
        rho_f = rho

    Args:
        F: Frame [t, q] to transform to.
        ahp: AHP point in the global frame.

    Returns:
        AHP point in F, shape (7,).

    Example:
        >>> F = np.array([1.0, 2.0, 3.0, 1.0, 0.0, 0.0, 0.0])
        >>> x = np.array([0.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.5])
        >>> np.allclose(to_frame(F, from_frame(F, x)), x)
        True
    """
    p0, m, rho = split_ahp(ahp)
    ahp_f = np.empty(SIZE)
    ahp_f[P0_SLICE] = point_to_frame(F, p0)
    ahp_f[M_SLICE] = vector_to_frame(F, m)
    ahp_f[RHO_INDEX] = rho
    return ahp_f


def to_frame_jac(
    F: FrameLike, ahp
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """
    To-frame transform, with Jacobians.

    Returns:
        Tuple (ahp_f, AHPF_f, AHPF_ahp):
            - ahp_f: AHP point in F, shape (7,)
            - AHPF_f: Jacobian wrt F, shape (7, 7)
            - AHPF_ahp: Jacobian wrt ahp, shape (7, 7)
    """
    p0, m, rho = split_ahp(ahp)
    p0_f, P0F_f, Rt = point_to_frame_jac(F, p0)
    m_f, MF_f, _ = vector_to_frame_jac(F, m)

    ahp_f = np.empty(SIZE)
    ahp_f[P0_SLICE] = p0_f
    ahp_f[M_SLICE] = m_f
    ahp_f[RHO_INDEX] = rho

    AHPF_f = np.zeros((SIZE, FRAME_SIZE))
    AHPF_f[P0_SLICE, :] = P0F_f
    AHPF_f[M_SLICE, :] = MF_f

    return ahp_f, AHPF_f, _block_diag_rotation(Rt)


def _check_depth(rho: float) -> None:
    if rho == 0.0:
        raise SingularDepthError(
            "Point at infinity (rho == 0) has no Euclidean representation"
        )


def to_euclidean(ahp) -> NDArray[np.float64]:
    """
    Reparametrize an AHP point to Euclidean coordinates, p0 + m / rho.

    Args:
        ahp: AHP point [p0, m, rho].

    Returns:
        Euclidean point, shape (3,).

    Raises:
        SingularDepthError: If rho == 0.

    Example:
        >>> to_euclidean(np.array([0, 0, 0, 0, 0, 1, 0.5]))
        array([0., 0., 2.])
    """
    p0, m, rho = split_ahp(ahp)
    _check_depth(rho)
    return p0 + m / rho


def to_euclidean_jac(ahp) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Reparametrize to Euclidean, with Jacobian.

    The Jacobian is [I, I / rho, -m / rho²].

    Returns:
        Tuple (p, P_ahp) with P_ahp of shape (3, 7).

    Raises:
        SingularDepthError: If rho == 0.
    """
    p0, m, rho = split_ahp(ahp)
    _check_depth(rho)

    P_ahp = np.zeros((3, SIZE))
    P_ahp[:, P0_SLICE] = np.eye(3)
    P_ahp[:, M_SLICE] = np.eye(3) / rho
    P_ahp[:, RHO_INDEX] = -m / (rho * rho)

    return p0 + m / rho, P_ahp


def _sensor_to_landmark(t_s, p0, m, rho):
    """Global-frame vector from the sensor toward the landmark, scaled by rho."""
    return m - (t_s - p0) * rho


def _inverse_distance(rho: float, w: NDArray[np.float64]) -> float:
    dist = np.linalg.norm(w)
    if dist < EPSILON_RANGE:
        warnings.warn(
            f"Sensor at landmark position (|w| = {dist:.3e} < {EPSILON_RANGE}). "
            "Inverse distance is infinite; setting its Jacobian to zero.",
            RuntimeWarning,
        )
        return np.inf
    return rho / dist


def to_bearing_only_frame(
    s: FrameLike, ahp, return_inv_dist: bool = False
) -> Union[NDArray[np.float64], Tuple[NDArray[np.float64], float]]:
    """
    Bring an AHP landmark into a bearing-only sensor frame.

    For a landmark ahp = [p0, m, rho] and sensor frame s = [t, q] this
    computes

        v = R(q).T @ (m - (t - p0) * rho)

    a vector in the sensor frame pointing toward the landmark. Its length
    carries no range information. When requested, the range is returned
    separately as the inverse distance from sensor to landmark:

        inv_dist = rho / |m - (t - p0) * rho|

    Args:
        s: Sensor frame [t, q].
        ahp: AHP landmark in the global frame.
        return_inv_dist: Also return the inverse distance.

    Returns:
        v of shape (3,), or the tuple (v, inv_dist) if return_inv_dist.
    """
    t_s, q_s = split_frame(s)
    p0, m, rho = split_ahp(ahp)

    w = _sensor_to_landmark(t_s, p0, m, rho)
    v = rotate_inverse(q_s, w)

    if return_inv_dist:
        return v, _inverse_distance(rho, w)
    return v


def to_bearing_only_frame_jac(s: FrameLike, ahp, return_inv_dist: bool = False):
    """
    Bring an AHP landmark into a bearing-only sensor frame, with Jacobians.

    Args:
        s: Sensor frame [t, q].
        ahp: AHP landmark in the global frame.
        return_inv_dist: Also return the inverse distance and its Jacobians.

    Returns:
        If return_inv_dist is False, the tuple (v, V_s, V_ahp):
            - v: bearing vector in sensor frame, shape (3,)
            - V_s: Jacobian of v wrt s, shape (3, 7)
            - V_ahp: Jacobian of v wrt ahp, shape (3, 7)
        Otherwise the tuple (v, inv_dist, V_s, V_ahp) where V_s and V_ahp
        have shape (4, 7) and their last row is the Jacobian of inv_dist.

    Notes:
        If the sensor sits on the landmark, inv_dist is inf, its Jacobian
        row is zero and a RuntimeWarning is emitted.
    """
    t_s, q_s = split_frame(s)
    p0, m, rho = split_ahp(ahp)

    w = _sensor_to_landmark(t_s, p0, m, rho)
    v, V_q, Rt = rotate_inverse_jac(q_s, w)

    # w = m - (t - p0) * rho
    W_t = -rho * np.eye(3)
    W_p0 = rho * np.eye(3)
    W_rho = p0 - t_s

    rows = 4 if return_inv_dist else 3
    V_s = np.zeros((rows, FRAME_SIZE))
    V_s[:3, :3] = Rt @ W_t
    V_s[:3, 3:] = V_q

    V_ahp = np.zeros((rows, SIZE))
    V_ahp[:3, P0_SLICE] = Rt @ W_p0
    V_ahp[:3, M_SLICE] = Rt
    V_ahp[:3, RHO_INDEX] = Rt @ W_rho

    if not return_inv_dist:
        return v, V_s, V_ahp

    inv_dist = _inverse_distance(rho, w)
    if np.isfinite(inv_dist):
        dist = np.linalg.norm(w)
        # d(rho / |w|)/dw
        D_w = -rho * w / dist**3
        V_s[3, :3] = D_w @ W_t
        V_ahp[3, P0_SLICE] = D_w @ W_p0
        V_ahp[3, M_SLICE] = D_w
        V_ahp[3, RHO_INDEX] = 1.0 / dist + D_w @ W_rho

    return v, inv_dist, V_s, V_ahp


def _check_retro_projection(v: NDArray[np.float64], rho: float) -> float:
    norm_v = np.linalg.norm(v)
    if norm_v < EPSILON_DIRECTION:
        raise ValueError("Retro-projected direction v must be nonzero")
    if not rho >= 0.0:
        raise ValueError(f"Inverse-distance prior must be >= 0, got {rho}")
    return norm_v


def from_bearing_only_frame(s: FrameLike, v, rho_prior: float) -> NDArray[np.float64]:
    """
    Build an AHP landmark from a bearing-only retro-projection.

    Inverse of to_bearing_only_frame(). The landmark is anchored at the
    sensor position, points along the retro-projected direction v, and
    takes the inverse-distance prior:

        ahp = [t ; R(q) @ v ; rho_prior * |v|]

    Scaling by |v| makes rho_prior exactly the inverse distance along the
    ray regardless of the magnitude of v.

    Args:
        s: Sensor frame [t, q].
        v: Retro-projected direction in the sensor frame (nonzero).
        rho_prior: Inverse-distance prior (>= 0).

    Returns:
        AHP landmark, shape (7,).

    Raises:
        ValueError: If v is zero or rho_prior is negative.

    Example:
        >>> s = np.array([0, 0, 0, 1.0, 0, 0, 0])
        >>> from_bearing_only_frame(s, np.array([0, 0, 1.0]), 0.5)
        array([0. , 0. , 0. , 0. , 0. , 1. , 0.5])
    """
    t_s, q_s = split_frame(s)
    v = as_vector(v, 3, "v")
    norm_v = _check_retro_projection(v, rho_prior)

    ahp = np.empty(SIZE)
    ahp[P0_SLICE] = t_s
    ahp[M_SLICE] = rotate(q_s, v)
    ahp[RHO_INDEX] = rho_prior * norm_v
    return ahp


def from_bearing_only_frame_jac(s: FrameLike, v, rho_prior: float):
    """
    Build an AHP landmark from a bearing-only retro-projection, with Jacobians.

    Returns:
        Tuple (ahp, AHP_s, AHP_v, AHP_rho):
            - ahp: AHP landmark, shape (7,)
            - AHP_s: Jacobian wrt s, shape (7, 7)
            - AHP_v: Jacobian wrt v, shape (7, 3)
            - AHP_rho: Jacobian wrt rho_prior, shape (7, 1)
    """
    t_s, q_s = split_frame(s)
    v = as_vector(v, 3, "v")
    norm_v = _check_retro_projection(v, rho_prior)
    m, M_q, R = rotate_jac(q_s, v)

    ahp = np.empty(SIZE)
    ahp[P0_SLICE] = t_s
    ahp[M_SLICE] = m
    ahp[RHO_INDEX] = rho_prior * norm_v

    AHP_s = np.zeros((SIZE, FRAME_SIZE))
    AHP_s[P0_SLICE, :3] = np.eye(3)
    AHP_s[M_SLICE, 3:] = M_q

    AHP_v = np.zeros((SIZE, 3))
    AHP_v[M_SLICE, :] = R
    AHP_v[RHO_INDEX, :] = rho_prior * v / norm_v

    AHP_rho = np.zeros((SIZE, 1))
    AHP_rho[RHO_INDEX, 0] = norm_v

    return ahp, AHP_s, AHP_v, AHP_rho


def normalize(ahp) -> NDArray[np.float64]:
    """
    Rescale an AHP point so that |m| == 1.

        [p0 ; m / |m| ; rho / |m|]

    The Euclidean point p0 + m / rho is unchanged.

    Raises:
        ValueError: If m is zero.
    """
    p0, m, rho = split_ahp(ahp)
    norm_m = np.linalg.norm(m)
    if norm_m < EPSILON_DIRECTION:
        raise ValueError("Cannot normalize an AHP point with zero direction m")
    return np.concatenate([p0, m / norm_m, [rho / norm_m]])


def normalize_jac(ahp) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Normalize with Jacobian (7x7)."""
    ahp_n = normalize(ahp)
    _, m, rho = split_ahp(ahp)
    norm_m = np.linalg.norm(m)

    AHPN_ahp = np.zeros((SIZE, SIZE))
    AHPN_ahp[P0_SLICE, P0_SLICE] = np.eye(3)
    AHPN_ahp[M_SLICE, M_SLICE] = (np.eye(3) - np.outer(m, m) / norm_m**2) / norm_m
    AHPN_ahp[RHO_INDEX, M_SLICE] = -rho * m / norm_m**3
    AHPN_ahp[RHO_INDEX, RHO_INDEX] = 1.0 / norm_m

    return ahp_n, AHPN_ahp


def from_euclidean(p, anchor) -> NDArray[np.float64]:
    """
    Build a normalized AHP point for Euclidean point p seen from anchor.

    Returns:
        [anchor ; (p - anchor) / d ; 1 / d] with d = |p - anchor|.

    Raises:
        ValueError: If p coincides with the anchor.
    """
    p = as_vector(p, 3, "p")
    anchor = as_vector(anchor, 3, "anchor")
    d = p - anchor
    dist = np.linalg.norm(d)
    if dist < EPSILON_RANGE:
        raise ValueError("Point coincides with the anchor; direction undefined")
    return np.concatenate([anchor, d / dist, [1.0 / dist]])
