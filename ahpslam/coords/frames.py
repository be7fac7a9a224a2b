"""Rigid 3D frames: composition, inversion and point/vector transforms.

A frame F = [t, q] is a 7-vector holding the position t of the frame
origin and the unit quaternion q ([qw, qx, qy, qz]) of its orientation,
both expressed in the parent frame. Points transform as

    p_parent = t + R(q) @ p_local

Key functions (each with a *_jac variant returning Jacobians):
    - compose_frames: frame-of-frame, F = G ⊕ L
    - invert_frame: F⁻¹ such that F ⊕ F⁻¹ = identity
    - point_from_frame / point_to_frame: rigid point transforms
    - vector_from_frame / vector_to_frame: rotation-only transforms

Jacobians wrt a frame are taken wrt all 7 entries [t, q].
"""

from dataclasses import dataclass, field
from typing import Tuple, Union

import numpy as np
from numpy.typing import NDArray

from ahpslam.coords.quaternions import (
    CONJUGATE_JACOBIAN,
    check_unit_quaternion,
    quat_conjugate,
    quat_left_matrix,
    quat_multiply,
    quat_right_matrix,
    rotate,
    rotate_inverse,
    rotate_inverse_jac,
    rotate_jac,
)
from ahpslam.utils.geometry import as_vector


FRAME_SIZE = 7


@dataclass
class Frame:
    """
    Rigid pose of a frame in its parent frame.

    Attributes:
        t: Origin position, shape (3,).
        q: Orientation as unit quaternion [qw, qx, qy, qz], shape (4,).

    Examples:
        >>> F = Frame(t=np.array([1.0, 0.0, 0.0]), q=np.array([1.0, 0.0, 0.0, 0.0]))
        >>> F.to_array()
        array([1., 0., 0., 1., 0., 0., 0.])
        >>> Frame.identity().to_array()
        array([0., 0., 0., 1., 0., 0., 0.])
    """

    t: np.ndarray = field(default_factory=lambda: np.zeros(3))
    q: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))

    def __post_init__(self) -> None:
        """Validate shapes and unit quaternion."""
        self.t = as_vector(self.t, 3, "t")
        self.q = check_unit_quaternion(self.q)

    def to_array(self) -> np.ndarray:
        """Return the frame as a 7-vector [t, q]."""
        return np.concatenate([self.t, self.q])

    @classmethod
    def from_array(cls, arr) -> "Frame":
        """Create a Frame from a 7-vector [t, q]."""
        arr = as_vector(arr, FRAME_SIZE, "frame")
        return cls(t=arr[:3], q=arr[3:])

    @classmethod
    def identity(cls) -> "Frame":
        """Frame at the origin with no rotation."""
        return cls()


FrameLike = Union[Frame, np.ndarray]


def split_frame(F: FrameLike) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Validate a frame and return its (t, q) parts.

    Args:
        F: Frame instance or 7-vector [t, q].

    Returns:
        Tuple (t, q) of new float64 arrays.

    Raises:
        ShapeMismatchError: If F is not a 7-vector.
        InvalidFrameError: If the quaternion is not unit norm.
    """
    if isinstance(F, Frame):
        F = F.to_array()
    F = as_vector(F, FRAME_SIZE, "frame")
    return F[:3], check_unit_quaternion(F[3:])


def as_frame_array(F: FrameLike) -> NDArray[np.float64]:
    """Validate a frame and return it as a 7-vector."""
    t, q = split_frame(F)
    return np.concatenate([t, q])


def compose_frames(G: FrameLike, L: FrameLike) -> NDArray[np.float64]:
    """
    Compose two frames: F = G ⊕ L.

    L is expressed in G, G in the global frame; the result is L
    expressed in the global frame:
        t = tG + R(qG) @ tL
        q = qG ⊗ qL

    Args:
        G: Parent frame.
        L: Local frame expressed in G.

    Returns:
        Composed frame as 7-vector.

    Examples:
        >>> G = np.array([1.0, 0, 0, 1, 0, 0, 0])
        >>> L = np.array([2.0, 0, 0, 1, 0, 0, 0])
        >>> compose_frames(G, L)[:3]
        array([3., 0., 0.])
    """
    tG, qG = split_frame(G)
    tL, qL = split_frame(L)
    return np.concatenate([tG + rotate(qG, tL), quat_multiply(qG, qL)])


def compose_frames_jac(
    G: FrameLike, L: FrameLike
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """
    Compose two frames, with Jacobians.

    Returns:
        Tuple (F, F_g, F_l):
            - F: composed frame, shape (7,)
            - F_g: Jacobian wrt G, shape (7, 7)
            - F_l: Jacobian wrt L, shape (7, 7)
    """
    tG, qG = split_frame(G)
    tL, qL = split_frame(L)

    t_rot, T_qg, T_tl = rotate_jac(qG, tL)
    q = quat_left_matrix(qG) @ qL

    F_g = np.zeros((FRAME_SIZE, FRAME_SIZE))
    F_g[:3, :3] = np.eye(3)
    F_g[:3, 3:] = T_qg
    F_g[3:, 3:] = quat_right_matrix(qL)

    F_l = np.zeros((FRAME_SIZE, FRAME_SIZE))
    F_l[:3, :3] = T_tl
    F_l[3:, 3:] = quat_left_matrix(qG)

    return np.concatenate([tG + t_rot, q]), F_g, F_l


def invert_frame(F: FrameLike) -> NDArray[np.float64]:
    """
    Invert a frame: F⁻¹ = [-R(q).T @ t, conj(q)].

    Examples:
        >>> F = np.array([1.0, 2.0, 3.0, 1, 0, 0, 0])
        >>> invert_frame(F)[:3]
        array([-1., -2., -3.])
    """
    t, q = split_frame(F)
    return np.concatenate([-rotate_inverse(q, t), quat_conjugate(q)])


def invert_frame_jac(
    F: FrameLike,
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Invert a frame, with Jacobian.

    Returns:
        Tuple (Fi, FI_f) with FI_f of shape (7, 7).
    """
    t, q = split_frame(F)
    ti, TI_q, TI_t = rotate_inverse_jac(q, t)

    FI_f = np.zeros((FRAME_SIZE, FRAME_SIZE))
    FI_f[:3, :3] = -TI_t
    FI_f[:3, 3:] = -TI_q
    FI_f[3:, 3:] = CONJUGATE_JACOBIAN

    return np.concatenate([-ti, quat_conjugate(q)]), FI_f


def point_from_frame(F: FrameLike, p_local) -> NDArray[np.float64]:
    """Express a point given in F in the parent frame: t + R(q) @ p."""
    t, q = split_frame(F)
    return t + rotate(q, p_local)


def point_from_frame_jac(
    F: FrameLike, p_local
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """
    Point from frame, with Jacobians.

    Returns:
        Tuple (p, P_f, P_pl) with P_f of shape (3, 7) and P_pl of shape (3, 3).
    """
    t, q = split_frame(F)
    p_rot, P_q, P_pl = rotate_jac(q, p_local)

    P_f = np.zeros((3, FRAME_SIZE))
    P_f[:, :3] = np.eye(3)
    P_f[:, 3:] = P_q

    return t + p_rot, P_f, P_pl


def point_to_frame(F: FrameLike, p) -> NDArray[np.float64]:
    """Express a parent-frame point in F: R(q).T @ (p - t)."""
    t, q = split_frame(F)
    p = as_vector(p, 3, "p")
    return rotate_inverse(q, p - t)


def point_to_frame_jac(
    F: FrameLike, p
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """
    Point to frame, with Jacobians.

    Returns:
        Tuple (p_local, PL_f, PL_p) with PL_f of shape (3, 7) and PL_p of
        shape (3, 3).
    """
    t, q = split_frame(F)
    p = as_vector(p, 3, "p")
    p_local, PL_q, Rt = rotate_inverse_jac(q, p - t)

    PL_f = np.zeros((3, FRAME_SIZE))
    PL_f[:, :3] = -Rt
    PL_f[:, 3:] = PL_q

    return p_local, PL_f, Rt


def vector_from_frame(F: FrameLike, v_local) -> NDArray[np.float64]:
    """Rotate a direction given in F into the parent frame."""
    _, q = split_frame(F)
    return rotate(q, v_local)


def vector_from_frame_jac(
    F: FrameLike, v_local
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Vector from frame with Jacobians (3x7 wrt F, 3x3 wrt v)."""
    _, q = split_frame(F)
    v, V_q, V_vl = rotate_jac(q, v_local)

    V_f = np.zeros((3, FRAME_SIZE))
    V_f[:, 3:] = V_q

    return v, V_f, V_vl


def vector_to_frame(F: FrameLike, v) -> NDArray[np.float64]:
    """Rotate a parent-frame direction into F."""
    _, q = split_frame(F)
    return rotate_inverse(q, v)


def vector_to_frame_jac(
    F: FrameLike, v
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Vector to frame with Jacobians (3x7 wrt F, 3x3 wrt v)."""
    _, q = split_frame(F)
    v_local, VL_q, VL_v = rotate_inverse_jac(q, v)

    VL_f = np.zeros((3, FRAME_SIZE))
    VL_f[:, 3:] = VL_q

    return v_local, VL_f, VL_v
