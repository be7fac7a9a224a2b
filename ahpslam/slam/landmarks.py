"""Parametrized landmarks stored in a LandmarkMap.

A landmark is a tagged variant: its LandmarkType selects a LandmarkModel,
the record of transform functions of that parametrization, from the
LANDMARK_MODELS dispatch table. Supporting a new parametrization means
writing its transform module and adding one entry to the table.

    - Euclidean point: 3 scalars [p]
    - Anchored homogeneous point (AHP): 7 scalars [p0, m, rho]

A Landmark never owns its state. It holds the offset of its block in the
map and reads and writes the map's storage through a view; the map owns
the buffer and outlives its landmarks.

Lifecycle, driven by the filter using the functions below:
    Initializing: created by initialize_ahp_landmark() from a bearing
    Converged: depth well observed, reparametrize_to_euclidean() applies
    Pruned: Landmark.release() returns the block to the map

The caller serializes writes to the same landmark block; nothing here
takes locks.
"""

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional

import numpy as np

from ahpslam.errors import ShapeMismatchError
from ahpslam.slam import ahp, euclidean
from ahpslam.slam.map import LandmarkMap
from ahpslam.slam.types import AHPInitConfig
from ahpslam.utils.geometry import as_vector


class LandmarkType(Enum):
    """Landmark parametrizations.

    Attributes:
        EUCLIDEAN: 3D point [x, y, z].
        AHP: Anchored homogeneous point [p0, m, rho].
    """

    EUCLIDEAN = "euclidean"
    AHP = "ahp"


class LandmarkModel(NamedTuple):
    """Transform functions of one landmark parametrization."""

    size: int
    from_frame: Callable
    from_frame_jac: Callable
    to_frame: Callable
    to_frame_jac: Callable
    to_euclidean: Callable
    to_euclidean_jac: Callable
    to_bearing_only_frame: Callable
    to_bearing_only_frame_jac: Callable
    from_bearing_only_frame: Callable
    from_bearing_only_frame_jac: Callable


def _model_from_module(module) -> LandmarkModel:
    return LandmarkModel(
        size=module.SIZE,
        from_frame=module.from_frame,
        from_frame_jac=module.from_frame_jac,
        to_frame=module.to_frame,
        to_frame_jac=module.to_frame_jac,
        to_euclidean=module.to_euclidean,
        to_euclidean_jac=module.to_euclidean_jac,
        to_bearing_only_frame=module.to_bearing_only_frame,
        to_bearing_only_frame_jac=module.to_bearing_only_frame_jac,
        from_bearing_only_frame=module.from_bearing_only_frame,
        from_bearing_only_frame_jac=module.from_bearing_only_frame_jac,
    )


LANDMARK_MODELS: Dict[LandmarkType, LandmarkModel] = {
    LandmarkType.EUCLIDEAN: _model_from_module(euclidean),
    LandmarkType.AHP: _model_from_module(ahp),
}

_landmark_ids = itertools.count()


def landmark_size(kind: LandmarkType) -> int:
    """Number of state scalars of a parametrization (7 for AHP, 3 for Euclidean)."""
    return LANDMARK_MODELS[kind].size


@dataclass
class Landmark:
    """
    Handle to a landmark state block inside a LandmarkMap.

    Attributes:
        lmk_map: Map owning the state storage.
        offset: Index of the first state scalar in lmk_map.x.
        kind: Parametrization of the block.
        landmark_id: Identifier kept across reparametrization.

    Examples:
        >>> lmk_map = LandmarkMap(capacity=10)
        >>> lmk = Landmark.create(lmk_map, LandmarkType.AHP)
        >>> lmk.size()
        7
        >>> lmk.write_state([0, 0, 0, 0, 0, 1, 0.5])
        >>> lmk.to_euclidean()
        array([0., 0., 2.])
    """

    lmk_map: LandmarkMap
    offset: int
    kind: LandmarkType
    landmark_id: int = -1

    @classmethod
    def create(
        cls,
        lmk_map: LandmarkMap,
        kind: LandmarkType,
        landmark_id: Optional[int] = None,
    ) -> "Landmark":
        """Allocate a zeroed block of the right size in the map."""
        offset = lmk_map.allocate(landmark_size(kind))
        if landmark_id is None:
            landmark_id = next(_landmark_ids)
        return cls(lmk_map=lmk_map, offset=offset, kind=kind, landmark_id=landmark_id)

    @property
    def model(self) -> LandmarkModel:
        return LANDMARK_MODELS[self.kind]

    def size(self) -> int:
        return self.model.size

    @property
    def indices(self) -> np.ndarray:
        """Indices of this landmark's scalars in the map state."""
        return np.arange(self.offset, self.offset + self.size())

    @property
    def state(self) -> np.ndarray:
        """Writable view of the landmark state in the map."""
        return self.lmk_map.block(self.offset, self.size())

    @property
    def covariance(self) -> np.ndarray:
        """Copy of the landmark's marginal covariance block."""
        idx = self.indices
        return self.lmk_map.P[np.ix_(idx, idx)]

    def write_state(self, values) -> None:
        """
        Overwrite the landmark state.

        Raises:
            ShapeMismatchError: If values do not have size() elements.
        """
        self.state[:] = as_vector(values, self.size(), f"{self.kind.value} state")

    def to_euclidean(self) -> np.ndarray:
        return self.model.to_euclidean(self.state)

    def to_euclidean_jac(self):
        return self.model.to_euclidean_jac(self.state)

    def from_frame(self, F) -> np.ndarray:
        """Interpret the state as expressed in F and return it in the global frame."""
        return self.model.from_frame(F, self.state)

    def from_frame_jac(self, F):
        return self.model.from_frame_jac(F, self.state)

    def to_frame(self, F) -> np.ndarray:
        """Return the state expressed in frame F."""
        return self.model.to_frame(F, self.state)

    def to_frame_jac(self, F):
        return self.model.to_frame_jac(F, self.state)

    def to_bearing_only_frame(self, s, return_inv_dist: bool = False):
        return self.model.to_bearing_only_frame(s, self.state, return_inv_dist)

    def to_bearing_only_frame_jac(self, s, return_inv_dist: bool = False):
        return self.model.to_bearing_only_frame_jac(s, self.state, return_inv_dist)

    def release(self) -> None:
        """Return the landmark block to the map."""
        self.lmk_map.release(self.offset, self.size())

    def __repr__(self) -> str:
        return (
            f"Landmark(id={self.landmark_id}, kind={self.kind.value}, "
            f"offset={self.offset})"
        )


def _other_indices(lmk_map: LandmarkMap, *exclude: np.ndarray) -> np.ndarray:
    used = lmk_map.used_indices()
    for idx in exclude:
        used = np.setdiff1d(used, idx)
    return used


def initialize_ahp_landmark(
    lmk_map: LandmarkMap,
    s,
    v,
    config: AHPInitConfig = AHPInitConfig(),
    sensor_cov: Optional[np.ndarray] = None,
    sensor_indices: Optional[np.ndarray] = None,
    landmark_id: Optional[int] = None,
) -> Landmark:
    """
    Create an AHP landmark in the map from one bearing-only observation.

    The state is ahp.from_bearing_only_frame(s, v, config.rho_prior). The
    landmark covariance is the propagation of the sensor frame, bearing
    and inverse-depth prior uncertainties through the Jacobians:

        P_ll = AHP_s P_ss AHP_sᵀ + AHP_v Σ_v AHP_vᵀ + AHP_rho σ_rho² AHP_rhoᵀ

    When the sensor frame is itself part of the map state
    (sensor_indices), P_ss is read from the map and the cross-covariances
    with every other allocated state are filled in as AHP_s P_sx.

    Args:
        lmk_map: Map receiving the landmark.
        s: Sensor frame [t, q] at the observation.
        v: Retro-projected direction in the sensor frame.
        config: Inverse-depth prior and bearing noise.
        sensor_cov: Optional 7x7 covariance of s (s not in the map).
        sensor_indices: Optional 7 map indices holding s.
        landmark_id: Optional identifier; a fresh one is drawn if None.

    Returns:
        The new Landmark.

    Raises:
        ValueError: If both sensor_cov and sensor_indices are given, or if
            sensor_indices are not allocated in the map.
        ShapeMismatchError: If sensor_cov or sensor_indices has a wrong shape,
            or sensor_indices fall outside the map.
        MapFullError: If the map has no free 7-block.
    """
    if sensor_cov is not None and sensor_indices is not None:
        raise ValueError("Give either sensor_cov or sensor_indices, not both")

    x, AHP_s, AHP_v, AHP_rho = ahp.from_bearing_only_frame_jac(
        s, v, config.rho_prior
    )

    P_ll = (
        AHP_v @ config.bearing_covariance @ AHP_v.T
        + config.rho_variance * AHP_rho @ AHP_rho.T
    )

    if sensor_cov is not None:
        sensor_cov = np.asarray(sensor_cov, dtype=np.float64)
        if sensor_cov.shape != (7, 7):
            raise ShapeMismatchError(
                f"sensor_cov must have shape (7, 7), got {sensor_cov.shape}"
            )
        P_ll += AHP_s @ sensor_cov @ AHP_s.T

    if sensor_indices is not None:
        sensor_indices = np.asarray(sensor_indices, dtype=int)
        if sensor_indices.shape != (7,):
            raise ShapeMismatchError(
                f"sensor_indices must have shape (7,), got {sensor_indices.shape}"
            )
        if np.any(sensor_indices < 0) or np.any(sensor_indices >= lmk_map.capacity):
            raise ShapeMismatchError(
                f"sensor_indices {sensor_indices} outside map of "
                f"capacity {lmk_map.capacity}"
            )
        if not np.all(np.isin(sensor_indices, lmk_map.used_indices())):
            raise ValueError(
                f"sensor_indices {sensor_indices} are not allocated in the map"
            )

    lmk =Landmark.create(lmk_map, LandmarkType.AHP, landmark_id)
    lmk.write_state(x)
    idx = lmk.indices
    P = lmk_map.P

    if sensor_indices is not None:
        others = _other_indices(lmk_map, idx)
        P_ls = AHP_s @ P[np.ix_(sensor_indices, others)]
        P[np.ix_(idx, others)] = P_ls
        P[np.ix_(others, idx)] = P_ls.T
        P_ll += AHP_s @ P[np.ix_(sensor_indices, sensor_indices)] @ AHP_s.T

    P[np.ix_(idx, idx)] = 0.5 * (P_ll + P_ll.T)

    return lmk


def reparametrize_to_euclidean(landmark: Landmark) -> Landmark:
    """
    Convert an AHP landmark of the map to a Euclidean landmark.

    Computes p = p0 + m / rho and J = dp/dahp, moves the landmark to a new
    3-block, and transforms the covariance:

        P_pp = J P_ll Jᵀ,   P_px = J P_lx

    The old 7-block is then released. Deciding when the depth is
    well enough observed is left to the caller.

    Args:
        landmark: AHP landmark.

    Returns:
        The Euclidean Landmark, with the same landmark_id.

    Raises:
        ValueError: If landmark is not an AHP landmark.
        SingularDepthError: If rho == 0. The map is left unchanged.
        MapFullError: If the map has no free 3-block. The map is left unchanged.
    """
    if landmark.kind is not LandmarkType.AHP:
        raise ValueError(
            f"Only AHP landmarks can be reparametrized, got {landmark.kind.value}"
        )

    p, P_ahp = landmark.to_euclidean_jac()

    lmk_map = landmark.lmk_map
    new = Landmark.create(lmk_map, LandmarkType.EUCLIDEAN, landmark.landmark_id)
    old_idx = landmark.indices
    new_idx = new.indices
    others = _other_indices(lmk_map, old_idx, new_idx)

    P = lmk_map.P
    P_px = P_ahp @ P[np.ix_(old_idx, others)]
    P_pp = P_ahp @ P[np.ix_(old_idx, old_idx)] @ P_ahp.T
    P[np.ix_(new_idx, new_idx)] = 0.5 * (P_pp + P_pp.T)
    P[np.ix_(new_idx, others)] = P_px
    P[np.ix_(others, new_idx)] = P_px.T
    new.write_state(p)

    landmark.release()
    return new
