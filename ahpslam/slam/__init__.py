"""Landmark parametrizations for bearing-only EKF SLAM.

This module implements the landmark side of a visual / bearing-only EKF
SLAM system. It is NOT a full SLAM pipeline. It provides:
    - AHP transforms (anchored homogeneous points) with exact Jacobians
    - Euclidean point transforms with the same interface
    - A map arena holding the joint landmark state and covariance
    - Landmark handles dispatching to the transforms of their type

The filter decides when to initialize, update, reparametrize and prune
landmarks; the functions here supply the conversions and Jacobians.

Main components:
    - ahp.from_frame, ahp.to_frame: AHP between frames
    - ahp.to_euclidean: p = p0 + m / rho
    - ahp.to_bearing_only_frame, ahp.from_bearing_only_frame:
      projection to and retro-projection from a bearing-only sensor
    - LandmarkMap, Landmark, LandmarkType: storage and dispatch
    - initialize_ahp_landmark, reparametrize_to_euclidean: lifecycle

Example usage:
    >>> import numpy as np
    >>> from ahpslam.slam import LandmarkMap, initialize_ahp_landmark
    >>>
    >>> lmk_map = LandmarkMap(capacity=100)
    >>> s = np.array([0, 0, 0, 1.0, 0, 0, 0])  # sensor at origin
    >>> lmk = initialize_ahp_landmark(lmk_map, s, np.array([0, 0, 1.0]))
    >>> lmk.to_euclidean()
    array([0., 0., 2.])
"""

from . import ahp, euclidean
from .landmarks import (
    LANDMARK_MODELS,
    Landmark,
    LandmarkModel,
    LandmarkType,
    initialize_ahp_landmark,
    landmark_size,
    reparametrize_to_euclidean,
)
from .map import LandmarkMap
from .types import AHPInitConfig

__all__ = [
    # Parametrizations
    "ahp",
    "euclidean",
    # Storage and dispatch
    "LandmarkMap",
    "Landmark",
    "LandmarkModel",
    "LandmarkType",
    "LANDMARK_MODELS",
    "landmark_size",
    # Lifecycle
    "AHPInitConfig",
    "initialize_ahp_landmark",
    "reparametrize_to_euclidean",
]
