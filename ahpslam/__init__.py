"""Landmark parametrization and frame-transform math for EKF SLAM.

This package contains:
- coords: Quaternion rotations and rigid frames, with Jacobians
- slam: Anchored homogeneous point and Euclidean landmarks, landmark map
- errors: Exception types for contract violations
- utils: Shared geometric helpers
"""

__version__ = "0.1.0"
