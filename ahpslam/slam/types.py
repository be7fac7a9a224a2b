"""Configuration types for landmark initialization.

Key types:
    - AHPInitConfig: inverse-depth prior and measurement noise used when
      a landmark is created from a single bearing-only observation
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class AHPInitConfig:
    """
    Parameters for initializing AHP landmarks from bearings.

    Attributes:
        rho_prior: Inverse-distance prior (1/m). The landmark starts at
                   distance 1 / rho_prior along the observed ray.
        rho_std: Standard deviation of the inverse-distance prior (1/m).
                 A value comparable to rho_prior makes the initial depth
                 region cover [~1 / (2 rho_prior), infinity).
        bearing_std: Standard deviation of each component of the
                     retro-projected direction v (v expressed with unit
                     depth, e.g. normalized image coordinates).

    Examples:
        >>> config = AHPInitConfig(rho_prior=0.5, rho_std=0.5)
        >>> config.rho_variance
        0.25
    """

    rho_prior: float = 0.5
    rho_std: float = 0.5
    bearing_std: float = 1e-3

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if not (np.isfinite(self.rho_prior) and self.rho_prior >= 0):
            raise ValueError(f"rho_prior must be finite and >= 0, got {self.rho_prior}")
        if not (np.isfinite(self.rho_std) and self.rho_std > 0):
            raise ValueError(f"rho_std must be finite and positive, got {self.rho_std}")
        if not (np.isfinite(self.bearing_std) and self.bearing_std >= 0):
            raise ValueError(
                f"bearing_std must be finite and >= 0, got {self.bearing_std}"
            )

    @property
    def rho_variance(self) -> float:
        return self.rho_std**2

    @property
    def bearing_covariance(self) -> np.ndarray:
        """3x3 covariance of the retro-projected direction."""
        return self.bearing_std**2 * np.eye(3)
