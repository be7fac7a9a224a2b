"""Exception types for landmark parametrization and frame transforms.

Every error here is a synchronous contract violation raised at the point
of detection. None of them is retried or converted into a NaN result.

    - InvalidFrameError: quaternion is not unit norm
    - SingularDepthError: inverse depth is zero where a finite point is needed
    - ShapeMismatchError: input vector or state block has the wrong shape
    - MapFullError: no free block of the requested size in the state arena
"""


class LandmarkError(ValueError):
    """Base class for landmark and frame contract violations."""


class InvalidFrameError(LandmarkError):
    """Raised when a frame quaternion is not unit norm."""


class SingularDepthError(LandmarkError, ZeroDivisionError):
    """Raised when a point at infinity (rho == 0) has no Euclidean form."""


class ShapeMismatchError(LandmarkError):
    """Raised when an array does not have the documented shape."""


class MapFullError(RuntimeError):
    """Raised when the landmark map has no free block of the requested size."""
