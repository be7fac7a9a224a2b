"""
Utility functions shared across the landmark and frame modules.
"""

from .geometry import EPSILON_DIRECTION, EPSILON_RANGE, as_vector, skew

__all__ = [
    'EPSILON_RANGE',
    'EPSILON_DIRECTION',
    'as_vector',
    'skew',
]
