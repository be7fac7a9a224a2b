"""Landmark map: one contiguous state vector and covariance.

The map owns the storage of every landmark. A landmark holds only an
integer offset and its fixed size into the map's state vector x, and
reads and writes its state through a numpy view of that block. The
covariance P is stored densely, indexed by the same offsets.

Example:
    >>> lmk_map = LandmarkMap(capacity=20)
    >>> offset = lmk_map.allocate(7)
    >>> block = lmk_map.block(offset, 7)
    >>> block[:] = 1.0
    >>> float(lmk_map.x[offset])
    1.0
"""

import numpy as np

from ahpslam.errors import MapFullError, ShapeMismatchError


class LandmarkMap:
    """
    Arena holding the joint landmark state and covariance.

    Attributes:
        x: State vector, shape (capacity,).
        P: Covariance matrix, shape (capacity, capacity).
    """

    def __init__(self, capacity: int):
        """
        Initialize an empty map.

        Args:
            capacity: Total number of state scalars.

        Raises:
            ValueError: If capacity is not positive.
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self.capacity = capacity
        self.x = np.zeros(capacity)
        self.P = np.zeros((capacity, capacity))
        self._used = np.zeros(capacity, dtype=bool)

    def allocate(self, size: int) -> int:
        """
        Reserve the first free contiguous block of `size` scalars.

        Returns:
            Offset of the block in x.

        Raises:
            ValueError: If size is not positive.
            MapFullError: If no free block is large enough.
        """
        if size <= 0:
            raise ValueError(f"size must be positive, got {size}")

        run = 0
        for i in range(self.capacity):
            run = 0 if self._used[i] else run + 1
            if run == size:
                offset = i - size + 1
                self._used[offset:offset + size] = True
                return offset

        raise MapFullError(
            f"No free block of {size} scalars in map "
            f"({self.free_size()} of {self.capacity} free)"
        )

    def release(self, offset: int, size: int) -> None:
        """
        Free a block and clear its state and covariance rows/columns.

        Raises:
            ValueError: If any scalar of the block is not allocated.
        """
        sl = self._slice(offset, size)
        if not np.all(self._used[sl]):
            raise ValueError(f"Block [{offset}, {offset + size}) is not allocated")

        self._used[sl] = False
        self.x[sl] = 0.0
        self.P[sl, :] = 0.0
        self.P[:, sl] = 0.0

    def block(self, offset: int, size: int) -> np.ndarray:
        """Writable view of the state block [offset, offset + size)."""
        return self.x[self._slice(offset, size)]

    def is_allocated(self, offset: int, size: int) -> bool:
        return bool(np.all(self._used[self._slice(offset, size)]))

    def used_indices(self) -> np.ndarray:
        """Indices of all allocated state scalars."""
        return np.flatnonzero(self._used)

    def free_size(self) -> int:
        return int(self.capacity - np.count_nonzero(self._used))

    def _slice(self, offset: int, size: int) -> slice:
        if offset < 0 or size <= 0 or offset + size > self.capacity:
            raise ShapeMismatchError(
                f"Block [{offset}, {offset + size}) outside map of "
                f"capacity {self.capacity}"
            )
        return slice(offset, offset + size)

    def __repr__(self) -> str:
        return (
            f"LandmarkMap(capacity={self.capacity}, "
            f"used={self.capacity - self.free_size()})"
        )
