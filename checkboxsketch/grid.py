"""
Checkbox Grid Model

A boolean matrix where True means a checked (dark) cell. Grids are
produced by the thresholder and edited in place by the user.
"""

import numpy as np
from typing import List, Sequence


class Grid:
    """
    Boolean checkbox matrix of ``rows`` x ``cols`` cells.

    The backing array is owned by the grid; callers that need to keep a
    snapshot across edits should use ``copy()``.
    """

    def __init__(self, data: np.ndarray):
        data = np.asarray(data, dtype=bool)
        if data.ndim != 2:
            raise ValueError(f"Grid data must be 2-D, got shape {data.shape}")
        self._data = data

    @classmethod
    def blank(cls, rows: int, cols: int) -> 'Grid':
        return cls(np.zeros((rows, cols), dtype=bool))

    @classmethod
    def from_list(cls, rows: Sequence[Sequence[bool]]) -> 'Grid':
        """Build a grid from nested lists; every row must have the same length."""
        widths = {len(r) for r in rows}
        if len(widths) > 1:
            raise ValueError("All grid rows must have the same length")
        return cls(np.array(rows, dtype=bool).reshape(len(rows), widths.pop() if widths else 0))

    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def cols(self) -> int:
        return self._data.shape[1]

    @property
    def data(self) -> np.ndarray:
        return self._data

    def __getitem__(self, index):
        return bool(self._data[index]) if isinstance(index, tuple) else self._data[index]

    def _check_bounds(self, row: int, col: int):
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexError(
                f"Cell ({row}, {col}) outside {self.rows}x{self.cols} grid")

    def toggle_cell(self, row: int, col: int) -> bool:
        """
        Flip a single cell.

        Returns:
            The cell's new value.
        """
        self._check_bounds(row, col)
        self._data[row, col] = not self._data[row, col]
        return bool(self._data[row, col])

    def invert(self):
        """Flip every cell."""
        np.logical_not(self._data, out=self._data)

    def count_checked(self) -> int:
        return int(self._data.sum())

    def copy(self) -> 'Grid':
        return Grid(self._data.copy())

    def to_list(self) -> List[List[bool]]:
        return self._data.tolist()

    def __eq__(self, other):
        if not isinstance(other, Grid):
            return NotImplemented
        return self._data.shape == other._data.shape and bool(np.array_equal(self._data, other._data))

    def __repr__(self):
        return f"Grid(rows={self.rows}, cols={self.cols}, checked={self.count_checked()})"
