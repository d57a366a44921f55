import numpy as np
import pytest

from checkboxsketch.grid import Grid


@pytest.fixture
def grid():
    return Grid.from_list([[True, False, False], [False, True, True]])


class TestGrid:
    def test_dimensions(self, grid):
        assert grid.rows == 2
        assert grid.cols == 3

    def test_invert_twice_is_identity(self, grid):
        original = grid.copy()
        grid.invert()
        assert grid.to_list() == [[False, True, True], [True, False, False]]
        grid.invert()
        assert grid == original

    def test_toggle_twice_restores_cell(self, grid):
        original = grid.copy()
        assert grid.toggle_cell(0, 1) is True
        expected = original.copy().data
        expected[0, 1] = True
        assert np.array_equal(grid.data, expected)
        grid.toggle_cell(0, 1)
        assert grid == original

    @pytest.mark.parametrize("row,col", [(2, 0), (0, 3), (-1, 0), (0, -1)])
    def test_toggle_out_of_range(self, grid, row, col):
        with pytest.raises(IndexError):
            grid.toggle_cell(row, col)

    def test_copy_is_independent(self, grid):
        snapshot = grid.copy()
        grid.toggle_cell(0, 0)
        assert snapshot[0, 0] is True

    def test_ragged_rows_rejected(self):
        with pytest.raises(ValueError):
            Grid.from_list([[True], [True, False]])

    def test_blank(self):
        blank = Grid.blank(3, 4)
        assert (blank.rows, blank.cols) == (3, 4)
        assert blank.count_checked() == 0

    def test_equality_considers_shape(self):
        assert Grid.blank(2, 3) != Grid.blank(3, 2)
