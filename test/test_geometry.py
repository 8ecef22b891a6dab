import pytest

from journeymap.core.Geometry import (
    catmull_rom,
    cell_center,
    co_located_offsets,
    node_position,
    polyline_points,
)
from journeymap.core.GridPrimitives import GridNode
from journeymap.core.Types import hex_to_rgba


class TestGeometry:

    def test_cell_center(self):
        assert cell_center(0, 0) == (25, 25)
        assert cell_center(2, 3) == (175, 125)

    def test_lone_nodes_have_no_offset(self):
        a = GridNode(0, 0, "#7BFF00", "001", 0)
        b = GridNode(0, 1, "#7BFF00", "001", 1)
        offsets = co_located_offsets([a, b])
        assert offsets == [(0.0, 0.0), (0.0, 0.0)]
        assert node_position(b, offsets[1]) == (75, 25)

    def test_co_located_nodes_spread_symmetrically(self):
        a = GridNode(1, 1, "#7BFF00", "001", 0)
        b = GridNode(1, 1, "#FFFF61", "002", 0)
        c = GridNode(1, 1, "#FF18C8", "003", 0)
        offsets = co_located_offsets([a, b, c], step=10)

        assert [dx for dx, _ in offsets] == [-10, 0, 10]
        # identity untouched
        assert (a.row, a.col) == (1, 1)

    def test_polyline_points(self):
        assert polyline_points([(25, 25), (75.5, 125)]) == "25,25 75.5,125"

    def test_catmull_rom_passes_through_points(self):
        points = [(0, 0), (50, 50), (100, 0), (150, 50)]
        curve = catmull_rom(points, samples=4)

        assert curve[0] == points[0]
        assert curve[-1] == pytest.approx(points[-1])
        assert curve[4] == pytest.approx(points[1])
        assert curve[8] == pytest.approx(points[2])
        assert len(curve) == 1 + 4 * (len(points) - 1)

    def test_catmull_rom_short_input_unchanged(self):
        assert catmull_rom([(0, 0), (10, 10)]) == [(0, 0), (10, 10)]

    def test_hex_to_rgba(self):
        assert hex_to_rgba("#7BFF00") == "rgba(123, 255, 0, 0.3)"
        assert hex_to_rgba("#abc", 1) == "rgba(170, 187, 204, 1)"
        with pytest.raises(ValueError):
            hex_to_rgba("#12345")

    def test_duplicate_entries_get_separate_offsets(self):
        a = GridNode(2, 2, "#7BFF00", "001", 0)
        twin = GridNode(2, 2, "#7BFF00", "001", 0)

        offsets = co_located_offsets([a, twin], step=8)

        assert offsets == [(-4.0, 0.0), (4.0, 0.0)]
        assert node_position(a, offsets[0]) != node_position(twin, offsets[1])
