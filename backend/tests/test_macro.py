"""
Tests for prominence-based macro-segmentation.
"""

import pytest

from core.segments.macro import find_extrema, macro_ranges, trivial_boundaries
from conftest import make_profile


class TestFindExtrema:
    """Tests for find_extrema."""

    def test_symmetric_mountain(self, mountain_profile):
        """A 200 m peak is found with 40 m prominence."""
        assert find_extrema(mountain_profile, 40) == [0, 500, 999]

    def test_prominence_above_peak_height(self, mountain_profile):
        """A reversal smaller than the prominence is ignored."""
        assert find_extrema(mountain_profile, 250) == [0, 999]

    def test_small_wiggles_ignored(self):
        """Bumps under the prominence threshold do not create boundaries."""
        elevations = [100, 105, 110, 108, 115, 120, 118, 125, 130, 128, 135, 140, 100]
        points = make_profile(elevations)
        assert find_extrema(points, 20) == [0, 11, 12]

    def test_wiggles_move_running_extremum(self):
        """Large wiggles update the running extremum rather than committing it."""
        elevations = [0, 10, 20, 30, 25, 40, 50, 45, 60, 70, 80, 10, 0]
        points = make_profile(elevations)
        # The 5 m dips never reach 30 m prominence; the real peak is index 10
        assert find_extrema(points, 30) == [0, 10, 12]

    def test_valley_then_peak(self):
        """Initial downward trend commits the valley first."""
        elevations = [500 - 5 * i for i in range(20)] + [405 + 5 * i for i in range(1, 30)] + [500] * 5
        points = make_profile(elevations)
        boundaries = find_extrema(points, 30)
        assert boundaries[0] == 0
        assert 19 in boundaries
        assert boundaries[-1] == len(points) - 1

    def test_monotonic_in_prominence(self, rolling_profile):
        """Raising the prominence never adds boundaries."""
        counts = [len(find_extrema(rolling_profile, p)) for p in (5, 10, 20, 40, 80, 160, 320)]
        assert counts == sorted(counts, reverse=True)

    def test_boundaries_sorted_and_unique(self, rolling_profile):
        boundaries = find_extrema(rolling_profile, 15)
        assert boundaries == sorted(set(boundaries))
        assert boundaries[0] == 0
        assert boundaries[-1] == len(rolling_profile) - 1

    @pytest.mark.parametrize("count,expected", [
        (0, []),
        (1, [0]),
        (2, [0, 1]),
    ])
    def test_short_inputs(self, count, expected):
        """Fewer than three points return the endpoint boundaries."""
        points = make_profile([100.0] * count)
        assert find_extrema(points, 10) == expected


class TestMacroRanges:
    """Tests for the boundary helpers."""

    def test_trivial_boundaries(self):
        assert trivial_boundaries(0) == []
        assert trivial_boundaries(1) == [0]
        assert trivial_boundaries(5) == [0, 4]

    def test_ranges_skip_empty(self):
        assert list(macro_ranges([0, 10, 10, 25])) == [(0, 10), (10, 25)]

    def test_ranges_of_single_boundary(self):
        assert list(macro_ranges([0])) == []
