"""
Tests for the gradient-threshold segmenter.
"""

import pytest

from core.models.segment import SegmentType
from core.segments.builder import check_contiguity
from core.segmentation.params import GradientParams
from core.segmentation.gradient import find_gradient_breakpoints, segment_gradient
from conftest import make_profile


class TestGradientBreakpoints:
    """Tests for find_gradient_breakpoints."""

    def test_constant_grade_has_no_breakpoints(self, linear_profile):
        assert find_gradient_breakpoints(linear_profile, 0, 99, GradientParams()) == []

    def test_breakpoints_inside_macro_range(self, two_grade_profile):
        breakpoints = find_gradient_breakpoints(two_grade_profile, 0, 299, GradientParams())
        assert breakpoints
        assert all(0 < bp <= 299 for bp in breakpoints)
        assert breakpoints == sorted(breakpoints)

    def test_min_distance_suppresses_early_cuts(self, two_grade_profile):
        """A cut can only be committed once the candidate is long enough."""
        params = GradientParams(distancia_minima=5.0)
        assert find_gradient_breakpoints(two_grade_profile, 0, 299, params) == []


class TestGradientSegmentation:
    """Tests for segment_gradient."""

    def test_mountain(self, mountain_profile):
        result = segment_gradient(mountain_profile)

        assert result.macro_boundaries == [0, 500, 999]
        assert [(s.start_idx, s.end_idx) for s in result.segments] == [(0, 500), (500, 999)]
        assert result.segments[0].segment_type == SegmentType.ASCENT
        assert result.segments[1].segment_type == SegmentType.DESCENT

    def test_stepped_profile(self, stepped_profile):
        result = segment_gradient(stepped_profile)
        segments = result.segments

        assert result.macro_boundaries == [0, 100, 300]
        assert check_contiguity(segments, len(stepped_profile))
        assert (segments[0].start_idx, segments[0].end_idx) == (0, 100)
        assert segments[0].segment_type == SegmentType.FLAT
        assert segments[-1].segment_type == SegmentType.FLAT
        assert any(s.segment_type == SegmentType.ASCENT for s in segments)

    def test_macro_boundaries_are_breakpoints(self, rolling_profile):
        result = segment_gradient(rolling_profile)
        starts = {s.start_idx for s in result.segments} | {result.segments[-1].end_idx}
        assert set(result.macro_boundaries) <= starts

    def test_huge_threshold_leaves_macro_segments(self, rolling_profile):
        """Without local cuts the segments are exactly the macro segments."""
        result = segment_gradient(rolling_profile, GradientParams(cambio_gradiente=1000.0))
        assert len(result.segments) == len(result.macro_boundaries) - 1

    @pytest.mark.parametrize("count", [0, 3, 9])
    def test_too_few_points(self, count):
        result = segment_gradient(make_profile([100.0] * count))
        assert result.segments == []
