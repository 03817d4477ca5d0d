"""
Tests for segment construction and the segment models.
"""

import pytest

from core.constants import SEGMENT_COLORS
from core.models.segment import SegmentType, segments_to_dataframe, dataframe_to_segments
from core.segments.builder import build_segment, build_segments, merge_breakpoints, check_contiguity
from conftest import make_profile


class TestBuildSegment:
    """Tests for build_segment."""

    def test_climb_segment(self, linear_profile):
        segment = build_segment(linear_profile, 10, 60)

        assert segment.start_idx == 10
        assert segment.end_idx == 60
        assert segment.start_point == linear_profile[10]
        assert segment.end_point == linear_profile[60]
        assert segment.slope == pytest.approx(50.0)
        assert segment.r_squared == pytest.approx(1.0)
        assert segment.distance == pytest.approx(0.5)
        assert segment.elevation_gain == pytest.approx(25.0)
        assert segment.elevation_loss == 0
        assert segment.segment_type == SegmentType.ASCENT
        assert segment.color == SEGMENT_COLORS['asc']

    def test_descent_segment(self):
        points = make_profile([300 - 1.0 * i for i in range(30)])
        segment = build_segment(points, 0, 29)
        assert segment.segment_type == SegmentType.DESCENT
        assert segment.elevation_gain == 0
        assert segment.elevation_loss == pytest.approx(29.0)
        assert segment.slope_percent == pytest.approx(-10.0)

    def test_flat_segment(self, flat_profile):
        segment = build_segment(flat_profile, 0, len(flat_profile) - 1)
        assert segment.segment_type == SegmentType.FLAT
        assert segment.r_squared == 1.0
        assert segment.color == SEGMENT_COLORS['hor']

    def test_gain_uses_endpoints_only(self):
        """Intermediate bumps do not count toward gain or loss."""
        points = make_profile([100, 150, 90, 140, 110])
        segment = build_segment(points, 0, 4)
        assert segment.elevation_gain == pytest.approx(10.0)
        assert segment.elevation_loss == 0

    def test_single_point_segment(self, linear_profile):
        segment = build_segment(linear_profile, 5, 5)
        assert segment.distance == 0
        assert segment.r_squared == 1.0
        assert segment.grade_percent == 0.0

    def test_cut_reason_recorded(self, linear_profile):
        segment = build_segment(linear_profile, 0, 20, cut_reason="Peak detected")
        assert segment.cut_reason == "Peak detected"
        assert segment.to_dict()['cut_reason'] == "Peak detected"

    def test_out_of_range_is_a_defect(self, linear_profile):
        """Out-of-range indices are programming errors and must fail loudly."""
        with pytest.raises(AssertionError):
            build_segment(linear_profile, 0, len(linear_profile))
        with pytest.raises(AssertionError):
            build_segment(linear_profile, 30, 20)


class TestBuildSegments:
    """Tests for breakpoint handling and contiguity."""

    def test_segments_share_boundaries(self, stepped_profile):
        segments = build_segments(stepped_profile, [0, 100, 200, 300])

        assert [(s.start_idx, s.end_idx) for s in segments] == [(0, 100), (100, 200), (200, 300)]
        assert [s.segment_type for s in segments] == [
            SegmentType.FLAT, SegmentType.ASCENT, SegmentType.FLAT
        ]
        assert check_contiguity(segments, len(stepped_profile))

    def test_duplicate_breakpoints_skipped(self, linear_profile):
        segments = build_segments(linear_profile, [0, 40, 40, 99])
        assert [(s.start_idx, s.end_idx) for s in segments] == [(0, 40), (40, 99)]

    def test_merge_breakpoints(self):
        assert merge_breakpoints([0, 50, 99], [20, 50], [70]) == [0, 20, 50, 70, 99]

    def test_check_contiguity_detects_gap(self, linear_profile):
        segments = [build_segment(linear_profile, 0, 40), build_segment(linear_profile, 41, 99)]
        assert not check_contiguity(segments, len(linear_profile))

    def test_check_contiguity_detects_incomplete_cover(self, linear_profile):
        segments = [build_segment(linear_profile, 0, 40), build_segment(linear_profile, 40, 90)]
        assert not check_contiguity(segments, len(linear_profile))

    def test_check_contiguity_empty(self):
        assert not check_contiguity([], 10)


class TestSegmentDataFrame:
    """Tests for DataFrame conversion."""

    def test_dataframe_round_trip(self, stepped_profile):
        segments = build_segments(stepped_profile, [0, 100, 200, 300])
        df = segments_to_dataframe(segments)

        assert list(df['type']) == ['hor', 'asc', 'hor']
        assert 'start_distance' in df.columns
        assert df['end_elevation'].iloc[1] == pytest.approx(1100.0)

        restored = dataframe_to_segments(df, stepped_profile)
        assert [(s.start_idx, s.end_idx, s.segment_type) for s in restored] == \
            [(s.start_idx, s.end_idx, s.segment_type) for s in segments]

    def test_empty_dataframe(self):
        assert segments_to_dataframe([]).empty
