"""
Tests for the dual-criterion refiner.
"""

import pytest

from core.calculations import profile_arrays
from core.segments.builder import check_contiguity
from core.segmentation.params import RefinerParams
from core.segmentation.refiner import (
    seed_breakpoints,
    wiggle_pass,
    validate_pass,
    refine_breakpoints,
    segment_refiner,
)
from conftest import make_profile


class TestSeeding:
    """Tests for seed_breakpoints."""

    def test_constant_grade_has_no_seeds(self, linear_profile):
        assert seed_breakpoints(linear_profile, 0, len(linear_profile) - 1) == []

    def test_seed_near_grade_change(self, two_grade_profile):
        """The first seed is committed shortly before the 5 % to 20 % bend."""
        seeds = seed_breakpoints(two_grade_profile, 0, 299)
        assert seeds
        assert 135 <= seeds[0] <= 150
        assert all(0 < s < 299 for s in seeds)


class TestWigglePass:
    """Tests for the single-point wiggle."""

    def test_moves_toward_the_bend(self, two_grade_profile):
        distances, elevations = profile_arrays(two_grade_profile)
        breakpoints = [0, 145, 299]
        assert wiggle_pass(distances, elevations, breakpoints)
        assert breakpoints == [0, 146, 299]

    def test_optimal_breakpoint_stays(self, two_grade_profile):
        distances, elevations = profile_arrays(two_grade_profile)
        breakpoints = [0, 150, 299]
        assert not wiggle_pass(distances, elevations, breakpoints)
        assert breakpoints == [0, 150, 299]

    def test_edge_breakpoints_never_move(self):
        """Breakpoints within one point of the profile ends are skipped."""
        points = make_profile([0, 50, 51, 52, 53, 54, 55, 56, 57, 0])
        distances, elevations = profile_arrays(points)
        breakpoints = [0, 1, 8, 9]
        wiggle_pass(distances, elevations, breakpoints)
        assert breakpoints[1] == 1
        assert breakpoints[2] == 8

    def test_candidates_stay_between_neighbours(self, stepped_profile):
        distances, elevations = profile_arrays(stepped_profile)
        breakpoints = [0, 100, 101, 300]
        wiggle_pass(distances, elevations, breakpoints)
        assert breakpoints == sorted(set(breakpoints))


class TestValidatePass:
    """Tests for breakpoint validation."""

    def test_drops_short_left_segment(self, two_grade_profile):
        distances, elevations = profile_arrays(two_grade_profile)
        params = RefinerParams(distancia_minima=0.2)
        assert validate_pass(distances, elevations, [0, 10, 150, 299], params) == [0, 150, 299]

    def test_drops_similar_slopes(self, linear_profile):
        distances, elevations = profile_arrays(linear_profile)
        params = RefinerParams(distancia_minima=0.1)
        assert validate_pass(distances, elevations, [0, 50, 99], params) == [0, 99]

    def test_keeps_real_grade_change(self, two_grade_profile):
        distances, elevations = profile_arrays(two_grade_profile)
        assert validate_pass(distances, elevations, [0, 150, 299], RefinerParams()) == [0, 150, 299]


class TestRefinerSegmentation:
    """Tests for segment_refiner."""

    def test_converges_on_two_grades(self, two_grade_profile):
        distances, elevations = profile_arrays(two_grade_profile)
        seeds = seed_breakpoints(two_grade_profile, 0, 299)
        refined = refine_breakpoints(distances, elevations, [0] + seeds + [299], RefinerParams())
        assert refined == [0, 150, 299]

    def test_two_grade_segments(self, two_grade_profile):
        result = segment_refiner(two_grade_profile)

        assert result.macro_boundaries == [0, 299]
        assert [(s.start_idx, s.end_idx) for s in result.segments] == [(0, 150), (150, 299)]
        assert result.segments[0].slope == pytest.approx(50.0)
        assert result.segments[1].slope == pytest.approx(200.0)

    def test_mountain_splits_at_summit(self, mountain_profile):
        result = segment_refiner(mountain_profile)
        assert [(s.start_idx, s.end_idx) for s in result.segments] == [(0, 500), (500, 999)]
        assert result.segments[0].slope == pytest.approx(40.0)
        assert result.segments[1].slope == pytest.approx(-40.0)

    def test_progress_reaches_100(self, two_grade_profile):
        reported = []
        segment_refiner(two_grade_profile, on_progress=reported.append)

        assert reported[-1] == 100.0
        assert all(0 <= value <= 100 for value in reported)
        assert reported == sorted(reported)

    def test_progress_on_short_input(self):
        reported = []
        result = segment_refiner(make_profile([100.0] * 5), on_progress=reported.append)
        assert result.segments == []
        assert reported == [100.0]

    def test_contiguous_on_stepped_profile(self, stepped_profile):
        result = segment_refiner(stepped_profile)
        assert check_contiguity(result.segments, len(stepped_profile))
        assert 100 in result.macro_boundaries
