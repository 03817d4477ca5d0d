"""
Dual-criterion refiner (v2).

Within each prominence macro segment:

1. Seeding grows a segment from a local start and commits a breakpoint when the
   rolling R² drops below a fixed quality bar or the gradient changes sharply
   over the next 100 m, once the candidate is at least 0.2 km long. These
   seeding constants are fixed and independent of the user parameters.
2. Refinement alternates a wiggle pass (move each interior breakpoint by at
   most one point to minimise the combined fit error of its two neighbours)
   and a validate pass (drop breakpoints whose left segment is too short or
   whose slopes barely differ), until nothing changes or 30 iterations run.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

import numpy as np

from core.calculations import profile_arrays, window_regression, slope_to_percent, calculate_gradient
from core.constants import (
    MIN_POINTS_FOR_SEGMENTATION,
    SEED_R_SQUARED_THRESHOLD,
    SEED_GRADIENT_CHANGE_PERCENT,
    SEED_MIN_DISTANCE_KM,
    FUTURE_WINDOW_DISTANCE_KM,
    REFINER_MAX_ITERATIONS,
    WIGGLE_OFFSETS,
    PERCENT,
)
from core.models.segment import ElevationPoint, SegmentationResult
from core.segments.builder import build_segments, merge_breakpoints
from core.segments.macro import find_extrema, macro_ranges, trivial_boundaries
from core.segmentation.params import RefinerParams

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class ConvergenceState(Enum):
    """Exit condition of the refinement loop."""
    CONTINUING = 'continuing'
    CONVERGED = 'converged'


class _Progress:
    """Approximate progress reporting over the refinement of all seeds."""

    def __init__(self, seed_count: int, callback: Optional[ProgressCallback]):
        self.total = max(seed_count, 1) * REFINER_MAX_ITERATIONS
        self.processed = 0
        self.callback = callback

    def step(self):
        self.processed += 1
        if self.callback is not None:
            self.callback(min(PERCENT, self.processed / self.total * PERCENT))

    def finish(self):
        if self.callback is not None:
            self.callback(float(PERCENT))


# =============================================================================
# SEEDING
# =============================================================================

def _future_window_end(distances: np.ndarray, start_idx: int, limit_idx: int) -> int:
    end = start_idx
    while end < limit_idx and distances[end] - distances[start_idx] < FUTURE_WINDOW_DISTANCE_KM:
        end += 1
    return end


def seed_breakpoints(points: Sequence[ElevationPoint], macro_start: int, macro_end: int) -> List[int]:
    """
    Find initial breakpoints inside one macro segment.

    A breakpoint is committed at the candidate end when the candidate is at
    least SEED_MIN_DISTANCE_KM long and either its R² is below
    SEED_R_SQUARED_THRESHOLD or the gradient over the next 100 m differs from
    the candidate gradient by more than SEED_GRADIENT_CHANGE_PERCENT.

    Args:
        points: Full elevation profile
        macro_start: First index of the macro segment
        macro_end: Last index of the macro segment

    Returns:
        Global breakpoint indices strictly inside (macro_start, macro_end)
    """
    distances, elevations = profile_arrays(points)
    seeds = []
    current_start = macro_start
    candidate_end = current_start + 2

    while candidate_end < macro_end:
        if distances[candidate_end] - distances[current_start] >= SEED_MIN_DISTANCE_KM:
            r_squared = window_regression(distances, elevations, current_start, candidate_end).r_squared

            gradient_change = 0.0
            window_end = _future_window_end(distances, candidate_end, macro_end)
            if window_end > candidate_end:
                candidate_gradient = calculate_gradient(points[current_start], points[candidate_end])
                future_gradient = calculate_gradient(points[candidate_end], points[window_end])
                gradient_change = abs(candidate_gradient - future_gradient)

            if r_squared < SEED_R_SQUARED_THRESHOLD or gradient_change > SEED_GRADIENT_CHANGE_PERCENT:
                seeds.append(candidate_end)
                current_start = candidate_end
                candidate_end = current_start + 2
                continue

        candidate_end += 1

    return seeds


# =============================================================================
# REFINEMENT
# =============================================================================

def _combined_error(distances: np.ndarray, elevations: np.ndarray, left: int, bp: int, right: int) -> float:
    left_fit = window_regression(distances, elevations, left, bp)
    right_fit = window_regression(distances, elevations, bp, right)
    return (1 - left_fit.r_squared) + (1 - right_fit.r_squared)


def wiggle_pass(distances: np.ndarray, elevations: np.ndarray, breakpoints: List[int]) -> bool:
    """
    Move each interior breakpoint to the best of {bp-1, bp, bp+1}.

    Breakpoints within one point of either end of the profile are not moved.
    A candidate position must stay strictly between its neighbours. Ties keep
    the current position.

    Args:
        distances: Profile distances (km)
        elevations: Profile elevations (m)
        breakpoints: Sorted breakpoints including both macro ends, modified in place

    Returns:
        True if any breakpoint moved
    """
    n = len(distances)
    changed = False

    for i in range(1, len(breakpoints) - 1):
        bp = breakpoints[i]
        if bp <= 1 or bp >= n - 2:
            continue

        left, right = breakpoints[i - 1], breakpoints[i + 1]
        best_position = bp
        best_error = _combined_error(distances, elevations, left, bp, right)

        for offset in WIGGLE_OFFSETS:
            candidate = bp + offset
            if candidate == bp or not left < candidate < right:
                continue
            assert 0 < candidate < n - 1, f"Wiggle candidate {candidate} outside profile of {n} points"

            error = _combined_error(distances, elevations, left, candidate, right)
            if error < best_error:
                best_position = candidate
                best_error = error

        if best_position != bp:
            breakpoints[i] = best_position
            changed = True

    return changed


def validate_pass(distances: np.ndarray,
                  elevations: np.ndarray,
                  breakpoints: List[int],
                  params: RefinerParams,
                  progress: Optional[_Progress] = None) -> List[int]:
    """
    Drop interior breakpoints that fail the distance or slope-difference test.

    A breakpoint survives only if the segment to its left (from the last kept
    breakpoint) is at least ``distancia_minima`` long and the percent slopes
    on either side differ by at least ``diferencia_pendiente * 100``.

    Returns:
        New breakpoint list
    """
    min_slope_difference = params.diferencia_pendiente * PERCENT
    kept = [breakpoints[0]]

    for i in range(1, len(breakpoints) - 1):
        bp = breakpoints[i]
        left, right = kept[-1], breakpoints[i + 1]

        left_fit = window_regression(distances, elevations, left, bp)
        right_fit = window_regression(distances, elevations, bp, right)
        left_distance = distances[bp] - distances[left]
        slope_difference = abs(slope_to_percent(left_fit.slope) - slope_to_percent(right_fit.slope))

        if left_distance >= params.distancia_minima and slope_difference >= min_slope_difference:
            kept.append(bp)
        else:
            logger.debug(f"Dropping breakpoint {bp} (distance={left_distance:.3f}km, "
                         f"slope difference={slope_difference:.1f}%)")

        if progress is not None:
            progress.step()

    kept.append(breakpoints[-1])
    return kept


def refine_breakpoints(distances: np.ndarray,
                       elevations: np.ndarray,
                       breakpoints: List[int],
                       params: RefinerParams,
                       progress: Optional[_Progress] = None) -> List[int]:
    """
    Run wiggle and validate passes until convergence or the iteration cap.

    Args:
        distances: Profile distances (km)
        elevations: Profile elevations (m)
        breakpoints: Macro start, seeds, macro end
        params: Strategy parameters
        progress: Optional progress tracker

    Returns:
        Refined breakpoint list (still including both macro ends)
    """
    current = list(breakpoints)
    state = ConvergenceState.CONTINUING
    iteration = 0

    while state == ConvergenceState.CONTINUING and iteration < REFINER_MAX_ITERATIONS:
        iteration += 1
        moved = wiggle_pass(distances, elevations, current)
        validated = validate_pass(distances, elevations, current, params, progress)
        dropped = len(validated) != len(current)
        current = validated

        if not moved and not dropped:
            state = ConvergenceState.CONVERGED

    logger.debug(f"Refinement finished after {iteration} iterations ({state.value})")
    return current


def segment_refiner(points: Sequence[ElevationPoint],
                    params: Optional[RefinerParams] = None,
                    on_progress: Optional[ProgressCallback] = None) -> SegmentationResult:
    """
    Segment a profile with seeding plus iterative wiggle/validate refinement.

    Args:
        points: Elevation profile
        params: Strategy parameters (defaults when None)
        on_progress: Optional callback receiving approximate 0-100 percentages;
            100 is always delivered at completion

    Returns:
        SegmentationResult with contiguous segments and prominence boundaries
    """
    if params is None:
        params = RefinerParams()

    if len(points) < MIN_POINTS_FOR_SEGMENTATION:
        logger.warning(f"Not enough points for refiner segmentation ({len(points)})")
        if on_progress is not None:
            on_progress(float(PERCENT))
        return SegmentationResult(segments=[], macro_boundaries=trivial_boundaries(len(points)))

    logger.info(f"Starting refiner segmentation with params: {params.to_dict()}")

    distances, elevations = profile_arrays(points)
    macro_boundaries = find_extrema(points, params.prominencia_minima)
    ranges = list(macro_ranges(macro_boundaries))

    seeded = [
        [macro_start] + seed_breakpoints(points, macro_start, macro_end) + [macro_end]
        for macro_start, macro_end in ranges
    ]
    seed_count = sum(len(bps) - 2 for bps in seeded)
    logger.info(f"Seeded {seed_count} breakpoints across {len(ranges)} macro segments")

    progress = _Progress(seed_count, on_progress)
    refined = [refine_breakpoints(distances, elevations, bps, params, progress) for bps in seeded]
    progress.finish()

    breakpoints = merge_breakpoints(macro_boundaries, *refined)
    segments = build_segments(points, breakpoints)

    logger.info(f"Refiner generated {len(segments)} segments from {seed_count} seeds")
    return SegmentationResult(segments=segments, macro_boundaries=macro_boundaries)
