"""
Gradient-threshold segmentation (v1).

Macro-segments the profile by prominence, then inside each macro segment grows
a candidate segment and compares its endpoint gradient with the gradient of a
fixed 100 m window ahead of it. A breakpoint is committed when the two differ
by at least ``cambio_gradiente`` and the candidate is long enough. There is no
refinement pass.
"""

import logging
from typing import List, Optional, Sequence

from core.calculations import calculate_gradient
from core.constants import MIN_POINTS_FOR_SEGMENTATION, FUTURE_WINDOW_DISTANCE_KM
from core.models.segment import ElevationPoint, SegmentationResult
from core.segments.builder import build_segments, merge_breakpoints
from core.segments.macro import find_extrema, macro_ranges, trivial_boundaries
from core.segmentation.params import GradientParams

logger = logging.getLogger(__name__)


def _future_window_end(points: Sequence[ElevationPoint], start_idx: int, limit_idx: int) -> int:
    """Index roughly 100 m past start_idx, capped at limit_idx."""
    end = start_idx
    while end < limit_idx and points[end].distance - points[start_idx].distance < FUTURE_WINDOW_DISTANCE_KM:
        end += 1
    return end


def find_gradient_breakpoints(points: Sequence[ElevationPoint],
                              macro_start: int,
                              macro_end: int,
                              params: GradientParams) -> List[int]:
    """
    Find interior breakpoints of one macro segment.

    Args:
        points: Full elevation profile
        macro_start: First index of the macro segment
        macro_end: Last index of the macro segment
        params: Strategy parameters

    Returns:
        Global breakpoint indices strictly inside (macro_start, macro_end]
    """
    breakpoints = []
    current_start = macro_start

    while current_start < macro_end:
        current_end = current_start + 1
        committed = False

        while current_end <= macro_end:
            candidate_gradient = calculate_gradient(points[current_start], points[current_end])
            window_end = _future_window_end(points, current_end, macro_end)

            if window_end > current_end:
                future_gradient = calculate_gradient(points[current_end], points[window_end])
                change = abs(candidate_gradient - future_gradient)
                candidate_distance = points[current_end].distance - points[current_start].distance

                if change >= params.cambio_gradiente and candidate_distance >= params.distancia_minima:
                    logger.debug(f"Gradient breakpoint at {current_end}: "
                                 f"{candidate_gradient:.1f}% -> {future_gradient:.1f}%")
                    breakpoints.append(current_end)
                    current_start = current_end
                    committed = True
                    break

            current_end += 1

        if not committed:
            break

    return breakpoints


def segment_gradient(points: Sequence[ElevationPoint],
                     params: Optional[GradientParams] = None) -> SegmentationResult:
    """
    Segment a profile with the gradient-threshold criterion.

    Args:
        points: Elevation profile
        params: Strategy parameters (defaults when None)

    Returns:
        SegmentationResult with contiguous segments and prominence boundaries
    """
    if params is None:
        params = GradientParams()

    if len(points) < MIN_POINTS_FOR_SEGMENTATION:
        logger.warning(f"Not enough points for gradient segmentation ({len(points)})")
        return SegmentationResult(segments=[], macro_boundaries=trivial_boundaries(len(points)))

    logger.info(f"Starting gradient segmentation with params: {params.to_dict()}")

    macro_boundaries = find_extrema(points, params.prominencia_minima)
    logger.info(f"Found {len(macro_boundaries)} macro boundaries")

    local_breakpoints = []
    for macro_start, macro_end in macro_ranges(macro_boundaries):
        local_breakpoints.extend(find_gradient_breakpoints(points, macro_start, macro_end, params))

    breakpoints = merge_breakpoints(macro_boundaries, local_breakpoints)
    segments = build_segments(points, breakpoints)

    logger.info(f"Gradient segmentation generated {len(segments)} segments")
    return SegmentationResult(segments=segments, macro_boundaries=macro_boundaries)
