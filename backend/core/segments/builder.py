"""
Segment building.

Turns breakpoint lists into finished Segment records. Every strategy funnels
its final breakpoints through this module, so regression, classification and
gain/loss totals are computed the same way everywhere.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from core.calculations import regression_for_range, slope_to_percent, classify_slope
from core.constants import SEGMENT_COLORS
from core.models.segment import ElevationPoint, Segment

logger = logging.getLogger(__name__)


def build_segment(points: Sequence[ElevationPoint],
                  start_idx: int,
                  end_idx: int,
                  cut_reason: Optional[str] = None) -> Segment:
    """
    Build one Segment over points[start_idx..end_idx].

    The regression is re-run over exactly those points. Gain and loss come from
    the endpoint elevation delta only, not from intermediate point deltas.

    Args:
        points: Elevation profile
        start_idx: First index of the segment
        end_idx: Last index of the segment (inclusive, >= start_idx)
        cut_reason: Optional label describing why the segment was closed

    Returns:
        Segment object
    """
    assert 0 <= start_idx <= end_idx < len(points), \
        f"Segment range [{start_idx}, {end_idx}] outside profile of {len(points)} points"

    start_point = points[start_idx]
    end_point = points[end_idx]
    regression = regression_for_range(points, start_idx, end_idx)
    segment_type = classify_slope(slope_to_percent(regression.slope))
    elevation_change = end_point.elevation - start_point.elevation

    return Segment(
        start_idx=start_idx,
        end_idx=end_idx,
        start_point=start_point,
        end_point=end_point,
        slope=regression.slope,
        intercept=regression.intercept,
        r_squared=regression.r_squared,
        distance=end_point.distance - start_point.distance,
        elevation_gain=max(elevation_change, 0.0),
        elevation_loss=max(-elevation_change, 0.0),
        segment_type=segment_type,
        color=SEGMENT_COLORS[segment_type.value],
        cut_reason=cut_reason
    )


def merge_breakpoints(*breakpoint_lists: Iterable[int]) -> List[int]:
    """Combine breakpoint lists into one sorted, de-duplicated list."""
    merged = set()
    for breakpoints in breakpoint_lists:
        merged.update(breakpoints)
    return sorted(merged)


def build_segments(points: Sequence[ElevationPoint], breakpoints: Sequence[int]) -> List[Segment]:
    """
    Build contiguous segments between consecutive breakpoints.

    Args:
        points: Elevation profile
        breakpoints: Sorted indices including 0 and len(points) - 1

    Returns:
        List of segments sharing their boundary points
    """
    segments = []

    for start_idx, end_idx in zip(breakpoints, breakpoints[1:]):
        if end_idx <= start_idx:
            continue
        segments.append(build_segment(points, start_idx, end_idx))

    logger.debug(f"Built {len(segments)} segments from {len(breakpoints)} breakpoints")
    return segments


def check_contiguity(segments: Sequence[Segment], point_count: int) -> bool:
    """
    Check that segments cover [0, point_count - 1] with shared boundaries only.

    Args:
        segments: Segments produced for one profile
        point_count: Number of points in that profile

    Returns:
        True when the list is index-contiguous and index-complete
    """
    if not segments:
        return False

    if segments[0].start_idx != 0 or segments[-1].end_idx != point_count - 1:
        return False

    return all(
        previous.end_idx == current.start_idx
        for previous, current in zip(segments, segments[1:])
    )
