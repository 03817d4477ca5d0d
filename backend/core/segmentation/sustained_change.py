"""
Sustained-change segmentation (v1).

Segments a profile by accumulating points from a segment start and cutting
when one of three tests fires, in priority order:

1. a sustained slope change (before/after window slopes differ by at least
   the threshold, and the new slope holds for the minimum segment distance)
2. a sustained inflection point (peak, valley or direction change that holds
   for the minimum segment distance), when enabled
3. an R² fallback once the candidate is longer than 100 m

Each closed segment records why it was cut.
"""

import logging
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Deque, List, Optional, Sequence, TypeVar

from core.calculations import (
    calculate_gradient, smooth_elevations, profile_arrays, window_regression
)
from core.constants import (
    MIN_POINTS_FOR_SEGMENTATION,
    SLOPE_CHANGE_WINDOW_POINTS,
    INFLECTION_WINDOW_POINTS,
    R_SQUARED_FALLBACK_MIN_DISTANCE_KM,
)
from core.models.segment import ElevationPoint, Segment, SegmentationResult
from core.segments.builder import build_segment
from core.segments.macro import trivial_boundaries
from core.segmentation.params import SustainedChangeParams

logger = logging.getLogger(__name__)


class CutState(Enum):
    """State of the accumulation loop."""
    ACCUMULATING = 'accumulating'
    CUT = 'cut'


class InflectionType(str, Enum):
    PEAK = 'peak'
    VALLEY = 'valley'
    DIRECTION_CHANGE = 'direction_change'


INFLECTION_LABELS = {
    InflectionType.PEAK: 'Peak detected',
    InflectionType.VALLEY: 'Valley detected',
    InflectionType.DIRECTION_CHANGE: 'Direction change',
}


@dataclass(frozen=True)
class SlopeChange:
    """A point where the slope after it differs from the slope before it."""
    index: int
    previous_slope: float  # percent
    current_slope: float  # percent
    change_percent: float  # absolute difference in percentage points


@dataclass(frozen=True)
class InflectionPoint:
    """A local peak, valley or change of direction."""
    index: int
    inflection_type: InflectionType
    significance: float


E = TypeVar('E', SlopeChange, InflectionPoint)


# =============================================================================
# EVENT DETECTION
# =============================================================================

def _index_at_distance(points: Sequence[ElevationPoint], start_idx: int, distance_km: float) -> int:
    """First index at least distance_km after start_idx, or the last index."""
    target = points[start_idx].distance + distance_km
    for j in range(start_idx + 1, len(points)):
        if points[j].distance >= target:
            return j
    return len(points) - 1


def _holds_for(points: Sequence[ElevationPoint], idx: int, distance_km: float) -> Optional[int]:
    """End index of a stretch of distance_km starting at idx, or None if the profile is too short."""
    if distance_km <= 0:
        return idx
    end = _index_at_distance(points, idx, distance_km)
    if points[end].distance - points[idx].distance < distance_km:
        return None
    return end


def _thin_events(events: List[E], points: Sequence[ElevationPoint], min_spacing_km: float) -> List[E]:
    """Keep only events at least min_spacing_km after the previously kept one."""
    if min_spacing_km <= 0:
        return events

    kept: List[E] = []
    for event in events:
        if kept and points[event.index].distance - points[kept[-1].index].distance < min_spacing_km:
            continue
        kept.append(event)
    return kept


def detect_slope_changes(points: Sequence[ElevationPoint],
                         window_size: int = SLOPE_CHANGE_WINDOW_POINTS,
                         threshold: float = 3.0,
                         min_sustained_distance: float = 0.0) -> List[SlopeChange]:
    """
    Detect significant slope changes in the elevation profile.

    For every index, the slope of the window before it is compared with the
    slope of the window after it. When ``min_sustained_distance`` is positive,
    an event is only kept if the slope from the event over that distance stays
    within ``threshold`` of the post-change slope, and events closer than that
    distance to the previous event are merged into it.

    Args:
        points: Elevation profile
        window_size: Points in each before/after window
        threshold: Minimum change in percentage points
        min_sustained_distance: Distance (km) the new slope must hold

    Returns:
        List of SlopeChange events ordered by index
    """
    slope_changes: List[SlopeChange] = []

    if len(points) < window_size * 2:
        return slope_changes

    for i in range(window_size, len(points) - window_size):
        before_slope = calculate_gradient(points[i - window_size], points[i])
        after_slope = calculate_gradient(points[i], points[min(len(points) - 1, i + window_size)])
        change = abs(after_slope - before_slope)

        if change < threshold:
            continue

        if min_sustained_distance > 0:
            end = _holds_for(points, i, min_sustained_distance)
            if end is None:
                continue
            sustained_slope = calculate_gradient(points[i], points[end])
            if abs(sustained_slope - after_slope) >= threshold:
                continue

        slope_changes.append(SlopeChange(
            index=i,
            previous_slope=before_slope,
            current_slope=after_slope,
            change_percent=change
        ))

    return _thin_events(slope_changes, points, min_sustained_distance)


def detect_inflection_points(points: Sequence[ElevationPoint],
                             sensitivity: float = 1.0,
                             window_size: int = INFLECTION_WINDOW_POINTS,
                             min_sustained_distance: float = 0.0) -> List[InflectionPoint]:
    """
    Detect inflection points (peaks, valleys, direction changes).

    A peak is a point higher than the average of both neighbouring windows by
    more than ``sensitivity`` meters, a valley the opposite. A direction change
    is a sign flip between the slope into the point and the slope out of it,
    both steeper than ``sensitivity``. With a positive
    ``min_sustained_distance`` the new direction must hold for that distance
    and move the elevation by at least ``sensitivity`` meters.

    Args:
        points: Elevation profile
        sensitivity: Elevation difference in meters (also used as a slope floor)
        window_size: Points in each neighbouring window
        min_sustained_distance: Distance (km) the new direction must hold

    Returns:
        List of InflectionPoint events ordered by index
    """
    inflection_points: List[InflectionPoint] = []

    if len(points) < window_size * 2 + 1:
        return inflection_points

    for i in range(window_size, len(points) - window_size):
        left_window = points[i - window_size:i]
        right_window = points[i + 1:i + window_size + 1]
        current = points[i].elevation

        left_avg = sum(p.elevation for p in left_window) / len(left_window)
        right_avg = sum(p.elevation for p in right_window) / len(right_window)

        candidates = []

        if current > left_avg + sensitivity and current > right_avg + sensitivity:
            candidates.append((InflectionType.PEAK, min(current - left_avg, current - right_avg), -1))

        if current < left_avg - sensitivity and current < right_avg - sensitivity:
            candidates.append((InflectionType.VALLEY, min(left_avg - current, right_avg - current), 1))

        left_slope = calculate_gradient(left_window[0], points[i])
        right_slope = calculate_gradient(points[i], right_window[-1])
        if ((left_slope > 0) != (right_slope > 0) and
                abs(left_slope) > sensitivity and abs(right_slope) > sensitivity):
            direction = 1 if right_slope > 0 else -1
            candidates.append((InflectionType.DIRECTION_CHANGE, abs(left_slope) + abs(right_slope), direction))

        for inflection_type, significance, direction in candidates:
            if min_sustained_distance > 0:
                end = _holds_for(points, i, min_sustained_distance)
                if end is None:
                    continue
                elevation_change = (points[end].elevation - current) * direction
                if elevation_change < sensitivity:
                    continue

            inflection_points.append(InflectionPoint(
                index=i,
                inflection_type=inflection_type,
                significance=significance
            ))

    return _thin_events(inflection_points, points, min_sustained_distance)


# =============================================================================
# SEGMENTATION
# =============================================================================

def _take_event(queue: Deque[E], segment_start: int, candidate_end: int) -> Optional[E]:
    """Consume the next pending event inside (segment_start, candidate_end]."""
    while queue and queue[0].index <= segment_start:
        queue.popleft()
    if queue and queue[0].index <= candidate_end:
        return queue.popleft()
    return None


def _discard_within(queue: Deque[E], distances, limit_km: float) -> None:
    """Drop pending events located before limit_km."""
    while queue and distances[queue[0].index] < limit_km:
        queue.popleft()


def segment_sustained_change(points: Sequence[ElevationPoint],
                             params: Optional[SustainedChangeParams] = None) -> SegmentationResult:
    """
    Segment a profile with the sustained-change state machine.

    Args:
        points: Elevation profile
        params: Strategy parameters (defaults when None)

    Returns:
        SegmentationResult with contiguous segments and endpoint-only macro boundaries
    """
    if params is None:
        params = SustainedChangeParams()

    if len(points) < MIN_POINTS_FOR_SEGMENTATION:
        logger.warning(f"Not enough points for sustained-change segmentation ({len(points)})")
        return SegmentationResult(segments=[], macro_boundaries=trivial_boundaries(len(points)))

    logger.info(f"Starting sustained-change segmentation with params: {params.to_dict()}")

    # Cut detection runs on (optionally) smoothed elevations
    working = list(points)
    if params.smoothing_window > 1:
        smoothed = smooth_elevations([p.elevation for p in points], params.smoothing_window)
        working = [replace(p, elevation=e) for p, e in zip(points, smoothed)]

    slope_changes = deque(detect_slope_changes(
        working,
        threshold=params.slope_change_threshold,
        min_sustained_distance=params.min_segment_distance
    ))
    inflection_points = deque(detect_inflection_points(
        working,
        sensitivity=params.inflection_sensitivity,
        min_sustained_distance=params.min_segment_distance
    ) if params.detect_inflection_points else [])

    logger.debug(f"Detected {len(slope_changes)} sustained slope changes, "
                 f"{len(inflection_points)} sustained inflection points")

    distances, elevations = profile_arrays(working)
    n = len(points)
    segments: List[Segment] = []
    segment_start = 0
    candidate_end = segment_start + 2
    state = CutState.ACCUMULATING

    while candidate_end < n:
        reason = None

        slope_change = _take_event(slope_changes, segment_start, candidate_end)
        if slope_change is not None:
            reason = f"Slope change ({slope_change.change_percent:.1f}%)"

        if reason is None and params.detect_inflection_points:
            inflection = _take_event(inflection_points, segment_start, candidate_end)
            if inflection is not None:
                reason = INFLECTION_LABELS[inflection.inflection_type]

        if reason is None and distances[candidate_end] - distances[segment_start] > R_SQUARED_FALLBACK_MIN_DISTANCE_KM:
            regression = window_regression(distances, elevations, segment_start, candidate_end)
            if regression.r_squared < params.r_squared_threshold:
                reason = f"Low fit quality (R²={regression.r_squared:.3f})"

        state = CutState.CUT if reason is not None else CutState.ACCUMULATING

        if state == CutState.CUT:
            segment_end = candidate_end - 1
            segments.append(build_segment(points, segment_start, segment_end, cut_reason=reason))
            # The next event-based cut must leave at least min_segment_distance
            quiet_until = distances[candidate_end] + params.min_segment_distance
            _discard_within(slope_changes, distances, quiet_until)
            _discard_within(inflection_points, distances, quiet_until)
            segment_start = segment_end
            candidate_end = segment_start + 2
        else:
            candidate_end += 1

    # The trailing partial segment is always emitted
    segments.append(build_segment(points, segment_start, n - 1, cut_reason='Final segment'))

    if segments:
        avg_r_squared = sum(s.r_squared for s in segments) / len(segments)
        logger.info(f"Generated {len(segments)} sustained-change segments (average R²={avg_r_squared:.3f})")

    return SegmentationResult(segments=segments, macro_boundaries=trivial_boundaries(n))
