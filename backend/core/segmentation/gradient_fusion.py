"""
Gradient detect-and-fuse segmentation (v2).

Phase 1 walks each prominence macro segment and emits a raw segment every time
the candidate gradient departs from a short 5-point look-ahead gradient by at
least ``cambio_gradiente``. Distance is ignored here, so raw segments may be
very short.

Phase 2 repeatedly fuses undersized segments with a neighbour. Each pass
evaluates every possible left/right fusion, performs only the one with the
best resulting R² (and only above 0.7), and records the full segment list as
a frame. The last frame is the result.

Both phases are generators so callers can consume segments and frames
progressively. ``stream_raw_segments`` wraps phase 1 for asyncio consumers.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Iterator, List, Optional, Sequence, Tuple

from core.calculations import calculate_gradient, profile_arrays, window_regression
from core.constants import (
    MIN_POINTS_FOR_SEGMENTATION,
    RAW_LOOKAHEAD_POINTS,
    FUSION_MAX_PASSES,
    FUSION_MIN_R_SQUARED,
    RAW_EMISSION_DELAY_SECONDS,
)
from core.models.segment import ElevationPoint, Segment, AnimatedSegmentationResult
from core.segments.builder import build_segment
from core.segments.macro import find_extrema, macro_ranges, trivial_boundaries
from core.segmentation.params import GradientFusionParams

logger = logging.getLogger(__name__)

RawSegmentCallback = Callable[[Segment, int], None]
Frame = List[Segment]


# =============================================================================
# PHASE 1: RAW DETECTION
# =============================================================================

def iter_raw_segments(points: Sequence[ElevationPoint],
                      params: Optional[GradientFusionParams] = None) -> Iterator[Tuple[Segment, int]]:
    """
    Yield raw segments as they are detected.

    Args:
        points: Elevation profile
        params: Strategy parameters (defaults when None)

    Yields:
        (segment, total_found_so_far) after each detection
    """
    if params is None:
        params = GradientFusionParams()

    if len(points) < MIN_POINTS_FOR_SEGMENTATION:
        return

    macro_boundaries = find_extrema(points, params.prominencia_minima)
    total_found = 0

    for macro_start, macro_end in macro_ranges(macro_boundaries):
        current_start = macro_start

        while current_start < macro_end:
            current_end = current_start + 1

            while current_end < macro_end:
                candidate_gradient = calculate_gradient(points[current_start], points[current_end])
                lookahead_end = min(current_end + RAW_LOOKAHEAD_POINTS, macro_end)
                lookahead_gradient = calculate_gradient(points[current_end], points[lookahead_end])

                if abs(candidate_gradient - lookahead_gradient) >= params.cambio_gradiente:
                    break
                current_end += 1

            segment = build_segment(points, current_start, current_end)
            total_found += 1
            logger.debug(f"Raw segment {total_found}: [{current_start}, {current_end}] "
                         f"R²={segment.r_squared:.3f}, distance={segment.distance:.3f}km")
            yield segment, total_found

            current_start = current_end


def detect_raw(points: Sequence[ElevationPoint],
               params: Optional[GradientFusionParams] = None,
               on_segment: Optional[RawSegmentCallback] = None) -> List[Segment]:
    """
    Run phase 1 to completion.

    Args:
        points: Elevation profile
        params: Strategy parameters
        on_segment: Optional callback invoked with (segment, total_found) per detection

    Returns:
        Raw segment list (empty below the minimum point count)
    """
    raw_segments = []

    for segment, total_found in iter_raw_segments(points, params):
        raw_segments.append(segment)
        if on_segment is not None:
            on_segment(segment, total_found)

    logger.info(f"Raw detection found {len(raw_segments)} segments")
    return raw_segments


async def stream_raw_segments(points: Sequence[ElevationPoint],
                              params: Optional[GradientFusionParams] = None,
                              delay: float = RAW_EMISSION_DELAY_SECONDS) -> AsyncIterator[Tuple[Segment, int]]:
    """
    Async variant of phase 1 that yields control after every detection.

    Cancelling the consumer stops detection; raw segments are independent so
    nothing needs cleaning up.
    """
    for segment, total_found in iter_raw_segments(points, params):
        yield segment, total_found
        await asyncio.sleep(delay)


# =============================================================================
# PHASE 2: FUSION
# =============================================================================

def _best_fusion(segments: List[Segment], distances, elevations,
                 min_distance_km: float) -> Optional[Tuple[float, int]]:
    """Best (r_squared, left_index) fusion among all undersized segments, or None."""
    best = None

    for i, segment in enumerate(segments):
        if segment.distance >= min_distance_km:
            continue

        for left in (i - 1, i):
            if left < 0 or left + 1 >= len(segments):
                continue
            r_squared = window_regression(
                distances, elevations, segments[left].start_idx, segments[left + 1].end_idx
            ).r_squared
            if best is None or r_squared > best[0]:
                best = (r_squared, left)

    return best


def iter_fusion_frames(raw_segments: Sequence[Segment],
                       points: Sequence[ElevationPoint],
                       min_distance_km: float) -> Iterator[Frame]:
    """
    Yield fusion frames, starting with the raw list.

    Each subsequent frame has exactly one segment fewer than the previous one.
    The sequence is finite and can be restarted by calling again with the same
    raw list.

    Args:
        raw_segments: Phase 1 output
        points: Elevation profile the segments index into
        min_distance_km: Segments shorter than this are fusion candidates

    Yields:
        Complete segment lists
    """
    if not raw_segments:
        return

    current = list(raw_segments)
    yield list(current)

    distances, elevations = profile_arrays(points)
    passes = 0

    while passes < FUSION_MAX_PASSES:
        passes += 1
        best = _best_fusion(current, distances, elevations, min_distance_km)

        if best is None:
            break

        r_squared, left = best
        if r_squared <= FUSION_MIN_R_SQUARED:
            logger.debug(f"Best fusion R²={r_squared:.3f} not above {FUSION_MIN_R_SQUARED}, stopping")
            break

        fused = build_segment(points, current[left].start_idx, current[left + 1].end_idx)
        current[left:left + 2] = [fused]
        logger.debug(f"Pass {passes}: fused segments {left} and {left + 1} (R²={r_squared:.3f})")
        yield list(current)

    short_segments = [s for s in current if s.distance < min_distance_km]
    if short_segments:
        logger.warning(f"{len(short_segments)} segments remain below {min_distance_km}km "
                       f"after {passes} fusion passes")


def fuse(raw_segments: Sequence[Segment],
         points: Sequence[ElevationPoint],
         min_distance_km: float) -> List[Frame]:
    """Run phase 2 to completion and return every frame (empty for no raw segments)."""
    frames = list(iter_fusion_frames(raw_segments, points, min_distance_km))
    logger.info(f"Fusion produced {len(frames)} frames")
    return frames


# =============================================================================
# COMPOSITION
# =============================================================================

def segment_with_animation(points: Sequence[ElevationPoint],
                           params: Optional[GradientFusionParams] = None,
                           on_segment: Optional[RawSegmentCallback] = None) -> AnimatedSegmentationResult:
    """
    Detect raw segments, fuse them, and return the final frame with all frames.

    Args:
        points: Elevation profile
        params: Strategy parameters (defaults when None)
        on_segment: Optional phase 1 callback

    Returns:
        AnimatedSegmentationResult(segments=final frame, frames, macro_boundaries)
    """
    if params is None:
        params = GradientFusionParams()

    if len(points) < MIN_POINTS_FOR_SEGMENTATION:
        logger.warning(f"Not enough points for detect-and-fuse segmentation ({len(points)})")
        return AnimatedSegmentationResult(
            segments=[], macro_boundaries=trivial_boundaries(len(points)), frames=[]
        )

    logger.info(f"Starting detect-and-fuse segmentation with params: {params.to_dict()}")

    raw_segments = detect_raw(points, params, on_segment)
    frames = fuse(raw_segments, points, params.distancia_minima)
    segments = frames[-1] if frames else raw_segments
    macro_boundaries = find_extrema(points, params.prominencia_minima)

    if segments:
        avg_r_squared = sum(s.r_squared for s in segments) / len(segments)
        logger.info(f"Detect-and-fuse generated {len(segments)} segments (average R²={avg_r_squared:.3f})")

    return AnimatedSegmentationResult(
        segments=list(segments),
        macro_boundaries=macro_boundaries,
        frames=frames
    )
