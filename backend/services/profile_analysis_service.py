"""
Shared profile analysis service.

This module provides the analysis pipeline used by the API: validate the
profile and parameters, run a segmentation strategy, then derive the summary,
display rows and steep-section highlights shown next to the chart.
"""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

import numpy as np

from core.calculations import (
    calculate_elevation_changes, kilometers_to_meters, estimate_moving_time, format_duration
)
from core.constants import PERCENT, SEGMENT_TYPE_LABELS, MIN_POINTS_FOR_SEGMENTATION
from core.gpx import load_gpx_file, extract_elevation_profile
from core.models.segment import (
    ElevationPoint, Segment, SegmentType, SegmentationResult, segments_to_dataframe
)
from core.segments.builder import check_contiguity
from core.segmentation.factory import SegmentationFactory, segment_profile
from core.segmentation.gradient_fusion import stream_raw_segments, iter_fusion_frames
from core.segmentation.params import BaseParams
from core.segments.macro import find_extrema, trivial_boundaries
from core.validation import validate_elevation_points, validate_segmentation_params
from config.settings import DEFAULT_SEGMENTATION_METHOD, DEFAULT_STEEP_THRESHOLD

logger = logging.getLogger(__name__)

ParamsInput = Optional[Union[BaseParams, Dict[str, Any]]]


def find_steep_sections(points: Sequence[ElevationPoint],
                        threshold: float = DEFAULT_STEEP_THRESHOLD) -> List[Dict[str, Any]]:
    """
    Find contiguous runs where the point-to-point gradient is steeper than threshold.

    Climbs and descents both count. Zero-distance steps have a 0 % gradient.

    Args:
        points: Elevation profile
        threshold: Absolute gradient in percent

    Returns:
        List of dicts with start_idx, end_idx (point indices) and max_slope (percent)
    """
    if len(points) < 2:
        return []

    distances_m = np.diff([kilometers_to_meters(p.distance) for p in points])
    rises = np.diff([p.elevation for p in points])
    slopes = np.zeros(len(distances_m))
    np.divide(rises, distances_m, out=slopes, where=distances_m > 0)
    slopes = np.abs(slopes * PERCENT)

    sections = []
    run_start = None
    max_slope = 0.0

    for i, slope in enumerate(slopes):
        if slope > threshold:
            if run_start is None:
                run_start = i
                max_slope = slope
            else:
                max_slope = max(max_slope, slope)
        elif run_start is not None:
            sections.append({'start_idx': run_start, 'end_idx': i, 'max_slope': float(max_slope)})
            run_start = None

    if run_start is not None:
        sections.append({'start_idx': run_start, 'end_idx': len(slopes), 'max_slope': float(max_slope)})

    return sections


def build_display_rows(segments: Sequence[Segment]) -> List[Dict[str, Any]]:
    """
    Build table rows for a segment list.

    Segments are named by type with a per-type counter ("Ascent 1", "Flat 1",
    "Ascent 2"). The grade is the endpoint grade, not the regression slope.
    """
    counters = {segment_type: 0 for segment_type in SegmentType}
    rows = []

    for segment in segments:
        counters[segment.segment_type] += 1
        label = SEGMENT_TYPE_LABELS[segment.segment_type.value]
        rows.append({
            'name': f"{label} {counters[segment.segment_type]}",
            'start_idx': segment.start_idx,
            'end_idx': segment.end_idx,
            'distance_km': round(segment.distance, 3),
            'elevation_gain': round(segment.elevation_gain, 1),
            'elevation_loss': round(segment.elevation_loss, 1),
            'grade_percent': round(segment.grade_percent, 1),
            'r_squared': round(segment.r_squared, 3),
            'type': segment.segment_type.value,
            'color': segment.color,
            'cut_reason': segment.cut_reason,
        })

    return rows


class ProfileAnalysisResult:
    """Container for profile analysis results."""

    def __init__(self,
                 points: Sequence[ElevationPoint],
                 result: SegmentationResult,
                 method: str,
                 params: Dict[str, Any],
                 steep_sections: List[Dict[str, Any]],
                 metadata: Optional[Dict[str, Any]] = None):
        self.points = list(points)
        self.result = result
        self.method = method
        self.params = params
        self.steep_sections = steep_sections
        self.metadata = metadata or {}

        self._calculate_summary_metrics()

    @property
    def segments(self) -> List[Segment]:
        return self.result.segments

    def _calculate_summary_metrics(self) -> None:
        """Calculate summary metrics from points and segments."""
        if not self.points:
            self.total_distance = 0.0
            self.total_gain = 0.0
            self.total_loss = 0.0
            self.max_elevation = None
            self.min_elevation = None
        else:
            elevations = [p.elevation for p in self.points]
            self.total_distance = self.points[-1].distance - self.points[0].distance
            self.total_gain, self.total_loss = calculate_elevation_changes(elevations)
            self.max_elevation = max(elevations)
            self.min_elevation = min(elevations)
        self.estimated_time_minutes = estimate_moving_time(self.total_distance)

        segments_df = segments_to_dataframe(self.segments)
        if segments_df.empty:
            self.segment_counts = {segment_type.value: 0 for segment_type in SegmentType}
            self.mean_r_squared = None
            self.min_r_squared = None
            return

        type_counts = segments_df['type'].value_counts()
        self.segment_counts = {
            segment_type.value: int(type_counts.get(segment_type.value, 0))
            for segment_type in SegmentType
        }
        self.mean_r_squared = float(segments_df['r_squared'].mean())
        self.min_r_squared = float(segments_df['r_squared'].min())

    def summary(self) -> Dict[str, Any]:
        return {
            'point_count': len(self.points),
            'segment_count': len(self.segments),
            'total_distance_km': round(self.total_distance, 3),
            'total_gain': round(self.total_gain, 1),
            'total_loss': round(self.total_loss, 1),
            'max_elevation': round(self.max_elevation, 1) if self.max_elevation is not None else None,
            'min_elevation': round(self.min_elevation, 1) if self.min_elevation is not None else None,
            'estimated_time_minutes': round(self.estimated_time_minutes, 1),
            'estimated_time': format_duration(self.estimated_time_minutes),
            'segment_counts': self.segment_counts,
            'mean_r_squared': self.mean_r_squared,
            'min_r_squared': self.min_r_squared,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        result = self.result.to_dict()
        result.update({
            'method': self.method,
            'params': self.params,
            'rows': build_display_rows(self.segments),
            'summary': self.summary(),
            'steep_sections': self.steep_sections,
            'metadata': {key: (str(value) if value is not None else None)
                         for key, value in self.metadata.items()},
        })
        return result


def _resolve_params(method: str, params: ParamsInput) -> BaseParams:
    """Validate and coerce request parameters into the strategy's params type."""
    strategy = SegmentationFactory.create_strategy(method)
    values = params.to_dict() if isinstance(params, BaseParams) else (params or {})
    validate_segmentation_params(values)
    return strategy.build_params(params)


def analyze_profile(points: Sequence[ElevationPoint],
                    method: str = DEFAULT_SEGMENTATION_METHOD,
                    params: ParamsInput = None,
                    steep_threshold: float = DEFAULT_STEEP_THRESHOLD,
                    metadata: Optional[Dict[str, Any]] = None) -> ProfileAnalysisResult:
    """
    Analyze an elevation profile that's already in memory.

    Args:
        points: Ordered elevation profile
        method: Segmentation strategy name
        params: Optional strategy parameters (object or dict)
        steep_threshold: Gradient (percent) above which steep sections are flagged
        metadata: Optional metadata dict (track name etc.)

    Returns:
        ProfileAnalysisResult: Complete analysis results

    Raises:
        ValidationError: If the profile or parameters are invalid
    """
    validate_elevation_points(points)

    if not SegmentationFactory.is_supported(method):
        logger.warning(f"Unknown segmentation method '{method}', using default")
        method = SegmentationFactory.get_default_method()
    resolved = _resolve_params(method, params)

    try:
        logger.info(f"Analyzing profile with {len(points)} points using '{method}'")

        result = segment_profile(points, method, resolved)

        if result.segments and not check_contiguity(result.segments, len(points)):
            logger.error(f"Strategy '{method}' returned non-contiguous segments")

        steep_sections = find_steep_sections(points, steep_threshold)
        logger.info(f"Analysis complete: {len(result.segments)} segments, "
                    f"{len(steep_sections)} steep sections")

        return ProfileAnalysisResult(
            points=points,
            result=result,
            method=method,
            params=resolved.to_dict(),
            steep_sections=steep_sections,
            metadata=metadata
        )

    except Exception as e:
        logger.error(f"Error analyzing profile with '{method}': {e}")
        raise


def analyze_gpx_file(file,
                     method: str = DEFAULT_SEGMENTATION_METHOD,
                     params: ParamsInput = None,
                     steep_threshold: float = DEFAULT_STEEP_THRESHOLD) -> ProfileAnalysisResult:
    """
    Load a GPX file and analyze its elevation profile.

    Args:
        file: File-like object with GPX content
        method: Segmentation strategy name
        params: Optional strategy parameters
        steep_threshold: Steep-section gradient threshold (percent)

    Returns:
        ProfileAnalysisResult: Complete analysis results
    """
    filename = getattr(file, 'name', None) or 'uploaded.gpx'

    try:
        track_data, metadata = load_gpx_file(file)
        points = extract_elevation_profile(track_data)
        logger.info(f"Loaded {filename} with {len(points)} points")

        return analyze_profile(points, method, params, steep_threshold, metadata)

    except Exception as e:
        logger.error(f"Error analyzing {filename}: {e}")
        raise


async def stream_segmentation_events(points: Sequence[ElevationPoint],
                                     params: ParamsInput = None,
                                     delay: Optional[float] = None) -> AsyncIterator[Dict[str, Any]]:
    """
    Stream the detect-and-fuse pipeline as JSON-serializable events.

    Emits one ``raw_segment`` event per phase 1 detection, one ``frame`` event
    per fusion frame, then a ``result`` event with the final segments.

    Raises:
        ValidationError: If the profile or parameters are invalid
    """
    validate_elevation_points(points)
    resolved = _resolve_params('gradient_v2', params)

    stream_kwargs = {} if delay is None else {'delay': delay}
    raw_segments = []

    async for segment, total_found in stream_raw_segments(points, resolved, **stream_kwargs):
        raw_segments.append(segment)
        yield {'event': 'raw_segment', 'total_found': total_found, 'segment': segment.to_dict()}

    final_segments = raw_segments
    frame_count = 0
    for frame_index, frame in enumerate(iter_fusion_frames(raw_segments, points, resolved.distancia_minima)):
        final_segments = frame
        frame_count += 1
        yield {'event': 'frame', 'index': frame_index, 'segments': [s.to_dict() for s in frame]}

    if len(points) < MIN_POINTS_FOR_SEGMENTATION:
        macro_boundaries = trivial_boundaries(len(points))
    else:
        macro_boundaries = find_extrema(points, resolved.prominencia_minima)
    logger.info(f"Streamed {len(raw_segments)} raw segments and {frame_count} frames")

    yield {
        'event': 'result',
        'segments': [s.to_dict() for s in final_segments],
        'macro_boundaries': macro_boundaries,
        'frame_count': frame_count,
    }
