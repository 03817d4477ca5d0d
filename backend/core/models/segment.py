"""
Segment data models.

This module defines the data structures for elevation profiles and the
piecewise-linear segments detected in them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Sequence
import pandas as pd


@dataclass(frozen=True)
class ElevationPoint:
    """
    A single sample of an elevation profile.

    Produced upstream (GPX parsing) and never mutated by the segmentation core.
    """
    distance: float  # Cumulative distance in kilometers (non-decreasing)
    elevation: float  # Elevation in meters
    segment_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'distance': self.distance,
            'elevation': self.elevation,
            'segment_index': self.segment_index,
        }


@dataclass(frozen=True)
class RegressionResult:
    """Least-squares fit of elevation (m) against distance (km)."""
    slope: float  # Meters of elevation per kilometer
    intercept: float
    r_squared: float  # 0-1, 1.0 for degenerate fits


class SegmentType(str, Enum):
    """Classification of a segment by its regression grade."""
    ASCENT = 'asc'
    DESCENT = 'desc'
    FLAT = 'hor'


@dataclass
class Segment:
    """
    Represents one piecewise-linear section of an elevation profile.

    Consecutive segments produced for the same profile share their boundary
    point: ``segments[i].end_idx == segments[i + 1].start_idx``.
    """
    # Index boundaries in the original profile (inclusive)
    start_idx: int
    end_idx: int

    # Copies of profile[start_idx] and profile[end_idx]
    start_point: ElevationPoint
    end_point: ElevationPoint

    # Regression over the segment's points
    slope: float  # m per km
    intercept: float
    r_squared: float

    # Totals, computed from the endpoint elevation delta only
    distance: float  # km
    elevation_gain: float  # m, >= 0
    elevation_loss: float  # m, >= 0

    segment_type: SegmentType
    color: str

    # Why the segment was closed (sustained-change strategy only)
    cut_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert segment to dictionary for DataFrame creation and JSON output."""
        return {
            'start_idx': self.start_idx,
            'end_idx': self.end_idx,
            'start_point': self.start_point.to_dict(),
            'end_point': self.end_point.to_dict(),
            'slope': self.slope,
            'intercept': self.intercept,
            'r_squared': self.r_squared,
            'distance': self.distance,
            'elevation_gain': self.elevation_gain,
            'elevation_loss': self.elevation_loss,
            'type': self.segment_type.value,
            'color': self.color,
            'cut_reason': self.cut_reason,
        }

    @property
    def slope_percent(self) -> float:
        """Regression slope expressed as a percent grade."""
        from core.constants import METERS_PER_KILOMETER, PERCENT
        return self.slope / METERS_PER_KILOMETER * PERCENT

    @property
    def grade_percent(self) -> float:
        """Grade between the two endpoints in percent."""
        if self.distance_m <= 0:
            return 0.0
        elevation_change = self.end_point.elevation - self.start_point.elevation
        return elevation_change / self.distance_m * 100

    @property
    def distance_m(self) -> float:
        """Distance in meters."""
        from core.constants import METERS_PER_KILOMETER
        return self.distance * METERS_PER_KILOMETER

    @property
    def point_count(self) -> int:
        return self.end_idx - self.start_idx + 1


@dataclass
class SegmentationResult:
    """Output of every segmentation strategy."""
    segments: List[Segment] = field(default_factory=list)
    macro_boundaries: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'segments': [segment.to_dict() for segment in self.segments],
            'macro_boundaries': list(self.macro_boundaries),
        }


@dataclass
class AnimatedSegmentationResult(SegmentationResult):
    """Detect-and-fuse output: the final segments plus every fusion frame."""
    frames: List[List[Segment]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['frames'] = [[segment.to_dict() for segment in frame] for frame in self.frames]
        return result


def segments_to_dataframe(segments: List[Segment]) -> pd.DataFrame:
    """
    Convert a list of segments to a pandas DataFrame.

    Endpoint copies are flattened into start/end distance and elevation columns.

    Args:
        segments: List of Segment objects

    Returns:
        pandas DataFrame with segment data
    """
    if not segments:
        return pd.DataFrame()

    rows = []
    for segment in segments:
        row = segment.to_dict()
        start_point = row.pop('start_point')
        end_point = row.pop('end_point')
        row['start_distance'] = start_point['distance']
        row['start_elevation'] = start_point['elevation']
        row['end_distance'] = end_point['distance']
        row['end_elevation'] = end_point['elevation']
        rows.append(row)

    return pd.DataFrame(rows)


def dataframe_to_segments(df: pd.DataFrame, points: Sequence[ElevationPoint]) -> List[Segment]:
    """
    Convert a pandas DataFrame back to a list of Segment objects.

    Args:
        df: DataFrame with segment columns (as produced by segments_to_dataframe)
        points: The profile the segments were computed from

    Returns:
        List of Segment objects
    """
    segments = []

    for _, row in df.iterrows():
        start_idx = int(row['start_idx'])
        end_idx = int(row['end_idx'])
        cut_reason = row.get('cut_reason')
        segment = Segment(
            start_idx=start_idx,
            end_idx=end_idx,
            start_point=points[start_idx],
            end_point=points[end_idx],
            slope=row['slope'],
            intercept=row['intercept'],
            r_squared=row['r_squared'],
            distance=row['distance'],
            elevation_gain=row['elevation_gain'],
            elevation_loss=row['elevation_loss'],
            segment_type=SegmentType(row['type']),
            color=row['color'],
            cut_reason=cut_reason if isinstance(cut_reason, str) else None
        )
        segments.append(segment)

    return segments
