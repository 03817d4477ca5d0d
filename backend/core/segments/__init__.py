"""
Segments package.

This package contains the shared building blocks of every segmentation
strategy: prominence-based macro-segmentation and segment construction.
Clean, focused interface with no circular dependencies.
"""

# Macro-segmentation
from .macro import find_extrema, macro_ranges, trivial_boundaries

# Segment construction
from .builder import (
    build_segment,
    build_segments,
    merge_breakpoints,
    check_contiguity
)

# Segment models
from core.models.segment import (
    ElevationPoint, Segment, SegmentType, segments_to_dataframe, dataframe_to_segments
)

__all__ = [
    # Macro-segmentation
    'find_extrema',
    'macro_ranges',
    'trivial_boundaries',

    # Segment construction
    'build_segment',
    'build_segments',
    'merge_breakpoints',
    'check_contiguity',

    # Models
    'ElevationPoint',
    'Segment',
    'SegmentType',
    'segments_to_dataframe',
    'dataframe_to_segments',
]
