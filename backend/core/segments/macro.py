"""
Macro-segmentation by topographic prominence.

This module finds the significant peaks and valleys of an elevation profile.
The resulting boundaries delimit the broad climbs and descents that the
breakpoint strategies refine further.
"""

import logging
from enum import Enum
from typing import Iterator, List, Sequence, Tuple

from core.constants import INITIAL_TREND_LOOKAHEAD_POINTS
from core.models.segment import ElevationPoint

logger = logging.getLogger(__name__)


class Trend(Enum):
    UP = 'up'
    DOWN = 'down'


def trivial_boundaries(point_count: int) -> List[int]:
    """Endpoint-only boundary list: [] for no points, [0] for one, else [0, n-1]."""
    if point_count <= 0:
        return []
    return sorted({0, point_count - 1})


def find_extrema(points: Sequence[ElevationPoint], prominence: float) -> List[int]:
    """
    Find significant peaks and valleys based on prominence.

    A single left-to-right scan keeps a current trend and the index of the
    best extremum seen under that trend. The extremum is committed only once
    the elevation reverses by at least ``prominence`` meters from it, so small
    wiggles are ignored while larger ones keep moving the running extremum.

    Args:
        points: Ordered elevation profile
        prominence: Minimum elevation reversal in meters

    Returns:
        Sorted, de-duplicated boundary indices, starting at 0 and ending at len-1
    """
    if len(points) < 3:
        return trivial_boundaries(len(points))

    extrema = [0]

    # Infer the initial trend from a point a short way into the profile
    check_idx = min(INITIAL_TREND_LOOKAHEAD_POINTS, len(points) - 1)
    trend = Trend.UP if points[check_idx].elevation > points[0].elevation else Trend.DOWN

    extremum_idx = 0

    for i in range(1, len(points)):
        current = points[i].elevation
        extremum = points[extremum_idx].elevation

        if trend == Trend.UP:
            if current >= extremum:
                extremum_idx = i
            elif extremum - current >= prominence:
                extrema.append(extremum_idx)
                trend = Trend.DOWN
                extremum_idx = i
        else:
            if current <= extremum:
                extremum_idx = i
            elif current - extremum >= prominence:
                extrema.append(extremum_idx)
                trend = Trend.UP
                extremum_idx = i

    extrema.append(len(points) - 1)
    boundaries = sorted(set(extrema))

    logger.debug(f"Found {len(boundaries)} macro boundaries with prominence={prominence}m")
    return boundaries


def macro_ranges(boundaries: Sequence[int]) -> Iterator[Tuple[int, int]]:
    """Yield (start, end) index pairs for each non-empty macro segment."""
    for start, end in zip(boundaries, boundaries[1:]):
        if end > start:
            yield start, end
