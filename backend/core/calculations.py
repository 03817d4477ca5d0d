"""
Shared calculations module.

This module contains the geometry and statistics kernel shared by every
segmentation strategy: linear regression with R² scoring, gradients between
profile points, slope classification and elevation smoothing. It provides a
single source of truth for these mathematical operations.
"""

import numpy as np
from geopy.distance import geodesic
from typing import List, Sequence, Tuple
import logging

from core.constants import (
    METERS_PER_KILOMETER, PERCENT, FLAT_GRADE_THRESHOLD_PERCENT,
    MINUTES_PER_HOUR, ESTIMATED_PACE_KMH
)
from core.models.segment import ElevationPoint, RegressionResult, SegmentType

logger = logging.getLogger(__name__)


# =============================================================================
# REGRESSION
# =============================================================================

def linear_regression(xs: Sequence[float], ys: Sequence[float]) -> RegressionResult:
    """
    Ordinary least squares fit of ys against xs.

    Degenerate inputs never raise:
    - fewer than 2 points: slope 0, intercept = the single y (or 0), R² = 1
    - all x identical: slope 0, intercept = mean(y), R² = 1
    - constant y (zero R² denominator): R² = 1

    Args:
        xs: Distances in kilometers
        ys: Elevations in meters

    Returns:
        RegressionResult with slope (m/km), intercept and R² in [0, 1]
    """
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    n = len(x)

    if n < 2:
        intercept = float(y[0]) if n == 1 else 0.0
        return RegressionResult(slope=0.0, intercept=intercept, r_squared=1.0)

    # Center the data to keep the sums well conditioned for long tracks
    x_mean = x.mean()
    y_mean = y.mean()
    dx = x - x_mean
    dy = y - y_mean

    sxx = float(np.dot(dx, dx))
    syy = float(np.dot(dy, dy))
    sxy = float(np.dot(dx, dy))

    if sxx == 0:
        return RegressionResult(slope=0.0, intercept=float(y_mean), r_squared=1.0)

    slope = sxy / sxx
    intercept = float(y_mean - slope * x_mean)

    denominator = sxx * syy
    if denominator == 0:
        return RegressionResult(slope=slope, intercept=intercept, r_squared=1.0)

    r_squared = (sxy * sxy) / denominator
    return RegressionResult(
        slope=slope,
        intercept=intercept,
        r_squared=min(1.0, max(0.0, r_squared))
    )


def regression_for_range(points: Sequence[ElevationPoint], start_idx: int, end_idx: int) -> RegressionResult:
    """Linear regression over points[start_idx..end_idx] (inclusive)."""
    window = points[start_idx:end_idx + 1]
    return linear_regression(
        [p.distance for p in window],
        [p.elevation for p in window]
    )


def profile_arrays(points: Sequence[ElevationPoint]) -> Tuple[np.ndarray, np.ndarray]:
    """Extract (distances_km, elevations_m) arrays from a profile."""
    distances = np.fromiter((p.distance for p in points), dtype=float, count=len(points))
    elevations = np.fromiter((p.elevation for p in points), dtype=float, count=len(points))
    return distances, elevations


def window_regression(distances: np.ndarray, elevations: np.ndarray,
                      start_idx: int, end_idx: int) -> RegressionResult:
    """
    Linear regression over an inclusive index window of pre-extracted arrays.

    Used by the breakpoint searches, which evaluate many overlapping windows.
    """
    return linear_regression(
        distances[start_idx:end_idx + 1],
        elevations[start_idx:end_idx + 1]
    )


# =============================================================================
# GRADIENTS AND CLASSIFICATION
# =============================================================================

def calculate_gradient(point1: ElevationPoint, point2: ElevationPoint) -> float:
    """
    Calculate the gradient between two points as a percentage.

    Zero-distance pairs (duplicate GPS fixes) return 0 instead of failing.
    """
    distance_m = (point2.distance - point1.distance) * METERS_PER_KILOMETER
    if distance_m == 0:
        return 0.0
    return (point2.elevation - point1.elevation) / distance_m * PERCENT


def slope_to_percent(slope: float) -> float:
    """Convert a regression slope (m per km) to a percent grade."""
    return slope / METERS_PER_KILOMETER * PERCENT


def classify_slope(slope_percent: float) -> SegmentType:
    """
    Classify a grade into ascent, descent or flat.

    The ±2 % dead band is fixed across all strategies.
    """
    if slope_percent > FLAT_GRADE_THRESHOLD_PERCENT:
        return SegmentType.ASCENT
    if slope_percent < -FLAT_GRADE_THRESHOLD_PERCENT:
        return SegmentType.DESCENT
    return SegmentType.FLAT


# =============================================================================
# SMOOTHING
# =============================================================================

def smooth_elevations(elevations: Sequence[float], window_size: int) -> List[float]:
    """
    Smooth elevation data using a centered moving average.

    Windows are truncated at the ends of the profile.

    Args:
        elevations: Raw elevation values
        window_size: Size of smoothing window (odd number recommended, 1 = off)

    Returns:
        Smoothed elevation values
    """
    values = [float(e) for e in elevations]
    if window_size <= 1 or len(values) < 2:
        return values

    half_window = int(window_size) // 2
    cumulative = np.concatenate(([0.0], np.cumsum(values)))
    smoothed = []

    for i in range(len(values)):
        start = max(0, i - half_window)
        end = min(len(values), i + half_window + 1)
        smoothed.append(float((cumulative[end] - cumulative[start]) / (end - start)))

    return smoothed


def calculate_elevation_changes(elevations: Sequence[float]) -> Tuple[float, float]:
    """
    Calculate cumulative point-to-point elevation gain and loss of a track.

    Args:
        elevations: List of elevation values

    Returns:
        Tuple of (gain_m, loss_m)
    """
    gain = 0.0
    loss = 0.0

    for previous, current in zip(elevations, elevations[1:]):
        diff = current - previous
        if diff > 0:
            gain += diff
        else:
            loss += abs(diff)

    return gain, loss


# =============================================================================
# UNIT CONVERSIONS AND GEODESY
# =============================================================================

def meters_to_kilometers(distance_m: float) -> float:
    """Convert meters to kilometers."""
    return distance_m / METERS_PER_KILOMETER


def kilometers_to_meters(distance_km: float) -> float:
    """Convert kilometers to meters."""
    return distance_km * METERS_PER_KILOMETER


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters."""
    return geodesic((lat1, lon1), (lat2, lon2)).meters


# =============================================================================
# TIME ESTIMATES
# =============================================================================

def estimate_moving_time(distance_km: float, pace_kmh: float = ESTIMATED_PACE_KMH) -> float:
    """Estimated moving time in minutes at a constant average pace."""
    return distance_km / pace_kmh * MINUTES_PER_HOUR


def format_duration(minutes: float) -> str:
    """Format a duration in minutes as hours and minutes, e.g. 125 -> "2h 5m"."""
    hours, mins = divmod(int(round(minutes)), int(MINUTES_PER_HOUR))
    return f"{hours}h {mins}m"
