"""
Input validation utilities for the profile pipeline.

The segmentation core degrades gracefully on odd numeric input and never
raises. These checks run at the edges (GPX loading, the analysis service and
the API) so that malformed requests are rejected with a clear message before
any segmentation happens.
"""

import math
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd

from core.models.segment import ElevationPoint
from core.segmentation.params import coerce_field

logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE_BYTES = 10 * 1024 * 1024  # 10MB
ALLOWED_EXTENSIONS = ('.gpx',)


class ValidationError(Exception):
    """Custom exception for validation errors."""
    pass


def validate_track_dataframe(df: pd.DataFrame, context: str = "GPX data") -> pd.DataFrame:
    """
    Validate a parsed track DataFrame has required columns and valid data.

    Args:
        df: DataFrame to validate
        context: Context description for error messages

    Returns:
        Validated DataFrame

    Raises:
        ValidationError: If validation fails
    """
    if df is None:
        raise ValidationError(f"{context}: DataFrame is None")

    if df.empty:
        raise ValidationError(f"{context}: DataFrame is empty")

    required_columns = ['latitude', 'longitude', 'elevation']
    missing_columns = [col for col in required_columns if col not in df.columns]

    if missing_columns:
        raise ValidationError(f"{context}: Missing required columns: {missing_columns}")

    if not df['latitude'].between(-90, 90).all():
        invalid_count = (~df['latitude'].between(-90, 90)).sum()
        raise ValidationError(f"{context}: {invalid_count} invalid latitude values (must be -90 to 90)")

    if not df['longitude'].between(-180, 180).all():
        invalid_count = (~df['longitude'].between(-180, 180)).sum()
        raise ValidationError(f"{context}: {invalid_count} invalid longitude values (must be -180 to 180)")

    if df['elevation'].isna().all():
        raise ValidationError(f"{context}: Track has no elevation data")

    if df['elevation'].isna().any():
        nan_count = df['elevation'].isna().sum()
        logger.warning(f"{context}: {nan_count} points without elevation")

    if len(df) < 2:
        raise ValidationError(f"{context}: Need at least 2 data points for analysis, got {len(df)}")

    logger.debug(f"{context}: Validation passed for {len(df)} data points")
    return df


def validate_elevation_points(points: Sequence[ElevationPoint],
                              context: str = "Elevation profile") -> Sequence[ElevationPoint]:
    """
    Validate an elevation profile before segmentation.

    Args:
        points: Ordered profile
        context: Context description for error messages

    Returns:
        The same points

    Raises:
        ValidationError: On an empty profile, non-finite values or decreasing distance
    """
    if points is None or len(points) == 0:
        raise ValidationError(f"{context}: No points")

    distances = np.array([p.distance for p in points], dtype=float)
    elevations = np.array([p.elevation for p in points], dtype=float)

    if not np.isfinite(distances).all():
        raise ValidationError(f"{context}: {int((~np.isfinite(distances)).sum())} non-finite distance values")

    if not np.isfinite(elevations).all():
        raise ValidationError(f"{context}: {int((~np.isfinite(elevations)).sum())} non-finite elevation values")

    if len(distances) > 1 and (np.diff(distances) < 0).any():
        first_bad = int(np.argmax(np.diff(distances) < 0)) + 1
        raise ValidationError(f"{context}: Distance decreases at point {first_bad}")

    logger.debug(f"{context}: Validation passed for {len(points)} points")
    return points


def validate_parameter_ranges(
    prominence: Optional[float] = None,
    min_distance: Optional[float] = None,
    gradient_change: Optional[float] = None,
    slope_difference: Optional[float] = None,
    r_squared_threshold: Optional[float] = None,
    inflection_sensitivity: Optional[float] = None,
    smoothing_window: Optional[int] = None
) -> None:
    """
    Validate parameter ranges for segmentation.

    Args:
        prominence: Macro-segmentation prominence in meters
        min_distance: Minimum segment distance in km
        gradient_change: Gradient/slope change threshold in percentage points
        slope_difference: Refiner slope difference as a fraction
        r_squared_threshold: R² quality bar
        inflection_sensitivity: Inflection sensitivity in meters
        smoothing_window: Moving-average window in points

    Raises:
        ValidationError: If any parameter is out of valid range
    """
    if prominence is not None:
        if not 0 < prominence <= 2000:
            raise ValidationError(f"Prominence must be 0-2000m, got {prominence}")

    if min_distance is not None:
        if not 0 <= min_distance <= 50:
            raise ValidationError(f"Min segment distance must be 0-50km, got {min_distance}")

    if gradient_change is not None:
        if not 0 < gradient_change <= 100:
            raise ValidationError(f"Gradient change must be 0-100%, got {gradient_change}")

    if slope_difference is not None:
        if not 0 <= slope_difference <= 1:
            raise ValidationError(f"Slope difference must be 0-1, got {slope_difference}")

    if r_squared_threshold is not None:
        if not 0 <= r_squared_threshold <= 1:
            raise ValidationError(f"R² threshold must be 0-1, got {r_squared_threshold}")

    if inflection_sensitivity is not None:
        if not 0 <= inflection_sensitivity <= 100:
            raise ValidationError(f"Inflection sensitivity must be 0-100m, got {inflection_sensitivity}")

    if smoothing_window is not None:
        if not 1 <= smoothing_window <= 101 or int(smoothing_window) != smoothing_window:
            raise ValidationError(f"Smoothing window must be an integer 1-101, got {smoothing_window}")


# Parameter field name -> validate_parameter_ranges keyword
PARAMETER_FIELDS = {
    'prominencia_minima': 'prominence',
    'distancia_minima': 'min_distance',
    'min_segment_distance': 'min_distance',
    'cambio_gradiente': 'gradient_change',
    'slope_change_threshold': 'gradient_change',
    'diferencia_pendiente': 'slope_difference',
    'r_squared_threshold': 'r_squared_threshold',
    'inflection_sensitivity': 'inflection_sensitivity',
    'smoothing_window': 'smoothing_window',
}

# Parameter fields that hold on/off flags
FLAG_FIELDS = ('detect_inflection_points',)


def validate_segmentation_params(values: Dict[str, Any]) -> None:
    """
    Validate a strategy parameter dictionary field by field.

    Unknown keys are ignored; non-numeric values are rejected, and so are
    flags that do not read as true or false.

    Raises:
        ValidationError: If a known parameter is out of range or not a number
    """
    checks = {}
    for field_name, keyword in PARAMETER_FIELDS.items():
        if field_name not in values or values[field_name] is None:
            continue
        value = values[field_name]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            raise ValidationError(f"Parameter {field_name} must be a number, got {value!r}")
        checks[keyword] = value

    for field_name in FLAG_FIELDS:
        if values.get(field_name) is None:
            continue
        try:
            coerce_field(field_name, values[field_name], bool)
        except ValueError as e:
            raise ValidationError(str(e))

    validate_parameter_ranges(**checks)


def validate_file_upload(uploaded_file: Any) -> None:
    """
    Validate uploaded file before processing.

    Args:
        uploaded_file: File-like object with optional ``name``/``filename`` and ``size``

    Raises:
        ValidationError: If file validation fails
    """
    if uploaded_file is None:
        raise ValidationError("No file uploaded")

    size = getattr(uploaded_file, 'size', None)
    if size is not None and size > MAX_UPLOAD_SIZE_BYTES:
        raise ValidationError(f"File too large: {size / 1024 / 1024:.1f}MB (max 10MB)")

    name = getattr(uploaded_file, 'filename', None) or getattr(uploaded_file, 'name', None)
    if isinstance(name, str):
        suffix = Path(name).suffix.lower()
        if suffix not in ALLOWED_EXTENSIONS:
            raise ValidationError(f"Invalid file type: {suffix or 'none'} (expected .gpx)")

    logger.debug(f"File validation passed: {name or 'unknown'}")
