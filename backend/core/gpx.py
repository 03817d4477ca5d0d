"""
GPX file parsing and handling.

This module contains functions for loading GPX files and turning their track
points into the elevation profiles consumed by the segmentation strategies.
"""

import os
import gpxpy
import gpxpy.gpx
import pandas as pd
import logging
from typing import Tuple, Dict, List, Any

from core.calculations import calculate_distance, meters_to_kilometers
from core.models.segment import ElevationPoint
from core.validation import validate_file_upload, validate_track_dataframe, ValidationError

logger = logging.getLogger(__name__)


def _add_cumulative_distance(df: pd.DataFrame) -> pd.DataFrame:
    """Add a cumulative geodesic distance column (km) to a track DataFrame."""
    step_distances_m = [0.0]
    for i in range(1, len(df)):
        step_distances_m.append(calculate_distance(
            df['latitude'].iloc[i - 1], df['longitude'].iloc[i - 1],
            df['latitude'].iloc[i], df['longitude'].iloc[i]
        ))

    df['distance_km'] = [meters_to_kilometers(d) for d in pd.Series(step_distances_m).cumsum()]
    return df


def _point_rows(gpx: gpxpy.gpx.GPX) -> List[Dict[str, Any]]:
    """Track points, or route points when the file holds no recorded track."""
    points = [point for track in gpx.tracks for segment in track.segments for point in segment.points]
    if not points:
        points = [point for route in gpx.routes for point in route.points]

    return [
        {'latitude': p.latitude, 'longitude': p.longitude, 'elevation': p.elevation, 'time': p.time}
        for p in points
    ]


def load_gpx_file(gpx_file) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load and parse a GPX file into a pandas DataFrame with comprehensive validation.

    Points missing an elevation are filled by linear interpolation along the
    track.

    Args:
        gpx_file: A file-like object containing GPX data

    Returns:
        tuple: (DataFrame with latitude, longitude, elevation, time and
        distance_km columns, dict with metadata)

    Raises:
        ValidationError: If file validation or parsing fails
    """
    try:
        validate_file_upload(gpx_file)

        gpx = gpxpy.parse(gpx_file)

        if not gpx.tracks and not gpx.routes:
            raise ValidationError("GPX file contains no tracks or routes")

    except gpxpy.gpx.GPXException as e:
        raise ValidationError(f"Invalid GPX file format: {str(e)}") from e
    except Exception as e:
        if isinstance(e, ValidationError):
            raise
        raise ValidationError(f"Failed to parse GPX file: {str(e)}") from e

    metadata = {
        'name': None,
        'description': None,
        'time': None,
        'author': None
    }

    if gpx.tracks and gpx.tracks[0].name:
        metadata['name'] = gpx.tracks[0].name
    elif gpx.routes and gpx.routes[0].name:
        metadata['name'] = gpx.routes[0].name
    elif isinstance(getattr(gpx_file, 'name', None), str):
        filename = os.path.basename(gpx_file.name)
        metadata['name'] = os.path.splitext(filename)[0]

    if gpx.description:
        metadata['description'] = gpx.description
    if gpx.time:
        metadata['time'] = gpx.time
    if gpx.author_name:
        metadata['author'] = gpx.author_name

    df = pd.DataFrame(_point_rows(gpx), columns=['latitude', 'longitude', 'elevation', 'time'])
    df['elevation'] = pd.to_numeric(df['elevation'], errors='coerce')

    validated_df = validate_track_dataframe(df, f"GPX file {metadata.get('name') or 'unknown'}")

    validated_df['elevation'] = validated_df['elevation'].interpolate(limit_direction='both')
    validated_df = _add_cumulative_distance(validated_df)

    logger.info(f"Successfully loaded GPX file with {len(validated_df)} track points "
                f"({validated_df['distance_km'].iloc[-1]:.2f}km)")
    return validated_df, metadata


def load_gpx_from_path(file_path: str) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load a GPX file from disk path.

    Args:
        file_path: Path to the GPX file

    Returns:
        tuple: (DataFrame with track data, dict with metadata)

    Raises:
        FileNotFoundError: If the file does not exist
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"GPX file not found: {file_path}")

    with open(file_path, 'r') as f:
        data, metadata = load_gpx_file(f)

        if not metadata['name']:
            metadata['name'] = os.path.splitext(os.path.basename(file_path))[0]

        return data, metadata


def extract_elevation_profile(df: pd.DataFrame) -> List[ElevationPoint]:
    """
    Convert a loaded track DataFrame into an elevation profile.

    Args:
        df: DataFrame from load_gpx_file (needs distance_km and elevation)

    Returns:
        List of ElevationPoint ordered by distance
    """
    return [
        ElevationPoint(distance=float(distance), elevation=float(elevation))
        for distance, elevation in zip(df['distance_km'], df['elevation'])
    ]
