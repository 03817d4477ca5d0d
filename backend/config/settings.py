"""
Application settings and configuration.

This module contains application-specific configuration, UI settings, and defaults.
For algorithmic constants, see core.constants module.
"""

import os
import logging
from typing import Dict, Any

# Import algorithmic constants from core module
from core.constants import (
    DEFAULT_R_SQUARED_THRESHOLD,
    DEFAULT_MIN_SEGMENT_DISTANCE_KM,
    DEFAULT_SLOPE_CHANGE_THRESHOLD_PERCENT,
    DEFAULT_INFLECTION_SENSITIVITY_METERS,
    DEFAULT_STEEP_SECTION_THRESHOLD_PERCENT,
    MIN_POINTS_FOR_SEGMENTATION,
)
from core.validation import MAX_UPLOAD_SIZE_BYTES

# App information
APP_NAME = "Trail Profile Lab"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Segment trail-running elevation profiles into climbs, descents and flats"

# Segmentation defaults
DEFAULT_SEGMENTATION_METHOD = "gradient_v2"
SEGMENTATION_METHODS = ["gradient_v2", "gradient", "refiner", "sustained_change"]
DEFAULT_STEEP_THRESHOLD = DEFAULT_STEEP_SECTION_THRESHOLD_PERCENT  # From core.constants

# UI slider ranges per parameter: (min, max, step)
PARAMETER_RANGES = {
    'prominencia_minima': (10.0, 200.0, 5.0),  # meters
    'distancia_minima': (0.05, 2.0, 0.05),  # km
    'cambio_gradiente': (1.0, 15.0, 0.5),  # percentage points
    'diferencia_pendiente': (0.02, 0.5, 0.01),  # fraction
    'r_squared_threshold': (0.5, 0.99, 0.01),
    'min_segment_distance': (0.05, 2.0, 0.05),  # km
    'slope_change_threshold': (1.0, 15.0, 0.5),  # percentage points
    'inflection_sensitivity': (0.5, 20.0, 0.5),  # meters
    'smoothing_window': (1, 21, 2),  # points
}

# Upload limits
MAX_UPLOAD_SIZE = MAX_UPLOAD_SIZE_BYTES  # From core.validation
MAX_PROFILE_POINTS = 50000  # Larger profiles are rejected by the API

# API server
API_HOST = os.environ.get("TRAIL_PROFILE_API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("TRAIL_PROFILE_API_PORT", "8000"))
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

# Logging configuration
LOGGING_CONFIG = {
    "level": logging.INFO,
    "format": '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    "handlers": [
        logging.StreamHandler(),
    ]
}


# =============== Configuration Classes ===============
# These classes provide typed access to configuration sections

class SegmentationConfig:
    """Configuration parameters for profile segmentation."""
    DEFAULT_METHOD = DEFAULT_SEGMENTATION_METHOD
    METHODS = SEGMENTATION_METHODS
    MIN_POINTS = MIN_POINTS_FOR_SEGMENTATION  # From core.constants
    R_SQUARED_THRESHOLD = DEFAULT_R_SQUARED_THRESHOLD
    MIN_SEGMENT_DISTANCE = DEFAULT_MIN_SEGMENT_DISTANCE_KM
    SLOPE_CHANGE_THRESHOLD = DEFAULT_SLOPE_CHANGE_THRESHOLD_PERCENT
    INFLECTION_SENSITIVITY = DEFAULT_INFLECTION_SENSITIVITY_METERS
    STEEP_THRESHOLD = DEFAULT_STEEP_THRESHOLD
    PARAMETER_RANGES = PARAMETER_RANGES

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get segmentation configuration as a dictionary."""
        return {
            'default_method': cls.DEFAULT_METHOD,
            'methods': list(cls.METHODS),
            'min_points': cls.MIN_POINTS,
            'r_squared_threshold': cls.R_SQUARED_THRESHOLD,
            'min_segment_distance': cls.MIN_SEGMENT_DISTANCE,
            'slope_change_threshold': cls.SLOPE_CHANGE_THRESHOLD,
            'inflection_sensitivity': cls.INFLECTION_SENSITIVITY,
            'steep_threshold': cls.STEEP_THRESHOLD,
            'parameter_ranges': {
                name: {'min': low, 'max': high, 'step': step}
                for name, (low, high, step) in cls.PARAMETER_RANGES.items()
            },
        }


class APIConfig:
    """Configuration parameters for the HTTP API."""
    HOST = API_HOST
    PORT = API_PORT
    CORS_ORIGINS = CORS_ORIGINS
    MAX_UPLOAD_SIZE = MAX_UPLOAD_SIZE
    MAX_PROFILE_POINTS = MAX_PROFILE_POINTS

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get API configuration as a dictionary."""
        return {
            'host': cls.HOST,
            'port': cls.PORT,
            'cors_origins': list(cls.CORS_ORIGINS),
            'max_upload_size': cls.MAX_UPLOAD_SIZE,
            'max_profile_points': cls.MAX_PROFILE_POINTS,
        }
