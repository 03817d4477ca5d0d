"""
Parameter objects for the segmentation strategies.

Each strategy takes its own frozen parameter dataclass. The core never mutates
parameters; changing a value always means building a new object and running a
fresh computation.
"""

from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Type, TypeVar

from core.constants import (
    DEFAULT_R_SQUARED_THRESHOLD,
    DEFAULT_MIN_SEGMENT_DISTANCE_KM,
    DEFAULT_SLOPE_CHANGE_THRESHOLD_PERCENT,
    DEFAULT_INFLECTION_SENSITIVITY_METERS,
    DEFAULT_SMOOTHING_WINDOW_POINTS,
    DEFAULT_REFINER_PROMINENCE_METERS,
    DEFAULT_REFINER_MIN_DISTANCE_KM,
    DEFAULT_REFINER_SLOPE_DIFFERENCE,
    DEFAULT_GRADIENT_PROMINENCE_METERS,
    DEFAULT_GRADIENT_MIN_DISTANCE_KM,
    DEFAULT_GRADIENT_CHANGE_PERCENT,
)

P = TypeVar('P', bound='BaseParams')


@dataclass(frozen=True)
class BaseParams:
    """Shared helpers for parameter dataclasses."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization and logging."""
        return asdict(self)

    @classmethod
    def from_dict(cls: Type[P], values: Dict[str, Any]) -> P:
        """
        Build parameters from a dictionary, ignoring unknown keys.

        Values are coerced to the declared field types, so a JSON 3.0 window
        becomes the int 3 and the string "false" turns a flag off. None keeps
        the default.

        Raises:
            ValueError: If a value cannot be read as its field type
        """
        field_types = {f.name: f.type for f in fields(cls)}
        return cls(**{
            key: coerce_field(key, value, field_types[key])
            for key, value in values.items()
            if key in field_types and value is not None
        })


TRUE_STRINGS = {'true', '1', 'yes', 'on'}
FALSE_STRINGS = {'false', '0', 'no', 'off'}


def coerce_field(name: str, value: Any, field_type: Any) -> Any:
    """Coerce one parameter value to its declared type."""
    if field_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in TRUE_STRINGS | FALSE_STRINGS:
            return value.strip().lower() in TRUE_STRINGS
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)
        raise ValueError(f"Parameter {name} must be a boolean, got {value!r}")

    if field_type is int:
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"Parameter {name} must be an integer, got {value!r}")
        return int(value)

    if field_type is float:
        return float(value)

    return value


@dataclass(frozen=True)
class SustainedChangeParams(BaseParams):
    """Parameters for the sustained-change segmenter."""
    r_squared_threshold: float = DEFAULT_R_SQUARED_THRESHOLD
    min_segment_distance: float = DEFAULT_MIN_SEGMENT_DISTANCE_KM  # km
    slope_change_threshold: float = DEFAULT_SLOPE_CHANGE_THRESHOLD_PERCENT  # percentage points
    inflection_sensitivity: float = DEFAULT_INFLECTION_SENSITIVITY_METERS  # meters
    detect_inflection_points: bool = True
    smoothing_window: int = DEFAULT_SMOOTHING_WINDOW_POINTS  # points, 1 = off


@dataclass(frozen=True)
class RefinerParams(BaseParams):
    """Parameters for the dual-criterion refiner."""
    prominencia_minima: float = DEFAULT_REFINER_PROMINENCE_METERS  # meters
    distancia_minima: float = DEFAULT_REFINER_MIN_DISTANCE_KM  # km
    diferencia_pendiente: float = DEFAULT_REFINER_SLOPE_DIFFERENCE  # fraction, 0.10 = 10 %


@dataclass(frozen=True)
class GradientParams(BaseParams):
    """Parameters for the gradient-threshold segmenter."""
    prominencia_minima: float = DEFAULT_GRADIENT_PROMINENCE_METERS  # meters
    distancia_minima: float = DEFAULT_GRADIENT_MIN_DISTANCE_KM  # km
    cambio_gradiente: float = DEFAULT_GRADIENT_CHANGE_PERCENT  # percentage points


@dataclass(frozen=True)
class GradientFusionParams(GradientParams):
    """Parameters for the detect-and-fuse segmenter. Same knobs as GradientParams."""
