"""
Segmentation strategy factory and base classes.

This module provides a factory pattern for profile segmentation strategies.
Supports 'gradient_v2' (recommended), 'gradient', 'refiner' and
'sustained_change'. Each strategy keeps its own parameter type and defaults.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence, Type, Union

from core.models.segment import ElevationPoint, SegmentationResult
from core.segmentation.params import (
    BaseParams,
    SustainedChangeParams,
    RefinerParams,
    GradientParams,
    GradientFusionParams,
)

logger = logging.getLogger(__name__)

ParamsInput = Optional[Union[BaseParams, Dict[str, Any]]]


class SegmentationStrategy(ABC):
    """Abstract base class for segmentation strategies."""

    params_class: Type[BaseParams] = BaseParams

    def build_params(self, params: ParamsInput = None) -> BaseParams:
        """Normalise None, a dict or a params object into this strategy's params type."""
        if params is None:
            return self.params_class()
        if isinstance(params, dict):
            return self.params_class.from_dict(params)
        if not isinstance(params, self.params_class):
            raise TypeError(f"{self.name} expects {self.params_class.__name__}, "
                            f"got {type(params).__name__}")
        return params

    @abstractmethod
    def segment(self, points: Sequence[ElevationPoint], params: ParamsInput = None) -> SegmentationResult:
        """
        Segment an elevation profile.

        Args:
            points: Ordered elevation profile
            params: Optional strategy parameters (object or dict)

        Returns:
            SegmentationResult with segments and macro boundaries
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the strategy."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of the strategy."""
        pass


class SustainedChangeStrategy(SegmentationStrategy):
    """Accumulate-and-cut on sustained slope changes, inflections and R² loss."""

    params_class = SustainedChangeParams

    def segment(self, points: Sequence[ElevationPoint], params: ParamsInput = None) -> SegmentationResult:
        from core.segmentation.sustained_change import segment_sustained_change

        return segment_sustained_change(points, self.build_params(params))

    @property
    def name(self) -> str:
        return "Sustained change"

    @property
    def description(self) -> str:
        return "Cuts on sustained slope changes and inflection points, with an R² fallback"


class DualCriterionRefinerStrategy(SegmentationStrategy):
    """
    Prominence macro segments, R²/gradient seeding, then wiggle and validate.

    Seeding uses fixed quality constants; the user parameters only apply to
    macro-segmentation and validation.
    """

    params_class = RefinerParams

    def segment(self, points: Sequence[ElevationPoint], params: ParamsInput = None) -> SegmentationResult:
        from core.segmentation.refiner import segment_refiner

        return segment_refiner(points, self.build_params(params))

    @property
    def name(self) -> str:
        return "Dual-criterion refiner"

    @property
    def description(self) -> str:
        return "Seeds breakpoints by R² and gradient change, then refines them to convergence"


class GradientThresholdStrategy(SegmentationStrategy):
    """Prominence macro segments split on gradient change against a 100 m look-ahead."""

    params_class = GradientParams

    def segment(self, points: Sequence[ElevationPoint], params: ParamsInput = None) -> SegmentationResult:
        from core.segmentation.gradient import segment_gradient

        return segment_gradient(points, self.build_params(params))

    @property
    def name(self) -> str:
        return "Gradient threshold"

    @property
    def description(self) -> str:
        return "Splits macro segments where the gradient ahead departs from the current one"


class GradientFusionStrategy(SegmentationStrategy):
    """
    Two-phase detect-and-fuse segmentation.

    This is the recommended strategy. Raw cut points are detected without a
    distance filter, then undersized segments are fused by best R².
    """

    params_class = GradientFusionParams

    def segment(self, points: Sequence[ElevationPoint], params: ParamsInput = None) -> SegmentationResult:
        from core.segmentation.gradient_fusion import segment_with_animation

        return segment_with_animation(points, self.build_params(params))

    @property
    def name(self) -> str:
        return "Gradient detect-and-fuse"

    @property
    def description(self) -> str:
        return "Detects raw gradient cuts, then fuses short segments by best R² (animated)"


class SegmentationFactory:
    """Factory for creating segmentation strategies."""

    _strategies: Dict[str, Type[SegmentationStrategy]] = {
        'gradient_v2': GradientFusionStrategy,
        'gradient': GradientThresholdStrategy,
        'refiner': DualCriterionRefinerStrategy,
        'sustained_change': SustainedChangeStrategy,
    }

    @classmethod
    def create_strategy(cls, method: str) -> SegmentationStrategy:
        """
        Create a segmentation strategy for the specified method.

        Args:
            method: Strategy name (see get_available_methods)

        Returns:
            SegmentationStrategy instance; unknown methods get the default
        """
        method_lower = (method or '').lower()

        if method_lower not in cls._strategies:
            logger.warning(f"Unknown segmentation method '{method}', using '{cls.get_default_method()}'")
            method_lower = cls.get_default_method()

        return cls._strategies[method_lower]()

    @classmethod
    def is_supported(cls, method: str) -> bool:
        return (method or '').lower() in cls._strategies

    @classmethod
    def get_available_methods(cls) -> Dict[str, str]:
        """Get available segmentation methods with descriptions."""
        result = {}
        for method_name, strategy_class in cls._strategies.items():
            strategy = strategy_class()
            result[method_name] = f"{strategy.name}: {strategy.description}"
        return result

    @classmethod
    def get_default_params(cls, method: str) -> Dict[str, Any]:
        """Default parameter values for a method."""
        return cls.create_strategy(method).params_class().to_dict()

    @classmethod
    def get_default_method(cls) -> str:
        """Get the recommended default method."""
        return 'gradient_v2'


def segment_profile(
    points: Sequence[ElevationPoint],
    method: str = 'gradient_v2',
    params: ParamsInput = None
) -> SegmentationResult:
    """
    Convenience function to segment a profile with any strategy.

    Args:
        points: Ordered elevation profile
        method: Strategy to use (defaults to 'gradient_v2')
        params: Optional parameters, as an object or a dict

    Returns:
        SegmentationResult with segments and macro boundaries
    """
    strategy = SegmentationFactory.create_strategy(method)
    return strategy.segment(points, params)
