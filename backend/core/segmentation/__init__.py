"""
Segmentation strategies.

This package provides the four profile segmentation strategies behind a
common factory interface. Import strategy functions directly when needed:
from core.segmentation.gradient_fusion import segment_with_animation
"""

from .params import (
    BaseParams,
    SustainedChangeParams,
    RefinerParams,
    GradientParams,
    GradientFusionParams,
)
from .factory import SegmentationStrategy, SegmentationFactory, segment_profile

__all__ = [
    'BaseParams',
    'SustainedChangeParams',
    'RefinerParams',
    'GradientParams',
    'GradientFusionParams',
    'SegmentationStrategy',
    'SegmentationFactory',
    'segment_profile',
]
