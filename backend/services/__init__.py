"""
Services package.

Provides business logic layer between API and core algorithms.

Modules:
    profile_analysis_service: Segmentation pipeline, summaries and highlights
"""

from services.profile_analysis_service import (
    analyze_profile,
    analyze_gpx_file,
    ProfileAnalysisResult,
    find_steep_sections,
    build_display_rows,
    stream_segmentation_events,
)

__all__ = [
    'analyze_profile',
    'analyze_gpx_file',
    'ProfileAnalysisResult',
    'find_steep_sections',
    'build_display_rows',
    'stream_segmentation_events',
]
