"""
Constants for the Trail Profile Lab application.

This module contains all the mathematical, algorithmic, and domain-specific
constants used throughout the codebase. Constants are grouped by their purpose
and documented with their units where applicable.
"""

# =============================================================================
# CONVERSION FACTORS
# =============================================================================

# Distance conversions
METERS_PER_KILOMETER = 1000

# Percent conversions
PERCENT = 100

# Time conversions
MINUTES_PER_HOUR = 60

# =============================================================================
# SEGMENT CLASSIFICATION
# =============================================================================

# Dead band (percent grade) separating ascents and descents from flat ground.
# Fixed for every strategy, not user-configurable.
FLAT_GRADE_THRESHOLD_PERCENT = 2.0

# Display tags for each segment type
SEGMENT_COLORS = {
    'asc': '#22c55e',   # Green for ascent
    'desc': '#3b82f6',  # Blue for descent
    'hor': '#6b7280',   # Gray for flat
}

# Human-readable labels used for display rows
SEGMENT_TYPE_LABELS = {
    'asc': 'Ascent',
    'desc': 'Descent',
    'hor': 'Flat',
}

# =============================================================================
# MACRO-SEGMENTATION
# =============================================================================

# Index offset used to infer the initial trend (point 0 vs this point)
INITIAL_TREND_LOOKAHEAD_POINTS = 10

# =============================================================================
# STRATEGY MINIMUMS
# =============================================================================

# Below this many points every strategy returns an empty segment list
MIN_POINTS_FOR_SEGMENTATION = 10

# =============================================================================
# SUSTAINED-CHANGE SEGMENTER (v1)
# =============================================================================

SLOPE_CHANGE_WINDOW_POINTS = 10  # Before/after windows for slope-change events
INFLECTION_WINDOW_POINTS = 5  # Left/right windows for inflection events
R_SQUARED_FALLBACK_MIN_DISTANCE_KM = 0.1  # R² test applies past 100 m

DEFAULT_R_SQUARED_THRESHOLD = 0.92
DEFAULT_MIN_SEGMENT_DISTANCE_KM = 0.2
DEFAULT_SLOPE_CHANGE_THRESHOLD_PERCENT = 4.0
DEFAULT_INFLECTION_SENSITIVITY_METERS = 2.0
DEFAULT_SMOOTHING_WINDOW_POINTS = 1  # 1 = no smoothing

# =============================================================================
# DUAL-CRITERION REFINER (v2)
# =============================================================================

# Seeding constants. These are deliberately independent of the user-facing
# distancia_minima / diferencia_pendiente parameters used during validation.
SEED_R_SQUARED_THRESHOLD = 0.98
SEED_GRADIENT_CHANGE_PERCENT = 3.0
SEED_MIN_DISTANCE_KM = 0.2

REFINER_MAX_ITERATIONS = 30
WIGGLE_OFFSETS = (-1, 0, 1)

DEFAULT_REFINER_PROMINENCE_METERS = 40.0
DEFAULT_REFINER_MIN_DISTANCE_KM = 0.2
DEFAULT_REFINER_SLOPE_DIFFERENCE = 0.10

# =============================================================================
# GRADIENT SEGMENTERS (v1 and v2)
# =============================================================================

FUTURE_WINDOW_DISTANCE_KM = 0.1  # ~100 m look-ahead for the v1 gradient test
RAW_LOOKAHEAD_POINTS = 5  # Short look-ahead for v2 raw detection

DEFAULT_GRADIENT_PROMINENCE_METERS = 30.0
DEFAULT_GRADIENT_MIN_DISTANCE_KM = 0.20
DEFAULT_GRADIENT_CHANGE_PERCENT = 3.0

# Fusion (phase 2 of the detect-and-fuse strategy)
FUSION_MAX_PASSES = 20
FUSION_MIN_R_SQUARED = 0.7  # A fusion is only performed above this R²

# Pause between streamed raw segments so clients can animate discovery
RAW_EMISSION_DELAY_SECONDS = 0.02

# =============================================================================
# PROFILE ANALYSIS
# =============================================================================

DEFAULT_STEEP_SECTION_THRESHOLD_PERCENT = 12.0
ESTIMATED_PACE_KMH = 5.0  # Average pace for the estimated moving time

# =============================================================================
# VALIDATION
# =============================================================================

assert 0 < FUSION_MIN_R_SQUARED < 1, "Fusion R² floor must be within (0, 1)"
assert ESTIMATED_PACE_KMH > 0, "Estimated pace must be positive"
