"""
Shared fixtures for profile segmentation tests.

All synthetic profiles use one point every 10 m (distance = index / 100 km).
"""

import pytest

from core.models.segment import ElevationPoint


def make_profile(elevations, points_per_km=100):
    """Build a profile from a list of elevations spaced 1/points_per_km km apart."""
    return [ElevationPoint(distance=i / points_per_km, elevation=float(e)) for i, e in enumerate(elevations)]


def mountain_elevation(i):
    """Symmetric mountain: 1000 m at both ends, 1200 m at index 500."""
    return 1000 + 200 * (1 - abs(i - 500) / 500)


def stepped_elevation(i):
    """Flat for 1 km, 10 % climb for 1 km, flat for 1 km."""
    if i <= 100:
        return 1000.0
    if i <= 200:
        return 1000.0 + (i - 100)
    return 1100.0


def two_grade_elevation(i):
    """5 % climb for 1.5 km, then 20 % climb."""
    if i <= 150:
        return 0.5 * i
    return 75.0 + 2.0 * (i - 150)


@pytest.fixture
def mountain_profile():
    """1000-point symmetric mountain with a 200 m peak at index 500."""
    return make_profile([mountain_elevation(i) for i in range(1000)])


@pytest.fixture
def stepped_profile():
    """301 points: flat, 10 % climb, flat."""
    return make_profile([stepped_elevation(i) for i in range(301)])


@pytest.fixture
def two_grade_profile():
    """300 points climbing at 5 % then 20 %, with no reversal."""
    return make_profile([two_grade_elevation(i) for i in range(300)])


@pytest.fixture
def linear_profile():
    """100 points on a constant 5 % grade."""
    return make_profile([500 + 0.5 * i for i in range(100)])


@pytest.fixture
def flat_profile():
    """50 points at constant elevation."""
    return make_profile([800.0] * 50)


@pytest.fixture
def rolling_profile():
    """Deterministic rolling terrain with small noise, 600 points."""
    import numpy as np

    rng = np.random.default_rng(42)
    x = np.arange(600)
    elevations = 1200 + 80 * np.sin(x / 60.0) + 25 * np.sin(x / 17.0) + rng.normal(0, 1.5, size=600)
    return make_profile(elevations.tolist())


GPX_TEMPLATE = """<?xml version="1.0"?>
<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <name>{name}</name>
    <trkseg>
{points}
    </trkseg>
  </trk>
</gpx>
"""


def make_gpx(elevations, name="Test Trail", lat_step=0.0001):
    """GPX text with points heading north roughly 11 m apart."""
    lines = []
    for i, elevation in enumerate(elevations):
        if elevation is None:
            lines.append(f'      <trkpt lat="{45.0 + i * lat_step:.6f}" lon="6.000000"></trkpt>')
        else:
            lines.append(
                f'      <trkpt lat="{45.0 + i * lat_step:.6f}" lon="6.000000"><ele>{elevation}</ele></trkpt>'
            )
    return GPX_TEMPLATE.format(name=name, points="\n".join(lines))


@pytest.fixture
def mountain_gpx():
    """GPX text for a small up-and-down track of 200 points."""
    elevations = [1000 + 2 * min(i, 199 - i) for i in range(200)]
    return make_gpx(elevations)
