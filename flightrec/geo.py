"""Geodesy and sensor maths: great-circle distance, G-force, heading."""

from __future__ import annotations

import math

import numpy as np

from flightrec.constants import EARTH_RADIUS_M, STANDARD_GRAVITY_MPS2


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two GPS coordinates."""
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    dlat = rlat2 - rlat1
    dlon = rlon2 - rlon1
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    a = min(1.0, a)
    return EARTH_RADIUS_M * 2 * math.asin(math.sqrt(a))


def segment_distances_m(lat: np.ndarray, lon: np.ndarray) -> np.ndarray:
    """Haversine distance between each consecutive pair of points.

    Returns an array one element shorter than the inputs (empty for fewer
    than two points).
    """
    if len(lat) < 2:
        return np.zeros(0)

    rlat = np.radians(lat.astype(float))
    rlon = np.radians(lon.astype(float))
    dlat = np.diff(rlat)
    dlon = np.diff(rlon)
    a = np.sin(dlat / 2) ** 2 + np.cos(rlat[:-1]) * np.cos(rlat[1:]) * np.sin(dlon / 2) ** 2
    # Rounding can push a a hair above 1.0 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_M * 2 * np.arcsin(np.sqrt(a))


def g_force(x: float, y: float, z: float) -> float:
    """Magnitude of an acceleration vector (m/s²) expressed in G."""
    return math.sqrt(x * x + y * y + z * z) / STANDARD_GRAVITY_MPS2


def normalize_heading(deg: float) -> float:
    """Wrap an angle in degrees into [0, 360)."""
    wrapped = deg % 360.0
    # -1e-15 % 360 == 360.0 in floating point
    return 0.0 if wrapped >= 360.0 else wrapped


def magnetic_heading(mag_x: float, mag_y: float) -> float:
    """Heading in degrees from the horizontal magnetometer components.

    Uses ``atan2(y, x)`` without tilt compensation, which is adequate while
    the device is held roughly level.
    """
    return normalize_heading(math.degrees(math.atan2(mag_y, mag_x)))
