"""End-of-session statistics: duration, altitude, distance, G-force and speed extrema.

The aggregator is a pure function of the session and its ordered samples,
so running it twice over the same input gives identical results. Absent
inputs propagate as ``None``: zero is a legitimate altitude or G value and is
never used as a stand-in for "no data".
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from flightrec.geo import segment_distances_m
from flightrec.models import Sample, Session

_COLUMNS = ["timestamp", "latitude", "longitude", "altitude_m", "speed_mps", "g_force"]


@dataclass(frozen=True)
class SessionStatistics:
    """Derived fields written back to the session record."""

    sample_count: int
    duration_s: int | None
    max_altitude_m: float | None
    total_distance_m: float
    max_positive_g: float | None
    max_negative_g: float | None
    max_speed_mps: float | None
    avg_speed_mps: float | None


def samples_to_frame(samples: Sequence[Sample]) -> pd.DataFrame:
    """Columnar view of samples, sorted by capture time (stable for ties)."""
    if not samples:
        return pd.DataFrame({col: pd.Series(dtype=float) for col in _COLUMNS})

    df = pd.DataFrame(
        {
            "timestamp": [s.timestamp for s in samples],
            "latitude": [s.latitude for s in samples],
            "longitude": [s.longitude for s in samples],
            "altitude_m": [s.altitude_m for s in samples],
            "speed_mps": [s.speed_mps for s in samples],
            "g_force": [s.g_force for s in samples],
        }
    )
    for col in _COLUMNS[1:]:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)
    return df.sort_values("timestamp", kind="mergesort").reset_index(drop=True)


def _optional_max(series: pd.Series) -> float | None:
    values = series.dropna()
    return float(values.max()) if not values.empty else None


def _optional_min(series: pd.Series) -> float | None:
    values = series.dropna()
    return float(values.min()) if not values.empty else None


def _optional_mean(series: pd.Series) -> float | None:
    values = series.dropna()
    return float(values.mean()) if not values.empty else None


def compute_duration_s(session: Session) -> int | None:
    """Whole seconds between start and end; None while the session is open."""
    if session.end_time is None:
        return None
    return int((session.end_time - session.start_time).total_seconds())


def total_distance_m(df: pd.DataFrame) -> float:
    """Sum of haversine distances between consecutive samples."""
    if len(df) < 2:
        return 0.0
    segments = segment_distances_m(df["latitude"].to_numpy(), df["longitude"].to_numpy())
    return float(np.sum(segments))


def aggregate_session(session: Session, samples: Sequence[Sample]) -> SessionStatistics:
    """Compute session statistics over the full persisted sample set.

    Parameters
    ----------
    session:
        Session record; only ``start_time`` and ``end_time`` are read.
    samples:
        Every persisted sample of the session.

    Returns
    -------
    SessionStatistics with ``None`` for every metric that has no input data.
    """
    df = samples_to_frame(samples)
    return SessionStatistics(
        sample_count=len(df),
        duration_s=compute_duration_s(session),
        max_altitude_m=_optional_max(df["altitude_m"]),
        total_distance_m=total_distance_m(df),
        max_positive_g=_optional_max(df["g_force"]),
        max_negative_g=_optional_min(df["g_force"]),
        max_speed_mps=_optional_max(df["speed_mps"]),
        avg_speed_mps=_optional_mean(df["speed_mps"]),
    )


def apply_statistics(session: Session, stats: SessionStatistics) -> Session:
    """Return a copy of ``session`` carrying the aggregated fields."""
    return session.with_updates(
        duration_s=stats.duration_s,
        max_altitude_m=stats.max_altitude_m,
        total_distance_m=stats.total_distance_m,
        max_positive_g=stats.max_positive_g,
        max_negative_g=stats.max_negative_g,
        max_speed_mps=stats.max_speed_mps,
        avg_speed_mps=stats.avg_speed_mps,
    )
