"""Tests for flightrec.models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from flightrec.models import FixState, LiveData, Sample, Session, default_session_name


class TestSession:
    def test_default_name_from_start_time(self) -> None:
        local_start = datetime(2026, 3, 7, 9, 5).astimezone()
        session = Session(start_time=local_start)
        assert session.name == "Flight of 07/03/2026 09:05"
        assert session.name == default_session_name(session.start_time)

    def test_default_name_uses_local_clock_for_utc_start(self) -> None:
        utc_start = datetime(2026, 3, 7, 23, 50, tzinfo=UTC)
        local = utc_start.astimezone()
        session = Session(start_time=utc_start)
        assert session.name == f"Flight of {local:%d/%m/%Y %H:%M}"
        # Same instant, so the name does not depend on the offset it was given in
        tokyo = utc_start.astimezone(timezone(timedelta(hours=9)))
        assert default_session_name(tokyo) == session.name

    def test_explicit_name_kept(self) -> None:
        session = Session(start_time=datetime(2026, 3, 7, tzinfo=UTC), name="Ridge soaring")
        assert session.name == "Ridge soaring"

    def test_new_session_has_no_id_or_derived_fields(self) -> None:
        session = Session(start_time=datetime(2026, 3, 7, tzinfo=UTC))
        assert session.session_id is None
        assert session.end_time is None
        assert session.total_distance_m is None

    def test_with_updates_returns_copy(self) -> None:
        session = Session(start_time=datetime(2026, 3, 7, tzinfo=UTC))
        renamed = session.with_updates(name="Cross-country", notes="Thermals at 1400")
        assert renamed.name == "Cross-country"
        assert renamed.notes == "Thermals at 1400"
        assert session.notes is None


class TestSample:
    @pytest.mark.parametrize(
        ("lat", "lon"),
        [(-90.0, -180.0), (90.0, 180.0), (0.0, 0.0), (47.3, 8.5)],
    )
    def test_valid_coordinates(self, lat: float, lon: float) -> None:
        sample = Sample(session_id=1, timestamp=datetime(2026, 1, 1, tzinfo=UTC), latitude=lat, longitude=lon)
        assert sample.latitude == lat

    @pytest.mark.parametrize(
        ("lat", "lon", "match"),
        [
            (90.01, 0.0, "latitude"),
            (-91.0, 0.0, "latitude"),
            (0.0, 180.5, "longitude"),
            (0.0, -181.0, "longitude"),
            (float("nan"), 0.0, "latitude"),
        ],
    )
    def test_invalid_coordinates(self, lat: float, lon: float, match: str) -> None:
        with pytest.raises(ValueError, match=match):
            Sample(session_id=1, timestamp=datetime(2026, 1, 1, tzinfo=UTC), latitude=lat, longitude=lon)

    def test_samples_are_immutable(self) -> None:
        sample = Sample(session_id=1, timestamp=datetime(2026, 1, 1, tzinfo=UTC), latitude=1.0, longitude=2.0)
        with pytest.raises(AttributeError):
            sample.latitude = 3.0  # type: ignore[misc]


class TestLiveData:
    def test_to_dict_serialises_fix_state(self) -> None:
        live = LiveData(timestamp=datetime(2026, 1, 1, tzinfo=UTC), has_good_fix=True, fix_state=FixState.LOCKED)
        data = live.to_dict()
        assert data["fix_state"] == "locked"
        assert data["has_good_fix"] is True
        assert data["altitude_m"] is None
