"""
Tests for session state, per-snapshot processing and session admission.
"""
import pytest
from unittest.mock import patch

from adsb2dd.core.exceptions import (
    CapacityExceededError, InvalidParametersError, SourceUnavailableError
)
from adsb2dd.core.utils import request_fingerprint
from adsb2dd.services.sessions import (
    Session, build_output_record, evict_stale_tracks, is_valid_report, merge_doppler,
    open_session, parse_dd_params, process_snapshot
)
from adsb2dd.services.sources import Snapshot


@pytest.fixture
def session(store, dd_params, fake_source) -> Session:
    return store.create("session-key", dd_params, fake_source)


def snapshot_at(source_time, aircraft):
    return Snapshot(source_time=source_time, aircraft=aircraft)


class TestReportFilter:

    def test_complete_report(self, aircraft_factory):
        assert is_valid_report(aircraft_factory()) is True

    @pytest.mark.parametrize("missing", ["lat", "lon", "alt_geom", "flight", "hex"])
    def test_missing_field(self, aircraft_factory, missing):
        ac = aircraft_factory()
        del ac[missing]
        assert is_valid_report(ac) is False

    def test_non_numeric_altitude(self, aircraft_factory):
        assert is_valid_report(aircraft_factory(alt_geom="ground")) is False


class TestMergeDoppler:

    def test_velocity_preferred(self):
        assert merge_doppler(-10.0, -12.0) == (-10.0, "velocity")

    def test_position_fallback(self):
        assert merge_doppler(None, -12.0) == (-12.0, "position")

    def test_neither(self):
        assert merge_doppler(None, None) == (None, None)

    def test_zero_velocity_estimate_is_kept(self):
        assert merge_doppler(0.0, 5.0) == (0.0, "velocity")


class TestOutputRecord:

    def test_delay_in_km_rounded(self):
        record = build_output_record(100.0, "UAL123  ", 42318.765432, None, None)
        assert record == {"timestamp": 100.0, "flight": "UAL123  ", "delay": 42.31877}

    def test_both_estimates_reported(self):
        record = build_output_record(100.0, "UAL123", 1000.0, -118.4021312, -112.95)
        assert record["doppler"] == -118.40213
        assert record["doppler_method"] == "velocity"
        assert record["doppler_vel"] == -118.40213
        assert record["doppler_pos"] == -112.95

    def test_position_only(self):
        record = build_output_record(100.0, "UAL123", 1000.0, None, 7.5)
        assert record["doppler"] == 7.5
        assert record["doppler_method"] == "position"
        assert "doppler_vel" not in record


class TestProcessSnapshot:
    """Converting aircraft reports into session outputs"""

    def test_first_snapshot(self, session, sample_snapshot):
        process_snapshot(session, sample_snapshot, now=sample_snapshot.source_time)

        assert set(session.outputs) == {"a12345", "ae1234"}
        record = session.outputs["a12345"]
        assert record["timestamp"] == pytest.approx(sample_snapshot.source_time - 0.5)
        assert record["flight"] == "UAL123  "
        assert record["delay"] > 0
        assert record["doppler_method"] == "velocity"
        assert record["doppler"] == record["doppler_vel"]
        assert "doppler_pos" not in record

    def test_output_and_track_keys_match(self, session, sample_snapshot, aircraft_factory):
        process_snapshot(session, sample_snapshot, now=sample_snapshot.source_time)
        assert set(session.outputs) == set(session.tracks)

        process_snapshot(
            session,
            snapshot_at(sample_snapshot.source_time + 10, [aircraft_factory(hex="f00001", lat=37.75)]),
            now=sample_snapshot.source_time + 10,
        )
        assert set(session.outputs) == set(session.tracks) == {"f00001"}

    def test_position_estimate_after_second_report(self, session, aircraft_factory):
        process_snapshot(session, snapshot_at(1000.0, [aircraft_factory(seen_pos=0)]), now=1000.0)
        process_snapshot(
            session, snapshot_at(1001.0, [aircraft_factory(lon=-122.197, seen_pos=0)]), now=1001.0
        )

        record = session.outputs["a12345"]
        assert "doppler_pos" in record
        assert record["doppler_method"] == "velocity"
        assert len(session.tracks["a12345"].history) == 2

    def test_position_fallback_without_velocity(self, session, aircraft_factory):
        process_snapshot(session, snapshot_at(1000.0, [aircraft_factory(gs=None)]), now=1000.0)
        assert "doppler" not in session.outputs["a12345"]

        process_snapshot(
            session, snapshot_at(1001.0, [aircraft_factory(gs=None, lon=-122.197)]), now=1001.0
        )
        record = session.outputs["a12345"]
        assert record["doppler_method"] == "position"
        assert record["doppler"] == record["doppler_pos"]
        assert "doppler_vel" not in record

    def test_receding_aircraft_has_negative_position_doppler(self, session, aircraft_factory):
        """Northbound, north of both nodes: delay grows, Doppler is negative"""
        for i in range(3):
            ac = aircraft_factory(lat=38.5 + 0.01 * i, lon=-122.1, gs=None, seen_pos=0)
            process_snapshot(session, snapshot_at(1000.0 + i, [ac]), now=1000.0 + i)
        assert session.outputs["a12345"]["doppler_pos"] < 0

    def test_unchanged_position_skipped(self, session, aircraft_factory):
        process_snapshot(session, snapshot_at(1000.0, [aircraft_factory()]), now=1000.0)
        first = dict(session.outputs["a12345"])

        process_snapshot(session, snapshot_at(1002.0, [aircraft_factory()]), now=1002.0)
        assert session.outputs["a12345"] == first
        assert len(session.tracks["a12345"].history) == 1

    def test_invalid_reports_ignored(self, session, aircraft_factory):
        process_snapshot(
            session,
            snapshot_at(1000.0, [aircraft_factory(lat=None), "garbage", aircraft_factory(flight=None)]),
            now=1000.0,
        )
        assert session.outputs == {}
        assert session.tracks == {}

    def test_out_of_order_report_skipped(self, session, aircraft_factory):
        """A position older than the last accepted sample leaves the track untouched"""
        process_snapshot(session, snapshot_at(1000.0, [aircraft_factory(seen_pos=0)]), now=1000.0)
        process_snapshot(session, snapshot_at(1001.0, [aircraft_factory(lon=-122.197, seen_pos=0)]), now=1001.0)
        assert "doppler_pos" in session.outputs["a12345"]

        process_snapshot(session, snapshot_at(1000.5, [aircraft_factory(lon=-122.19, seen_pos=0)]), now=1002.0)
        record = session.outputs["a12345"]
        assert record["timestamp"] == 1001.0
        assert "doppler_pos" in record
        track = session.tracks["a12345"]
        assert len(track.history) == 2
        assert track.last_detection == 1001.0
        assert track.lon == -122.197

    def test_track_survives_out_of_order_report(self, session, aircraft_factory):
        process_snapshot(session, snapshot_at(1000.0, [aircraft_factory(seen_pos=0)]), now=1000.0)
        process_snapshot(session, snapshot_at(1004.0, [aircraft_factory(lon=-122.197, seen_pos=0)]), now=1004.0)
        process_snapshot(session, snapshot_at(1005.0, [aircraft_factory(lon=-122.19, seen_pos=4)]), now=1005.0)
        assert session.tracks["a12345"].last_detection == 1004.0

        process_snapshot(session, snapshot_at(1006.5, []), now=1006.5)
        assert "a12345" in session.outputs
        assert session.outputs["a12345"]["timestamp"] == 1004.0


class TestTrackEviction:

    def test_stale_track_removed(self, session, aircraft_factory):
        process_snapshot(session, snapshot_at(1000.0, [aircraft_factory(seen_pos=0)]), now=1000.0)
        process_snapshot(session, snapshot_at(1006.0, []), now=1006.0)
        assert "a12345" not in session.outputs
        assert "a12345" not in session.tracks

    def test_recent_track_kept(self, session, aircraft_factory):
        process_snapshot(session, snapshot_at(1000.0, [aircraft_factory(seen_pos=0)]), now=1000.0)
        process_snapshot(session, snapshot_at(1003.0, []), now=1003.0)
        assert "a12345" in session.outputs
        assert "a12345" in session.tracks

    def test_evict_returns_removed_keys(self, session, aircraft_factory):
        process_snapshot(session, snapshot_at(1000.0, [aircraft_factory(seen_pos=0)]), now=1000.0)
        assert evict_stale_tracks(session, 1010.0, 5) == ["a12345"]


class TestParseParams:

    def test_valid(self, dd_query):
        params = parse_dd_params(dd_query)
        assert params.server == "http://adsb.example.com"
        assert params.rx.lat == 37.7644
        assert params.tx.alt == 783
        assert params.fc == 503
        assert params.radius is None

    def test_missing_everything_lists_all_errors(self):
        with pytest.raises(InvalidParametersError) as exc_info:
            parse_dd_params({})
        assert exc_info.value.message == "Invalid parameters. Required: server, rx, tx, fc"
        assert len(exc_info.value.errors) == 4

    def test_bad_fc(self, dd_query):
        dd_query["fc"] = "-5"
        with pytest.raises(InvalidParametersError) as exc_info:
            parse_dd_params(dd_query)
        assert exc_info.value.errors == ["fc must be a positive frequency in MHz"]

    def test_private_server_rejected(self, dd_query):
        dd_query["server"] = "http://192.168.1.10"
        with pytest.raises(InvalidParametersError) as exc_info:
            parse_dd_params(dd_query)
        assert "private network" in exc_info.value.errors[0]

    def test_radius_parsed(self, dd_query):
        dd_query.update(server="https://api.adsb.lol", radius="60")
        assert parse_dd_params(dd_query).radius == 60


class TestSessionStore:

    def test_create_and_get(self, store, dd_params, fake_source):
        session = store.create("k1", dd_params, fake_source)
        assert store.get("k1") is session
        assert len(store) == 1
        assert "k1" in store

    def test_create_existing_returns_same(self, store, dd_params, fake_source):
        first = store.create("k1", dd_params, fake_source)
        assert store.create("k1", dd_params, fake_source) is first
        assert len(store) == 1

    def test_ceiling(self, store, dd_params, fake_source):
        for i in range(10):
            store.create(f"k{i}", dd_params, fake_source)
        assert store.is_full
        with pytest.raises(CapacityExceededError):
            store.create("k10", dd_params, fake_source)
        assert len(store) == 10

    def test_get_refreshes_idle_clock(self, store, clock, dd_params, fake_source):
        store.create("k1", dd_params, fake_source)
        clock.advance(20)
        store.get("k1")
        assert store.peek("k1").last_access == clock.now

    def test_touch(self, store, clock, dd_params, fake_source):
        session = store.create("k1", dd_params, fake_source)
        clock.advance(5)
        assert store.touch("k1") is True
        assert session.last_access == clock.now
        assert store.touch("missing") is False

    def test_peek_does_not_refresh(self, store, clock, dd_params, fake_source):
        session = store.create("k1", dd_params, fake_source)
        created = session.last_access
        clock.advance(20)
        store.peek("k1")
        assert session.last_access == created

    def test_evict_idle(self, store, clock, dd_params, fake_source):
        store.create("old", dd_params, fake_source)
        clock.advance(25)
        store.create("new", dd_params, fake_source)
        clock.advance(6)
        assert store.evict_idle() == ["old"]
        assert "new" in store

    def test_session_geometry(self, session):
        assert session.baseline == pytest.approx(55_000, rel=0.1)
        assert session.wavelength == pytest.approx(0.596, abs=0.001)


@pytest.mark.asyncio
class TestOpenSession:

    async def test_creates_after_probe(self, store, dd_query, fake_source):
        with patch("adsb2dd.services.sessions.build_source", return_value=fake_source):
            session = await open_session(store, dd_query)
        assert session.key == request_fingerprint(dd_query)
        assert fake_source.probe.await_count == 1
        assert len(store) == 1

    async def test_cache_hit_skips_probe(self, store, dd_query, fake_source):
        with patch("adsb2dd.services.sessions.build_source", return_value=fake_source) as build:
            first = await open_session(store, dd_query)
            second = await open_session(store, dd_query)
        assert first is second
        assert build.call_count == 1
        assert fake_source.probe.await_count == 1

    async def test_probe_failure(self, store, dd_query, fake_source):
        fake_source.probe.return_value = False
        with patch("adsb2dd.services.sessions.build_source", return_value=fake_source):
            with pytest.raises(SourceUnavailableError):
                await open_session(store, dd_query)
        assert len(store) == 0

    async def test_invalid_params_never_touch_source(self, store):
        with patch("adsb2dd.services.sessions.build_source") as build:
            with pytest.raises(InvalidParametersError):
                await open_session(store, {"server": "http://adsb.example.com"})
        build.assert_not_called()
        assert len(store) == 0

    async def test_ceiling_checked_before_probe(self, store, dd_query, dd_params, fake_source):
        for i in range(10):
            store.create(f"k{i}", dd_params, fake_source)
        with patch("adsb2dd.services.sessions.build_source", return_value=fake_source):
            with pytest.raises(CapacityExceededError):
                await open_session(store, dd_query)
        fake_source.probe.assert_not_awaited()

    async def test_cache_hit_served_at_ceiling(self, store, dd_query, dd_params, fake_source):
        with patch("adsb2dd.services.sessions.build_source", return_value=fake_source):
            existing = await open_session(store, dd_query)
            for i in range(9):
                store.create(f"k{i}", dd_params, fake_source)
            assert store.is_full
            assert await open_session(store, dd_query) is existing
