"""Tests for the dashboard, comparison and export views."""

from datetime import timedelta

import pytest

from stationhub import aggregation, crud
from stationhub.config import settings
from stationhub.errors import NotFound, ValidationError
from stationhub.ingestion import ingest_reading
from stationhub.models import utc_now
from stationhub.schemas import IngestPayload, SensorFields, StationCreate


@pytest.fixture
def two_stations(db):
    a, key_a = crud.create_station(db, StationCreate(name="Alpha"))
    b, key_b = crud.create_station(db, StationCreate(name="Bravo"))
    ingest_reading(db, key_a, IngestPayload(tempAire=20, humAire=55))
    ingest_reading(db, key_a, IngestPayload(tempAire=22))
    ingest_reading(db, key_b, IngestPayload(tempAire=41, rssi=-125))
    return a, b


class TestDashboardSummary:

    def test_per_station_and_global(self, db, two_stations):
        a, b = two_stations
        quiet, _ = crud.create_station(db, StationCreate(name="Charlie"))

        summary = aggregation.dashboard_summary(db)
        by_id = {s.id: s for s in summary.stations}

        assert [s.name for s in summary.stations] == ["Alpha", "Bravo", "Charlie"]
        assert by_id[a.id].connection_status == "online"
        assert by_id[a.id].last_reading.temp_air == 22
        assert by_id[a.id].alert_count == 0
        assert by_id[b.id].alert_count == 2
        assert by_id[quiet.id].connection_status == "offline"
        assert by_id[quiet.id].last_reading is None

        assert summary.global_stats.active_stations == 2
        assert summary.global_stats.total_readings_today == 3
        assert summary.global_stats.active_alerts == 2

    def test_status_depends_on_now(self, db, two_stations):
        a, _ = two_stations
        later = utc_now() + timedelta(minutes=25)

        summary = aggregation.dashboard_summary(db, now=later)
        assert {s.id: s.connection_status for s in summary.stations}[a.id] == "delayed"

    def test_serialized_keys(self, db, two_stations):
        body = aggregation.dashboard_summary(db).model_dump(by_alias=True, mode="json")

        assert set(body) == {"stations", "global", "serverTime"}
        assert {"connectionStatus", "lastSeen", "lastReading", "alertCount"} <= set(body["stations"][0])
        assert "tempAir" in body["stations"][0]["lastReading"]

    def test_deactivated_station_excluded(self, db, two_stations):
        a, _ = two_stations
        crud.deactivate_station(db, a.id)
        assert [s.name for s in aggregation.dashboard_summary(db).stations] == ["Bravo"]


class TestCompare:

    def test_unknown_ids_get_empty_series(self, db, two_stations):
        a, b = two_stations
        result = aggregation.compare(db, [a.id, b.id, "UNKNOWN"], "temp_air", "24h")

        assert len(result) == 3
        assert result[0].station_name == "Alpha"
        assert [p.value for p in result[0].data] == [20, 22]
        assert [p.value for p in result[1].data] == [41]
        assert result[2].station_id == "UNKNOWN"
        assert result[2].station_name == "UNKNOWN"
        assert result[2].data == []

    def test_ids_are_trimmed(self, db, two_stations):
        a, _ = two_stations
        [series] = aggregation.compare(db, [f" {a.id} "], "hum_air", "1h")
        assert series.station_id == a.id
        assert [p.value for p in series.data] == [55, None]

    def test_blank_ids_keep_their_slot(self, db, two_stations):
        a, b = two_stations
        result = aggregation.compare(db, [a.id, "", b.id], "temp_air", "24h")

        assert [s.station_id for s in result] == [a.id, "", b.id]
        assert result[1].station_name == ""
        assert result[1].data == []

    def test_unknown_metric_rejected(self, db, two_stations):
        a, _ = two_stations
        with pytest.raises(ValidationError):
            aggregation.compare(db, [a.id], "temp_air; DROP TABLE readings", "24h")


class TestExportCsv:

    def test_header_and_empty_fields(self, db, station):
        st, key = station
        ingest_reading(db, key, IngestPayload(tempAire=20.5, rssi=-90))

        lines = aggregation.export_csv(db, st.id).splitlines()

        assert lines[0] == (
            "timestamp,packet_id,temp_air,hum_air,temp_soil,vwc_soil,pressure,par,"
            "solar_radiation,precipitation,rssi,snr"
        )
        cells = lines[1].split(",")
        assert len(cells) == 12
        assert cells[1] == ""
        assert cells[2] == "20.5"
        assert cells[3] == ""
        assert cells[10] == "-90.0"
        assert "None" not in lines[1] and "null" not in lines[1]

    def test_range_takes_priority_over_limit(self, db, station):
        st, _ = station
        old = crud.insert_reading(db, st.id, SensorFields(temp_air=1))
        old.timestamp = utc_now() - timedelta(days=5)
        db.commit()
        crud.insert_reading(db, st.id, SensorFields(temp_air=2))
        crud.insert_reading(db, st.id, SensorFields(temp_air=3))

        since = utc_now() - timedelta(days=1)
        ranged = aggregation.export_csv(db, st.id, start=since, limit=1).splitlines()
        limited = aggregation.export_csv(db, st.id, limit=1).splitlines()

        assert len(ranged) == 3
        assert len(limited) == 2
        assert limited[1].split(",")[2] == "3.0"

    def test_half_open_range_is_held_to_export_cap(self, db, station, monkeypatch):
        st, _ = station
        monkeypatch.setattr(settings, "EXPORT_DEFAULT_LIMIT", 2)
        for t in (1, 2, 3):
            crud.insert_reading(db, st.id, SensorFields(temp_air=t))

        lines = aggregation.export_csv(db, st.id, end=utc_now() + timedelta(minutes=1)).splitlines()
        assert len(lines) == 3
        assert [line.split(",")[2] for line in lines[1:]] == ["1.0", "2.0"]


class TestStationViews:

    def test_detail_includes_latest_and_today(self, db, two_stations):
        a, _ = two_stations
        detail = aggregation.station_detail(db, a.id)

        assert detail.last_reading.temp_air == 22
        assert detail.stats.today.count == 2
        assert "api_key" not in detail.model_dump()

    def test_detail_unknown(self, db):
        with pytest.raises(NotFound):
            aggregation.station_detail(db, "EST-NOPE")

    def test_listing_counters(self, db, two_stations):
        listing = aggregation.station_listing(db)
        assert [(s.name, s.total_readings) for s in listing] == [("Alpha", 2), ("Bravo", 1)]
        assert all(s.last_reading is not None for s in listing)
