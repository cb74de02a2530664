"""Dashboard-level views built on top of the registry, the reading store and alerts.

Every piece is read independently; a summary may mix a latest reading and an
alert count taken a few writes apart.
"""
import csv
import io
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from . import crud
from .config import settings
from .alerts import count_active_alerts
from .connectivity import classify
from .errors import ValidationError
from .models import Reading, as_utc, utc_now
from .schemas import (
    ComparePoint, CompareSeries, DashboardResponse, DashboardStation, GlobalStats,
    LastReadingSummary, LocationOut, ReadingOut, SENSOR_FIELDS, StationDetail,
    StationListItem, StationOut, StationTodayStats,
)

CSV_COLUMNS = [
    "timestamp", "packet_id", "temp_air", "hum_air",
    "temp_soil", "vwc_soil", "pressure", "par",
    "solar_radiation", "precipitation", "rssi", "snr",
]


def dashboard_summary(db: Session, now: datetime | None = None) -> DashboardResponse:
    now = now or utc_now()
    stations = []

    for station in crud.list_stations(db):
        latest = crud.get_latest(db, station.id)
        last_reading = None
        if latest:
            last_reading = LastReadingSummary(
                timestamp=as_utc(latest.timestamp),
                temp_air=latest.temp_air,
                hum_air=latest.hum_air,
                temp_soil=latest.temp_soil,
                vwc_soil=latest.vwc_soil,
                rssi=latest.rssi,
                snr=latest.snr,
            )

        stations.append(DashboardStation(
            id=station.id,
            name=station.name,
            location=LocationOut(lat=station.location_lat, lng=station.location_lng),
            connection_status=classify(station.last_seen, station.config_interval, now),
            last_seen=as_utc(station.last_seen),
            last_reading=last_reading,
            alert_count=count_active_alerts(db, station.id),
        ))

    day_ago = now - timedelta(hours=24)
    global_stats = GlobalStats(
        active_stations=crud.count_reporting_stations(db, day_ago),
        total_readings_today=crud.count_readings(db, since=day_ago),
        active_alerts=count_active_alerts(db),
    )
    return DashboardResponse(stations=stations, global_stats=global_stats, server_time=now)


def compare(db: Session, station_ids: list[str], metric: str = "temp_air", window: str | None = "24h") -> list[CompareSeries]:
    """One series per requested id, blanks included; ids that resolve to nothing get an empty series."""
    if metric not in SENSOR_FIELDS:
        raise ValidationError(f"Unknown metric: {metric}")
    _, span = crud.resolve_window(window)
    since = utc_now() - span

    result = []
    for raw_id in station_ids:
        station_id = raw_id.strip()
        station = crud.get_station(db, station_id)
        data = [
            ComparePoint(timestamp=as_utc(ts), value=value)
            for ts, value in crud.get_series(db, station_id, metric, since)
        ]
        result.append(CompareSeries(
            station_id=station_id,
            station_name=station.name if station else station_id,
            data=data,
        ))
    return result


def select_readings(
    db: Session,
    station_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
    max_limit: int | None = None,
) -> list[Reading]:
    # A range, even half-open, wins over the limit but is still held to the cap
    if start or end:
        return crud.get_history_range(db, station_id, start, end, max_limit or settings.HISTORY_MAX_LIMIT)
    return crud.get_history(db, station_id, limit, max_limit)


def _csv_cell(value):
    if value is None:
        return ""
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    return value


def export_csv(
    db: Session,
    station_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 10000,
) -> str:
    rows = select_readings(db, station_id, start, end, limit, max_limit=settings.EXPORT_DEFAULT_LIMIT)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for r in rows:
        writer.writerow([_csv_cell(getattr(r, col)) for col in CSV_COLUMNS])
    return buf.getvalue()


def station_listing(db: Session) -> list[StationListItem]:
    return [
        StationListItem(
            **StationOut.model_validate(s).model_dump(),
            total_readings=crud.count_readings(db, s.id),
            last_reading=crud.last_reading_time(db, s.id),
        )
        for s in crud.list_stations(db)
    ]


def station_detail(db: Session, station_id: str) -> StationDetail:
    station = crud.require_station(db, station_id)
    latest = crud.get_latest(db, station_id)
    return StationDetail(
        **StationOut.model_validate(station).model_dump(),
        last_reading=ReadingOut.model_validate(latest) if latest else None,
        stats=StationTodayStats(today=crud.get_stats(db, station_id, "24h")),
    )
