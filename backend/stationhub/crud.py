import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, desc, func, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import settings
from .errors import NotFound, StorageFailure, ValidationError
from .models import Reading, Station, as_utc, utc_now
from .schemas import SensorFields, StationCreate, StationUpdate, StatsOut, SENSOR_FIELDS

logger = logging.getLogger(__name__)

# Trailing windows accepted by stats and comparison queries
WINDOWS = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_WINDOW = "24h"

VALID_SF = range(7, 13)
VALID_BW = (125, 250, 500)
MIN_INTERVAL_MS = 10000


def commit(db: Session) -> None:
    """Commit or roll back, surfacing any store error as StorageFailure."""
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Commit failed")
        raise StorageFailure() from exc


def resolve_window(window: str | None) -> tuple[str, timedelta]:
    """Unknown windows fall back to the last 24 hours."""
    if window in WINDOWS:
        return window, WINDOWS[window]
    return DEFAULT_WINDOW, WINDOWS[DEFAULT_WINDOW]


# Reading store

def add_reading(db: Session, station_id: str, fields: SensorFields, packet_id: int | None = None) -> Reading:
    """Stage a reading in the session without committing."""
    values = {name: getattr(fields, name) for name in SENSOR_FIELDS}
    r = Reading(station_id=station_id, timestamp=utc_now(), packet_id=packet_id, **values)
    db.add(r)
    return r


def insert_reading(db: Session, station_id: str, fields: SensorFields, packet_id: int | None = None) -> Reading:
    r = add_reading(db, station_id, fields, packet_id)
    commit(db)
    return r


def get_latest(db: Session, station_id: str) -> Reading | None:
    stmt = (
        select(Reading)
        .where(Reading.station_id == station_id)
        .order_by(desc(Reading.timestamp), desc(Reading.id))
        .limit(1)
    )
    return db.execute(stmt).scalars().first()


def get_history(db: Session, station_id: str, limit: int, max_limit: int | None = None) -> list[Reading]:
    """Most recent first; callers reverse when they need chronological order."""
    limit = max(1, min(limit, max_limit or settings.HISTORY_MAX_LIMIT))
    stmt = (
        select(Reading)
        .where(Reading.station_id == station_id)
        .order_by(desc(Reading.timestamp), desc(Reading.id))
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def _utc_bound(value: datetime) -> datetime:
    # stored timestamps are UTC without offset, so bounds must be UTC too
    return as_utc(value).astimezone(timezone.utc)


def get_history_range(
    db: Session,
    station_id: str,
    start: datetime | None,
    end: datetime | None,
    limit: int | None = None,
) -> list[Reading]:
    """Chronological; either bound may be omitted, the row count is always capped."""
    limit = max(1, limit or settings.HISTORY_MAX_LIMIT)
    stmt = select(Reading).where(Reading.station_id == station_id)
    if start:
        stmt = stmt.where(Reading.timestamp >= _utc_bound(start))
    if end:
        stmt = stmt.where(Reading.timestamp <= _utc_bound(end))
    stmt = stmt.order_by(Reading.timestamp.asc(), Reading.id.asc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def get_series(db: Session, station_id: str, metric: str, since: datetime) -> list[tuple[datetime, float | None]]:
    column = getattr(Reading, metric)
    stmt = (
        select(Reading.timestamp, column)
        .where(Reading.station_id == station_id)
        .where(Reading.timestamp >= since)
        .order_by(Reading.timestamp.asc(), Reading.id.asc())
    )
    return [(ts, value) for ts, value in db.execute(stmt).all()]


def get_stats(db: Session, station_id: str, window: str | None = DEFAULT_WINDOW) -> StatsOut:
    period, span = resolve_window(window)
    since = utc_now() - span
    stmt = select(
        func.count(Reading.id),
        func.avg(Reading.temp_air),
        func.min(Reading.temp_air),
        func.max(Reading.temp_air),
        func.avg(Reading.hum_air),
        func.avg(Reading.temp_soil),
        func.avg(Reading.vwc_soil),
        func.sum(Reading.precipitation),
    ).where(Reading.station_id == station_id).where(Reading.timestamp >= since)
    row = db.execute(stmt).one()
    return StatsOut(
        period=period,
        count=row[0] or 0,
        avg_temp_air=row[1],
        min_temp_air=row[2],
        max_temp_air=row[3],
        avg_hum_air=row[4],
        avg_temp_soil=row[5],
        avg_vwc_soil=row[6],
        total_precipitation=row[7],
    )


def count_readings(db: Session, station_id: str | None = None, since: datetime | None = None) -> int:
    stmt = select(func.count(Reading.id))
    if station_id:
        stmt = stmt.where(Reading.station_id == station_id)
    if since:
        stmt = stmt.where(Reading.timestamp >= since)
    return db.execute(stmt).scalar_one()


def count_reporting_stations(db: Session, since: datetime) -> int:
    stmt = select(func.count(func.distinct(Reading.station_id))).where(Reading.timestamp >= since)
    return db.execute(stmt).scalar_one()


def last_reading_time(db: Session, station_id: str) -> datetime | None:
    stmt = select(func.max(Reading.timestamp)).where(Reading.station_id == station_id)
    return db.execute(stmt).scalar_one()


def delete_older_than(db: Session, age_days: int) -> int:
    if age_days < 1:
        raise ValidationError("olderThan must be at least 1 day")
    cutoff = utc_now() - timedelta(days=age_days)
    stmt = delete(Reading).where(Reading.timestamp < cutoff).execution_options(synchronize_session=False)
    result = db.execute(stmt)
    commit(db)
    logger.info("Deleted %d readings older than %d days", result.rowcount, age_days)
    return result.rowcount


# Station registry

def generate_station_id() -> str:
    return "EST-" + secrets.token_hex(4).upper()


def generate_api_key() -> str:
    return secrets.token_hex(32)


def create_station(db: Session, data: StationCreate) -> tuple[Station, str]:
    """Create a station; the API key is returned here and never again."""
    name = (data.name or "").strip()
    if not name:
        raise ValidationError("Name is required")

    station_id = generate_station_id()
    while db.get(Station, station_id) is not None:
        station_id = generate_station_id()
    api_key = generate_api_key()

    station = Station(
        id=station_id,
        name=name,
        description=data.description,
        location_lat=data.location_lat,
        location_lng=data.location_lng,
        altitude=data.altitude,
        api_key=api_key,
    )
    db.add(station)
    commit(db)
    logger.info("Station %s created (%s)", station.id, station.name)
    return station, api_key


def get_station(db: Session, station_id: str) -> Station | None:
    return db.get(Station, station_id)


def require_station(db: Session, station_id: str) -> Station:
    station = get_station(db, station_id)
    if station is None:
        raise NotFound("Station not found")
    return station


def get_station_by_api_key(db: Session, api_key: str) -> Station | None:
    stmt = select(Station).where(Station.api_key == api_key)
    return db.execute(stmt).scalars().first()


def list_stations(db: Session) -> list[Station]:
    """Active stations ordered by name"""
    stmt = select(Station).where(Station.is_active.is_(True)).order_by(Station.name)
    return list(db.execute(stmt).scalars().all())


def update_station(db: Session, station_id: str, data: StationUpdate) -> Station:
    station = require_station(db, station_id)
    changes = data.model_dump(exclude_unset=True)
    if "name" in changes:
        name = (changes.pop("name") or "").strip()
        if name:
            station.name = name
    for field in ("description", "location_lat", "location_lng", "altitude"):
        if field in changes:
            setattr(station, field, changes[field])
    commit(db)
    return station


def validate_config(sf: int | None, bw: int | None, interval: int | None) -> None:
    if sf is not None and sf not in VALID_SF:
        raise ValidationError("SF must be between 7 and 12")
    if bw is not None and bw not in VALID_BW:
        raise ValidationError("BW must be 125, 250 or 500")
    if interval is not None and interval < MIN_INTERVAL_MS:
        raise ValidationError(f"Minimum interval is {MIN_INTERVAL_MS}ms")


def update_station_config(
    db: Session,
    station_id: str,
    sf: int | None = None,
    bw: int | None = None,
    interval: int | None = None,
) -> Station:
    station = require_station(db, station_id)
    validate_config(sf, bw, interval)

    if sf is not None:
        station.config_sf = sf
    if bw is not None:
        station.config_bw = bw
    if interval is not None:
        station.config_interval = interval
    commit(db)
    logger.info(
        "Station %s config set to sf=%s bw=%s interval=%s",
        station.id, station.config_sf, station.config_bw, station.config_interval,
    )
    return station


def touch_last_seen(db: Session, station: Station) -> None:
    """Stage the last-contact update; committed by the caller."""
    station.last_seen = utc_now()


def regenerate_api_key(db: Session, station_id: str) -> str:
    station = require_station(db, station_id)
    station.api_key = generate_api_key()
    commit(db)
    logger.info("API key regenerated for station %s", station.id)
    return station.api_key


def deactivate_station(db: Session, station_id: str) -> None:
    station = require_station(db, station_id)
    station.is_active = False
    commit(db)
    logger.info("Station %s deactivated", station.id)
