"""Fixed-threshold alerts raised while a reading is ingested.

Thresholds are global constants. Each violated condition produces one alert
per reading: there is no hysteresis and no coalescing, so a station that
stays out of bounds for N readings produces N alerts.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import select, desc, func, update
from sqlalchemy.orm import Session

from .config import settings
from .crud import commit
from .models import Alert, Station
from .schemas import AlertOut, SensorFields

logger = logging.getLogger(__name__)

TEMP_AIR_HIGH = 40.0
TEMP_AIR_LOW = -5.0
VWC_SOIL_LOW = 15.0
RSSI_LOW = -120.0


@dataclass(frozen=True)
class Violation:
    type: str
    message: str
    value: float
    threshold: float


def evaluate_alerts(fields: SensorFields) -> list[Violation]:
    found = []
    temp = fields.temp_air
    if temp is not None and temp > TEMP_AIR_HIGH:
        found.append(Violation("TEMP_HIGH", f"Air temperature too high: {temp:g}°C", temp, TEMP_AIR_HIGH))
    if temp is not None and temp < TEMP_AIR_LOW:
        found.append(Violation("FROST_WARNING", f"Frost warning: {temp:g}°C", temp, TEMP_AIR_LOW))

    vwc = fields.vwc_soil
    if vwc is not None and vwc < VWC_SOIL_LOW:
        found.append(Violation("SOIL_DRY", f"Dry soil, consider irrigation: {vwc:g}% VWC", vwc, VWC_SOIL_LOW))

    rssi = fields.rssi
    if rssi is not None and rssi < RSSI_LOW:
        found.append(Violation("SIGNAL_WEAK", f"Weak LoRa signal: {rssi:g} dBm", rssi, RSSI_LOW))
    return found


def record_alerts(db: Session, station_id: str, fields: SensorFields) -> list[Alert]:
    """Stage one Alert row per violation; the caller commits."""
    rows = []
    for v in evaluate_alerts(fields):
        alert = Alert(station_id=station_id, type=v.type, message=v.message, value=v.value, threshold=v.threshold)
        db.add(alert)
        rows.append(alert)
        logger.info("Alert %s for station %s: %s", v.type, station_id, v.message)
    return rows


def acknowledge_alert(db: Session, alert_id: int) -> None:
    # Unknown ids update nothing and still succeed
    db.execute(update(Alert).where(Alert.id == alert_id).values(acknowledged=True))
    commit(db)


def list_alerts(
    db: Session,
    station_id: str | None = None,
    include_acknowledged: bool = False,
    limit: int | None = None,
) -> list[AlertOut]:
    """Alerts newest first, each tagged with its station's name"""
    stmt = select(Alert, Station.name).join(Station, Alert.station_id == Station.id)
    if station_id:
        stmt = stmt.where(Alert.station_id == station_id)
    if not include_acknowledged:
        stmt = stmt.where(Alert.acknowledged.is_(False))
    stmt = stmt.order_by(desc(Alert.created_at), desc(Alert.id)).limit(limit or settings.ALERT_LIST_LIMIT)

    return [
        AlertOut(
            id=a.id,
            station_id=a.station_id,
            station_name=name,
            type=a.type,
            message=a.message,
            value=a.value,
            threshold=a.threshold,
            created_at=a.created_at,
            acknowledged=a.acknowledged,
        )
        for a, name in db.execute(stmt).all()
    ]


def list_active_alerts(db: Session, station_id: str | None = None) -> list[AlertOut]:
    return list_alerts(db, station_id=station_id, include_acknowledged=False)


def count_active_alerts(db: Session, station_id: str | None = None) -> int:
    stmt = select(func.count(Alert.id)).where(Alert.acknowledged.is_(False))
    if station_id:
        stmt = stmt.where(Alert.station_id == station_id)
    return db.execute(stmt).scalar_one()
