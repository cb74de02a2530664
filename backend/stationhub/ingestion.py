import logging

from sqlalchemy.orm import Session

from . import crud
from .alerts import record_alerts
from .errors import Unauthorized
from .models import Station, utc_now
from .schemas import IngestPayload, IngestResponse, TransmissionConfig

logger = logging.getLogger(__name__)


def authenticate_station(db: Session, api_key: str | None) -> Station:
    if not api_key:
        raise Unauthorized("API key required")

    station = crud.get_station_by_api_key(db, api_key)
    if station is None or not station.is_active:
        logger.warning("Rejected reading with unknown or inactive API key")
        raise Unauthorized("Invalid API key")
    return station


def accept_reading(db: Session, station: Station, payload: IngestPayload) -> IngestResponse:
    """Store one reading from an authenticated station.

    The reading, the last-contact update and any alerts are committed
    together. The response carries the station's current transmission
    config, which is how config changes reach the station.
    """
    crud.add_reading(db, station.id, payload, packet_id=payload.packet_id)
    crud.touch_last_seen(db, station)
    record_alerts(db, station.id, payload)
    crud.commit(db)

    db.refresh(station)
    logger.debug("Reading accepted from %s (packet %s)", station.id, payload.packet_id)
    return IngestResponse(
        success=True,
        timestamp=utc_now(),
        config=TransmissionConfig(
            sf=station.config_sf,
            bw=station.config_bw,
            interval=station.config_interval,
        ),
    )


def ingest_reading(db: Session, api_key: str | None, payload: IngestPayload) -> IngestResponse:
    """Accept one reading from a station identified by its API key."""
    return accept_reading(db, authenticate_station(db, api_key), payload)
