from fastapi import APIRouter, Depends, Header, Query, Response
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional, List

from .database import get_db
from .config import settings
from .errors import NotFound, Unauthorized, ValidationError
from .schemas import (
    IngestPayload, IngestResponse, ReadingOut, StatsOut, CleanupResponse,
    StationCreate, StationUpdate, ConfigUpdate, StationListItem, StationDetail,
    StationCreated, ApiKeyResponse, MessageResponse, ConfigUpdated, TransmissionConfig,
    AlertOut, SuccessResponse, DashboardResponse, CompareSeries,
)
from . import crud, alerts, aggregation
from .ingestion import accept_reading, authenticate_station
from .models import Station


router = APIRouter()


def require_session(x_session_token: Optional[str] = Header(None)):
    """Session check for dashboard mutations; open when no token is configured."""
    if settings.DASHBOARD_TOKEN and x_session_token != settings.DASHBOARD_TOKEN:
        raise Unauthorized("Not authorized. Please sign in.")


def station_from_api_key(x_api_key: Optional[str] = Header(None), db: Session = Depends(get_db)) -> Station:
    # resolved before the body is validated, so a bad key is a 401 whatever the payload
    return authenticate_station(db, x_api_key)


@router.get("/health")
def health():
    return {"ok": True, "name": settings.APP_NAME}


# Station ingestion and reading queries

@router.post("/api/data/ingest", response_model=IngestResponse)
def ingest(
    payload: IngestPayload,
    station: Station = Depends(station_from_api_key),
    db: Session = Depends(get_db),
):
    return accept_reading(db, station, payload)


@router.delete("/api/data/cleanup", response_model=CleanupResponse, dependencies=[Depends(require_session)])
def cleanup(
    older_than: int = Query(settings.CLEANUP_DEFAULT_DAYS, alias="olderThan"),
    db: Session = Depends(get_db),
):
    deleted = crud.delete_older_than(db, older_than)
    return CleanupResponse(success=True, deleted_rows=deleted)


@router.get("/api/data/{station_id}/latest", response_model=ReadingOut)
def latest(station_id: str, db: Session = Depends(get_db)):
    r = crud.get_latest(db, station_id)
    if not r:
        raise NotFound("No data available")
    return ReadingOut.model_validate(r)


@router.get("/api/data/{station_id}/history", response_model=List[ReadingOut])
def history(
    station_id: str,
    limit: int = Query(settings.HISTORY_DEFAULT_LIMIT, ge=1, le=settings.HISTORY_MAX_LIMIT),
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
    db: Session = Depends(get_db),
):
    rows = aggregation.select_readings(db, station_id, start, end, limit)
    return [ReadingOut.model_validate(r) for r in rows]


@router.get("/api/data/{station_id}/stats", response_model=StatsOut)
def stats(station_id: str, period: str = Query("24h"), db: Session = Depends(get_db)):
    return crud.get_stats(db, station_id, period)


@router.get("/api/data/{station_id}/export")
def export(
    station_id: str,
    limit: int = Query(settings.EXPORT_DEFAULT_LIMIT, ge=1, le=settings.EXPORT_DEFAULT_LIMIT),
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
    db: Session = Depends(get_db),
):
    body = aggregation.export_csv(db, station_id, start, end, limit)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=station_{station_id}_data.csv"},
    )


# Station registry

@router.get("/api/stations", response_model=List[StationListItem])
def list_stations(db: Session = Depends(get_db)):
    return aggregation.station_listing(db)


@router.get("/api/stations/{station_id}", response_model=StationDetail)
def get_station(station_id: str, db: Session = Depends(get_db)):
    return aggregation.station_detail(db, station_id)


@router.post("/api/stations", response_model=StationCreated, status_code=201, dependencies=[Depends(require_session)])
def create_station(data: StationCreate, db: Session = Depends(get_db)):
    station, api_key = crud.create_station(db, data)
    return StationCreated(
        id=station.id,
        name=station.name,
        api_key=api_key,
        message="Station created. Store the API key now, it will not be shown again.",
    )


@router.put("/api/stations/{station_id}", response_model=MessageResponse, dependencies=[Depends(require_session)])
def update_station(station_id: str, data: StationUpdate, db: Session = Depends(get_db)):
    crud.update_station(db, station_id, data)
    return MessageResponse(message="Station updated")


@router.put("/api/stations/{station_id}/config", response_model=ConfigUpdated, dependencies=[Depends(require_session)])
def update_config(station_id: str, data: ConfigUpdate, db: Session = Depends(get_db)):
    station = crud.update_station_config(db, station_id, sf=data.sf, bw=data.bw, interval=data.interval)
    return ConfigUpdated(
        message="Configuration updated",
        pending_config=TransmissionConfig(
            sf=station.config_sf, bw=station.config_bw, interval=station.config_interval,
        ),
    )


@router.delete("/api/stations/{station_id}", response_model=MessageResponse, dependencies=[Depends(require_session)])
def deactivate_station(station_id: str, db: Session = Depends(get_db)):
    crud.deactivate_station(db, station_id)
    return MessageResponse(message="Station deactivated")


@router.post("/api/stations/{station_id}/regenerate-key", response_model=ApiKeyResponse,
             dependencies=[Depends(require_session)])
def regenerate_key(station_id: str, db: Session = Depends(get_db)):
    api_key = crud.regenerate_api_key(db, station_id)
    return ApiKeyResponse(api_key=api_key, message="API key regenerated. Update the gateway configuration.")


# Dashboard, alerts, comparison

@router.get("/api/dashboard", response_model=DashboardResponse)
def dashboard(db: Session = Depends(get_db)):
    return aggregation.dashboard_summary(db)


@router.get("/api/alerts", response_model=List[AlertOut])
def list_alerts(
    station_id: Optional[str] = Query(None, alias="stationId"),
    acknowledged: str = Query("false"),
    db: Session = Depends(get_db),
):
    return alerts.list_alerts(db, station_id=station_id, include_acknowledged=acknowledged != "false")


@router.post("/api/alerts/{alert_id}/acknowledge", response_model=SuccessResponse,
             dependencies=[Depends(require_session)])
def acknowledge(alert_id: int, db: Session = Depends(get_db)):
    alerts.acknowledge_alert(db, alert_id)
    return SuccessResponse(success=True)


@router.get("/api/compare", response_model=List[CompareSeries])
def compare(
    station_ids: Optional[str] = Query(None, alias="stationIds"),
    metric: str = Query("temp_air"),
    period: str = Query("24h"),
    db: Session = Depends(get_db),
):
    if not station_ids:
        raise ValidationError("stationIds is required")
    return aggregation.compare(db, station_ids.split(","), metric, period)
