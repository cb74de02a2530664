from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, List

from .models import as_utc


class CamelModel(BaseModel):
    """Dashboard-facing models: snake_case attributes, camelCase on the wire"""
    model_config = ConfigDict(populate_by_name=True)


# --- Station -> server -------------------------------------------------------

class SensorFields(BaseModel):
    """Fixed sensor record; every member may be absent.

    Aliases are the field names the station firmware sends.
    """
    model_config = ConfigDict(populate_by_name=True)

    temp_air: Optional[float] = Field(None, alias="tempAire")
    hum_air: Optional[float] = Field(None, alias="humAire")
    temp_soil: Optional[float] = Field(None, alias="tempSuelo")
    vwc_soil: Optional[float] = Field(None, alias="vwcSuelo")

    pressure: Optional[float] = None
    par: Optional[float] = None
    solar_radiation: Optional[float] = Field(None, alias="solarRadiation")
    precipitation: Optional[float] = None

    rssi: Optional[float] = None
    snr: Optional[float] = None
    freq_error: Optional[float] = Field(None, alias="freqError")
    battery_voltage: Optional[float] = Field(None, alias="batteryVoltage")


SENSOR_FIELDS = tuple(SensorFields.model_fields)


class IngestPayload(SensorFields):
    packet_id: Optional[int] = Field(None, alias="packetId", examples=[42])


class TransmissionConfig(BaseModel):
    sf: int
    bw: int
    interval: int


class IngestResponse(BaseModel):
    success: bool
    timestamp: datetime
    config: TransmissionConfig


# --- Readings ----------------------------------------------------------------

class ReadingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    station_id: str
    timestamp: datetime
    packet_id: Optional[int] = None
    temp_air: Optional[float] = None
    hum_air: Optional[float] = None
    temp_soil: Optional[float] = None
    vwc_soil: Optional[float] = None
    pressure: Optional[float] = None
    par: Optional[float] = None
    solar_radiation: Optional[float] = None
    precipitation: Optional[float] = None
    rssi: Optional[float] = None
    snr: Optional[float] = None
    freq_error: Optional[float] = None
    battery_voltage: Optional[float] = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class StatsOut(BaseModel):
    period: str
    count: int
    avg_temp_air: Optional[float] = None
    min_temp_air: Optional[float] = None
    max_temp_air: Optional[float] = None
    avg_hum_air: Optional[float] = None
    avg_temp_soil: Optional[float] = None
    avg_vwc_soil: Optional[float] = None
    total_precipitation: Optional[float] = None


class CleanupResponse(CamelModel):
    success: bool
    deleted_rows: int = Field(alias="deletedRows")


# --- Stations ----------------------------------------------------------------

class StationCreate(BaseModel):
    # name is checked by the registry so a missing one surfaces as a 400
    name: Optional[str] = None
    description: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    altitude: Optional[float] = None


class StationUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    altitude: Optional[float] = None


class ConfigUpdate(BaseModel):
    sf: Optional[int] = None
    bw: Optional[int] = None
    interval: Optional[int] = None


class StationOut(BaseModel):
    """Station record as shown to the dashboard (never carries the API key)"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    altitude: Optional[float] = None
    created_at: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    is_active: bool
    config_sf: int
    config_bw: int
    config_interval: int

    @field_validator("created_at", "last_seen")
    @classmethod
    def times_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class StationListItem(StationOut):
    total_readings: int = 0
    last_reading: Optional[datetime] = None

    @field_validator("last_reading")
    @classmethod
    def last_reading_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class StationTodayStats(BaseModel):
    today: StatsOut


class StationDetail(StationOut):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    last_reading: Optional[ReadingOut] = Field(None, alias="lastReading")
    stats: StationTodayStats


class StationCreated(CamelModel):
    id: str
    name: str
    api_key: str = Field(alias="apiKey")
    message: str


class ApiKeyResponse(CamelModel):
    api_key: str = Field(alias="apiKey")
    message: str


class MessageResponse(BaseModel):
    message: str


class ConfigUpdated(CamelModel):
    message: str
    pending_config: TransmissionConfig = Field(alias="pendingConfig")


# --- Alerts ------------------------------------------------------------------

class AlertOut(BaseModel):
    id: int
    station_id: str
    station_name: Optional[str] = None
    type: str
    message: str
    value: Optional[float] = None
    threshold: Optional[float] = None
    created_at: datetime
    acknowledged: bool

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class SuccessResponse(BaseModel):
    success: bool


# --- Dashboard / comparison --------------------------------------------------

class LocationOut(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None


class LastReadingSummary(CamelModel):
    timestamp: datetime
    temp_air: Optional[float] = Field(None, alias="tempAir")
    hum_air: Optional[float] = Field(None, alias="humAir")
    temp_soil: Optional[float] = Field(None, alias="tempSoil")
    vwc_soil: Optional[float] = Field(None, alias="vwcSoil")
    rssi: Optional[float] = None
    snr: Optional[float] = None


class DashboardStation(CamelModel):
    id: str
    name: str
    location: LocationOut
    connection_status: str = Field(alias="connectionStatus")
    last_seen: Optional[datetime] = Field(None, alias="lastSeen")
    last_reading: Optional[LastReadingSummary] = Field(None, alias="lastReading")
    alert_count: int = Field(alias="alertCount")


class GlobalStats(BaseModel):
    active_stations: int
    total_readings_today: int
    active_alerts: int


class DashboardResponse(CamelModel):
    stations: List[DashboardStation]
    global_stats: GlobalStats = Field(alias="global")
    server_time: datetime = Field(alias="serverTime")


class ComparePoint(BaseModel):
    timestamp: datetime
    value: Optional[float] = None


class CompareSeries(CamelModel):
    station_id: str = Field(alias="stationId")
    station_name: str = Field(alias="stationName")
    data: List[ComparePoint]
