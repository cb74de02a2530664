from sqlalchemy import Integer, Float, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from .database import Base

DEFAULT_SF = 9
DEFAULT_BW = 125
DEFAULT_INTERVAL_MS = 600000


def utc_now():
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands timestamps back naive; every stored timestamp is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Station(Base):
    """Remote weather station: identity, location, LoRa config and credential"""
    __tablename__ = "stations"

    id: Mapped[str] = mapped_column(String(16), primary_key=True)
    name: Mapped[str] = mapped_column(String(256))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    location_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    altitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    api_key: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Adopted by the station on its next ingest response
    config_sf: Mapped[int] = mapped_column(Integer, default=DEFAULT_SF)
    config_bw: Mapped[int] = mapped_column(Integer, default=DEFAULT_BW)
    config_interval: Mapped[int] = mapped_column(Integer, default=DEFAULT_INTERVAL_MS)


class Reading(Base):
    __tablename__ = "readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    station_id: Mapped[str] = mapped_column(String(16), ForeignKey("stations.id"))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, default=utc_now)
    packet_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    temp_air: Mapped[float | None] = mapped_column(Float, nullable=True)
    hum_air: Mapped[float | None] = mapped_column(Float, nullable=True)
    temp_soil: Mapped[float | None] = mapped_column(Float, nullable=True)
    vwc_soil: Mapped[float | None] = mapped_column(Float, nullable=True)

    pressure: Mapped[float | None] = mapped_column(Float, nullable=True)
    par: Mapped[float | None] = mapped_column(Float, nullable=True)
    solar_radiation: Mapped[float | None] = mapped_column(Float, nullable=True)
    precipitation: Mapped[float | None] = mapped_column(Float, nullable=True)

    rssi: Mapped[float | None] = mapped_column(Float, nullable=True)
    snr: Mapped[float | None] = mapped_column(Float, nullable=True)
    freq_error: Mapped[float | None] = mapped_column(Float, nullable=True)
    battery_voltage: Mapped[float | None] = mapped_column(Float, nullable=True)


class Alert(Base):
    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    station_id: Mapped[str] = mapped_column(String(16), ForeignKey("stations.id"))
    type: Mapped[str] = mapped_column(String(32))  # TEMP_HIGH/FROST_WARNING/SOIL_DRY/SIGNAL_WEAK
    message: Mapped[str] = mapped_column(String(256))
    value: Mapped[float | None] = mapped_column(Float, nullable=True)
    threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False)


Index("ix_readings_station_ts", Reading.station_id, Reading.timestamp)
Index("ix_alerts_station_ack", Alert.station_id, Alert.acknowledged)
