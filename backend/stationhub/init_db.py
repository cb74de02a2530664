"""
Initialize database and add sample stations
Usage: python -m stationhub.init_db
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from .database import SessionLocal, init_database
from .models import Station
from .schemas import StationCreate
from . import crud

SAMPLE_STATIONS = [
    StationCreate(
        name="Campus Weather Station",
        description="Main station on the faculty rooftop",
        location_lat=-31.4201,
        location_lng=-64.1888,
        altitude=390.0,
    ),
    StationCreate(
        name="Experimental Plot North",
        description="Soil moisture and PAR monitoring",
        location_lat=-31.3865,
        location_lng=-64.2302,
        altitude=455.0,
    ),
    StationCreate(
        name="Greenhouse 2",
        description="Indoor station, solar radiation sensor disabled",
        location_lat=-31.4102,
        location_lng=-64.1951,
    ),
]


def add_sample_stations(db: Session) -> list[tuple[Station, str]]:
    """Create the sample stations whose names are not taken yet.

    Returns the created stations with their API keys, since the keys
    cannot be read back afterwards.
    """
    existing = set(db.execute(select(Station.name)).scalars().all())
    created = []

    for sample in SAMPLE_STATIONS:
        if sample.name in existing:
            print(f"⚠️  {sample.name} already exists, skipping...")
            continue
        station, api_key = crud.create_station(db, sample)
        print(f"✅ {station.id}: {station.name}")
        created.append((station, api_key))

    return created


def show_stations(db: Session, keys: dict[str, str] | None = None) -> None:
    """Show registered stations"""
    stations = crud.list_stations(db)
    if not stations:
        print("\n❌ No stations in database!")
        return

    keys = keys or {}
    print(f"\n📋 Registered Stations ({len(stations)} total):")
    print("=" * 80)
    for station in stations:
        print(f"ID: {station.id}")
        print(f"   Name: {station.name}")
        print(f"   Coordinates: {station.location_lat}, {station.location_lng}")
        print(f"   Config: SF{station.config_sf} / {station.config_bw} kHz / {station.config_interval} ms")
        if station.id in keys:
            print(f"   API key: {keys[station.id]}")
        print("-" * 80)


def main():
    print("\n" + "=" * 80)
    print("Station Hub - Database Initialization")
    print("=" * 80 + "\n")

    print("🔧 Creating tables...")
    init_database()
    print("✅ Tables created successfully!")

    db = SessionLocal()
    try:
        created = add_sample_stations(db)
        show_stations(db, {station.id: key for station, key in created})
    finally:
        db.close()

    print("\n📌 API keys are shown only once. Store them in the station firmware.")
    print("   Start backend: uvicorn stationhub.main:app --reload\n")


if __name__ == "__main__":
    main()
