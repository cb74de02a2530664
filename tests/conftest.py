"""Shared fixtures: an in-memory database and a test client bound to it."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stationhub import crud
from stationhub.database import Base, get_db, init_database, make_engine
from stationhub.main import app
from stationhub.schemas import StationCreate


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    init_database(eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def station(db):
    """An active station and its API key."""
    return crud.create_station(db, StationCreate(name="Rooftop", location_lat=-31.42, location_lng=-64.18))
