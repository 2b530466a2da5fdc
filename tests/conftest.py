import os
import sys

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.db.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.schemas.geocoding import Address  # noqa: E402
from app.schemas.permission import LOCATION_PERMISSIONS  # noqa: E402
from app.services.address_resolver import AddressResolver  # noqa: E402
from app.services.geocoding_service import Geocoder  # noqa: E402
from app.services.location_providers import (  # noqa: E402
    DeviceLocationProvider,
    get_device_location_provider,
)
from app.services.location_screen import LocationScreen, get_location_screen  # noqa: E402
from app.services.location_source import LocationSource  # noqa: E402
from app.services.location_store import LocationStore  # noqa: E402
from app.services.permission_gate import HostPermissionGate  # noqa: E402
from app.services.permission_registry import (  # noqa: E402
    PermissionRegistry,
    get_permission_registry,
)

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Test database URL - using SQLite for tests is simpler
SQLALCHEMY_DATABASE_TEST_URL = "sqlite:///:memory:"

test_engine = create_engine(
    SQLALCHEMY_DATABASE_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine
)


class StaticGeocoder(Geocoder):
    """Geocoder answering from a fixed table of (lat, lon) -> address line."""

    def __init__(self):
        super().__init__()
        self.addresses = {}
        self.calls = []

    async def get_from_location(self, latitude, longitude, max_results=1):
        self.calls.append((latitude, longitude))
        line = self.addresses.get((latitude, longitude))
        return [Address(address_lines=[line])] if line else []


@pytest.fixture(scope="function")
def db():
    # Create all tables
    Base.metadata.create_all(bind=test_engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def registry(db):
    """Permission registry on the test database."""
    return PermissionRegistry(TestingSessionLocal)


@pytest.fixture
def permission_gate(registry):
    return HostPermissionGate(registry)


@pytest.fixture
def grant_all(registry):
    """Grant both location permissions."""

    def _grant():
        for permission in LOCATION_PERMISSIONS:
            registry.set_granted(permission, True)

    return _grant


@pytest.fixture
def device_provider():
    return DeviceLocationProvider()


@pytest.fixture
def geocoder():
    return StaticGeocoder()


@pytest.fixture
def store():
    return LocationStore()


@pytest.fixture
def screen(permission_gate, device_provider, geocoder, store):
    """Location screen wired to test doubles."""
    screen = LocationScreen(
        permission_gate=permission_gate,
        location_source=LocationSource(device_provider, permission_gate),
        store=store,
        resolver=AddressResolver(geocoder, store),
    )
    yield screen
    screen.close()


@pytest.fixture(scope="function")
def client(db, screen, registry, device_provider):
    """Provides a FastAPI test client with test database and screen."""

    def override_get_db():
        try:
            yield db
        finally:
            pass  # Cleanup handled by db fixture

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_location_screen] = lambda: screen
    app.dependency_overrides[get_permission_registry] = lambda: registry
    app.dependency_overrides[get_device_location_provider] = lambda: device_provider

    with TestClient(app) as c:
        yield c

    # Clean up overrides after test
    app.dependency_overrides.clear()
