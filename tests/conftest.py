import itertools
import pathlib
import sys
from datetime import datetime, timedelta, timezone

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import pytest

from rentalledger import create_app
from rentalledger.models.store import Store
from rentalledger.services import common as common_mod
from rentalledger.services import rental_service as rental_mod
from rentalledger.services.rental_service import BookingRequest, RentalService
from rentalledger.services.user_service import UserService
from rentalledger.services.vehicle_service import VehicleService

INDEXES = [("rentals", "userId", "createdAt")]

ADMIN_EMAIL = "admin@velocity.com"
ADMIN_PASSWORD = "Admin123"


@pytest.fixture(autouse=True)
def isolated_default_store(monkeypatch):
    """
    Code that falls back to Store.instance() (no app context, no explicit
    store) must never touch the data.pkl next to the project.
    """
    monkeypatch.setattr(Store, "_inst", Store(None, indexes=INDEXES))


@pytest.fixture
def store():
    """Fresh in-memory store with the per-user rentals index declared."""
    return Store(None, indexes=INDEXES)


@pytest.fixture
def bare_store():
    """In-memory store with no composite indexes at all."""
    return Store(None)


@pytest.fixture
def catalog(store):
    return VehicleService(store)


@pytest.fixture
def ledger(store, catalog):
    return RentalService(store, catalog)


@pytest.fixture
def accounts(store):
    return UserService(store)


@pytest.fixture
def clock(monkeypatch):
    """
    Deterministic createdAt/updatedAt values: every call to now_iso() in the
    ledger is one minute after the previous one.
    """
    start = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)
    ticks = itertools.count()

    def fake_now_iso():
        return (start + timedelta(minutes=next(ticks))).isoformat()

    monkeypatch.setattr(rental_mod, "now_iso", fake_now_iso)
    return fake_now_iso


@pytest.fixture
def add_vehicle(catalog):
    """Factory: create a catalog vehicle and return it."""
    def _add(name="Sedan", vtype="sedan", price=100, **extra):
        payload = {"name": name, "type": vtype, "price": price, "image": f"/img/{name}.png"}
        payload.update(extra)
        return catalog.create(payload)

    return _add


@pytest.fixture
def booking():
    """Factory: a valid BookingRequest with overridable fields."""
    def _make(vehicle_id, user_id="u1", pickup="2025-01-10", ret="2025-01-13", **overrides):
        values = dict(
            vehicle_id=vehicle_id,
            user_id=user_id,
            customer_name="Juan Dela Cruz",
            customer_email=f"{user_id}@example.com",
            customer_phone="09171234567",
            pickup_date=pickup,
            return_date=ret,
        )
        values.update(overrides)
        return BookingRequest(**values)

    return _make


# ---------------- HTTP ----------------
@pytest.fixture
def app():
    return create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "DATA_PATH": None,
        "ADMIN_EMAIL": ADMIN_EMAIL,
        "ADMIN_PASSWORD": ADMIN_PASSWORD,
    })


@pytest.fixture
def app_store(app):
    return app.extensions[common_mod.STORE_EXTENSION]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def customer_client(app):
    """Test client with a freshly registered customer signed in."""
    c = app.test_client()
    r = c.post("/auth/register", json={
        "email": "renter@example.com",
        "password": "Renter123",
        "name": "Maria Santos",
        "phone": "09170000000",
    })
    assert r.status_code == 201, r.get_json()
    return c


@pytest.fixture
def admin_client(app):
    """Test client signed in to the admin console."""
    c = app.test_client()
    r = c.post("/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.get_json()
    return c
