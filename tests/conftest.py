# FilmGear Booking - Film Equipment Booking and Inventory System
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


"""Shared fixtures: in-memory database, users of every role, sample inventory."""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from filmgear.config import DatabaseConfig, SecurityConfig, Settings, update_settings
from filmgear.database import create_tables, drop_tables, get_session_local, init_engine
from filmgear.main import app
from filmgear.models.booking import Booking
from filmgear.models.equipment import Equipment
from filmgear.models.location import Location
from filmgear.models.user import User
from filmgear.services.tokens import create_access_token

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def settings():
    test_settings = Settings(
        database=DatabaseConfig(url="sqlite://"),
        security=SecurityConfig(bcrypt_rounds=4, jwt_secret="test-secret-key-for-filmgear-tests"),
    )
    update_settings(test_settings)
    yield test_settings


@pytest.fixture(autouse=True)
def engine(settings):
    engine = init_engine("sqlite://")
    create_tables()
    yield engine
    drop_tables()
    engine.dispose()


@pytest.fixture
def db(engine):
    session = get_session_local()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, username, role="external", email=None, is_active=True, **fields):
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        first_name=fields.pop("first_name", username.title()),
        last_name=fields.pop("last_name", "Tester"),
        role=role,
        is_active=is_active,
        **fields,
    )
    user.set_password(PASSWORD)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def admin(db):
    return make_user(db, "admin", role="admin")


@pytest.fixture
def staff(db):
    return make_user(db, "staff", role="staff")


@pytest.fixture
def external(db):
    return make_user(db, "borrower")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def staff_headers(staff):
    return auth_headers(staff)


@pytest.fixture
def external_headers(external):
    return auth_headers(external)


@pytest.fixture
def location(db, admin):
    loc = Location(
        name="Main Warehouse",
        type="warehouse",
        city="Berlin",
        capacity_total=100,
        created_by=admin.id,
    )
    db.add(loc)
    db.commit()
    db.refresh(loc)
    return loc


def make_equipment(db, location, serial, **fields):
    fields.setdefault("name", f"Item {serial}")
    fields.setdefault("category", "camera")
    fields.setdefault("brand", "Sony")
    fields.setdefault("model", "FX6")
    fields.setdefault("daily_rate", 100)
    fields.setdefault("weekly_rate", 500)
    fields.setdefault("monthly_rate", 1500)
    item = Equipment(
        serial_number=serial,
        qr_code=f"EQ-{serial}",
        location_id=location.id,
        **fields,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def camera(db, location):
    return make_equipment(
        db,
        location,
        "CAM-001",
        name="Sony FX6 Camera",
        description="Full-frame cinema camera",
        tags=["4k", "cinema"],
    )


@pytest.fixture
def lens(db, location):
    return make_equipment(
        db,
        location,
        "LENS-001",
        name="Canon 24-70mm Lens",
        category="lens",
        brand="Canon",
        model="RF 24-70",
        daily_rate=50,
        weekly_rate=250,
        monthly_rate=800,
    )


def make_booking(db, equipment, user, start, end, status="pending", **fields):
    booking = Booking(
        equipment_id=equipment.id,
        user_id=user.id,
        start_date=start,
        end_date=end,
        status=status,
        purpose=fields.pop("purpose", "Shoot"),
        **fields,
    )
    booking.snapshot_rates(equipment)
    booking.calculate_cost()
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


@pytest.fixture
def future():
    """A date comfortably in the future, so bookings are never overdue."""
    return date.today() + timedelta(days=30)
