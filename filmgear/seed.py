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


"""Sample data for development databases."""

import logging
from datetime import date

from sqlalchemy.orm import Session

from filmgear.models.booking import Booking
from filmgear.models.equipment import Equipment, MaintenanceRecord, default_qr_code
from filmgear.models.location import Location
from filmgear.models.user import User

logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    {
        "username": "admin",
        "email": "admin@filmequipment.com",
        "password": "admin123",
        "first_name": "Admin",
        "last_name": "User",
        "role": "admin",
        "department": "Management",
        "phone": "+49123456789",
    },
    {
        "username": "staff1",
        "email": "staff1@filmequipment.com",
        "password": "staff123",
        "first_name": "Max",
        "last_name": "Mustermann",
        "role": "staff",
        "department": "Equipment Management",
        "phone": "+49123456790",
    },
    {
        "username": "staff2",
        "email": "staff2@filmequipment.com",
        "password": "staff123",
        "first_name": "Anna",
        "last_name": "Schmidt",
        "role": "staff",
        "department": "Equipment Management",
        "phone": "+49123456791",
    },
    {
        "username": "user1",
        "email": "user1@example.com",
        "password": "user123",
        "first_name": "Tom",
        "last_name": "Weber",
        "role": "external",
        "department": "Film Production",
        "phone": "+49123456792",
    },
    {
        "username": "user2",
        "email": "user2@example.com",
        "password": "user123",
        "first_name": "Lisa",
        "last_name": "Müller",
        "role": "external",
        "department": "Photography",
        "phone": "+49123456793",
    },
]

SAMPLE_LOCATIONS = [
    {
        "name": "Hauptlager",
        "type": "warehouse",
        "street": "Industriestraße 123",
        "city": "Berlin",
        "state": "Berlin",
        "zip_code": "10115",
        "country": "Deutschland",
        "description": "Hauptlager für Filmequipment",
        "capacity_total": 500,
        "contact_name": "Max Mustermann",
        "contact_email": "max@filmequipment.com",
        "contact_phone": "+49123456790",
        "facilities": ["loading_dock", "parking", "security", "climate_control", "power_outlets"],
    },
    {
        "name": "Studio A",
        "type": "studio",
        "street": "Filmstraße 45",
        "city": "München",
        "state": "Bayern",
        "zip_code": "80331",
        "country": "Deutschland",
        "description": "Professionelles Filmstudio",
        "capacity_total": 100,
        "contact_name": "Anna Schmidt",
        "contact_email": "anna@filmequipment.com",
        "contact_phone": "+49123456791",
        "facilities": [
            "parking",
            "security",
            "climate_control",
            "power_outlets",
            "internet",
            "bathroom",
            "kitchen",
        ],
    },
    {
        "name": "Büro",
        "type": "office",
        "street": "Bürostraße 78",
        "city": "Hamburg",
        "state": "Hamburg",
        "zip_code": "20095",
        "country": "Deutschland",
        "description": "Hauptbüro und Verwaltung",
        "capacity_total": 50,
        "contact_name": "Admin User",
        "contact_email": "admin@filmequipment.com",
        "contact_phone": "+49123456789",
        "facilities": ["parking", "security", "internet", "bathroom", "kitchen", "meeting_room"],
    },
]

# All sample equipment starts in the main warehouse
SAMPLE_EQUIPMENT = [
    {
        "name": "Sony FX6 Kamera",
        "category": "camera",
        "brand": "Sony",
        "model": "FX6",
        "serial_number": "SN001-FX6-2024",
        "description": "Professionelle Vollformat-Kinokamera mit 4K-Aufnahme",
        "specifications": {"Sensor": "Full-Frame 35.6 x 23.8mm", "Auflösung": "4K (3840 x 2160)"},
        "purchase_date": date(2024, 1, 15),
        "purchase_price": 4500,
        "current_value": 4200,
        "daily_rate": 150,
        "weekly_rate": 800,
        "monthly_rate": 2800,
        "tags": ["4k", "cinema", "professional", "full-frame"],
    },
    {
        "name": "Canon RF 24-70mm f/2.8 Objektiv",
        "category": "lens",
        "brand": "Canon",
        "model": "RF 24-70mm f/2.8L IS USM",
        "serial_number": "SN002-CAN-2024",
        "description": "Professionelles Standardzoom-Objektiv",
        "purchase_date": date(2024, 2, 1),
        "purchase_price": 2800,
        "current_value": 2600,
        "daily_rate": 80,
        "weekly_rate": 400,
        "monthly_rate": 1400,
        "tags": ["zoom", "professional", "canon", "rf-mount"],
    },
    {
        "name": "Aputure 600d Pro LED-Licht",
        "category": "lighting",
        "brand": "Aputure",
        "model": "600d Pro",
        "serial_number": "SN003-APT-2024",
        "description": "Leistungsstarkes LED-Studiolicht",
        "purchase_date": date(2024, 2, 10),
        "purchase_price": 1200,
        "current_value": 1100,
        "daily_rate": 60,
        "weekly_rate": 300,
        "monthly_rate": 1000,
        "tags": ["led", "professional", "bright", "dmx"],
    },
    {
        "name": "Sennheiser MKH 416 Mikrofon",
        "category": "audio",
        "brand": "Sennheiser",
        "model": "MKH 416-P48",
        "serial_number": "SN004-SEN-2024",
        "description": "Richtmikrofon für Film und Fernsehen",
        "purchase_date": date(2024, 3, 5),
        "purchase_price": 800,
        "current_value": 750,
        "daily_rate": 40,
        "weekly_rate": 200,
        "monthly_rate": 700,
        "tags": ["shotgun", "professional", "film", "audio"],
    },
    {
        "name": "Manfrotto MT055 Stativ",
        "category": "tripod",
        "brand": "Manfrotto",
        "model": "MT055XPRO3",
        "serial_number": "SN005-MAN-2024",
        "description": "Robustes Aluminium-Stativ",
        "purchase_date": date(2024, 3, 20),
        "purchase_price": 400,
        "current_value": 380,
        "daily_rate": 25,
        "weekly_rate": 120,
        "monthly_rate": 400,
        "tags": ["stativ", "robust", "heavy-duty", "professional"],
    },
]


def seed_database(db: Session, reset: bool = False) -> dict:
    """Insert sample users, locations and equipment.

    Existing rows are left alone unless ``reset`` is set, in which case all
    equipment, locations and non-sample users are removed first. Sample rows
    that already exist (matched by email, name or serial number) are skipped.
    """
    if reset:
        db.query(Booking).delete()
        db.query(MaintenanceRecord).delete()
        db.query(Equipment).delete()
        db.query(Location).delete()
        db.query(User).filter(
            User.email.notin_([u["email"] for u in SAMPLE_USERS])
        ).delete(synchronize_session=False)
        db.commit()

    users = []
    for data in SAMPLE_USERS:
        user = db.query(User).filter(User.email == data["email"]).first()
        if user is None:
            fields = {k: v for k, v in data.items() if k != "password"}
            user = User(is_active=True, **fields)
            user.set_password(data["password"])
            db.add(user)
            logger.info("Created user %s (%s)", user.email, user.role)
        users.append(user)
    db.flush()

    admin = users[0]

    locations = []
    for data in SAMPLE_LOCATIONS:
        location = db.query(Location).filter(Location.name == data["name"]).first()
        if location is None:
            location = Location(created_by=admin.id, **data)
            db.add(location)
            logger.info("Created location %s", location.name)
        locations.append(location)
    db.flush()

    warehouse = locations[0]

    equipment = []
    for data in SAMPLE_EQUIPMENT:
        item = db.query(Equipment).filter(Equipment.serial_number == data["serial_number"]).first()
        if item is None:
            item = Equipment(
                location_id=warehouse.id,
                qr_code=default_qr_code(data["serial_number"]),
                status="available",
                created_by=admin.id,
                last_modified_by=admin.id,
                **data,
            )
            db.add(item)
            logger.info("Created equipment %s", item.name)
        equipment.append(item)

    for location in locations:
        location.update_capacity_usage(db)

    db.commit()

    return {"users": len(users), "locations": len(locations), "equipment": len(equipment)}
