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

"""Equipment and maintenance models."""

import time
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from filmgear.database import Base

EQUIPMENT_CATEGORIES = (
    "camera",
    "lens",
    "lighting",
    "audio",
    "tripod",
    "grip",
    "monitor",
    "computer",
    "cable",
    "accessory",
    "other",
)

EQUIPMENT_STATUSES = (
    "available",
    "booked",
    "checked-out",
    "rented",
    "in-custody",
    "maintenance",
    "damaged",
    "lost",
)

# Statuses that mean the item is physically with a borrower
OUT_STATUSES = ("checked-out", "rented", "in-custody")


def default_qr_code(serial_number: Optional[str]) -> str:
    """Stored QR identifier: EQ-<SERIAL>-<epoch millis>."""
    millis = int(time.time() * 1000)
    if serial_number:
        return f"EQ-{serial_number.upper()}-{millis}"
    return f"EQ-{millis}"


class Equipment(Base):
    """Equipment model."""

    __tablename__ = "equipment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    category = Column(String(20), nullable=False, index=True)
    brand = Column(String(50), nullable=False)
    model = Column(String(100), nullable=False)
    serial_number = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    specifications = Column(JSON, nullable=False, default=dict)
    image_url = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default="available", index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    qr_code = Column(String(120), unique=True, nullable=False)
    purchase_date = Column(Date, nullable=True)
    purchase_price = Column(Float, nullable=True)
    current_value = Column(Float, nullable=True)
    daily_rate = Column(Float, nullable=False, default=0)
    weekly_rate = Column(Float, nullable=False, default=0)
    monthly_rate = Column(Float, nullable=False, default=0)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_checked_out = Column(DateTime, nullable=True)
    last_checked_in = Column(DateTime, nullable=True)
    last_booked_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    last_booked_at = Column(DateTime, nullable=True)
    total_rentals = Column(Integer, nullable=False, default=0)
    total_revenue = Column(Float, nullable=False, default=0)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    last_modified_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    location = relationship("Location", back_populates="equipment")
    bookings = relationship("Booking", back_populates="equipment", cascade="all, delete-orphan")
    maintenance_history = relationship(
        "MaintenanceRecord",
        back_populates="equipment",
        cascade="all, delete-orphan",
        order_by="MaintenanceRecord.date",
    )

    @property
    def full_name(self) -> str:
        return f"{self.brand} {self.model} - {self.name}"

    @property
    def is_available(self) -> bool:
        return self.status == "available"

    @property
    def age(self) -> Optional[int]:
        """Age in whole years since purchase."""
        if not self.purchase_date:
            return None
        return int((date.today() - self.purchase_date).days / 365.25)

    def update_status(self, new_status: str, user_id: Optional[int] = None) -> None:
        """Change status, stamping checkout/checkin bookkeeping."""
        self.status = new_status
        self.last_modified_by = user_id

        if new_status in OUT_STATUSES:
            self.last_checked_out = datetime.utcnow()
            self.total_rentals = (self.total_rentals or 0) + 1
        elif new_status == "available":
            self.last_checked_in = datetime.utcnow()

    def to_dict(self, include_location: bool = True, include_maintenance: bool = False) -> dict:
        """Convert to dictionary."""
        result = {
            "id": self.id,
            "name": self.name,
            "full_name": self.full_name,
            "category": self.category,
            "brand": self.brand,
            "model": self.model,
            "serial_number": self.serial_number,
            "description": self.description,
            "specifications": self.specifications or {},
            "image_url": self.image_url,
            "status": self.status,
            "is_available": self.is_available,
            "location_id": self.location_id,
            "qr_code": self.qr_code,
            "purchase_date": self.purchase_date.isoformat() if self.purchase_date else None,
            "purchase_price": self.purchase_price,
            "current_value": self.current_value,
            "age": self.age,
            "rental_rate": {
                "daily": self.daily_rate,
                "weekly": self.weekly_rate,
                "monthly": self.monthly_rate,
            },
            "tags": self.tags or [],
            "notes": self.notes,
            "is_active": self.is_active,
            "last_checked_out": self.last_checked_out.isoformat() if self.last_checked_out else None,
            "last_checked_in": self.last_checked_in.isoformat() if self.last_checked_in else None,
            "last_booked_at": self.last_booked_at.isoformat() if self.last_booked_at else None,
            "total_rentals": self.total_rentals,
            "total_revenue": self.total_revenue,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_location and self.location:
            result["location_name"] = self.location.name
        if include_maintenance:
            result["maintenance_history"] = [m.to_dict() for m in self.maintenance_history]
        return result

    def to_summary(self) -> dict:
        """Short form used when embedding equipment in other records."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "serial_number": self.serial_number,
            "status": self.status,
        }

    def __repr__(self):
        return f"<Equipment(id={self.id}, name='{self.name}', status='{self.status}')>"


class MaintenanceRecord(Base):
    """Maintenance history entry for a piece of equipment."""

    __tablename__ = "maintenance_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    equipment_id = Column(
        Integer, ForeignKey("equipment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(Date, nullable=False, default=date.today)
    description = Column(Text, nullable=False)
    cost = Column(Float, nullable=False, default=0)
    performed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    equipment = relationship("Equipment", back_populates="maintenance_history")
    technician = relationship("User")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "date": self.date.isoformat() if self.date else None,
            "description": self.description,
            "cost": self.cost,
            "performed_by": self.technician.to_summary() if self.technician else None,
        }

    def __repr__(self):
        return f"<MaintenanceRecord(equipment_id={self.equipment_id}, date={self.date})>"
