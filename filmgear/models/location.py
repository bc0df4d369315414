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

"""Storage location model."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from filmgear.database import Base
from filmgear.utils.helpers import percentage

LOCATION_TYPES = ("warehouse", "studio", "office", "storage", "workshop", "other")

FACILITIES = (
    "loading_dock",
    "parking",
    "security",
    "climate_control",
    "power_outlets",
    "internet",
    "bathroom",
    "kitchen",
    "meeting_room",
    "workshop",
    "other",
)


class Location(Base):
    """Place where equipment is stored."""

    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, index=True)
    type = Column(String(20), nullable=False, default="storage", index=True)
    street = Column(String(200), nullable=True)
    city = Column(String(100), nullable=True, index=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    capacity_total = Column(Integer, nullable=True)
    capacity_used = Column(Integer, nullable=False, default=0)
    contact_name = Column(String(100), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(20), nullable=True)
    facilities = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    parent_id = Column(Integer, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    parent = relationship("Location", remote_side=[id], backref="sub_locations")
    equipment = relationship("Equipment", back_populates="location")

    @property
    def full_address(self) -> str:
        parts = [self.street, self.city, self.state, self.zip_code, self.country]
        return ", ".join(p for p in parts if p)

    @property
    def capacity_usage(self) -> int:
        """Used capacity as a rounded percentage."""
        if not self.capacity_total:
            return 0
        return percentage(self.capacity_used or 0, self.capacity_total)

    @property
    def is_available(self) -> bool:
        if not self.is_active:
            return False
        if not self.capacity_total:
            return True
        return (self.capacity_used or 0) < self.capacity_total

    def update_capacity_usage(self, db) -> int:
        """Recount active equipment stored here."""
        from filmgear.models.equipment import Equipment

        db.flush()
        self.capacity_used = (
            db.query(Equipment)
            .filter(Equipment.location_id == self.id, Equipment.is_active == True)  # noqa: E712
            .count()
        )
        return self.capacity_used

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "address": {
                "street": self.street,
                "city": self.city,
                "state": self.state,
                "zip_code": self.zip_code,
                "country": self.country,
            },
            "full_address": self.full_address,
            "description": self.description,
            "capacity": {
                "total": self.capacity_total,
                "used": self.capacity_used,
                "usage": self.capacity_usage,
            },
            "contact_person": {
                "name": self.contact_name,
                "email": self.contact_email,
                "phone": self.contact_phone,
            },
            "facilities": self.facilities or [],
            "is_active": self.is_active,
            "is_available": self.is_available,
            "parent_id": self.parent_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Location(id={self.id}, name='{self.name}')>"
