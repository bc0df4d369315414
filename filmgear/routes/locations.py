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

"""Storage location routes."""

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from filmgear.database import get_db
from filmgear.middleware.auth import get_current_user, require_admin, require_staff
from filmgear.models.equipment import Equipment
from filmgear.models.location import FACILITIES, LOCATION_TYPES, Location
from filmgear.models.user import User
from filmgear.utils.helpers import sanitize_input, success_response

router = APIRouter(prefix="/api/locations")

LocationType = Literal[LOCATION_TYPES]
Facility = Literal[FACILITIES]


class Address(BaseModel):
    street: Optional[str] = Field(default=None, max_length=200)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)


class Capacity(BaseModel):
    total: Optional[int] = Field(default=None, ge=0)
    used: int = Field(default=0, ge=0)


class ContactPerson(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=r"^\+?[1-9]\d{0,15}$")


class LocationCreate(BaseModel):
    """Location creation request."""

    name: str = Field(min_length=1, max_length=100)
    type: LocationType = "storage"
    address: Address = Field(default_factory=Address)
    description: Optional[str] = Field(default=None, max_length=500)
    capacity: Capacity = Field(default_factory=Capacity)
    contact_person: ContactPerson = Field(default_factory=ContactPerson)
    facilities: List[Facility] = Field(default_factory=list)
    parent_id: Optional[int] = None


class LocationUpdate(BaseModel):
    """Location update request."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[LocationType] = None
    address: Optional[Address] = None
    description: Optional[str] = Field(default=None, max_length=500)
    capacity: Optional[Capacity] = None
    contact_person: Optional[ContactPerson] = None
    facilities: Optional[List[Facility]] = None
    parent_id: Optional[int] = None
    is_active: Optional[bool] = None


def get_location_or_404(db: Session, location_id: int) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Location not found",
        )
    return location


def apply_nested(location: Location, address=None, capacity=None, contact=None) -> None:
    if address is not None:
        location.street = sanitize_input(address.street, 200) or None
        location.city = sanitize_input(address.city, 100) or None
        location.state = sanitize_input(address.state, 100) or None
        location.zip_code = address.zip_code
        location.country = sanitize_input(address.country, 100) or None
    if capacity is not None:
        location.capacity_total = capacity.total
        location.capacity_used = capacity.used
    if contact is not None:
        location.contact_name = sanitize_input(contact.name, 100) or None
        location.contact_email = contact.email.lower() if contact.email else None
        location.contact_phone = contact.phone


def check_parent(db: Session, parent_id: Optional[int], location_id: Optional[int] = None) -> None:
    if parent_id is None:
        return
    if parent_id == location_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A location cannot be its own parent",
        )
    get_location_or_404(db, parent_id)


@router.get("")
async def list_locations(
    type: Optional[str] = None,
    city: Optional[str] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List locations with optional filters."""
    query = db.query(Location)

    if type and type != "all":
        query = query.filter(Location.type == type)
    if city:
        query = query.filter(Location.city.ilike(f"%{city}%"))
    if is_active is not None:
        query = query.filter(Location.is_active.is_(is_active))

    locations = query.order_by(Location.name).all()

    counts = dict(
        db.query(Equipment.location_id, func.count(Equipment.id))
        .group_by(Equipment.location_id)
        .all()
    )

    result = []
    for location in locations:
        item = location.to_dict()
        item["equipment_count"] = counts.get(location.id, 0)
        result.append(item)

    return success_response(result)


@router.get("/stats/overview")
async def location_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Location counts by type."""
    total = db.query(func.count(Location.id)).scalar() or 0
    active = db.query(func.count(Location.id)).filter(Location.is_active.is_(True)).scalar() or 0
    by_type = dict(db.query(Location.type, func.count(Location.id)).group_by(Location.type).all())

    return success_response(
        {
            "total": total,
            "active": active,
            "by_type": {t: by_type.get(t, 0) for t in LOCATION_TYPES},
        }
    )


@router.get("/{location_id}")
async def get_location(
    location_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Location details with its equipment."""
    location = get_location_or_404(db, location_id)

    result = location.to_dict()
    result["equipment"] = [e.to_summary() for e in location.equipment]
    result["sub_locations"] = [{"id": s.id, "name": s.name} for s in location.sub_locations]

    return success_response(result)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_location(
    data: LocationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Create a location."""
    check_parent(db, data.parent_id)

    location = Location(
        name=sanitize_input(data.name, 100),
        type=data.type,
        description=sanitize_input(data.description, 500) if data.description else None,
        facilities=list(data.facilities),
        parent_id=data.parent_id,
        created_by=current_user.id,
    )
    apply_nested(location, data.address, data.capacity, data.contact_person)

    db.add(location)
    db.commit()
    db.refresh(location)

    return success_response(location.to_dict(), message="Location created successfully")


@router.put("/{location_id}")
async def update_location(
    location_id: int,
    data: LocationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Update a location."""
    location = get_location_or_404(db, location_id)

    if data.parent_id is not None:
        check_parent(db, data.parent_id, location.id)
        location.parent_id = data.parent_id

    if data.name is not None:
        location.name = sanitize_input(data.name, 100)
    if data.type is not None:
        location.type = data.type
    if data.description is not None:
        location.description = sanitize_input(data.description, 500) or None
    if data.facilities is not None:
        location.facilities = list(data.facilities)
    if data.is_active is not None:
        location.is_active = data.is_active

    apply_nested(location, data.address, data.capacity, data.contact_person)

    db.commit()
    db.refresh(location)

    return success_response(location.to_dict(), message="Location updated successfully")


@router.delete("/{location_id}")
async def delete_location(
    location_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Delete an empty location."""
    location = get_location_or_404(db, location_id)

    equipment_count = db.query(Equipment).filter(Equipment.location_id == location.id).count()
    if equipment_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete location with {equipment_count} equipment item(s) assigned",
        )

    for child in location.sub_locations:
        child.parent_id = None

    db.delete(location)
    db.commit()

    return success_response(message="Location deleted successfully")
