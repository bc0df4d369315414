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

"""Equipment management routes."""

import logging
from datetime import date
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from filmgear.config import get_settings
from filmgear.database import get_db
from filmgear.middleware.auth import get_current_user, require_admin, require_staff
from filmgear.models.booking import Booking
from filmgear.models.equipment import (
    EQUIPMENT_CATEGORIES,
    EQUIPMENT_STATUSES,
    Equipment,
    MaintenanceRecord,
    default_qr_code,
)
from filmgear.models.location import Location
from filmgear.models.user import User
from filmgear.services import stats
from filmgear.services.availability import check_availability
from filmgear.services.qr import DEFAULT_SIZE, MAX_SIZE, MIN_SIZE, find_by_code, generate_equipment_qr
from filmgear.utils.helpers import (
    apply_sort,
    is_filter_set,
    paginate,
    sanitize_input,
    success_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/equipment")

Category = Literal[EQUIPMENT_CATEGORIES]
EquipmentStatus = Literal[EQUIPMENT_STATUSES]

SORT_FIELDS = ("name", "brand", "model", "status", "category", "created_at", "updated_at")

# Maximum stored length of free-text fields
TEXT_LIMITS = {"name": 100, "brand": 50, "model": 100, "description": 1000}

# Fields an update may clear by sending null
NULLABLE_FIELDS = (
    "description",
    "image_url",
    "purchase_date",
    "purchase_price",
    "current_value",
    "notes",
)


class RentalRate(BaseModel):
    daily: float = Field(default=0, ge=0)
    weekly: float = Field(default=0, ge=0)
    monthly: float = Field(default=0, ge=0)


class EquipmentCreate(BaseModel):
    """Equipment creation request."""

    name: str = Field(min_length=1, max_length=100)
    category: Category
    brand: str = Field(min_length=1, max_length=50)
    model: str = Field(min_length=1, max_length=100)
    serial_number: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    specifications: Dict[str, Any] = Field(default_factory=dict)
    image_url: Optional[str] = Field(default=None, max_length=500)
    status: EquipmentStatus = "available"
    location_id: int
    qr_code: Optional[str] = Field(default=None, max_length=120)
    purchase_date: Optional[date] = None
    purchase_price: Optional[float] = Field(default=None, ge=0)
    current_value: Optional[float] = Field(default=None, ge=0)
    rental_rate: RentalRate = Field(default_factory=RentalRate)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("serial_number")
    @classmethod
    def uppercase_serial(cls, v):
        return v.strip().upper()

    @field_validator("tags")
    @classmethod
    def lowercase_tags(cls, v):
        return [t.strip().lower() for t in v if t.strip()]


class EquipmentUpdate(BaseModel):
    """Equipment update request; omitted fields are left alone."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    category: Optional[Category] = None
    brand: Optional[str] = Field(default=None, min_length=1, max_length=50)
    model: Optional[str] = Field(default=None, min_length=1, max_length=100)
    serial_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    specifications: Optional[Dict[str, Any]] = None
    image_url: Optional[str] = Field(default=None, max_length=500)
    status: Optional[EquipmentStatus] = None
    location_id: Optional[int] = None
    purchase_date: Optional[date] = None
    purchase_price: Optional[float] = Field(default=None, ge=0)
    current_value: Optional[float] = Field(default=None, ge=0)
    rental_rate: Optional[RentalRate] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    is_active: Optional[bool] = None

    @field_validator("serial_number")
    @classmethod
    def uppercase_serial(cls, v):
        return v.strip().upper() if v else v

    @field_validator("tags")
    @classmethod
    def lowercase_tags(cls, v):
        if v is None:
            return v
        return [t.strip().lower() for t in v if t.strip()]


class StatusUpdate(BaseModel):
    status: EquipmentStatus
    notes: Optional[str] = Field(default=None, max_length=1000)


class MaintenanceCreate(BaseModel):
    description: str = Field(min_length=1, max_length=1000)
    cost: float = Field(default=0, ge=0)
    service_date: Optional[date] = Field(default=None, alias="date")

    model_config = {"populate_by_name": True}


def get_equipment_or_404(db: Session, equipment_id: int) -> Equipment:
    equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
    if not equipment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Equipment not found",
        )
    return equipment


def ensure_location(db: Session, location_id: int) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Location not found",
        )
    return location


def ensure_unique_serial(db: Session, serial_number: str, exclude_id: Optional[int] = None):
    query = db.query(Equipment).filter(Equipment.serial_number == serial_number)
    if exclude_id:
        query = query.filter(Equipment.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Equipment with this serial number already exists",
        )


@router.get("")
async def list_equipment(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = None,
    location_id: Optional[int] = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
):
    """List equipment with filters and paging."""
    limit = limit or get_settings().pagination.default_limit

    query = (
        db.query(Equipment)
        .options(joinedload(Equipment.location))
        .filter(Equipment.is_active.is_(True))
    )

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Equipment.name.ilike(pattern),
                Equipment.brand.ilike(pattern),
                Equipment.model.ilike(pattern),
                Equipment.serial_number.ilike(pattern),
                Equipment.description.ilike(pattern),
            )
        )

    if is_filter_set(status_filter):
        query = query.filter(Equipment.status == status_filter)

    if is_filter_set(category):
        query = query.filter(Equipment.category == category)

    if location_id:
        query = query.filter(Equipment.location_id == location_id)

    query = apply_sort(query, Equipment, sort_by, sort_order, SORT_FIELDS)
    items, pagination = paginate(query, page, limit)

    return success_response([e.to_dict() for e in items], pagination=pagination)


@router.get("/stats/overview")
async def equipment_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Inventory counts by status, category and location."""
    return success_response(
        {
            "overview": stats.equipment_overview(db),
            "by_category": stats.equipment_by_category(db),
            "by_location": stats.equipment_by_location(db),
        }
    )


@router.get("/qr/{code}")
async def get_equipment_by_qr(
    code: str,
    db: Session = Depends(get_db),
):
    """Look up equipment by a scanned label or stored QR code."""
    try:
        equipment = find_by_code(db, code)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not equipment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Equipment not found",
        )

    return success_response(equipment.to_dict())


@router.get("/{equipment_id}")
async def get_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
):
    """Equipment details with location and maintenance history."""
    equipment = get_equipment_or_404(db, equipment_id)

    result = equipment.to_dict(include_maintenance=True)
    result["location"] = equipment.location.to_dict() if equipment.location else None

    return success_response(result)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_equipment(
    data: EquipmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Add equipment to the inventory."""
    ensure_unique_serial(db, data.serial_number)
    location = ensure_location(db, data.location_id)

    qr_code = data.qr_code or default_qr_code(data.serial_number)
    if db.query(Equipment).filter(Equipment.qr_code == qr_code).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Equipment with this QR code already exists",
        )

    equipment = Equipment(
        name=sanitize_input(data.name, TEXT_LIMITS["name"]),
        category=data.category,
        brand=sanitize_input(data.brand, TEXT_LIMITS["brand"]),
        model=sanitize_input(data.model, TEXT_LIMITS["model"]),
        serial_number=data.serial_number,
        description=(
            sanitize_input(data.description, TEXT_LIMITS["description"])
            if data.description
            else None
        ),
        specifications=data.specifications,
        image_url=data.image_url,
        status=data.status,
        location_id=data.location_id,
        qr_code=qr_code,
        purchase_date=data.purchase_date,
        purchase_price=data.purchase_price,
        current_value=data.current_value,
        daily_rate=data.rental_rate.daily,
        weekly_rate=data.rental_rate.weekly,
        monthly_rate=data.rental_rate.monthly,
        tags=data.tags,
        notes=data.notes,
        created_by=current_user.id,
        last_modified_by=current_user.id,
    )
    db.add(equipment)
    location.update_capacity_usage(db)
    db.commit()
    db.refresh(equipment)

    logger.info("Equipment %s created by user %s", equipment.id, current_user.id)

    return success_response(equipment.to_dict(), message="Equipment created successfully")


@router.put("/{equipment_id}")
async def update_equipment(
    equipment_id: int,
    data: EquipmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Partially update equipment."""
    equipment = get_equipment_or_404(db, equipment_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("serial_number"):
        ensure_unique_serial(db, changes["serial_number"], exclude_id=equipment.id)

    previous_location = equipment.location
    new_location = None
    if changes.get("location_id"):
        new_location = ensure_location(db, changes["location_id"])

    rates = changes.pop("rental_rate", None)
    if rates is not None:
        equipment.daily_rate = rates["daily"]
        equipment.weekly_rate = rates["weekly"]
        equipment.monthly_rate = rates["monthly"]

    new_status = changes.pop("status", None)

    for field, limit in TEXT_LIMITS.items():
        if changes.get(field) is not None:
            changes[field] = sanitize_input(changes[field], limit)

    for field, value in changes.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(equipment, field, value)

    if new_status and new_status != equipment.status:
        equipment.update_status(new_status, current_user.id)

    equipment.last_modified_by = current_user.id

    if new_location is not None or "is_active" in changes:
        for location in {previous_location, new_location} - {None}:
            location.update_capacity_usage(db)

    db.commit()
    db.refresh(equipment)

    return success_response(equipment.to_dict(), message="Equipment updated successfully")


@router.patch("/{equipment_id}/status")
async def update_equipment_status(
    equipment_id: int,
    data: StatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Set equipment status with checkout/checkin bookkeeping."""
    equipment = get_equipment_or_404(db, equipment_id)

    equipment.update_status(data.status, current_user.id)
    if data.notes:
        equipment.notes = sanitize_input(data.notes, 1000)

    db.commit()
    db.refresh(equipment)

    return success_response(equipment.to_dict(), message="Equipment status updated successfully")


@router.post("/{equipment_id}/maintenance", status_code=status.HTTP_201_CREATED)
async def add_maintenance_record(
    equipment_id: int,
    data: MaintenanceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Log maintenance and take the equipment out of service."""
    equipment = get_equipment_or_404(db, equipment_id)

    record = MaintenanceRecord(
        equipment_id=equipment.id,
        date=data.service_date or date.today(),
        description=sanitize_input(data.description, 1000),
        cost=data.cost,
        performed_by=current_user.id,
    )
    db.add(record)
    equipment.update_status("maintenance", current_user.id)
    db.commit()
    db.refresh(equipment)

    return success_response(
        equipment.to_dict(include_maintenance=True),
        message="Maintenance record added successfully",
    )


@router.delete("/{equipment_id}")
async def delete_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Remove equipment and its booking history."""
    equipment = get_equipment_or_404(db, equipment_id)

    in_use = (
        db.query(Booking)
        .filter(
            Booking.equipment_id == equipment.id,
            Booking.status.in_(("approved", "confirmed", "active", "overdue")),
        )
        .count()
    )
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete equipment with active bookings",
        )

    location = equipment.location
    db.delete(equipment)
    if location is not None:
        location.update_capacity_usage(db)
    db.commit()

    logger.info("Equipment %s deleted by user %s", equipment_id, current_user.id)

    return success_response(message="Equipment deleted successfully")


@router.get("/{equipment_id}/qr")
async def get_equipment_qr(
    equipment_id: int,
    size: int = Query(DEFAULT_SIZE, ge=MIN_SIZE, le=MAX_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """QR label for a piece of equipment."""
    equipment = get_equipment_or_404(db, equipment_id)
    return success_response(generate_equipment_qr(equipment, size))


@router.get("/{equipment_id}/availability")
async def get_equipment_availability(
    equipment_id: int,
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Whether the equipment can be booked for a date range."""
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be on or after start date",
        )

    return success_response(check_availability(db, equipment_id, start_date, end_date))
