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

"""Booking management routes."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from filmgear.config import get_settings
from filmgear.database import get_db
from filmgear.errors import BookingConflict, EquipmentUnavailable
from filmgear.middleware.auth import get_current_user, require_staff
from filmgear.models.booking import CLOSED_STATUSES, CONDITIONS, PRIORITIES, Booking
from filmgear.models.equipment import Equipment
from filmgear.models.user import User
from filmgear.services import stats
from filmgear.services.availability import check_availability, find_conflicts
from filmgear.services.email import notify_booking_status
from filmgear.utils.helpers import (
    apply_sort,
    generate_csv,
    is_filter_set,
    paginate,
    rental_days,
    sanitize_input,
    success_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings")

Priority = Literal[PRIORITIES]
Condition = Literal[CONDITIONS]

SORT_FIELDS = ("start_date", "end_date", "status", "priority", "total_cost", "created_at")


class BookingCreate(BaseModel):
    """Booking creation request."""

    equipment_id: int
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    purpose: str = Field(min_length=1, max_length=500)
    project: Optional[str] = Field(default=None, max_length=200)
    location: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=1000)
    priority: Priority = "normal"
    deposit: float = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        return self


class BookingUpdate(BaseModel):
    """Booking update request."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    purpose: Optional[str] = Field(default=None, min_length=1, max_length=500)
    project: Optional[str] = Field(default=None, max_length=200)
    location: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=1000)
    priority: Optional[Priority] = None
    deposit: Optional[float] = Field(default=None, ge=0)
    status: Optional[Literal["pending", "approved", "confirmed", "active", "overdue"]] = None
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class AvailabilityRequest(BaseModel):
    equipment_id: int
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        return self


class ApproveRequest(BaseModel):
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class CheckOutRequest(BaseModel):
    condition: Condition = "good"
    notes: Optional[str] = Field(default=None, max_length=1000)


class CheckInRequest(BaseModel):
    condition: Condition = "good"
    damage_report: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = Field(default=None, max_length=1000)


def get_booking_or_404(db: Session, booking_id: int) -> Booking:
    booking = (
        db.query(Booking)
        .options(joinedload(Booking.user), joinedload(Booking.equipment))
        .filter(Booking.id == booking_id)
        .first()
    )
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


def ensure_can_access(booking: Booking, user: User) -> None:
    """Borrowers see their own bookings; staff see all."""
    if booking.user_id != user.id and not user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. You can only access your own bookings.",
        )


def check_duration(start_date: date, end_date: date) -> None:
    max_days = get_settings().booking.max_duration_days
    if rental_days(start_date, end_date) > max_days:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Booking duration cannot exceed {max_days} days",
        )


def queue_status_email(background_tasks: BackgroundTasks, booking: Booking) -> None:
    if get_settings().email.enabled and booking.user:
        background_tasks.add_task(
            notify_booking_status,
            booking.user.email,
            booking.user.first_name,
            booking.to_dict(),
        )


@router.get("")
async def list_bookings(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    equipment_id: Optional[int] = None,
    user_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List bookings; borrowers only ever see their own."""
    limit = limit or get_settings().pagination.default_limit

    query = db.query(Booking).options(joinedload(Booking.user), joinedload(Booking.equipment))

    if not current_user.is_staff:
        query = query.filter(Booking.user_id == current_user.id)
    elif user_id:
        query = query.filter(Booking.user_id == user_id)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Booking.purpose.ilike(pattern), Booking.notes.ilike(pattern)))

    if is_filter_set(status_filter):
        query = query.filter(Booking.status == status_filter)

    if equipment_id:
        query = query.filter(Booking.equipment_id == equipment_id)

    if start_date:
        query = query.filter(Booking.start_date >= start_date)

    if end_date:
        query = query.filter(Booking.end_date <= end_date)

    query = apply_sort(query, Booking, sort_by, sort_order, SORT_FIELDS)
    items, pagination = paginate(query, page, limit)

    return success_response([b.to_dict() for b in items], pagination=pagination)


@router.get("/user")
async def list_my_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Current user's most recent bookings."""
    query = (
        db.query(Booking)
        .options(joinedload(Booking.equipment))
        .filter(Booking.user_id == current_user.id)
    )
    if is_filter_set(status_filter):
        query = query.filter(Booking.status == status_filter)

    bookings = query.order_by(Booking.created_at.desc()).limit(limit).all()

    return success_response([b.to_dict(include_user=False) for b in bookings])


@router.get("/stats/overview")
async def booking_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Counts by status, monthly trend and most-booked equipment."""
    return success_response(
        {
            "overview": stats.booking_overview(db),
            "monthly_trends": stats.monthly_trends(db),
            "top_equipment": stats.top_equipment(db),
        }
    )


@router.get("/upcoming")
async def upcoming_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Next approved or active bookings starting today or later."""
    bookings = (
        db.query(Booking)
        .options(joinedload(Booking.user), joinedload(Booking.equipment))
        .filter(
            Booking.start_date >= date.today(),
            Booking.status.in_(("approved", "active")),
        )
        .order_by(Booking.start_date, Booking.start_time)
        .limit(10)
        .all()
    )
    return success_response([b.to_dict() for b in bookings])


@router.get("/overdue")
async def overdue_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Approved or active bookings past their end date."""
    bookings = (
        db.query(Booking)
        .options(joinedload(Booking.user), joinedload(Booking.equipment))
        .filter(
            Booking.end_date < date.today(),
            Booking.status.in_(("approved", "active")),
        )
        .order_by(Booking.end_date)
        .all()
    )
    return success_response([b.to_dict() for b in bookings])


@router.get("/export/csv")
async def export_bookings_csv(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Download all bookings as CSV."""
    bookings = (
        db.query(Booking)
        .options(joinedload(Booking.user), joinedload(Booking.equipment))
        .order_by(Booking.start_date.desc())
        .all()
    )

    headers = [
        "ID",
        "Equipment",
        "Serial Number",
        "User",
        "Email",
        "Start Date",
        "End Date",
        "Days",
        "Status",
        "Purpose",
        "Project",
        "Total Cost",
        "Created At",
    ]
    rows = [
        [
            b.id,
            b.equipment.name if b.equipment else "",
            b.equipment.serial_number if b.equipment else "",
            b.user.full_name if b.user else "",
            b.user.email if b.user else "",
            b.start_date.isoformat(),
            b.end_date.isoformat(),
            b.duration_days,
            b.status,
            b.purpose,
            b.project or "",
            f"{b.total_cost:.2f}",
            b.created_at.strftime("%Y-%m-%d %H:%M") if b.created_at else "",
        ]
        for b in bookings
    ]

    filename = f"bookings_{date.today().isoformat()}.csv"
    return generate_csv(headers, rows, filename)


@router.post("/check-availability")
async def check_booking_availability(
    data: AvailabilityRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Advisory availability check; reserves nothing."""
    result = check_availability(
        db,
        data.equipment_id,
        data.start_date,
        data.end_date,
        data.start_time,
        data.end_time,
    )
    return success_response(result)


@router.get("/{booking_id}")
async def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get booking details."""
    booking = get_booking_or_404(db, booking_id)
    ensure_can_access(booking, current_user)

    return success_response(booking.to_dict())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Request a booking.

    The equipment row stays locked from the conflict check until commit so
    two concurrent requests cannot both claim the same dates.
    """
    settings = get_settings()

    equipment = (
        db.query(Equipment)
        .filter(Equipment.id == data.equipment_id)
        .with_for_update()
        .first()
    )

    if not equipment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Equipment not found",
        )

    if not equipment.is_active or equipment.status != "available":
        raise EquipmentUnavailable(equipment_status=equipment.status)

    check_duration(data.start_date, data.end_date)

    # Check daily booking limit
    today = datetime.utcnow().date()
    today_bookings = (
        db.query(Booking)
        .filter(
            Booking.user_id == current_user.id,
            Booking.created_at >= datetime.combine(today, time.min),
            Booking.created_at < datetime.combine(today + timedelta(days=1), time.min),
        )
        .count()
    )

    if today_bookings >= settings.rate_limit.max_bookings_per_user_per_day:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Daily booking limit ({settings.rate_limit.max_bookings_per_user_per_day}) reached",
        )

    conflicts = find_conflicts(
        db,
        equipment.id,
        data.start_date,
        data.end_date,
        data.start_time,
        data.end_time,
    )
    if conflicts:
        raise BookingConflict(conflicts=[c.to_conflict() for c in conflicts])

    booking = Booking(
        equipment_id=equipment.id,
        user_id=current_user.id,
        start_date=data.start_date,
        end_date=data.end_date,
        start_time=data.start_time,
        end_time=data.end_time,
        status="pending",
        purpose=sanitize_input(data.purpose, settings.booking.max_purpose_length),
        project=sanitize_input(data.project, 200) if data.project else None,
        location=sanitize_input(data.location, 200) if data.location else None,
        notes=sanitize_input(data.notes, settings.booking.max_notes_length) if data.notes else None,
        priority=data.priority,
        deposit=data.deposit,
    )
    booking.snapshot_rates(equipment)
    booking.calculate_cost()

    db.add(booking)
    db.commit()
    db.refresh(booking)

    logger.info(
        "Booking %s created for equipment %s by user %s",
        booking.id,
        equipment.id,
        current_user.id,
    )

    return success_response(
        booking.to_dict(),
        message=f"Booking created for {equipment.name}",
    )


@router.put("/{booking_id}")
async def update_booking(
    booking_id: int,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a booking; dates are re-checked against other bookings."""
    settings = get_settings()

    booking = get_booking_or_404(db, booking_id)
    ensure_can_access(booking, current_user)

    if booking.status in CLOSED_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot update cancelled or completed bookings",
        )

    if (data.status is not None or data.admin_notes is not None) and not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can change booking status",
        )

    new_start_date = data.start_date or booking.start_date
    new_end_date = data.end_date or booking.end_date
    new_start_time = data.start_time if data.start_time is not None else booking.start_time
    new_end_time = data.end_time if data.end_time is not None else booking.end_time

    if new_end_date < new_start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be on or after start date",
        )

    dates_changed = (
        new_start_date != booking.start_date
        or new_end_date != booking.end_date
        or new_start_time != booking.start_time
        or new_end_time != booking.end_time
    )

    if dates_changed:
        check_duration(new_start_date, new_end_date)
        conflicts = find_conflicts(
            db,
            booking.equipment_id,
            new_start_date,
            new_end_date,
            new_start_time,
            new_end_time,
            exclude_booking_id=booking.id,
        )
        if conflicts:
            raise BookingConflict(
                "Updated booking would conflict with existing reservations",
                conflicts=[c.to_conflict() for c in conflicts],
            )

    booking.start_date = new_start_date
    booking.end_date = new_end_date
    booking.start_time = new_start_time
    booking.end_time = new_end_time

    if data.purpose is not None:
        booking.purpose = sanitize_input(data.purpose, settings.booking.max_purpose_length)
    if data.project is not None:
        booking.project = sanitize_input(data.project, 200) or None
    if data.location is not None:
        booking.location = sanitize_input(data.location, 200) or None
    if data.notes is not None:
        booking.notes = sanitize_input(data.notes, settings.booking.max_notes_length) or None
    if data.priority is not None:
        booking.priority = data.priority
    if data.deposit is not None:
        booking.deposit = data.deposit
    if data.status is not None:
        booking.status = data.status
    if data.admin_notes is not None:
        booking.admin_notes = sanitize_input(data.admin_notes, 1000) or None

    booking.calculate_cost()
    db.commit()
    db.refresh(booking)

    return success_response(booking.to_dict(), message="Booking updated successfully")


@router.patch("/{booking_id}/approve")
async def approve_booking(
    booking_id: int,
    background_tasks: BackgroundTasks,
    data: Optional[ApproveRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Approve a pending booking and hand out the equipment."""
    booking = get_booking_or_404(db, booking_id)

    if booking.status != "pending":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only pending bookings can be approved",
        )

    booking.status = "approved"
    booking.approved_by = current_user.id
    booking.approved_at = datetime.utcnow()
    if data and data.admin_notes:
        booking.admin_notes = sanitize_input(data.admin_notes, 1000)

    equipment = booking.equipment
    if equipment:
        equipment.status = "checked-out"
        equipment.last_booked_by = booking.user_id
        equipment.last_booked_at = datetime.utcnow()
        equipment.last_modified_by = current_user.id

    db.commit()
    db.refresh(booking)

    queue_status_email(background_tasks, booking)

    return success_response(booking.to_dict(), message="Booking approved successfully")


@router.patch("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: int,
    background_tasks: BackgroundTasks,
    data: Optional[CancelRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Cancel a booking, releasing the equipment if it was handed out."""
    booking = get_booking_or_404(db, booking_id)
    ensure_can_access(booking, current_user)

    if booking.status in CLOSED_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Booking is already cancelled or completed",
        )

    previous_status = booking.status

    booking.status = "cancelled"
    booking.cancelled_by = current_user.id
    booking.cancelled_at = datetime.utcnow()
    if data and data.reason:
        booking.cancellation_reason = sanitize_input(data.reason, 500)

    if previous_status in ("approved", "active") and booking.equipment:
        booking.equipment.status = "available"
        booking.equipment.last_modified_by = current_user.id

    db.commit()
    db.refresh(booking)

    queue_status_email(background_tasks, booking)

    return success_response(booking.to_dict(), message="Booking cancelled successfully")


@router.patch("/{booking_id}/check-out")
async def check_out_booking(
    booking_id: int,
    data: Optional[CheckOutRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Hand the equipment to the borrower."""
    data = data or CheckOutRequest()
    booking = get_booking_or_404(db, booking_id)

    if booking.status not in ("pending", "approved", "confirmed"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot check out a booking that is {booking.status}",
        )

    booking.status = "active"
    booking.check_out_date = datetime.utcnow()
    booking.checked_out_by = current_user.id
    booking.condition_out = data.condition
    if data.notes:
        booking.admin_notes = sanitize_input(data.notes, 1000)

    equipment = booking.equipment
    if equipment:
        equipment.status = "checked-out"
        equipment.last_checked_out = datetime.utcnow()
        equipment.last_modified_by = current_user.id

    db.commit()
    db.refresh(booking)

    return success_response(booking.to_dict(), message="Equipment checked out successfully")


@router.patch("/{booking_id}/check-in")
async def check_in_booking(
    booking_id: int,
    data: Optional[CheckInRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Take the equipment back and close the booking."""
    data = data or CheckInRequest()
    booking = get_booking_or_404(db, booking_id)

    if booking.status not in ("active", "overdue"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only active or overdue bookings can be checked in",
        )

    booking.status = "completed"
    booking.check_in_date = datetime.utcnow()
    booking.checked_in_by = current_user.id
    booking.condition_in = data.condition
    booking.damage_report = sanitize_input(data.damage_report, 1000) if data.damage_report else None
    if data.notes:
        booking.admin_notes = sanitize_input(data.notes, 1000)

    equipment = booking.equipment
    if equipment:
        damaged = data.condition == "poor" and bool(booking.damage_report)
        equipment.status = "damaged" if damaged else "available"
        equipment.last_checked_in = datetime.utcnow()
        equipment.total_rentals = (equipment.total_rentals or 0) + 1
        equipment.total_revenue = (equipment.total_revenue or 0) + (booking.total_cost or 0)
        equipment.last_modified_by = current_user.id

    db.commit()
    db.refresh(booking)

    return success_response(booking.to_dict(), message="Equipment checked in successfully")
