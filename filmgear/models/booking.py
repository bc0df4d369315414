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

"""Booking model."""

from datetime import date, datetime, time
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship

from filmgear.database import Base
from filmgear.utils.helpers import rental_days

BOOKING_STATUSES = (
    "pending",
    "approved",
    "confirmed",
    "active",
    "completed",
    "cancelled",
    "overdue",
)

# Bookings in these states hold the equipment for their date range
BLOCKING_STATUSES = ("pending", "approved", "confirmed", "active", "overdue")

# Bookings in these states can no longer be edited or cancelled
CLOSED_STATUSES = ("cancelled", "completed")

PRIORITIES = ("low", "normal", "high", "urgent")

CONDITIONS = ("excellent", "good", "fair", "poor")


def compute_cost(
    duration_days: int,
    daily_rate: float,
    weekly_rate: float = 0,
    monthly_rate: float = 0,
) -> float:
    """Price a rental from its length and the equipment's rate card.

    Whole 30-day months are charged at the monthly rate once the rental
    reaches a month and a monthly rate exists; otherwise whole weeks are
    charged at the weekly rate once it reaches a week. Leftover days use
    the daily rate.
    """
    daily_rate = daily_rate or 0
    if duration_days >= 30 and monthly_rate:
        months, days = divmod(duration_days, 30)
        return months * monthly_rate + days * daily_rate
    if duration_days >= 7 and weekly_rate:
        weeks, days = divmod(duration_days, 7)
        return weeks * weekly_rate + days * daily_rate
    return duration_days * daily_rate


class Booking(Base):
    """Equipment booking model."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    equipment_id = Column(
        Integer, ForeignKey("equipment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    purpose = Column(String(500), nullable=False)
    project = Column(String(200), nullable=True)
    location = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    priority = Column(String(10), nullable=False, default="normal")
    daily_rate = Column(Float, nullable=False, default=0)
    weekly_rate = Column(Float, nullable=False, default=0)
    monthly_rate = Column(Float, nullable=False, default=0)
    total_cost = Column(Float, nullable=False, default=0)
    deposit = Column(Float, nullable=False, default=0)
    check_out_date = Column(DateTime, nullable=True)
    check_in_date = Column(DateTime, nullable=True)
    checked_out_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    checked_in_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    condition_out = Column(String(10), nullable=True)
    condition_in = Column(String(10), nullable=True)
    damage_report = Column(Text, nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    admin_notes = Column(Text, nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'confirmed', 'active', "
            "'completed', 'cancelled', 'overdue')",
            name="ck_booking_status",
        ),
        CheckConstraint("end_date >= start_date", name="ck_booking_dates"),
    )

    # Relationships
    user = relationship("User", back_populates="bookings", foreign_keys=[user_id])
    equipment = relationship("Equipment", back_populates="bookings")
    approver = relationship("User", foreign_keys=[approved_by])
    canceller = relationship("User", foreign_keys=[cancelled_by])

    @property
    def duration_days(self) -> int:
        """Rental length in days; a same-day booking counts as one."""
        if not self.start_date or not self.end_date:
            return 0
        return rental_days(self.start_date, self.end_date)

    @property
    def is_overdue(self) -> bool:
        return self.status in ("active", "approved") and self.end_date < date.today()

    @property
    def days_overdue(self) -> int:
        if not self.is_overdue:
            return 0
        return (date.today() - self.end_date).days

    def snapshot_rates(self, equipment) -> None:
        """Copy the equipment's rate card onto the booking."""
        self.daily_rate = equipment.daily_rate or 0
        self.weekly_rate = equipment.weekly_rate or 0
        self.monthly_rate = equipment.monthly_rate or 0

    def calculate_cost(self) -> float:
        """Recompute and store total_cost from the snapshotted rates."""
        self.total_cost = compute_cost(
            self.duration_days, self.daily_rate, self.weekly_rate, self.monthly_rate
        )
        return self.total_cost

    def overlaps_with(
        self,
        other_start_date: date,
        other_end_date: date,
        other_start_time: Optional[time] = None,
        other_end_time: Optional[time] = None,
    ) -> bool:
        """Check if this booking overlaps with another range.

        Date ranges are closed at both ends. Times only narrow the check
        when both sides are single-day bookings on the same day and both
        carry a start and end time.
        """
        if self.end_date < other_start_date or self.start_date > other_end_date:
            return False

        same_single_day = (
            self.start_date == self.end_date
            and other_start_date == other_end_date
            and self.start_date == other_start_date
        )
        has_times = (
            self.start_time is not None
            and self.end_time is not None
            and other_start_time is not None
            and other_end_time is not None
        )
        if same_single_day and has_times:
            if self.end_time <= other_start_time or self.start_time >= other_end_time:
                return False

        return True

    def to_conflict(self) -> dict:
        """Short form returned when this booking blocks another."""
        return {
            "id": self.id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status,
            "user": self.user.to_summary() if self.user else None,
        }

    def to_dict(self, include_user: bool = True, include_equipment: bool = True) -> dict:
        """Convert to dictionary."""
        result = {
            "id": self.id,
            "equipment_id": self.equipment_id,
            "user_id": self.user_id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status,
            "purpose": self.purpose,
            "project": self.project,
            "location": self.location,
            "notes": self.notes,
            "priority": self.priority,
            "duration_days": self.duration_days,
            "rental_rate": {
                "daily": self.daily_rate,
                "weekly": self.weekly_rate,
                "monthly": self.monthly_rate,
            },
            "total_cost": self.total_cost,
            "deposit": self.deposit,
            "check_out_date": self.check_out_date.isoformat() if self.check_out_date else None,
            "check_in_date": self.check_in_date.isoformat() if self.check_in_date else None,
            "condition_out": self.condition_out,
            "condition_in": self.condition_in,
            "damage_report": self.damage_report,
            "approved_by": self.approved_by,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "admin_notes": self.admin_notes,
            "cancelled_by": self.cancelled_by,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
            "is_overdue": self.is_overdue,
            "days_overdue": self.days_overdue,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

        if include_user and self.user:
            result["user"] = self.user.to_summary()

        if include_equipment and self.equipment:
            result["equipment"] = self.equipment.to_summary()

        return result

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, user_id={self.user_id}, "
            f"equipment_id={self.equipment_id}, status='{self.status}')>"
        )
