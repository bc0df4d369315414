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

"""Equipment availability checks."""

from datetime import date, time
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from filmgear.errors import NotFound
from filmgear.models.booking import BLOCKING_STATUSES, Booking
from filmgear.models.equipment import Equipment


def find_conflicts(
    db: Session,
    equipment_id: int,
    start_date: date,
    end_date: date,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    exclude_booking_id: Optional[int] = None,
) -> List[Booking]:
    """Return blocking bookings whose range overlaps the requested one.

    Cancelled and completed bookings never take part.
    """
    query = (
        db.query(Booking)
        .options(joinedload(Booking.user))
        .filter(
            Booking.equipment_id == equipment_id,
            Booking.status.in_(BLOCKING_STATUSES),
            Booking.start_date <= end_date,
            Booking.end_date >= start_date,
        )
    )

    if exclude_booking_id:
        query = query.filter(Booking.id != exclude_booking_id)

    candidates = query.order_by(Booking.start_date).all()

    return [
        b for b in candidates if b.overlaps_with(start_date, end_date, start_time, end_time)
    ]


def check_availability(
    db: Session,
    equipment_id: int,
    start_date: date,
    end_date: date,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    exclude_booking_id: Optional[int] = None,
) -> dict:
    """Decide whether equipment can be booked for a date range.

    Read-only: nothing is reserved. Booking creation repeats the check
    under a row lock.

    Returns:
        Dict with "available", "equipment" and "conflicts" keys.

    Raises:
        NotFound: equipment does not exist.
    """
    equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
    if not equipment:
        raise NotFound("Equipment not found")

    conflicts = find_conflicts(
        db,
        equipment_id,
        start_date,
        end_date,
        start_time,
        end_time,
        exclude_booking_id=exclude_booking_id,
    )

    return {
        "available": not conflicts and equipment.status == "available",
        "equipment": {
            "id": equipment.id,
            "name": equipment.name,
            "status": equipment.status,
        },
        "conflicts": [c.to_conflict() for c in conflicts],
    }
