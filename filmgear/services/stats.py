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

"""Aggregate counts shared by the stats and dashboard endpoints."""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from filmgear.models.booking import BOOKING_STATUSES, Booking
from filmgear.models.equipment import OUT_STATUSES, Equipment
from filmgear.models.location import Location
from filmgear.models.user import USER_ROLES, User
from filmgear.utils.helpers import utilization_rate


def _month_start(d: date, months_back: int) -> date:
    """First day of the month `months_back` months before d's month."""
    year, month = d.year, d.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    return date(year, month, 1)


def equipment_overview(db: Session) -> dict:
    """Inventory counts by status plus utilization."""
    rows = (
        db.query(Equipment.status, func.count(Equipment.id))
        .filter(Equipment.is_active.is_(True))
        .group_by(Equipment.status)
        .all()
    )
    counts = {s: n for s, n in rows}

    total = sum(counts.values())
    available = counts.get("available", 0)

    return {
        "total": total,
        "available": available,
        "checked_out": sum(counts.get(s, 0) for s in OUT_STATUSES),
        "booked": counts.get("booked", 0),
        "maintenance": counts.get("maintenance", 0),
        "damaged": counts.get("damaged", 0),
        "lost": counts.get("lost", 0),
        "utilization_rate": utilization_rate(total, available),
    }


def equipment_by_category(db: Session) -> list:
    rows = (
        db.query(Equipment.category, func.count(Equipment.id))
        .filter(Equipment.is_active.is_(True))
        .group_by(Equipment.category)
        .order_by(func.count(Equipment.id).desc())
        .all()
    )
    return [{"category": c, "count": n} for c, n in rows]


def equipment_by_location(db: Session) -> list:
    rows = (
        db.query(Location.name, func.count(Equipment.id))
        .join(Equipment, Equipment.location_id == Location.id)
        .filter(Equipment.is_active.is_(True))
        .group_by(Location.id, Location.name)
        .order_by(func.count(Equipment.id).desc())
        .all()
    )
    return [{"name": name, "count": n} for name, n in rows]


def booking_overview(db: Session, user_id: Optional[int] = None) -> dict:
    """Booking counts by status, optionally for a single user."""
    query = db.query(Booking.status, func.count(Booking.id))
    if user_id is not None:
        query = query.filter(Booking.user_id == user_id)
    counts = {s: n for s, n in query.group_by(Booking.status).all()}

    overview = {"total": sum(counts.values())}
    for status_name in BOOKING_STATUSES:
        overview[status_name] = counts.get(status_name, 0)
    return overview


def monthly_trends(db: Session, months: int = 12, user_id: Optional[int] = None) -> list:
    """Bookings created per month over the trailing window, oldest first."""
    today = date.today()
    first = _month_start(today, months - 1)

    query = db.query(Booking.created_at).filter(
        Booking.created_at >= datetime.combine(first, datetime.min.time())
    )
    if user_id is not None:
        query = query.filter(Booking.user_id == user_id)

    buckets = {}
    for i in range(months - 1, -1, -1):
        m = _month_start(today, i)
        buckets[(m.year, m.month)] = 0

    for (created_at,) in query.all():
        key = (created_at.year, created_at.month)
        if key in buckets:
            buckets[key] += 1

    return [
        {"year": year, "month": month, "count": count}
        for (year, month), count in buckets.items()
    ]


def top_equipment(db: Session, limit: int = 10) -> list:
    """Most-booked equipment."""
    rows = (
        db.query(Equipment.id, Equipment.name, Equipment.category, func.count(Booking.id))
        .join(Booking, Booking.equipment_id == Equipment.id)
        .group_by(Equipment.id, Equipment.name, Equipment.category)
        .order_by(func.count(Booking.id).desc())
        .limit(limit)
        .all()
    )
    return [
        {"id": eid, "name": name, "category": category, "bookings": n}
        for eid, name, category, n in rows
    ]


def user_overview(db: Session) -> dict:
    total = db.query(func.count(User.id)).scalar() or 0
    active = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0

    month_start = datetime.combine(_month_start(date.today(), 0), datetime.min.time())
    new_this_month = (
        db.query(func.count(User.id)).filter(User.created_at >= month_start).scalar() or 0
    )

    role_counts = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())

    return {
        "total": total,
        "active": active,
        "inactive": total - active,
        "by_role": {role: role_counts.get(role, 0) for role in USER_ROLES},
        "new_this_month": new_this_month,
    }
