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

"""Dashboard statistics route."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from filmgear.database import get_db
from filmgear.middleware.auth import get_current_user
from filmgear.models.user import User
from filmgear.services import stats
from filmgear.utils.helpers import success_response

router = APIRouter(prefix="/api/dashboard")


@router.get("/stats")
async def dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Headline numbers for the dashboard.

    Staff see organisation-wide booking and user counts; other users see
    their own bookings only.
    """
    scope = None if current_user.is_staff else current_user.id

    data = {
        "equipment": stats.equipment_overview(db),
        "bookings": stats.booking_overview(db, user_id=scope),
        "locations": stats.equipment_by_location(db),
        "monthly_trends": stats.monthly_trends(db, user_id=scope),
    }

    if current_user.is_staff:
        users = stats.user_overview(db)
        data["users"] = {
            "total": users["total"],
            "active": users["active"],
            "new": users["new_this_month"],
        }

    return success_response(data)
