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

"""Usage insight routes."""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from filmgear.database import get_db
from filmgear.middleware.auth import get_current_user, require_staff
from filmgear.models.user import User
from filmgear.services.insights import get_insight_service
from filmgear.utils.helpers import success_response

router = APIRouter(prefix="/api/ai")


class SmartSearchRequest(BaseModel):
    query: str = Field(min_length=1, max_length=200)
    limit: int = Field(default=20, ge=1, le=100)


def check_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be on or after start date",
        )


@router.get("/insights")
async def insights(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Inventory summary with derived findings."""
    return success_response(get_insight_service().summary(db))


@router.get("/availability-prediction")
async def availability_prediction(
    equipment_id: int,
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Estimated chance the equipment is free for a range."""
    check_range(start_date, end_date)
    return success_response(
        get_insight_service().predict_availability(db, equipment_id, start_date, end_date)
    )


@router.get("/equipment-pairing/{equipment_id}")
async def equipment_pairing(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Equipment commonly rented with the given item."""
    return success_response(
        get_insight_service().pairing_suggestions(db, equipment_id, current_user.id)
    )


@router.get("/anomalies")
async def anomalies(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Overdue returns and unusually busy borrowers."""
    found = get_insight_service().detect_anomalies(db)
    return success_response(found, count=len(found))


@router.get("/usage-report")
async def usage_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Bookings, days and revenue per equipment and category.

    Defaults to the last 30 days.
    """
    end_date = end_date or date.today()
    start_date = start_date or end_date - timedelta(days=30)
    check_range(start_date, end_date)

    return success_response(get_insight_service().usage_report(db, start_date, end_date))


@router.get("/maintenance-predictions")
async def maintenance_predictions(
    equipment_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Equipment ranked by maintenance risk."""
    return success_response(get_insight_service().maintenance_predictions(db, equipment_id))


@router.get("/equipment-health/{equipment_id}")
async def equipment_health(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Health score for one item."""
    return success_response(get_insight_service().equipment_health(db, equipment_id))


@router.post("/smart-search")
async def smart_search(
    data: SmartSearchRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Keyword search with category synonyms."""
    return success_response(get_insight_service().smart_search(db, data.query, data.limit))
