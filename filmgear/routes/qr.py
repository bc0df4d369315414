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

"""QR label routes."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, joinedload

from filmgear.database import get_db
from filmgear.middleware.auth import get_current_user, require_staff
from filmgear.models.equipment import Equipment
from filmgear.models.user import User
from filmgear.services.qr import (
    DEFAULT_SIZE,
    MAX_SIZE,
    MIN_SIZE,
    MalformedCode,
    find_by_code,
    generate_equipment_qr,
)
from filmgear.utils.helpers import success_response

router = APIRouter(prefix="/api/qr")


class ScanRequest(BaseModel):
    code: str = Field(min_length=1, max_length=2000)


class BulkGenerateRequest(BaseModel):
    equipment_ids: List[int] = Field(min_length=1, max_length=100)
    size: int = Field(default=DEFAULT_SIZE, ge=MIN_SIZE, le=MAX_SIZE)


@router.get("/equipment/{equipment_id}")
async def equipment_qr(
    equipment_id: int,
    size: int = Query(DEFAULT_SIZE, ge=MIN_SIZE, le=MAX_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """QR label image for one item."""
    equipment = (
        db.query(Equipment)
        .options(joinedload(Equipment.location))
        .filter(Equipment.id == equipment_id)
        .first()
    )
    if not equipment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Equipment not found",
        )

    return success_response(generate_equipment_qr(equipment, size))


@router.post("/scan")
async def scan_qr(
    data: ScanRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Resolve a scanned label to equipment."""
    try:
        equipment = find_by_code(db, data.code)
    except MalformedCode as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not equipment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Equipment not found for this QR code",
        )

    return success_response(equipment.to_dict(), message="Equipment found")


@router.post("/bulk-generate")
async def bulk_generate(
    data: BulkGenerateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Labels for several items at once; unknown ids are reported back."""
    equipment = (
        db.query(Equipment)
        .options(joinedload(Equipment.location))
        .filter(Equipment.id.in_(data.equipment_ids))
        .all()
    )
    by_id = {e.id: e for e in equipment}

    results = []
    missing = []
    for equipment_id in data.equipment_ids:
        item = by_id.get(equipment_id)
        if item is None:
            missing.append(equipment_id)
        else:
            results.append(generate_equipment_qr(item, data.size))

    return success_response(
        {"qr_codes": results, "missing": missing},
        message=f"Generated {len(results)} QR code(s)",
    )
