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

"""QR code generation and lookup for equipment labels."""

import base64
import io
import json
import logging
from datetime import datetime
from typing import Optional

import qrcode
from sqlalchemy.orm import Session

from filmgear.models.equipment import Equipment

logger = logging.getLogger(__name__)

QR_BORDER = 4
MIN_SIZE = 100
MAX_SIZE = 1000
DEFAULT_SIZE = 300

# Largest id a 64-bit INTEGER column holds
MAX_ID = 2**63 - 1


class MalformedCode(ValueError):
    """Scanned text is neither a label payload nor a stored code."""


def build_payload(equipment: Equipment) -> dict:
    """Data encoded into an equipment label."""
    return {
        "id": equipment.id,
        "type": "equipment",
        "name": equipment.name,
        "serial_number": equipment.serial_number,
        "category": equipment.category,
        "location": equipment.location.name if equipment.location else None,
        "timestamp": datetime.utcnow().isoformat(),
    }


def render_png(data: str, size: int = DEFAULT_SIZE) -> bytes:
    """Render text as a PNG QR code roughly `size` pixels wide."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=QR_BORDER,
    )
    qr.add_data(data)
    qr.make(fit=True)

    # Pick the module size that gets closest to the requested width
    qr.box_size = max(1, size // (qr.modules_count + 2 * QR_BORDER))

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def generate_equipment_qr(equipment: Equipment, size: int = DEFAULT_SIZE) -> dict:
    """Label image as a data URL plus the decoded payload."""
    payload = build_payload(equipment)
    qr_data = json.dumps(payload)
    png = render_png(qr_data, size)
    logger.debug("Generated %d byte QR label for equipment %s", len(png), equipment.id)

    return {
        "qr_image_url": "data:image/png;base64," + base64.b64encode(png).decode(),
        "qr_data": payload,
        "equipment": equipment.to_summary(),
    }


def parse_code(code: str) -> dict:
    """Classify scanned text.

    Returns:
        {"id": <int>} for a label payload or {"qr_code": <str>} for a
        stored code string.

    Raises:
        MalformedCode: empty text, or JSON that is not an equipment payload.
    """
    text = (code or "").strip()
    if not text:
        raise MalformedCode("QR code data is required")

    if text.startswith("{"):
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            raise MalformedCode("Invalid QR code format")
        if not isinstance(payload, dict) or payload.get("type") != "equipment":
            raise MalformedCode("QR code does not describe equipment")
        equipment_id = payload.get("id")
        if isinstance(equipment_id, (bool, float)):
            raise MalformedCode("QR code is missing the equipment id")
        try:
            equipment_id = int(equipment_id)
        except (TypeError, ValueError):
            raise MalformedCode("QR code is missing the equipment id")
        if not -MAX_ID - 1 <= equipment_id <= MAX_ID:
            raise MalformedCode("QR code equipment id is out of range")
        return {"id": equipment_id}

    return {"qr_code": text}


def find_by_code(db: Session, code: str) -> Optional[Equipment]:
    """Resolve scanned text to equipment, or None when nothing matches."""
    ref = parse_code(code)
    if "id" in ref:
        return db.query(Equipment).filter(Equipment.id == ref["id"]).first()
    return db.query(Equipment).filter(Equipment.qr_code == ref["qr_code"]).first()
