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

"""Utility helper functions."""

import csv
import io
import math
import re
import secrets
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from fastapi.responses import StreamingResponse


def generate_token(length: int = 32) -> str:
    """Generate a secure random token.

    Args:
        length: Length of the token in bytes (will be URL-safe encoded).

    Returns:
        URL-safe random token string.
    """
    return secrets.token_urlsafe(length)


def sanitize_input(text: Optional[str], max_length: Optional[int] = None) -> str:
    """Sanitize user input by stripping HTML tags and limiting length.

    Args:
        text: Input text to sanitize.
        max_length: Maximum allowed length (truncates if exceeded).

    Returns:
        Sanitized string.
    """
    if text is None:
        return ""

    # Remove HTML tags
    clean = re.sub(r"<[^>]+>", "", str(text))

    # Normalize whitespace
    clean = " ".join(clean.split())

    if max_length and len(clean) > max_length:
        clean = clean[:max_length]

    return clean


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """Whole-number percentage of part in whole, 0 when whole is 0."""
    if not whole:
        return 0
    return round_half_up(part / whole * 100)


def utilization_rate(total: int, available: int) -> int:
    """Share of equipment not currently available, as a whole percentage.

    Args:
        total: Number of equipment items.
        available: Number of items with status "available".

    Returns:
        round((total - available) / total * 100), or 0 for an empty inventory.
    """
    return percentage(total - available, total)


def rental_days(start_date: date, end_date: date) -> int:
    """Rental length in days; a same-day booking counts as one.

    Args:
        start_date: First day of the rental.
        end_date: Return day.

    Returns:
        Number of billable days.
    """
    return max(1, (end_date - start_date).days)


def paginate(query, page: int, limit: int):
    """Apply offset/limit to a query and build the pagination block.

    Returns:
        Tuple of (items, pagination dict).
    """
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    total_pages = math.ceil(total / limit) if limit else 0

    return items, {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total,
        "items_per_page": limit,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def apply_sort(query, model, sort_by: str, sort_order: str, allowed: Sequence[str]):
    """Order a query by a whitelisted column."""
    if sort_by not in allowed:
        sort_by = "created_at"
    column = getattr(model, sort_by)
    return query.order_by(column.desc() if sort_order == "desc" else column.asc())


def generate_csv(
    headers: List[str], rows: Iterable[Sequence[Any]], filename: str
) -> StreamingResponse:
    """Generate a CSV file response."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerows(rows)

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def is_filter_set(value: Optional[str]) -> bool:
    """List filters treat an empty value or "all" as no filter."""
    return bool(value) and value != "all"


def success_response(data: Any = None, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Build the success envelope."""
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    body.update(extra)
    return body
