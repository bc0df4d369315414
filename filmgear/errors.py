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

"""Domain errors and the JSON error envelope."""

from typing import Any, Dict, List, Optional

from fastapi import status

# Error kinds by HTTP status, used when a plain HTTPException is raised
STATUS_ERROR_KINDS = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    429: "rate_limited",
    500: "server_error",
    503: "service_unavailable",
}


def error_kind_for_status(status_code: int) -> str:
    """Map an HTTP status code to an error kind."""
    return STATUS_ERROR_KINDS.get(status_code, "server_error" if status_code >= 500 else "error")


def error_body(
    message: str,
    kind: str,
    errors: Optional[List[Dict[str, Any]]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build the failure envelope."""
    body = {"success": False, "message": message, "error": kind}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return body


class AppError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "error"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return error_body(self.message, self.kind, **self.extra)


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "invalid_credentials"
    default_message = "Invalid credentials"


class DuplicateUser(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "duplicate_user"
    default_message = "User with this email or username already exists"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"
    default_message = "Resource not found"


class EquipmentUnavailable(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "equipment_unavailable"
    default_message = "Equipment is not available for booking"


class BookingConflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    kind = "conflict"
    default_message = "Equipment is already booked for the selected dates"
