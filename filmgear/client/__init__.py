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


"""Python client for the FilmGear Booking API."""

from filmgear.client.api import ApiClient, Result
from filmgear.client.services import (
    AIService,
    AuthService,
    BookingService,
    EquipmentService,
    QRService,
    UserService,
)
from filmgear.client.storage import JsonFileStorage, MemoryStorage, Storage

__all__ = [
    "AIService",
    "ApiClient",
    "AuthService",
    "BookingService",
    "EquipmentService",
    "JsonFileStorage",
    "MemoryStorage",
    "QRService",
    "Result",
    "Storage",
    "UserService",
]
