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


"""Resource services built on :class:`ApiClient`.

Each service mirrors one API resource. Every method returns a
:class:`~filmgear.client.api.Result`; nothing here raises on HTTP errors.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from filmgear.client.api import ApiClient, Result
from filmgear.client.storage import (
    RECENT_SEARCHES_KEY,
    SCAN_HISTORY_KEY,
    push_recent_search,
    push_scan,
)


def _iso(value) -> Optional[str]:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class AuthService:
    def __init__(self, api: ApiClient):
        self.api = api

    def _store_token(self, result: Result) -> Result:
        if result.ok and isinstance(result.data, dict) and result.data.get("token"):
            self.api.set_token(result.data["token"])
        return result

    def login(self, email: str, password: str) -> Result:
        return self._store_token(
            self.api.post("/auth/login", json={"email": email, "password": password})
        )

    def register(self, **fields) -> Result:
        return self._store_token(self.api.post("/auth/register", json=fields))

    def logout(self) -> Result:
        result = self.api.post("/auth/logout")
        self.api.clear_token()
        return result

    def refresh(self) -> Result:
        return self._store_token(self.api.post("/auth/refresh"))

    def me(self) -> Result:
        return self.api.get("/auth/me")

    def update_profile(self, **fields) -> Result:
        return self.api.put("/auth/me", json=fields)

    def change_password(self, current_password: str, new_password: str) -> Result:
        return self.api.put(
            "/auth/change-password",
            json={"current_password": current_password, "new_password": new_password},
        )

    def forgot_password(self, email: str) -> Result:
        return self.api.post("/auth/forgot-password", json={"email": email})

    def reset_password(self, token: str, password: str) -> Result:
        return self.api.post("/auth/reset-password", json={"token": token, "password": password})

    @property
    def is_authenticated(self) -> bool:
        return bool(self.api.token)


class EquipmentService:
    def __init__(self, api: ApiClient):
        self.api = api

    def list(self, **filters) -> Result:
        return self.api.get("/equipment", **filters)

    def search(self, term: str, **filters) -> Result:
        """Search equipment and remember the term."""
        push_recent_search(self.api.storage, term)
        return self.api.get("/equipment", search=term, **filters)

    @property
    def recent_searches(self) -> List[str]:
        return list(self.api.storage.get(RECENT_SEARCHES_KEY) or [])

    def clear_recent_searches(self) -> None:
        self.api.storage.remove(RECENT_SEARCHES_KEY)

    def get(self, equipment_id: int) -> Result:
        return self.api.get(f"/equipment/{equipment_id}")

    def create(self, data: Dict[str, Any]) -> Result:
        return self.api.post("/equipment", json=data)

    def update(self, equipment_id: int, data: Dict[str, Any]) -> Result:
        return self.api.put(f"/equipment/{equipment_id}", json=data)

    def delete(self, equipment_id: int) -> Result:
        return self.api.delete(f"/equipment/{equipment_id}")

    def update_status(self, equipment_id: int, status: str, notes: Optional[str] = None) -> Result:
        return self.api.patch(
            f"/equipment/{equipment_id}/status", json={"status": status, "notes": notes}
        )

    def add_maintenance(self, equipment_id: int, data: Dict[str, Any]) -> Result:
        return self.api.post(f"/equipment/{equipment_id}/maintenance", json=data)

    def availability(self, equipment_id: int, start_date, end_date) -> Result:
        return self.api.get(
            f"/equipment/{equipment_id}/availability",
            start_date=_iso(start_date),
            end_date=_iso(end_date),
        )

    def by_qr_code(self, code: str) -> Result:
        return self.api.get(f"/equipment/qr/{code}")

    def stats(self) -> Result:
        return self.api.get("/equipment/stats/overview")


class BookingService:
    def __init__(self, api: ApiClient):
        self.api = api

    def list(self, **filters) -> Result:
        return self.api.get("/bookings", **filters)

    def mine(self, status: Optional[str] = None, limit: int = 10) -> Result:
        return self.api.get("/bookings/user", status=status, limit=limit)

    def get(self, booking_id: int) -> Result:
        return self.api.get(f"/bookings/{booking_id}")

    def create(self, data: Dict[str, Any]) -> Result:
        payload = {k: _iso(v) for k, v in data.items()}
        return self.api.post("/bookings", json=payload)

    def update(self, booking_id: int, data: Dict[str, Any]) -> Result:
        payload = {k: _iso(v) for k, v in data.items()}
        return self.api.put(f"/bookings/{booking_id}", json=payload)

    def approve(self, booking_id: int, admin_notes: Optional[str] = None) -> Result:
        return self.api.patch(f"/bookings/{booking_id}/approve", json={"admin_notes": admin_notes})

    def cancel(self, booking_id: int, reason: Optional[str] = None) -> Result:
        return self.api.patch(f"/bookings/{booking_id}/cancel", json={"reason": reason})

    def check_out(self, booking_id: int, condition: str = "good", notes: Optional[str] = None) -> Result:
        return self.api.patch(
            f"/bookings/{booking_id}/check-out", json={"condition": condition, "notes": notes}
        )

    def check_in(
        self,
        booking_id: int,
        condition: str = "good",
        damage_report: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Result:
        return self.api.patch(
            f"/bookings/{booking_id}/check-in",
            json={"condition": condition, "damage_report": damage_report, "notes": notes},
        )

    def check_availability(self, equipment_id: int, start_date, end_date, **times) -> Result:
        payload = {
            "equipment_id": equipment_id,
            "start_date": _iso(start_date),
            "end_date": _iso(end_date),
        }
        payload.update({k: _iso(v) for k, v in times.items() if v is not None})
        return self.api.post("/bookings/check-availability", json=payload)

    def upcoming(self) -> Result:
        return self.api.get("/bookings/upcoming")

    def overdue(self) -> Result:
        return self.api.get("/bookings/overdue")

    def stats(self) -> Result:
        return self.api.get("/bookings/stats/overview")


class UserService:
    def __init__(self, api: ApiClient):
        self.api = api

    def list(self, **filters) -> Result:
        return self.api.get("/users", **filters)

    def get(self, user_id: int) -> Result:
        return self.api.get(f"/users/{user_id}")

    def create(self, data: Dict[str, Any]) -> Result:
        return self.api.post("/users", json=data)

    def update(self, user_id: int, data: Dict[str, Any]) -> Result:
        return self.api.put(f"/users/{user_id}", json=data)

    def deactivate(self, user_id: int) -> Result:
        return self.api.delete(f"/users/{user_id}")

    def set_role(self, user_id: int, role: str) -> Result:
        return self.api.patch(f"/users/{user_id}/role", json={"role": role})

    def stats(self) -> Result:
        return self.api.get("/users/stats/overview")


class AIService:
    def __init__(self, api: ApiClient):
        self.api = api

    def insights(self) -> Result:
        return self.api.get("/ai/insights")

    def predict_availability(self, equipment_id: int, start_date, end_date) -> Result:
        return self.api.get(
            "/ai/availability-prediction",
            equipment_id=equipment_id,
            start_date=_iso(start_date),
            end_date=_iso(end_date),
        )

    def pairings(self, equipment_id: int) -> Result:
        return self.api.get(f"/ai/equipment-pairing/{equipment_id}")

    def anomalies(self) -> Result:
        return self.api.get("/ai/anomalies")

    def usage_report(self, start_date=None, end_date=None) -> Result:
        return self.api.get(
            "/ai/usage-report", start_date=_iso(start_date), end_date=_iso(end_date)
        )

    def maintenance_predictions(self, equipment_id: Optional[int] = None) -> Result:
        return self.api.get("/ai/maintenance-predictions", equipment_id=equipment_id)

    def equipment_health(self, equipment_id: int) -> Result:
        return self.api.get(f"/ai/equipment-health/{equipment_id}")

    def smart_search(self, query: str, limit: int = 20) -> Result:
        return self.api.post("/ai/smart-search", json={"query": query, "limit": limit})


class QRService:
    def __init__(self, api: ApiClient):
        self.api = api

    def generate(self, equipment_id: int, size: Optional[int] = None) -> Result:
        return self.api.get(f"/qr/equipment/{equipment_id}", size=size)

    def bulk_generate(self, equipment_ids: List[int], size: Optional[int] = None) -> Result:
        payload: Dict[str, Any] = {"equipment_ids": equipment_ids}
        if size:
            payload["size"] = size
        return self.api.post("/qr/bulk-generate", json=payload)

    def scan(self, code: str) -> Result:
        """Resolve a scanned code and log the attempt in the scan history."""
        result = self.api.post("/qr/scan", json={"code": code})

        entry = {
            "code": code,
            "scanned_at": datetime.now(timezone.utc).isoformat(),
            "success": result.ok,
        }
        if result.ok and isinstance(result.data, dict):
            entry["equipment_id"] = result.data.get("id")
            entry["equipment_name"] = result.data.get("name")
        push_scan(self.api.storage, entry)

        return result

    @property
    def history(self) -> List[Dict[str, Any]]:
        return list(self.api.storage.get(SCAN_HISTORY_KEY) or [])

    def clear_history(self) -> None:
        self.api.storage.remove(SCAN_HISTORY_KEY)
