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

import pytest

from filmgear.models.equipment import Equipment
from filmgear.models.location import Location
from filmgear.routes.equipment import TEXT_LIMITS, EquipmentCreate, EquipmentUpdate
from tests.conftest import make_booking, make_equipment


def equipment_payload(location, **overrides):
    payload = {
        "name": "ARRI Alexa Mini",
        "category": "camera",
        "brand": "ARRI",
        "model": "Alexa Mini",
        "serial_number": "arri-0001",
        "location_id": location.id,
        "rental_rate": {"daily": 400, "weekly": 2000, "monthly": 6000},
        "tags": [" Cinema ", "4K", ""],
    }
    payload.update(overrides)
    return payload


class TestListEquipment:
    def test_list_is_public_and_paginated(self, client, db, location):
        for i in range(3):
            make_equipment(db, location, f"SER-{i}")

        response = client.get("/api/equipment", params={"limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"]["total_items"] == 3
        assert body["pagination"]["total_pages"] == 2
        assert body["pagination"]["has_next_page"] is True
        assert body["pagination"]["has_prev_page"] is False

    def test_filters(self, client, camera, lens):
        response = client.get("/api/equipment", params={"category": "lens"})
        names = [e["name"] for e in response.json()["data"]]
        assert names == [lens.name]

        response = client.get("/api/equipment", params={"category": "all"})
        assert len(response.json()["data"]) == 2

        response = client.get("/api/equipment", params={"search": "canon"})
        assert [e["id"] for e in response.json()["data"]] == [lens.id]

    def test_inactive_equipment_hidden(self, client, db, camera, lens):
        lens.is_active = False
        db.commit()

        response = client.get("/api/equipment")
        assert [e["id"] for e in response.json()["data"]] == [camera.id]

    def test_sort_by_name(self, client, camera, lens):
        response = client.get("/api/equipment", params={"sort_by": "name", "sort_order": "asc"})
        names = [e["name"] for e in response.json()["data"]]
        assert names == sorted(names)


class TestGetEquipment:
    def test_detail_includes_location(self, client, camera, location):
        response = client.get(f"/api/equipment/{camera.id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["serial_number"] == "CAM-001"
        assert data["location"]["name"] == location.name
        assert data["maintenance_history"] == []
        assert data["rental_rate"] == {"daily": 100, "weekly": 500, "monthly": 1500}

    def test_missing(self, client):
        response = client.get("/api/equipment/999")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_non_numeric_id(self, client):
        response = client.get("/api/equipment/not-a-number")
        assert response.status_code == 400


class TestCreateEquipment:
    def test_staff_can_create(self, client, db, staff, staff_headers, location):
        response = client.post(
            "/api/equipment", headers=staff_headers, json=equipment_payload(location)
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["serial_number"] == "ARRI-0001"
        assert data["tags"] == ["cinema", "4k"]
        assert data["qr_code"].startswith("EQ-ARRI-0001-")
        assert data["status"] == "available"
        assert data["rental_rate"]["weekly"] == 2000

        equipment = db.get(Equipment, data["id"])
        assert equipment.created_by == staff.id

        db.refresh(location)
        assert location.capacity_used == 1

    def test_external_cannot_create(self, client, external_headers, location):
        response = client.post(
            "/api/equipment", headers=external_headers, json=equipment_payload(location)
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_requires_auth(self, client, location):
        response = client.post("/api/equipment", json=equipment_payload(location))
        assert response.status_code == 401

    def test_duplicate_serial(self, client, staff_headers, camera, location):
        response = client.post(
            "/api/equipment",
            headers=staff_headers,
            json=equipment_payload(location, serial_number="cam-001"),
        )

        assert response.status_code == 400
        assert "serial" in response.json()["message"].lower()

    def test_unknown_location(self, client, staff_headers, location):
        response = client.post(
            "/api/equipment",
            headers=staff_headers,
            json=equipment_payload(location, location_id=9999),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Location not found"

    def test_invalid_category(self, client, staff_headers, location):
        response = client.post(
            "/api/equipment",
            headers=staff_headers,
            json=equipment_payload(location, category="spaceship"),
        )

        assert response.status_code == 400
        assert any(e["field"] == "category" for e in response.json()["errors"])


class TestUpdateEquipment:
    def test_partial_update(self, client, camera, staff_headers):
        response = client.put(
            f"/api/equipment/{camera.id}",
            headers=staff_headers,
            json={"name": "Sony FX6 Kit", "rental_rate": {"daily": 120, "weekly": 600}},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Sony FX6 Kit"
        assert data["brand"] == "Sony"
        assert data["rental_rate"] == {"daily": 120, "weekly": 600, "monthly": 0}

    def test_update_sanitizes_text_fields(self, client, camera, staff_headers):
        response = client.put(
            f"/api/equipment/{camera.id}",
            headers=staff_headers,
            json={"name": "  <b>Sony</b>   FX6   Kit ", "brand": "<i>Sony</i>"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Sony FX6 Kit"
        assert data["brand"] == "Sony"

    def test_move_location_recounts_capacity(self, client, db, camera, location, staff_headers, admin):
        studio = Location(name="Studio", type="studio", created_by=admin.id)
        db.add(studio)
        db.commit()
        location.capacity_used = 1
        db.commit()

        response = client.put(
            f"/api/equipment/{camera.id}",
            headers=staff_headers,
            json={"location_id": studio.id},
        )

        assert response.status_code == 200
        db.refresh(location)
        db.refresh(studio)
        assert location.capacity_used == 0
        assert studio.capacity_used == 1


class TestStatus:
    def test_checkout_status_counts_rental(self, client, db, camera, staff, staff_headers):
        response = client.patch(
            f"/api/equipment/{camera.id}/status",
            headers=staff_headers,
            json={"status": "checked-out", "notes": "Out for the weekend"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "checked-out"
        assert data["total_rentals"] == 1
        assert data["last_checked_out"] is not None
        assert data["notes"] == "Out for the weekend"

    def test_back_to_available_stamps_checkin(self, client, db, camera, staff_headers):
        camera.status = "maintenance"
        db.commit()

        response = client.patch(
            f"/api/equipment/{camera.id}/status",
            headers=staff_headers,
            json={"status": "available"},
        )

        data = response.json()["data"]
        assert data["status"] == "available"
        assert data["last_checked_in"] is not None
        assert data["total_rentals"] == 0

    def test_invalid_status(self, client, camera, staff_headers):
        response = client.patch(
            f"/api/equipment/{camera.id}/status",
            headers=staff_headers,
            json={"status": "vanished"},
        )
        assert response.status_code == 400


class TestMaintenance:
    def test_add_record_moves_to_maintenance(self, client, camera, staff, staff_headers):
        response = client.post(
            f"/api/equipment/{camera.id}/maintenance",
            headers=staff_headers,
            json={"description": "Sensor cleaning", "cost": 75.5, "date": "2025-03-01"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "maintenance"
        assert len(data["maintenance_history"]) == 1
        record = data["maintenance_history"][0]
        assert record["description"] == "Sensor cleaning"
        assert record["cost"] == 75.5
        assert record["date"] == "2025-03-01"
        assert record["performed_by"]["id"] == staff.id


class TestDeleteEquipment:
    def test_admin_deletes(self, client, db, camera, admin_headers):
        response = client.delete(f"/api/equipment/{camera.id}", headers=admin_headers)

        assert response.status_code == 200
        db.expire_all()
        assert db.get(Equipment, camera.id) is None

    def test_staff_cannot_delete(self, client, camera, staff_headers):
        response = client.delete(f"/api/equipment/{camera.id}", headers=staff_headers)
        assert response.status_code == 403

    def test_refuses_with_active_booking(self, client, db, camera, external, admin_headers, future):
        make_booking(db, camera, external, future, future, status="approved")

        response = client.delete(f"/api/equipment/{camera.id}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot delete equipment with active bookings"

    def test_pending_bookings_go_with_it(self, client, db, camera, external, admin_headers, future):
        make_booking(db, camera, external, future, future)

        response = client.delete(f"/api/equipment/{camera.id}", headers=admin_headers)
        assert response.status_code == 200


class TestEquipmentStats:
    def test_overview(self, client, db, camera, lens, location, staff_headers):
        lens.status = "checked-out"
        make_equipment(db, location, "MIC-1", category="audio", status="maintenance")
        db.commit()

        response = client.get("/api/equipment/stats/overview", headers=staff_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overview"]["total"] == 3
        assert data["overview"]["available"] == 1
        assert data["overview"]["checked_out"] == 1
        assert data["overview"]["maintenance"] == 1
        assert data["overview"]["utilization_rate"] == 67
        assert {"category": "audio", "count": 1} in data["by_category"]
        assert data["by_location"] == [{"name": location.name, "count": 3}]

    def test_inactive_equipment_not_counted(self, client, db, camera, lens, location, staff_headers):
        lens.is_active = False
        db.commit()

        response = client.get("/api/equipment/stats/overview", headers=staff_headers)

        data = response.json()["data"]
        assert data["overview"]["total"] == 1
        assert data["overview"]["utilization_rate"] == 0
        assert data["by_category"] == [{"category": "camera", "count": 1}]
        assert data["by_location"] == [{"name": location.name, "count": 1}]

    def test_stats_need_staff(self, client, external_headers):
        response = client.get("/api/equipment/stats/overview", headers=external_headers)
        assert response.status_code == 403


def max_length(model, field):
    return [m.max_length for m in model.model_fields[field].metadata if hasattr(m, "max_length")]


@pytest.mark.parametrize("field", sorted(TEXT_LIMITS))
def test_text_limits_match_requests_and_columns(field):
    limit = TEXT_LIMITS[field]

    assert max_length(EquipmentCreate, field) == [limit]
    assert max_length(EquipmentUpdate, field) == [limit]
    if field != "description":
        assert Equipment.__table__.c[field].type.length == limit
