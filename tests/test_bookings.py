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


from datetime import date, timedelta

from filmgear.config import RateLimitConfig
from filmgear.models.booking import Booking
from tests.conftest import make_booking


def booking_payload(equipment, start, end=None, **overrides):
    payload = {
        "equipment_id": equipment.id,
        "start_date": start.isoformat(),
        "end_date": (end or start).isoformat(),
        "purpose": "Commercial shoot",
    }
    payload.update(overrides)
    return payload


class TestCreateBooking:
    def test_creates_pending_booking_with_cost(self, client, camera, external, external_headers, future):
        response = client.post(
            "/api/bookings",
            headers=external_headers,
            json=booking_payload(camera, future, future + timedelta(days=9)),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "pending"
        assert data["user_id"] == external.id
        assert data["duration_days"] == 9
        # one week at the weekly rate plus two days
        assert data["total_cost"] == 500 + 2 * 100
        assert data["rental_rate"] == {"daily": 100, "weekly": 500, "monthly": 1500}
        assert data["equipment"]["serial_number"] == "CAM-001"

    def test_same_day_booking_costs_one_day(self, client, camera, external_headers, future):
        response = client.post(
            "/api/bookings", headers=external_headers, json=booking_payload(camera, future)
        )

        assert response.status_code == 201
        assert response.json()["data"]["total_cost"] == 100

    def test_end_before_start(self, client, camera, external_headers, future):
        response = client.post(
            "/api/bookings",
            headers=external_headers,
            json=booking_payload(camera, future, future - timedelta(days=1)),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_unknown_equipment(self, client, camera, external_headers, future):
        payload = booking_payload(camera, future)
        payload["equipment_id"] = 4242

        response = client.post("/api/bookings", headers=external_headers, json=payload)
        assert response.status_code == 404

    def test_equipment_not_available(self, client, db, camera, external_headers, future):
        camera.status = "maintenance"
        db.commit()

        response = client.post(
            "/api/bookings", headers=external_headers, json=booking_payload(camera, future)
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "equipment_unavailable"
        assert body["equipment_status"] == "maintenance"

    def test_overlap_is_rejected_with_conflicts(self, client, db, camera, staff, external_headers, future):
        existing = make_booking(db, camera, staff, future, future + timedelta(days=3))

        response = client.post(
            "/api/bookings",
            headers=external_headers,
            json=booking_payload(camera, future + timedelta(days=3), future + timedelta(days=5)),
        )

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "conflict"
        assert [c["id"] for c in body["conflicts"]] == [existing.id]
        assert body["conflicts"][0]["user"]["id"] == staff.id

    def test_cancelled_bookings_do_not_block(self, client, db, camera, staff, external_headers, future):
        make_booking(db, camera, staff, future, future, status="cancelled")
        make_booking(db, camera, staff, future, future, status="completed")

        response = client.post(
            "/api/bookings", headers=external_headers, json=booking_payload(camera, future)
        )
        assert response.status_code == 201

    def test_adjacent_days_do_not_conflict(self, client, db, camera, staff, external_headers, future):
        make_booking(db, camera, staff, future, future + timedelta(days=2))

        response = client.post(
            "/api/bookings",
            headers=external_headers,
            json=booking_payload(camera, future + timedelta(days=3)),
        )
        assert response.status_code == 201

    def test_same_day_time_slots(self, client, db, camera, staff, external_headers, future):
        from datetime import time

        make_booking(
            db, camera, staff, future, future, start_time=time(9, 0), end_time=time(12, 0)
        )

        afternoon = client.post(
            "/api/bookings",
            headers=external_headers,
            json=booking_payload(camera, future, start_time="12:00", end_time="15:00"),
        )
        assert afternoon.status_code == 201

        morning = client.post(
            "/api/bookings",
            headers=external_headers,
            json=booking_payload(camera, future, start_time="11:00", end_time="13:00"),
        )
        assert morning.status_code == 409

    def test_duration_limit(self, client, camera, external_headers, future):
        too_long = client.post(
            "/api/bookings",
            headers=external_headers,
            json=booking_payload(camera, future, future + timedelta(days=91)),
        )
        assert too_long.status_code == 400
        assert "90 days" in too_long.json()["message"]

        longest = client.post(
            "/api/bookings",
            headers=external_headers,
            json=booking_payload(camera, future, future + timedelta(days=90)),
        )
        assert longest.status_code == 201
        assert longest.json()["data"]["duration_days"] == 90

    def test_daily_limit(self, client, camera, lens, settings, external_headers, future):
        settings.rate_limit = RateLimitConfig(max_bookings_per_user_per_day=1)

        first = client.post(
            "/api/bookings", headers=external_headers, json=booking_payload(camera, future)
        )
        assert first.status_code == 201

        second = client.post(
            "/api/bookings", headers=external_headers, json=booking_payload(lens, future)
        )
        assert second.status_code == 429
        assert second.json()["error"] == "rate_limited"

    def test_purpose_is_sanitized(self, client, camera, external_headers, future):
        response = client.post(
            "/api/bookings",
            headers=external_headers,
            json=booking_payload(camera, future, purpose="<script>x</script>Music   video"),
        )
        assert response.json()["data"]["purpose"] == "xMusic video"


class TestListBookings:
    def test_borrowers_see_only_their_own(self, client, db, camera, lens, external, staff, external_headers, future):
        mine = make_booking(db, camera, external, future, future)
        make_booking(db, lens, staff, future, future)

        response = client.get("/api/bookings", headers=external_headers)

        assert response.status_code == 200
        assert [b["id"] for b in response.json()["data"]] == [mine.id]

    def test_staff_see_all_and_can_filter(self, client, db, camera, lens, external, staff, staff_headers, future):
        make_booking(db, camera, external, future, future)
        approved = make_booking(db, lens, staff, future, future, status="approved")

        response = client.get("/api/bookings", headers=staff_headers)
        assert response.json()["pagination"]["total_items"] == 2

        response = client.get("/api/bookings", headers=staff_headers, params={"status": "approved"})
        assert [b["id"] for b in response.json()["data"]] == [approved.id]

    def test_my_bookings(self, client, db, camera, external, external_headers, future):
        make_booking(db, camera, external, future, future)

        response = client.get("/api/bookings/user", headers=external_headers)

        data = response.json()["data"]
        assert len(data) == 1
        assert "user" not in data[0]


class TestGetBooking:
    def test_owner_can_read(self, client, db, camera, external, external_headers, future):
        booking = make_booking(db, camera, external, future, future)

        response = client.get(f"/api/bookings/{booking.id}", headers=external_headers)

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == external.id

    def test_other_user_forbidden(self, client, db, camera, staff, external_headers, future):
        booking = make_booking(db, camera, staff, future, future)

        response = client.get(f"/api/bookings/{booking.id}", headers=external_headers)
        assert response.status_code == 403

    def test_missing(self, client, external_headers):
        response = client.get("/api/bookings/31337", headers=external_headers)
        assert response.status_code == 404


class TestUpdateBooking:
    def test_reschedule_recomputes_cost(self, client, db, camera, external, external_headers, future):
        booking = make_booking(db, camera, external, future, future)

        response = client.put(
            f"/api/bookings/{booking.id}",
            headers=external_headers,
            json={"end_date": (future + timedelta(days=3)).isoformat()},
        )

        assert response.status_code == 200
        assert response.json()["data"]["total_cost"] == 300

    def test_reschedule_into_conflict(self, client, db, camera, external, staff, external_headers, future):
        make_booking(db, camera, staff, future + timedelta(days=5), future + timedelta(days=6))
        booking = make_booking(db, camera, external, future, future)

        response = client.put(
            f"/api/bookings/{booking.id}",
            headers=external_headers,
            json={"end_date": (future + timedelta(days=5)).isoformat()},
        )

        assert response.status_code == 409

    def test_own_range_is_not_a_conflict(self, client, db, camera, external, external_headers, future):
        booking = make_booking(db, camera, external, future, future + timedelta(days=2))

        response = client.put(
            f"/api/bookings/{booking.id}",
            headers=external_headers,
            json={"start_date": (future + timedelta(days=1)).isoformat()},
        )
        assert response.status_code == 200

    def test_borrower_cannot_change_status(self, client, db, camera, external, external_headers, future):
        booking = make_booking(db, camera, external, future, future)

        response = client.put(
            f"/api/bookings/{booking.id}", headers=external_headers, json={"status": "approved"}
        )
        assert response.status_code == 403

    def test_closed_booking_is_frozen(self, client, db, camera, external, external_headers, future):
        booking = make_booking(db, camera, external, future, future, status="cancelled")

        response = client.put(
            f"/api/bookings/{booking.id}", headers=external_headers, json={"purpose": "Changed"}
        )
        assert response.status_code == 400


class TestLifecycle:
    def test_approve_checks_out_equipment(self, client, db, camera, external, staff, staff_headers, future):
        booking = make_booking(db, camera, external, future, future)

        response = client.patch(
            f"/api/bookings/{booking.id}/approve",
            headers=staff_headers,
            json={"admin_notes": "Bring ID"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "approved"
        assert data["approved_by"] == staff.id
        assert data["admin_notes"] == "Bring ID"

        db.refresh(camera)
        assert camera.status == "checked-out"
        assert camera.last_booked_by == external.id
        assert camera.total_rentals == 0

    def test_approve_without_body(self, client, db, camera, external, staff_headers, future):
        booking = make_booking(db, camera, external, future, future)

        response = client.patch(f"/api/bookings/{booking.id}/approve", headers=staff_headers)
        assert response.status_code == 200

    def test_only_pending_can_be_approved(self, client, db, camera, external, staff_headers, future):
        booking = make_booking(db, camera, external, future, future, status="approved")

        response = client.patch(f"/api/bookings/{booking.id}/approve", headers=staff_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Only pending bookings can be approved"

    def test_borrower_cannot_approve(self, client, db, camera, external, external_headers, future):
        booking = make_booking(db, camera, external, future, future)

        response = client.patch(f"/api/bookings/{booking.id}/approve", headers=external_headers)
        assert response.status_code == 403

    def test_cancel_approved_releases_equipment(self, client, db, camera, external, external_headers, future):
        booking = make_booking(db, camera, external, future, future, status="approved")
        camera.status = "checked-out"
        db.commit()

        response = client.patch(
            f"/api/bookings/{booking.id}/cancel",
            headers=external_headers,
            json={"reason": "Shoot postponed"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "cancelled"
        assert data["cancellation_reason"] == "Shoot postponed"
        assert data["cancelled_by"] == external.id

        db.refresh(camera)
        assert camera.status == "available"

    def test_cancel_pending_leaves_equipment_alone(self, client, db, camera, external, external_headers, future):
        booking = make_booking(db, camera, external, future, future)
        camera.status = "maintenance"
        db.commit()

        client.patch(f"/api/bookings/{booking.id}/cancel", headers=external_headers)

        db.refresh(camera)
        assert camera.status == "maintenance"

    def test_cancel_twice(self, client, db, camera, external, external_headers, future):
        booking = make_booking(db, camera, external, future, future, status="cancelled")

        response = client.patch(f"/api/bookings/{booking.id}/cancel", headers=external_headers)
        assert response.status_code == 400

    def test_check_out_and_in(self, client, db, camera, external, staff_headers, future):
        booking = make_booking(db, camera, external, future, future + timedelta(days=2), status="approved")

        response = client.patch(
            f"/api/bookings/{booking.id}/check-out",
            headers=staff_headers,
            json={"condition": "excellent"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "active"
        assert response.json()["data"]["condition_out"] == "excellent"

        response = client.patch(
            f"/api/bookings/{booking.id}/check-in",
            headers=staff_headers,
            json={"condition": "good"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"

        db.refresh(camera)
        assert camera.status == "available"
        assert camera.total_rentals == 1
        assert camera.total_revenue == 200

    def test_damaged_return(self, client, db, camera, external, staff_headers, future):
        booking = make_booking(db, camera, external, future, future, status="active")

        response = client.patch(
            f"/api/bookings/{booking.id}/check-in",
            headers=staff_headers,
            json={"condition": "poor", "damage_report": "Cracked LCD"},
        )

        assert response.json()["data"]["damage_report"] == "Cracked LCD"
        db.refresh(camera)
        assert camera.status == "damaged"

    def test_poor_condition_without_report_is_available(self, client, db, camera, external, staff_headers, future):
        booking = make_booking(db, camera, external, future, future, status="active")

        client.patch(
            f"/api/bookings/{booking.id}/check-in",
            headers=staff_headers,
            json={"condition": "poor"},
        )

        db.refresh(camera)
        assert camera.status == "available"

    def test_check_in_requires_active(self, client, db, camera, external, staff_headers, future):
        booking = make_booking(db, camera, external, future, future)

        response = client.patch(f"/api/bookings/{booking.id}/check-in", headers=staff_headers)
        assert response.status_code == 400


class TestStaffViews:
    def test_upcoming_and_overdue(self, client, db, camera, lens, external, staff_headers, future):
        past = date.today() - timedelta(days=5)
        upcoming = make_booking(db, camera, external, future, future, status="approved")
        overdue = make_booking(db, lens, external, past, past + timedelta(days=1), status="active")

        response = client.get("/api/bookings/upcoming", headers=staff_headers)
        assert [b["id"] for b in response.json()["data"]] == [upcoming.id]

        response = client.get("/api/bookings/overdue", headers=staff_headers)
        data = response.json()["data"]
        assert [b["id"] for b in data] == [overdue.id]
        assert data[0]["is_overdue"] is True
        assert data[0]["days_overdue"] == 4

    def test_stats(self, client, db, camera, external, staff_headers, future):
        make_booking(db, camera, external, future, future)
        make_booking(db, camera, external, future, future, status="cancelled")

        response = client.get("/api/bookings/stats/overview", headers=staff_headers)

        overview = response.json()["data"]["overview"]
        assert overview["total"] == 2
        assert overview["pending"] == 1
        assert overview["cancelled"] == 1
        assert overview["completed"] == 0

    def test_csv_export(self, client, db, camera, external, staff_headers, future):
        make_booking(db, camera, external, future, future, purpose="Music video")

        response = client.get("/api/bookings/export/csv", headers=staff_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment; filename=bookings_" in response.headers["content-disposition"]
        lines = response.text.strip().splitlines()
        assert lines[0].startswith("ID,Equipment,Serial Number")
        assert "Music video" in lines[1]

    def test_export_needs_staff(self, client, external_headers):
        response = client.get("/api/bookings/export/csv", headers=external_headers)
        assert response.status_code == 403


class TestCheckAvailabilityEndpoint:
    def test_advisory_check(self, client, db, camera, staff, external_headers, future):
        make_booking(db, camera, staff, future, future)

        response = client.post(
            "/api/bookings/check-availability",
            headers=external_headers,
            json={
                "equipment_id": camera.id,
                "start_date": future.isoformat(),
                "end_date": future.isoformat(),
            },
        )

        data = response.json()["data"]
        assert data["available"] is False
        assert len(data["conflicts"]) == 1
        assert data["equipment"] == {"id": camera.id, "name": camera.name, "status": "available"}

    def test_does_not_reserve(self, client, db, camera, external_headers, future):
        client.post(
            "/api/bookings/check-availability",
            headers=external_headers,
            json={
                "equipment_id": camera.id,
                "start_date": future.isoformat(),
                "end_date": future.isoformat(),
            },
        )
        assert db.query(Booking).count() == 0

    def test_unknown_equipment(self, client, external_headers, future):
        response = client.post(
            "/api/bookings/check-availability",
            headers=external_headers,
            json={"equipment_id": 77, "start_date": future.isoformat(), "end_date": future.isoformat()},
        )
        assert response.status_code == 404
