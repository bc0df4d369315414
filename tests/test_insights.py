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

import pytest

from filmgear.models.equipment import MaintenanceRecord
from filmgear.services.insights import (
    InsightService,
    calculate_confidence,
    get_season,
    overdue_severity,
)
from tests.conftest import make_booking

# 2030-07-01 is a Monday, 2030-07-07 a Sunday
MONDAY = date(2030, 7, 1)
SUNDAY = date(2030, 7, 7)


@pytest.fixture
def service():
    return InsightService()


def test_season():
    assert get_season(date(2025, 1, 10)) == "winter"
    assert get_season(date(2025, 4, 10)) == "spring"
    assert get_season(date(2025, 7, 10)) == "summer"
    assert get_season(date(2025, 10, 10)) == "fall"
    assert get_season(date(2025, 12, 1)) == "winter"


def test_confidence_steps():
    assert [calculate_confidence(n) for n in (0, 3, 10, 50)] == [0.3, 0.5, 0.7, 0.9]


def test_overdue_severity():
    assert overdue_severity(1) == "low"
    assert overdue_severity(5) == "medium"
    assert overdue_severity(8) == "high"


class TestPrediction:
    def test_weekday_factor_without_history(self, service, db, lens):
        monday = service.predict_availability(db, lens.id, MONDAY, MONDAY + timedelta(days=2))
        sunday = service.predict_availability(db, lens.id, SUNDAY, SUNDAY)

        assert monday["availability_probability"] == pytest.approx(0.96)
        assert sunday["availability_probability"] == pytest.approx(0.4)
        assert monday["confidence"] == 0.3
        assert monday["factors"]["historical_bookings"] == 0

    def test_probability_is_capped(self, service, db, camera):
        result = service.predict_availability(db, camera.id, MONDAY, MONDAY)
        assert result["availability_probability"] == 1.0

    def test_history_lowers_probability(self, service, db, lens, external):
        start = date.today() - timedelta(days=100)
        make_booking(db, lens, external, start, start + timedelta(days=73), status="completed")

        result = service.predict_availability(db, lens.id, SUNDAY, SUNDAY)

        assert result["factors"]["base_probability"] == pytest.approx(0.8)
        assert result["confidence"] == 0.5

    def test_endpoint(self, client, lens, external_headers):
        response = client.get(
            "/api/ai/availability-prediction",
            headers=external_headers,
            params={
                "equipment_id": lens.id,
                "start_date": SUNDAY.isoformat(),
                "end_date": SUNDAY.isoformat(),
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["equipment_name"] == lens.name

    def test_endpoint_unknown_equipment(self, client, external_headers):
        response = client.get(
            "/api/ai/availability-prediction",
            headers=external_headers,
            params={"equipment_id": 404, "start_date": "2030-01-01", "end_date": "2030-01-02"},
        )
        assert response.status_code == 404


class TestHealth:
    def test_new_equipment_is_healthy(self, service, db, camera):
        result = service.equipment_health(db, camera.id)

        assert result["health_score"] == 100
        assert result["rating"] == "good"
        assert result["factors"] == []

    def test_damaged_with_service_history(self, service, db, camera, staff):
        camera.status = "damaged"
        db.add_all(
            [
                MaintenanceRecord(equipment_id=camera.id, description="Fan", performed_by=staff.id),
                MaintenanceRecord(equipment_id=camera.id, description="Mount", performed_by=staff.id),
            ]
        )
        db.commit()

        result = service.equipment_health(db, camera.id)

        assert result["health_score"] == 100 - 40 - 6
        assert result["rating"] == "poor"

    def test_damage_reports_count(self, service, db, camera, external, future):
        make_booking(db, camera, external, future, future, status="completed", damage_report="Dent")

        result = service.equipment_health(db, camera.id)

        assert result["health_score"] == 90
        assert result["rating"] == "good"

    def test_lost(self, service, db, camera):
        camera.status = "lost"
        db.commit()

        assert service.equipment_health(db, camera.id)["health_score"] == 0

    def test_endpoint(self, client, camera, external_headers):
        response = client.get(f"/api/ai/equipment-health/{camera.id}", headers=external_headers)
        assert response.json()["data"]["equipment"]["id"] == camera.id


class TestSmartSearch:
    def test_synonyms_pick_category(self, service, db, camera, lens):
        result = service.smart_search(db, "zoom glass")

        assert result["matched_categories"] == ["lens"]
        assert [(r["id"], r["score"]) for r in result["results"]] == [(lens.id, 2)]

    def test_term_hits_and_category_bonus(self, service, db, camera, lens):
        result = service.smart_search(db, "Sony cinema")

        assert result["terms"] == ["sony", "cinema"]
        assert result["results"][0]["id"] == camera.id
        assert result["results"][0]["score"] == 4

    def test_no_match(self, service, db, camera):
        assert service.smart_search(db, "helicopter")["results"] == []

    def test_endpoint(self, client, camera, lens, external_headers):
        response = client.post(
            "/api/ai/smart-search", headers=external_headers, json={"query": "canon", "limit": 5}
        )
        assert [r["id"] for r in response.json()["data"]["results"]] == [lens.id]


class TestAnomaliesAndReports:
    def test_overdue_anomaly(self, service, db, camera, external):
        start = date.today() - timedelta(days=15)
        make_booking(db, camera, external, start, date.today() - timedelta(days=10), status="active")

        anomalies = service.detect_anomalies(db)

        assert len(anomalies) == 1
        assert anomalies[0]["type"] == "overdue"
        assert anomalies[0]["severity"] == "high"
        assert anomalies[0]["days_overdue"] == 10

    def test_high_activity(self, service, db, camera, external):
        for offset in range(6):
            day = date.today() + timedelta(days=40 + offset * 2)
            make_booking(db, camera, external, day, day)

        anomalies = service.detect_anomalies(db)

        assert anomalies == [
            {
                "type": "high_activity",
                "severity": "medium",
                "user_id": external.id,
                "booking_count": 6,
                "description": "User has 6 bookings in the last week",
            }
        ]

    def test_anomalies_endpoint_is_staff_only(self, client, external_headers, staff_headers):
        assert client.get("/api/ai/anomalies", headers=external_headers).status_code == 403

        response = client.get("/api/ai/anomalies", headers=staff_headers)
        assert response.json()["count"] == 0

    def test_usage_report(self, service, db, camera, lens, external):
        start = date.today() - timedelta(days=10)
        make_booking(db, camera, external, start, start + timedelta(days=2), status="completed")
        make_booking(db, lens, external, start, start + timedelta(days=1), status="completed")
        make_booking(db, lens, external, start, start, status="cancelled")

        report = service.usage_report(db, start, date.today())

        assert report["total_bookings"] == 2
        assert report["total_revenue"] == 200 + 50
        assert report["category_usage"]["camera"] == {"bookings": 1, "total_days": 2, "revenue": 200}

    def test_usage_report_endpoint_defaults(self, client, staff_headers):
        response = client.get("/api/ai/usage-report", headers=staff_headers)

        period = response.json()["data"]["period"]
        assert period["end_date"] == date.today().isoformat()
        assert period["start_date"] == (date.today() - timedelta(days=30)).isoformat()

    def test_usage_report_bad_range(self, client, staff_headers):
        response = client.get(
            "/api/ai/usage-report",
            headers=staff_headers,
            params={"start_date": "2030-02-01", "end_date": "2030-01-01"},
        )
        assert response.status_code == 400

    def test_maintenance_predictions(self, service, db, camera, lens):
        camera.status = "damaged"
        lens.purchase_date = date.today() - timedelta(days=120)
        db.commit()

        predictions = service.maintenance_predictions(db)

        risks = {p["equipment"]["id"]: p["risk_level"] for p in predictions}
        assert risks == {camera.id: "high", lens.id: "medium"}
        assert predictions[0]["equipment"]["id"] == camera.id

    def test_pairing(self, service, db, camera, lens, external):
        result = service.pairing_suggestions(db, camera.id, external.id)

        assert result["primary_equipment"]["id"] == camera.id
        lens_suggestion = next(s for s in result["suggestions"] if s["category"] == "lens")
        assert [e["id"] for e in lens_suggestion["equipment"]] == [lens.id]

    def test_summary_lists_idle_equipment(self, service, db, camera, lens, external, future):
        make_booking(db, camera, external, future, future)

        summary = service.summary(db)

        assert [e["id"] for e in summary["idle_equipment"]] == [lens.id]
        assert summary["overdue_bookings"] == 0
        assert any(f["type"] == "idle_equipment" for f in summary["findings"])

    def test_insights_endpoint(self, client, camera, external_headers):
        response = client.get("/api/ai/insights", headers=external_headers)
        assert response.json()["data"]["equipment"]["total"] == 1
