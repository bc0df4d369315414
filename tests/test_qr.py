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


import base64
import json

import pytest

from filmgear.services.qr import MalformedCode, parse_code, render_png

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def decode_image(url):
    assert url.startswith("data:image/png;base64,")
    return base64.b64decode(url.split(",", 1)[1])


class TestParseCode:
    def test_label_payload(self):
        assert parse_code(json.dumps({"type": "equipment", "id": "7"})) == {"id": 7}

    def test_plain_code(self):
        assert parse_code("  EQ-CAM-001  ") == {"qr_code": "EQ-CAM-001"}

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "{not json",
            json.dumps({"type": "user", "id": 1}),
            json.dumps({"type": "equipment"}),
            json.dumps({"type": "equipment", "id": True}),
            json.dumps({"type": "equipment", "id": 1.5}),
            json.dumps({"type": "equipment", "id": 2**63}),
        ],
    )
    def test_malformed(self, text):
        with pytest.raises(MalformedCode):
            parse_code(text)


def test_render_png_is_a_png():
    assert render_png("hello", 150).startswith(PNG_MAGIC)


class TestQrRoutes:
    def test_generate_label(self, client, camera, location, staff_headers):
        response = client.get(
            f"/api/qr/equipment/{camera.id}", headers=staff_headers, params={"size": 200}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert decode_image(data["qr_image_url"]).startswith(PNG_MAGIC)
        assert data["qr_data"]["id"] == camera.id
        assert data["qr_data"]["type"] == "equipment"
        assert data["qr_data"]["location"] == location.name
        assert data["equipment"]["serial_number"] == "CAM-001"

    def test_size_bounds(self, client, camera, staff_headers):
        response = client.get(
            f"/api/qr/equipment/{camera.id}", headers=staff_headers, params={"size": 5000}
        )
        assert response.status_code == 400

    def test_generate_needs_staff(self, client, camera, external_headers):
        response = client.get(f"/api/qr/equipment/{camera.id}", headers=external_headers)
        assert response.status_code == 403

    def test_equipment_route_label(self, client, camera, staff_headers):
        response = client.get(f"/api/equipment/{camera.id}/qr", headers=staff_headers)
        assert response.json()["data"]["qr_data"]["serial_number"] == "CAM-001"

    def test_scan_payload_round_trip(self, client, camera, staff_headers, external_headers):
        label = client.get(f"/api/qr/equipment/{camera.id}", headers=staff_headers).json()["data"]

        response = client.post(
            "/api/qr/scan", headers=external_headers, json={"code": json.dumps(label["qr_data"])}
        )

        assert response.status_code == 200
        assert response.json()["data"]["id"] == camera.id
        assert response.json()["message"] == "Equipment found"

    def test_scan_stored_code(self, client, camera, external_headers):
        response = client.post("/api/qr/scan", headers=external_headers, json={"code": camera.qr_code})
        assert response.json()["data"]["id"] == camera.id

    def test_scan_unknown(self, client, external_headers):
        response = client.post("/api/qr/scan", headers=external_headers, json={"code": "EQ-NOPE"})
        assert response.status_code == 404

    def test_scan_malformed(self, client, external_headers):
        response = client.post(
            "/api/qr/scan", headers=external_headers, json={"code": '{"type": "user"}'}
        )
        assert response.status_code == 400

    def test_scan_oversized_id(self, client, external_headers):
        response = client.post(
            "/api/qr/scan",
            headers=external_headers,
            json={"code": json.dumps({"type": "equipment", "id": 10**30})},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_public_lookup_by_code(self, client, camera):
        response = client.get(f"/api/equipment/qr/{camera.qr_code}")
        assert response.json()["data"]["name"] == camera.name

    def test_bulk_generate_reports_missing(self, client, camera, lens, staff_headers):
        response = client.post(
            "/api/qr/bulk-generate",
            headers=staff_headers,
            json={"equipment_ids": [camera.id, 999, lens.id], "size": 120},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [q["equipment"]["id"] for q in data["qr_codes"]] == [camera.id, lens.id]
        assert data["missing"] == [999]
        assert response.json()["message"] == "Generated 2 QR code(s)"
