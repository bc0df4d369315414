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


import asyncio

import aiosmtplib

from filmgear.config import EmailConfig, get_settings, update_settings
from filmgear.services.email import EmailService, notify_booking_status


def enable_smtp():
    settings = get_settings().model_copy(
        update={"email": EmailConfig(enabled=True, provider="smtp", smtp_host="mail.test")}
    )
    update_settings(settings)


def test_disabled_email_is_skipped():
    result = asyncio.run(EmailService().send_email("a@example.com", "Hi", "<p>Hi</p>"))

    assert result == {"success": False, "skipped": True}


def test_smtp_delivery(monkeypatch):
    sent = []

    async def fake_send(message, **kwargs):
        sent.append((message, kwargs))

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    enable_smtp()

    result = asyncio.run(
        EmailService().send_password_reset("a@example.com", "Alice", "reset-token")
    )

    assert result == {"success": True, "provider": "smtp"}
    message, kwargs = sent[0]
    assert message["To"] == "a@example.com"
    assert kwargs["hostname"] == "mail.test"
    text_part = message.get_payload()[0]
    assert "reset-token" in text_part.get_payload(decode=True).decode()


def test_booking_notification_failures_are_logged(monkeypatch, caplog):
    async def broken_send(message, **kwargs):
        raise aiosmtplib.SMTPException("relay refused")

    monkeypatch.setattr(aiosmtplib, "send", broken_send)
    enable_smtp()

    asyncio.run(
        notify_booking_status(
            "a@example.com",
            "Alice",
            {"status": "approved", "equipment": {"name": "Sony FX6"}},
        )
    )

    assert "Failed to send booking email" in caplog.text
