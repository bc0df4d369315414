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

"""Email service using Resend API or SMTP."""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from filmgear.config import get_settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for account and booking notifications."""

    def __init__(self):
        self._resend_client = None

    @property
    def settings(self):
        return get_settings()

    @property
    def enabled(self) -> bool:
        return self.settings.email.enabled

    @property
    def provider(self) -> str:
        """Get the configured email provider."""
        return self.settings.email.provider.lower()

    @property
    def resend_client(self):
        """Lazy-load Resend client."""
        if self._resend_client is None and self.provider == "resend":
            import resend
            resend.api_key = self.settings.email.api_key
            self._resend_client = resend
        return self._resend_client

    @property
    def sender(self) -> str:
        return f"{self.settings.email.from_name} <{self.settings.email.from_address}>"

    async def _send_via_smtp(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> Dict[str, Any]:
        import aiosmtplib

        email_config = self.settings.email

        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject

        if text:
            msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        await aiosmtplib.send(
            msg,
            hostname=email_config.smtp_host,
            port=email_config.smtp_port,
            username=email_config.smtp_username or None,
            password=email_config.smtp_password or None,
            start_tls=email_config.smtp_use_tls,
            use_tls=email_config.smtp_use_ssl,
        )
        return {"success": True, "provider": "smtp"}

    async def _send_via_resend(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            params["text"] = text

        result = self.resend_client.Emails.send(params)
        return {"id": result.get("id"), "success": True, "provider": "resend"}

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send an email via the configured provider.

        Returns:
            Provider response, or {"success": False, "skipped": True} when
            email is disabled.
        """
        if not self.enabled:
            logger.info("Email disabled, not sending '%s' to %s", subject, to)
            return {"success": False, "skipped": True}

        if self.provider == "smtp":
            return await self._send_via_smtp(to, subject, html, text)
        return await self._send_via_resend(to, subject, html, text)

    async def send_password_reset(self, email: str, name: str, token: str) -> Dict[str, Any]:
        """Send the password reset link."""
        reset_url = f"{self.settings.app.base_url}/reset-password?token={token}"
        minutes = self.settings.security.reset_token_minutes
        app_name = self.settings.app.name

        html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body>
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Reset your {app_name} password</h2>
      <p>Hi {name},</p>
      <p>Someone asked to reset the password for your account. Use the link below to choose a new one:</p>
      <p style="margin: 30px 0;">
        <a href="{reset_url}" style="background-color: #1f2937; color: white; padding: 12px 30px; text-decoration: none; border-radius: 5px; display: inline-block;">
          Reset Password
        </a>
      </p>
      <p>This link will expire in {minutes} minutes.</p>
      <p>If you didn't request a reset, you can safely ignore this email.</p>
    </div>
</body>
</html>
"""

        text = f"""
Reset your {app_name} password

Hi {name},

Use the link below to choose a new password:

{reset_url}

This link will expire in {minutes} minutes.
"""

        return await self.send_email(
            to=email,
            subject=f"Password reset for {app_name}",
            html=html,
            text=text,
        )

    async def send_booking_status(
        self,
        email: str,
        name: str,
        booking_data: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Tell a borrower their booking was approved or cancelled."""
        status = booking_data.get("status", "updated")
        equipment = booking_data.get("equipment") or {}
        equipment_name = equipment.get("name", "N/A")
        reason = booking_data.get("cancellation_reason")

        reason_row = f"<p>Reason: {reason}</p>" if reason else ""

        html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body>
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Booking {status}</h2>
      <p>Hi {name},</p>
      <p>Your booking for <strong>{equipment_name}</strong>
         ({booking_data.get('start_date')} to {booking_data.get('end_date')}) is now <strong>{status}</strong>.</p>
      {reason_row}
    </div>
</body>
</html>
"""

        return await self.send_email(
            to=email,
            subject=f"Booking {status}: {equipment_name}",
            html=html,
        )


async def notify_booking_status(email: str, name: str, booking_data: Dict[str, Any]) -> None:
    """Background task wrapper; delivery failures are logged, not raised."""
    try:
        await get_email_service().send_booking_status(email, name, booking_data)
    except Exception as e:
        logger.error("Failed to send booking email to %s: %s", email, e)


# Global service instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get the global email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
