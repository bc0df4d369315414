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

"""Signed session tokens."""

import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from filmgear.config import get_settings


class TokenError(Exception):
    """Raised when a bearer token cannot be accepted."""

    def __init__(self, message: str, expired: bool = False):
        self.message = message
        self.expired = expired
        super().__init__(message)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token whose subject is the user id.

    Args:
        user_id: Id of the authenticated user.
        expires_delta: Lifetime override; defaults to security.token_expire_days.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings().security
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(days=settings.token_expire_days)

    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """Verify a token and return the user id it was issued for.

    Raises:
        TokenError: signature, format or expiry check failed.
    """
    settings = get_settings().security
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired.", expired=True)
    except jwt.InvalidTokenError:
        raise TokenError("Invalid token.")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise TokenError("Invalid token.")


def dev_token() -> str:
    """Placeholder token handed out by the development mock login."""
    return f"dev-jwt-token-{int(time.time() * 1000)}"
