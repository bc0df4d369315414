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

"""Authentication routes."""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from filmgear.config import get_settings
from filmgear.database import database_available, get_db
from filmgear.errors import DuplicateUser, InvalidCredentials
from filmgear.middleware.auth import get_current_user
from filmgear.models.user import User
from filmgear.services.email import get_email_service
from filmgear.services.tokens import create_access_token, dev_token
from filmgear.utils.helpers import generate_token, sanitize_input, success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def validate_password(value: str) -> str:
    """Passwords need at least one digit; length is checked by the field."""
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one number")
    return value


def validate_username(value: str) -> str:
    value = value.strip()
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return value


class RegisterRequest(BaseModel):
    """Registration request."""

    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    department: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password(v)


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=72)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()


class ProfileUpdate(BaseModel):
    """Own profile update."""

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    department: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    preferences: Optional[Dict[str, Any]] = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=72)
    new_password: str = Field(min_length=6, max_length=72)

    @field_validator("new_password")
    @classmethod
    def check_password(cls, v):
        return validate_password(v)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=6, max_length=72)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password(v)


def mock_login(data: LoginRequest) -> dict:
    """Development-only login used while the database is unreachable."""
    dev = get_settings().dev_login

    if data.email != dev.email.lower() or data.password != dev.password:
        raise InvalidCredentials()

    logger.warning("Database unavailable, issuing development mock login for %s", data.email)

    user = {
        "id": 0,
        "username": "admin",
        "email": dev.email.lower(),
        "first_name": "Admin",
        "last_name": "User",
        "full_name": "Admin User",
        "department": None,
        "phone": None,
        "role": "admin",
        "is_active": True,
        "preferences": {},
        "last_login_at": datetime.utcnow().isoformat(),
    }
    return success_response(
        {"token": dev_token(), "user": user},
        message="Login successful (development mode)",
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
):
    """Create an account with the external role and log it in."""
    existing = (
        db.query(User)
        .filter(or_(User.email == data.email, User.username == data.username))
        .first()
    )
    if existing:
        raise DuplicateUser()

    user = User(
        username=data.username,
        email=data.email,
        first_name=sanitize_input(data.first_name, 50),
        last_name=sanitize_input(data.last_name, 50),
        department=sanitize_input(data.department, 100) if data.department else None,
        phone=data.phone,
        role="external",
        is_active=True,
    )
    user.set_password(data.password)
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Registered user %s", user.email)

    return success_response(
        {"token": create_access_token(user.id), "user": user.to_dict()},
        message="User registered successfully",
    )


@router.post("/login")
async def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
):
    """Exchange email and password for a token."""
    settings = get_settings()

    if settings.app.is_development and not database_available(db):
        return mock_login(data)

    user = db.query(User).filter(User.email == data.email).first()

    if not user or not user.check_password(data.password):
        raise InvalidCredentials()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated. Please contact an administrator.",
        )

    user.last_login_at = datetime.utcnow()
    db.commit()
    db.refresh(user)

    return success_response(
        {"token": create_access_token(user.id), "user": user.to_dict()},
        message="Login successful",
    )


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user profile."""
    return success_response(current_user.to_dict())


@router.put("/me")
async def update_me(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update own profile; preferences are merged into the stored ones."""
    if data.first_name is not None:
        current_user.first_name = sanitize_input(data.first_name, 50)
    if data.last_name is not None:
        current_user.last_name = sanitize_input(data.last_name, 50)
    if data.department is not None:
        current_user.department = sanitize_input(data.department, 100) or None
    if data.phone is not None:
        current_user.phone = data.phone or None
    if data.preferences is not None:
        current_user.preferences = {**(current_user.preferences or {}), **data.preferences}

    db.commit()
    db.refresh(current_user)

    return success_response(current_user.to_dict(), message="Profile updated successfully")


@router.put("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Change own password after confirming the current one."""
    if not current_user.check_password(data.current_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    current_user.set_password(data.new_password)
    db.commit()

    return success_response(message="Password changed successfully")


@router.post("/refresh")
async def refresh_token(current_user: User = Depends(get_current_user)):
    """Issue a fresh token for the current user."""
    return success_response({"token": create_access_token(current_user.id)})


@router.post("/logout")
async def logout(current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy."""
    return success_response(message="Logged out successfully")


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
):
    """Start a password reset."""
    settings = get_settings()

    user = db.query(User).filter(User.email == data.email).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No user found with that email",
        )

    token = generate_token(32)
    user.reset_password_token = token
    user.reset_password_expires = datetime.utcnow() + timedelta(
        minutes=settings.security.reset_token_minutes
    )
    db.commit()

    if settings.email.enabled:
        try:
            await get_email_service().send_password_reset(user.email, user.first_name, token)
        except Exception as e:
            logger.error("Failed to send password reset email to %s: %s", user.email, e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send password reset email",
            )

    data_out = {"reset_token": token} if settings.app.is_development else None
    return success_response(data_out, message="Password reset instructions sent")


@router.post("/reset-password")
async def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    """Finish a password reset with the emailed token."""
    user = (
        db.query(User)
        .filter(
            User.reset_password_token == data.token,
            User.reset_password_expires > datetime.utcnow(),
        )
        .first()
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token",
        )

    user.set_password(data.password)
    user.reset_password_token = None
    user.reset_password_expires = None
    db.commit()

    return success_response(message="Password has been reset successfully")
