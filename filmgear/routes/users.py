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

"""User administration routes."""

import logging
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from filmgear.config import get_settings
from filmgear.database import get_db
from filmgear.errors import DuplicateUser
from filmgear.middleware.auth import ensure_owner_or_admin, get_current_user, require_admin
from filmgear.models.user import USER_ROLES, User
from filmgear.routes.auth import validate_password, validate_username
from filmgear.services import stats
from filmgear.utils.helpers import apply_sort, is_filter_set, paginate, sanitize_input, success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users")

Role = Literal[USER_ROLES]

SORT_FIELDS = ("username", "email", "first_name", "last_name", "role", "created_at", "last_login_at")


class UserCreate(BaseModel):
    """Admin user creation request."""

    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    department: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    role: Role = "external"

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


class UserUpdate(BaseModel):
    """User update request."""

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    department: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    preferences: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class RoleUpdate(BaseModel):
    role: Role


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[str] = None,
    department: Optional[str] = None,
    is_active: Optional[bool] = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """List users (admin only)."""
    limit = limit or get_settings().pagination.default_limit

    query = db.query(User)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
                User.username.ilike(pattern),
            )
        )

    if is_filter_set(role):
        query = query.filter(User.role == role)

    if is_filter_set(department):
        query = query.filter(User.department.ilike(f"%{department}%"))

    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))

    query = apply_sort(query, User, sort_by, sort_order, SORT_FIELDS)
    items, pagination = paginate(query, page, limit)

    return success_response([u.to_dict() for u in items], pagination=pagination)


@router.get("/stats/overview")
async def user_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """User counts (admin only)."""
    return success_response(stats.user_overview(db))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Create a user with any role (admin only)."""
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
        role=data.role,
        is_active=True,
    )
    user.set_password(data.password)
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User %s created by admin %s", user.email, current_user.id)

    return success_response(user.to_dict(), message="User created successfully")


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a user profile (self or admin)."""
    ensure_owner_or_admin(current_user, user_id)
    user = get_user_or_404(db, user_id)
    return success_response(user.to_dict())


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a user profile (self or admin)."""
    ensure_owner_or_admin(current_user, user_id)
    user = get_user_or_404(db, user_id)

    if data.is_active is not None:
        if not current_user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only admins can change account status",
            )
        if user.id == current_user.id and not data.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot deactivate your own account",
            )
        user.is_active = data.is_active

    if data.first_name is not None:
        user.first_name = sanitize_input(data.first_name, 50)
    if data.last_name is not None:
        user.last_name = sanitize_input(data.last_name, 50)
    if data.department is not None:
        user.department = sanitize_input(data.department, 100) or None
    if data.phone is not None:
        user.phone = data.phone or None
    if data.preferences is not None:
        user.preferences = {**(user.preferences or {}), **data.preferences}

    db.commit()
    db.refresh(user)

    return success_response(user.to_dict(), message="User updated successfully")


@router.delete("/{user_id}")
async def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Deactivate a user; accounts are never hard-deleted."""
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account",
        )

    user = get_user_or_404(db, user_id)
    user.is_active = False
    db.commit()

    logger.info("User %s deactivated by admin %s", user.email, current_user.id)

    return success_response(message="User deactivated successfully")


@router.patch("/{user_id}/role")
async def change_role(
    user_id: int,
    data: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Change a user's role (admin only)."""
    user = get_user_or_404(db, user_id)

    if user.id == current_user.id and data.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot remove your own admin role",
        )

    user.role = data.role
    db.commit()
    db.refresh(user)

    return success_response(user.to_dict(), message="User role updated successfully")
