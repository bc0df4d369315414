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

"""Database setup and connection management."""

import logging
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from filmgear.config import get_settings

logger = logging.getLogger(__name__)

# Base class for all models
Base = declarative_base()

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> str:
    """Get the database URL from settings."""
    url = get_settings().database.url

    # Ensure directory exists for file-backed SQLite
    if url.startswith("sqlite:///") and not url.endswith(":memory:"):
        db_dir = Path(url[len("sqlite:///"):]).parent
        db_dir.mkdir(parents=True, exist_ok=True)

    return url


def init_engine(database_url: Optional[str] = None):
    """Initialize the database engine.

    Args:
        database_url: Overrides the configured URL (tests pass "sqlite://").
    """
    global _engine, _SessionLocal

    if database_url is None:
        database_url = get_database_url()

    engine_kwargs = {"echo": get_settings().app.debug}

    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory databases live per connection; share one across threads
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs["poolclass"] = StaticPool

    _engine = create_engine(database_url, **engine_kwargs)

    if database_url.startswith("sqlite"):
        # Enable foreign keys for SQLite
        @event.listens_for(_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def get_engine():
    """Get the database engine, initializing if needed."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_local():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Dependency to get database session."""
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def database_available(db: Session) -> bool:
    """Check whether the database answers a trivial query."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("Database not available: %s", e)
        return False


def create_tables():
    """Create all database tables."""
    # Import all models to ensure they're registered
    from filmgear.models import booking, equipment, location, user  # noqa: F401

    engine = get_engine()
    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drop all database tables."""
    from filmgear.models import booking, equipment, location, user  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())


def init_database():
    """Initialize database with tables and the configured admin account."""
    from filmgear.models.location import Location
    from filmgear.models.user import User

    create_tables()

    settings = get_settings()
    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        admin_user = db.query(User).filter(User.email == settings.admin.email.lower()).first()

        if not admin_user and settings.admin.password:
            admin_user = User(
                username=settings.admin.username,
                email=settings.admin.email.lower(),
                first_name=settings.admin.first_name,
                last_name=settings.admin.last_name,
                role="admin",
                is_active=True,
            )
            admin_user.set_password(settings.admin.password)
            db.add(admin_user)
            db.commit()
            logger.info("Created admin user: %s", admin_user.email)

        # Equipment always needs a location; make sure one exists
        if admin_user and db.query(Location).count() == 0:
            db.add(
                Location(
                    name="Main Warehouse",
                    type="warehouse",
                    description="Default equipment storage",
                    created_by=admin_user.id,
                )
            )
            db.commit()

        logger.info("Database initialized successfully")

    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
