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

"""Configuration management for FilmGear Booking."""

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AppConfig(BaseModel):
    """Application configuration."""

    name: str = "FilmGear Booking"
    debug: bool = False
    environment: str = "production"  # "development" enables the mock login path
    host: str = "0.0.0.0"
    port: int = 3001
    base_url: str = "http://localhost:3000"
    cors_origins: List[str] = ["http://localhost:3000"]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


class AdminConfig(BaseModel):
    """Initial admin account, created on startup when a password is set."""

    email: str = "admin@example.com"
    username: str = "admin"
    first_name: str = "Admin"
    last_name: str = "User"
    password: str = ""


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: str = "sqlite:///data/filmgear.db"


class SecurityConfig(BaseModel):
    """Security configuration."""

    jwt_secret: str = "change-this-secret-before-deploying-filmgear-booking"
    jwt_algorithm: str = "HS256"
    token_expire_days: int = 7
    reset_token_minutes: int = 60
    bcrypt_rounds: int = 12


class DevLoginConfig(BaseModel):
    """Credentials accepted while running in development without a database."""

    email: str = "admin@example.com"
    password: str = "password123"


class EmailConfig(BaseModel):
    """Email configuration."""

    enabled: bool = False
    provider: str = "smtp"  # "smtp" or "resend"
    api_key: str = ""  # For Resend
    from_address: str = "noreply@example.com"
    from_name: str = "FilmGear Booking"
    # SMTP settings (used when provider="smtp")
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False


class BookingConfig(BaseModel):
    """Booking constraints configuration."""

    max_duration_days: int = 90
    max_purpose_length: int = 500
    max_notes_length: int = 1000


class RateLimitConfig(BaseModel):
    """Rate limiting configuration."""

    max_bookings_per_user_per_day: int = 20


class PaginationConfig(BaseModel):
    """List endpoint paging defaults."""

    default_limit: int = 10
    max_limit: int = 100


class Settings(BaseModel):
    """Main settings container."""

    app: AppConfig = Field(default_factory=AppConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    dev_login: DevLoginConfig = Field(default_factory=DevLoginConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    booking: BookingConfig = Field(default_factory=BookingConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)


def load_config(config_path: Optional[str] = None) -> Settings:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, tries default locations.

    Returns:
        Settings object with loaded configuration.
    """
    default_paths = [
        Path("config/config.yaml"),
        Path("config.yaml"),
        Path("/etc/filmgear/config.yaml"),
    ]

    # Allow override via environment variable
    if config_path is None:
        config_path = os.environ.get("FILMGEAR_CONFIG")

    config_file = None

    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for path in default_paths:
            if path.exists():
                config_file = path
                break

    if config_file is None:
        logger.info("No config file found, using defaults")
        return Settings()

    logger.info("Loading config from: %s", config_file)

    with open(config_file, "r") as f:
        config_data = yaml.safe_load(f) or {}

    return Settings(**config_data)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def init_settings(config_path: Optional[str] = None) -> Settings:
    """Initialize settings from config file."""
    global _settings
    _settings = load_config(config_path)
    return _settings


def update_settings(new_settings: Settings) -> None:
    """Update the global settings instance."""
    global _settings
    _settings = new_settings
