#!/usr/bin/env python3
# FilmGear Booking - Film Equipment Booking and Inventory System
# Copyright (C) 2025 Oleg Tokmakov
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Database initialization script."""

import argparse

from filmgear.config import init_settings
from filmgear.database import get_session_local, init_database
from filmgear.seed import seed_database


def main():
    """Initialize the database."""
    parser = argparse.ArgumentParser(description="Initialize the FilmGear database")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--sample", action="store_true", help="Load sample users, locations and equipment")
    parser.add_argument("--reset", action="store_true", help="Remove existing inventory before loading samples")
    args = parser.parse_args()

    print("Initializing FilmGear database...")

    # Load configuration
    init_settings(args.config)

    # Initialize database
    init_database()

    if args.sample:
        db = get_session_local()()
        try:
            counts = seed_database(db, reset=args.reset)
        finally:
            db.close()
        print(
            f"Loaded {counts['users']} users, {counts['locations']} locations "
            f"and {counts['equipment']} equipment items"
        )

    print("Database initialization complete!")


if __name__ == "__main__":
    main()
