#!/usr/bin/env python3
"""Initialize the SOS Ksar PostgreSQL database via Alembic migrations.

This script runs all pending Alembic migrations (equivalent to `alembic upgrade head`).
It is the canonical way to create or update the database schema.

Usage:
    python scripts/init_db.py
"""

import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent


def run_migrations() -> None:
    """Run all pending Alembic migrations (upgrade to head)."""
    print("=== SOS Ksar Database Initialization ===\n")
    print("Running Alembic migrations...")

    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=str(PROJECT_ROOT),
        capture_output=False,
    )

    if result.returncode != 0:
        print("\n✗ Migration failed. See output above.")
        sys.exit(result.returncode)

    print("\n=== Database initialization complete! ===\n")
    print("Next step: bootstrap an admin user (first run only):")
    print("  python scripts/bootstrap.py\n")


if __name__ == "__main__":
    run_migrations()
