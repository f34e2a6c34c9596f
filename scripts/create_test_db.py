#!/usr/bin/env python3
"""
Verify the test database configuration.

Tests run against TEST_DATABASE_URL when it is set (PostgreSQL exercises the
advisory locks and partial indexes as deployed) and fall back to a throwaway
SQLite file otherwise. This script makes sure the PostgreSQL target is never
the application database.
"""

import os
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def main() -> int:
    """Check test database configuration."""
    print("=" * 70)
    print("Test Database Setup Verification")
    print("=" * 70)
    print()

    from dotenv import load_dotenv

    load_dotenv()

    app_db = os.getenv("DATABASE_URL")
    test_db = os.getenv("TEST_DATABASE_URL")

    print("📊 Current Configuration:")
    print(f"   Application DB: {app_db}")
    print(f"   Test DB:        {test_db or '(unset, SQLite fallback)'}")
    print()

    if not test_db:
        print("ℹ️  TEST_DATABASE_URL is not set; tests will use a temporary SQLite file.")
        print("   Set it to a PostgreSQL database to test locking behavior as deployed.")
        return 0

    if test_db == app_db:
        print("❌ CRITICAL: Test database is the same as the application database!")
        print("   Tests drop and recreate every table. Use a separate database.")
        return 1

    if "test" not in test_db.lower():
        print("⚠️  WARNING: Test database URL doesn't contain 'test'")
        print("   Consider a database name like 'clinic_test'")
        print()

    print("✅ Test database configuration looks good!")
    print()
    print("Run tests with:  pytest")
    return 0


if __name__ == "__main__":
    sys.exit(main())
