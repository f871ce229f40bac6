#!/usr/bin/env python3
"""
Database Initialization Script

Creates the bulk_jobs table for the Bulk Outreach Generator and checks that
the configured database is reachable.
"""

import os
import sys
import argparse
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import inspect
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from bulk_outreach.database.connection import DatabaseConfig, DatabaseManager, init_database


def masked_url(config: DatabaseConfig) -> str:
    return make_url(config.database_url).render_as_string(hide_password=True)


def setup_database(drop_existing: bool = False) -> bool:
    """
    Set up the database tables and indexes

    Args:
        drop_existing: Whether to drop existing tables first

    Returns:
        bool: Success status
    """
    print("Bulk Outreach Database Setup")
    print("=" * 50)

    config = DatabaseConfig()
    print(f"URL: {masked_url(config)}")
    print()

    print("Validating configuration...")
    is_valid, error_msg = config.validate_config()
    if not is_valid:
        print(f"Configuration Error: {error_msg}")
        print("\nSet DATABASE_URL, or the individual variables:")
        print("  - DB_HOST (default: localhost)")
        print("  - DB_PORT (default: 5432)")
        print("  - DB_NAME (default: bulk_outreach)")
        print("  - DB_USER (default: outreach_user)")
        print("  - DB_PASSWORD (required)")
        return False

    print("Configuration valid")

    if drop_existing:
        print("\nWARNING: This will DROP all existing bulk jobs!")
        confirmation = input("Type 'YES' to confirm: ")
        if confirmation != 'YES':
            print("Aborted by user")
            return False

    print("\nInitializing database...")
    db_manager = DatabaseManager(config)
    try:
        success, message = init_database(db_manager, drop_first=drop_existing)
    finally:
        db_manager.close()

    if not success:
        print(f"Database initialization failed: {message}")
        return False

    print(message)
    print("\nDatabase setup completed successfully!")
    print("\nNext steps:")
    print("1. Start the API server: uvicorn bulk_outreach.main:app --reload")
    print("2. Start a job: python scripts/run_bulk_job.py prospects.csv --sender-url https://example.com")

    return True


def show_connection_info():
    """Show database connection information"""
    print("Database Connection Information")
    print("=" * 40)

    config = DatabaseConfig()

    if config.url:
        print(f"Connection URL (DATABASE_URL): {masked_url(config)}")
    else:
        print(f"Host: {config.host}")
        print(f"Port: {config.port}")
        print(f"Database: {config.database}")
        print(f"Username: {config.username}")
        print(f"Password: {'*' * len(config.password) if config.password else 'Not set'}")
        print(f"Connection URL: {masked_url(config)}")
    print()

    print("Environment Variables:")
    env_vars = [
        ("DATABASE_URL", masked_url(config) if config.url else "NOT SET"),
        ("DB_HOST", config.host),
        ("DB_PORT", config.port),
        ("DB_NAME", config.database),
        ("DB_USER", config.username),
        ("DB_PASSWORD", "***" if config.password else "NOT SET"),
        ("DB_POOL_SIZE", config.pool_size),
        ("DB_MAX_OVERFLOW", config.max_overflow),
    ]

    for var, value in env_vars:
        status = "OK" if os.getenv(var) else "DEFAULT"
        print(f"  {status} {var}: {value}")


def test_connection() -> bool:
    """Test database connection and report which tables exist"""
    print("Testing Database Connection")
    print("=" * 35)

    db_manager = DatabaseManager(DatabaseConfig())
    try:
        success, error_msg = db_manager.test_connection()
        if not success:
            print(f"Connection failed: {error_msg}")
            print("\nTroubleshooting:")
            print("1. Make sure the database server is running")
            print("2. Check your database credentials")
            print("3. Verify the database exists")
            return False

        print("Connection successful!")
        print(f"Dialect: {db_manager.engine.dialect.name}")

        existing = set(inspect(db_manager.engine).get_table_names())
        expected = db_manager.get_table_names()
        found = [name for name in expected if name in existing]
        if found:
            print(f"Tables found: {', '.join(found)}")
        else:
            print("No bulk outreach tables found. Run --setup to create them.")
    except SQLAlchemyError as e:
        print(f"Connection test failed: {e}")
        return False
    finally:
        db_manager.close()

    return True


def main():
    """Main CLI interface"""
    parser = argparse.ArgumentParser(
        description="Initialize the database for the Bulk Outreach Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/init_database.py --setup                 # Set up database
  python scripts/init_database.py --setup --drop          # Drop and recreate tables
  python scripts/init_database.py --test                  # Test connection
  python scripts/init_database.py --info                  # Show connection info
        """
    )

    parser.add_argument(
        "--setup",
        action="store_true",
        help="Create the bulk_jobs table and indexes"
    )

    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing tables before setup (use with --setup)"
    )

    parser.add_argument(
        "--test",
        action="store_true",
        help="Test database connection"
    )

    parser.add_argument(
        "--info",
        action="store_true",
        help="Show database connection information"
    )

    args = parser.parse_args()

    if not any([args.setup, args.test, args.info]):
        parser.print_help()
        return

    success = True

    if args.info:
        show_connection_info()
        print()

    if args.test:
        success = test_connection() and success
        print()

    if args.setup:
        if args.drop and not args.test:
            print("Testing connection before dropping tables...")
            if not test_connection():
                print("Aborting setup due to connection failure")
                sys.exit(1)
            print()

        success = setup_database(drop_existing=args.drop) and success

    if not success:
        sys.exit(1)


if __name__ == "__main__":
    main()
