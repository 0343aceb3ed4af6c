#!/usr/bin/env python3
"""
Database Initialization Script
==============================

Prepare the warranty registry database: create MongoDB indexes, bootstrap
the default admin account and optionally import warranty numbers from CSV.
Every step is idempotent.

Usage:
    python scripts/init_databases.py
    python scripts/init_databases.py --skip-admin
    python scripts/init_databases.py --seed warranty_numbers.csv

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pymongo.errors import PyMongoError

from services.warranty.errors import WarrantyError
from shared.config import StorageBackend, settings
from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="init-db")
logger = get_logger(__name__)


async def init_mongodb() -> bool:
    """Verify the connection and create collection indexes."""
    from shared.database import MongoDBClient

    if settings.warranty.storage_backend != StorageBackend.MONGODB:
        logger.info("mongodb_skipped", backend=settings.warranty.storage_backend.value)
        return True

    logger.info("mongodb_initializing", host=settings.mongodb.host, database=settings.mongodb.db)

    try:
        info = await MongoDBClient.get_client().server_info()
        await MongoDBClient.create_indexes()
    except PyMongoError as e:
        logger.error("mongodb_init_failed", error=str(e))
        return False

    logger.info("mongodb_initialized", version=info.get("version"))
    return True


async def init_admin() -> bool:
    """Create the default admin if it does not exist."""
    from services.warranty.services import AdminDirectory
    from services.warranty.store import get_store

    try:
        created = await AdminDirectory(get_store()).ensure_default_admin()
    except (WarrantyError, PyMongoError) as e:
        logger.error("admin_bootstrap_failed", error=str(e))
        return False

    logger.info(
        "admin_bootstrap_complete",
        username=settings.warranty.default_admin_username,
        created=created,
    )
    return True


async def seed_warranty_numbers(path: Path) -> bool:
    """Import warranty numbers from a CSV file."""
    from services.warranty.services import WarrantyNumberPool
    from services.warranty.services.csv_io import parse_warranty_numbers
    from services.warranty.store import get_store

    if not path.exists():
        logger.error("seed_file_missing", path=str(path))
        return False

    try:
        rows = parse_warranty_numbers(path.read_bytes())
        result = await WarrantyNumberPool(get_store()).bulk_insert(rows)
    except (WarrantyError, PyMongoError) as e:
        logger.error("seed_failed", path=str(path), error=str(e))
        return False

    for error in result.errors:
        logger.warning("seed_row_rejected", code=error.code, error=error.error)

    logger.info(
        "seed_complete",
        path=str(path),
        success_count=result.success_count,
        error_count=len(result.errors),
        skipped_count=result.skipped_count,
    )
    return True


async def main(args: argparse.Namespace) -> int:
    """Main initialization function."""
    from shared.database import MongoDBClient

    logger.info("warranty_registry_init_started")

    results = {"MongoDB": await init_mongodb()}

    if not args.skip_admin:
        results["Default admin"] = await init_admin()

    if args.seed:
        results["Warranty numbers"] = await seed_warranty_numbers(args.seed)

    if settings.warranty.storage_backend == StorageBackend.MONGODB:
        await MongoDBClient.close()

    failed = [name for name, success in results.items() if not success]
    for name, success in results.items():
        logger.info("init_step_result", step=name, success=success)

    if failed:
        logger.error("warranty_registry_init_failed", failed=failed)
        return 1

    logger.info("warranty_registry_init_complete")
    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Initialize the warranty registry database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--skip-admin",
        action="store_true",
        help="Do not create the default admin account",
    )
    parser.add_argument(
        "--seed",
        type=Path,
        metavar="CSV",
        help="Import warranty numbers from a CSV file",
    )

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)
