"""
Database Module
===============

Async MongoDB client (Motor) for warranty data.

Usage:
    from shared.database import MongoDBClient, WARRANTY_NUMBERS

    db = MongoDBClient.get_database()
    doc = await db[WARRANTY_NUMBERS].find_one({"code": "TH11-0001"})
"""

from shared.database.mongodb import (
    ADMINS,
    REGISTRATIONS,
    WARRANTY_NUMBERS,
    MongoDBClient,
)


__all__ = [
    "MongoDBClient",
    "WARRANTY_NUMBERS",
    "REGISTRATIONS",
    "ADMINS",
]
