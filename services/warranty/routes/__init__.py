"""
Warranty Registry Routes
========================

API route handlers for the Warranty Registry Service.
"""

from services.warranty.routes import admin, auth, registration, registrations, warranty_numbers


__all__ = ["admin", "auth", "registration", "registrations", "warranty_numbers"]
