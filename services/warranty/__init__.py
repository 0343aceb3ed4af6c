"""
Warranty Registry Service
=========================

Pre-issued warranty numbers, customer registrations against them, and the
admin tooling around both.

Components:
- WarrantyNumberPool: issued codes and their used/available state
- RegistrationLedger: customer registrations, claims and expiry
- RegistrationCoordinator: keeps the two consistent on register/delete
- Marketing sync: best-effort Omnisend and Shopify delivery
"""
