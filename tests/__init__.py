"""
Warranty Registry Test Suite
============================

Test organization:
- tests/unit/                 - Shared auth and config
- tests/services/warranty/    - Pool, ledger, coordinator, sync, API

All tests run against the in-memory store; outbound HTTP uses
httpx.MockTransport.

Run tests:
    pytest                          # All tests
    pytest tests/services/warranty  # Warranty registry only
    pytest --cov=services --cov=shared
"""
