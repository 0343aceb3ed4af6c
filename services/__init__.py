"""
Warranty Registry Services
==========================

Services:
- warranty: warranty number pool, customer registration, claims
  administration and marketing sync
"""

__all__ = [
    "warranty",
]
