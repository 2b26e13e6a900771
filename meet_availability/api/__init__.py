"""
Meet Availability API

Structure:
    api/
    ├── __init__.py              # This file
    ├── plans/                   # Plans domain
    │   ├── __init__.py          # Re-exports from endpoints
    │   └── endpoints.py         # Whitelisted plan endpoints
    ├── shared/                  # Shared utilities
    │   ├── __init__.py          # Re-exports from security and validators
    │   └── validators.py        # Plan-specific argument validators
    └── security.py              # Rate limiting, bearer tokens, sanitization

Usage:
    frappe.call("meet_availability.api.plans.get_results", {plan_id: "..."})
"""

from . import plans
from . import shared

__all__ = [
    "plans",
    "shared",
]
