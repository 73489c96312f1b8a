"""
Physiobook API

Thin endpoint functions over the scheduling core.

Structure:
    api/
    ├── __init__.py              # This file
    ├── context.py               # build_context(): store + wired components
    ├── appointment_api.py       # Endpoint functions returning outcome dicts
    └── shared/                  # Shared utilities
        ├── __init__.py          # Re-exports validators
        └── validators.py        # Input validators

Usage:
    from physiobook.api.context import build_context
    from physiobook.api import appointment_api

    ctx = build_context()
    outcome = appointment_api.get_available_slots(ctx, "2026-06-15")
"""

from . import shared

__all__ = [
    "shared",
]
