"""
Plans API Domain

Handles plan creation and edits, participant joins, availability
submission, and aggregated results.
"""

from .endpoints import (
    # Plans
    create_plan,
    get_plan,
    update_plan,
    # Participants
    join_plan,
    # Availability
    upsert_availability,
    get_my_availability,
    # Results
    get_results,
)

__all__ = [
    # Plans
    "create_plan",
    "get_plan",
    "update_plan",
    # Participants
    "join_plan",
    # Availability
    "upsert_availability",
    "get_my_availability",
    # Results
    "get_results",
]
