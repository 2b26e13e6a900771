"""
Scheduling Services Module

This module provides the core logic for group availability plans:
- Slot key codec (slot_keys.py)
- Recurrence value object (recurrence.py)
- Slot generation (slots.py)
- Aggregation of availability into results (results.py)
- Plan and upsert validation (validation.py)
- Plan service used by the API layer (planning.py)
"""
