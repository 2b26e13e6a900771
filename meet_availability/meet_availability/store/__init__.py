"""
Store Module

Persistence collaborators for the scheduling core:
- Store interface and records (base.py)
- Factory for getting the configured store (factory.py)
- In-memory implementation (memory.py)
- Frappe site database implementation (frappe_store.py)
"""
