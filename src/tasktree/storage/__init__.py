"""
Persistence adapters.

Components:
- sqlite_store.py: SQLite-backed ProjectRepo (task rows + history log)
"""
