"""
Project store.

Components:
- project_store.py: projects + per-project history, statistics, change events
"""
