"""
Change notification.

Components:
- bus.py: synchronous publish/subscribe channel (ChangeBus)
"""
