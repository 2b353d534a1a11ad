"""
Undo/redo history.

Components:
- engine.py: bounded command history with a cursor (HistoryEngine) and its
  display/export records
"""
