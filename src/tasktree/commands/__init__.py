"""
Command subsystem.

Components:
- task_commands.py: pure reversible commands (create/delete/edit/toggle/reorder)
- effects.py: hook decorator that runs persistence/notification side effects
"""
