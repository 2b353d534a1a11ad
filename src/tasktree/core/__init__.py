"""
Core model.

Components:
- task_node.py: composite task tree (TaskNode)
- ports.py: Protocols the core depends on (Command, ProjectRepo)
"""
