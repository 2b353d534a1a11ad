"""tasktree: composite task trees with bounded undo/redo and change notification."""

__version__ = "0.1.0"
