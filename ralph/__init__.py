"""
Ralph - Autonomous agent loop.

This package drives an external coding agent repeatedly against a backlog of
user stories until the backlog is done, a budget ceiling is hit, or the
iteration limit is reached.
"""

__version__ = "0.1.0"
