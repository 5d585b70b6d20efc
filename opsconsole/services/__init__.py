"""
Console Services

- maintenance/ - Live maintenance state (subscription, snapshot, fan-out)
- stats/ - Periodic system statistics
- container.py - Process-wide service owner
"""

from .container import ConsoleServices

__all__ = ["ConsoleServices"]
