"""
Ops Console

Admin console backend: live maintenance state distribution and
periodic system statistics.
"""

__version__ = "1.0.0"
