"""
HTTP API - thin adapter between the console services and the dashboard UI
"""

from .app import create_app

__all__ = ["create_app"]
