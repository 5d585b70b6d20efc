"""
Stats Service - System Statistics

Responsibilities:
- Fetch system statistics from the admin backend every minute
- Sign each request with the caller's bearer token
- Surface failures as an explicit error state (never stale numbers)
"""

from .auth import CredentialProvider, StaticTokenProvider, SupabaseSessionTokenProvider
from .poller import StatsPoller, StatsState

__all__ = [
    "CredentialProvider",
    "StaticTokenProvider",
    "SupabaseSessionTokenProvider",
    "StatsPoller",
    "StatsState",
]
