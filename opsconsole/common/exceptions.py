"""
Custom Exception Classes for the Ops Console

Hierarchical exception structure for error handling across services.
"""


class ConsoleError(Exception):
    """Base exception for all ops console errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(ConsoleError):
    """Configuration-related errors"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class SubscriptionError(ConsoleError):
    """Remote document subscription reported a failure state"""

    def __init__(self, message: str, document_id: str | None = None):
        self.document_id = document_id
        super().__init__(f"Subscription Error: {message}", recoverable=True)


class StatsError(ConsoleError):
    """Statistics query errors"""

    def __init__(self, message: str):
        super().__init__(message, recoverable=True)


class NotAuthenticatedError(StatsError):
    """No current identity to sign the stats request with"""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class StatsFetchError(StatsError):
    """Stats endpoint failed or returned an unusable body"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ServiceError(ConsoleError):
    """Service lifecycle errors"""

    def __init__(self, message: str, service_name: str, recoverable: bool = False):
        self.service_name = service_name
        super().__init__(f"Service [{service_name}]: {message}", recoverable)
