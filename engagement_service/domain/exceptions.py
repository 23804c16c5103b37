"""
Domain exceptions - expected, caller-recoverable outcomes

Unexpected persistence failures are not wrapped here; they propagate as-is.
"""


class EngagementError(Exception):
    """Base class for domain errors raised by the engagement core"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(EngagementError):
    """Referenced entity does not exist"""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} '{resource_id}' not found")
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(EngagementError):
    """Uniqueness violation (duplicate connection pair, duplicate like)"""


class InvalidOperationError(EngagementError):
    """Semantically forbidden request (self-connection, illegal transition)"""
