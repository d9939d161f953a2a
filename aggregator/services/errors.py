"""
Service layer exceptions.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class CacheError(ServiceError):
    """Cache backend is unavailable or failed an operation."""

    pass


class UnknownEndpointError(ServiceError):
    """A downstream endpoint name was never registered."""

    def __init__(self, service_id: str):
        super().__init__(
            f"No endpoint registered for service '{service_id}'",
            service_id=service_id,
        )
