"""
Exception Hierarchy

How a failure is classified decides what happens to the job that raised it:

- ConfigurationError: fatal, the job fails without retries
- UpstreamError: retried by the queue when ``retryable``
- NotFoundError: upstream 404; activity checks treat it as data
- ValidationError: bad payload, region or URL; never retried
- ServiceError: Redis, database or queue infrastructure failure
"""

from typing import Optional, Dict, Any


class GuildSyncError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class UpstreamError(GuildSyncError):
    """Non-2xx response or transport failure from Blizzard, Raider.IO or OAuth."""

    def __init__(
        self,
        message: str,
        service: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.service = service
        self.status_code = status_code
        self.endpoint = endpoint
        self.details.update(service=service, status_code=status_code, endpoint=endpoint)

    @property
    def retryable(self) -> bool:
        """Transport failures, 408, 429 and 5xx are worth another try."""
        if self.status_code is None or self.status_code in (408, 429):
            return True
        return not 400 <= self.status_code < 500


class NotFoundError(UpstreamError):
    """Upstream 404 for a character, guild or crest."""

    def __init__(
        self,
        resource: str,
        identifier: Any,
        service: str = "blizzard",
        endpoint: Optional[str] = None
    ):
        super().__init__(
            f"{resource} not found: {identifier}",
            service=service,
            status_code=404,
            endpoint=endpoint,
            details={"resource": resource, "identifier": str(identifier)}
        )
        self.resource = resource
        self.identifier = identifier


class ValidationError(GuildSyncError):
    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        super().__init__(message, {"field": field, "value": value})
        self.field = field
        self.value = value


class ConfigurationError(GuildSyncError):
    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, {"config_key": config_key})
        self.config_key = config_key


class ServiceError(GuildSyncError):
    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        operation: Optional[str] = None
    ):
        super().__init__(message, {"service_name": service_name, "operation": operation})
        self.service_name = service_name
        self.operation = operation
