"""Exceptions for notice-mcp."""


class NoticeError(Exception):
    """Base exception for all notice-mcp errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(NoticeError):
    """Raised when a notification request is malformed."""

    def __init__(self, message: str = "Invalid notification request") -> None:
        super().__init__(message)


class UnknownBackendError(ValidationError):
    """Raised when a request names a backend that is not registered."""

    def __init__(self, backend: str, available: list[str] | None = None) -> None:
        self.backend = backend
        self.available = list(available or [])
        message = f"Unknown backend: {backend}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class ConfigError(NoticeError):
    """Raised when a backend configuration is missing or malformed."""


class BackendError(NoticeError):
    """Raised by a backend when delivery fails."""


class WebhookTimeoutError(BackendError):
    """Raised when a webhook request does not complete in time."""

    def __init__(self, url: str, timeout: float) -> None:
        self.url = url
        self.timeout = timeout
        super().__init__(f"Webhook request timed out after {timeout:g}s: {url}")


class RegistryError(NoticeError):
    """Backend registry misuse (duplicate name, registration after freeze)."""
