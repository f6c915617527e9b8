"""Exception hierarchy and error categorization for the match engine."""

from .models import ErrorCategory


class TagFixerError(Exception):
    """Base exception for all tagfixer errors."""


class ConfigError(TagFixerError):
    """Invalid or missing configuration."""


class ProviderError(TagFixerError):
    """A metadata provider call failed (transport, HTTP status, or parse)."""

    def __init__(
        self,
        source: str,
        message: str,
        status_code: int | None = None,
        category: ErrorCategory | None = None,
    ) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.status_code = status_code
        if category is None:
            category = (
                categorize_status_code(status_code)
                if status_code is not None
                else ErrorCategory.TRANSIENT
            )
        self.category = category


def categorize_status_code(code: int) -> ErrorCategory:
    """Map an HTTP status code to an error category.

    429 (rate limited) and 5xx are transient; any other 4xx means the
    request itself is bad and retrying will not help.
    """
    if code == 429 or code >= 500:
        return ErrorCategory.TRANSIENT
    return ErrorCategory.PERMANENT
