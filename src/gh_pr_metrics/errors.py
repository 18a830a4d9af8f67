"""Custom exception types for the GitHub PR metrics collector."""


class MetricsError(Exception):
    """Base exception for all recoverable metrics collector errors."""


class ConfigurationError(MetricsError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(MetricsError):
    """Raised when GitHub credentials are unavailable or rejected."""


class ApiError(MetricsError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class DataValidationError(MetricsError):
    """Raised when API payloads do not meet the constraints required to continue paging."""
