"""Typed exception hierarchy for aggregator errors.

Provides structured exceptions for differentiated error handling
(configuration vs auth errors vs transient network errors vs API errors).
"""


class ConfigurationError(Exception):
    """Required open-banking configuration is missing or invalid.

    Fatal at startup; never retried.
    """

    def __init__(self, message: str, missing: list[str] | None = None):
        self.missing = missing or []
        super().__init__(message)


class AggregatorError(Exception):
    """Base exception for all aggregator-related errors.

    Carries the provider name so callers can identify which aggregator failed.
    """

    def __init__(self, message: str, provider_name: str = "OpenBanking"):
        self.provider_name = provider_name
        super().__init__(message)


class AggregatorAuthError(AggregatorError):
    """Partner credentials rejected by the aggregator.

    A setup failure, not a transient fault: the enclosing operation must abort.
    """

    def __init__(
        self,
        message: str,
        provider_name: str = "OpenBanking",
        status_code: int | None = None,
        body: str = "",
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message, provider_name)


class AggregatorConnectionError(AggregatorError):
    """Network failures: timeouts, DNS resolution, connection refused.

    Retriable by default.
    """

    def __init__(self, message: str, provider_name: str = "OpenBanking", retriable: bool = True):
        self.retriable = retriable
        super().__init__(message, provider_name)


class AggregatorAPIError(AggregatorError):
    """HTTP 4xx/5xx responses from the aggregator API."""

    def __init__(
        self,
        message: str,
        provider_name: str = "OpenBanking",
        status_code: int | None = None,
        body: str = "",
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message, provider_name)

    @property
    def retriable(self) -> bool:
        """429 (rate limit) and 5xx errors are generally retriable."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500
