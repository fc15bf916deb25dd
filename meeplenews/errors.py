from __future__ import annotations


class MeepleNewsError(Exception):
    """Base class for every error raised inside the news core."""


class ProviderError(MeepleNewsError):
    """A single search provider could not answer a query."""

    kind = "error"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ProviderAuthError(ProviderError):
    kind = "auth"


class ProviderRateLimitError(ProviderError):
    kind = "rate-limit"


class ProviderNetworkError(ProviderError):
    kind = "network"


class ProviderTimeoutError(ProviderError):
    kind = "timeout"


class ProviderResponseError(ProviderError):
    kind = "bad-response"


class AllProvidersExhausted(MeepleNewsError):
    """Every provider in the priority list was skipped or failed."""

    def __init__(self, query: str, attempted: dict[str, str]) -> None:
        detail = ", ".join(f"{name}={reason}" for name, reason in attempted.items())
        super().__init__(f"no provider answered '{query}' ({detail or 'none configured'})")
        self.query = query
        self.attempted = attempted


class ProcessingError(MeepleNewsError):
    pass


class PersistenceError(MeepleNewsError):
    pass
