"""Exception types raised inside the council.

Only ConfigurationError escapes to callers, and only at construction time.
Provider errors are raised by execution strategies and turned into
ExecutionResult data by the executor.
"""


class CouncilError(Exception):
    """Base class for council errors."""


class ConfigurationError(CouncilError):
    """A provider or credential required for operation is missing."""


class ProviderError(CouncilError):
    """An outbound provider call failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProviderTimeoutError(ProviderError):
    """The call exceeded its deadline and was aborted. Never retried."""


class TransientProviderError(ProviderError):
    """Non-2xx status, connection failure or malformed response. Retried."""
