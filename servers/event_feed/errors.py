"""Exception types raised by the event feed core."""


class EventFeedError(Exception):
    """Base class for event feed errors."""


class QueryTimeoutError(EventFeedError):
    """Raised when a page query exceeds its deadline.

    No partial page is returned; the caller should retry with the same cursor.
    """

    def __init__(self, timeout: float, iterations: int):
        super().__init__(
            f"Page query exceeded {timeout:.2f}s after {iterations} batch(es)"
        )
        self.timeout = timeout
        self.iterations = iterations


class ConfigError(EventFeedError):
    """Raised when a feed config cannot be loaded or fails validation."""

    def __init__(self, errors: list[str]):
        super().__init__("Invalid config: " + "; ".join(errors))
        self.errors = errors
