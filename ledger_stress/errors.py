"""Exception hierarchy for the stress harness.

Only ``ConfigurationError`` stops a run. Everything that goes wrong while
workers are running is reported as a failed check instead.
"""


class LedgerStressError(Exception):
    """Base class for harness errors."""


class ConfigurationError(LedgerStressError):
    """The run cannot start: bad scenario plan or unreachable target."""


class TransportError(LedgerStressError):
    """A request never produced an HTTP response (refused, DNS, timeout)."""

    def __init__(self, method: str, url: str, reason: str) -> None:
        super().__init__(f"{method} {url} failed: {reason}")
        self.method = method
        self.url = url
        self.reason = reason
