"""Application-level exceptions.

These are business-logic errors, not HTTP errors. The presentation layer
(e.g. FastAPI routes) translates them into appropriate HTTP responses.
"""


class ConfigurationError(RuntimeError):
    """Raised when a required secret or connection string is missing."""


class TableNotAllowedError(ValueError):
    """Raised when a document table is not in the configured allow-list."""


class UpstreamCallError(RuntimeError):
    """Raised when a collaborator call exhausts its call policy."""

    def __init__(self, policy: str, detail: str) -> None:
        super().__init__(f"{policy} failed: {detail}")
        self.policy = policy
        self.detail = detail


class RetrievalError(UpstreamCallError):
    """Raised when embedding or vector search fails (no context can be built)."""


class IdentityLookupError(RuntimeError):
    """Raised by the identity proxy when the provider answers with a non-OK status."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        super().__init__(f"Identity lookup failed with status {status_code}: {detail}")
        self.status_code = status_code
