"""Application-level exception types for Guardian."""

from __future__ import annotations

from collections.abc import Iterable


class GuardianError(Exception):
    """Base exception for Guardian."""


class ConfigurationError(GuardianError):
    """Base exception for configuration and startup validation errors."""


class AccessTokenMissingError(ConfigurationError):
    """Raised when no access token is configured for the capability server."""


class ToolsNotReadyError(GuardianError):
    """Raised when required tools do not show up before the readiness timeout."""

    def __init__(self, missing: Iterable[str], found: Iterable[str], timeout_ms: int) -> None:
        self.missing = sorted(missing)
        self.found = sorted(found)
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Timed out after {timeout_ms}ms waiting for tools: {', '.join(self.missing)}; "
            f"found: {', '.join(self.found) or '(none)'}"
        )


class ClaimGenerationError(GuardianError):
    """Raised when the claim-generation endpoint cannot produce a claim."""

    kind = "failed"


class ClaimUnauthorizedError(ClaimGenerationError):
    """Raised on HTTP 401 from the claim-generation endpoint."""

    kind = "unauthorized"


class ClaimForbiddenError(ClaimGenerationError):
    """Raised on HTTP 403 from the claim-generation endpoint."""

    kind = "forbidden"


class RunFailedError(GuardianError):
    """Raised when one workflow run aborts on a remote call."""

    def __init__(self, run: int, cause: BaseException) -> None:
        self.run = run
        self.cause = cause
        super().__init__(f"run {run} failed: {type(cause).__name__}: {cause}")
