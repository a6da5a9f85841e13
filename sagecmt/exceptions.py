"""Exception hierarchy for sagecmt.

Every error that can reach the workflow boundary derives from
``SageCMTError`` so the CLI can render a single user-facing line.
"""

from __future__ import annotations

from typing import Optional


class SageCMTError(Exception):
    """Base exception for all sagecmt errors."""


class ConfigError(SageCMTError):
    """Invalid or incomplete configuration."""


# ----------------------------------------------------------------------
# Version control / environment
# ----------------------------------------------------------------------
class GitError(SageCMTError):
    """A git command failed or the repository is unusable."""

    def __init__(self, message: str, stderr: str = "", returncode: int = 0) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class VersionControlUnavailableError(GitError):
    """The git executable could not be found."""

    def __init__(self, message: str = "Git command not found. Please install Git.") -> None:
        super().__init__(message)


class NoChangesDetectedError(GitError):
    """Nothing to generate a commit message from."""

    def __init__(self, message: str = "No changes detected in the repository.") -> None:
        super().__init__(message)


class NoRepositoriesFoundError(GitError):
    def __init__(self, message: str = "No Git repositories found.") -> None:
        super().__init__(message)


class NoRepositorySelectedError(GitError):
    def __init__(
        self, message: str = "No repository selected. Operation cancelled."
    ) -> None:
        super().__init__(message)


# ----------------------------------------------------------------------
# Generation backends
# ----------------------------------------------------------------------
class LLMError(SageCMTError):
    """Base class for generation failures.

    ``retryable`` tells the driver retry loop whether another attempt may
    succeed. ``status_code`` is the HTTP status when one was received.
    """

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MissingAPIKeyError(LLMError):
    """No credential is available for the selected provider."""


class EmptyGeneratedMessageError(LLMError):
    retryable = True

    def __init__(self, message: str = "Generated commit message is empty.") -> None:
        super().__init__(message)


class MalformedProviderResponseError(LLMError):
    retryable = True


class AuthenticationRejectedError(LLMError):
    """401/403: the credential is invalid, expired or lacks access."""


class QuotaOrBillingError(LLMError):
    """402: payment or billing action required."""


class InvalidRequestError(LLMError):
    """422: the provider rejected the request (often: input too large)."""


class ClientRequestError(LLMError):
    """Any other 4xx response."""


class RateLimitedError(LLMError):
    retryable = True


class ServerError(LLMError):
    retryable = True


class TransportFailureError(LLMError):
    """Timeout or refused connection before a response arrived."""

    retryable = True


# ----------------------------------------------------------------------
# Post-generation actions
# ----------------------------------------------------------------------
class AutoCommitFailedError(SageCMTError):
    """The drafted message was applied but committing it failed."""


class AutoPushFailedError(SageCMTError):
    """The commit succeeded but pushing it failed."""


class NoRemotesConfiguredError(AutoPushFailedError):
    def __init__(
        self,
        message: str = (
            "Repository has no configured remotes. Add one with "
            "'git remote add <name> <url>'."
        ),
    ) -> None:
        super().__init__(message)
