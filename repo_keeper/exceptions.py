"""Custom exceptions for repo-keeper"""

from typing import Optional


class RepoKeeperError(Exception):
    """Base exception for all repo-keeper errors."""
    pass


class GitOperationError(RepoKeeperError):
    """Exception raised when a git command exits with a non-zero status."""

    def __init__(
        self,
        operation: str,
        repository: Optional[str] = None,
        message: Optional[str] = None,
        exit_code: Optional[int] = None,
    ):
        self.operation = operation
        self.repository = repository
        self.message = message
        self.exit_code = exit_code

        error_msg = f"Git operation '{operation}' failed"
        if repository:
            error_msg += f" in '{repository}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class CommandTimeoutError(GitOperationError):
    """Exception raised when a git command exceeds its time budget."""

    def __init__(self, operation: str, repository: Optional[str], timeout: float):
        self.timeout = timeout
        super().__init__(operation, repository, f"timed out after {timeout:g}s")


class OperationCancelledError(GitOperationError):
    """Exception raised when the cancellation token fires."""

    def __init__(self, operation: str, repository: Optional[str] = None):
        super().__init__(operation, repository, "Operation cancelled")


class DiscoveryError(RepoKeeperError):
    """A directory could not be read during discovery. Never fatal."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Ignored: {path} ({message})")


class StatusCollectionError(RepoKeeperError):
    """Exception raised while collecting the status of one repository."""

    def __init__(self, repository: str, message: str):
        self.repository = repository
        self.message = message
        super().__init__(f"Could not collect status of '{repository}': {message}")


class SynchronizationFailure(RepoKeeperError):
    """Exception raised when a branch of a repository could not be updated."""

    def __init__(self, repository: str, branch: Optional[str], message: str):
        self.repository = repository
        self.branch = branch
        self.message = message

        error_msg = f"Synchronization of '{repository}' failed"
        if branch:
            error_msg += f" at branch '{branch}'"
        super().__init__(f"{error_msg}: {message}")


class ConfigurationError(RepoKeeperError, ValueError):
    """Exception raised for invalid configuration or an unusable repository setup."""
    pass
