"""
Custom exceptions for dotsync.

Every per-tool failure raised inside a task derives from DotsyncError so that the
task runner can log it and move on to the next tool. HomeDirectoryError is the
only error that is allowed to abort a whole run.
"""


class DotsyncError(Exception):
    """
    Base exception for all dotsync errors.

    All custom exceptions in dotsync should inherit from this class
    to allow for easy catching of all application-specific errors.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(DotsyncError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Invalid configuration values
    - Configuration file parsing errors
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


# =============================================================================
# Environment Errors
# =============================================================================


class HomeDirectoryError(DotsyncError):
    """Raised when the user's home directory cannot be determined. Fatal."""

    pass


class CommandError(DotsyncError):
    """
    Exception raised when an external command cannot be run or exits non-zero.

    Attributes:
        command: The executable that was invoked.
        returncode: Exit status, or None when the process never started.
    """

    def __init__(
        self,
        message: str,
        command: str | None = None,
        returncode: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.command = command
        self.returncode = returncode


# =============================================================================
# Cache Errors
# =============================================================================


class CacheError(DotsyncError):
    """Base exception for HTTP response cache errors."""

    pass


class CacheNotFoundError(CacheError):
    """
    Raised when no usable cache entry exists for a URL.

    A cache miss is an expected outcome; callers handle it by fetching.
    """

    def __init__(self, url: str, details: str | None = None) -> None:
        super().__init__(f"No cached response for {url}", details)
        self.url = url


# =============================================================================
# GitHub Errors
# =============================================================================


class GitHubError(DotsyncError):
    """
    Base exception for GitHub release resolution errors.

    Attributes:
        owner: Repository owner.
        repo: Repository name.
    """

    def __init__(
        self,
        message: str,
        owner: str | None = None,
        repo: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.owner = owner
        self.repo = repo


class EmptyReleasesError(GitHubError):
    """Raised when a repository has published no releases at all."""

    def __init__(self, owner: str, repo: str) -> None:
        super().__init__(f"No releases found for {owner}/{repo}", owner, repo)


class ValidReleaseNotFoundError(GitHubError):
    """Raised when every release is a draft, a prerelease, or has no assets."""

    def __init__(self, owner: str, repo: str) -> None:
        super().__init__(
            f"No installable release found for {owner}/{repo}", owner, repo
        )


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(DotsyncError):
    """
    Base exception for download-related errors.

    Attributes:
        url: The URL that was being requested when the error occurred.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url


class NetworkError(DownloadError):
    """
    Exception raised for transport or HTTP failures.

    This includes:
    - Connection timeouts
    - DNS resolution failures
    - HTTP error status codes after retries
    """

    pass


# =============================================================================
# Install Errors
# =============================================================================


class InstallError(DotsyncError):
    """
    Exception raised for filesystem failures while placing an artifact.

    Attributes:
        path: The path being written, extracted or chmod-ed.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


class ArchiveFormatError(InstallError):
    """Raised when an asset is expected to be an archive but has an unknown suffix."""

    pass
