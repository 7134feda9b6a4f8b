"""
Custom exceptions for refpack.

Every failure raised by the catalog fetcher, version resolver, transcoder and
delivery step is a subclass of RefpackError. Each family carries a `stage`
attribute naming the pipeline step that failed, so front-ends can report
where things went wrong without inspecting the concrete class.
"""


class RefpackError(Exception):
    """
    Base exception for all refpack errors.

    All custom exceptions in refpack should inherit from this class
    to allow for easy catching of all application-specific errors.
    """

    stage = "refpack"

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


class ConfigurationError(RefpackError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Unreadable configuration files
    - Configuration values of the wrong type
    """

    stage = "config"


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when a configuration value fails validation."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: object = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


# =============================================================================
# Release Catalog Errors
# =============================================================================


class CatalogError(RefpackError):
    """Base exception for failures while retrieving the release catalog."""

    stage = "fetch"


class FetchFailed(CatalogError):
    """
    Exception raised when the catalog could not be fetched and no cache could stand in.

    Attributes:
        status: HTTP status code of the failed response, if one was received.
        timed_out: Whether the request hit the wall-clock timeout.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        timed_out: bool = False,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        """
        Initialize the fetch failure.

        Args:
            message: The primary error message.
            status: HTTP status code, when the server answered.
            timed_out: True when the request timed out.
            url: The catalog URL that was requested.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.status = status
        self.timed_out = timed_out
        self.url = url


class CacheUnavailable(CatalogError):
    """Exception raised when the server answered 'not modified' but nothing is cached."""

    pass


# =============================================================================
# Resolution Errors
# =============================================================================


class ResolutionError(RefpackError):
    """Base exception for failures while turning the catalog into selectable versions."""

    stage = "resolve"


class NoQualifyingReleases(ResolutionError):
    """Exception raised when no release tag survives pattern and prefix filtering."""

    def __init__(
        self,
        message: str = "Could not find any nightly numeric releases",
        prefix: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.prefix = prefix


class SelectionError(ResolutionError):
    """Exception raised when a version choice is outside the presented list."""

    def __init__(
        self, message: str, index: int | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.index = index


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(RefpackError):
    """
    Base exception for release asset download errors.

    Attributes:
        url: The URL that was being downloaded when the error occurred.
    """

    stage = "download"

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
    Exception raised for network-related download failures.

    This includes:
    - Connection timeouts
    - DNS resolution failures
    - Connection refused errors
    - SSL/TLS errors
    """

    pass


class HTTPError(DownloadError):
    """
    Exception raised when the asset server answers with an error status.

    Attributes:
        status_code: The HTTP status code returned by the server.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, url, details)
        self.status_code = status_code


# =============================================================================
# Transcode Errors
# =============================================================================


class TranscodeError(RefpackError):
    """
    Base exception for archive transcoding errors.

    Attributes:
        archive_path: Path to the archive being read or written.
    """

    stage = "transcode"

    def __init__(
        self,
        message: str,
        archive_path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.archive_path = archive_path


class SourceOpenError(TranscodeError):
    """Exception raised when the source archive cannot be opened or is not a zip."""

    pass


class DestCreateError(TranscodeError):
    """Exception raised when the destination archive cannot be created."""

    pass


class EntryError(TranscodeError):
    """
    Base exception for failures tied to a single archive entry.

    Attributes:
        entry_name: Stored path of the entry that failed.
    """

    def __init__(
        self,
        message: str,
        entry_name: str,
        archive_path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, archive_path, details)
        self.entry_name = entry_name


class EntryReadError(EntryError):
    """Exception raised when a source entry cannot be opened for reading."""

    pass


class EntryWriteError(EntryError):
    """Exception raised when a destination entry cannot be created."""

    pass


class CopyError(EntryError):
    """Exception raised when streaming an entry's bytes fails part way."""

    pass


class FinalizeError(TranscodeError):
    """Exception raised when the destination central directory cannot be written."""

    pass


# =============================================================================
# Delivery Errors
# =============================================================================


class DeliveryError(RefpackError):
    """
    Exception raised when the finished artifact cannot be copied into place.

    Attributes:
        path: The destination path that could not be written.
    """

    stage = "delivery"

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path
