"""
Custom exceptions for sleet.

All exceptions inherit from SleetError so the CLI can report them in one place.
"""

from typing import Optional


class SleetError(Exception):
    """Base exception for all sleet errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(SleetError):
    """Invalid or missing local settings."""

    def __init__(self, message: str, config_file: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.config_file = config_file


class FeedNotInitializedError(SleetError):
    """The feed is missing the files written by init."""


class FeedLockError(SleetError):
    """The feed lock could not be obtained before the timeout."""


class DataIntegrityError(SleetError):
    """
    A feed document or package is malformed.

    Never retried, a corrupt feed or package must surface immediately.
    """


class DuplicatePackageError(SleetError):
    """The same identity appears more than once in a batch."""


class PackageExistsError(SleetError):
    """A pushed package already exists on the feed."""


class PackageNotFoundError(SleetError):
    """A package requested for removal does not exist on the feed."""

    def __init__(self, package_id: str, version: Optional[str] = None, details: Optional[dict] = None):
        target = f"{package_id} {version}" if version else package_id
        super().__init__(f"Unable to find {target}", details=details)
        self.package_id = package_id
        self.version = version


class FileNotFoundInFeedError(SleetError):
    """A required feed file does not exist."""

    def __init__(self, uri: str, details: Optional[dict] = None):
        super().__init__(f"File not found: {uri}", details=details)
        self.uri = uri


class ReadOnlyFeedError(SleetError):
    """A write was attempted against a read-only backend."""
