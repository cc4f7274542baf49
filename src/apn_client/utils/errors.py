from __future__ import annotations


class PortalError(Exception):
    """
    Base class for every error raised by the APN client.

    Keeps the underlying exception on `original_exception` so callers can
    still tell a network failure from a markup change.
    """

    def __init__(self, message: str, original_exception: BaseException | None = None) -> None:
        super().__init__(message)
        self.original_exception = original_exception


class InvalidCredentialsError(PortalError):
    """Raised when username or password is missing. No browser work has happened yet."""


class AuthenticationFailedError(PortalError):
    """Raised when anything in the login sequence fails."""


class NotAuthenticatedError(PortalError):
    """Raised when a workflow runs before authenticate() established a session."""


class AmbiguousOrNotFoundError(PortalError):
    """
    Raised when a lookup matched zero or several targets.

    No mutating action has been taken when this is raised.
    """

    def __init__(self, query: str, count: int) -> None:
        super().__init__(
            f'Expected 1 result for "{query}", got {count}. '
            "Failing safely, no changes were made."
        )
        self.query = query
        self.count = count


class DownloadTooLargeError(PortalError):
    """Raised when an export exceeds the configured size ceiling."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Export is {size} bytes, above the {limit} byte limit.")
        self.size = size
        self.limit = limit


class BrowserLaunchError(PortalError):
    """Raised when Playwright cannot start the requested browser."""
