"""Custom exceptions for the v0-cli application."""


class V0Error(Exception):
    """Base exception for all v0-cli errors."""

    def __init__(self, message: str = "An error occurred with v0 CLI") -> None:
        self.message = message
        super().__init__(self.message)


class StorageError(V0Error):
    """Raised when the session files can't be written or removed."""

    def __init__(self, message: str = "Failed to access the local session store") -> None:
        super().__init__(message)


class NoBrowserAvailableError(V0Error):
    """Raised when no browser could be opened for the login page."""

    def __init__(
        self, message: str = "No browser available. Open the login page manually and use 'v0 import'."
    ) -> None:
        super().__init__(message)


class LoginCancelledError(V0Error):
    """Raised when the user cancels a login in progress."""

    def __init__(self, message: str = "Login cancelled") -> None:
        super().__init__(message)


class ManualInputError(V0Error):
    """Raised when pasted cookie text can't be parsed."""

    def __init__(self, message: str = "No cookies could be parsed from the input") -> None:
        super().__init__(message)


class NotLoggedInError(V0Error):
    """Raised when an authenticated call is made without a valid session."""

    def __init__(self, message: str = "Not logged in to v0.dev. Run 'v0 login' first.") -> None:
        super().__init__(message)


class SessionExpiredError(V0Error):
    """Raised when v0.dev rejects the stored session (401/403)."""

    def __init__(
        self, message: str = "Session expired. Run 'v0 login' to sign in to v0.dev again."
    ) -> None:
        super().__init__(message)


class ChatError(V0Error):
    """Raised when a chat request fails."""

    def __init__(self, message: str = "Chat request failed") -> None:
        super().__init__(message)
