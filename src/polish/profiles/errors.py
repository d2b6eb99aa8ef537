"""Profile management errors."""


class ProfileError(Exception):
    """Base exception for profile operations."""


class MissingProfileError(ProfileError):
    """Raised when a named profile does not exist."""
