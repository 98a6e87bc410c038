"""
Exceptions raised by the data access layer and services.

Routes translate these into HTTP errors; nothing here is retried.
"""

from __future__ import annotations


class FanslinkError(Exception):
    """Base class for errors raised by fanslink."""


class LinkValidationError(FanslinkError, ValueError):
    """A link could not be created or changed because its fields are invalid."""


class DocumentNotFoundError(FanslinkError):
    """The addressed document does not exist in the store."""

    def __init__(self, path: str):
        super().__init__(f"Document does not exist: {path}")
        self.path = path


class UsernameTakenError(FanslinkError):
    def __init__(self, username: str):
        super().__init__(f"Username is already taken: {username}")
        self.username = username


class BackendError(FanslinkError):
    """A remote store, storage or auth operation failed."""


class ImageFetchError(FanslinkError):
    """A remote image could not be fetched or is not an image."""


class InvalidTokenError(FanslinkError):
    """The bearer token could not be verified."""


class InvalidImageError(FanslinkError, ValueError):
    """Uploaded bytes are not a readable image."""
