"""
Error types raised by the short-link core.

Services raise these; the HTTP layer maps them to status codes
(see shortlink_app/api/errors.py).
"""


class ShortLinkError(Exception):
    """Base class for every error the core raises on purpose."""


class ValidationError(ShortLinkError):
    """Malformed input, or a short code that is already taken."""


class NotFoundError(ShortLinkError):
    """The requested code or link does not exist."""


class NotOwnerError(ShortLinkError):
    """A link operation was attempted by someone other than its owner."""


class StorageError(ShortLinkError):
    """Base class for failures reported by the record store."""


class StorageUnavailableError(StorageError):
    """Timeout, transport or operational failure talking to storage."""


class DuplicateRecordError(StorageError):
    """An insert violated a uniqueness constraint."""


class MissingReferenceError(StorageError):
    """An insert referenced a parent record that does not exist."""


class UniqueCodeError(ShortLinkError):
    """The unique-code service could not produce a code."""


class ShortCodeTakenError(ValidationError):
    """The alias (or generated code) is already used by another link."""
