"""Exceptions raised by the URL shortener core and mapped to HTTP responses.

Every exception carries the HTTP status it is reported with and a message
that is safe to show to the client. Server-side failures use a generic
message; the underlying cause is chained (``raise ... from exc``) and only
ever logged.

Classes:
    ShortenerError:
        Base class for all service errors.

    InvalidInputError:
        Malformed destination URL or request body (400).

    InvalidCodeError:
        User-supplied short code fails length or charset validation (400).

    CodeTakenError:
        User-supplied short code already maps to a URL (409).

    MappingNotFoundError:
        Short code has no live mapping, either never created or expired (404).

    AllocationExhaustedError:
        Every generated-code attempt collided (500).

    StoreError:
        The mapping store failed for a reason other than a normal miss (500).

    EntropyError:
        The secure random source failed while generating a code (500).

    StartupFailure:
        The mapping store is unreachable at boot; the process must not start.

Example:
    >>> from shortener.exceptions import CodeTakenError
    >>> raise CodeTakenError()
    Traceback (most recent call last):
        ...
    shortener.exceptions.CodeTakenError: short URL already taken
"""

__all__ = [
    "ShortenerError",
    "InvalidInputError",
    "InvalidCodeError",
    "CodeTakenError",
    "MappingNotFoundError",
    "AllocationExhaustedError",
    "StoreError",
    "EntropyError",
    "StartupFailure",
]

INVALID_CODE_MESSAGE = (
    "invalid custom code, must be 3-20 characters and contain only "
    "letters, numbers, hyphens, and underscores"
)
INTERNAL_ERROR_MESSAGE = "internal server error"


class ShortenerError(Exception):
    """Base class for URL shortener errors."""

    status_code: int = 500
    default_message: str = INTERNAL_ERROR_MESSAGE

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(ShortenerError):
    status_code = 400
    default_message = "invalid request"


class InvalidCodeError(InvalidInputError):
    default_message = INVALID_CODE_MESSAGE


class CodeTakenError(ShortenerError):
    status_code = 409
    default_message = "short URL already taken"


class MappingNotFoundError(ShortenerError):
    status_code = 404
    default_message = "short URL not found"


class AllocationExhaustedError(ShortenerError):
    """Raised when the bounded generated-code loop runs out of attempts.

    At 62^6 combinations this indicates store misbehavior, not bad luck,
    so it is reported as a server error.
    """

    default_message = "failed to generate unique code"


class StoreError(ShortenerError):
    """Raised when the mapping store fails.

    e.g. connection refused, timeouts, protocol errors, OOM.
    The message passed in is for logs; clients always see the generic one.
    """

    pass


class EntropyError(ShortenerError):
    """Raised when the secure random source cannot produce bytes."""

    pass


class StartupFailure(ShortenerError):
    """Raised from the application lifespan when the store is unreachable."""

    pass
