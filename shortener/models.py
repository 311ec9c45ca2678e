"""Domain model for a short URL mapping."""

from dataclasses import dataclass

__all__ = ["ShortURL"]


@dataclass(frozen=True)
class ShortURL:
    """A short code bound to its destination.

    Attributes:
        code: Short code, the path segment clients resolve.
        target: Absolute ``http``/``https`` destination URL.
        ttl: Expiry in seconds, ``None`` when the mapping never expires.
    """

    code: str
    target: str
    ttl: int | None = None
