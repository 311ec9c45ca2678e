"""Short code allocation: validate a user-supplied code or generate one.

The allocator only *proposes* a code. It never checks whether the code is
free; uniqueness is decided by the mapping store's atomic create-if-absent
(see ``shortener.store``).

Flow Diagram — allocate()
=========================
::
    ┌──────────────┐
    │ allocate(    │
    │  custom_code)│
    └──────┬───────┘
           ▼
    CUSTOM CODE GIVEN?
    ┌──────┴───────┐
    │ YES          │ NO
    ▼              ▼
┌──────────────┐  ┌──────────────┐
│ 3-20 chars   │  │ 6 chars from │
│ of           │  │ [a-zA-Z0-9]  │
│ [a-zA-Z0-9_-]│  │ (os.urandom) │
└──────┬───────┘  └──────┬───────┘
  NO / YES               │
  ▼      ▼               ▼
 InvalidCodeError  code  code

Key Behaviours
===============
- Generated codes are drawn with nanoid, which reads ``os.urandom`` and
  picks every character uniformly from the alphabet.
- A failing entropy source raises ``EntropyError``; there is no fallback to
  a predictable generator.
- Validation does not touch the store.

Functions:
    is_valid_code():  Length and charset check for user-supplied codes.
    generate_short_code():  Secure random code from the 62-char alphabet.
    allocate():  Validate ``custom_code`` or generate a fresh code.
"""

import re

from nanoid import generate

from shortener.exceptions import EntropyError, InvalidCodeError

__all__ = [
    "ALPHABET",
    "DEFAULT_CODE_LENGTH",
    "MIN_CODE_LENGTH",
    "MAX_CODE_LENGTH",
    "is_valid_code",
    "generate_short_code",
    "allocate",
]

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DEFAULT_CODE_LENGTH = 6
MIN_CODE_LENGTH = 3
MAX_CODE_LENGTH = 20

_CODE_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def is_valid_code(code: str) -> bool:
    if not MIN_CODE_LENGTH <= len(code) <= MAX_CODE_LENGTH:
        return False
    return _CODE_PATTERN.fullmatch(code) is not None


def generate_short_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    try:
        return generate(ALPHABET, length)
    except (OSError, NotImplementedError) as exc:
        raise EntropyError(f"secure random source unavailable: {exc}") from exc


def allocate(custom_code: str | None = None, length: int = DEFAULT_CODE_LENGTH) -> str:
    """Return a candidate short code.

    Args:
        custom_code: Code requested by the client. ``None`` or ``""`` means
            "generate one for me".
        length: Length of generated codes.

    Returns:
        str: ``custom_code`` unchanged if it is well-formed, otherwise a
        freshly generated code.

    Raises:
        InvalidCodeError: If ``custom_code`` is given and malformed.
        EntropyError: If the secure random source fails.
    """
    if custom_code:
        if not is_valid_code(custom_code):
            raise InvalidCodeError()
        return custom_code
    return generate_short_code(length)
