# errors.py
from typing import Optional


class OggOpusError(ValueError):
    """Base class for every error raised while parsing an Ogg Opus stream."""


class UnexpectedEndOfInput(OggOpusError, EOFError):
    """The byte source ended before the requested amount of bytes was read."""

    def __init__(self, expected: int, got: int, message: Optional[str] = None) -> None:
        self.expected: int = expected
        self.got: int = got
        super().__init__(message or f"Only read {got} bytes, expected {expected}.")


class InvalidContainerPage(OggOpusError):
    """The capture pattern at the start of a page is not 'OggS'."""


class InvalidHeaderSignature(OggOpusError):
    """A header payload does not start with its 8 byte magic."""


class InvalidEncoding(OggOpusError):
    """A vendor string or user comment is not valid UTF-8."""


class CommentHeaderTooLarge(OggOpusError):
    def __init__(self, limit: int, size: int) -> None:
        self.limit: int = limit
        self.size: int = size
        super().__init__(f"Comment header exceeds {limit} bytes (already gathered {size} bytes).")


class FieldLengthExceedsRemaining(OggOpusError):
    def __init__(self, field_name: str, length: int, remaining: int) -> None:
        self.field_name: str = field_name
        self.length: int = length
        self.remaining: int = remaining
        super().__init__(
            f"{field_name} claims {length} bytes but only {remaining} bytes of the header remain."
        )


class HeadersNotFound(OggOpusError):
    """The input ended (or went astray) before both Opus headers were located."""
