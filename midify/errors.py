from __future__ import annotations

from typing import Optional


class MidifyError(ValueError):
    """Base error for MIDI / WAVE parsing and rendering."""

    def __init__(self, message: str, offset: Optional[int] = None) -> None:
        self.offset = offset
        if offset is not None:
            message = f"{message} at byte 0x{offset:X}"
        super().__init__(message)


class MalformedHeaderError(MidifyError):
    """Raised when a chunk has the wrong magic, tag or declared size."""


class MalformedEventError(MidifyError):
    """Raised when an event payload does not match its declared layout."""


class UnsupportedFeatureError(MidifyError):
    """Raised for valid files using features this library does not handle."""


class UnsupportedSysExError(UnsupportedFeatureError):
    """Raised when a track contains a System Exclusive event."""


class UnknownEventTypeError(MidifyError):
    """Raised when a status byte matches no channel-voice category."""


class TruncatedStreamError(MidifyError, EOFError):
    """Raised when the stream ends before a field is complete."""
