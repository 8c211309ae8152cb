"""
Exceptions raised by purefitz.

Input, native-resource and authentication failures are reported from the
operation that detected them. NativeLibraryError is different: it is raised
once, while the native dispatch table is built, and means the process cannot
use the library at all.
"""

from __future__ import annotations


class FitzError(Exception):
    """Base exception for all purefitz errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "fitz: unknown error"


class NativeLibraryError(FitzError, OSError):
    """Raised when libmupdf or one of its symbols cannot be loaded."""

    @property
    def default_message(self) -> str:
        return "fitz: cannot load native library"


class ConfigError(FitzError, ValueError):
    """Raised for malformed configuration values."""

    @property
    def default_message(self) -> str:
        return "fitz: invalid configuration"


class NoSuchFileError(FitzError, FileNotFoundError):
    @property
    def default_message(self) -> str:
        return "fitz: no such file"


class EmptyInputError(FitzError, ValueError):
    @property
    def default_message(self) -> str:
        return "fitz: empty input"


class UnrecognizedFormatError(FitzError, ValueError):
    """Raised when in-memory input matches no known document format."""

    @property
    def default_message(self) -> str:
        return "fitz: unrecognized format"


class PageMissingError(FitzError, IndexError):
    @property
    def default_message(self) -> str:
        return "fitz: page missing"


class NativeResourceError(FitzError):
    """Raised when a native constructor returns a NULL handle."""

    @property
    def default_message(self) -> str:
        return "fitz: cannot allocate native resource"


class CreateContextError(NativeResourceError):
    @property
    def default_message(self) -> str:
        return "fitz: cannot create context"


class OpenDocumentError(NativeResourceError):
    @property
    def default_message(self) -> str:
        return "fitz: cannot open document"


class OpenMemoryError(NativeResourceError):
    @property
    def default_message(self) -> str:
        return "fitz: cannot open memory"


class LoadPageError(NativeResourceError):
    @property
    def default_message(self) -> str:
        return "fitz: cannot load page"


class CreatePixmapError(NativeResourceError):
    @property
    def default_message(self) -> str:
        return "fitz: cannot create pixmap"


class PixmapSamplesError(NativeResourceError):
    @property
    def default_message(self) -> str:
        return "fitz: cannot get pixmap samples"


class CreateDeviceError(NativeResourceError):
    @property
    def default_message(self) -> str:
        return "fitz: cannot create device"


class CreateTextPageError(NativeResourceError):
    @property
    def default_message(self) -> str:
        return "fitz: cannot create structured text page"


class CreateBufferError(NativeResourceError):
    @property
    def default_message(self) -> str:
        return "fitz: cannot create buffer"


class NeedsPasswordError(FitzError):
    """Raised when a supplied password is rejected by an encrypted document.

    The document has already been closed. Opening without a password
    succeeds instead and leaves ``Document.needs_password`` set.
    """

    @property
    def default_message(self) -> str:
        return "fitz: document needs password"
