# purefitz - MuPDF bindings without a compiled extension
#
# Python bindings for libmupdf, loaded at runtime through ctypes.

from purefitz._content_types import content_type
from purefitz.config import Config
from purefitz.document import DEFAULT_DPI, METADATA_KEYS, Document, open
from purefitz.exceptions import (
    ConfigError,
    CreateBufferError,
    CreateContextError,
    CreateDeviceError,
    CreatePixmapError,
    CreateTextPageError,
    EmptyInputError,
    FitzError,
    LoadPageError,
    NativeLibraryError,
    NativeResourceError,
    NeedsPasswordError,
    NoSuchFileError,
    OpenDocumentError,
    OpenMemoryError,
    PageMissingError,
    PixmapSamplesError,
    UnrecognizedFormatError,
)
from purefitz.types import Link, OutlineEntry, Rect

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConfigError",
    "CreateBufferError",
    "CreateContextError",
    "CreateDeviceError",
    "CreatePixmapError",
    "CreateTextPageError",
    "DEFAULT_DPI",
    "Document",
    "EmptyInputError",
    "FitzError",
    "Link",
    "LoadPageError",
    "METADATA_KEYS",
    "NativeLibraryError",
    "NativeResourceError",
    "NeedsPasswordError",
    "NoSuchFileError",
    "OpenDocumentError",
    "OpenMemoryError",
    "OutlineEntry",
    "PageMissingError",
    "PixmapSamplesError",
    "Rect",
    "UnrecognizedFormatError",
    "content_type",
    "open",
    "__version__",
]
