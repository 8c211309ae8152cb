"""C-layout mirrors of the fitz structures that cross the ctypes boundary.

Structures passed or returned by value (FzRect, FzIRect, FzMatrix,
FzColorParams) must match the native layout field for field: ctypes builds
the call frame from ``_fields_`` and a mismatch corrupts the result silently.
List nodes (FzLink, FzOutline) are only read through pointers, and only the
leading fields this package reads are relied upon.
"""

from __future__ import annotations

from ctypes import (
    POINTER,
    Structure,
    c_char_p,
    c_float,
    c_int,
    c_uint8,
    c_uint64,
    c_void_p,
)

# Opaque handles. Distinct aliases keep the signatures readable; ctypes
# treats them all as pointers.
FzContextPtr = c_void_p
FzDocumentPtr = c_void_p
FzStreamPtr = c_void_p
FzPagePtr = c_void_p
FzColorspacePtr = c_void_p
FzSeparationsPtr = c_void_p
FzPixmapPtr = c_void_p
FzDevicePtr = c_void_p
FzBufferPtr = c_void_p
FzOutputPtr = c_void_p
FzStextPagePtr = c_void_p

FZ_NO_CACHE = 2
FZ_STEXT_PRESERVE_IMAGES = 4
FZ_SVG_TEXT_AS_PATH = 0
FZ_SVG_REUSE_IMAGES = 1

METADATA_BUFFER_SIZE = 256


class FzRect(Structure):
    _fields_ = [
        ("x0", c_float),
        ("y0", c_float),
        ("x1", c_float),
        ("y1", c_float),
    ]

    def __repr__(self) -> str:
        return f"FzRect({self.x0}, {self.y0}, {self.x1}, {self.y1})"


class FzIRect(Structure):
    _fields_ = [
        ("x0", c_int),
        ("y0", c_int),
        ("x1", c_int),
        ("y1", c_int),
    ]

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    def __repr__(self) -> str:
        return f"FzIRect({self.x0}, {self.y0}, {self.x1}, {self.y1})"


class FzMatrix(Structure):
    _fields_ = [
        ("a", c_float),
        ("b", c_float),
        ("c", c_float),
        ("d", c_float),
        ("e", c_float),
        ("f", c_float),
    ]

    def __repr__(self) -> str:
        return f"FzMatrix({self.a}, {self.b}, {self.c}, {self.d}, {self.e}, {self.f})"


class FzColorParams(Structure):
    _fields_ = [
        ("ri", c_uint8),
        ("bp", c_uint8),
        ("op", c_uint8),
        ("opm", c_uint8),
    ]


class FzLocation(Structure):
    _fields_ = [
        ("chapter", c_int),
        ("page", c_int),
    ]


class FzCookie(Structure):
    _fields_ = [
        ("abort", c_int),
        ("progress", c_int),
        ("progress_max", c_uint64),
        ("errors", c_int),
        ("incomplete", c_int),
    ]


class FzStextOptions(Structure):
    _fields_ = [
        ("flags", c_int),
        ("scale", c_float),
    ]


class FzLink(Structure):
    pass


FzLink._fields_ = [
    ("refs", c_int),
    ("next", POINTER(FzLink)),
    ("rect", FzRect),
    ("uri", c_char_p),
    ("set_rect_fn", c_void_p),
    ("set_uri_fn", c_void_p),
    ("drop", c_void_p),
]


class FzOutline(Structure):
    pass


FzOutline._fields_ = [
    ("refs", c_int),
    ("title", c_char_p),
    ("uri", c_char_p),
    ("page", FzLocation),
    ("x", c_float),
    ("y", c_float),
    ("next", POINTER(FzOutline)),
    ("down", POINTER(FzOutline)),
    ("is_open", c_int),
]


FzLinkPtr = POINTER(FzLink)
FzOutlinePtr = POINTER(FzOutline)

IDENTITY = FzMatrix(1, 0, 0, 1, 0, 0)
DEFAULT_COLOR_PARAMS = FzColorParams(1, 1, 0, 0)


def decode_cstr(value: bytes | None) -> str:
    """Decode a NUL-terminated C string read through ``c_char_p``."""
    if not value:
        return ""
    return value.decode("utf-8", errors="replace")

