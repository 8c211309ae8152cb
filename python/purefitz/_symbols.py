"""Registry of the libmupdf entry points used by purefitz.

Each entry maps an exported symbol to its calling-convention descriptor: the
ctypes result type and argument types. By-value structures appear as their
``Structure`` subclass so ctypes passes and returns them in registers or on
the stack exactly as the C compiler would.
"""

from __future__ import annotations

from ctypes import POINTER, c_char_p, c_float, c_int, c_size_t, c_ubyte, c_void_p
from typing import Any, NamedTuple

from ._ctypes_types import (
    FzBufferPtr,
    FzColorParams,
    FzColorspacePtr,
    FzContextPtr,
    FzCookie,
    FzDevicePtr,
    FzDocumentPtr,
    FzIRect,
    FzLinkPtr,
    FzMatrix,
    FzOutlinePtr,
    FzOutputPtr,
    FzPagePtr,
    FzPixmapPtr,
    FzRect,
    FzSeparationsPtr,
    FzStextOptions,
    FzStextPagePtr,
    FzStreamPtr,
)


class Signature(NamedTuple):
    restype: Any
    argtypes: tuple[Any, ...]


def _sig(restype: Any, *argtypes: Any) -> Signature:
    return Signature(restype, argtypes)


SYMBOLS: dict[str, Signature] = {
    # context
    "fz_new_context_imp": _sig(FzContextPtr, c_void_p, c_void_p, c_size_t, c_char_p),
    "fz_drop_context": _sig(None, FzContextPtr),
    "fz_register_document_handlers": _sig(None, FzContextPtr),
    # streams and documents
    "fz_open_memory": _sig(FzStreamPtr, FzContextPtr, POINTER(c_ubyte), c_size_t),
    "fz_drop_stream": _sig(None, FzContextPtr, FzStreamPtr),
    "fz_open_document": _sig(FzDocumentPtr, FzContextPtr, c_char_p),
    "fz_open_document_with_stream": _sig(
        FzDocumentPtr, FzContextPtr, c_char_p, FzStreamPtr
    ),
    "fz_needs_password": _sig(c_int, FzContextPtr, FzDocumentPtr),
    "fz_authenticate_password": _sig(c_int, FzContextPtr, FzDocumentPtr, c_char_p),
    "fz_drop_document": _sig(None, FzContextPtr, FzDocumentPtr),
    "fz_count_pages": _sig(c_int, FzContextPtr, FzDocumentPtr),
    "fz_lookup_metadata": _sig(
        c_int, FzContextPtr, FzDocumentPtr, c_char_p, c_char_p, c_size_t
    ),
    "fz_load_outline": _sig(FzOutlinePtr, FzContextPtr, FzDocumentPtr),
    "fz_drop_outline": _sig(None, FzContextPtr, FzOutlinePtr),
    # pages
    "fz_load_page": _sig(FzPagePtr, FzContextPtr, FzDocumentPtr, c_int),
    "fz_drop_page": _sig(None, FzContextPtr, FzPagePtr),
    "fz_bound_page": _sig(FzRect, FzContextPtr, FzPagePtr),
    "fz_run_page_contents": _sig(
        None, FzContextPtr, FzPagePtr, FzDevicePtr, FzMatrix, POINTER(FzCookie)
    ),
    "fz_load_links": _sig(FzLinkPtr, FzContextPtr, FzPagePtr),
    "fz_drop_link": _sig(None, FzContextPtr, FzLinkPtr),
    # geometry
    "fz_scale": _sig(FzMatrix, c_float, c_float),
    "fz_transform_rect": _sig(FzRect, FzRect, FzMatrix),
    "fz_round_rect": _sig(FzIRect, FzRect),
    # pixmaps
    "fz_device_rgb": _sig(FzColorspacePtr, FzContextPtr),
    "fz_new_pixmap_with_bbox": _sig(
        FzPixmapPtr, FzContextPtr, FzColorspacePtr, FzIRect, FzSeparationsPtr, c_int
    ),
    "fz_clear_pixmap_with_value": _sig(None, FzContextPtr, FzPixmapPtr, c_int),
    "fz_pixmap_samples": _sig(POINTER(c_ubyte), FzContextPtr, FzPixmapPtr),
    "fz_pixmap_stride": _sig(c_int, FzContextPtr, FzPixmapPtr),
    "fz_drop_pixmap": _sig(None, FzContextPtr, FzPixmapPtr),
    "fz_new_buffer_from_pixmap_as_png": _sig(
        FzBufferPtr, FzContextPtr, FzPixmapPtr, FzColorParams
    ),
    # devices
    "fz_new_draw_device": _sig(FzDevicePtr, FzContextPtr, FzMatrix, FzPixmapPtr),
    "fz_new_stext_device": _sig(
        FzDevicePtr, FzContextPtr, FzStextPagePtr, POINTER(FzStextOptions)
    ),
    "fz_new_svg_device": _sig(
        FzDevicePtr, FzContextPtr, FzOutputPtr, c_float, c_float, c_int, c_int
    ),
    "fz_enable_device_hints": _sig(None, FzContextPtr, FzDevicePtr, c_int),
    "fz_close_device": _sig(None, FzContextPtr, FzDevicePtr),
    "fz_drop_device": _sig(None, FzContextPtr, FzDevicePtr),
    # structured text
    "fz_new_stext_page": _sig(FzStextPagePtr, FzContextPtr, FzRect),
    "fz_drop_stext_page": _sig(None, FzContextPtr, FzStextPagePtr),
    "fz_new_buffer_from_stext_page": _sig(FzBufferPtr, FzContextPtr, FzStextPagePtr),
    "fz_print_stext_page_as_html": _sig(
        None, FzContextPtr, FzOutputPtr, FzStextPagePtr, c_int
    ),
    "fz_print_stext_header_as_html": _sig(None, FzContextPtr, FzOutputPtr),
    "fz_print_stext_trailer_as_html": _sig(None, FzContextPtr, FzOutputPtr),
    # buffers and outputs
    "fz_new_buffer": _sig(FzBufferPtr, FzContextPtr, c_size_t),
    "fz_buffer_storage": _sig(
        c_size_t, FzContextPtr, FzBufferPtr, POINTER(POINTER(c_ubyte))
    ),
    "fz_drop_buffer": _sig(None, FzContextPtr, FzBufferPtr),
    "fz_new_output_with_buffer": _sig(FzOutputPtr, FzContextPtr, FzBufferPtr),
    "fz_close_output": _sig(None, FzContextPtr, FzOutputPtr),
    "fz_drop_output": _sig(None, FzContextPtr, FzOutputPtr),
}

__all__ = ["SYMBOLS", "Signature"]
