"""Single runtime boundary for native libmupdf symbols.

The shared library is opened, every entry point in ``SYMBOLS`` is resolved
and typed, and the ABI version string is negotiated once per process. The
resulting ``NativeAPI`` is memoized and never mutated afterwards; every
native call in the package goes through one of its typed wrapper methods.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import sys
import threading
from ctypes import POINTER, c_ubyte
from types import SimpleNamespace
from typing import Any

from ._ctypes_types import (
    DEFAULT_COLOR_PARAMS,
    METADATA_BUFFER_SIZE,
    FzColorParams,
    FzCookie,
    FzIRect,
    FzMatrix,
    FzRect,
    FzStextOptions,
)
from ._symbols import SYMBOLS, Signature
from .config import Config
from .exceptions import NativeLibraryError

logger = logging.getLogger(__name__)

_LIBRARY_NAMES = {
    "darwin": "libmupdf.dylib",
    "win32": "libmupdf.dll",
}

_NATIVE_API: NativeAPI | None = None
_NATIVE_ERROR: NativeLibraryError | None = None
_NATIVE_LOCK = threading.Lock()


def library_name(platform: str | None = None) -> str:
    """Return the shared library file name for ``platform``."""
    platform = platform or sys.platform
    return _LIBRARY_NAMES.get(platform, "libmupdf.so")


def load_library(name: str | None = None) -> ctypes.CDLL:
    """Open libmupdf and return the ctypes handle.

    Args:
        name: Explicit path or soname. Defaults to the platform name, then to
            whatever ``ctypes.util.find_library("mupdf")`` reports.

    Raises:
        NativeLibraryError: The library cannot be loaded.
    """
    candidates = [name] if name else [library_name()]
    if not name:
        found = ctypes.util.find_library("mupdf")
        if found and found not in candidates:
            candidates.append(found)

    mode = getattr(ctypes, "RTLD_GLOBAL", 0)
    errors = []
    for candidate in candidates:
        try:
            lib = ctypes.CDLL(candidate, mode=mode)
        except OSError as exc:
            errors.append(f"{candidate}: {exc}")
            continue
        logger.debug("loaded native library %s", candidate)
        return lib
    raise NativeLibraryError(f"cannot load library: {'; '.join(errors)}")


def candidate_versions(version: str) -> list[str]:
    """Return ABI version strings to try, configured one first.

    Nearby releases share the same major.minor, so the remaining candidates
    walk the patch number down from 10 to 0.
    """
    major_minor = ".".join(version.split(".")[:2])
    candidates = [version]
    for patch in range(10, -1, -1):
        candidate = f"{major_minor}.{patch}"
        if candidate not in candidates:
            candidates.append(candidate)
    return candidates


class NativeAPI:
    """Typed wrappers over the resolved libmupdf entry points.

    Construction resolves every symbol and attaches its descriptor, so a
    missing entry point fails here rather than at the first call.
    """

    def __init__(self, lib: Any, symbols: dict[str, Signature] | None = None) -> None:
        self._lib = lib
        self._version: str | None = None
        resolved = {}
        for name, signature in (symbols or SYMBOLS).items():
            try:
                fn = getattr(lib, name)
            except AttributeError as exc:
                raise NativeLibraryError(f"cannot resolve symbol {name}") from exc
            fn.restype = signature.restype
            fn.argtypes = list(signature.argtypes)
            resolved[name] = fn
        self._c = SimpleNamespace(**resolved)

    @property
    def version(self) -> str:
        if self._version is None:
            raise NativeLibraryError("native version has not been negotiated")
        return self._version

    def negotiate_version(self, version: str, max_store: int) -> str:
        """Find an ABI version string the loaded library accepts.

        Raises:
            NativeLibraryError: No candidate produced a context.
        """
        for candidate in candidate_versions(version):
            ctx = self._c.fz_new_context_imp(None, None, max_store, candidate.encode())
            if not ctx:
                continue
            self._c.fz_drop_context(ctx)
            if candidate != version:
                logger.warning(
                    "libmupdf rejected version %s, using %s instead", version, candidate
                )
            self._version = candidate
            return candidate
        raise NativeLibraryError(f"cannot create context for version {version}")

    # context

    def new_context(self, max_store: int) -> int | None:
        return self._c.fz_new_context_imp(None, None, max_store, self.version.encode())

    def drop_context(self, ctx: int) -> None:
        self._c.fz_drop_context(ctx)

    def register_document_handlers(self, ctx: int) -> None:
        self._c.fz_register_document_handlers(ctx)

    # streams and documents

    def open_memory(self, ctx: int, data: Any, size: int) -> int | None:
        return self._c.fz_open_memory(ctx, ctypes.cast(data, POINTER(c_ubyte)), size)

    def drop_stream(self, ctx: int, stream: int) -> None:
        self._c.fz_drop_stream(ctx, stream)

    def open_document(self, ctx: int, filename: str) -> int | None:
        return self._c.fz_open_document(ctx, filename.encode())

    def open_document_with_stream(self, ctx: int, magic: str, stream: int) -> int | None:
        return self._c.fz_open_document_with_stream(ctx, magic.encode(), stream)

    def needs_password(self, ctx: int, doc: int) -> bool:
        return self._c.fz_needs_password(ctx, doc) != 0

    def authenticate_password(self, ctx: int, doc: int, password: str) -> bool:
        return self._c.fz_authenticate_password(ctx, doc, password.encode()) != 0

    def drop_document(self, ctx: int, doc: int) -> None:
        self._c.fz_drop_document(ctx, doc)

    def count_pages(self, ctx: int, doc: int) -> int:
        return self._c.fz_count_pages(ctx, doc)

    def lookup_metadata(self, ctx: int, doc: int, key: str) -> str:
        buf = ctypes.create_string_buffer(METADATA_BUFFER_SIZE)
        self._c.fz_lookup_metadata(ctx, doc, key.encode(), buf, METADATA_BUFFER_SIZE)
        return buf.value.decode("utf-8", errors="replace")

    def load_outline(self, ctx: int, doc: int) -> Any:
        return self._c.fz_load_outline(ctx, doc)

    def drop_outline(self, ctx: int, outline: Any) -> None:
        self._c.fz_drop_outline(ctx, outline)

    # pages

    def load_page(self, ctx: int, doc: int, number: int) -> int | None:
        return self._c.fz_load_page(ctx, doc, number)

    def drop_page(self, ctx: int, page: int) -> None:
        self._c.fz_drop_page(ctx, page)

    def bound_page(self, ctx: int, page: int) -> FzRect:
        return self._c.fz_bound_page(ctx, page)

    def run_page_contents(self, ctx: int, page: int, device: int, ctm: FzMatrix) -> None:
        cookie = FzCookie()
        self._c.fz_run_page_contents(ctx, page, device, ctm, ctypes.pointer(cookie))

    def load_links(self, ctx: int, page: int) -> Any:
        return self._c.fz_load_links(ctx, page)

    def drop_link(self, ctx: int, link: Any) -> None:
        self._c.fz_drop_link(ctx, link)

    # geometry

    def scale(self, sx: float, sy: float) -> FzMatrix:
        return self._c.fz_scale(sx, sy)

    def transform_rect(self, rect: FzRect, matrix: FzMatrix) -> FzRect:
        return self._c.fz_transform_rect(rect, matrix)

    def round_rect(self, rect: FzRect) -> FzIRect:
        return self._c.fz_round_rect(rect)

    # pixmaps

    def device_rgb(self, ctx: int) -> int:
        return self._c.fz_device_rgb(ctx)

    def new_pixmap_with_bbox(self, ctx: int, bbox: FzIRect, alpha: bool = True) -> int | None:
        colorspace = self.device_rgb(ctx)
        return self._c.fz_new_pixmap_with_bbox(ctx, colorspace, bbox, None, int(alpha))

    def clear_pixmap_with_value(self, ctx: int, pixmap: int, value: int) -> None:
        self._c.fz_clear_pixmap_with_value(ctx, pixmap, value)

    def pixmap_samples(self, ctx: int, pixmap: int) -> Any:
        return self._c.fz_pixmap_samples(ctx, pixmap)

    def pixmap_stride(self, ctx: int, pixmap: int) -> int:
        return self._c.fz_pixmap_stride(ctx, pixmap)

    def drop_pixmap(self, ctx: int, pixmap: int) -> None:
        self._c.fz_drop_pixmap(ctx, pixmap)

    def new_buffer_from_pixmap_as_png(
        self, ctx: int, pixmap: int, params: FzColorParams = DEFAULT_COLOR_PARAMS
    ) -> int | None:
        return self._c.fz_new_buffer_from_pixmap_as_png(ctx, pixmap, params)

    # devices

    def new_draw_device(self, ctx: int, ctm: FzMatrix, pixmap: int) -> int | None:
        return self._c.fz_new_draw_device(ctx, ctm, pixmap)

    def new_stext_device(self, ctx: int, stext_page: int, flags: int = 0) -> int | None:
        options = FzStextOptions(flags=flags)
        return self._c.fz_new_stext_device(ctx, stext_page, ctypes.pointer(options))

    def new_svg_device(
        self,
        ctx: int,
        output: int,
        width: float,
        height: float,
        text_format: int,
        reuse_images: int,
    ) -> int | None:
        return self._c.fz_new_svg_device(
            ctx, output, width, height, text_format, reuse_images
        )

    def enable_device_hints(self, ctx: int, device: int, hints: int) -> None:
        self._c.fz_enable_device_hints(ctx, device, hints)

    def close_device(self, ctx: int, device: int) -> None:
        self._c.fz_close_device(ctx, device)

    def drop_device(self, ctx: int, device: int) -> None:
        self._c.fz_drop_device(ctx, device)

    # structured text

    def new_stext_page(self, ctx: int, mediabox: FzRect) -> int | None:
        return self._c.fz_new_stext_page(ctx, mediabox)

    def drop_stext_page(self, ctx: int, stext_page: int) -> None:
        self._c.fz_drop_stext_page(ctx, stext_page)

    def new_buffer_from_stext_page(self, ctx: int, stext_page: int) -> int | None:
        return self._c.fz_new_buffer_from_stext_page(ctx, stext_page)

    def print_stext_page_as_html(self, ctx: int, output: int, stext_page: int, page_id: int) -> None:
        self._c.fz_print_stext_page_as_html(ctx, output, stext_page, page_id)

    def print_stext_header_as_html(self, ctx: int, output: int) -> None:
        self._c.fz_print_stext_header_as_html(ctx, output)

    def print_stext_trailer_as_html(self, ctx: int, output: int) -> None:
        self._c.fz_print_stext_trailer_as_html(ctx, output)

    # buffers and outputs

    def new_buffer(self, ctx: int, size: int) -> int | None:
        return self._c.fz_new_buffer(ctx, size)

    def buffer_bytes(self, ctx: int, buf: int) -> bytes:
        """Copy the contents of a native buffer into a Python bytes object."""
        data = POINTER(c_ubyte)()
        size = self._c.fz_buffer_storage(ctx, buf, ctypes.pointer(data))
        if not size or not data:
            return b""
        return ctypes.string_at(data, size)

    def drop_buffer(self, ctx: int, buf: int) -> None:
        self._c.fz_drop_buffer(ctx, buf)

    def new_output_with_buffer(self, ctx: int, buf: int) -> int | None:
        return self._c.fz_new_output_with_buffer(ctx, buf)

    def close_output(self, ctx: int, output: int) -> None:
        self._c.fz_close_output(ctx, output)

    def drop_output(self, ctx: int, output: int) -> None:
        self._c.fz_drop_output(ctx, output)


def load_native_api(config: Config | None = None) -> NativeAPI:
    """Build the process-wide dispatch table on first use and memoize it.

    ``config`` only matters for the first call. A failure is memoized as
    well: later calls re-raise the same ``NativeLibraryError`` without
    loading the library again.
    """
    global _NATIVE_API, _NATIVE_ERROR
    if _NATIVE_API is not None:
        return _NATIVE_API
    with _NATIVE_LOCK:
        if _NATIVE_ERROR is not None:
            raise _NATIVE_ERROR
        if _NATIVE_API is None:
            config = config or Config.from_env()
            try:
                api = NativeAPI(load_library(config.library))
                version = api.negotiate_version(config.version, config.max_store)
            except NativeLibraryError as exc:
                logger.debug("libmupdf unavailable: %s", exc)
                _NATIVE_ERROR = exc
                raise
            logger.debug("libmupdf ABI version %s", version)
            _NATIVE_API = api
    return _NATIVE_API


def install_native_api(api: NativeAPI | None) -> None:
    """Replace the memoized dispatch table (``None`` clears it) and forget any failure."""
    global _NATIVE_API, _NATIVE_ERROR
    with _NATIVE_LOCK:
        _NATIVE_API = api
        _NATIVE_ERROR = None


def reset_native_api() -> None:
    """Forget the memoized dispatch table or failure; the next use rebuilds it."""
    install_native_api(None)


__all__ = [
    "NativeAPI",
    "candidate_versions",
    "install_native_api",
    "library_name",
    "load_library",
    "load_native_api",
    "reset_native_api",
]
