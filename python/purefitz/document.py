"""Public document API.

Every operation follows the same shape: take the document lock, validate
the page number, load the page, drive the native pipeline, copy the result
into Python-owned memory and release the native objects in reverse order
before returning.
"""

from __future__ import annotations

import ctypes
import logging
import operator
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any, Union

from PIL import Image

from ._content_types import content_type
from ._ctypes_types import (
    FZ_NO_CACHE,
    FZ_STEXT_PRESERVE_IMAGES,
    FZ_SVG_REUSE_IMAGES,
    FZ_SVG_TEXT_AS_PATH,
    IDENTITY,
    FzIRect,
    FzMatrix,
    decode_cstr,
)
from ._native_api import load_native_api
from ._outline import copy_outline_tree, flatten_outline
from ._resources import NativeResources, Scope
from .config import Config
from .exceptions import (
    CreateBufferError,
    CreateDeviceError,
    CreatePixmapError,
    CreateTextPageError,
    EmptyInputError,
    LoadPageError,
    NeedsPasswordError,
    NoSuchFileError,
    PageMissingError,
    PixmapSamplesError,
    UnrecognizedFormatError,
)
from .types import Link, OutlineEntry, Rect

logger = logging.getLogger(__name__)

DEFAULT_DPI = 300.0

# Bytes per pixel of the RGBA pixmaps rendered by this module.
_RGBA = 4
_BUFFER_SIZE = 1024

METADATA_KEYS = {
    "format": "format",
    "encryption": "encryption",
    "title": "info:Title",
    "author": "info:Author",
    "subject": "info:Subject",
    "keywords": "info:Keywords",
    "creator": "info:Creator",
    "producer": "info:Producer",
    "creationDate": "info:CreationDate",
    "modDate": "info:ModDate",
}

Source = Union[str, "os.PathLike[str]", bytes, bytearray, memoryview, IO[bytes]]


def _read_source(source: Any) -> bytes:
    if source is None:
        raise EmptyInputError()
    if hasattr(source, "read"):
        source = source.read()
    if not isinstance(source, (bytes, bytearray, memoryview)):
        raise TypeError(f"expected bytes-like input, got {type(source).__name__}")
    data = bytes(source)
    if not data:
        raise EmptyInputError()
    return data


class Document:
    """An open fitz document.

    ``source`` is a filesystem path, a bytes-like object or a binary file
    object. Paths are opened by fitz directly; anything else is read into
    memory and its format is sniffed from the leading bytes.

    A document is safe to share between threads. Operations on one document
    are serialized by an internal lock; separate documents run in parallel.

    Raises:
        NoSuchFileError: ``source`` is a path that does not exist.
        EmptyInputError: In-memory input is ``None`` or empty.
        UnrecognizedFormatError: In-memory input matches no known format.
        NeedsPasswordError: The document is encrypted and ``password`` was
            rejected. Without a password the document opens with
            ``needs_password`` set; see ``authenticate()``.
    """

    def __init__(
        self,
        source: Source,
        password: str | None = None,
        *,
        config: Config | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._resources: NativeResources | None = None
        self.name: str | None = None
        self.content_type: str | None = None
        self.needs_password = False

        config = config or Config.from_env()
        if isinstance(source, (str, os.PathLike)):
            path = os.path.abspath(os.fspath(source))
            if not os.path.exists(path):
                raise NoSuchFileError(f"fitz: no such file {path}")
            api = load_native_api(config)
            self._resources = NativeResources.open_path(api, path, config)
            self.name = path
        else:
            data = _read_source(source)
            magic = content_type(data)
            if not magic:
                raise UnrecognizedFormatError()
            api = load_native_api(config)
            self._resources = NativeResources.open_memory(api, data, magic, config)
            self.content_type = magic

        self.needs_password = self._resources.needs_password()
        if self.needs_password and password is not None and not self.authenticate(password):
            self.close()
            raise NeedsPasswordError()

    @classmethod
    def open(
        cls,
        path: str | os.PathLike[str],
        password: str | None = None,
        *,
        config: Config | None = None,
    ) -> Document:
        """Open the document at ``path``."""
        if not isinstance(path, (str, os.PathLike)):
            raise TypeError(f"expected a path, got {type(path).__name__}")
        return cls(path, password, config=config)

    @classmethod
    def from_bytes(
        cls,
        data: bytes | bytearray | memoryview | None,
        password: str | None = None,
        *,
        config: Config | None = None,
    ) -> Document:
        """Open an in-memory document. The bytes are copied once."""
        if isinstance(data, (str, os.PathLike)):
            raise TypeError("from_bytes() expects bytes, use open() for paths")
        if data is None:
            raise EmptyInputError()
        return cls(data, password, config=config)

    @classmethod
    def from_stream(
        cls,
        reader: IO[bytes],
        password: str | None = None,
        *,
        config: Config | None = None,
    ) -> Document:
        """Read ``reader`` to the end and open the result from memory."""
        return cls.from_bytes(reader.read(), password, config=config)

    def __enter__(self) -> Document:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        label = self.name or f"<memory {self.content_type}>"
        return f"<Document {label} {state}>"

    @property
    def closed(self) -> bool:
        return self._resources is None or self._resources.closed

    def close(self) -> None:
        """Release the native document. Safe to call more than once."""
        with self._lock:
            if self._resources is None or self._resources.closed:
                return
            self._resources.close()
        logger.debug("closed document %s", self.name or self.content_type)

    def _require_open(self) -> NativeResources:
        if self._resources is None or self._resources.closed:
            raise ValueError("fitz: document is closed")
        return self._resources

    @contextmanager
    def _page(self, number: int) -> Iterator[tuple[Scope, int]]:
        """Hold the lock and yield a scope owning the loaded page."""
        number = operator.index(number)
        with self._lock:
            res = self._require_open()
            count = res.api.count_pages(res.ctx, res.doc)
            if not 0 <= number < count:
                raise PageMissingError(
                    f"fitz: page {number} missing, document has {count} pages"
                )
            with res.scope() as scope:
                page = scope.acquire(
                    res.api.load_page(res.ctx, res.doc, number),
                    res.api.drop_page,
                    LoadPageError,
                )
                yield scope, page

    # pages

    def page_count(self) -> int:
        with self._lock:
            res = self._require_open()
            return res.api.count_pages(res.ctx, res.doc)

    def bounds(self, number: int) -> Rect:
        """Return the page rectangle in points."""
        with self._page(number) as (scope, page):
            r = scope.api.bound_page(scope.ctx, page)
            return Rect(r.x0, r.y0, r.x1, r.y1)

    # rendering

    @staticmethod
    def _device_box(scope: Scope, page: int, dpi: float) -> tuple[FzMatrix, FzIRect]:
        api = scope.api
        zoom = dpi / 72
        ctm = api.scale(zoom, zoom)
        bounds = api.transform_rect(api.bound_page(scope.ctx, page), ctm)
        return ctm, api.round_rect(bounds)

    @staticmethod
    def _draw(scope: Scope, page: int, ctm: FzMatrix, bbox: FzIRect) -> int:
        api, ctx = scope.api, scope.ctx
        pixmap = scope.acquire(
            api.new_pixmap_with_bbox(ctx, bbox), api.drop_pixmap, CreatePixmapError
        )
        api.clear_pixmap_with_value(ctx, pixmap, 0xFF)
        device = scope.acquire(
            api.new_draw_device(ctx, ctm, pixmap), api.drop_device, CreateDeviceError
        )
        api.enable_device_hints(ctx, device, FZ_NO_CACHE)
        api.run_page_contents(ctx, page, device, IDENTITY)
        api.close_device(ctx, device)
        return pixmap

    @staticmethod
    def _samples(scope: Scope, pixmap: int, bbox: FzIRect) -> bytes:
        """Copy the RGBA samples of ``pixmap`` without row padding."""
        api, ctx = scope.api, scope.ctx
        samples = api.pixmap_samples(ctx, pixmap)
        if not samples:
            raise PixmapSamplesError()
        stride = api.pixmap_stride(ctx, pixmap)
        row = bbox.width * _RGBA
        if stride == row:
            return ctypes.string_at(samples, row * bbox.height)
        base = ctypes.addressof(samples.contents)
        return b"".join(
            ctypes.string_at(base + y * stride, row) for y in range(bbox.height)
        )

    def render(self, number: int, dpi: float = DEFAULT_DPI) -> Image.Image:
        """Render a page to an RGBA image at ``dpi``."""
        with self._page(number) as (scope, page):
            ctm, bbox = self._device_box(scope, page, dpi)
            pixmap = self._draw(scope, page, ctm, bbox)
            data = self._samples(scope, pixmap, bbox)
        return Image.frombytes("RGBA", (bbox.width, bbox.height), data)

    def render_into(self, number: int, dpi: float, buffer: Any) -> tuple[int, int]:
        """Render a page into a caller-owned writable buffer.

        The buffer receives tightly packed RGBA rows and must hold at least
        ``width * height * 4`` bytes; :meth:`max_image_size` gives a size
        that fits every page. Returns ``(width, height)``.
        """
        with memoryview(buffer) as raw, raw.cast("B") as view:
            if view.readonly:
                raise TypeError("render_into() needs a writable buffer")
            with self._page(number) as (scope, page):
                ctm, bbox = self._device_box(scope, page, dpi)
                needed = bbox.width * bbox.height * _RGBA
                if view.nbytes < needed:
                    raise ValueError(
                        f"buffer holds {view.nbytes} bytes, page needs {needed}"
                    )
                pixmap = self._draw(scope, page, ctm, bbox)
                view[:needed] = self._samples(scope, pixmap, bbox)
            return bbox.width, bbox.height

    def max_image_size(self, dpi: float = DEFAULT_DPI) -> int:
        """Return the RGBA byte size of the largest page rendered at ``dpi``."""
        with self._lock:
            res = self._require_open()
            api = res.api
            largest = 0
            for number in range(api.count_pages(res.ctx, res.doc)):
                with res.scope() as scope:
                    page = scope.acquire(
                        api.load_page(res.ctx, res.doc, number),
                        api.drop_page,
                        LoadPageError,
                    )
                    _, bbox = self._device_box(scope, page, dpi)
                    largest = max(largest, bbox.width * bbox.height * _RGBA)
            return largest

    def render_png(self, number: int, dpi: float = DEFAULT_DPI) -> bytes:
        """Render a page and encode it as PNG."""
        with self._page(number) as (scope, page):
            api, ctx = scope.api, scope.ctx
            ctm, bbox = self._device_box(scope, page, dpi)
            pixmap = self._draw(scope, page, ctm, bbox)
            buf = scope.acquire(
                api.new_buffer_from_pixmap_as_png(ctx, pixmap),
                api.drop_buffer,
                CreateBufferError,
            )
            return api.buffer_bytes(ctx, buf)

    # text

    @staticmethod
    def _stext(scope: Scope, page: int, flags: int) -> int:
        api, ctx = scope.api, scope.ctx
        stext = scope.acquire(
            api.new_stext_page(ctx, api.bound_page(ctx, page)),
            api.drop_stext_page,
            CreateTextPageError,
        )
        device = scope.acquire(
            api.new_stext_device(ctx, stext, flags), api.drop_device, CreateDeviceError
        )
        api.enable_device_hints(ctx, device, FZ_NO_CACHE)
        api.run_page_contents(ctx, page, device, IDENTITY)
        api.close_device(ctx, device)
        return stext

    @staticmethod
    def _output(scope: Scope) -> tuple[int, int]:
        api, ctx = scope.api, scope.ctx
        buf = scope.acquire(
            api.new_buffer(ctx, _BUFFER_SIZE), api.drop_buffer, CreateBufferError
        )
        out = scope.acquire(
            api.new_output_with_buffer(ctx, buf), api.drop_output, CreateBufferError
        )
        return buf, out

    def text(self, number: int) -> str:
        """Extract the plain text of a page."""
        with self._page(number) as (scope, page):
            api, ctx = scope.api, scope.ctx
            stext = self._stext(scope, page, 0)
            buf = scope.acquire(
                api.new_buffer_from_stext_page(ctx, stext),
                api.drop_buffer,
                CreateBufferError,
            )
            return api.buffer_bytes(ctx, buf).decode("utf-8", errors="replace")

    def html(self, number: int, header: bool = False) -> str:
        """Extract a page as HTML, with embedded images.

        With ``header`` the fragment is wrapped in the document prologue and
        epilogue, giving a standalone HTML file.
        """
        with self._page(number) as (scope, page):
            api, ctx = scope.api, scope.ctx
            stext = self._stext(scope, page, FZ_STEXT_PRESERVE_IMAGES)
            buf, out = self._output(scope)
            if header:
                api.print_stext_header_as_html(ctx, out)
            api.print_stext_page_as_html(ctx, out, stext, number)
            if header:
                api.print_stext_trailer_as_html(ctx, out)
            api.close_output(ctx, out)
            return api.buffer_bytes(ctx, buf).decode("utf-8", errors="replace")

    def svg(self, number: int) -> str:
        """Convert a page to SVG, text drawn as paths."""
        with self._page(number) as (scope, page):
            api, ctx = scope.api, scope.ctx
            bounds = api.bound_page(ctx, page)
            buf, out = self._output(scope)
            device = scope.acquire(
                api.new_svg_device(
                    ctx,
                    out,
                    bounds.x1 - bounds.x0,
                    bounds.y1 - bounds.y0,
                    FZ_SVG_TEXT_AS_PATH,
                    FZ_SVG_REUSE_IMAGES,
                ),
                api.drop_device,
                CreateDeviceError,
            )
            api.enable_device_hints(ctx, device, FZ_NO_CACHE)
            api.run_page_contents(ctx, page, device, IDENTITY)
            api.close_device(ctx, device)
            api.close_output(ctx, out)
            return api.buffer_bytes(ctx, buf).decode("utf-8", errors="replace")

    # navigation

    def links(self, number: int) -> list[Link]:
        """Return the URI links of a page."""
        with self._page(number) as (scope, page):
            api, ctx = scope.api, scope.ctx
            head = api.load_links(ctx, page)
            if not head:
                return []
            scope.callback(api.drop_link, ctx, head)

            count = 0
            ptr = head
            while ptr:
                count += 1
                ptr = ptr.contents.next

            links: list[Link] = []
            ptr = head
            for _ in range(count):
                node = ptr.contents
                r = node.rect
                links.append(Link(decode_cstr(node.uri), Rect(r.x0, r.y0, r.x1, r.y1)))
                ptr = node.next
            return links

    def outline(self) -> list[OutlineEntry]:
        """Return the table of contents in document order.

        An empty list means the document has no outline.
        """
        with self._lock:
            res = self._require_open()
            with res.scope() as scope:
                root = res.api.load_outline(res.ctx, res.doc)
                if not root:
                    return []
                scope.callback(res.api.drop_outline, res.ctx, root)
                arena = copy_outline_tree(root)
        return flatten_outline(arena)

    def metadata(self) -> dict[str, str]:
        """Return the document information, one entry per known key.

        Keys the document does not define map to ``""``.
        """
        with self._lock:
            res = self._require_open()
            return {
                name: res.api.lookup_metadata(res.ctx, res.doc, key)
                for name, key in METADATA_KEYS.items()
            }

    # security

    def authenticate(self, password: str) -> bool:
        """Try ``password`` on an encrypted document.

        Returns whether it was accepted; on success ``needs_password`` is
        cleared.
        """
        with self._lock:
            ok = self._require_open().authenticate(password)
        if ok:
            self.needs_password = False
        return ok


def open(
    source: Source, password: str | None = None, *, config: Config | None = None
) -> Document:
    """Open ``source`` as a :class:`Document`. See its docstring for inputs."""
    return Document(source, password, config=config)
