"""Ownership of the native objects behind one open document.

A document keeps three long-lived native objects (context, optional memory
stream, document handle) plus the bytes the stream reads from. Everything
else (pages, pixmaps, devices, buffers, outputs) lives for a single call
and is released through a :class:`Scope`.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from ctypes import c_ubyte
from typing import Any, Callable

from ._native_api import NativeAPI
from .config import Config
from .exceptions import (
    CreateContextError,
    NativeResourceError,
    OpenDocumentError,
    OpenMemoryError,
)

logger = logging.getLogger(__name__)


class Scope(ExitStack):
    """Exit stack that pairs every acquired native handle with its drop.

    Handles are released in reverse acquisition order when the scope exits,
    whether the body returned or raised.
    """

    def __init__(self, api: NativeAPI, ctx: int) -> None:
        super().__init__()
        self.api = api
        self.ctx = ctx

    def acquire(
        self,
        handle: Any,
        drop: Callable[[int, Any], None],
        error_cls: type[NativeResourceError] = NativeResourceError,
    ) -> Any:
        """Register ``drop(ctx, handle)`` or raise ``error_cls`` for NULL."""
        if not handle:
            raise error_cls()
        self.callback(drop, self.ctx, handle)
        return handle


class NativeResources:
    """Context, stream, document and retained bytes of one document."""

    def __init__(
        self,
        api: NativeAPI,
        ctx: int,
        doc: int,
        stream: int | None = None,
        data: Any = None,
    ) -> None:
        self.api = api
        self.ctx = ctx
        self.doc = doc
        self.stream = stream
        # The memory stream reads from this array in place.
        self.data = data

    @staticmethod
    def _new_context(api: NativeAPI, config: Config, stack: ExitStack) -> int:
        ctx = api.new_context(config.max_store)
        if not ctx:
            raise CreateContextError()
        stack.callback(api.drop_context, ctx)
        api.register_document_handlers(ctx)
        return ctx

    @classmethod
    def open_path(cls, api: NativeAPI, path: str, config: Config) -> NativeResources:
        """Open the document at ``path``, letting fitz pick the handler."""
        with ExitStack() as stack:
            ctx = cls._new_context(api, config, stack)
            doc = api.open_document(ctx, path)
            if not doc:
                raise OpenDocumentError(f"fitz: cannot open document {path}")
            stack.callback(api.drop_document, ctx, doc)
            stack.pop_all()
        logger.debug("opened %s", path)
        return cls(api, ctx, doc)

    @classmethod
    def open_memory(
        cls, api: NativeAPI, data: bytes, magic: str, config: Config
    ) -> NativeResources:
        """Open ``data`` as a document of MIME type ``magic``.

        The bytes are copied once into a ctypes array that stays alive until
        :meth:`close`, so the caller's object may be reused afterwards.
        """
        size = len(data)
        array = (c_ubyte * size).from_buffer_copy(data)
        with ExitStack() as stack:
            ctx = cls._new_context(api, config, stack)
            stream = api.open_memory(ctx, array, size)
            if not stream:
                raise OpenMemoryError()
            stack.callback(api.drop_stream, ctx, stream)
            doc = api.open_document_with_stream(ctx, magic, stream)
            if not doc:
                raise OpenDocumentError(f"fitz: cannot open {magic} document")
            stack.callback(api.drop_document, ctx, doc)
            stack.pop_all()
        logger.debug("opened %d bytes as %s", size, magic)
        return cls(api, ctx, doc, stream=stream, data=array)

    @property
    def closed(self) -> bool:
        return self.ctx is None

    def needs_password(self) -> bool:
        return self.api.needs_password(self.ctx, self.doc)

    def authenticate(self, password: str) -> bool:
        return self.api.authenticate_password(self.ctx, self.doc, password)

    def scope(self) -> Scope:
        return Scope(self.api, self.ctx)

    def close(self) -> None:
        """Drop stream, document and context in that order. Idempotent."""
        if self.ctx is None:
            return
        ctx, self.ctx = self.ctx, None
        if self.stream:
            self.api.drop_stream(ctx, self.stream)
        self.stream = None
        self.api.drop_document(ctx, self.doc)
        self.doc = None
        self.api.drop_context(ctx)
        self.data = None
        logger.debug("closed native resources")
