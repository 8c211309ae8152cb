"""Magic-number sniffing for in-memory documents.

MuPDF picks a document handler from a MIME type when it opens a stream, and
memory-backed input has no filename extension to go by, so the type is
inferred from the first bytes of the buffer.
"""

from __future__ import annotations

# Enough for the ZIP local-header scan (first header + 3 hops of 6000 bytes).
_SNIFF_LIMIT = 32 * 1024

_UTF8_BOM = b"\xef\xbb\xbf"
_WHITESPACE = b" \t\r\n\x0c"

_ZIP_LOCAL_HEADER = b"PK\x03\x04"
_ZIP_HEADER_SIZE = 30
_ZIP_SCAN_HOPS = 3
_ZIP_SCAN_WINDOW = 6000

_OOXML_PREFIXES = (
    (b"word/", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
    (b"ppt/", "application/vnd.openxmlformats-officedocument.presentationml.presentation"),
    (b"xl/", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
)

MIME_PDF = "application/pdf"
MIME_EPUB = "application/epub+zip"
MIME_XPS = "application/oxps"
MIME_ZIP = "application/zip"
MIME_MOBI = "application/x-mobipocket-ebook"
MIME_SVG = "image/svg+xml"
MIME_XML = "text/xml"


def content_type(data: bytes | bytearray | memoryview) -> str:
    """Return the MIME type of ``data``, or ``""`` when it is not recognized.

    Checks run from the shortest signatures to the structural ones. Each
    length threshold returns early so no check reads past the buffer.
    """
    if data is None:
        return ""
    b = bytes(data[:_SNIFF_LIMIT])
    n = len(b)
    # for file length shortcuts see https://github.com/mathiasbynens/small
    if n < 8:
        return ""
    if b.startswith(b"P7\n"):
        return "image/x-portable-arbitrarymap"
    if b[:3] in (b"P1\n", b"P4\n"):
        return "image/x-portable-bitmap"
    if b[:3] in (b"PF\n", b"Pf\n"):
        return "image/x-portable-floatmap"
    if b[:3] in (b"P2\n", b"P5\n"):
        return "image/x-portable-greymap"
    if b[:3] in (b"P3\n", b"P6\n"):
        return "image/x-portable-pixmap"
    if b.startswith(b"GIF8"):
        return "image/gif"

    if n < 16:
        return ""
    if b.startswith(b"BM"):
        return "image/bmp"
    if b.startswith(b"\x97JB2\r\n\x1a\n"):
        # file header + segment header = 24 bytes
        return "image/x-jb2"

    if n < 32:
        return ""
    if b.startswith((b"II*\x00", b"MM\x00*")):
        return "image/tiff"

    if n < 64:
        return ""
    if b.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if b.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if b.startswith((b"\xffO\xffQ", b"\x00\x00\x00\x0cjP  \r\n\x87\n")):
        return "image/jp2"
    if b.startswith(b"II\xbc"):
        return "image/vnd.ms-photo"
    if b.startswith(b"8BPS"):
        return "image/vnd.adobe.photoshop"
    if b.startswith(b"%PDF"):
        return MIME_PDF
    if b.startswith(_ZIP_LOCAL_HEADER):
        return _zip_content_type(b)
    if b[60:68] == b"BOOKMOBI":
        return MIME_MOBI
    if is_svg(b):
        return MIME_SVG
    if b.startswith((b"<?xml", _UTF8_BOM + b"<?xml")):
        # fitz will consider it an FB2
        return MIME_XML
    return ""


def _local_entry(b: bytes, offset: int) -> tuple[bytes, int] | None:
    """Parse the ZIP local file header at ``offset``.

    Returns the entry name and the offset of the entry data, or ``None``
    when the header is truncated.
    """
    if offset + _ZIP_HEADER_SIZE > len(b):
        return None
    name_len = int.from_bytes(b[offset + 26 : offset + 28], "little")
    extra_len = int.from_bytes(b[offset + 28 : offset + 30], "little")
    name_start = offset + _ZIP_HEADER_SIZE
    name = b[name_start : name_start + name_len]
    if len(name) != name_len:
        return None
    return name, name_start + name_len + extra_len


def _zip_content_type(b: bytes) -> str:
    first = _local_entry(b, 0)
    if first is None:
        return MIME_ZIP
    name, data_start = first

    # EPUB requires an uncompressed "mimetype" file as the first entry.
    if name == b"mimetype" and b.startswith(MIME_EPUB.encode(), data_start):
        return MIME_EPUB

    ooxml = _scan_ooxml(b, data_start)
    if ooxml:
        return ooxml
    if name == b"[Content_Types].xml":
        return MIME_XPS
    # fitz will consider it a Comic Book Archive
    return MIME_ZIP


def _scan_ooxml(b: bytes, offset: int) -> str:
    """Look for Office part directories in the next few local headers."""
    for _ in range(_ZIP_SCAN_HOPS):
        idx = b.find(_ZIP_LOCAL_HEADER, offset, offset + _ZIP_SCAN_WINDOW)
        if idx < 0:
            return ""
        entry = _local_entry(b, idx)
        if entry is None:
            return ""
        name, offset = entry
        for prefix, mime in _OOXML_PREFIXES:
            if name.startswith(prefix):
                return mime
    return ""


def is_svg(b: bytes) -> bool:
    """Report whether ``b`` starts with an ``<svg`` root element.

    Leading whitespace, XML declarations, processing instructions, comments
    and doctype declarations are skipped. The cursor only moves forward, so
    unterminated markup ends the scan instead of looping.
    """
    i = len(_UTF8_BOM) if b.startswith(_UTF8_BOM) else 0
    n = len(b)
    while True:
        while i < n and b[i] in _WHITESPACE:
            i += 1
        if i >= n or b[i] != ord("<"):
            return False
        i += 1
        if b.startswith(b"svg", i):
            return True
        if b.startswith(b"?", i):
            end = b.find(b"?>", i + 1)
            skip = 2
        elif b.startswith(b"!--", i):
            end = b.find(b"-->", i + 3)
            skip = 3
        elif b.startswith(b"!", i):
            end = b.find(b">", i + 1)
            skip = 1
        else:
            return False
        if end < 0:
            return False
        i = end + skip
