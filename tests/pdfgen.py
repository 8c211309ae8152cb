"""Generated PDF fixtures."""

from __future__ import annotations

PAGE_COUNT = 3
LINK_URI = "https://example.com/"


class _PDFBuilder:
    """Minimal PDF writer: numbered objects, a classic xref table, a trailer."""

    def __init__(self) -> None:
        self.objects: list[bytes | None] = []

    def reserve(self) -> int:
        self.objects.append(None)
        return len(self.objects)

    def set(self, num: int, body: bytes) -> None:
        self.objects[num - 1] = body

    def add(self, body: bytes) -> int:
        num = self.reserve()
        self.set(num, body)
        return num

    def stream(self, data: bytes) -> int:
        return self.add(b"<< /Length %d >>\nstream\n" % len(data) + data + b"\nendstream")

    def build(self, root: int, info: int | None) -> bytes:
        out = bytearray(b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n")
        offsets = []
        for num, body in enumerate(self.objects, 1):
            assert body is not None, f"object {num} reserved but never set"
            offsets.append(len(out))
            out += b"%d 0 obj\n" % num + body + b"\nendobj\n"
        xref = len(out)
        size = len(self.objects) + 1
        out += b"xref\n0 %d\n0000000000 65535 f \n" % size
        for offset in offsets:
            out += b"%010d 00000 n \n" % offset
        trailer = b"<< /Size %d /Root %d 0 R" % (size, root)
        if info is not None:
            trailer += b" /Info %d 0 R" % info
        out += b"trailer\n" + trailer + b" >>\nstartxref\n%d\n%%%%EOF\n" % xref
        return bytes(out)


def build_pdf(pages: int = PAGE_COUNT, *, outline: bool = True, link: bool = True) -> bytes:
    """Build a US-Letter PDF with text on every page.

    With ``outline`` (needs three pages) the outline is
    ``Chapter 1 > Section 1.1, Chapter 2`` pointing at pages 0, 1 and 2.
    With ``link`` the first page carries a URI link annotation.
    """
    pdf = _PDFBuilder()
    catalog = pdf.reserve()
    pages_num = pdf.reserve()
    font = pdf.add(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    page_nums = []
    for index in range(pages):
        content = pdf.stream(b"BT /F1 24 Tf 72 720 Td (Page %d) Tj ET" % (index + 1))
        annots = b""
        if link and index == 0:
            annot = pdf.add(
                b"<< /Type /Annot /Subtype /Link /Rect [72 600 300 630] /Border [0 0 0] "
                b"/A << /S /URI /URI (" + LINK_URI.encode() + b") >> >>"
            )
            annots = b" /Annots [%d 0 R]" % annot
        page_nums.append(
            pdf.add(
                b"<< /Type /Page /Parent %d 0 R /MediaBox [0 0 612 792] "
                b"/Resources << /Font << /F1 %d 0 R >> >> /Contents %d 0 R%s >>"
                % (pages_num, font, content, annots)
            )
        )

    kids = b" ".join(b"%d 0 R" % num for num in page_nums)
    pdf.set(pages_num, b"<< /Type /Pages /Kids [%s] /Count %d >>" % (kids, pages))

    outlines = b""
    if outline:
        root = pdf.reserve()
        first = pdf.reserve()
        child = pdf.reserve()
        last = pdf.reserve()

        def dest(page: int) -> bytes:
            return b"/Dest [%d 0 R /XYZ 0 792 0]" % page_nums[page]

        pdf.set(root, b"<< /Type /Outlines /First %d 0 R /Last %d 0 R /Count 3 >>" % (first, last))
        pdf.set(
            first,
            b"<< /Title (Chapter 1) /Parent %d 0 R /Next %d 0 R /First %d 0 R /Last %d 0 R "
            b"/Count 1 %s >>" % (root, last, child, child, dest(0)),
        )
        pdf.set(child, b"<< /Title (Section 1.1) /Parent %d 0 R %s >>" % (first, dest(1)))
        pdf.set(
            last,
            b"<< /Title (Chapter 2) /Parent %d 0 R /Prev %d 0 R %s >>" % (root, first, dest(2)),
        )
        outlines = b" /Outlines %d 0 R" % root

    pdf.set(catalog, b"<< /Type /Catalog /Pages %d 0 R%s >>" % (pages_num, outlines))
    info = pdf.add(b"<< /Title (Fixture) /Author (purefitz) /Producer (purefitz tests) >>")
    return pdf.build(catalog, info)
