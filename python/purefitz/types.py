"""Host-owned value types returned by Document operations."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in page space (points, 1/72 inch)."""

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x0, self.y0, self.x1, self.y1)


@dataclass(frozen=True)
class Link:
    """URI link on a page, copied out of the native link list."""

    uri: str
    rect: Rect


@dataclass(frozen=True)
class OutlineEntry:
    """One flattened table-of-contents entry.

    Attributes:
        level: Depth in the outline tree, 1 for root entries.
        title: Entry title.
        uri: Destination URI, empty for entries without one.
        page: Zero-based target page, -1 when the entry has no page target.
        top: Vertical offset of the destination on the target page.
    """

    level: int
    title: str
    uri: str
    page: int
    top: float
