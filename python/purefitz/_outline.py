"""Outline (table of contents) flattening.

The native outline is a tree linked through ``next`` (sibling) and ``down``
(first child) pointers. It is copied into a host-side arena while the
document lock is held, so the native tree can be dropped right away, and
flattened afterwards. Both passes use explicit stacks; deeply nested
outlines cannot exhaust the interpreter stack.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ._ctypes_types import decode_cstr
from .types import OutlineEntry


@dataclass
class _Node:
    title: str
    uri: str
    page: int
    top: float
    down: int = -1
    next: int = -1


def copy_outline_tree(root: Any) -> list[_Node]:
    """Copy the native outline rooted at ``root`` into an arena.

    ``root`` is a ``POINTER(FzOutline)``; a NULL pointer yields an empty
    arena. The first node of the arena is always the first root entry.
    """
    arena: list[_Node] = []
    if not root:
        return arena
    pending = [(root, -1, "")]
    while pending:
        ptr, owner, field = pending.pop()
        node = ptr.contents
        idx = len(arena)
        arena.append(
            _Node(
                title=decode_cstr(node.title),
                uri=decode_cstr(node.uri),
                page=node.page.page,
                top=node.y,
            )
        )
        if owner >= 0:
            setattr(arena[owner], field, idx)
        if node.next:
            pending.append((node.next, idx, "next"))
        if node.down:
            pending.append((node.down, idx, "down"))
    return arena


def flatten_outline(arena: list[_Node]) -> list[OutlineEntry]:
    """Flatten an arena in document order (pre-order, children first)."""
    entries: list[OutlineEntry] = []
    if not arena:
        return entries
    stack = [(0, 1)]
    while stack:
        idx, level = stack.pop()
        node = arena[idx]
        entries.append(OutlineEntry(level, node.title, node.uri, node.page, node.top))
        # siblings are pushed first so the subtree is emitted before them
        if node.next >= 0:
            stack.append((node.next, level))
        if node.down >= 0:
            stack.append((node.down, level + 1))
    return entries
