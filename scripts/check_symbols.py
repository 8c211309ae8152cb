"""Verify every entry point in _symbols.SYMBOLS is exported by a libmupdf build.

Usage: ``check_symbols.py [LIBRARY]``. LIBRARY defaults to the platform name
(``libmupdf.so``, ``libmupdf.dylib`` or ``libmupdf.dll``).

Exit 0 when every registered symbol resolves.  Exit 1 otherwise, printing the
missing symbols.
"""

from __future__ import annotations

import ast
import ctypes
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
SYMBOLS = ROOT / "python" / "purefitz" / "_symbols.py"

_LIBRARY_NAMES = {"darwin": "libmupdf.dylib", "win32": "libmupdf.dll"}


def extract_symbol_names(path: Path) -> list[str]:
    """Parse the string keys of the ``SYMBOLS`` dict literal."""
    tree = ast.parse(path.read_text())
    for node in ast.walk(tree):
        if isinstance(node, ast.AnnAssign):
            target, value = node.target, node.value
        elif isinstance(node, ast.Assign) and len(node.targets) == 1:
            target, value = node.targets[0], node.value
        else:
            continue
        if isinstance(target, ast.Name) and target.id == "SYMBOLS":
            if isinstance(value, ast.Dict):
                return [
                    key.value
                    for key in value.keys
                    if isinstance(key, ast.Constant) and isinstance(key.value, str)
                ]
    return []


def main(argv: list[str]) -> int:
    names = extract_symbol_names(SYMBOLS)
    if not names:
        print(f"ERROR: could not parse SYMBOLS from {SYMBOLS}", file=sys.stderr)
        return 1

    library = argv[1] if len(argv) > 1 else _LIBRARY_NAMES.get(sys.platform, "libmupdf.so")
    try:
        lib = ctypes.CDLL(library)
    except OSError as exc:
        print(f"ERROR: cannot load {library}: {exc}", file=sys.stderr)
        return 1

    missing = [name for name in names if not hasattr(lib, name)]
    if missing:
        print(f"MISSING from {library} ({len(missing)}):")
        for name in sorted(missing):
            print(f"  - {name}")
        return 1

    print(f"OK: all {len(names)} symbols exported by {library}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
