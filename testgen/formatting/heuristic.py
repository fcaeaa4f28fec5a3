"""Last-resort reformatter: line breaks after ``;``, ``{`` and ``}``.

No grammar involved, so ``for (;;)`` headers and braces inside string
literals get split too. Output is crude but never empty for non-blank input.
"""

from __future__ import annotations

import re

_BREAK_AFTER_RE = re.compile(r"([;{}])")

INDENT = "    "


def reformat(code: str) -> str:
    broken = _BREAK_AFTER_RE.sub(r"\1\n", code)

    lines = []
    depth = 0
    for line in broken.split("\n"):
        line = line.strip()
        if not line:
            continue
        if line.endswith("}"):
            depth = max(depth - 1, 0)
        lines.append(INDENT * depth + line)
        if line.endswith("{"):
            depth += 1

    return "\n".join(lines) + "\n" if lines else ""
