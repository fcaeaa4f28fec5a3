"""Download naming for generated test sources."""

from __future__ import annotations

import re

DEFAULT_CLASS_NAME = "GeneratedTest"

_PUBLIC_CLASS_RE = re.compile(
    r"\bpublic\s+(?:(?:final|abstract)\s+)*class\s+([A-Za-z_$][\w$]*)"
)
_ANY_CLASS_RE = re.compile(r"\bclass\s+([A-Za-z_$][\w$]*)")


def class_name(code: str) -> str:
    """Name of the public class, else the first class, else ``GeneratedTest``."""
    match = _PUBLIC_CLASS_RE.search(code) or _ANY_CLASS_RE.search(code)
    return match.group(1) if match else DEFAULT_CLASS_NAME


def download_filename(code: str) -> str:
    return f"{class_name(code)}.java"
