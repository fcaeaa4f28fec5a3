"""Response extractor — recovers one JSON object from free-form model text.

Strategies run in a fixed order and stop at the first success:

  1. direct    — the whole text is JSON
  2. fenced    — a ``` fenced block (optionally tagged, e.g. ```json)
  3. balanced  — first ``{`` up to the brace that brings the depth back to 0
  4. greedy    — first ``{`` to last ``}``

Each strategy returns a ``ParseOutcome`` instead of raising, so the driver is
a plain loop. The balanced scan counts braces textually and does not know
about JSON strings: a string value with unbalanced ``{``/``}`` can make it
mis-scan, in which case the greedy strategy usually still recovers.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from testgen.errors import ExtractionError, SchemaError
from testgen.schemas import ExtractedResult

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```([\w+-]*)[ \t]*\n?(.*?)```", re.DOTALL)
_GREEDY_RE = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class ParseOutcome:
    value: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    @classmethod
    def failure(cls, error: str) -> ParseOutcome:
        return cls(error=error)


def _loads_object(candidate: str) -> ParseOutcome:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return ParseOutcome.failure(str(e))
    if not isinstance(value, dict):
        return ParseOutcome.failure(f"expected a JSON object, got {type(value).__name__}")
    return ParseOutcome(value=value)


def _greedy_span(text: str) -> str | None:
    match = _GREEDY_RE.search(text)
    return match.group(0) if match else None


def _balanced_span(text: str) -> str | None:
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


# ── Strategies ───────────────────────────────────────────────────────────────


def parse_direct(text: str) -> ParseOutcome:
    return _loads_object(text.strip())


def parse_fenced(text: str) -> ParseOutcome:
    # json-tagged fences first, then the rest in document order
    fences = sorted(_FENCE_RE.findall(text), key=lambda m: m[0].lower() != "json")
    if not fences:
        return ParseOutcome.failure("no fenced code block")

    outcome = ParseOutcome.failure("empty fenced code block")
    for _tag, body in fences:
        span = _greedy_span(body)
        if span is not None:
            outcome = _loads_object(span)
            if outcome.ok:
                return outcome
        outcome = _loads_object(body.strip())
        if outcome.ok:
            return outcome
    return outcome


def parse_balanced(text: str) -> ParseOutcome:
    span = _balanced_span(text)
    if span is None:
        return ParseOutcome.failure("no balanced {...} region")
    return _loads_object(span)


def parse_greedy(text: str) -> ParseOutcome:
    span = _greedy_span(text)
    if span is None:
        return ParseOutcome.failure("no {...} region")
    return _loads_object(span)


STRATEGIES: list[tuple[str, Callable[[str], ParseOutcome]]] = [
    ("direct", parse_direct),
    ("fenced", parse_fenced),
    ("balanced", parse_balanced),
    ("greedy", parse_greedy),
]


# ── Public API ───────────────────────────────────────────────────────────────


def extract_json(raw: str) -> dict[str, Any]:
    """Return the first JSON object any strategy recovers.

    Raises ``ExtractionError`` carrying the raw text and the last parse error.
    """
    errors = []
    for name, strategy in STRATEGIES:
        outcome = strategy(raw)
        if outcome.ok:
            logger.debug(f"Extracted JSON with strategy '{name}'")
            return outcome.value
        errors.append(f"{name}: {outcome.error}")

    logger.warning(
        f"No JSON object recoverable ({'; '.join(errors)}). "
        f"Raw response: {raw[:200]}{'...' if len(raw) > 200 else ''}"
    )
    raise ExtractionError(raw_text=raw, parse_error=errors[-1])


def extract_result(raw: str) -> ExtractedResult:
    """Recover the JSON object and validate ``steps`` and ``code``.

    Raises ``ExtractionError`` or ``SchemaError``.
    """
    parsed = extract_json(raw)
    try:
        return ExtractedResult.model_validate(parsed)
    except PydanticValidationError as e:
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        logger.warning(f"Model JSON failed validation: {detail}. Parsed: {parsed!r:.200}")
        raise SchemaError(parsed=parsed, detail=detail) from e
