"""Formatting fallback chain — turns generated source into readable text.

Order: decode escapes, then the configured formatters (``local`` javalang
re-indenter, ``remote`` formatting service), then the regex heuristic.
Every step reports a ``FormatOutcome``; ``format_code`` never raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from testgen.schemas import FormattedCode

if TYPE_CHECKING:
    import httpx

    from testgen.config import FormattingConfig

logger = logging.getLogger(__name__)

_ESCAPES = (("\\n", "\n"), ("\\t", "\t"), ('\\"', '"'))


@dataclass(frozen=True)
class FormatOutcome:
    formatter: str
    text: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.text is not None

    @classmethod
    def failure(cls, formatter: str, error: str) -> FormatOutcome:
        return cls(formatter=formatter, error=error)


def decode_escapes(code: str) -> str:
    """Turn literal ``\\n``, ``\\t`` and ``\\"`` into the characters they name."""
    for literal, char in _ESCAPES:
        code = code.replace(literal, char)
    return code.strip()


async def _run_step(
    name: str,
    code: str,
    settings: FormattingConfig,
    transport: httpx.AsyncBaseTransport | None,
) -> FormatOutcome:
    try:
        if name == "local":
            return java.format_java(code)
        if name == "remote":
            if not settings.remote_url:
                return FormatOutcome.failure("remote", "no remote formatter configured")
            return await remote.format_remote(
                code, settings.remote_url, timeout=settings.timeout, transport=transport
            )
    except Exception as e:
        logger.warning(f"Formatter '{name}' crashed: {e}", exc_info=True)
        return FormatOutcome.failure(name, str(e))
    return FormatOutcome.failure(name, f"unknown formatter '{name}'")


async def format_code(
    code: str,
    settings: FormattingConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FormattedCode:
    """Run the chain. ``transport`` is passed to the remote formatter's client."""
    decoded = decode_escapes(code)

    failures = []
    for name in settings.chain:
        outcome = await _run_step(name, decoded, settings, transport)
        if outcome.ok:
            return FormattedCode(formatted=outcome.text, formatter=outcome.formatter)
        logger.info(f"Formatter '{name}' unavailable: {outcome.error}")
        failures.append(f"{name}: {outcome.error}")

    logger.warning(f"Formatting degraded to heuristic ({'; '.join(failures)})")
    try:
        return FormattedCode(
            formatted=heuristic.reformat(decoded), formatter="heuristic", degraded=True
        )
    except Exception as e:
        logger.error(f"Heuristic formatter failed: {e}", exc_info=True)
        return FormattedCode(formatted=decoded, formatter="none", degraded=True)


from testgen.formatting import heuristic, java, remote  # noqa: E402
