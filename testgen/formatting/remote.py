"""Remote formatting service client.

Contract: ``POST {"code": str}`` -> ``{"formatted": str}``.
"""

from __future__ import annotations

import logging

import httpx

from testgen.formatting import FormatOutcome

logger = logging.getLogger(__name__)


async def format_remote(
    code: str,
    url: str,
    timeout: float = 15.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FormatOutcome:
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.post(url, json={"code": code})
            resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as e:
        return FormatOutcome.failure(
            "remote", f"HTTP {e.response.status_code}: {e.response.text[:200]}"
        )
    except (httpx.HTTPError, ValueError) as e:
        return FormatOutcome.failure("remote", f"{type(e).__name__}: {e}")

    formatted = data.get("formatted") if isinstance(data, dict) else None
    if not isinstance(formatted, str) or not formatted.strip():
        return FormatOutcome.failure("remote", "response has no 'formatted' text")

    logger.debug(f"Remote formatter returned {len(formatted)} chars")
    return FormatOutcome(formatter="remote", text=formatted)
