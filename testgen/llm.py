"""LLM access — chat model factory and the single outbound completion call.

The provider is any OpenAI-compatible chat completions endpoint (Groq by
default). Retries are disabled: one user action is one request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import openai
from langchain_openai import ChatOpenAI

from testgen.errors import UpstreamError

if TYPE_CHECKING:
    from testgen.config import LLMConfig
    from testgen.prompt import ModelPrompt

logger = logging.getLogger(__name__)


class ChatModel(Protocol):
    async def ainvoke(self, input: Any, **kwargs: Any) -> Any: ...


def extract_content(content) -> str:
    """Normalize message content — providers can return a list of blocks or a string."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Extract text from content blocks: [{"type": "text", "text": "..."}]
        parts = []
        for block in content:
            if isinstance(block, dict):
                parts.append(block.get("text", ""))
            else:
                parts.append(str(block))
        return "\n".join(parts)
    return str(content)


def build_chat_model(settings: LLMConfig, api_key: str) -> ChatOpenAI:
    """Create a chat model bound to the configured provider."""
    return ChatOpenAI(
        model=settings.model,
        temperature=settings.temperature,
        api_key=api_key,
        base_url=settings.base_url,
        timeout=settings.timeout,
        max_retries=0,
    )


async def complete(llm: ChatModel, prompt: ModelPrompt) -> str:
    """Send the prompt and return the reply text.

    Raises ``UpstreamError`` on a non-success status or a connection failure.
    """
    try:
        response = await llm.ainvoke(prompt.messages())
    except openai.APIStatusError as e:
        body = e.response.text if e.response is not None else str(e)
        logger.error(f"LLM provider returned {e.status_code}: {body[:200]}")
        raise UpstreamError(e.status_code, body) from e
    except openai.APIConnectionError as e:
        logger.error(f"LLM provider unreachable: {e}")
        raise UpstreamError(None, str(e)) from e

    return extract_content(getattr(response, "content", response))
