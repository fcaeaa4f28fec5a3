"""Runtime — bridges HTTP requests to the LLM call and the extractor.

Checks configuration, validates the description, renders the prompt, makes
exactly one model call and hands the reply to ``extract_result``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from testgen.config import LLMConfig
from testgen.errors import ConfigurationError, ExtractionError, ValidationError
from testgen.extract import extract_result
from testgen.llm import ChatModel, build_chat_model, complete
from testgen.prompt import build_prompt

if TYPE_CHECKING:
    from testgen.config import EngineConfig
    from testgen.schemas import ExtractedResult, ScenarioRequest

logger = logging.getLogger(__name__)

LLMFactory = Callable[[LLMConfig, str], ChatModel]


def validate_description(description: str | None) -> str:
    """Return the trimmed description. Raises ``ValidationError`` if blank."""
    if not description or not description.strip():
        raise ValidationError("Description is required")
    return description.strip()


async def generate_test(
    request: ScenarioRequest,
    config: EngineConfig,
    llm_factory: LLMFactory = build_chat_model,
) -> ExtractedResult:
    """Run one scenario through the model.

    1. Require the API credential
    2. Validate the description
    3. Build the prompt and call the model once
    4. Extract and validate ``steps``/``code``
    """
    if config.llm.api_key is None:
        raise ConfigurationError(
            f"{config.llm.api_key_env} is not set; configure the LLM API key"
        )
    api_key = config.llm.api_key.get_secret_value()

    description = validate_description(request.description)
    prompt = build_prompt(description, config.prompt)

    logger.info(
        f"Generating test: model={config.llm.model}, "
        f"description={description[:80]!r}{'...' if len(description) > 80 else ''}"
    )
    llm = llm_factory(config.llm, api_key)
    raw = await complete(llm, prompt)

    if not raw.strip():
        raise ExtractionError(raw_text=raw, parse_error="No response from model")

    result = extract_result(raw)
    logger.info(f"Generated {len(result.steps)} steps, {len(result.code)} chars of code")
    return result
