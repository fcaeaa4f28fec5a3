import asyncio

import httpx
import openai
import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from testgen.config import EngineConfig, LLMConfig, PromptConfig
from testgen.errors import (
    ConfigurationError,
    ExtractionError,
    SchemaError,
    UpstreamError,
    ValidationError,
)
from testgen.llm import extract_content
from testgen.prompt import build_prompt
from testgen.runtime import generate_test
from testgen.schemas import ScenarioRequest

DESCRIPTION = "Test login with valid credentials"
PROVIDER_URL = "https://api.groq.com/openai/v1/chat/completions"


def _run(request, config, factory):
    return asyncio.run(generate_test(request, config, factory))


def test_end_to_end_with_fenced_reply(engine_config, fake_model, fake_factory, login_payload, login_steps):
    fake_model.reply = f"Here is your test case:\n```json\n{login_payload}\n```\nEnjoy!"

    result = _run(ScenarioRequest(description=DESCRIPTION), engine_config, fake_factory)

    assert result.steps == login_steps
    assert len(result.steps) == 4
    assert result.code.strip()

    (messages,) = fake_model.calls
    assert isinstance(messages[0], SystemMessage)
    assert isinstance(messages[1], HumanMessage)
    assert DESCRIPTION in messages[1].content
    assert fake_factory.api_keys == ["test-key"]


def test_missing_credential_makes_no_call(fake_model, fake_factory):
    config = EngineConfig(llm=LLMConfig(api_key=None, api_key_env="GROQ_API_KEY"))

    with pytest.raises(ConfigurationError) as exc_info:
        _run(ScenarioRequest(description=DESCRIPTION), config, fake_factory)

    assert exc_info.value.status_code == 500
    assert "GROQ_API_KEY" in exc_info.value.message
    assert fake_factory.api_keys == []
    assert fake_model.calls == []


def test_credential_checked_before_description(fake_factory):
    config = EngineConfig(llm=LLMConfig(api_key=None))

    with pytest.raises(ConfigurationError):
        _run(ScenarioRequest(description="   "), config, fake_factory)


@pytest.mark.parametrize("description", ["", "   ", "\n\t"])
def test_blank_description_is_rejected(engine_config, fake_model, fake_factory, description):
    with pytest.raises(ValidationError) as exc_info:
        _run(ScenarioRequest(description=description), engine_config, fake_factory)

    assert exc_info.value.status_code == 400
    assert fake_model.calls == []


def test_provider_error_status_becomes_upstream_error(engine_config, fake_model, fake_factory):
    response = httpx.Response(
        429, text="rate limit exceeded", request=httpx.Request("POST", PROVIDER_URL)
    )
    fake_model.error = openai.RateLimitError("rate limited", response=response, body=None)

    with pytest.raises(UpstreamError) as exc_info:
        _run(ScenarioRequest(description=DESCRIPTION), engine_config, fake_factory)

    err = exc_info.value
    assert err.status == 429
    assert err.body == "rate limit exceeded"
    assert err.status_code == 502
    assert "429" in err.message
    assert len(fake_model.calls) == 1


def test_provider_unreachable_becomes_upstream_error(engine_config, fake_model, fake_factory):
    fake_model.error = openai.APIConnectionError(request=httpx.Request("POST", PROVIDER_URL))

    with pytest.raises(UpstreamError) as exc_info:
        _run(ScenarioRequest(description=DESCRIPTION), engine_config, fake_factory)

    assert exc_info.value.status is None


def test_empty_reply_is_an_extraction_error(engine_config, fake_model, fake_factory):
    fake_model.reply = "   "

    with pytest.raises(ExtractionError) as exc_info:
        _run(ScenarioRequest(description=DESCRIPTION), engine_config, fake_factory)

    assert exc_info.value.parse_error == "No response from model"


def test_prose_reply_is_an_extraction_error(engine_config, fake_model, fake_factory):
    fake_model.reply = "I cannot write that test."

    with pytest.raises(ExtractionError) as exc_info:
        _run(ScenarioRequest(description=DESCRIPTION), engine_config, fake_factory)

    assert exc_info.value.raw_text == "I cannot write that test."


def test_incomplete_reply_is_a_schema_error(engine_config, fake_model, fake_factory):
    fake_model.reply = '{"steps": ["a"]}'

    with pytest.raises(SchemaError):
        _run(ScenarioRequest(description=DESCRIPTION), engine_config, fake_factory)


def test_prompt_embeds_description_and_contract():
    prompt = build_prompt(f"  {DESCRIPTION}  ")

    assert f"Description: {DESCRIPTION}\n" in prompt.user
    assert '{"steps": ["step 1", "step 2", "step 3"], "code": "<complete Java code>"}' in prompt.user
    assert "TestNG" in prompt.system


def test_prompt_keeps_braces_in_description():
    prompt = build_prompt("Check the {username} field")

    assert "Check the {username} field" in prompt.user


def test_prompt_uses_configured_templates():
    settings = PromptConfig(system="Be brief.", user="Scenario: {description} as JSON {{}}")

    prompt = build_prompt(DESCRIPTION, settings)

    assert prompt.system == "Be brief."
    assert prompt.user == f"Scenario: {DESCRIPTION} as JSON {{}}"


def test_extract_content_joins_blocks():
    blocks = [{"type": "text", "text": "{\"steps\":"}, {"type": "text", "text": "[]}"}]

    assert extract_content(blocks) == '{"steps":\n[]}'
    assert extract_content("plain") == "plain"
