from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage
from pydantic import SecretStr

from testgen.config import EngineConfig, FormattingConfig, LLMConfig
from testgen.main import create_app

LOGIN_STEPS = ["Open browser", "Enter credentials", "Click login", "Assert dashboard visible"]

LOGIN_CODE = """import org.testng.annotations.Test;

public class LoginTest {
@Test
public void validLogin() {
driver.get("https://example.com/login");
}
}
"""


class FakeChatModel:
    """Stands in for ChatOpenAI: records the messages, returns a canned reply."""

    def __init__(self, reply: str = "", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[list] = []

    async def ainvoke(self, messages, **kwargs):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.reply)


class FakeFactory:
    def __init__(self, model: FakeChatModel):
        self.model = model
        self.api_keys: list[str] = []

    def __call__(self, settings, api_key):
        self.api_keys.append(api_key)
        return self.model


@pytest.fixture
def login_payload() -> str:
    return json.dumps({"steps": LOGIN_STEPS, "code": LOGIN_CODE})


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(
        llm=LLMConfig(api_key=SecretStr("test-key")),
        formatting=FormattingConfig(remote_url=None),
    )


@pytest.fixture
def fake_model() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def fake_factory(fake_model) -> FakeFactory:
    return FakeFactory(fake_model)


@pytest.fixture
def client(engine_config, fake_factory):
    with TestClient(create_app(engine_config, llm_factory=fake_factory)) as c:
        yield c


@pytest.fixture
def login_steps() -> list[str]:
    return list(LOGIN_STEPS)


@pytest.fixture
def login_code() -> str:
    return LOGIN_CODE
