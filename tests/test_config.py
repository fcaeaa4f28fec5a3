import pytest
from pydantic import ValidationError

from testgen.config import EngineConfig, FormattingConfig, LLMConfig, PromptConfig, load_config

CONFIG_YAML = """
llm:
  model: llama-3.1-8b-instant
  api_key_env: MY_LLM_KEY
formatting:
  chain: [remote, local]
  remote_url: http://fmt.internal/format
allowed_origins: ["http://localhost:5173"]
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "GROQ_API_KEY",
        "MY_LLM_KEY",
        "TESTGEN_CONFIG",
        "TESTGEN_LLM_BASE_URL",
        "TESTGEN_LLM_MODEL",
        "TESTGEN_FORMATTER_URL",
    ):
        monkeypatch.delenv(var, raising=False)


def test_load_config_reads_yaml_and_credential(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    monkeypatch.setenv("MY_LLM_KEY", "sk-test")

    config = load_config(str(path))

    assert config.llm.model == "llama-3.1-8b-instant"
    assert config.llm.base_url == "https://api.groq.com/openai/v1"
    assert config.llm.api_key.get_secret_value() == "sk-test"
    assert config.formatting.chain == ["remote", "local"]
    assert config.formatting.remote_url == "http://fmt.internal/format"
    assert config.allowed_origins == ["http://localhost:5173"]


def test_missing_credential_loads_as_none(tmp_path, monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("")

    config = load_config(str(path))

    assert config.llm.api_key is None
    assert config.llm.api_key_env == "GROQ_API_KEY"


def test_environment_overrides(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    monkeypatch.setenv("TESTGEN_LLM_BASE_URL", "http://localhost:11434/v1/")
    monkeypatch.setenv("TESTGEN_LLM_MODEL", "mistral")
    monkeypatch.setenv("TESTGEN_FORMATTER_URL", "http://other/format")

    config = load_config(str(path))

    assert config.llm.base_url == "http://localhost:11434/v1"
    assert config.llm.model == "mistral"
    assert config.formatting.remote_url == "http://other/format"


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("llm:\n  model: custom-model\n")
    monkeypatch.setenv("TESTGEN_CONFIG", str(path))

    assert load_config().llm.model == "custom-model"


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_defaults():
    config = EngineConfig()

    assert config.llm.model == "llama-3.3-70b-versatile"
    assert config.llm.temperature == 0.3
    assert config.formatting.chain == ["local", "remote"]
    assert config.allowed_origins == ["*"]


def test_blank_base_url_rejected():
    with pytest.raises(ValidationError):
        LLMConfig(base_url="  ")


@pytest.mark.parametrize("chain", [["local", "local"], ["prettier"]])
def test_bad_chain_rejected(chain):
    with pytest.raises(ValidationError):
        FormattingConfig(chain=chain)


@pytest.mark.parametrize("template", ["No placeholder", "{description} with {other}", "{description} {"])
def test_bad_prompt_template_rejected(template):
    with pytest.raises(ValidationError):
        PromptConfig(user=template)
