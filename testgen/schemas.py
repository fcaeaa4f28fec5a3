"""Request/response models — the contract between the generator and clients."""

from typing import Literal

from pydantic import BaseModel, field_validator


class ScenarioRequest(BaseModel):
    """Incoming request body. A missing description is treated as blank and
    rejected by the orchestrator, not by request parsing."""

    description: str = ""


class ExtractedResult(BaseModel):
    """The structured answer recovered from the model's reply.

    steps — ordered, human-readable test steps (at least one)
    code  — the generated Java source, possibly with literal escape sequences
    """

    steps: list[str]
    code: str

    @field_validator("steps")
    @classmethod
    def must_have_steps(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("steps must contain at least one entry")
        return v

    @field_validator("code")
    @classmethod
    def must_have_code(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("code must not be empty")
        return v


class CodeRequest(BaseModel):
    """Body for /format and /download."""

    code: str = ""


class FormattedCode(BaseModel):
    """Output of the formatting chain.

    formatter — which step produced the text
    degraded  — true when neither the local nor the remote formatter succeeded
    """

    formatted: str
    formatter: Literal["local", "remote", "heuristic", "none"]
    degraded: bool = False
