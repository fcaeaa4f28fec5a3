"""Prompt construction — turns a scenario description into chat messages.

The user template is rendered with ``str.format``; literal braces in a
template must be doubled (``{{`` / ``}}``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

if TYPE_CHECKING:
    from testgen.config import PromptConfig

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert Java Selenium test automation engineer.\n"
    "Generate a complete Java Selenium test case with TestNG framework "
    "and return ONLY JSON."
)

DEFAULT_USER_TEMPLATE = """Description: {description}

Provide strictly this JSON structure with no extra text:
{{"steps": ["step 1", "step 2", "step 3"], "code": "<complete Java code>"}}

Constraints:
- Use TestNG annotations (@BeforeMethod, @Test, @AfterMethod)
- Use WebDriverWait (explicit waits)
- Modern Selenium (Duration)
- Strong assertions and comments."""


@dataclass(frozen=True)
class ModelPrompt:
    system: str
    user: str

    def messages(self) -> list[BaseMessage]:
        return [SystemMessage(content=self.system), HumanMessage(content=self.user)]


def build_prompt(description: str, settings: PromptConfig | None = None) -> ModelPrompt:
    """Substitute the description into the user template.

    Template: "Description: {description} ..."
    Data:     "Test login with valid credentials"
    Result:   "Description: Test login with valid credentials ..."
    """
    system = settings.system if settings else DEFAULT_SYSTEM_PROMPT
    template = settings.user if settings else DEFAULT_USER_TEMPLATE
    return ModelPrompt(system=system, user=template.format(description=description.strip()))
