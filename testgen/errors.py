"""Error kinds raised by the generator pipeline.

Every error carries the HTTP status it maps to and renders itself into the
``{"error", "rawResponse", "parseError"}`` payload the client expects.
"""

from __future__ import annotations

from typing import Any


class GeneratorError(Exception):
    """Base class. Rendered by the exception handler in ``testgen.main``."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload(self) -> dict[str, Any]:
        return {"error": self.message}


class ConfigurationError(GeneratorError):
    """Required configuration (the API credential) is missing."""

    status_code = 500


class ValidationError(GeneratorError):
    """The user's input is unusable. Shown to the user as a correctable mistake."""

    status_code = 400


class UpstreamError(GeneratorError):
    """The LLM provider answered with a non-success status or was unreachable."""

    status_code = 502

    def __init__(self, status: int | None, body: str):
        if status is None:
            message = f"LLM provider unreachable: {body}"
        else:
            message = f"LLM provider error: {status} - {body}"
        super().__init__(message)
        self.status = status
        self.body = body

    def payload(self) -> dict[str, Any]:
        return {"error": self.message, "rawResponse": self.body}


class ResponseFormatError(GeneratorError):
    """The model answered, but not in a usable shape."""

    status_code = 500


class ExtractionError(ResponseFormatError):
    """No JSON object could be recovered from the model text."""

    def __init__(self, raw_text: str, parse_error: str):
        super().__init__("Failed to parse AI response, please try again")
        self.raw_text = raw_text
        self.parse_error = parse_error

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "rawResponse": self.raw_text,
            "parseError": self.parse_error,
        }


class SchemaError(ResponseFormatError):
    """JSON was recovered but lacks a usable ``steps`` or ``code``."""

    def __init__(self, parsed: Any, detail: str):
        super().__init__("Invalid response format from AI, please try again")
        self.parsed = parsed
        self.detail = detail

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "rawResponse": self.parsed,
            "parseError": self.detail,
        }
