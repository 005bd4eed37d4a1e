"""
Typed failures raised inside the webhook pipeline.

Stages raise these; the orchestrator catches every one of them and records
its message on the ProcessingResult instead of letting it reach the caller.
"""
from typing import Optional


class PipelineError(Exception):
    """Base class for every recoverable pipeline failure."""


class StructuralError(PipelineError):
    """Required identifying fields are missing after repair."""

    def __init__(self, messages: list[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class DecodeError(PipelineError):
    """The analysis blob exists but could not be turned into structured data."""

    def __init__(self, message: str, snippet: Optional[str] = None):
        self.snippet = snippet
        if snippet is not None:
            message = f"{message} (blob: {snippet!r})"
        super().__init__(message)


class ValidationError(PipelineError):
    """Decoded analysis violates score ranges or required-field rules."""

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))
