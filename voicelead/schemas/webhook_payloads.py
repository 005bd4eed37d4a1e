"""
Webhook payload schemas - the voice provider's post-call callback shapes.
Every variant is normalized into the canonical dict shape before processing:

    {
        "conversation_initiation_client_data": {
            "dynamic_variables": {"system__conversation_id": ..., "system__agent_id": ..., ...}
        },
        "analysis": {...},   # optional
    }
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Canonical container keys
CLIENT_DATA_KEY = "conversation_initiation_client_data"
DYNAMIC_VARIABLES_KEY = "dynamic_variables"
ANALYSIS_KEY = "analysis"
DATA_COLLECTION_KEY = "data_collection_results"

# Dynamic variable keys
CONVERSATION_ID = "system__conversation_id"
AGENT_ID = "system__agent_id"
CALLER_ID = "system__caller_id"
CALLED_NUMBER = "system__called_number"
CALL_DURATION_SECS = "system__call_duration_secs"
TIME_UTC = "system__time_utc"
CALL_TYPE = "system__call_type"

# Oldest flat format: top-level scalar -> dynamic variable
FLAT_FIELD_MAP = {
    "conversation_id": CONVERSATION_ID,
    "agent_id": AGENT_ID,
    "phone_number": CALLER_ID,
    "duration_seconds": CALL_DURATION_SECS,
    "timestamp": TIME_UTC,
}


class PayloadFormat(str, Enum):
    """Known historical wire formats of the post-call webhook."""
    WRAPPED_V2 = "wrapped_v2"      # {type, event_timestamp, data: {...}}
    LEGACY_V1 = "legacy_v1"        # {conversation_initiation_client_data: {...}, analysis: {...}}
    FLAT_V0 = "flat_v0"            # {conversation_id, agent_id, phone_number, duration_seconds, timestamp}
    UNRECOGNIZED = "unrecognized"


def _coerce_text(value: Any) -> Optional[str]:
    """Scalars become strings; containers and empty strings become None."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    if isinstance(value, bool):
        return str(value).lower()
    text = str(value).strip()
    return text or None


def coerce_duration_secs(value: Any) -> int:
    """Non-negative whole seconds; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        secs = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(secs, 0)


class DynamicVariables(BaseModel):
    """
    Typed view over canonical dynamic_variables.
    Validation never fails: unusable values fall back to None / 0.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    conversation_id: Optional[str] = Field(default=None, validation_alias=CONVERSATION_ID)
    agent_id: Optional[str] = Field(default=None, validation_alias=AGENT_ID)
    caller_id: Optional[str] = Field(default=None, validation_alias=CALLER_ID)
    called_number: Optional[str] = Field(default=None, validation_alias=CALLED_NUMBER)
    call_duration_secs: int = Field(default=0, validation_alias=CALL_DURATION_SECS)
    time_utc: Optional[Any] = Field(default=None, validation_alias=TIME_UTC)
    call_type: Optional[str] = Field(default=None, validation_alias=CALL_TYPE)
    caller_email: Optional[str] = None
    caller_name: Optional[str] = None

    @field_validator(
        "conversation_id", "agent_id", "caller_id", "called_number",
        "call_type", "caller_email", "caller_name",
        mode="before",
    )
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return _coerce_text(value)

    @field_validator("call_duration_secs", mode="before")
    @classmethod
    def _duration(cls, value: Any) -> int:
        return coerce_duration_secs(value)

    @classmethod
    def from_mapping(cls, mapping: Any) -> "DynamicVariables":
        if not isinstance(mapping, dict):
            mapping = {}
        return cls.model_validate(mapping)
