"""
Call metadata extraction - canonical contact and timing facts for the call record.
Runs on every payload, even when analysis decoding failed, and never raises.
"""
import logging
import re
from typing import Any, Optional

from voicelead.config import Settings, get_settings
from voicelead.schemas.lead_analysis import CallMetadata, ContactInfo
from voicelead.schemas.webhook_payloads import (
    ANALYSIS_KEY,
    CLIENT_DATA_KEY,
    DYNAMIC_VARIABLES_KEY,
    DynamicVariables,
)
from voicelead.utils.timestamps import Clock, canonicalize_timestamp, to_iso_utc, utc_now

logger = logging.getLogger(__name__)

_PHONE_LIKE = re.compile(r"^[+]?[0-9\-()\s]+$")

# system__call_type values that mean the conversation happened in a browser widget
WEB_CALL_TYPES = {"web", "browser"}


def _dynamic_variables(payload: Any) -> DynamicVariables:
    client_data = payload.get(CLIENT_DATA_KEY) if isinstance(payload, dict) else None
    mapping = client_data.get(DYNAMIC_VARIABLES_KEY) if isinstance(client_data, dict) else None
    return DynamicVariables.from_mapping(mapping)


def looks_like_phone_number(value: Optional[str]) -> bool:
    return bool(value) and bool(_PHONE_LIKE.match(value))


def determine_call_source(dynamic_vars: DynamicVariables, internal_caller_id: str = "internal") -> str:
    """
    Classify where the conversation came from.

    Explicit web/browser call types win; then a phone-shaped caller id means
    "phone"; the internal caller id means "internet"; anything else is "unknown".
    """
    if dynamic_vars.call_type and dynamic_vars.call_type.lower() in WEB_CALL_TYPES:
        return "internet"
    caller_id = dynamic_vars.caller_id
    if caller_id and caller_id != internal_caller_id and looks_like_phone_number(caller_id):
        return "phone"
    if caller_id == internal_caller_id:
        return "internet"
    return "unknown"


def extract_contact_info(dynamic_vars: DynamicVariables, internal_caller_id: str = "internal") -> Optional[ContactInfo]:
    """Real contact details from dynamic variables, or None when there are none."""
    caller_id = dynamic_vars.caller_id
    phone_number = caller_id if caller_id != internal_caller_id and looks_like_phone_number(caller_id) else None
    if not (phone_number or dynamic_vars.caller_email or dynamic_vars.caller_name):
        return None
    return ContactInfo(
        phone_number=phone_number,
        email=dynamic_vars.caller_email,
        name=dynamic_vars.caller_name,
    )


def extract_call_metadata(
    payload: Any,
    clock: Clock = utc_now,
    settings: Optional[Settings] = None,
) -> CallMetadata:
    """
    Derive CallMetadata from a canonical payload.

    call_duration_minutes is floor(secs / 60); call_type is "internal" iff the
    caller id is the internal marker, else "phone".
    """
    settings = settings or get_settings()
    internal = settings.default_caller_id
    dynamic_vars = _dynamic_variables(payload)

    caller_id = dynamic_vars.caller_id or internal
    analysis = payload.get(ANALYSIS_KEY) if isinstance(payload, dict) else None
    summary_title = analysis.get("call_summary_title") if isinstance(analysis, dict) else None

    metadata = CallMetadata(
        conversation_id=dynamic_vars.conversation_id,
        agent_id=dynamic_vars.agent_id,
        caller_id=caller_id,
        called_number=dynamic_vars.called_number,
        call_duration_secs=dynamic_vars.call_duration_secs,
        call_duration_minutes=dynamic_vars.call_duration_secs // 60,
        call_timestamp=canonicalize_timestamp(dynamic_vars.time_utc),
        call_type="internal" if caller_id == internal else "phone",
        call_source=determine_call_source(dynamic_vars, internal),
        call_analysis_summary=summary_title if isinstance(summary_title, str) else None,
        contact_info=extract_contact_info(dynamic_vars, internal),
        analysis_received_at=to_iso_utc(clock()),
    )

    logger.debug(
        "Extracted call metadata: type=%s source=%s duration=%ss",
        metadata.call_type, metadata.call_source, metadata.call_duration_secs,
        extra={"stage": "extract_metadata", "conversation_id": metadata.conversation_id},
    )
    return metadata
