"""
Webhook format normalizer - detects which historical wire format arrived
and rewrites it into the canonical shape.

Formats, in detection priority:
1. WRAPPED_V2: {type, event_timestamp, data: {conversation_id, agent_id, conversation_initiation_client_data, analysis}}
2. LEGACY_V1: {conversation_initiation_client_data: {dynamic_variables: {...}}, analysis: {...}}
3. FLAT_V0: {conversation_id, agent_id, phone_number, duration_seconds, timestamp}
Anything else is UNRECOGNIZED and passes through for the repairer.

Never raises and never mutates its input.
"""
import copy
import logging
from typing import Any

from voicelead.schemas.webhook_payloads import (
    AGENT_ID,
    CALL_DURATION_SECS,
    CALLER_ID,
    CLIENT_DATA_KEY,
    CONVERSATION_ID,
    DYNAMIC_VARIABLES_KEY,
    FLAT_FIELD_MAP,
    TIME_UTC,
    PayloadFormat,
)
from voicelead.utils.timestamps import canonicalize_timestamp

logger = logging.getLogger(__name__)


def classify_payload(payload: Any) -> PayloadFormat:
    """Identify the wire format by structure alone."""
    if not isinstance(payload, dict):
        return PayloadFormat.UNRECOGNIZED
    if payload.get("type") and isinstance(payload.get("data"), dict):
        return PayloadFormat.WRAPPED_V2
    client_data = payload.get(CLIENT_DATA_KEY)
    if isinstance(client_data, dict) and DYNAMIC_VARIABLES_KEY in client_data:
        return PayloadFormat.LEGACY_V1
    if CLIENT_DATA_KEY not in payload and payload.get("conversation_id"):
        return PayloadFormat.FLAT_V0
    return PayloadFormat.UNRECOGNIZED


def _normalize_wrapped(payload: dict) -> dict:
    """Lift data.* to the top level and keep the envelope fields alongside."""
    data = copy.deepcopy(payload["data"])
    normalized = {
        **data,
        "webhook_type": payload.get("type"),
        "event_timestamp": payload.get("event_timestamp"),
    }

    client_data = normalized.get(CLIENT_DATA_KEY)
    if not isinstance(client_data, dict):
        metadata = normalized.get("metadata")
        if isinstance(metadata, dict):
            # Older wrapped deliveries omit client data; rebuild it from call metadata
            normalized[CLIENT_DATA_KEY] = {
                DYNAMIC_VARIABLES_KEY: _dynamic_variables_from_metadata(normalized, metadata),
            }
        return normalized

    dynamic_vars = client_data.get(DYNAMIC_VARIABLES_KEY)
    if isinstance(dynamic_vars, dict):
        if not dynamic_vars.get(CONVERSATION_ID) and normalized.get("conversation_id"):
            dynamic_vars[CONVERSATION_ID] = normalized["conversation_id"]
        if not dynamic_vars.get(AGENT_ID) and normalized.get("agent_id"):
            dynamic_vars[AGENT_ID] = normalized["agent_id"]
    return normalized


def _dynamic_variables_from_metadata(normalized: dict, metadata: dict) -> dict:
    dynamic_vars = {}
    if normalized.get("conversation_id"):
        dynamic_vars[CONVERSATION_ID] = normalized["conversation_id"]
    if normalized.get("agent_id"):
        dynamic_vars[AGENT_ID] = normalized["agent_id"]
    if metadata.get("phone_number"):
        dynamic_vars[CALLER_ID] = metadata["phone_number"]
    if metadata.get("call_duration_secs") is not None:
        dynamic_vars[CALL_DURATION_SECS] = metadata["call_duration_secs"]
    if metadata.get("start_time_unix_secs") is not None:
        dynamic_vars[TIME_UTC] = canonicalize_timestamp(metadata["start_time_unix_secs"])
    return dynamic_vars


def _normalize_flat(payload: dict) -> dict:
    """Synthesize the nested container from top-level scalars."""
    normalized = copy.deepcopy(payload)
    dynamic_vars = {
        target: payload[source]
        for source, target in FLAT_FIELD_MAP.items()
        if payload.get(source) is not None
    }
    normalized[CLIENT_DATA_KEY] = {DYNAMIC_VARIABLES_KEY: dynamic_vars}
    return normalized


def normalize_webhook_variations(payload: Any) -> tuple[PayloadFormat, Any]:
    """
    Normalize any supported webhook variant into the canonical shape.

    Returns:
        Tuple of (detected format, normalized payload). Unrecognized payloads
        come back as an unmodified copy (non-dict input is returned as-is).
    """
    payload_format = classify_payload(payload)
    logger.debug(
        "Detected webhook format: %s", payload_format.value,
        extra={"payload_format": payload_format.value, "stage": "normalize"},
    )

    if payload_format is PayloadFormat.WRAPPED_V2:
        return payload_format, _normalize_wrapped(payload)
    if payload_format is PayloadFormat.LEGACY_V1:
        return payload_format, copy.deepcopy(payload)
    if payload_format is PayloadFormat.FLAT_V0:
        return payload_format, _normalize_flat(payload)

    logger.warning(
        "Unknown webhook format, passing through to repair",
        extra={"payload_format": payload_format.value, "stage": "normalize"},
    )
    return payload_format, copy.deepcopy(payload) if isinstance(payload, dict) else payload
