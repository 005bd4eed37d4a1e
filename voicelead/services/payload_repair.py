"""
Malformed payload repair - guarantees the minimum canonical shape.
Missing containers are created and missing identifiers get safe defaults so
every later stage can assume dynamic_variables exists.
"""
import copy
import logging
from typing import Any, Optional

from voicelead.config import Settings, get_settings
from voicelead.schemas.webhook_payloads import (
    AGENT_ID,
    CALL_DURATION_SECS,
    CALLER_ID,
    CLIENT_DATA_KEY,
    CONVERSATION_ID,
    DYNAMIC_VARIABLES_KEY,
    TIME_UTC,
)
from voicelead.utils.timestamps import Clock, epoch_millis, to_iso_utc, utc_now

logger = logging.getLogger(__name__)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def repair_malformed_payload(
    payload: Any,
    clock: Clock = utc_now,
    settings: Optional[Settings] = None,
) -> dict:
    """
    Fill in missing substructures and identifier defaults.

    - Non-dict input becomes a fresh container
    - conversation_initiation_client_data / dynamic_variables are created if absent
    - system__conversation_id defaults to "<prefix><epoch millis>"
    - system__agent_id defaults to settings.fallback_agent_id (unless that is empty)
    - system__caller_id defaults to "internal"
    - system__call_duration_secs defaults to 0 (negatives too)
    - system__time_utc defaults to the clock's current time

    Never raises. The input is not mutated.
    """
    settings = settings or get_settings()

    if not isinstance(payload, dict):
        logger.warning("Webhook data is not a valid object, creating minimal structure", extra={"stage": "repair"})
        repaired: dict = {}
    else:
        repaired = copy.deepcopy(payload)

    if not isinstance(repaired.get(CLIENT_DATA_KEY), dict):
        logger.warning("Missing %s, creating empty structure", CLIENT_DATA_KEY, extra={"stage": "repair"})
        repaired[CLIENT_DATA_KEY] = {}

    client_data = repaired[CLIENT_DATA_KEY]
    if not isinstance(client_data.get(DYNAMIC_VARIABLES_KEY), dict):
        logger.warning("Missing %s, creating empty object", DYNAMIC_VARIABLES_KEY, extra={"stage": "repair"})
        client_data[DYNAMIC_VARIABLES_KEY] = {}

    dynamic_vars = client_data[DYNAMIC_VARIABLES_KEY]
    now = clock()

    if _is_missing(dynamic_vars.get(CONVERSATION_ID)):
        # TODO: append a random suffix if two malformed deliveries can land in the same millisecond
        fallback_id = f"{settings.fallback_conversation_prefix}{epoch_millis(now)}"
        logger.warning(
            "Missing %s, generated fallback %s", CONVERSATION_ID, fallback_id,
            extra={"stage": "repair", "conversation_id": fallback_id},
        )
        dynamic_vars[CONVERSATION_ID] = fallback_id

    if _is_missing(dynamic_vars.get(AGENT_ID)):
        if settings.fallback_agent_id:
            logger.warning(
                "Missing %s, defaulting to %s", AGENT_ID, settings.fallback_agent_id,
                extra={"stage": "repair", "conversation_id": dynamic_vars[CONVERSATION_ID]},
            )
            dynamic_vars[AGENT_ID] = settings.fallback_agent_id
        else:
            logger.warning(
                "Missing %s, this call cannot be attributed to an agent", AGENT_ID,
                extra={"stage": "repair", "conversation_id": dynamic_vars[CONVERSATION_ID]},
            )

    if dynamic_vars.get(CALLER_ID) is None:
        logger.debug("Missing caller_id, setting to %s", settings.default_caller_id)
        dynamic_vars[CALLER_ID] = settings.default_caller_id

    duration = dynamic_vars.get(CALL_DURATION_SECS)
    if duration is None or (isinstance(duration, (int, float)) and not isinstance(duration, bool) and duration < 0):
        logger.debug("Missing or negative call duration, setting to 0")
        dynamic_vars[CALL_DURATION_SECS] = 0

    if _is_missing(dynamic_vars.get(TIME_UTC)):
        logger.debug("Missing call timestamp, using processing time")
        dynamic_vars[TIME_UTC] = to_iso_utc(now)

    return repaired
