"""
Analysis blob decoder - turns the provider's lead-scoring blob into a ParsedAnalysis.

The blob lives at analysis.data_collection_results.<key>.value, where <key> depends
on how the agent's data collection was configured ("default", "Basic CTA", ...).
Its text is a dict literal, not JSON; see voicelead.utils.dict_literal.
"""
import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from voicelead.config import Settings, get_settings
from voicelead.errors import DecodeError
from voicelead.schemas.lead_analysis import CtaInteractions, LeadExtraction, ParsedAnalysis
from voicelead.schemas.webhook_payloads import ANALYSIS_KEY, DATA_COLLECTION_KEY
from voicelead.utils.dict_literal import DictLiteralError, parse_dict_literal

logger = logging.getLogger(__name__)

CTA_FIELDS = tuple(CtaInteractions.model_fields)

SCORING_FIELDS = (
    "intent_level",
    "intent_score",
    "urgency_level",
    "urgency_score",
    "budget_constraint",
    "budget_score",
    "fit_alignment",
    "fit_score",
    "engagement_health",
    "engagement_score",
    "total_score",
    "lead_status_tag",
    "reasoning",
    "demo_book_datetime",
)


def _has_blob(entry: Any) -> bool:
    return isinstance(entry, dict) and isinstance(entry.get("value"), (str, dict)) and bool(entry.get("value"))


def find_analysis_blob(payload: Any, settings: Optional[Settings] = None) -> Optional[tuple[str, Any]]:
    """
    Locate the scoring blob in data_collection_results.

    Configured keys are tried in priority order, then any other key in payload order.

    Returns:
        (key, value) of the first entry with a non-empty value, or None when the
        provider did not run scoring for this call.
    """
    settings = settings or get_settings()
    if not isinstance(payload, dict):
        return None
    analysis = payload.get(ANALYSIS_KEY)
    if not isinstance(analysis, dict):
        return None
    results = analysis.get(DATA_COLLECTION_KEY)
    if not isinstance(results, dict):
        return None

    ordered = list(settings.analysis_container_keys)
    ordered.extend(key for key in results if key not in ordered)
    for key in ordered:
        entry = results.get(key)
        if _has_blob(entry):
            return key, entry["value"]

    logger.debug("No analysis blob found. Available keys: %s", ", ".join(map(str, results)))
    return None


def _yes(value: Any) -> bool:
    """Only an exact case-insensitive "yes" counts; padded strings do not. True is accepted from pre-decoded blobs."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.lower() == "yes"


def _call_successful(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _optional_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _extraction(blob: dict) -> Optional[LeadExtraction]:
    extraction = blob.get("extraction")
    if not isinstance(extraction, dict):
        return None
    return LeadExtraction(
        name=extraction.get("name"),
        email_address=extraction.get("email_address"),
        company_name=extraction.get("company_name"),
        phone_number=extraction.get("phone_number"),
        smart_notification=extraction.get("smartnotification", extraction.get("smart_notification")),
    )


def decode_analysis(payload: Any, settings: Optional[Settings] = None) -> Optional[ParsedAnalysis]:
    """
    Decode the analysis blob of a canonical payload.

    Returns:
        ParsedAnalysis, or None when no analysis container exists.

    Raises:
        DecodeError when a blob exists but its text or field types are unusable.
    """
    settings = settings or get_settings()
    found = find_analysis_blob(payload, settings)
    if found is None:
        return None

    key, value = found
    preview = value[: settings.blob_preview_chars] if isinstance(value, str) else None

    if isinstance(value, dict):
        blob = value
    else:
        try:
            blob = parse_dict_literal(value)
        except DictLiteralError as e:
            logger.warning(
                "Failed to decode analysis blob: %s", e,
                extra={"stage": "decode_analysis", "analysis_key": key},
            )
            raise DecodeError(f"Failed to parse analysis data from '{key}': {e}", snippet=preview) from e

    if not isinstance(blob, dict):
        raise DecodeError(
            f"Analysis data from '{key}' is a {type(blob).__name__}, expected a mapping",
            snippet=preview,
        )

    analysis = payload[ANALYSIS_KEY]
    try:
        parsed = ParsedAnalysis(
            **{field: blob.get(field) for field in SCORING_FIELDS},
            cta_interactions=CtaInteractions(**{field: _yes(blob.get(field)) for field in CTA_FIELDS}),
            extraction=_extraction(blob),
            call_successful=_call_successful(analysis.get("call_successful")),
            transcript_summary=_optional_text(analysis.get("transcript_summary")),
            call_summary_title=_optional_text(analysis.get("call_summary_title")),
            analysis_source=settings.analysis_source,
            analysis_key=key,
            raw_analysis_data=analysis,
        )
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        logger.warning(
            "Analysis blob has unusable field types: %s", problems,
            extra={"stage": "decode_analysis", "analysis_key": key},
        )
        raise DecodeError(f"Invalid analysis field types in '{key}': {problems}", snippet=preview) from e

    logger.debug(
        "Decoded analysis from key %s (total_score=%s)", key, parsed.total_score,
        extra={"stage": "decode_analysis", "analysis_key": key},
    )
    return parsed
