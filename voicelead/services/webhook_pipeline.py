"""
Post-call webhook processing pipeline.

Flow:
RECEIVED -> NORMALIZED -> REPAIRED -> STRUCTURE_CHECKED
         -> ANALYSIS_DECODED | ANALYSIS_ABSENT | ANALYSIS_FAILED
         -> METADATA_EXTRACTED -> DONE

Structural, decode and validation failures are recorded on the result and the
run continues; call metadata is always extracted. Nothing is raised to the
caller, performs I/O, or is shared between invocations.
"""
import logging
from enum import Enum
from typing import Any, Optional

from voicelead.config import Settings, get_settings
from voicelead.errors import DecodeError, StructuralError, ValidationError
from voicelead.schemas.lead_analysis import AnalysisStatus, CallMetadata, ParsedAnalysis, ProcessingResult
from voicelead.schemas.webhook_payloads import PayloadFormat
from voicelead.services.analysis_decoder import decode_analysis
from voicelead.services.call_metadata import extract_call_metadata
from voicelead.services.payload_normalizer import normalize_webhook_variations
from voicelead.services.payload_repair import repair_malformed_payload
from voicelead.services.payload_validation import validate_analysis_ranges, validate_payload_structure
from voicelead.utils.timestamps import Clock, to_iso_utc, utc_now

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    RECEIVED = "received"
    NORMALIZED = "normalized"
    REPAIRED = "repaired"
    STRUCTURE_CHECKED = "structure_checked"
    ANALYSIS_DECODED = "analysis_decoded"
    ANALYSIS_ABSENT = "analysis_absent"
    ANALYSIS_FAILED = "analysis_failed"
    METADATA_EXTRACTED = "metadata_extracted"
    DONE = "done"


class _Run:
    """Mutable bookkeeping for one invocation; frozen into a ProcessingResult at the end."""

    def __init__(self):
        self.state = PipelineState.RECEIVED
        self.errors: list[str] = []
        self.payload_format = PayloadFormat.UNRECOGNIZED
        self.normalized: Any = None
        self.analysis: Optional[ParsedAnalysis] = None
        self.analysis_status = AnalysisStatus.ABSENT

    def advance(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s -> %s", self.state.value, state.value, extra={"stage": state.value})
        self.state = state

    def record(self, stage: str, messages: list[str]) -> None:
        for message in messages:
            self.errors.append(f"{stage}: {message}")


def _decode_and_validate(run: _Run, settings: Settings) -> None:
    try:
        analysis = decode_analysis(run.normalized, settings)
        if analysis is None:
            run.advance(PipelineState.ANALYSIS_ABSENT)
            return
        validate_analysis_ranges(analysis)
    except DecodeError as e:
        run.record("Analysis parsing", [str(e)])
    except ValidationError as e:
        run.record("Analysis validation", e.violations)
    else:
        run.analysis = analysis
        run.analysis_status = AnalysisStatus.DECODED
        run.advance(PipelineState.ANALYSIS_DECODED)
        return

    run.analysis_status = AnalysisStatus.FAILED
    run.advance(PipelineState.ANALYSIS_FAILED)


def _run_stages(run: _Run, raw: Any, clock: Clock, settings: Settings) -> CallMetadata:
    run.payload_format, run.normalized = normalize_webhook_variations(raw)
    run.advance(PipelineState.NORMALIZED)

    run.normalized = repair_malformed_payload(run.normalized, clock, settings)
    run.advance(PipelineState.REPAIRED)

    try:
        validate_payload_structure(run.normalized)
    except StructuralError as e:
        logger.warning(
            "Payload structure validation failed: %s", e,
            extra={"stage": "validate_structure", "error_count": len(e.messages)},
        )
        run.record("Payload validation", e.messages)
    run.advance(PipelineState.STRUCTURE_CHECKED)

    _decode_and_validate(run, settings)

    metadata = extract_call_metadata(run.normalized, clock, settings)
    run.advance(PipelineState.METADATA_EXTRACTED)
    return metadata


def _failure_result(run: _Run, clock: Clock) -> ProcessingResult:
    """Minimal invalid result; only fields that cannot fail validation are carried over."""
    try:
        received_at = to_iso_utc(clock())
    except Exception:
        logger.exception("Injected clock failed, falling back to system time", extra={"stage": "fallback"})
        received_at = to_iso_utc(utc_now())
    return ProcessingResult(
        is_valid=False,
        errors=[str(error) for error in run.errors],
        call_metadata=CallMetadata(analysis_received_at=received_at, call_source="unknown"),
        normalized_data=run.normalized if isinstance(run.normalized, dict) else {},
        payload_format=run.payload_format,
        analysis_status=run.analysis_status,
    )


def process_webhook_payload(
    raw: Any,
    *,
    clock: Optional[Clock] = None,
    settings: Optional[Settings] = None,
) -> ProcessingResult:
    """
    Normalize, repair, validate and decode one post-call webhook payload.

    Args:
        raw: Parsed request body, in any known wire format (or garbage).
        clock: Time source for fallback ids and timestamps. Defaults to UTC now.
        settings: Overrides get_settings(), mainly for tests.

    Returns:
        ProcessingResult; is_valid is True only when no stage recorded an error.
    """
    clock = clock or utc_now
    settings = settings or get_settings()
    run = _Run()

    try:
        metadata = _run_stages(run, raw, clock, settings)
        result = ProcessingResult(
            is_valid=not run.errors,
            errors=run.errors,
            analysis_data=run.analysis,
            call_metadata=metadata,
            normalized_data=run.normalized,
            payload_format=run.payload_format,
            analysis_status=run.analysis_status,
        )
        run.advance(PipelineState.DONE)
    except Exception as e:
        # Stages are total; reaching this is a bug, but the caller still gets a result
        logger.exception(
            "Critical error in webhook payload processing at %s", run.state.value,
            extra={"stage": run.state.value},
        )
        run.errors.append(f"Processing error: {e}")
        return _failure_result(run, clock)

    logger.info(
        "Webhook payload processing completed: valid=%s analysis=%s errors=%d",
        result.is_valid, result.analysis_status.value, len(result.errors),
        extra={
            "conversation_id": metadata.conversation_id,
            "agent_id": metadata.agent_id,
            "payload_format": result.payload_format.value,
            "error_count": len(result.errors),
        },
    )
    return result
