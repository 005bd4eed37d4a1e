"""
Lead analysis and processing result schemas.
Attributes are snake_case; model_dump(by_alias=True) yields the camelCase wire names
downstream consumers read (isValid, analysisData, callMetadata, ...).
"""
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from voicelead.schemas.webhook_payloads import PayloadFormat

_RECORD_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AnalysisStatus(str, Enum):
    """Terminal analysis state of one pipeline run."""
    DECODED = "decoded"
    ABSENT = "absent"
    FAILED = "failed"


class CtaInteractions(BaseModel):
    """Call-to-action flags, each derived from a Yes/No string in the blob."""
    model_config = _RECORD_CONFIG

    cta_pricing_clicked: bool = False
    cta_demo_clicked: bool = False
    cta_followup_clicked: bool = False
    cta_sample_clicked: bool = False
    cta_escalated_to_human: bool = False
    cta_website_clicked: bool = False


class LeadExtraction(BaseModel):
    """Contact details the provider extracted from the conversation."""
    model_config = _RECORD_CONFIG

    name: Optional[str] = None
    email_address: Optional[str] = None
    company_name: Optional[str] = None
    phone_number: Optional[str] = None
    smart_notification: Optional[str] = None


class ParsedAnalysis(BaseModel):
    """Decoded lead-scoring blob. Ranges are checked separately so every violation is reported."""
    model_config = _RECORD_CONFIG

    intent_level: Optional[str] = None
    intent_score: Optional[int] = Field(default=None, description="1-3")
    urgency_level: Optional[str] = None
    urgency_score: Optional[int] = Field(default=None, description="1-3")
    budget_constraint: Optional[str] = None
    budget_score: Optional[int] = Field(default=None, description="1-3")
    fit_alignment: Optional[str] = None
    fit_score: Optional[int] = Field(default=None, description="1-3")
    engagement_health: Optional[str] = None
    engagement_score: Optional[int] = Field(default=None, description="1-3")
    total_score: Optional[int] = Field(default=None, description="0-100")
    lead_status_tag: Optional[str] = None
    reasoning: Optional[Union[str, dict[str, Any]]] = None

    cta_interactions: CtaInteractions = Field(default_factory=CtaInteractions)
    extraction: Optional[LeadExtraction] = None
    demo_book_datetime: Optional[str] = None

    # Copied from the sibling analysis object, not from the blob
    call_successful: Optional[str] = None
    transcript_summary: Optional[str] = None
    call_summary_title: Optional[str] = None

    analysis_source: str = "elevenlabs"
    analysis_key: Optional[str] = Field(default=None, description="data_collection_results key the blob came from")
    raw_analysis_data: Optional[dict[Any, Any]] = None


class ContactInfo(BaseModel):
    """Real contact details only; never placeholders."""
    model_config = _RECORD_CONFIG

    phone_number: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None


class CallMetadata(BaseModel):
    """Canonical call facts derived from dynamic variables. Always present on a result."""
    model_config = _RECORD_CONFIG

    conversation_id: Optional[str] = None
    agent_id: Optional[str] = None
    caller_id: str = "internal"
    called_number: Optional[str] = None
    call_duration_secs: int = 0
    call_duration_minutes: int = 0
    call_timestamp: Optional[str] = None
    call_type: str = Field(default="internal", description="internal or phone")
    call_source: str = Field(default="unknown", description="phone, internet or unknown")
    call_analysis_summary: Optional[str] = None
    contact_info: Optional[ContactInfo] = None
    analysis_received_at: Optional[str] = None


class ProcessingResult(BaseModel):
    """The pipeline's sole output, built once per invocation."""
    model_config = _RECORD_CONFIG

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    analysis_data: Optional[ParsedAnalysis] = None
    call_metadata: CallMetadata
    normalized_data: dict[Any, Any] = Field(default_factory=dict, description="Canonical payload; keys are whatever the provider sent")
    payload_format: PayloadFormat = PayloadFormat.UNRECOGNIZED
    analysis_status: AnalysisStatus = AnalysisStatus.ABSENT
