"""
Test configuration and fixtures.
Stages run for real: tests inject a frozen clock and explicit settings instead of patching.
"""
from datetime import datetime, timezone

import pytest

from voicelead.config import Settings

FROZEN_NOW = datetime(2024, 3, 15, 9, 30, 0, 123000, tzinfo=timezone.utc)
FROZEN_MILLIS = 1710495000123
FROZEN_ISO = "2024-03-15T09:30:00.123000Z"


SAMPLE_BLOB = """{
    'intent_level': 'High',
    'intent_score': 3,
    'urgency_level': 'Medium',
    'urgency_score': 2,
    'budget_constraint': 'Low',
    'budget_score': 1,
    'fit_alignment': 'High',
    'fit_score': 3,
    'engagement_health': 'Good',
    'engagement_score': 2,
    'total_score': 85,
    'lead_status_tag': 'Hot Lead',
    'reasoning': 'Customer shows high interest',
    'cta_pricing_clicked': 'Yes',
    'cta_demo_clicked': 'No',
    'cta_followup_clicked': 'Yes',
    'cta_sample_clicked': 'No',
    'cta_escalated_to_human': 'No'
}"""


@pytest.fixture
def clock():
    """A clock frozen at FROZEN_NOW."""
    return lambda: FROZEN_NOW


@pytest.fixture
def frozen_millis():
    return FROZEN_MILLIS


@pytest.fixture
def frozen_iso():
    return FROZEN_ISO


@pytest.fixture
def settings():
    """Default settings, isolated from any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def sample_blob():
    return SAMPLE_BLOB


@pytest.fixture
def analysis_section():
    """Builds an analysis object holding one blob under the given key."""
    def _build(value=SAMPLE_BLOB, key="default", **extra):
        section = {
            "data_collection_results": {key: {"value": value}},
            "call_successful": "true",
            "transcript_summary": "Customer interested in product",
            "call_summary_title": "Successful sales call",
        }
        section.update(extra)
        return section
    return _build


@pytest.fixture
def wrapped_payload():
    return {
        "type": "post_call_transcription",
        "event_timestamp": 1640995200,
        "data": {
            "conversation_id": "c1",
            "agent_id": "a1",
            "conversation_initiation_client_data": {
                "dynamic_variables": {
                    "system__conversation_id": "c1",
                    "system__agent_id": "a1",
                    "system__caller_id": "+15551234567",
                    "system__call_duration_secs": 120,
                    "system__time_utc": "2024-01-01T12:00:00Z",
                },
            },
        },
    }


@pytest.fixture
def legacy_payload():
    return {
        "conversation_initiation_client_data": {
            "dynamic_variables": {
                "system__conversation_id": "c1",
                "system__agent_id": "a1",
                "system__caller_id": "+15551234567",
                "system__call_duration_secs": 120,
                "system__time_utc": "2024-01-01T12:00:00Z",
            },
        },
    }


@pytest.fixture
def flat_payload():
    return {
        "conversation_id": "c1",
        "agent_id": "a1",
        "phone_number": "+15551234567",
        "duration_seconds": 120,
        "timestamp": "2024-01-01T12:00:00Z",
    }
