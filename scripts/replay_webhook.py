"""
Replay a post-call webhook through the processing pipeline locally.

Usage:
    python scripts/replay_webhook.py path/to/payload.json
    python scripts/replay_webhook.py --sample wrapped
    python scripts/replay_webhook.py --sample flat --log-level DEBUG
"""
import argparse
import json
import logging
import sys

from voicelead.config import get_settings
from voicelead.services.webhook_pipeline import process_webhook_payload
from voicelead.utils.logging import (
    configure_structured_logging,
    correlation_scope,
)

logger = logging.getLogger(__name__)

SAMPLE_BLOB = (
    "{'intent_level': 'High', 'intent_score': 3, 'urgency_level': 'Medium', 'urgency_score': 2, "
    "'budget_constraint': 'Maybe', 'budget_score': 2, 'fit_alignment': 'High', 'fit_score': 3, "
    "'engagement_health': 'Good', 'engagement_score': 2, 'total_score': 85, "
    "'lead_status_tag': 'Hot Lead', 'reasoning': \"Asked for a demo and pricing\", "
    "'cta_pricing_clicked': 'Yes', 'cta_demo_clicked': 'Yes', 'cta_followup_clicked': 'No', "
    "'cta_sample_clicked': 'No', 'cta_escalated_to_human': 'No', 'demo_book_datetime': None,}"
)

SAMPLES = {
    "wrapped": {
        "type": "post_call_transcription",
        "event_timestamp": 1640995200,
        "data": {
            "conversation_id": "conv_sample_wrapped",
            "agent_id": "agent_sample",
            "conversation_initiation_client_data": {
                "dynamic_variables": {
                    "system__conversation_id": "conv_sample_wrapped",
                    "system__agent_id": "agent_sample",
                    "system__caller_id": "+15125559876",
                    "system__call_duration_secs": 184,
                    "system__time_utc": "2024-01-01T12:00:00Z",
                },
            },
            "analysis": {
                "call_successful": "success",
                "call_summary_title": "Demo requested",
                "transcript_summary": "Caller asked for pricing and booked a demo.",
                "data_collection_results": {"default": {"value": SAMPLE_BLOB}},
            },
        },
    },
    "legacy": {
        "conversation_initiation_client_data": {
            "dynamic_variables": {
                "system__conversation_id": "conv_sample_legacy",
                "system__agent_id": "agent_sample",
                "system__caller_id": "internal",
            },
        },
        "analysis": {
            "call_successful": "true",
            "data_collection_results": {"Basic CTA": {"value": SAMPLE_BLOB}},
        },
    },
    "flat": {
        "conversation_id": "conv_sample_flat",
        "agent_id": "agent_sample",
        "phone_number": "+15125559876",
        "duration_seconds": 120,
        "timestamp": "2024-01-01T12:00:00Z",
    },
}


def load_payload(args: argparse.Namespace):
    if args.sample:
        return SAMPLES[args.sample]
    with open(args.path, encoding="utf-8") as f:
        return json.load(f)


def main() -> int:
    parser = argparse.ArgumentParser(description="Replay a post-call webhook through the pipeline")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("path", nargs="?", help="JSON file holding the raw webhook body")
    source.add_argument("--sample", choices=sorted(SAMPLES), help="Use a bundled sample payload")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL from settings")
    args = parser.parse_args()

    configure_structured_logging(args.log_level or get_settings().log_level)
    payload = load_payload(args)
    with correlation_scope():
        result = process_webhook_payload(payload)
        print(result.model_dump_json(by_alias=True, indent=2))

        if not result.is_valid:
            logger.warning("Payload invalid: %s", "; ".join(result.errors))
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
