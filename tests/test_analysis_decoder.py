"""
Tests for locating and decoding the lead-scoring blob.
"""
import pytest

from voicelead.config import Settings
from voicelead.errors import DecodeError
from voicelead.schemas.lead_analysis import ParsedAnalysis
from voicelead.services.analysis_decoder import decode_analysis, find_analysis_blob


def _payload(analysis: dict) -> dict:
    return {"analysis": analysis}


def _dict_literal(fields: dict) -> str:
    """Serialize the way the provider does: single quotes, bare None/True/False, trailing comma."""
    return repr(fields)[:-1] + ",}"


class TestFindAnalysisBlob:
    def test_default_key(self, analysis_section, sample_blob, settings):
        assert find_analysis_blob(_payload(analysis_section()), settings) == ("default", sample_blob)

    def test_basic_cta_key(self, analysis_section, settings):
        found = find_analysis_blob(_payload(analysis_section(key="Basic CTA")), settings)
        assert found[0] == "Basic CTA"

    def test_default_wins_over_basic_cta(self, settings):
        results = {"Basic CTA": {"value": "{'x': 2}"}, "default": {"value": "{'x': 1}"}}
        found = find_analysis_blob(_payload({"data_collection_results": results}), settings)
        assert found == ("default", "{'x': 1}")

    def test_falls_back_to_any_key(self, analysis_section, settings):
        found = find_analysis_blob(_payload(analysis_section(key="Lead Scoring v3")), settings)
        assert found[0] == "Lead Scoring v3"

    def test_entries_without_value_are_skipped(self, settings):
        results = {"default": {"rationale": "n/a"}, "custom": {"value": "{'x': 1}"}}
        assert find_analysis_blob(_payload({"data_collection_results": results}), settings)[0] == "custom"

    def test_configured_key_order(self):
        settings = Settings(_env_file=None, analysis_container_keys=["primary", "default"])
        results = {"default": {"value": "{'x': 1}"}, "primary": {"value": "{'x': 2}"}}
        assert find_analysis_blob(_payload({"data_collection_results": results}), settings)[0] == "primary"

    @pytest.mark.parametrize("payload", [
        {},
        {"analysis": None},
        {"analysis": {}},
        {"analysis": {"data_collection_results": {}}},
        {"analysis": {"data_collection_results": {"default": {"value": ""}}}},
        None,
    ])
    def test_absent(self, payload, settings):
        assert find_analysis_blob(payload, settings) is None


class TestDecodeAnalysis:
    def test_full_blob(self, analysis_section, settings):
        result = decode_analysis(_payload(analysis_section()), settings)
        assert result.intent_level == "High"
        assert result.intent_score == 3
        assert result.total_score == 85
        assert result.lead_status_tag == "Hot Lead"
        assert result.reasoning == "Customer shows high interest"
        assert result.cta_interactions.cta_pricing_clicked is True
        assert result.cta_interactions.cta_demo_clicked is False
        assert result.cta_interactions.cta_followup_clicked is True
        assert result.call_successful == "true"
        assert result.transcript_summary == "Customer interested in product"
        assert result.call_summary_title == "Successful sales call"
        assert result.analysis_source == "elevenlabs"
        assert result.analysis_key == "default"

    def test_no_analysis_returns_none(self, settings):
        assert decode_analysis({"conversation_initiation_client_data": {}}, settings) is None

    def test_mixed_quotes_and_none(self, analysis_section, settings):
        blob = """{
            "intent_level": 'High',
            'intent_score': 3,
            "urgency_level": None,
            'urgency_score': "2",
            'total_score': 85,
            'lead_status_tag': 'Hot Lead',
            'reasoning': "Customer's budget: $5,000 (approx.) — \\"flexible\\"",
        }"""
        result = decode_analysis(_payload(analysis_section(value=blob)), settings)
        assert result.urgency_level is None
        assert result.urgency_score == 2
        assert result.intent_level == "High"
        assert result.reasoning == 'Customer\'s budget: $5,000 (approx.) — "flexible"'

    @pytest.mark.parametrize("raw, expected", [
        ("Yes", True), ("yes", True), ("YES", True), (" Yes ", False), ("Yes.", False),
        ("No", False), ("Y", False), ("true", False), (None, False), ("", False), (True, True), (False, False),
    ])
    def test_cta_yes_no_mapping(self, raw, expected, analysis_section, settings):
        blob = _dict_literal({"cta_demo_clicked": raw})
        result = decode_analysis(_payload(analysis_section(value=blob)), settings)
        assert result.cta_interactions.cta_demo_clicked is expected

    def test_extended_fields(self, analysis_section, settings):
        blob = _dict_literal({
            "intent_level": "High",
            "cta_website_clicked": "Yes",
            "demo_book_datetime": "2025-09-18T17:00:00+05:30",
            "reasoning": {"intent": "Asked for demo", "budget": "Approved"},
            "extraction": {
                "name": "Siddhant",
                "email_address": "sid@example.com",
                "company_name": "Acme",
                "smartnotification": "Siddhant booked a meeting",
            },
        })
        result = decode_analysis(_payload(analysis_section(value=blob)), settings)
        assert result.cta_interactions.cta_website_clicked is True
        assert result.demo_book_datetime == "2025-09-18T17:00:00+05:30"
        assert result.reasoning == {"intent": "Asked for demo", "budget": "Approved"}
        assert result.extraction.company_name == "Acme"
        assert result.extraction.smart_notification == "Siddhant booked a meeting"

    def test_call_successful_mirrors_provider(self, analysis_section, settings):
        result = decode_analysis(_payload(analysis_section(call_successful="success")), settings)
        assert result.call_successful == "success"

    def test_boolean_call_successful(self, analysis_section, settings):
        result = decode_analysis(_payload(analysis_section(call_successful=False)), settings)
        assert result.call_successful == "false"

    def test_sibling_fields_come_from_analysis_not_blob(self, analysis_section, settings):
        blob = _dict_literal({"call_summary_title": "from blob", "intent_level": "Low"})
        section = analysis_section(value=blob)
        del section["call_summary_title"]
        result = decode_analysis(_payload(section), settings)
        assert result.call_summary_title is None

    def test_raw_analysis_kept(self, analysis_section, settings):
        section = analysis_section()
        result = decode_analysis(_payload(section), settings)
        assert result.raw_analysis_data == section

    def test_pre_decoded_mapping_value(self, settings):
        section = {"data_collection_results": {"default": {"value": {"intent_level": "Low", "intent_score": 1}}}}
        result = decode_analysis(_payload(section), settings)
        assert result.intent_score == 1

    def test_custom_analysis_source(self, analysis_section):
        settings = Settings(_env_file=None, analysis_source="voice-provider-b")
        assert decode_analysis(_payload(analysis_section()), settings).analysis_source == "voice-provider-b"

    def test_round_trip(self, analysis_section, settings):
        fields = {
            "intent_level": "Medium", "intent_score": 2,
            "urgency_level": "Low", "urgency_score": 1,
            "budget_constraint": "Maybe", "budget_score": 2,
            "fit_alignment": "High", "fit_score": 3,
            "engagement_health": "Medium", "engagement_score": 2,
            "total_score": 64, "lead_status_tag": "Warm Lead",
            "reasoning": "Wants \"enterprise\" tier, isn't sure on timing",
            "demo_book_datetime": None,
        }
        ctas = {"cta_pricing_clicked": "Yes", "cta_demo_clicked": "No", "cta_escalated_to_human": "Yes"}
        result = decode_analysis(_payload(analysis_section(value=_dict_literal({**fields, **ctas}))), settings)

        dumped = result.model_dump()
        assert {key: dumped[key] for key in fields} == fields
        assert result.cta_interactions.cta_pricing_clicked is True
        assert result.cta_interactions.cta_demo_clicked is False
        assert result.cta_interactions.cta_escalated_to_human is True


class TestDecodeFailures:
    def test_unparseable_text(self, analysis_section, settings):
        with pytest.raises(DecodeError) as exc_info:
            decode_analysis(_payload(analysis_section(value="invalid json")), settings)
        assert exc_info.value.snippet == "invalid json"
        assert "'default'" in str(exc_info.value)
        assert "invalid json" in str(exc_info.value)

    def test_snippet_is_truncated(self, analysis_section):
        settings = Settings(_env_file=None, blob_preview_chars=10)
        with pytest.raises(DecodeError) as exc_info:
            decode_analysis(_payload(analysis_section(value="{'a': " + "x" * 50 + "}")), settings)
        assert exc_info.value.snippet == "{'a': xxxx"

    def test_blob_is_not_a_mapping(self, analysis_section, settings):
        with pytest.raises(DecodeError, match="expected a mapping"):
            decode_analysis(_payload(analysis_section(value="['a', 'b']")), settings)

    @pytest.mark.parametrize("blob", [
        "{'intent_score': 'high'}",
        "{'total_score': 85.5}",
        "{'intent_level': 3}",
        "{'extraction': {'name': 42}}",
    ])
    def test_unusable_field_types(self, blob, analysis_section, settings):
        with pytest.raises(DecodeError, match="Invalid analysis field types"):
            decode_analysis(_payload(analysis_section(value=blob)), settings)

    def test_numeric_string_scores_are_accepted(self, analysis_section, settings):
        result = decode_analysis(_payload(analysis_section(value="{'intent_score': '3', 'total_score': '70'}")), settings)
        assert isinstance(result, ParsedAnalysis)
        assert (result.intent_score, result.total_score) == (3, 70)
