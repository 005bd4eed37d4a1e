"""
Validation for repaired payloads and decoded lead analysis.

Both checks accumulate every failure before raising once, so a single
dead-letter review shows the complete picture.
"""
import logging
from typing import Any, Optional

from voicelead.errors import StructuralError, ValidationError
from voicelead.schemas.lead_analysis import ParsedAnalysis
from voicelead.schemas.webhook_payloads import (
    AGENT_ID,
    CLIENT_DATA_KEY,
    CONVERSATION_ID,
    DYNAMIC_VARIABLES_KEY,
)

logger = logging.getLogger(__name__)

# Dimension scores must each be 1, 2 or 3
DIMENSION_SCORE_FIELDS = (
    "intent_score",
    "urgency_score",
    "budget_score",
    "fit_score",
    "engagement_score",
)
DIMENSION_SCORE_RANGE = (1, 3)
TOTAL_SCORE_RANGE = (0, 100)

REQUIRED_ANALYSIS_FIELDS = (
    "intent_level",
    "intent_score",
    "urgency_level",
    "urgency_score",
    "total_score",
    "lead_status_tag",
)


def _present(value: Any) -> bool:
    return value is not None and not (isinstance(value, str) and not value.strip())


def validate_payload_structure(payload: Any) -> bool:
    """
    Check the repaired payload carries the identifiers needed to attribute the call.

    Raises:
        StructuralError listing every missing field.
    """
    if not isinstance(payload, dict):
        raise StructuralError(["Webhook payload is not a valid object"])

    missing: list[str] = []
    client_data = payload.get(CLIENT_DATA_KEY)
    dynamic_vars = client_data.get(DYNAMIC_VARIABLES_KEY) if isinstance(client_data, dict) else None

    if not isinstance(client_data, dict):
        missing.append(f"Missing {CLIENT_DATA_KEY}")
    if not isinstance(dynamic_vars, dict):
        missing.append(f"Missing {DYNAMIC_VARIABLES_KEY} in {CLIENT_DATA_KEY}")
        dynamic_vars = {}
    if not _present(dynamic_vars.get(CONVERSATION_ID)):
        missing.append(f"Missing {CONVERSATION_ID} in {DYNAMIC_VARIABLES_KEY}")
    if not _present(dynamic_vars.get(AGENT_ID)):
        missing.append(f"Missing {AGENT_ID} in {DYNAMIC_VARIABLES_KEY}")

    if missing:
        raise StructuralError(missing)
    return True


def _check_range(analysis: ParsedAnalysis, field: str, bounds: tuple[int, int]) -> Optional[str]:
    value = getattr(analysis, field)
    low, high = bounds
    if value is not None and not low <= value <= high:
        return f"Invalid {field}: {value} (must be {low}-{high})"
    return None


def validate_analysis_ranges(analysis: ParsedAnalysis) -> bool:
    """
    Check decoded analysis against lead-scoring invariants.

    - intent/urgency/budget/fit/engagement scores, when present, are 1-3
    - total_score, when present, is 0-100
    - the required fields are all non-null

    Raises:
        ValidationError listing every violation.
    """
    violations = [
        f"Missing required analysis field: {field}"
        for field in REQUIRED_ANALYSIS_FIELDS
        if not _present(getattr(analysis, field))
    ]

    for field in DIMENSION_SCORE_FIELDS:
        problem = _check_range(analysis, field, DIMENSION_SCORE_RANGE)
        if problem:
            violations.append(problem)

    problem = _check_range(analysis, "total_score", TOTAL_SCORE_RANGE)
    if problem:
        violations.append(problem)

    if violations:
        logger.warning(
            "Analysis failed range validation: %d violation(s)", len(violations),
            extra={"stage": "validate_analysis", "error_count": len(violations)},
        )
        raise ValidationError(violations)
    return True
