# services/journey_rules.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - JOURNEY RULES
# ============================================================================
# Deterministic procedural journeys for a (province, venue, issue) triple.
# No model calls: a curated data file wins when it has a match, then the
# built-in rule table, then a generic "clarify your issue" journey.
# ============================================================================

import json
from pathlib import Path
from typing import Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from justicebot.schemas import FormRef, JourneyResult, JourneyStep, LegalJourney


logger = structlog.get_logger().bind(component="journey_rules")

# province -> venue -> issue -> journey
Procedures = Mapping[str, Mapping[str, Mapping[str, LegalJourney]]]

STATIC_CONFIDENCE = 0.65

LTB_FORMS_URL = "https://tribunalsontario.ca/ltb/forms/"
HRTO_FORMS_URL = "https://tribunalsontario.ca/hrto/forms-and-filing/#otherforms"


# =============================================================================
# BUILT-IN RULE TABLE
# =============================================================================

LTB_TENANT_STEPS = [
    JourneyStep(
        title="Document issues and notify the landlord",
        summary="Collect proof and give written notice with a reasonable time to fix.",
        actions=[
            "Collect photos/videos, maintenance requests, and responses.",
            "Send/keep a dated written notice to the landlord.",
        ],
        who="Tenant",
        venue="LTB",
        deadline_tip="ASAP: you'll need proof you asked for repairs before filing.",
    ),
    JourneyStep(
        title="File the LTB application",
        summary="Start an application for tenant rights/maintenance (commonly T2/T6).",
        actions=[
            "Complete LTB forms (T2: Tenant Rights; T6: Maintenance).",
            "Attach evidence and your detailed timeline.",
        ],
        forms=[
            FormRef(id="ON-LTB-T2", name="LTB T2: Application about Tenant Rights", url=LTB_FORMS_URL),
            FormRef(id="ON-LTB-T6", name="LTB T6: Tenant Application about Maintenance", url=LTB_FORMS_URL),
        ],
        who="Tenant",
        venue="LTB",
        deadline_tip="Some remedies are time-sensitive, so file promptly.",
    ),
    JourneyStep(
        title="Serve and prepare for the hearing",
        summary="Proper service and a clean evidence package matter.",
        actions=[
            "Serve as required; keep proof of service.",
            "Organize exhibits, paginate, and prepare a short fact summary.",
        ],
        who="Tenant",
        venue="LTB",
        deadline_tip="Follow service rules exactly.",
    ),
]

HRTO_DISCRIMINATION_STEPS = [
    JourneyStep(
        title="Write down what happened and when",
        summary="Map events, protected grounds, and adverse impacts.",
        actions=[
            "List dates, people involved, and witnesses.",
            "Identify protected grounds (e.g., disability, family status).",
        ],
        who="Applicant",
        venue="HRTO",
        deadline_tip="HRTO has limitation periods. Do not wait.",
    ),
    JourneyStep(
        title="Start your HRTO application",
        summary="File Form 1 and Schedule A with facts and remedies sought.",
        actions=[
            "Complete the core application and attach Schedule A.",
            "Describe remedies (monetary and non-monetary).",
        ],
        forms=[
            FormRef(id="ON-HRTO-F1", name="HRTO Form 1 (Application)", url=HRTO_FORMS_URL),
        ],
        who="Applicant",
        venue="HRTO",
        deadline_tip="File before the deadline; extensions are discretionary.",
    ),
]

STATIC_RULES: dict[tuple[str, str, str], list[JourneyStep]] = {
    ("ON", "LTB", "tenant_repairs"): LTB_TENANT_STEPS,
    ("ON", "LTB", "harassment"): LTB_TENANT_STEPS,
    ("ON", "HRTO", "discrimination"): HRTO_DISCRIMINATION_STEPS,
}

FALLBACK_STEPS = [
    JourneyStep(
        title="Clarify the legal issue and venue",
        summary="We couldn't match a province/venue rule. Lock this down to proceed.",
        actions=[
            "Confirm your province and tribunal/court.",
            "List the outcome you want (repairs, compensation, order to stop, etc.).",
        ],
        who="Applicant",
        venue="Unknown",
        deadline_tip="Some remedies are time-limited.",
    ),
]


# =============================================================================
# DATA FILE
# =============================================================================

def load_procedures(path: Optional[Union[str, Path]]) -> Procedures:
    """
    Load the nested procedures table from a JSON file.

    A missing or malformed file is logged and yields an empty table; the
    built-in rules still answer.
    """
    if not path:
        return {}
    path = Path(path)
    if not path.is_file():
        logger.info("procedures_file_missing", path=str(path))
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("top level must be an object")
        table = {
            province.upper(): {
                venue.upper(): {
                    issue: LegalJourney.model_validate(journey)
                    for issue, journey in issues.items()
                }
                for venue, issues in venues.items()
            }
            for province, venues in raw.items()
        }
    except (OSError, ValueError, AttributeError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError; AttributeError covers non-dict levels
        logger.warning("procedures_file_invalid", path=str(path), error=str(e))
        return {}

    count = sum(len(issues) for venues in table.values() for issues in venues.values())
    logger.info("procedures_loaded", path=str(path), journeys=count)
    return table


# =============================================================================
# RULE ENGINE
# =============================================================================

def build_journey(
    province: str,
    venue: str,
    issue: str,
    procedures: Optional[Procedures] = None,
) -> JourneyResult:
    """Pick the journey for a triple. Never raises for unknown input."""
    province = (province or "").strip().upper()
    venue = (venue or "").strip().upper()
    issue = (issue or "").strip()

    from_file = (procedures or {}).get(province, {}).get(venue, {}).get(issue)
    if from_file is not None and from_file.steps:
        return JourneyResult(source="data-file", matched=True, journey=from_file)

    journey = LegalJourney(
        province=province,
        venue=venue,
        issue_code=issue,
        confidence=STATIC_CONFIDENCE,
    )

    steps = STATIC_RULES.get((province, venue, issue))
    if steps is not None:
        journey.steps = [step.model_copy(deep=True) for step in steps]
        return JourneyResult(source="static-table", matched=True, journey=journey)

    journey.steps = [step.model_copy(deep=True) for step in FALLBACK_STEPS]
    return JourneyResult(source="static-table", matched=False, journey=journey)
