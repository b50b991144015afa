from pathlib import Path

from justicebot.schemas import JourneyStep, LegalJourney
from justicebot.services import build_journey, load_procedures


DATA_FILE = Path(__file__).resolve().parent.parent / "data" / "procedures.on.json"


def test_ltb_repairs():
    result = build_journey("ON", "LTB", "tenant_repairs")

    assert result.source == "static-table"
    assert result.matched is True
    journey = result.journey
    assert (journey.province, journey.venue, journey.issue_code) == ("ON", "LTB", "tenant_repairs")
    assert journey.confidence == 0.65
    assert [step.title for step in journey.steps] == [
        "Document issues and notify the landlord",
        "File the LTB application",
        "Serve and prepare for the hearing",
    ]
    assert [form.id for form in journey.steps[1].forms] == ["ON-LTB-T2", "ON-LTB-T6"]
    assert all(step.who == "Tenant" for step in journey.steps)


def test_inputs_are_normalised():
    result = build_journey("  on ", "ltb", " harassment ")

    assert result.matched is True
    assert result.journey.province == "ON"
    assert result.journey.venue == "LTB"
    assert result.journey.issue_code == "harassment"
    assert len(result.journey.steps) == 3


def test_issue_code_is_case_sensitive():
    assert build_journey("ON", "LTB", "Tenant_Repairs").matched is False


def test_hrto_discrimination():
    result = build_journey("ON", "HRTO", "discrimination")

    steps = result.journey.steps
    assert [step.title for step in steps] == [
        "Write down what happened and when",
        "Start your HRTO application",
    ]
    assert steps[1].forms[0].id == "ON-HRTO-F1"
    assert steps[1].forms[0].url == "https://tribunalsontario.ca/hrto/forms-and-filing/#otherforms"


def test_generic_fallback():
    result = build_journey("BC", "CRT", "strata")

    assert result.source == "static-table"
    assert result.matched is False
    assert result.journey.province == "BC"
    assert len(result.journey.steps) == 1
    assert result.journey.steps[0].title == "Clarify the legal issue and venue"
    assert result.journey.steps[0].venue == "Unknown"


def test_empty_inputs_fall_back():
    result = build_journey("", "", "", None)

    assert result.matched is False


def test_data_file_entry_wins():
    curated = LegalJourney(
        province="ON",
        venue="LTB",
        issue_code="tenant_repairs",
        confidence=0.9,
        steps=[JourneyStep(title="Curated step")],
    )
    procedures = {"ON": {"LTB": {"tenant_repairs": curated}}}

    result = build_journey("on", "ltb", "tenant_repairs", procedures)

    assert result.source == "data-file"
    assert result.matched is True
    assert result.journey.steps[0].title == "Curated step"


def test_data_file_entry_without_steps_is_ignored():
    empty = LegalJourney(province="ON", venue="LTB", issue_code="harassment")
    procedures = {"ON": {"LTB": {"harassment": empty}}}

    result = build_journey("ON", "LTB", "harassment", procedures)

    assert result.source == "static-table"
    assert len(result.journey.steps) == 3


def test_results_do_not_share_static_steps():
    first = build_journey("ON", "LTB", "tenant_repairs")
    first.journey.steps[0].title = "changed"

    second = build_journey("ON", "LTB", "tenant_repairs")

    assert second.journey.steps[0].title == "Document issues and notify the landlord"


def test_wire_names():
    body = build_journey("ON", "HRTO", "discrimination").model_dump(by_alias=True, exclude_none=True)

    assert body["journey"]["issueCode"] == "discrimination"
    assert "deadlineTip" in body["journey"]["steps"][0]
    assert "fee" not in body["journey"]["steps"][1]["forms"][0]


# =============================================================================
# DATA FILE LOADING
# =============================================================================

def test_bundled_procedures_load():
    procedures = load_procedures(DATA_FILE)

    journey = procedures["ON"]["SMALL_CLAIMS"]["unpaid_debt"]
    assert journey.issue_code == "unpaid_debt"
    assert journey.steps[1].forms[0].fee

    result = build_journey("ON", "small_claims", "unpaid_debt", procedures)
    assert result.source == "data-file"


def test_missing_file_is_empty(tmp_path):
    assert load_procedures(tmp_path / "nope.json") == {}
    assert load_procedures("") == {}
    assert load_procedures(None) == {}


def test_malformed_file_is_empty(tmp_path):
    broken = tmp_path / "procedures.json"
    broken.write_text("{not json", encoding="utf-8")

    assert load_procedures(broken) == {}


def test_wrong_shape_is_empty(tmp_path):
    wrong = tmp_path / "procedures.json"
    wrong.write_text('{"ON": ["LTB"]}', encoding="utf-8")

    assert load_procedures(wrong) == {}


def test_invalid_journey_is_empty(tmp_path):
    invalid = tmp_path / "procedures.json"
    invalid.write_text('{"ON": {"LTB": {"x": {"steps": [{"summary": "no title"}]}}}}', encoding="utf-8")

    assert load_procedures(invalid) == {}
