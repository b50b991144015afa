# schemas/journey.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - JOURNEY SCHEMAS
# ============================================================================
# Stable wire schema for procedural journeys (steps, forms, deadlines).
# Field aliases keep the camelCase names the web client already reads.
# ============================================================================

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class FormRef(BaseModel):
    """Official form a step asks the user to file"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    url: str
    fee: Optional[str] = None


class JourneyStep(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    summary: str = ""
    actions: list[str] = Field(default_factory=list)
    forms: list[FormRef] = Field(default_factory=list)
    prereqs: list[str] = Field(default_factory=list)
    who: str = ""
    venue: str = ""
    deadline_tip: str = Field(default="", alias="deadlineTip")


class LegalJourney(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    province: str = ""
    venue: str = ""
    issue_code: str = Field(default="", alias="issueCode")
    confidence: float = 0.0
    steps: list[JourneyStep] = Field(default_factory=list)


JourneySource = Literal["static-table", "data-file"]


class JourneyResult(BaseModel):
    """Journey plus where it came from"""
    source: JourneySource
    matched: bool
    journey: LegalJourney
