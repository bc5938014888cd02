"""Pydantic request/response models for the survey and chat routers."""
from typing import ClassVar, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from survey_python_backend.errors import ValidationError


class SurveyRequest(BaseModel):
    """
    Base for request bodies.

    Every field is optional at parse time so that a missing or empty required
    field is reported through ``require()`` as a ValidationError with the
    endpoint's own message, instead of FastAPI's generic 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    required_fields: ClassVar[Tuple[str, ...]] = ()
    missing_message: ClassVar[str] = "Missing required fields"

    def missing_fields(self) -> Tuple[str, ...]:
        return tuple(name for name in self.required_fields if not getattr(self, name))

    def require(self) -> "SurveyRequest":
        if self.missing_fields():
            raise ValidationError(self.missing_message)
        return self


class DemographicsRequest(SurveyRequest):
    required_fields: ClassVar[Tuple[str, ...]] = ("participant_id",)
    missing_message: ClassVar[str] = "Missing participant_id"

    participant_id: Optional[str] = None
    native_language: Optional[str] = None
    english_proficiency: Optional[int] = None
    years_in_us: Optional[float] = None
    ai_usage_frequency: Optional[int] = None


class SurveyResponseRequest(SurveyRequest):
    required_fields: ClassVar[Tuple[str, ...]] = ("participant_id", "scenario")

    participant_id: Optional[str] = None
    scenario: Optional[str] = None
    draft_text: Optional[str] = None
    used_ai_self_report: Optional[str] = None
    used_ai_behavioral: Optional[bool] = None
    perceived_risk: Optional[int] = None
    authenticity: Optional[int] = None

    @field_validator("used_ai_behavioral", mode="before")
    @classmethod
    def _coerce_by_truthiness(cls, value):
        # Any JSON value is accepted; the stored flag is its truthiness.
        return None if value is None else bool(value)


class SaveDraftRequest(SurveyRequest):
    required_fields: ClassVar[Tuple[str, ...]] = ("participant_id", "scenario", "draft_text")

    participant_id: Optional[str] = None
    scenario: Optional[str] = None
    draft_text: Optional[str] = None


class ChatRequest(SurveyRequest):
    required_fields: ClassVar[Tuple[str, ...]] = ("participant_id", "message", "scenario")
    missing_message: ClassVar[str] = "Missing userId, message, or scenario"

    participant_id: Optional[str] = Field(None, alias="userId")
    message: Optional[str] = None
    scenario: Optional[str] = None
    draft: Optional[str] = None  # absent or null draft is sent as empty text


class StatusResponse(BaseModel):
    status: str = "saved"


class ChatResponse(BaseModel):
    reply: str
