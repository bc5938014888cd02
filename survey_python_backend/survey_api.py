"""
API endpoints for study submissions.

Provides endpoints for:
- Saving participant demographics (upsert by participant_id)
- Recording post-scenario reflection surveys (append-only)
- Saving final drafts (append-only)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from survey_python_backend.db_session import get_async_session
from survey_python_backend.schemas import (
    DemographicsRequest,
    SaveDraftRequest,
    StatusResponse,
    SurveyResponseRequest,
)
from survey_python_backend.services import survey_persistence

logger = logging.getLogger(__name__)

router = APIRouter(tags=["survey"])


@router.post("/demographics", response_model=StatusResponse)
async def save_demographics(
    request: DemographicsRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Save a participant's demographics, replacing any earlier submission.

    Request Body
    ------------
    DemographicsRequest {participant_id, native_language, english_proficiency,
    years_in_us, ai_usage_frequency}

    Raises
    ------
    ValidationError (400)
        If participant_id is missing.
    """
    logger.info("=== Saving demographics for participant %s ===", request.participant_id)
    request.require()
    await survey_persistence.upsert_demographics(
        db,
        participant_id=request.participant_id,
        native_language=request.native_language,
        english_proficiency=request.english_proficiency,
        years_in_us=request.years_in_us,
        ai_usage_frequency=request.ai_usage_frequency,
    )
    return StatusResponse()


@router.post("/survey-response", response_model=StatusResponse)
async def save_survey_response(
    request: SurveyResponseRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Record a reflection survey for one scenario.

    Raises
    ------
    ValidationError (400)
        If participant_id or scenario is missing.
    """
    logger.info("=== Saving survey response for participant %s, scenario %s ===", request.participant_id, request.scenario)
    request.require()
    await survey_persistence.insert_survey_response(
        db,
        participant_id=request.participant_id,
        scenario=request.scenario,
        draft_text=request.draft_text,
        used_ai_self_report=request.used_ai_self_report,
        used_ai_behavioral=request.used_ai_behavioral,
        perceived_risk=request.perceived_risk,
        authenticity=request.authenticity,
    )
    return StatusResponse()


@router.post("/save-draft", response_model=StatusResponse)
async def save_draft(
    request: SaveDraftRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Store a participant's final draft for a scenario."""
    logger.info("=== Saving final draft for participant %s, scenario %s ===", request.participant_id, request.scenario)
    request.require()
    await survey_persistence.insert_final_draft(
        db,
        participant_id=request.participant_id,
        scenario=request.scenario,
        draft_text=request.draft_text,
    )
    return StatusResponse()
