"""
Survey persistence operations.

Service layer for the five study tables. Keeps the routers free of inline DB
logic; every write commits its own transaction and any SQLAlchemy failure is
rolled back and re-raised as PersistenceError with the caller's public message.

Participant creation and the demographics upsert are single
INSERT ... ON CONFLICT statements, so concurrent first submissions for the
same participant do not collide on the primary key.
"""

import logging
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_python_backend.errors import PersistenceError
from survey_python_backend.models import (
    Demographics,
    FinalDraft,
    Message,
    Participant,
    SurveyResponse,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _upsert_insert(db: AsyncSession, model):
    """Dialect-specific INSERT that supports ON CONFLICT clauses."""
    dialect_name = db.get_bind().dialect.name
    try:
        return _UPSERT_DIALECTS[dialect_name](model)
    except KeyError:
        raise PersistenceError(f"Unsupported database dialect: {dialect_name}") from None


async def _commit_or_raise(db: AsyncSession, public_message: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        logger.exception("%s: %s", public_message, exc)
        await db.rollback()
        raise PersistenceError(public_message) from exc


async def _ensure_participant(db: AsyncSession, participant_id: str) -> None:
    """Add the participant row on first sight; existing rows are never touched."""
    statement = (
        _upsert_insert(db, Participant)
        .values(participant_id=participant_id, created_at=utc_timestamp())
        .on_conflict_do_nothing(index_elements=["participant_id"])
    )
    await db.execute(statement)


# ---------------------------------------------------------------------------
# Upsert
# ---------------------------------------------------------------------------

async def upsert_demographics(db: AsyncSession, *, participant_id: str,
                              native_language: Optional[str] = None,
                              english_proficiency: Optional[int] = None,
                              years_in_us: Optional[float] = None,
                              ai_usage_frequency: Optional[int] = None) -> None:
    """Replace the participant's demographics row with this submission."""
    public_message = "Failed to save demographics"
    values = {
        "native_language": native_language,
        "english_proficiency": english_proficiency,
        "years_in_us": years_in_us,
        "ai_usage_frequency": ai_usage_frequency,
    }
    statement = _upsert_insert(db, Demographics).values(participant_id=participant_id, **values)
    statement = statement.on_conflict_do_update(
        index_elements=["participant_id"],
        set_={column: statement.excluded[column] for column in values},
    )
    try:
        await _ensure_participant(db, participant_id)
        await db.execute(statement)
    except SQLAlchemyError as exc:
        logger.exception("%s: %s", public_message, exc)
        await db.rollback()
        raise PersistenceError(public_message) from exc
    await _commit_or_raise(db, public_message)
    logger.info("Demographics saved for participant %s", participant_id)


# ---------------------------------------------------------------------------
# Append-only inserts
# ---------------------------------------------------------------------------

async def insert_survey_response(db: AsyncSession, *, participant_id: str, scenario: str,
                                 draft_text: Optional[str] = None,
                                 used_ai_self_report: Optional[str] = None,
                                 used_ai_behavioral: Optional[bool] = None,
                                 perceived_risk: Optional[int] = None,
                                 authenticity: Optional[int] = None) -> SurveyResponse:
    public_message = "Failed to save survey response"
    row = SurveyResponse(
        participant_id=participant_id,
        scenario=scenario,
        draft_text=draft_text,
        used_ai_self_report=used_ai_self_report,
        used_ai_behavioral=1 if used_ai_behavioral else 0,
        perceived_risk=perceived_risk,
        authenticity=authenticity,
        timestamp=utc_timestamp(),
    )
    try:
        await _ensure_participant(db, participant_id)
        db.add(row)
    except SQLAlchemyError as exc:
        logger.exception("%s: %s", public_message, exc)
        await db.rollback()
        raise PersistenceError(public_message) from exc
    await _commit_or_raise(db, public_message)
    logger.info("Survey response saved for participant %s, scenario %s", participant_id, scenario)
    return row


async def insert_final_draft(db: AsyncSession, *, participant_id: str, scenario: str,
                             draft_text: str) -> FinalDraft:
    row = FinalDraft(
        participant_id=participant_id,
        scenario=scenario,
        draft_text=draft_text,
        timestamp=utc_timestamp(),
    )
    db.add(row)
    await _commit_or_raise(db, "Failed to save draft")
    logger.info("Final draft saved for participant %s, scenario %s", participant_id, scenario)
    return row


async def insert_chat_messages(db: AsyncSession, *, participant_id: str, scenario: str,
                               user_content: str, assistant_content: str,
                               timestamp: str, public_message: str) -> None:
    """Write both sides of one chat exchange with a shared timestamp."""
    db.add_all([
        Message(
            participant_id=participant_id,
            scenario=scenario,
            role="user",
            content=user_content,
            timestamp=timestamp,
        ),
        Message(
            participant_id=participant_id,
            scenario=scenario,
            role="assistant",
            content=assistant_content,
            timestamp=timestamp,
        ),
    ])
    await _commit_or_raise(db, public_message)
