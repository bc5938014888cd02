"""
SQLAlchemy models for the drafting study database.

Five independent collections, no foreign keys between them:
participants, demographics, messages, survey_responses, final_drafts.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Float, Index, Integer, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-10-18T09:30:00.123Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Participant(Base):
    """A study participant, identified by an externally supplied id"""
    __tablename__ = "participants"

    participant_id = Column(Text, primary_key=True)
    created_at = Column(Text, default=utc_timestamp)


class Demographics(Base):
    """One row per participant; a resubmission replaces the row"""
    __tablename__ = "demographics"

    participant_id = Column(Text, primary_key=True)
    native_language = Column(Text)
    english_proficiency = Column(Integer)  # ordinal self-report
    years_in_us = Column(Float)
    ai_usage_frequency = Column(Integer)  # ordinal self-report


class Message(Base):
    """Audit trail of chat turns, one row per side of each exchange"""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(Text)
    scenario = Column(Text)
    role = Column(Text)  # 'user' or 'assistant'
    content = Column(Text)
    timestamp = Column(Text)

    __table_args__ = (
        Index("idx_messages_participant_scenario", "participant_id", "scenario"),
    )


class SurveyResponse(Base):
    """Reflection submitted after a drafting scenario"""
    __tablename__ = "survey_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(Text)
    scenario = Column(Text)
    draft_text = Column(Text)
    used_ai_self_report = Column(Text)
    used_ai_behavioral = Column(Integer)  # 0/1
    perceived_risk = Column(Integer)
    authenticity = Column(Integer)
    timestamp = Column(Text, default=utc_timestamp)


class FinalDraft(Base):
    """Final draft text submitted for a scenario"""
    __tablename__ = "final_drafts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(Text)
    scenario = Column(Text)
    draft_text = Column(Text)
    timestamp = Column(Text, default=utc_timestamp)
