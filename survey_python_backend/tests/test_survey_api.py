"""
Tests for the study submission endpoints.

Covers upsert semantics for demographics, append-only survey responses and
final drafts, required-field validation, and store failures.
"""

import asyncio

import httpx
import pytest
from sqlalchemy import text

from survey_python_backend.db_session import init_models


DEMOGRAPHICS = {
    "participant_id": "p1",
    "native_language": "es",
    "english_proficiency": 4,
    "years_in_us": 2,
    "ai_usage_frequency": 3,
}

SURVEY = {
    "participant_id": "p1",
    "scenario": "email_to_professor",
    "draft_text": "Dear Professor, could I have an extension?",
    "used_ai_self_report": "only for tone",
    "used_ai_behavioral": True,
    "perceived_risk": 2,
    "authenticity": 5,
}


# ---------------------------------------------------------------------------
# Demographics
# ---------------------------------------------------------------------------


class TestDemographics:
    def test_save_demographics(self, client, fetch_rows):
        resp = client.post("/demographics", json=DEMOGRAPHICS)

        assert resp.status_code == 200
        assert resp.json() == {"status": "saved"}
        rows = fetch_rows("demographics")
        assert len(rows) == 1
        assert rows[0]["native_language"] == "es"
        assert rows[0]["english_proficiency"] == 4
        assert rows[0]["years_in_us"] == 2
        assert rows[0]["ai_usage_frequency"] == 3

    def test_resubmission_replaces_previous_row(self, client, fetch_rows):
        client.post("/demographics", json=DEMOGRAPHICS)
        resp = client.post("/demographics", json={**DEMOGRAPHICS, "english_proficiency": 5})

        assert resp.json() == {"status": "saved"}
        rows = fetch_rows("demographics")
        assert len(rows) == 1
        assert rows[0]["english_proficiency"] == 5

    def test_resubmission_does_not_merge_absent_fields(self, client, fetch_rows):
        client.post("/demographics", json=DEMOGRAPHICS)
        client.post("/demographics", json={"participant_id": "p1", "native_language": "ko"})

        row = fetch_rows("demographics")[0]
        assert row["native_language"] == "ko"
        assert row["english_proficiency"] is None
        assert row["ai_usage_frequency"] is None

    def test_creates_participant_once(self, client, fetch_rows):
        client.post("/demographics", json=DEMOGRAPHICS)
        first_created_at = fetch_rows("participants")[0]["created_at"]
        client.post("/demographics", json={**DEMOGRAPHICS, "english_proficiency": 5})

        participants = fetch_rows("participants")
        assert [p["participant_id"] for p in participants] == ["p1"]
        assert participants[0]["created_at"] == first_created_at
        assert first_created_at.endswith("Z")

    @pytest.mark.parametrize("participant_id", [None, ""])
    def test_missing_participant_id_rejected(self, client, fetch_rows, participant_id):
        body = {**DEMOGRAPHICS, "participant_id": participant_id}
        resp = client.post("/demographics", json=body)

        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing participant_id"}
        assert fetch_rows("demographics") == []
        assert fetch_rows("participants") == []

    def test_wrongly_typed_field_rejected(self, client, fetch_rows):
        resp = client.post("/demographics", json={**DEMOGRAPHICS, "english_proficiency": "fluent"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid request body"}
        assert fetch_rows("demographics") == []

    def test_store_failure_returns_generic_error(self, client, sync_engine):
        with sync_engine.begin() as conn:
            conn.execute(text("DROP TABLE demographics"))

        resp = client.post("/demographics", json=DEMOGRAPHICS)

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to save demographics"}


# ---------------------------------------------------------------------------
# Survey responses
# ---------------------------------------------------------------------------


class TestSurveyResponse:
    def test_each_submission_adds_one_row(self, client, fetch_rows):
        for expected in range(1, 4):
            resp = client.post("/survey-response", json=SURVEY)
            assert resp.status_code == 200
            assert resp.json() == {"status": "saved"}
            assert len(fetch_rows("survey_responses")) == expected

    def test_row_contents(self, client, fetch_rows):
        client.post("/survey-response", json=SURVEY)

        row = fetch_rows("survey_responses")[0]
        assert row["participant_id"] == "p1"
        assert row["scenario"] == "email_to_professor"
        assert row["draft_text"] == SURVEY["draft_text"]
        assert row["used_ai_self_report"] == "only for tone"
        assert row["used_ai_behavioral"] == 1
        assert row["perceived_risk"] == 2
        assert row["authenticity"] == 5
        assert row["timestamp"]

    @pytest.mark.parametrize(
        "flag, stored",
        [(False, 0), (None, 0), (0, 0), ("", 0), (True, 1), (2, 1), ("yes", 1), ("false", 1)],
    )
    def test_behavioral_flag_coerced_to_int(self, client, fetch_rows, flag, stored):
        client.post("/survey-response", json={**SURVEY, "used_ai_behavioral": flag})

        assert fetch_rows("survey_responses")[0]["used_ai_behavioral"] == stored

    def test_creates_participant(self, client, fetch_rows):
        client.post("/survey-response", json={**SURVEY, "participant_id": "p7"})
        client.post("/survey-response", json={**SURVEY, "participant_id": "p7"})

        assert [p["participant_id"] for p in fetch_rows("participants")] == ["p7"]

    @pytest.mark.parametrize("missing", ["participant_id", "scenario"])
    def test_missing_required_field_rejected(self, client, fetch_rows, missing):
        body = {k: v for k, v in SURVEY.items() if k != missing}
        resp = client.post("/survey-response", json=body)

        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required fields"}
        assert fetch_rows("survey_responses") == []

    def test_store_failure_returns_generic_error(self, client, sync_engine):
        with sync_engine.begin() as conn:
            conn.execute(text("DROP TABLE survey_responses"))

        resp = client.post("/survey-response", json=SURVEY)

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to save survey response"}
        assert "survey_responses" not in resp.text


# ---------------------------------------------------------------------------
# Final drafts
# ---------------------------------------------------------------------------


class TestSaveDraft:
    def test_repeated_drafts_are_all_kept(self, client, fetch_rows):
        body = {"participant_id": "p1", "scenario": "email_to_professor", "draft_text": "v1"}
        client.post("/save-draft", json=body)
        resp = client.post("/save-draft", json={**body, "draft_text": "v2"})

        assert resp.status_code == 200
        assert resp.json() == {"status": "saved"}
        assert [r["draft_text"] for r in fetch_rows("final_drafts")] == ["v1", "v2"]

    @pytest.mark.parametrize("missing", ["participant_id", "scenario", "draft_text"])
    def test_missing_required_field_rejected(self, client, fetch_rows, missing):
        body = {"participant_id": "p1", "scenario": "email_to_professor", "draft_text": "v1"}
        body[missing] = ""
        resp = client.post("/save-draft", json=body)

        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required fields"}
        assert fetch_rows("final_drafts") == []

    def test_store_failure_returns_generic_error(self, client, sync_engine):
        with sync_engine.begin() as conn:
            conn.execute(text("DROP TABLE final_drafts"))

        resp = client.post(
            "/save-draft",
            json={"participant_id": "p1", "scenario": "email_to_professor", "draft_text": "v1"},
        )

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to save draft"}


def test_routes_log_each_submission(client, caplog):
    with caplog.at_level("INFO", logger="survey_python_backend.survey_api"):
        client.post("/demographics", json=DEMOGRAPHICS)

    assert "Saving demographics for participant p1" in caplog.text


def test_malformed_json_rejected(client):
    resp = client.post(
        "/survey-response",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid request body"}


@pytest.mark.asyncio
async def test_concurrent_first_submissions_all_succeed(app, test_engine, fetch_rows):
    # ASGITransport does not run the lifespan, so create the tables here.
    await init_models(test_engine)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        responses = await asyncio.gather(
            http.post("/demographics", json={**DEMOGRAPHICS, "participant_id": "new"}),
            http.post("/demographics", json={**DEMOGRAPHICS, "participant_id": "new", "english_proficiency": 5}),
            http.post("/survey-response", json={**SURVEY, "participant_id": "new"}),
            http.post("/survey-response", json={**SURVEY, "participant_id": "new"}),
            http.post("/save-draft", json={"participant_id": "new", "scenario": "s", "draft_text": "v1"}),
        )
    await test_engine.dispose()

    assert [r.status_code for r in responses] == [200] * 5
    assert [p["participant_id"] for p in fetch_rows("participants")] == ["new"]
    demographics = fetch_rows("demographics")
    assert len(demographics) == 1
    assert demographics[0]["english_proficiency"] in (4, 5)
    assert len(fetch_rows("survey_responses")) == 2
