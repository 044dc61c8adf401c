"""Tests for the report generation graph: routing and status transitions."""

import asyncio
from unittest.mock import AsyncMock, patch

from audit_wizard.graph import (
    _route_after_completed,
    _route_after_generate,
    _route_after_start,
    generate_report,
    run_pipeline,
)
from audit_wizard.utils.result import Err, Ok

REPORT = "# AI Readiness Audit Report\n\n## Executive Summary\nGood."


def _seed(store, draft_id="d-1", status="draft"):
    store.rows[draft_id] = {"status": status, "responses": {}, "report_content": None}
    return draft_id


class TestRouting:
    def test_start_routes(self):
        assert _route_after_start({"error": ""}) == "generate"
        assert _route_after_start({"error": "row locked"}) == "end"

    def test_generate_routes(self):
        assert _route_after_generate({"error": ""}) == "completed"
        assert _route_after_generate({"error": "timeout"}) == "failed"

    def test_completed_routes(self):
        assert _route_after_completed({"error": ""}) == "end"
        assert _route_after_completed({"error": "db down"}) == "failed"


class TestGenerateReport:
    def test_success_path(self, fake_store):
        draft_id = _seed(fake_store)
        responses = {1: {"companyName": "Acme"}}

        with patch("audit_wizard.graph.compose_report", new=AsyncMock(return_value=REPORT)) as compose:
            result = asyncio.run(generate_report(fake_store, draft_id, responses, ["Executive-level summary"]))

        assert result == Ok(REPORT)
        compose.assert_awaited_once_with(responses, ["Executive-level summary"])
        row = fake_store.rows[draft_id]
        assert row["status"] == "completed"
        assert row["report_content"] == REPORT
        assert row["responses"] == responses

    def test_model_failure_marks_failed(self, fake_store):
        draft_id = _seed(fake_store)

        with patch("audit_wizard.graph.compose_report", new=AsyncMock(side_effect=TimeoutError())):
            result = asyncio.run(generate_report(fake_store, draft_id, {1: {"x": "y"}}, []))

        assert isinstance(result, Err)
        assert result.reason == "TimeoutError"
        assert fake_store.rows[draft_id]["status"] == "failed"

    def test_cannot_start_leaves_row_untouched(self, fake_store):
        draft_id = _seed(fake_store, status="completed")
        compose = AsyncMock(return_value=REPORT)

        with patch("audit_wizard.graph.compose_report", new=compose):
            result = asyncio.run(generate_report(fake_store, draft_id, {1: {"x": "y"}}, []))

        assert isinstance(result, Err)
        compose.assert_not_awaited()
        assert fake_store.rows[draft_id]["status"] == "completed"

    def test_report_save_failure_marks_failed(self, fake_store):
        draft_id = _seed(fake_store)
        fake_store.save_report = AsyncMock(return_value=Err("HTTP 500"))

        with patch("audit_wizard.graph.compose_report", new=AsyncMock(return_value=REPORT)):
            result = asyncio.run(generate_report(fake_store, draft_id, {1: {"x": "y"}}, []))

        assert result == Err("HTTP 500")
        assert fake_store.rows[draft_id]["status"] == "failed"

    def test_caller_state_not_mutated(self, fake_store):
        draft_id = _seed(fake_store)
        responses = {1: {"companyName": "Acme"}}

        async def mutate(resp, prefs):
            resp[1]["companyName"] = "mutated"
            return REPORT

        with patch("audit_wizard.graph.compose_report", new=mutate):
            asyncio.run(generate_report(fake_store, draft_id, responses, []))

        assert responses == {1: {"companyName": "Acme"}}


class TestRunPipeline:
    def test_final_status_stays_draft_when_start_fails(self, fake_store):
        draft_id = _seed(fake_store, status="generating")

        with patch("audit_wizard.graph.compose_report", new=AsyncMock(return_value=REPORT)):
            final = asyncio.run(run_pipeline(fake_store, draft_id, {1: {"x": "y"}}, []))

        assert final["status"] == "draft"
        assert final["error"]

    def test_final_status_failed_after_model_error(self, fake_store):
        draft_id = _seed(fake_store)

        with patch("audit_wizard.graph.compose_report", new=AsyncMock(side_effect=RuntimeError("down"))):
            final = asyncio.run(run_pipeline(fake_store, draft_id, {1: {"x": "y"}}, []))

        assert final["status"] == "failed"
        assert final["error"] == "down"
