"""Shared fixtures for the audit wizard test suite."""

import asyncio
import copy
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from audit_wizard.autosave.mirror import LocalBackupMirror
from audit_wizard.state import advance_status
from audit_wizard.storage.local import LocalStorage
from audit_wizard.utils.result import Err, Ok

BACKUP_KEY = "audit-responses-backup"


class FakeDraftStore:
    """In-memory DraftStore double.

    Set `gate` to an asyncio.Event to hold writes in flight, and
    `fail_writes` to make every write return Err.
    """

    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.writes: list[tuple] = []
        self.fail_writes = False
        self.latest = Ok(None)
        self.gate: asyncio.Event | None = None
        self.in_flight = 0
        self.max_in_flight = 0
        self._next_id = 1

    async def create_or_update_draft(self, draft_id, form_state):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            self.writes.append((draft_id, copy.deepcopy(form_state)))
            if self.fail_writes:
                return Err("backend unavailable")
            if draft_id is None:
                draft_id = f"draft-{self._next_id}"
                self._next_id += 1
                self.rows[draft_id] = {"status": "draft", "report_content": None}
            self.rows[draft_id]["responses"] = copy.deepcopy(form_state)
            return Ok(draft_id)
        finally:
            self.in_flight -= 1

    async def load_latest_draft(self, user_id):
        return self.latest

    async def set_status(self, draft_id, current, new, **fields):
        advance_status(current, new)
        row = self.rows.get(draft_id)
        if row is None or row["status"] != current:
            return Err(f"Draft {draft_id} is not in '{current}' status.")
        row["status"] = new
        row.update(copy.deepcopy(fields))
        return Ok(new)

    async def save_report(self, draft_id, report, form_state):
        return await self.set_status(
            draft_id, "generating", "completed", report_content=report, responses=form_state
        )


@pytest.fixture
def fake_store():
    return FakeDraftStore()


@pytest.fixture
def fake_session():
    """Signed-in stand-in for SessionContext."""
    return SimpleNamespace(authenticated=True, user_id="user-1")


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(tmp_path / "local")


@pytest.fixture
def mirror(local_storage):
    return LocalBackupMirror(local_storage, key=BACKUP_KEY)


@pytest.fixture
def acme_state():
    return {1: {"companyName": "Acme"}}


@pytest.fixture
def mock_config(tmp_path):
    """Patch the config singleton with test-friendly values."""
    test_config = {
        "report_model": "claude-test-report",
        "chat_model": "claude-test-chat",
        "assistant_model": "claude-test-assistant",
        "report_max_tokens": 100,
        "chat_max_tokens": 100,
        "assistant_max_tokens": 100,
        "llm_max_retries": 0,
        "autosave_delay_ms": 50,
        "backup_key": BACKUP_KEY,
        "local_storage_dir": str(tmp_path / "local"),
        "output_path": "./output/report.md",
        "supabase_timeout_s": 5,
        "log_level": "DEBUG",
    }
    with patch("audit_wizard.config._config", test_config):
        yield test_config
