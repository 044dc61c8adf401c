"""Wizard session — owns the FormState and wires autosave, local backup and restore.

Every field change goes through update_field(), which mirrors the whole
state to local storage immediately and pushes a snapshot into the
debouncer. Debounced snapshots go to the autosave coordinator, which writes
them to the remote draft row whose id is kept in memory for the session.
"""

import asyncio
import copy
import logging

from audit_wizard.autosave.coordinator import AutosaveCoordinator
from audit_wizard.autosave.debounce import Debouncer
from audit_wizard.autosave.mirror import LocalBackupMirror
from audit_wizard.autosave.restore import AskFn, DraftRestorer
from audit_wizard.config import get_config
from audit_wizard.graph import report_result, run_pipeline
from audit_wizard.session import SessionContext
from audit_wizard.state import DraftStatus, FieldValue, FormState
from audit_wizard.steps import report_preferences
from audit_wizard.storage.drafts import DraftStore
from audit_wizard.utils.result import Err, Result
from audit_wizard.utils.validator import (
    validate_field_name,
    validate_field_value,
    validate_step_id,
)

logger = logging.getLogger(__name__)


class WizardSession:
    def __init__(
        self,
        session: SessionContext,
        store: DraftStore,
        mirror: LocalBackupMirror,
        *,
        delay_ms: int | None = None,
    ) -> None:
        if delay_ms is None:
            delay_ms = get_config().get("autosave_delay_ms", 2000)
        self.session = session
        self.store = store
        self.mirror = mirror
        self.restorer = DraftRestorer(mirror)
        self.coordinator = AutosaveCoordinator(self._save_remote)
        self.debouncer = Debouncer(delay_ms, self._on_debounced)

        self.form_state: FormState = {}
        self.draft_id: str | None = None
        self.remote_draft: FormState | None = None
        self.status: DraftStatus = "draft"
        self.report: str | None = None
        self.failed_draft_ids: list[str] = []
        self.generating = False
        self._tasks: set[asyncio.Task] = set()

    # --- Startup ---

    async def load_remote_draft(self) -> FormState | None:
        """Load the user's latest draft into memory. Failures mean "no draft"."""
        if not self.session.authenticated:
            logger.warning("No signed-in user; starting without a remote draft")
            return None
        result = await self.store.load_latest_draft(self.session.user_id)
        if not result.ok:
            logger.warning("Could not load existing draft: %s", result.reason)
            return None
        if result.value is None:
            return None

        draft_id, responses = result.value
        self.draft_id = draft_id
        self.remote_draft = responses
        self.form_state = copy.deepcopy(responses)
        logger.info("Loaded draft %s", draft_id)
        return responses

    async def start(self, ask: AskFn | None = None) -> bool:
        """Load the remote draft, mount autosave, and run the restoration prompt.

        ask receives the backup and returns True to restore it. Without ask
        the prompt is left for the caller (see pending_backup()).
        Returns True if a local backup was restored.
        """
        await self.load_remote_draft()
        # Mount: the initial state is the coordinator's first emission and is never saved.
        await self.coordinator.submit(self.snapshot())
        if ask is None:
            return False
        return self.restorer.prompt(self.form_state, self.remote_draft, ask, self.update_field)

    def pending_backup(self) -> FormState | None:
        return self.restorer.offer(self.form_state, self.remote_draft)

    def accept_backup(self, backup: FormState) -> int:
        return self.restorer.restore(backup, self.update_field)

    def discard_backup(self) -> None:
        self.restorer.discard()

    # --- Editing ---

    def snapshot(self) -> FormState:
        return copy.deepcopy(self.form_state)

    def update_field(self, step_id: int, field_name: str, value: FieldValue) -> None:
        if self.generating or self.status == "completed":
            raise RuntimeError("This audit has been submitted and can no longer be edited.")
        step_id = validate_step_id(step_id)
        field_name = validate_field_name(field_name)
        value = validate_field_value(value)

        self.form_state.setdefault(step_id, {})[field_name] = value

        try:
            self.mirror.mirror(self.form_state)
        except OSError as e:
            logger.error("Failed to write local backup: %s", e)

        self.debouncer.push(self.snapshot())

    def _on_debounced(self, snapshot: FormState) -> None:
        task = asyncio.get_running_loop().create_task(self.coordinator.submit(snapshot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _save_remote(self, snapshot: FormState) -> Result[str]:
        result = await self.store.create_or_update_draft(self.draft_id, snapshot)
        if result.ok:
            self.draft_id = result.value
        return result

    async def flush(self) -> None:
        """Fire any pending debounce and wait for outstanding saves."""
        self.debouncer.flush()
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # --- Save indicator ---

    @property
    def saving(self) -> bool:
        return self.coordinator.saving

    @property
    def has_unsaved_changes(self) -> bool:
        return self.debouncer.pending or self.coordinator.is_dirty(self.form_state)

    def save_status(self) -> str:
        if self.saving:
            return "Saving..."
        if self.has_unsaved_changes:
            return "Unsaved changes"
        if self.coordinator.last_saved_at is not None:
            return f"Saved at {self.coordinator.last_saved_at.astimezone():%H:%M:%S}"
        if self.draft_id:
            return "All changes saved"
        return "Start typing to begin saving"

    # --- Submission ---

    async def generate(self, preferences: list[str] | None = None) -> Result[str]:
        """Save the final state, then generate the report for this draft.

        Editing is locked while the report is generated. On failure it is
        reopened: if the row never left draft, edits keep going to it; if
        the row was marked failed, the next save starts a fresh draft row.
        """
        if self.generating:
            return Err("Report generation already in progress.")
        if self.status == "completed":
            return Err("A report has already been generated for this audit.")
        if not self.form_state:
            return Err("Nothing to generate a report from.")

        await self.flush()

        snapshot = self.snapshot()
        if self.draft_id is None or self.coordinator.is_dirty(snapshot):
            saved = await self._save_remote(snapshot)
            if not saved.ok:
                logger.error("Could not save audit before generation: %s", saved.reason)
                return saved
            self.coordinator.record_saved(snapshot)

        if preferences is None:
            preferences = report_preferences(snapshot)

        self.generating = True
        self.coordinator.close()
        self.debouncer.cancel()
        try:
            final = await run_pipeline(self.store, self.draft_id, snapshot, preferences)
        except Exception:
            self.coordinator.reopen()
            raise
        finally:
            self.generating = False

        result = report_result(final)
        if result.ok:
            self.status = "completed"
            self.report = result.value
            self.mirror.clear()
        elif final["status"] == "draft":
            # Generation never started; the row is still editable.
            logger.warning("Report generation did not start for %s: %s", self.draft_id, result.reason)
            self.coordinator.reopen()
        else:
            logger.warning("Draft %s marked failed; further edits go to a new draft", self.draft_id)
            self.failed_draft_ids.append(self.draft_id)
            self.draft_id = None
            self.coordinator.reopen(keep_baseline=False)
            self.debouncer.push(self.snapshot())
        return result

    async def close(self) -> None:
        if self.status == "draft" and not self.generating:
            await self.flush()
        self.debouncer.cancel()
        self.coordinator.close()
