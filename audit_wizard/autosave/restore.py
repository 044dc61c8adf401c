"""Draft restoration prompt — offers an unsaved local backup back to the user at startup."""

import logging
from typing import Callable

from audit_wizard.autosave.mirror import LocalBackupMirror
from audit_wizard.state import FieldValue, FormState

logger = logging.getLogger(__name__)

UpdateFn = Callable[[int, str, FieldValue], None]
AskFn = Callable[[FormState], bool]


class DraftRestorer:
    def __init__(self, mirror: LocalBackupMirror) -> None:
        self.mirror = mirror

    def offer(self, form_state: FormState, remote_draft: FormState | None) -> FormState | None:
        """Return the backup to offer, or None when the prompt must not fire.

        Fires only when the backup is non-empty, the in-memory state is still
        empty, and no non-empty remote draft was found. A non-empty remote
        draft always wins.
        """
        if remote_draft:
            return None
        if form_state:
            return None
        return self.mirror.load()

    def restore(self, backup: FormState, update_field: UpdateFn) -> int:
        """Merge the backup field by field through update_field, then clear it.

        Returns the number of fields applied.
        """
        applied = 0
        for step_id, fields in backup.items():
            for field_name, value in fields.items():
                try:
                    update_field(step_id, field_name, value)
                except ValueError as e:
                    logger.warning("Skipping backup field %s/%s: %s", step_id, field_name, e)
                    continue
                applied += 1
        self.mirror.clear()
        logger.info("Restored %d field(s) from local backup", applied)
        return applied

    def discard(self) -> None:
        self.mirror.clear()
        logger.info("Discarded local backup")

    def prompt(
        self,
        form_state: FormState,
        remote_draft: FormState | None,
        ask: AskFn,
        update_field: UpdateFn,
    ) -> bool:
        """Run the whole prompt: offer, ask the user, then restore or discard.

        Returns True if the backup was restored.
        """
        backup = self.offer(form_state, remote_draft)
        if backup is None:
            return False
        if ask(backup):
            self.restore(backup, update_field)
            return True
        self.discard()
        return False
