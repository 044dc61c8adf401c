"""Local backup mirror — synchronous last-write-wins copy of the FormState."""

import json
import logging

from audit_wizard.config import get_config
from audit_wizard.state import FormState, normalize_form_state
from audit_wizard.storage.local import LocalStorage

logger = logging.getLogger(__name__)


class LocalBackupMirror:
    def __init__(self, storage: LocalStorage, key: str | None = None) -> None:
        self.storage = storage
        self.key = key or get_config().get("backup_key", "audit-responses-backup")

    def mirror(self, form_state: FormState) -> bool:
        """Overwrite the backup with form_state. Empty states are not written."""
        if not form_state:
            return False
        self.storage.write(self.key, json.dumps(form_state))
        return True

    def load(self) -> FormState | None:
        """Return the backed-up FormState, or None if absent, empty, or unparseable."""
        try:
            raw = self.storage.read(self.key)
            if raw is None:
                return None
            parsed = json.loads(raw)
            if not isinstance(parsed, dict):
                raise ValueError(f"expected an object, got {type(parsed).__name__}")
            state = normalize_form_state(parsed)
        except (ValueError, OSError) as e:  # undecodable bytes, bad JSON, bad step keys
            logger.error("Failed to load backup data: %s", e)
            return None
        return state or None

    def clear(self) -> None:
        self.storage.remove(self.key)
