"""Autosave coordinator — decides whether a debounced snapshot is worth a remote write.

Guards, evaluated in order:
1. the first emission after mount is the initial load and is never echoed back;
2. empty snapshots are skipped;
3. snapshots identical (canonical JSON) to the last saved one are skipped;
4. while a save is in flight, the snapshot is parked and saved once the
   in-flight save settles (only the newest parked snapshot is kept).

Failures are logged and swallowed. There is no timed retry: the next edit
produces a new snapshot, which is the retry.
"""

import copy
import json
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from audit_wizard.state import FormState
from audit_wizard.utils.result import Result

logger = logging.getLogger(__name__)

SaveFn = Callable[[FormState], Awaitable[Result]]


def fingerprint(snapshot: FormState) -> str:
    """Canonical serialization used for change detection."""
    return json.dumps(snapshot, sort_keys=True, separators=(",", ":"))


class AutosaveCoordinator:
    def __init__(self, save_fn: SaveFn) -> None:
        self.save_fn = save_fn
        self.saving = False
        self.closed = False
        self.last_saved: str | None = None
        self.last_saved_at: datetime | None = None
        self.last_error: str | None = None
        self.save_count = 0
        self._mounted = False
        self._pending: FormState | None = None

    def close(self) -> None:
        """Stop accepting snapshots (the wizard was submitted or abandoned)."""
        self.closed = True
        self._pending = None

    def record_saved(self, snapshot: FormState) -> None:
        """Adopt a snapshot written outside submit() as the last saved state."""
        self.last_saved = fingerprint(snapshot)
        self.last_saved_at = datetime.now(timezone.utc)

    def reopen(self, *, keep_baseline: bool = True) -> None:
        """Accept snapshots again after close().

        Without keep_baseline the last saved fingerprint is forgotten, so the
        next non-empty snapshot is written even if it is unchanged (used when
        the next write goes to a fresh draft row).
        """
        self.closed = False
        if not keep_baseline:
            self.last_saved = None
            self.last_saved_at = None

    async def submit(self, snapshot: FormState) -> bool:
        """Consider one debounced snapshot. Returns True if a write was attempted."""
        if self.closed:
            return False

        if not self._mounted:
            self._mounted = True
            # Whatever is in memory at mount came from the remote store (or is empty).
            if snapshot:
                self.last_saved = fingerprint(snapshot)
            logger.debug("Skipping autosave of initial state")
            return False

        if not snapshot:
            return False

        fp = fingerprint(snapshot)
        if fp == self.last_saved:
            return False

        if self.saving:
            self._pending = copy.deepcopy(snapshot)
            logger.debug("Save in flight; parking newer snapshot")
            return False

        await self._save(copy.deepcopy(snapshot), fp)

        while self._pending is not None and not self.closed:
            pending, self._pending = self._pending, None
            pending_fp = fingerprint(pending)
            if pending_fp != self.last_saved:
                await self._save(pending, pending_fp)
        return True

    async def _save(self, snapshot: FormState, fp: str) -> None:
        self.saving = True
        logger.info("Auto-saving audit data...")
        try:
            result = await self.save_fn(snapshot)
            if result.ok:
                self.last_saved = fp
                self.last_saved_at = datetime.now(timezone.utc)
                self.last_error = None
                self.save_count += 1
            else:
                self.last_error = result.reason
                logger.warning("Autosave failed (will retry on next edit): %s", result.reason)
        except Exception as e:  # noqa: BLE001 - autosave must never interrupt editing
            self.last_error = repr(e)
            logger.warning("Autosave raised %r (will retry on next edit)", e)
        finally:
            self.saving = False

    def is_dirty(self, snapshot: FormState) -> bool:
        """True when snapshot differs from what was last saved."""
        if not snapshot:
            return False
        return fingerprint(snapshot) != self.last_saved
