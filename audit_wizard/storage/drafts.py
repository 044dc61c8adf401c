"""Remote draft persistence against the hosted backend's REST interface (PostgREST).

Every method returns a Result; transport, HTTP, and malformed-payload errors
never escape. Writes to the `responses` column are restricted to rows still
in `draft` status so autosave can never touch a row that has moved on to
generation.
"""

import logging
from typing import Any

import httpx

from audit_wizard.session import AuthError, SessionContext
from audit_wizard.state import (
    ChatMessage,
    DraftStatus,
    FormState,
    PersistedDraft,
    advance_status,
    normalize_form_state,
)
from audit_wizard.utils.result import Err, Ok, Result

logger = logging.getLogger(__name__)

AUDITS_PATH = "/rest/v1/audits"
CONVERSATIONS_PATH = "/rest/v1/chat_conversations"
MESSAGES_PATH = "/rest/v1/chat_messages"

_RETURN_ROW = {"Prefer": "return=representation"}

# ValueError covers rows missing an id and unreadable `responses` columns.
_FAILURES = (httpx.HTTPError, AuthError, ValueError)


def _row_id(row: dict) -> str:
    row_id = row.get("id")
    if not row_id:
        raise ValueError("Backend returned a row without an id.")
    return row_id


def _to_draft(row: dict) -> PersistedDraft:
    return {
        "id": _row_id(row),
        "user_id": row.get("user_id", ""),
        "responses": normalize_form_state(row.get("responses")),
        "status": row.get("status", "draft"),
        "report_content": row.get("report_content"),
        "title": row.get("title"),
        "created_at": row.get("created_at", ""),
        "updated_at": row.get("updated_at", ""),
    }


def _to_message(row: dict) -> ChatMessage:
    if row.get("role") not in ("user", "assistant") or not isinstance(row.get("content"), str):
        raise ValueError("Backend returned a malformed chat message.")
    return {"role": row["role"], "content": row["content"]}


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}: {exc.response.text[:200]}"
    return f"{type(exc).__name__}: {exc}"


class DraftStore:
    """Reads and writes audit drafts for the signed-in user of a SessionContext."""

    def __init__(self, session: SessionContext) -> None:
        self.session = session

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send one request and return the decoded list of rows (or None for an empty body)."""
        await self.session.open()
        headers = {**self.session.headers(), **kwargs.pop("headers", {})}
        response = await self.session.client.request(method, path, headers=headers, **kwargs)
        response.raise_for_status()
        if not response.content:
            return None
        try:
            data = response.json()
        except ValueError as e:
            raise httpx.DecodingError(
                f"Invalid JSON from backend: {e}", request=response.request
            ) from e
        # Table endpoints answer with an array of row objects.
        if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
            raise httpx.DecodingError(
                "Unexpected response shape from backend.", request=response.request
            )
        return data

    async def create_or_update_draft(
        self, draft_id: str | None, form_state: FormState
    ) -> Result[str]:
        """Insert a new draft row when draft_id is None, else update its responses.

        Returns Ok(draft_id) on success.
        """
        try:
            if draft_id is None:
                rows = await self._request(
                    "POST",
                    AUDITS_PATH,
                    headers=_RETURN_ROW,
                    json={
                        "user_id": self.session.require_user(),
                        "responses": form_state,
                        "status": "draft",
                    },
                )
            else:
                rows = await self._request(
                    "PATCH",
                    AUDITS_PATH,
                    headers=_RETURN_ROW,
                    params={"id": f"eq.{draft_id}", "status": "eq.draft"},
                    json={"responses": form_state},
                )
            if not rows:
                return Err(f"Draft {draft_id} not found or no longer editable.")
            saved_id = _row_id(rows[0])
        except _FAILURES as e:
            return Err(_describe(e))

        if draft_id is None:
            logger.info("Created draft %s", saved_id)
        return Ok(saved_id)

    async def load_latest_draft(self, user_id: str) -> Result[tuple[str, FormState] | None]:
        """Return the user's most recently updated draft-status row, or Ok(None)."""
        try:
            rows = await self._request(
                "GET",
                AUDITS_PATH,
                params={
                    "select": "id,responses",
                    "user_id": f"eq.{user_id}",
                    "status": "eq.draft",
                    "order": "updated_at.desc",
                    "limit": "1",
                },
            )
            if not rows:
                return Ok(None)
            row = rows[0]
            return Ok((_row_id(row), normalize_form_state(row.get("responses"))))
        except _FAILURES as e:
            return Err(_describe(e))

    async def get_draft(self, draft_id: str) -> Result[PersistedDraft]:
        try:
            rows = await self._request("GET", AUDITS_PATH, params={"id": f"eq.{draft_id}", "select": "*"})
            if not rows:
                return Err(f"Draft {draft_id} not found.")
            return Ok(_to_draft(rows[0]))
        except _FAILURES as e:
            return Err(_describe(e))

    async def list_drafts(self, user_id: str) -> Result[list[PersistedDraft]]:
        """All of the user's audits, newest first."""
        try:
            rows = await self._request(
                "GET",
                AUDITS_PATH,
                params={"user_id": f"eq.{user_id}", "select": "*", "order": "created_at.desc"},
            )
            return Ok([_to_draft(row) for row in rows or []])
        except _FAILURES as e:
            return Err(_describe(e))

    async def set_status(
        self, draft_id: str, current: DraftStatus, new: DraftStatus, **fields
    ) -> Result[str]:
        """Move a draft forward in its lifecycle.

        The update is conditional on the row still holding `current`, so two
        racing writers cannot both advance it. Extra columns (report_content,
        responses) are written in the same request.
        """
        advance_status(current, new)
        try:
            rows = await self._request(
                "PATCH",
                AUDITS_PATH,
                headers=_RETURN_ROW,
                params={"id": f"eq.{draft_id}", "status": f"eq.{current}"},
                json={"status": new, **fields},
            )
        except _FAILURES as e:
            return Err(_describe(e))
        if not rows:
            return Err(f"Draft {draft_id} is not in '{current}' status.")
        return Ok(new)

    async def save_report(self, draft_id: str, report: str, form_state: FormState) -> Result[str]:
        return await self.set_status(
            draft_id, "generating", "completed", report_content=report, responses=form_state
        )

    # --- Chat transcripts ---

    async def create_conversation(self, draft_id: str, title: str) -> Result[str]:
        try:
            rows = await self._request(
                "POST",
                CONVERSATIONS_PATH,
                headers=_RETURN_ROW,
                json={"audit_id": draft_id, "user_id": self.session.require_user(), "title": title},
            )
            if not rows:
                return Err("Conversation was not created.")
            return Ok(_row_id(rows[0]))
        except _FAILURES as e:
            return Err(_describe(e))

    async def latest_conversation(self, draft_id: str) -> Result[str | None]:
        """Id of the most recent conversation about an audit, or Ok(None)."""
        try:
            rows = await self._request(
                "GET",
                CONVERSATIONS_PATH,
                params={
                    "audit_id": f"eq.{draft_id}",
                    "select": "id",
                    "order": "created_at.desc",
                    "limit": "1",
                },
            )
            return Ok(_row_id(rows[0]) if rows else None)
        except _FAILURES as e:
            return Err(_describe(e))

    async def add_message(self, conversation_id: str, message: ChatMessage) -> Result[str]:
        try:
            rows = await self._request(
                "POST",
                MESSAGES_PATH,
                headers=_RETURN_ROW,
                json={"conversation_id": conversation_id, **message},
            )
            if not rows:
                return Err("Message was not stored.")
            return Ok(_row_id(rows[0]))
        except _FAILURES as e:
            return Err(_describe(e))

    async def list_messages(self, conversation_id: str) -> Result[list[ChatMessage]]:
        try:
            rows = await self._request(
                "GET",
                MESSAGES_PATH,
                params={
                    "conversation_id": f"eq.{conversation_id}",
                    "select": "role,content",
                    "order": "created_at.asc",
                },
            )
            return Ok([_to_message(r) for r in rows or []])
        except _FAILURES as e:
            return Err(_describe(e))
