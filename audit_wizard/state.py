"""Audit state types — form responses, persisted drafts, and the report pipeline state."""

from typing import Literal, TypedDict, Union

StepId = int
FieldName = str
FieldValue = Union[str, bool, int, float, list[str]]
FormState = dict[StepId, dict[FieldName, FieldValue]]

DraftStatus = Literal["draft", "generating", "completed", "failed"]

# Forward-only lifecycle of a persisted draft.
_ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "draft": {"generating"},
    "generating": {"completed", "failed"},
    "completed": set(),
    "failed": set(),
}


class InvalidStatusTransition(ValueError):
    """Raised when a draft status would move backwards or skip a stage."""


def advance_status(current: DraftStatus, new: DraftStatus) -> DraftStatus:
    """Return new if current -> new is a legal transition, else raise."""
    if new not in _ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransition(f"Cannot move draft from '{current}' to '{new}'.")
    return new


class PersistedDraft(TypedDict):
    id: str
    user_id: str
    responses: FormState
    status: DraftStatus
    report_content: str | None
    title: str | None
    created_at: str
    updated_at: str


class ChatMessage(TypedDict):
    role: Literal["user", "assistant"]
    content: str


class ReportState(TypedDict):
    draft_id: str  # Audit row the report is attached to.
    responses: FormState  # Snapshot sent to the model. Never mutated by the pipeline.
    preferences: list[str]
    status: DraftStatus
    report_content: str
    error: str


def normalize_form_state(raw: dict) -> FormState:
    """Convert a JSON-decoded mapping (string step keys) back into a FormState."""
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"expected an object of steps, got {type(raw).__name__}")
    state: FormState = {}
    for step_key, fields in raw.items():
        if not isinstance(fields, dict):
            continue
        state[int(step_key)] = dict(fields)
    return state
