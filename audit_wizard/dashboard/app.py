"""AI Readiness Audit — Streamlit UI for the survey wizard, report and report chat."""

import sys
from pathlib import Path

# Add project root to path so 'audit_wizard' package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

import streamlit as st

from audit_wizard.agents.chat import audit_chat, form_assistant
from audit_wizard.autosave.mirror import LocalBackupMirror
from audit_wizard.config import configure_logging
from audit_wizard.session import AuthError, SessionContext
from audit_wizard.steps import STEPS, FieldSpec, WizardStep, step_progress
from audit_wizard.storage.drafts import DraftStore
from audit_wizard.storage.local import LocalStorage
from audit_wizard.utils.formatter import render_report
from audit_wizard.utils.runner import BackgroundLoop
from audit_wizard.wizard import WizardSession

configure_logging()

st.set_page_config(page_title="AI Readiness Audit", layout="wide")
st.title("AI Readiness Audit")
st.markdown(
    "Answer ten short sections about your organization. Answers are saved as you type "
    "and kept locally as a backup. At the end, a tailored **AI readiness report** is "
    "generated and you can ask follow-up questions about it."
)

st.divider()


def _runner() -> BackgroundLoop:
    if "runner" not in st.session_state:
        st.session_state["runner"] = BackgroundLoop()
    return st.session_state["runner"]


def _wizard() -> WizardSession:
    return st.session_state["wizard"]


# ---------------------------------------------------------------------------
# Sign in
# ---------------------------------------------------------------------------


def _render_sign_in() -> None:
    with st.form("sign_in"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")

    if not submitted:
        return

    runner = _runner()
    session = SessionContext.from_env()
    try:
        runner.run(session.open())
        runner.run(session.sign_in(email, password))
    except AuthError as e:
        st.error(str(e))
        runner.run(session.close())
        st.stop()

    wizard = WizardSession(session, DraftStore(session), LocalBackupMirror(LocalStorage()))
    runner.run(wizard.start())

    st.session_state["wizard"] = wizard
    st.session_state["current_step"] = 1
    st.session_state["chat_history"] = []
    st.session_state["audit_phase"] = "restore" if wizard.pending_backup() else "editing"
    st.rerun()


# ---------------------------------------------------------------------------
# Draft restoration prompt
# ---------------------------------------------------------------------------


def _render_restore_prompt() -> None:
    wizard = _wizard()
    backup = wizard.pending_backup()
    if backup is None:
        st.session_state["audit_phase"] = "editing"
        st.rerun()

    fields = sum(len(f) for f in backup.values())
    st.warning(f"We found {fields} unsaved answer(s) from a previous session.")
    with st.expander("Show backed-up answers"):
        st.json({str(k): v for k, v in backup.items()})

    col_restore, col_discard = st.columns(2)
    if col_restore.button("Restore answers", type="primary"):
        _runner().call(wizard.accept_backup, backup)
        st.session_state["audit_phase"] = "editing"
        st.rerun()
    if col_discard.button("Start fresh"):
        _runner().call(wizard.discard_backup)
        st.session_state["audit_phase"] = "editing"
        st.rerun()


# ---------------------------------------------------------------------------
# Wizard steps
# ---------------------------------------------------------------------------


def _on_field_change(step_id: int, field_name: str, widget_key: str) -> None:
    value = st.session_state[widget_key]
    if value is None:
        return
    _runner().call(_wizard().update_field, step_id, field_name, value)


def _render_field(step: WizardStep, field: FieldSpec) -> None:
    wizard = _wizard()
    name = field["name"]
    key = f"field_{step['id']}_{name}"
    current = wizard.form_state.get(step["id"], {}).get(name)
    label = field.get("label", name)
    kind = field.get("kind", "text")
    options = field.get("options", [])
    kwargs = {"key": key, "on_change": _on_field_change, "args": (step["id"], name, key)}

    # Seed the widget once from the FormState; afterwards the widget owns its value.
    if key not in st.session_state:
        if kind == "select":
            st.session_state[key] = current if current in options else None
        elif kind == "multiselect":
            st.session_state[key] = [v for v in current or [] if v in options]
        else:
            st.session_state[key] = current or ""

    if kind == "select":
        st.selectbox(label, options, placeholder="Select...", **kwargs)
    elif kind == "multiselect":
        st.multiselect(label, options, **kwargs)
    elif kind == "textarea":
        st.text_area(label, placeholder=field.get("placeholder", ""), **kwargs)
    else:
        st.text_input(label, placeholder=field.get("placeholder", ""), **kwargs)


@st.fragment(run_every="1s")
def _render_save_indicator() -> None:
    wizard = _wizard()
    status = wizard.save_status()
    if wizard.saving:
        st.caption(f":hourglass_flowing_sand: {status}")
    elif wizard.has_unsaved_changes:
        st.caption(f":warning: {status}")
    else:
        st.caption(f":white_check_mark: {status}")


def _render_progress() -> None:
    wizard = _wizard()
    done = set(step_progress(wizard.form_state))
    current = st.session_state["current_step"]
    st.progress(len(done) / len(STEPS), text=f"{len(done)} of {len(STEPS)} sections answered")
    for step in STEPS:
        marker = "✅" if step["id"] in done else ("▶️" if step["id"] == current else "▫️")
        st.markdown(f"{marker} **{step['id']}. {step['title']}**  \n{step['description']}")


def _render_form_assistant(step: WizardStep) -> None:
    """Sidebar helper that explains survey questions."""
    history = st.session_state.setdefault("assistant_history", [])
    with st.sidebar:
        st.subheader("Need help with a question?")
        for message in history:
            with st.chat_message(message["role"]):
                st.markdown(message["content"])
        with st.form("form_assistant", clear_on_submit=True):
            selected = st.text_input("Term or question text (optional)")
            question = st.text_area("Your question")
            asked = st.form_submit_button("Ask")

    if not asked or not question.strip():
        return
    context = f"Step {step['id']}: {step['title']}. {step['description']}"
    with st.sidebar, st.spinner("Thinking..."):
        reply = _runner().run(
            form_assistant(question.strip(), history, selected_text=selected.strip() or None, context=context)
        )
    if not reply.ok:
        st.sidebar.error(reply.reason)
        return
    history.append({"role": "user", "content": question.strip()})
    history.append({"role": "assistant", "content": reply.value})
    st.rerun()


def _render_editor() -> None:
    current = st.session_state["current_step"]
    step = STEPS[current - 1]
    _render_form_assistant(step)

    col_progress, col_main = st.columns([1, 3])
    with col_progress:
        _render_progress()

    with col_main:
        st.subheader(step["title"])
        st.caption(step["description"])
        for field in step["fields"]:
            _render_field(step, field)

        st.divider()
        col_prev, col_status, col_next = st.columns([1, 2, 1])
        if col_prev.button("Previous", disabled=current == 1):
            st.session_state["current_step"] = current - 1
            st.rerun()
        with col_status:
            _render_save_indicator()
        if current < len(STEPS):
            if col_next.button("Continue", type="primary"):
                st.session_state["current_step"] = current + 1
                st.rerun()
        elif col_next.button("Generate Audit", type="primary"):
            st.session_state["audit_phase"] = "generating"
            st.rerun()


# ---------------------------------------------------------------------------
# Generation, report, and chat
# ---------------------------------------------------------------------------


def _run_generation() -> None:
    wizard = _wizard()
    with st.status("Generating audit report...", expanded=True) as status_widget:
        result = _runner().run(wizard.generate())
        if result.ok:
            status_widget.update(label="Audit report generated", state="complete", expanded=False)
            st.session_state["audit_phase"] = "complete"
        else:
            status_widget.update(label="Report generation failed", state="error")
            st.session_state["generation_error"] = result.reason
            st.session_state["audit_phase"] = "failed"


def _render_failure() -> None:
    st.error(f"Report generation failed: {st.session_state.get('generation_error', 'unknown error')}")
    st.info("Your answers are preserved and still being saved. Retry, or go back and keep editing.")
    col_retry, col_edit = st.columns(2)
    if col_retry.button("Retry generation", type="primary"):
        st.session_state["audit_phase"] = "generating"
        st.rerun()
    if col_edit.button("Back to editing"):
        st.session_state["audit_phase"] = "editing"
        st.rerun()


def _render_chat() -> None:
    wizard = _wizard()
    st.subheader("Ask about your report")
    history = st.session_state["chat_history"]
    for message in history:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])

    question = st.chat_input("Ask a question about your audit...")
    if not question:
        return

    audit = {
        "id": wizard.draft_id,
        "user_id": wizard.session.user_id or "",
        "responses": wizard.form_state,
        "status": wizard.status,
        "report_content": wizard.report,
        "title": None,
        "created_at": "",
        "updated_at": "",
    }
    with st.chat_message("user"):
        st.markdown(question)
    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            reply = _runner().run(audit_chat(audit, question, history))
        if not reply.ok:
            st.error(reply.reason)
            return
        st.markdown(reply.value)
    history.append({"role": "user", "content": question})
    history.append({"role": "assistant", "content": reply.value})


def _render_report() -> None:
    wizard = _wizard()
    st.success("Your AI readiness audit is ready.")
    content = render_report(wizard.report or "", wizard.form_state)
    st.download_button(
        label="Download report (Markdown)",
        data=content,
        file_name="ai-readiness-audit.md",
        mime="text/markdown",
    )
    st.markdown(wizard.report or "")
    st.divider()
    _render_chat()


# ---------------------------------------------------------------------------
# Page logic, driven by the session state phase
# ---------------------------------------------------------------------------

phase = st.session_state.get("audit_phase", "signin")

if phase == "signin":
    _render_sign_in()
elif phase == "restore":
    _render_restore_prompt()
elif phase == "editing":
    _render_editor()
elif phase == "generating":
    _run_generation()
    st.rerun()
elif phase == "failed":
    _render_failure()
elif phase == "complete":
    _render_report()
