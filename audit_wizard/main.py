"""Entry point: terminal wizard — sign in, restore or resume a draft, answer, generate, chat."""

import asyncio
import getpass
import os
import sys

from audit_wizard.agents.chat import audit_chat, form_assistant
from audit_wizard.autosave.mirror import LocalBackupMirror
from audit_wizard.config import configure_logging
from audit_wizard.session import AuthError, SessionContext
from audit_wizard.state import ChatMessage, FormState
from audit_wizard.steps import STEPS, FieldSpec, step_progress
from audit_wizard.storage.drafts import DraftStore
from audit_wizard.storage.local import LocalStorage
from audit_wizard.utils.formatter import write_report
from audit_wizard.wizard import WizardSession


def _ask_restore(backup: FormState) -> bool:
    """Ask in the terminal whether an unsaved local backup should be restored."""
    fields = sum(len(f) for f in backup.values())
    print(f"\nFound unsaved answers from a previous session ({fields} field(s)).")
    while True:
        choice = input("Restore them? [y/n]: ").strip().lower()
        if choice in ("y", "yes"):
            return True
        if choice in ("n", "no"):
            return False
        print("Please answer y or n.")


async def _prompt(text: str) -> str:
    # Read on a worker thread so debounce timers and saves keep running.
    return (await asyncio.to_thread(input, text)).strip()


async def _ask_help(question: str, field: FieldSpec, context: str, history: list[ChatMessage]) -> None:
    """Answer a question about the current field with the form assistant."""
    label = field.get("label", field["name"])
    question = question or f"Can you explain what \"{label}\" is asking for?"
    reply = await form_assistant(question, history, selected_text=label, context=context)
    if not reply.ok:
        print(f"[AUDIT] Assistant unavailable: {reply.reason}")
        return
    print(f"\nAssistant: {reply.value}\n")
    history.append({"role": "user", "content": question})
    history.append({"role": "assistant", "content": reply.value})


async def _ask_field(field: FieldSpec, current, context: str = "", history: list[ChatMessage] | None = None):
    """Prompt for one field. Returns None when the answer is left unchanged.

    An answer starting with "?" asks the form assistant instead.
    """
    history = [] if history is None else history
    label = field.get("label", field["name"])
    options = field.get("options", [])
    kind = field.get("kind", "text")

    if kind in ("select", "multiselect"):
        print(f"{label}:")
        for i, opt in enumerate(options, 1):
            print(f"  {i}. {opt}")
        hint = "numbers, comma-separated" if kind == "multiselect" else "number"
        suffix = f" [current: {current}]" if current not in (None, "", []) else ""
        while True:
            raw = await _prompt(f"Your choice ({hint}){suffix}: ")
            if not raw:
                return None
            if raw.startswith("?"):
                await _ask_help(raw[1:].strip(), field, context, history)
                continue
            try:
                picks = [int(p) for p in raw.replace(" ", "").split(",") if p]
            except ValueError:
                print("Please enter option numbers.")
                continue
            if not picks or any(p < 1 or p > len(options) for p in picks):
                print(f"Please enter numbers between 1 and {len(options)}.")
                continue
            if kind == "select":
                return options[picks[0] - 1]
            return [options[p - 1] for p in picks]

    suffix = f" [{current}]" if current else ""
    while True:
        raw = await _prompt(f"{label}{suffix}: ")
        if not raw.startswith("?"):
            return raw or None
        await _ask_help(raw[1:].strip(), field, context, history)


async def _walk_steps(wizard: WizardSession) -> None:
    print("\nType ? (optionally followed by a question) at any prompt for help.")
    assistant_history: list[ChatMessage] = []
    for step in STEPS:
        done = step_progress(wizard.form_state)
        print(f"\n--- Step {step['id']}/{len(STEPS)}: {step['title']} ({len(done)} answered) ---")
        print(step["description"])
        for field in step["fields"]:
            current = wizard.form_state.get(step["id"], {}).get(field["name"])
            context = f"Step {step['id']}: {step['title']}. {step['description']}"
            value = await _ask_field(field, current, context, assistant_history)
            if value is not None:
                wizard.update_field(step["id"], field["name"], value)
        print(f"[AUDIT] {wizard.save_status()}")


async def _chat_loop(store: DraftStore, audit_id: str) -> None:
    """Q&A about a completed audit. Continues the audit's latest conversation if there is one."""
    draft = await store.get_draft(audit_id)
    if not draft.ok:
        print(f"[AUDIT] Chat unavailable: {draft.reason}")
        return
    audit = draft.value

    history: list[ChatMessage] = []
    latest = await store.latest_conversation(audit_id)
    conversation_id = latest.value if latest.ok else None
    if conversation_id:
        messages = await store.list_messages(conversation_id)
        if messages.ok:
            history = messages.value
            print(f"[AUDIT] Continuing conversation ({len(history)} earlier message(s)).")
    else:
        conversation = await store.create_conversation(audit_id, "Report Q&A")
        conversation_id = conversation.value if conversation.ok else None

    print("\nAsk questions about your report (empty line to quit).")
    while True:
        question = await _prompt("You: ")
        if not question:
            break
        reply = await audit_chat(audit, question, history)
        if not reply.ok:
            print(f"[AUDIT] Chat failed: {reply.reason}")
            continue
        print(f"\nConsultant: {reply.value}\n")
        turn: list[ChatMessage] = [
            {"role": "user", "content": question},
            {"role": "assistant", "content": reply.value},
        ]
        history.extend(turn)
        if conversation_id:
            for message in turn:
                await store.add_message(conversation_id, message)


async def _print_history(store: DraftStore, user_id: str) -> int:
    drafts = await store.list_drafts(user_id)
    if not drafts.ok:
        print(f"[AUDIT] Could not list audits: {drafts.reason}", file=sys.stderr)
        return 1
    if not drafts.value:
        print("[AUDIT] No audits yet.")
    for draft in drafts.value:
        company = draft["responses"].get(1, {}).get("companyName") or "(no company name)"
        print(f"  {draft['id']}  {draft['status']:<10}  {draft['created_at'][:10]}  {company}")
    return 0


async def _generate_until_done(wizard: WizardSession) -> bool:
    """Generate the report; after a failure let the user retry, go back to editing, or stop."""
    while True:
        print("[AUDIT] Generating report, this can take a minute...")
        result = await wizard.generate()
        if result.ok:
            return True
        print(f"[AUDIT] Report generation failed: {result.reason}", file=sys.stderr)
        print("[AUDIT] Your answers are kept and still being saved.", file=sys.stderr)
        choice = (await _prompt("[r]etry, [e]dit answers, or [q]uit? ")).lower()
        if choice.startswith("e"):
            await _walk_steps(wizard)
        elif not choice.startswith("r"):
            return False


async def run(email: str, password: str, chat: bool = True, mode: str = "wizard", audit_id: str = "") -> int:
    """Run the CLI in the given mode. Returns a process exit code.

    Modes: "wizard" (fill in and generate), "history" (list audits),
    "chat" (ask about an existing audit).
    """
    async with SessionContext.from_env() as session:
        try:
            await session.sign_in(email, password)
        except AuthError as e:
            print(f"[AUDIT] {e}", file=sys.stderr)
            return 1

        store = DraftStore(session)
        if mode == "history":
            return await _print_history(store, session.user_id)
        if mode == "chat":
            await _chat_loop(store, audit_id)
            return 0

        mirror = LocalBackupMirror(LocalStorage())
        wizard = WizardSession(session, store, mirror)

        restored = await wizard.start(ask=_ask_restore)
        if wizard.remote_draft:
            print(f"[AUDIT] Resuming saved draft {wizard.draft_id}.")
        elif restored:
            print("[AUDIT] Restored answers from local backup.")

        try:
            await _walk_steps(wizard)
            if (await _prompt("\nGenerate the audit report now? [Y/n]: ")).lower().startswith("n"):
                await wizard.close()
                print(f"[AUDIT] {wizard.save_status()}")
                return 0
            if not await _generate_until_done(wizard):
                await wizard.close()
                print("[AUDIT] Progress saved. Run again to continue.")
                return 1
        except (EOFError, KeyboardInterrupt):
            await wizard.close()
            print("\n[AUDIT] Progress saved. Run again to continue.")
            return 0

        output_path = write_report(wizard.report, wizard.form_state)
        print(f"[AUDIT] Status: {wizard.status}")
        print(f"[AUDIT] Report written to: {output_path}")
        if chat:
            await _chat_loop(store, wizard.draft_id)
    return 0


def main() -> None:
    """CLI entry point — credentials from --email / AUDIT_EMAIL and AUDIT_PASSWORD or a prompt.

    Usage: audit-wizard [--email ADDRESS] [--no-chat] [--history] [--chat AUDIT_ID]
    """
    configure_logging()
    chat = True
    mode = "wizard"
    audit_id = ""
    email = os.environ.get("AUDIT_EMAIL", "")
    args = sys.argv[1:]

    if "--no-chat" in args:
        chat = False
        args.remove("--no-chat")

    if "--history" in args:
        mode = "history"
        args.remove("--history")

    for flag in ("--email", "--chat"):
        if flag not in args:
            continue
        i = args.index(flag)
        if i + 1 >= len(args):
            print(f"{flag} needs a value.", file=sys.stderr)
            sys.exit(2)
        if flag == "--email":
            email = args[i + 1]
        else:
            mode, audit_id = "chat", args[i + 1]
        del args[i:i + 2]

    if not email:
        email = input("Email: ").strip()
    password = os.environ.get("AUDIT_PASSWORD") or getpass.getpass("Password: ")

    sys.exit(asyncio.run(run(email, password, chat=chat, mode=mode, audit_id=audit_id)))


if __name__ == "__main__":
    main()
