"""Tests for the terminal wizard helpers: field prompts, help, history, chat, and failure menu."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

from audit_wizard.main import _ask_field, _chat_loop, _generate_until_done, _print_history
from audit_wizard.steps import get_step
from audit_wizard.utils.result import Err, Ok

COMPANY_NAME = get_step(1)["fields"][0]
INDUSTRY = get_step(1)["fields"][1]


# ---------------------------------------------------------------------------
# _ask_field
# ---------------------------------------------------------------------------


class TestAskField:
    @patch("audit_wizard.main.form_assistant", new_callable=AsyncMock)
    @patch("audit_wizard.main._prompt", new_callable=AsyncMock)
    def test_question_mark_asks_assistant_then_reprompts(self, mock_prompt, mock_assistant):
        mock_prompt.side_effect = ["? what counts as the company name?", "Acme"]
        mock_assistant.return_value = Ok("Your legal or trading name.")
        history = []

        value = asyncio.run(_ask_field(COMPANY_NAME, None, "Step 1: Company Profile", history))

        assert value == "Acme"
        mock_assistant.assert_awaited_once()
        assert mock_assistant.await_args.args[0] == "what counts as the company name?"
        assert mock_assistant.await_args.kwargs == {
            "selected_text": "Company Name",
            "context": "Step 1: Company Profile",
        }
        assert history[-1] == {"role": "assistant", "content": "Your legal or trading name."}

    @patch("audit_wizard.main.form_assistant", new_callable=AsyncMock)
    @patch("audit_wizard.main._prompt", new_callable=AsyncMock)
    def test_bare_question_mark_on_select_field(self, mock_prompt, mock_assistant):
        mock_prompt.side_effect = ["?", "2"]
        mock_assistant.return_value = Err("Claude API error: 529")

        value = asyncio.run(_ask_field(INDUSTRY, None))

        assert value == INDUSTRY["options"][1]
        question = mock_assistant.await_args.args[0]
        assert "Industry" in question

    @patch("audit_wizard.main._prompt", new_callable=AsyncMock)
    def test_empty_answer_keeps_current(self, mock_prompt):
        mock_prompt.side_effect = [""]
        assert asyncio.run(_ask_field(COMPANY_NAME, "Acme")) is None


# ---------------------------------------------------------------------------
# _print_history / _chat_loop
# ---------------------------------------------------------------------------


class TestHistoryAndChat:
    def test_print_history(self, capsys):
        store = SimpleNamespace(list_drafts=AsyncMock(return_value=Ok([
            {"id": "a-1", "status": "completed", "created_at": "2026-03-01T10:00:00Z",
             "responses": {1: {"companyName": "Acme"}}},
        ])))

        assert asyncio.run(_print_history(store, "user-1")) == 0
        out = capsys.readouterr().out
        assert "a-1" in out and "completed" in out and "Acme" in out

    def test_print_history_failure(self):
        store = SimpleNamespace(list_drafts=AsyncMock(return_value=Err("HTTP 500")))
        assert asyncio.run(_print_history(store, "user-1")) == 1

    @patch("audit_wizard.main.audit_chat", new_callable=AsyncMock)
    @patch("audit_wizard.main._prompt", new_callable=AsyncMock)
    def test_chat_continues_latest_conversation(self, mock_prompt, mock_chat):
        earlier = [{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello"}]
        store = SimpleNamespace(
            get_draft=AsyncMock(return_value=Ok({"id": "a-1", "report_content": "# Report"})),
            latest_conversation=AsyncMock(return_value=Ok("c-1")),
            list_messages=AsyncMock(return_value=Ok(list(earlier))),
            create_conversation=AsyncMock(),
            add_message=AsyncMock(return_value=Ok("m-1")),
        )
        mock_prompt.side_effect = ["Where do we start?", ""]
        mock_chat.return_value = Ok("With a data inventory.")

        asyncio.run(_chat_loop(store, "a-1"))

        store.create_conversation.assert_not_awaited()
        assert mock_chat.await_args.args[2][:2] == earlier
        assert store.add_message.await_count == 2
        assert store.add_message.await_args.args == (
            "c-1", {"role": "assistant", "content": "With a data inventory."}
        )

    @patch("audit_wizard.main._prompt", new_callable=AsyncMock)
    def test_chat_starts_conversation_when_none(self, mock_prompt):
        store = SimpleNamespace(
            get_draft=AsyncMock(return_value=Ok({"id": "a-1", "report_content": "# Report"})),
            latest_conversation=AsyncMock(return_value=Ok(None)),
            create_conversation=AsyncMock(return_value=Ok("c-2")),
        )
        mock_prompt.side_effect = [""]

        asyncio.run(_chat_loop(store, "a-1"))

        store.create_conversation.assert_awaited_once_with("a-1", "Report Q&A")


# ---------------------------------------------------------------------------
# _generate_until_done
# ---------------------------------------------------------------------------


class TestGenerateUntilDone:
    @patch("audit_wizard.main._walk_steps", new_callable=AsyncMock)
    @patch("audit_wizard.main._prompt", new_callable=AsyncMock)
    def test_edit_then_retry(self, mock_prompt, mock_walk):
        wizard = SimpleNamespace(generate=AsyncMock(side_effect=[Err("down"), Ok("# Report")]))
        mock_prompt.side_effect = ["e"]

        assert asyncio.run(_generate_until_done(wizard)) is True
        mock_walk.assert_awaited_once_with(wizard)
        assert wizard.generate.await_count == 2

    @patch("audit_wizard.main._prompt", new_callable=AsyncMock)
    def test_quit_after_failure(self, mock_prompt):
        wizard = SimpleNamespace(generate=AsyncMock(return_value=Err("down")))
        mock_prompt.side_effect = ["q"]

        assert asyncio.run(_generate_until_done(wizard)) is False
        assert wizard.generate.await_count == 1
