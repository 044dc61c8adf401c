"""Chat agents — report Q&A over a completed audit, and help while filling in the form."""

import json
import logging

from langchain_anthropic import ChatAnthropic

from audit_wizard.config import get_config
from audit_wizard.state import ChatMessage, PersistedDraft
from audit_wizard.utils.parsing import ainvoke_with_retry, response_text
from audit_wizard.utils.result import Err, Ok, Result

logger = logging.getLogger(__name__)

AUDIT_CHAT_PROMPT = """\
You are an expert AI consultant helping a user understand and implement their AI audit report. \
You have access to their complete audit data and report.

INSTRUCTIONS:
- Provide specific, actionable advice based on their audit results
- Reference specific parts of their report when relevant
- Explain technical concepts in accessible language
- Prioritize recommendations based on their organizational context
- Offer step-by-step implementation guidance when asked
- Stay focused on AI strategy, governance, and implementation topics
- Be concise but thorough in your explanations
"""

FORM_ASSISTANT_PROMPT = """\
You are an AI audit specialist helping users understand and complete an AI readiness \
assessment form. Your role is to:

1. Explain audit questions and terminology in plain language
2. Provide context for why certain information is important for AI readiness
3. Help users understand how to evaluate their organization's capabilities
4. Offer examples of what good/poor answers might look like
5. Clarify technical concepts without being overly technical

Provide a helpful, concise explanation that helps them better understand and complete the audit form.
"""


def _format_history(history: list[ChatMessage]) -> str:
    return "\n".join(f"{m['role'].upper()}: {m['content']}" for m in history)


def _audit_context(audit: PersistedDraft, history: list[ChatMessage]) -> str:
    return (
        "AUDIT REPORT CONTEXT:\n"
        f"Title: {audit.get('title') or 'AI Readiness Audit'}\n\n"
        f"AUDIT RESPONSES SUMMARY:\n{json.dumps(audit['responses'], indent=2)}\n\n"
        f"GENERATED REPORT CONTENT:\n{audit.get('report_content') or ''}\n\n"
        f"CONVERSATION HISTORY:\n{_format_history(history)}"
    )


async def _ask(model_key: str, tokens_key: str, system: str, question: str) -> Result[str]:
    config = get_config()
    llm = ChatAnthropic(model=config[model_key], max_tokens=config.get(tokens_key, 1000))
    messages = [
        {"role": "system", "content": system},
        {"role": "user", "content": question},
    ]
    try:
        response = await ainvoke_with_retry(llm, messages)
    except Exception as e:  # noqa: BLE001 - reported to the caller as Err
        logger.error("Chat model call failed: %r", e)
        return Err(str(e) or type(e).__name__)
    text = response_text(response).strip()
    if not text:
        return Err("Model returned an empty response.")
    return Ok(text)


async def audit_chat(
    audit: PersistedDraft, message: str, history: list[ChatMessage]
) -> Result[str]:
    """Answer a question about a completed audit report."""
    if not audit.get("report_content"):
        return Err("Audit has no generated report yet.")
    logger.info("Processing chat message for audit: %s", audit["id"])
    system = f"{AUDIT_CHAT_PROMPT}\nUSER CONTEXT: {_audit_context(audit, history)}"
    return await _ask("chat_model", "chat_max_tokens", system, message)


async def form_assistant(
    message: str,
    history: list[ChatMessage],
    selected_text: str | None = None,
    context: str | None = None,
) -> Result[str]:
    """Explain a survey question or term while the user fills in the wizard."""
    if selected_text:
        context_info = f'User selected text: "{selected_text}"\nContext: {context or "AI Audit Form"}'
    else:
        context_info = f"Context: {context or 'AI Audit Form'}"
    parts = [FORM_ASSISTANT_PROMPT, context_info]
    if history:
        parts.append(f"Previous conversation:\n{_format_history(history)}")
    return await _ask("assistant_model", "assistant_max_tokens", "\n\n".join(parts), message)
