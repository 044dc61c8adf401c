"""Report agent — turns survey responses into a Markdown AI readiness audit report.

The model is asked for the ten fixed sections listed in utils/sections.py.
A report missing some of them is still accepted; the gaps are logged.
"""

import json
import logging

from langchain_anthropic import ChatAnthropic

from audit_wizard.config import get_config
from audit_wizard.state import FormState
from audit_wizard.steps import get_step
from audit_wizard.utils.parsing import ainvoke_with_retry, response_text, strip_fences
from audit_wizard.utils.sections import EXPECTED_SECTIONS, check_report_sections

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES = "Standard comprehensive report"

SECTION_HINTS = {
    "Executive Summary": "High-level overview and key recommendations",
    "Current State Assessment": "Analysis of organization's current AI maturity",
    "Gap Analysis": "Identification of areas needing improvement",
    "Risk Assessment": "Potential risks and mitigation strategies",
    "Strategic Recommendations": "Prioritized action items",
    "Implementation Roadmap": "90-day action plan with phases",
    "ROI Projections": "Expected return on investment",
    "Technology Requirements": "Infrastructure and tool recommendations",
    "Skill Development Plan": "Training and hiring recommendations",
    "Governance Framework": "Policies and procedures needed",
}


def _label_responses(responses: FormState) -> dict:
    """Key responses by step title so the model sees what each answer refers to."""
    labelled = {}
    for step_id in sorted(responses):
        try:
            title = get_step(step_id)["title"]
        except KeyError:
            title = f"Step {step_id}"
        labelled[title] = responses[step_id]
    return labelled


def build_prompt(responses: FormState, preferences: list[str]) -> str:
    sections = "\n\n".join(f"## {name}\n{SECTION_HINTS[name]}" for name in EXPECTED_SECTIONS)
    prefs = ", ".join(preferences) if preferences else DEFAULT_PREFERENCES
    return (
        "You are an expert AI consultant conducting a comprehensive AI readiness audit. "
        "Based on the following survey responses, generate a detailed, professional audit report.\n\n"
        f"Survey Responses:\n{json.dumps(_label_responses(responses), indent=2)}\n\n"
        f"Report Preferences:\n{prefs}\n\n"
        "Generate a comprehensive AI readiness audit report with the following sections:\n\n"
        f"# AI Readiness Audit Report\n\n{sections}\n\n"
        "Make the report professional, actionable, and tailored to the organization's specific "
        "responses. Use clear headings, bullet points, and practical recommendations. The tone "
        "should be consultative and confident. Format as clean markdown."
    )


async def compose_report(responses: FormState, preferences: list[str]) -> str:
    """Call the configured report model and return the Markdown report.

    Raises on transport/API errors (after transient retries) and on an
    empty response.
    """
    config = get_config()
    llm = ChatAnthropic(
        model=config["report_model"],
        max_tokens=config.get("report_max_tokens", 4000),
        temperature=0.3,
    )
    messages = [{"role": "user", "content": build_prompt(responses, preferences)}]

    response = await ainvoke_with_retry(llm, messages)
    report = strip_fences(response_text(response))
    if not report:
        raise ValueError("Report model returned an empty response.")

    issues = check_report_sections(report)
    if issues:
        logger.warning("Generated report is incomplete: %s", " ".join(issues))
    return report
