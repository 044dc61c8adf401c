"""Output Formatter — writes a generated report plus a responses appendix as Markdown."""

import re
from pathlib import Path

from audit_wizard.config import get_config
from audit_wizard.state import FieldValue, FormState
from audit_wizard.steps import get_step

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _slugify(text: str) -> str:
    return _SLUG_RE.sub("-", text.lower()).strip("-")


def _format_value(value: FieldValue) -> str:
    if isinstance(value, list):
        return ", ".join(value) if value else "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    text = str(value).strip()
    return text.replace("|", "\\|").replace("\n", "<br>") if text else "-"


def render_responses(responses: FormState) -> str:
    """Render the survey responses as one Markdown table per step."""
    lines = []
    for step_id in sorted(responses):
        fields = responses[step_id]
        if not fields:
            continue
        try:
            step = get_step(step_id)
            title = step["title"]
            labels = {f["name"]: f.get("label", f["name"]) for f in step["fields"]}
        except KeyError:
            title, labels = f"Step {step_id}", {}

        lines.append(f"### {step_id}. {title}")
        lines.append("")
        lines.append("| Question | Answer |")
        lines.append("|----------|--------|")
        for name, value in fields.items():
            lines.append(f"| {labels.get(name, name)} | {_format_value(value)} |")
        lines.append("")
    return "\n".join(lines)


def render_report(report: str, responses: FormState) -> str:
    content = report.rstrip() + "\n"
    appendix = render_responses(responses)
    if appendix:
        content += "\n---\n\n## Appendix: Survey Responses\n\n" + appendix
    return content


def write_report(report: str, responses: FormState, output_dir: str | Path | None = None) -> Path:
    """Write the report to the configured output directory.

    The file name comes from the company name when one was entered. An
    existing file is never overwritten: " (2)", " (3)"... are appended.

    Returns the Path to the written file.
    """
    config = get_config()
    if output_dir is None:
        base_path = Path(__file__).resolve().parent.parent.parent / config["output_path"]
    else:
        base_path = Path(output_dir) / Path(config["output_path"]).name
    out_dir = base_path.parent
    out_dir.mkdir(parents=True, exist_ok=True)

    company = responses.get(1, {}).get("companyName", "")
    stem = _slugify(company) if isinstance(company, str) and company.strip() else ""
    stem = f"{stem}-ai-audit" if stem else base_path.stem

    output_path = out_dir / f"{stem}.md"
    counter = 1
    while output_path.exists():
        counter += 1
        output_path = out_dir / f"{stem} ({counter}).md"

    output_path.write_text(render_report(report, responses), encoding="utf-8")
    return output_path
