"""Report section check — deterministic structural validation of a generated report.

Returns a list of issues. If empty, every expected section heading is present.
"""

import re

EXPECTED_SECTIONS = [
    "Executive Summary",
    "Current State Assessment",
    "Gap Analysis",
    "Risk Assessment",
    "Strategic Recommendations",
    "Implementation Roadmap",
    "ROI Projections",
    "Technology Requirements",
    "Skill Development Plan",
    "Governance Framework",
]

_HEADING_RE = re.compile(r"^#{1,6}\s+(.+?)\s*#*\s*$", re.MULTILINE)


def extract_headings(report: str) -> list[str]:
    return [m.group(1).strip() for m in _HEADING_RE.finditer(report or "")]


def check_report_sections(report: str) -> list[str]:
    """Check whether the report covers every expected section.

    Headings match case-insensitively and may carry numbering or extra words
    (e.g. "2. Current State Assessment").
    Returns a list of issue strings. Empty list = complete.
    """
    if not report or not report.strip():
        return ["Report is empty."]

    headings = [h.lower() for h in extract_headings(report)]
    if not headings:
        return ["Report has no Markdown headings."]

    issues = []
    for section in EXPECTED_SECTIONS:
        needle = section.lower()
        if not any(needle in h for h in headings):
            issues.append(f"Missing section: {section}.")
    return issues
