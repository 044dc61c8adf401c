"""Wizard step catalog — the ten sections of the AI readiness survey."""

from typing import Literal, TypedDict

from audit_wizard.state import FormState


class FieldSpec(TypedDict, total=False):
    name: str
    label: str
    kind: Literal["text", "textarea", "select", "multiselect"]
    options: list[str]
    placeholder: str


class WizardStep(TypedDict):
    id: int
    title: str
    description: str
    fields: list[FieldSpec]


REPORT_PREFERENCES = [
    "Executive-level summary",
    "Detailed technical analysis",
    "Compliance focus (GDPR, EU AI Act)",
    "Quick wins and 90-day plan",
    "Budget and ROI estimates",
]


def _notes(placeholder: str) -> list[FieldSpec]:
    return [{"name": "notes", "label": "Notes", "kind": "textarea", "placeholder": placeholder}]


STEPS: list[WizardStep] = [
    {
        "id": 1,
        "title": "Company Profile",
        "description": "Basic information about your organization",
        "fields": [
            {"name": "companyName", "label": "Company Name", "kind": "text",
             "placeholder": "Acme Corporation"},
            {"name": "industry", "label": "Industry", "kind": "select",
             "options": ["Technology", "Financial Services", "Healthcare",
                         "Manufacturing", "Retail", "Other"]},
            {"name": "companySize", "label": "Company Size", "kind": "select",
             "options": ["1-50 employees", "51-200 employees",
                         "201-1000 employees", "1000+ employees"]},
            {"name": "country", "label": "Country", "kind": "select",
             "options": ["Romania", "Germany", "France", "United Kingdom", "Other"]},
            {"name": "strategicGoals", "label": "Strategic AI Goals (Next 12 Months)",
             "kind": "textarea",
             "placeholder": "Describe your key objectives for AI adoption..."},
        ],
    },
    {"id": 2, "title": "Current AI Use & Tooling",
     "description": "Inventory of AI tools and use cases",
     "fields": _notes("Which AI tools and use cases are in place today?")},
    {"id": 3, "title": "Data Landscape",
     "description": "Data infrastructure and governance",
     "fields": _notes("Where does your data live and who owns it?")},
    {"id": 4, "title": "Architecture & MLOps",
     "description": "Technical infrastructure assessment",
     "fields": _notes("How are models built, deployed and monitored?")},
    {"id": 5, "title": "Governance & Compliance",
     "description": "GDPR, security, and risk management",
     "fields": _notes("Which policies and regulations apply?")},
    {"id": 6, "title": "Security & Privacy",
     "description": "Data protection and access controls",
     "fields": _notes("How is access to data and models controlled?")},
    {"id": 7, "title": "People & Skills",
     "description": "Team capabilities and training needs",
     "fields": _notes("Which AI skills does the team have or lack?")},
    {"id": 8, "title": "Delivery & Change Management",
     "description": "Implementation processes and adoption",
     "fields": _notes("How are new tools rolled out and adopted?")},
    {"id": 9, "title": "Business Impact & ROI",
     "description": "Value measurement and tracking",
     "fields": _notes("How is the value of AI initiatives measured?")},
    {
        "id": 10,
        "title": "Summary & Generation",
        "description": "Review and generate audit report",
        "fields": [
            {"name": "reportPreferences", "label": "Report Preferences", "kind": "multiselect",
             "options": REPORT_PREFERENCES},
        ],
    },
]

SUMMARY_STEP_ID = STEPS[-1]["id"]


def get_step(step_id: int) -> WizardStep:
    for step in STEPS:
        if step["id"] == step_id:
            return step
    raise KeyError(f"Unknown step {step_id}.")


def step_progress(form_state: FormState) -> list[int]:
    """Return ids of steps with at least one non-empty answer."""
    done = []
    for step in STEPS:
        answers = form_state.get(step["id"], {})
        if any(v not in ("", None, []) for v in answers.values()):
            done.append(step["id"])
    return done


def report_preferences(form_state: FormState) -> list[str]:
    value = form_state.get(SUMMARY_STEP_ID, {}).get("reportPreferences", [])
    return list(value) if isinstance(value, list) else []
