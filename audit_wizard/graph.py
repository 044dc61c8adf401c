"""LangGraph StateGraph definition for the report generation pipeline.

mark_generating -> generate -> mark_completed -> END
                            \\-> mark_failed ----> END

The draft store is passed per run through config["configurable"]["store"].
"""

import copy
import logging

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from audit_wizard.agents.reporter import compose_report
from audit_wizard.state import FormState, ReportState
from audit_wizard.storage.drafts import DraftStore
from audit_wizard.utils.result import Err, Ok, Result

logger = logging.getLogger(__name__)


def _store(config: RunnableConfig) -> DraftStore:
    return config["configurable"]["store"]


async def _mark_generating(state: ReportState, config: RunnableConfig) -> dict:
    result = await _store(config).set_status(state["draft_id"], "draft", "generating")
    if not result.ok:
        # The row never left draft, so there is nothing to mark failed.
        logger.error("Could not start generation for %s: %s", state["draft_id"], result.reason)
        return {"error": result.reason}
    return {"status": "generating"}


async def _generate(state: ReportState, config: RunnableConfig) -> dict:
    logger.info("Processing audit report generation for: %s", state["draft_id"])
    try:
        report = await compose_report(state["responses"], state["preferences"])
    except Exception as e:  # noqa: BLE001 - any model failure marks the draft failed
        logger.error("Error generating audit report for %s: %r", state["draft_id"], e)
        return {"error": str(e) or type(e).__name__}
    return {"report_content": report}


async def _mark_completed(state: ReportState, config: RunnableConfig) -> dict:
    result = await _store(config).save_report(
        state["draft_id"], state["report_content"], state["responses"]
    )
    if not result.ok:
        logger.error("Database update error for %s: %s", state["draft_id"], result.reason)
        return {"error": result.reason}
    logger.info("Audit report generated successfully for: %s", state["draft_id"])
    return {"status": "completed"}


async def _mark_failed(state: ReportState, config: RunnableConfig) -> dict:
    result = await _store(config).set_status(state["draft_id"], "generating", "failed")
    if not result.ok:
        logger.error("Failed to update audit status to failed: %s", result.reason)
    return {"status": "failed"}


def _route_after_start(state: ReportState) -> str:
    return "end" if state.get("error") else "generate"


def _route_after_generate(state: ReportState) -> str:
    return "failed" if state.get("error") else "completed"


def _route_after_completed(state: ReportState) -> str:
    return "failed" if state.get("error") else "end"


# --- Build the graph ---

workflow = StateGraph(ReportState)

workflow.add_node("mark_generating", _mark_generating)
workflow.add_node("generate", _generate)
workflow.add_node("mark_completed", _mark_completed)
workflow.add_node("mark_failed", _mark_failed)

workflow.set_entry_point("mark_generating")

workflow.add_conditional_edges(
    "mark_generating", _route_after_start, {"end": END, "generate": "generate"}
)
workflow.add_conditional_edges(
    "generate", _route_after_generate, {"completed": "mark_completed", "failed": "mark_failed"}
)
workflow.add_conditional_edges(
    "mark_completed", _route_after_completed, {"end": END, "failed": "mark_failed"}
)
workflow.add_edge("mark_failed", END)

graph = workflow.compile()


async def run_pipeline(
    store: DraftStore, draft_id: str, form_state: FormState, preferences: list[str]
) -> ReportState:
    """Run the pipeline for one draft and return the final graph state.

    The final "status" is where the remote row ended up: it stays "draft"
    when generation could not start. form_state is copied; the caller's
    FormState is never modified.
    """
    initial: ReportState = {
        "draft_id": draft_id,
        "responses": copy.deepcopy(form_state),
        "preferences": list(preferences),
        "status": "draft",
        "report_content": "",
        "error": "",
    }
    return await graph.ainvoke(initial, config={"configurable": {"store": store}})


def report_result(final: ReportState) -> Result[str]:
    if final["status"] == "completed":
        return Ok(final["report_content"])
    return Err(final.get("error") or f"Report generation ended in status '{final['status']}'.")


async def generate_report(
    store: DraftStore, draft_id: str, form_state: FormState, preferences: list[str]
) -> Result[str]:
    """Run the pipeline for one draft. Returns Ok(report) or Err(reason)."""
    return report_result(await run_pipeline(store, draft_id, form_state, preferences))
