"""Closed catalogue of tools exposed to the sales assistant agent.

Every ``ToolName`` maps to exactly one ``ToolSpec``; the mapping is checked
when this module is imported. Handlers never raise past ``run_tool``:
failures come back to the model as ``{"error": ...}`` payloads.
"""

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog
from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel

from sales_assistant.schemas.tool_schema import (
    AddNoteInput,
    AnalyticsInput,
    CallActivityInput,
    ClientDetailInput,
    DailyRecapInput,
    EventDealsInput,
    FinanceDataInput,
    NoInput,
    PipelineInput,
    SalesDashboardInput,
    SearchClientsInput,
    SearchLeadsInput,
    TargetsAndCommissionInput,
    UpdateDealStageInput,
    UpdateLeadStatusInput,
)
from sales_assistant.tools import call_tools, sales_tools
from sales_assistant.tools.context import ToolContext

logger = structlog.get_logger()

Handler = Callable[[ToolContext, Any], Awaitable[dict[str, Any]]]


class ToolName(StrEnum):
    SEARCH_LEADS = "search_leads"
    GET_PIPELINE = "get_pipeline"
    GET_SALES_DASHBOARD = "get_sales_dashboard"
    GET_EVENTS = "get_events"
    GET_EVENT_DEALS = "get_event_deals"
    SEARCH_CLIENTS = "search_clients"
    GET_CLIENT_DETAIL = "get_client_detail"
    GET_FINANCE_DATA = "get_finance_data"
    GET_CALL_ACTIVITY = "get_call_activity"
    GET_ANALYTICS = "get_analytics"
    GET_TARGETS_AND_COMMISSION = "get_targets_and_commission"
    GET_DAILY_RECAP = "get_daily_recap"
    GET_SALES_REPS = "get_sales_reps"
    UPDATE_LEAD_STATUS = "update_lead_status"
    UPDATE_DEAL_STAGE = "update_deal_stage"
    ADD_NOTE = "add_note"


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    description: str
    input_model: type[BaseModel]
    handler: Handler
    action: str
    writes: bool = False


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name=ToolName.SEARCH_LEADS,
        description=(
            "Search and filter leads in Salesforce. Use for any query about leads, "
            "lead counts, lead status, or lead owners."
        ),
        input_model=SearchLeadsInput,
        handler=sales_tools.search_leads,
        action="fetch leads",
    ),
    ToolSpec(
        name=ToolName.GET_PIPELINE,
        description=(
            "Get open opportunities (pipeline/deals). Use for pipeline value, deal "
            "counts, stage breakdowns, or finding specific deals."
        ),
        input_model=PipelineInput,
        handler=sales_tools.get_pipeline,
        action="fetch pipeline",
    ),
    ToolSpec(
        name=ToolName.GET_SALES_DASHBOARD,
        description=(
            "Get sales dashboard data: totals, leaderboard, and recent closed deals "
            "for a time period. Use for revenue questions, daily/weekly/monthly "
            "sales, and leaderboard."
        ),
        input_model=SalesDashboardInput,
        handler=sales_tools.get_sales_dashboard,
        action="fetch sales data",
    ),
    ToolSpec(
        name=ToolName.GET_EVENTS,
        description=(
            "Get upcoming events with ticket inventory data. Use for event "
            "availability, ticket counts, or finding specific events."
        ),
        input_model=NoInput,
        handler=sales_tools.get_events,
        action="fetch events",
    ),
    ToolSpec(
        name=ToolName.GET_EVENT_DEALS,
        description=(
            "Get all opportunities/deals linked to a specific event by its "
            "Salesforce Event__c ID. Returns the event name and associated deals."
        ),
        input_model=EventDealsInput,
        handler=sales_tools.get_event_deals,
        action="fetch event deals",
    ),
    ToolSpec(
        name=ToolName.SEARCH_CLIENTS,
        description=(
            "Search contacts/clients in Salesforce. Use for client lookups, spend "
            "analysis, or finding contacts."
        ),
        input_model=SearchClientsInput,
        handler=sales_tools.search_clients,
        action="fetch clients",
    ),
    ToolSpec(
        name=ToolName.GET_CLIENT_DETAIL,
        description=(
            "Get full details for a single contact/client including their deals "
            "and notes, by Salesforce Contact ID."
        ),
        input_model=ClientDetailInput,
        handler=sales_tools.get_client_detail,
        action="fetch client detail",
    ),
    ToolSpec(
        name=ToolName.GET_FINANCE_DATA,
        description=(
            "Get financial data: account invoices/balances, payment plan progress, "
            "or credit accounts."
        ),
        input_model=FinanceDataInput,
        handler=sales_tools.get_finance_data,
        action="fetch finance data",
    ),
    ToolSpec(
        name=ToolName.GET_CALL_ACTIVITY,
        description=(
            "Get phone call activity from Aircall. Use for call volume, call "
            "stats, or per-rep call breakdowns."
        ),
        input_model=CallActivityInput,
        handler=call_tools.get_call_activity,
        action="fetch call data",
    ),
    ToolSpec(
        name=ToolName.GET_ANALYTICS,
        description=(
            "Get sales analytics: channel attribution (revenue by lead source), "
            'rep performance rankings, or event performance. Use for "which '
            'channel", "which rep", or "which event" questions.'
        ),
        input_model=AnalyticsInput,
        handler=sales_tools.get_analytics,
        action="fetch analytics",
    ),
    ToolSpec(
        name=ToolName.GET_TARGETS_AND_COMMISSION,
        description="Get monthly sales targets or commission records for a year/month.",
        input_model=TargetsAndCommissionInput,
        handler=sales_tools.get_targets_and_commission,
        action="fetch targets/commission",
    ),
    ToolSpec(
        name=ToolName.GET_DAILY_RECAP,
        description=(
            "Get a daily recap: deals closed today, new leads today, and upcoming "
            'events. Use for "what happened today" or start-of-day briefings.'
        ),
        input_model=DailyRecapInput,
        handler=sales_tools.get_daily_recap,
        action="fetch daily recap",
    ),
    ToolSpec(
        name=ToolName.GET_SALES_REPS,
        description=(
            "List sales reps with their Salesforce OwnerId and Aircall user ID. "
            "Use this first when the user names a rep so other tools can filter "
            "by their id."
        ),
        input_model=NoInput,
        handler=call_tools.get_sales_reps,
        action="fetch reps",
    ),
    ToolSpec(
        name=ToolName.UPDATE_LEAD_STATUS,
        description=(
            "Update the status of a lead in Salesforce, e.g. mark a lead as "
            "Qualified or move it to Working."
        ),
        input_model=UpdateLeadStatusInput,
        handler=sales_tools.update_lead_status,
        action="update lead",
        writes=True,
    ),
    ToolSpec(
        name=ToolName.UPDATE_DEAL_STAGE,
        description=(
            "Update the stage of an opportunity/deal in Salesforce, e.g. mark a "
            "deal as Agreement Signed or move it to Deposit Taken."
        ),
        input_model=UpdateDealStageInput,
        handler=sales_tools.update_deal_stage,
        action="update deal",
        writes=True,
    ),
    ToolSpec(
        name=ToolName.ADD_NOTE,
        description=(
            "Create a note in Salesforce (A_B_Note__c), linked to a contact or "
            "as a general note."
        ),
        input_model=AddNoteInput,
        handler=sales_tools.add_note,
        action="create note",
        writes=True,
    ),
)

TOOLS_BY_NAME: dict[ToolName, ToolSpec] = {spec.name: spec for spec in TOOL_SPECS}


def _check_catalogue() -> None:
    names = [spec.name for spec in TOOL_SPECS]
    duplicates = {name for name in names if names.count(name) > 1}
    missing = set(ToolName) - set(names)
    if duplicates or missing:
        raise RuntimeError(
            f"Tool catalogue mismatch: missing={sorted(missing)} "
            f"duplicates={sorted(duplicates)}"
        )


_check_catalogue()


async def run_tool(
    spec: ToolSpec, context: ToolContext, args: BaseModel
) -> dict[str, Any]:
    """Execute a tool, converting any failure into an error payload."""
    try:
        result = await spec.handler(context, args)
    except Exception as exc:
        logger.warning(
            "Tool execution failed",
            tool=spec.name.value,
            error=str(exc),
        )
        return {"error": f"Failed to {spec.action}: {str(exc) or 'Unknown error'}"}

    if spec.writes:
        logger.info(
            "CRM write executed",
            tool=spec.name.value,
            args=args.model_dump(exclude_none=True),
        )
    return result


def _bind(spec: ToolSpec, context: ToolContext) -> StructuredTool:
    async def _run(**kwargs: Any) -> str:
        result = await run_tool(spec, context, spec.input_model(**kwargs))
        return json.dumps(result, default=str)

    return StructuredTool.from_function(
        coroutine=_run,
        name=spec.name.value,
        description=spec.description,
        args_schema=spec.input_model,
    )


def build_tools(context: ToolContext) -> list[BaseTool]:
    """Bind every registered tool to a request's context."""
    return [_bind(spec, context) for spec in TOOL_SPECS]
