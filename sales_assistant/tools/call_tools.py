"""Aircall-backed tool handlers."""

import asyncio
from typing import Any

import structlog

from sales_assistant.clients.aircall import AircallError
from sales_assistant.schemas.tool_schema import CallActivityInput, NoInput
from sales_assistant.services.call_stats import compute_call_stats, compute_rep_stats
from sales_assistant.tools.context import ToolContext

logger = structlog.get_logger()

REP_STATS_PREVIEW = 15


async def get_call_activity(ctx: ToolContext, args: CallActivityInput) -> dict[str, Any]:
    calls = await ctx.aircall.get_calls_for_period(args.period, now=ctx.now())
    rep_stats = compute_rep_stats(calls)
    return {
        "period": args.period,
        "stats": compute_call_stats(calls).to_dict(),
        "rep_stats": [rep.to_dict() for rep in rep_stats[:REP_STATS_PREVIEW]],
    }


async def _aircall_users(ctx: ToolContext) -> list[dict[str, Any]]:
    try:
        return await ctx.aircall.list_users()
    except AircallError as exc:
        logger.warning("Aircall user lookup failed", error=str(exc))
        return []


async def get_sales_reps(ctx: ToolContext, args: NoInput) -> dict[str, Any]:
    """Resolve rep names to Salesforce owner ids and Aircall user ids."""
    rep_performance, aircall_users = await asyncio.gather(
        ctx.sales.get_rep_performance(),
        _aircall_users(ctx),
    )
    return {
        "salesforce_reps": [
            {
                "name": rep["name"],
                "email": rep["email"],
                "salesforce_owner_id": rep["owner_id"],
                "total_deals": rep["total_deals"],
                "total_revenue": rep["total_revenue"],
            }
            for rep in rep_performance
        ],
        "aircall_users": [
            {
                "name": user.get("name"),
                "email": user.get("email"),
                "aircall_user_id": user.get("id"),
            }
            for user in aircall_users
        ],
    }
