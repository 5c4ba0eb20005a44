"""Salesforce-backed tool handlers."""

import asyncio
from typing import Any

from sales_assistant.schemas.tool_schema import (
    AddNoteInput,
    AnalyticsInput,
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
from sales_assistant.services.sales_data_service import gross_amount, total_value
from sales_assistant.tools.context import ToolContext

LIST_PREVIEW = 20
EVENTS_PREVIEW = 30
EVENT_DEALS_PREVIEW = 25
CLIENT_NOTES_PREVIEW = 10


async def search_leads(ctx: ToolContext, args: SearchLeadsInput) -> dict[str, Any]:
    leads = await ctx.sales.get_leads(
        status=args.status,
        source_group_name=args.source_group,
        interest=args.interest,
        owner_id=args.owner_id,
        search=args.search,
        view=args.view,
    )
    return {"count": len(leads), "leads": leads[:LIST_PREVIEW]}


async def get_pipeline(ctx: ToolContext, args: PipelineInput) -> dict[str, Any]:
    deals = await ctx.sales.get_open_opportunities(
        owner_id=args.owner_id,
        event_id=args.event_id,
        event_category=args.event_category,
        min_amount=args.min_amount,
        max_amount=args.max_amount,
        include_closed=args.include_closed,
    )
    by_stage: dict[str, dict[str, float | int]] = {}
    for deal in deals:
        stage = by_stage.setdefault(
            deal.get("StageName") or "Unknown", {"count": 0, "total": 0.0}
        )
        stage["count"] += 1
        stage["total"] += gross_amount(deal)
    return {
        "count": len(deals),
        "total_value": total_value(deals),
        "by_stage": by_stage,
        "deals": deals[:LIST_PREVIEW],
    }


async def get_sales_dashboard(
    ctx: ToolContext, args: SalesDashboardInput
) -> dict[str, Any]:
    return await ctx.sales.get_dashboard_data(args.period)


async def get_events(ctx: ToolContext, args: NoInput) -> dict[str, Any]:
    events = await ctx.sales.get_events_with_inventory()
    return {"count": len(events), "events": events[:EVENTS_PREVIEW]}


async def get_event_deals(ctx: ToolContext, args: EventDealsInput) -> dict[str, Any]:
    deals = await ctx.sales.get_event_opportunities(args.event_id)
    event_name = "Event"
    if deals:
        event_name = (deals[0].get("Event__r") or {}).get("Name") or event_name
    return {
        "event_name": event_name,
        "count": len(deals),
        "total_value": total_value(deals),
        "deals": deals[:EVENT_DEALS_PREVIEW],
    }


async def search_clients(ctx: ToolContext, args: SearchClientsInput) -> dict[str, Any]:
    contacts = await ctx.sales.get_contacts(
        search=args.search,
        owner_id=args.owner_id,
        min_spend=args.min_spend,
        max_spend=args.max_spend,
        sort_by=args.sort_by,
        view=args.view,
    )
    return {"count": len(contacts), "contacts": contacts[:LIST_PREVIEW]}


async def get_client_detail(ctx: ToolContext, args: ClientDetailInput) -> dict[str, Any]:
    contact, opportunities, notes = await asyncio.gather(
        ctx.sales.get_contact_detail(args.contact_id),
        ctx.sales.get_contact_opportunities(args.contact_id),
        ctx.sales.get_contact_notes(args.contact_id),
    )
    return {
        "contact": contact,
        "opportunities": opportunities,
        "notes": notes[:CLIENT_NOTES_PREVIEW],
    }


async def get_finance_data(ctx: ToolContext, args: FinanceDataInput) -> dict[str, Any]:
    match args.type:
        case "accounts":
            data = await ctx.sales.get_account_financials()
        case "paymentPlans":
            data = await ctx.sales.get_payment_plan_progress()
        case "credits":
            data = await ctx.sales.get_credit_accounts()
    return {"type": args.type, "data": data}


async def get_analytics(ctx: ToolContext, args: AnalyticsInput) -> dict[str, Any]:
    match args.type:
        case "channels":
            data = await ctx.sales.get_channel_attribution()
        case "reps":
            data = await ctx.sales.get_rep_performance()
        case "events":
            data = await ctx.sales.get_event_performance()
    return {"type": args.type, "data": data}


async def get_targets_and_commission(
    ctx: ToolContext, args: TargetsAndCommissionInput
) -> dict[str, Any]:
    if args.data_type == "targets":
        month = args.month or str(ctx.now().month)
        targets = await ctx.sales.get_monthly_targets(args.year, month)
        return {"type": "targets", "data": targets}
    commission = await ctx.sales.get_commission_data(args.year)
    return {"type": "commission", "data": commission}


async def get_daily_recap(ctx: ToolContext, args: DailyRecapInput) -> dict[str, Any]:
    closed_today, new_leads_today, upcoming_events = await asyncio.gather(
        ctx.sales.get_deals_closed_today(),
        ctx.sales.get_leads_created_today(),
        ctx.sales.get_upcoming_events(args.upcoming_days),
    )
    return {
        "closed_today": {
            "count": len(closed_today),
            "total_value": total_value(closed_today),
            "deals": closed_today,
        },
        "new_leads_today": new_leads_today,
        "upcoming_events": {"count": len(upcoming_events), "events": upcoming_events},
    }


# --- Write tools ---


async def update_lead_status(
    ctx: ToolContext, args: UpdateLeadStatusInput
) -> dict[str, Any]:
    await ctx.sales.update_lead(args.lead_id, {"Status": args.status})
    return {
        "success": True,
        "lead_id": args.lead_id,
        "new_status": args.status,
        "message": f'Lead status updated to "{args.status}"',
    }


async def update_deal_stage(
    ctx: ToolContext, args: UpdateDealStageInput
) -> dict[str, Any]:
    await ctx.sales.update_opportunity_stage(args.opportunity_id, args.stage)
    return {
        "success": True,
        "opportunity_id": args.opportunity_id,
        "new_stage": args.stage,
        "message": f'Deal stage updated to "{args.stage}"',
    }


async def add_note(ctx: ToolContext, args: AddNoteInput) -> dict[str, Any]:
    note_id = await ctx.sales.create_note(args.contact_id, args.body)
    return {
        "success": True,
        "note_id": note_id,
        "message": (
            "Note created and linked to contact" if args.contact_id else "General note created"
        ),
    }
