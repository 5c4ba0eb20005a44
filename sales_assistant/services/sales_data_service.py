"""Salesforce reads and writes behind the sales assistant tools."""

import asyncio
from collections import defaultdict
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Literal

from sales_assistant.clients.salesforce import SalesforceClient, soql_list, soql_literal

SalesPeriod = Literal["today", "week", "month", "year"]

LEAD_SOURCE_GROUPS: dict[str, list[str]] = {
    "Digital Ads": [
        "Google AdWords",
        "LinkedIn",
        "Linkedin Ads",
        "Display Ads",
        "Facebook Lead Form",
        "Advertisement",
    ],
    "Organic": ["Organic Search", "Website", "Web", "Web Form", "Social Media"],
    "Outbound": [
        "Cognism",
        "Credit Safe",
        "Lusha",
        "Phone",
        "Purchased List",
        "Central London Residents - Cold",
    ],
    "Referral": [
        "Employee Referral",
        "External Referral",
        "Referral",
        "Partner",
        "Trade Contact",
        "Networking",
    ],
    "Events": ["Trade Show", "Customer Event", "Events", "Webinar"],
    "Database": [
        "KT database",
        "LT database",
        "RR database",
        "Snowbomb database",
        "v1.1 Premium database",
        "V2.1 database",
        "V3.1",
    ],
    "Email": ["Email", "Chat"],
    "Other": ["Marketing (Max)", "Other"],
}

INTEREST_FIELDS = (
    "Formula_1__c",
    "Football__c",
    "Rugby__c",
    "Tennis__c",
    "Live_Music__c",
    "Culinary__c",
    "Luxury_Lifestyle_Celebrity__c",
    "Unique_Experiences__c",
    "Other__c",
)

LEAD_STATUSES = (
    "New",
    "Working",
    "Prospect",
    "Interested",
    "Nurturing",
    "Qualified",
    "Unqualified",
)

OPEN_STAGES = ("New", "Deposit Taken", "Agreement Sent")
WON_STAGES = ("Agreement Signed", "Amended", "Amendment Signed")
LOST_STAGES = ("Closed Lost", "Cancelled")
OPPORTUNITY_STAGES = OPEN_STAGES + WON_STAGES + LOST_STAGES

LEAD_FIELDS = """
    Id, Name, Company, Email, Phone, Status, LeadSource, Rating, Score__c,
    Event_of_Interest__c, OwnerId, Owner.Name, CreatedDate, LastActivityDate
"""

OPPORTUNITY_FIELDS = """
    Id, Name, StageName, CloseDate, Amount, Gross_Amount__c,
    OwnerId, Owner.Name, Owner.Email, Account.Name,
    Event__c, Event__r.Name, Event__r.Category__c, LeadSource, CreatedDate
"""

CONTACT_FIELDS = """
    Id, Name, Email, Phone, Title, Account.Name, Account.Type,
    Total_Spend_to_Date__c, Total_Won_Opportunities__c, OwnerId, Owner.Name,
    CreatedDate, LastActivityDate
"""

EVENT_FIELDS = """
    Id, Name, Category__c, Start_Date__c, End_Date__c, Location__r.Name,
    Revenue_Target__c, Sum_of_Closed_Won_Gross__c, Percentage_to_Target__c,
    Total_Tickets_Required__c, Total_Tickets_Booked__c, Total_Tickets_Remaining__c,
    Hospitality_Tickets_Required__c, Hospitality_Tickets_Booked__c,
    Hospitality_Tickets_Remaining__c
"""

LEAD_VIEWS: dict[str, str] = {
    "all": "",
    "hot": "(Rating = 'Hot' OR Score__c >= 70)",
    "needCalling": "Status IN ('New', 'Working') AND LastActivityDate = null",
    "newThisWeek": "CreatedDate = THIS_WEEK",
    "goingCold": (
        "LastActivityDate < LAST_N_DAYS:30 AND Status NOT IN ('Qualified', 'Unqualified')"
    ),
    "eventInterested": "Event_of_Interest__c != null",
    "unqualified": "Status = 'Unqualified'",
}

CONTACT_SORTS: dict[str, str] = {
    "spend": "Total_Spend_to_Date__c DESC NULLS LAST",
    "activity": "LastActivityDate DESC NULLS LAST",
    "name": "Name ASC",
    "created": "CreatedDate DESC",
}


def gross_amount(opportunity: dict[str, Any]) -> float:
    """Gross amount, falling back to the net ``Amount``."""
    value = opportunity.get("Gross_Amount__c")
    if value is None:
        value = opportunity.get("Amount")
    return float(value or 0)


def total_value(opportunities: list[dict[str, Any]]) -> float:
    return sum(gross_amount(o) for o in opportunities)


def source_group(lead_source: str | None) -> str:
    for group, sources in LEAD_SOURCE_GROUPS.items():
        if lead_source in sources:
            return group
    return "Other"


def soql_like(term: str) -> str:
    """Quote a ``LIKE '%term%'`` pattern, escaping wildcards."""
    escaped = (
        term.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
    return f"'%{escaped}%'"


def date_range(period: SalesPeriod, today: date) -> tuple[date, date]:
    """Inclusive start/end dates for a period containing ``today``."""
    if period == "today":
        return today, today
    if period == "week":
        monday = today - timedelta(days=today.weekday())
        return monday, monday + timedelta(days=6)
    if period == "month":
        start = today.replace(day=1)
        next_month = (start + timedelta(days=32)).replace(day=1)
        return start, next_month - timedelta(days=1)
    return today.replace(month=1, day=1), today.replace(month=12, day=31)


def compute_totals(deals: list[dict[str, Any]]) -> dict[str, float | int]:
    amount = total_value(deals)
    return {
        "total_amount": amount,
        "total_deals": len(deals),
        "average_deal": amount / len(deals) if deals else 0.0,
    }


def compute_leaderboard(deals: list[dict[str, Any]]) -> list[dict[str, Any]]:
    reps: dict[str, dict[str, Any]] = {}
    for deal in deals:
        owner = deal.get("Owner") or {}
        name = owner.get("Name") or "Unknown"
        email = owner.get("Email") or ""
        rep = reps.setdefault(
            email or name,
            {"name": name, "email": email, "total_amount": 0.0, "deal_count": 0},
        )
        rep["total_amount"] += gross_amount(deal)
        rep["deal_count"] += 1
    return sorted(reps.values(), key=lambda r: r["total_amount"], reverse=True)


def _where(clauses: list[str]) -> str:
    return f"WHERE {' AND '.join(clauses)}" if clauses else ""


class SalesDataService:
    """Builds SOQL for each sales question and shapes the results."""

    def __init__(
        self,
        client: SalesforceClient,
        closed_stages: list[str],
        timezone: tzinfo,
    ) -> None:
        self._client = client
        self._closed_stages = closed_stages
        self._timezone = timezone

    def _today(self) -> date:
        return datetime.now(self._timezone).date()

    # --- Leads ---

    async def get_leads(
        self,
        status: str | None = None,
        source_group_name: str | None = None,
        interest: str | None = None,
        owner_id: str | None = None,
        search: str | None = None,
        view: str | None = None,
    ) -> list[dict[str, Any]]:
        clauses: list[str] = []
        if status:
            clauses.append(f"Status = {soql_literal(status)}")
        if source_group_name:
            sources = LEAD_SOURCE_GROUPS.get(source_group_name)
            if sources is None:
                raise ValueError(f"Unknown source group: {source_group_name}")
            clauses.append(f"LeadSource IN {soql_list(sources)}")
        if interest:
            if interest not in INTEREST_FIELDS:
                raise ValueError(f"Unknown interest field: {interest}")
            clauses.append(f"{interest} = true")
        if owner_id:
            clauses.append(f"OwnerId = {soql_literal(owner_id)}")
        if search:
            pattern = soql_like(search)
            clauses.append(
                f"(Name LIKE {pattern} OR Company LIKE {pattern} OR Email LIKE {pattern})"
            )
        if view and LEAD_VIEWS.get(view):
            clauses.append(LEAD_VIEWS[view])

        return await self._client.query(
            f"SELECT {LEAD_FIELDS} FROM Lead {_where(clauses)} "
            "ORDER BY CreatedDate DESC LIMIT 500"
        )

    async def get_leads_created_today(self) -> dict[str, Any]:
        leads = await self._client.query(
            f"SELECT {LEAD_FIELDS} FROM Lead WHERE CreatedDate = TODAY "
            "ORDER BY CreatedDate DESC LIMIT 200"
        )
        return {"count": len(leads), "leads": leads[:20]}

    async def update_lead(self, lead_id: str, fields: dict[str, Any]) -> None:
        await self._client.update("Lead", lead_id, fields)

    # --- Opportunities ---

    async def get_open_opportunities(
        self,
        owner_id: str | None = None,
        event_id: str | None = None,
        event_category: str | None = None,
        min_amount: float | None = None,
        max_amount: float | None = None,
        include_closed: bool = False,
    ) -> list[dict[str, Any]]:
        clauses: list[str] = []
        if not include_closed:
            clauses.append(f"StageName IN {soql_list(list(OPEN_STAGES))}")
        if owner_id:
            clauses.append(f"OwnerId = {soql_literal(owner_id)}")
        if event_id:
            clauses.append(f"Event__c = {soql_literal(event_id)}")
        if event_category:
            clauses.append(f"Event__r.Category__c = {soql_literal(event_category)}")

        deals = await self._client.query(
            f"SELECT {OPPORTUNITY_FIELDS} FROM Opportunity {_where(clauses)} "
            "ORDER BY CloseDate ASC LIMIT 1000"
        )
        # Gross_Amount__c is a formula field, so amount filters run here.
        if min_amount is not None:
            deals = [d for d in deals if gross_amount(d) >= min_amount]
        if max_amount is not None:
            deals = [d for d in deals if gross_amount(d) <= max_amount]
        return deals

    async def get_event_opportunities(self, event_id: str) -> list[dict[str, Any]]:
        return await self._client.query(
            f"SELECT {OPPORTUNITY_FIELDS} FROM Opportunity "
            f"WHERE Event__c = {soql_literal(event_id)} ORDER BY CloseDate DESC"
        )

    async def fetch_deals_for_period(self, period: SalesPeriod) -> list[dict[str, Any]]:
        start, end = date_range(period, self._today())
        return await self._client.query(
            f"SELECT {OPPORTUNITY_FIELDS} FROM Opportunity "
            f"WHERE StageName IN {soql_list(self._closed_stages)} "
            f"AND CloseDate >= {start.isoformat()} AND CloseDate <= {end.isoformat()} "
            "ORDER BY CloseDate DESC LIMIT 2000"
        )

    async def get_dashboard_data(self, period: SalesPeriod = "month") -> dict[str, Any]:
        periods: tuple[SalesPeriod, ...] = ("today", "week", "month", "year")
        results = await asyncio.gather(*(self.fetch_deals_for_period(p) for p in periods))
        deals_by_period = dict(zip(periods, results, strict=True))
        selected = deals_by_period[period]
        return {
            "period": period,
            "totals": compute_totals(selected),
            "deals": selected[:25],
            "leaderboard": compute_leaderboard(selected),
            "all_totals": {p: compute_totals(d) for p, d in deals_by_period.items()},
        }

    async def get_deals_closed_today(self) -> list[dict[str, Any]]:
        return await self.fetch_deals_for_period("today")

    async def update_opportunity_stage(self, opportunity_id: str, stage: str) -> None:
        await self._client.update("Opportunity", opportunity_id, {"StageName": stage})

    # --- Events ---

    async def get_events_with_inventory(self) -> list[dict[str, Any]]:
        return await self._client.query(
            f"SELECT {EVENT_FIELDS} FROM Event__c "
            "WHERE Start_Date__c >= TODAY ORDER BY Start_Date__c ASC LIMIT 200"
        )

    async def get_upcoming_events(self, days: int = 7) -> list[dict[str, Any]]:
        today = self._today()
        until = today + timedelta(days=days)
        return await self._client.query(
            f"SELECT {EVENT_FIELDS} FROM Event__c "
            f"WHERE Start_Date__c >= {today.isoformat()} "
            f"AND Start_Date__c <= {until.isoformat()} ORDER BY Start_Date__c ASC"
        )

    # --- Contacts ---

    async def get_contacts(
        self,
        search: str | None = None,
        owner_id: str | None = None,
        min_spend: float | None = None,
        max_spend: float | None = None,
        sort_by: str | None = None,
        view: str | None = None,
    ) -> list[dict[str, Any]]:
        clauses: list[str] = []
        if search:
            pattern = soql_like(search)
            clauses.append(
                f"(Name LIKE {pattern} OR Email LIKE {pattern} OR Account.Name LIKE {pattern})"
            )
        if owner_id:
            clauses.append(f"OwnerId = {soql_literal(owner_id)}")
        if min_spend is not None:
            clauses.append(f"Total_Spend_to_Date__c >= {float(min_spend)}")
        if max_spend is not None:
            clauses.append(f"Total_Spend_to_Date__c <= {float(max_spend)}")
        if view == "personal":
            clauses.append("Account.Type = 'Personal'")
        elif view == "business":
            clauses.append("Account.Type != 'Personal'")

        order = CONTACT_SORTS.get(sort_by or "spend", CONTACT_SORTS["spend"])
        return await self._client.query(
            f"SELECT {CONTACT_FIELDS} FROM Contact {_where(clauses)} "
            f"ORDER BY {order} LIMIT 500"
        )

    async def get_contact_detail(self, contact_id: str) -> dict[str, Any] | None:
        records = await self._client.query(
            f"SELECT {CONTACT_FIELDS}, MobilePhone, LeadSource, Tags__c, Interests__c "
            f"FROM Contact WHERE Id = {soql_literal(contact_id)} LIMIT 1"
        )
        return records[0] if records else None

    async def get_contact_opportunities(self, contact_id: str) -> list[dict[str, Any]]:
        return await self._client.query(
            f"SELECT {OPPORTUNITY_FIELDS} FROM Opportunity "
            f"WHERE Opportunity_Contact__c = {soql_literal(contact_id)} "
            "ORDER BY CloseDate DESC"
        )

    async def get_contact_notes(self, contact_id: str) -> list[dict[str, Any]]:
        return await self._client.query(
            "SELECT Id, Name, Body__c, Owner.Alias, CreatedDate FROM A_B_Note__c "
            f"WHERE Contact__c = {soql_literal(contact_id)} ORDER BY CreatedDate DESC"
        )

    async def create_note(self, contact_id: str | None, body: str) -> str:
        fields: dict[str, Any] = {"Body__c": body}
        if contact_id:
            fields["Contact__c"] = contact_id
        return await self._client.create("A_B_Note__c", fields)

    # --- Targets & commission ---

    async def get_monthly_targets(self, year: str, month: str) -> list[dict[str, Any]]:
        return await self._client.query(
            "SELECT Id, Name, Target_Amount__c, OwnerId, Owner.Name, Type__c, "
            "Month__c, Year__c, Days_Absent__c FROM Target__c "
            f"WHERE Year__c = {soql_literal(year)} AND Month__c = {soql_literal(month)}"
        )

    async def get_commission_data(self, year: str) -> list[dict[str, Any]]:
        return await self._client.query(
            "SELECT Id, Name, Sales_Person__r.Name, Total_Monthly_commission__c, "
            "Commission_Rate_Applicable__c, KPI_Targets__c, KPI_Targets_Met__c, "
            "Clawback__c, Amount_Paid_to_Salesperson__c, Month__c, Month_Name__c, Year__c "
            f"FROM Commission__c WHERE Year__c = {soql_literal(year)} ORDER BY Month__c ASC"
        )

    # --- Analytics ---

    async def _won_deals_this_year(self) -> list[dict[str, Any]]:
        start, end = date_range("year", self._today())
        return await self._client.query(
            f"SELECT {OPPORTUNITY_FIELDS} FROM Opportunity "
            f"WHERE StageName IN {soql_list(list(WON_STAGES))} "
            f"AND CloseDate >= {start.isoformat()} AND CloseDate <= {end.isoformat()} "
            "LIMIT 2000"
        )

    async def get_channel_attribution(self) -> list[dict[str, Any]]:
        groups: dict[str, dict[str, Any]] = defaultdict(
            lambda: {"deals": 0, "revenue": 0.0}
        )
        for deal in await self._won_deals_this_year():
            group = groups[source_group(deal.get("LeadSource"))]
            group["deals"] += 1
            group["revenue"] += gross_amount(deal)
        return sorted(
            ({"channel": name, **stats} for name, stats in groups.items()),
            key=lambda g: g["revenue"],
            reverse=True,
        )

    async def get_rep_performance(self) -> list[dict[str, Any]]:
        reps: dict[str, dict[str, Any]] = {}
        for deal in await self._won_deals_this_year():
            owner = deal.get("Owner") or {}
            rep = reps.setdefault(
                deal.get("OwnerId") or "",
                {
                    "owner_id": deal.get("OwnerId"),
                    "name": owner.get("Name") or "Unknown",
                    "email": owner.get("Email") or "",
                    "total_deals": 0,
                    "total_revenue": 0.0,
                },
            )
            rep["total_deals"] += 1
            rep["total_revenue"] += gross_amount(deal)
        return sorted(reps.values(), key=lambda r: r["total_revenue"], reverse=True)

    async def get_event_performance(self) -> list[dict[str, Any]]:
        return await self._client.query(
            "SELECT Id, Name, Category__c, Start_Date__c, Revenue_Target__c, "
            "Sum_of_Closed_Won_Gross__c, Percentage_to_Target__c, Margin_Percentage__c, "
            "Total_Margin_Value__c FROM Event__c WHERE Start_Date__c = THIS_YEAR "
            "ORDER BY Sum_of_Closed_Won_Gross__c DESC NULLS LAST LIMIT 100"
        )

    # --- Finance ---

    async def get_account_financials(self) -> list[dict[str, Any]]:
        return await self._client.query(
            "SELECT Id, Name, Total_Invoiced__c, Total_Paid__c, Outstanding_Balance__c "
            "FROM Account WHERE Total_Invoiced__c > 0 "
            "ORDER BY Outstanding_Balance__c DESC NULLS LAST LIMIT 200"
        )

    async def get_payment_plan_progress(self) -> list[dict[str, Any]]:
        return await self._client.query(
            "SELECT Id, Name, Account.Name, Owner.Name, Gross_Amount__c, "
            "Percentage_Paid__c, Total_Amount_Paid__c, Total_Balance__c, "
            "Total_Payments_Due__c, Event__r.Name FROM Opportunity "
            f"WHERE StageName IN {soql_list(list(WON_STAGES))} AND Total_Balance__c > 0 "
            "ORDER BY Total_Balance__c DESC LIMIT 200"
        )

    async def get_credit_accounts(self) -> list[dict[str, Any]]:
        return await self._client.query(
            "SELECT Id, Name, Credit_Balance__c FROM Account "
            "WHERE Credit_Balance__c > 0 ORDER BY Credit_Balance__c DESC LIMIT 200"
        )
