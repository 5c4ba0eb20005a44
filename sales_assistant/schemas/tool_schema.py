"""Input models for the sales assistant tools."""

from typing import Literal

from pydantic import BaseModel, Field

LeadStatus = Literal[
    "New", "Working", "Prospect", "Interested", "Nurturing", "Qualified", "Unqualified"
]
OpportunityStage = Literal[
    "New",
    "Deposit Taken",
    "Agreement Sent",
    "Agreement Signed",
    "Amended",
    "Amendment Signed",
    "Closed Lost",
    "Cancelled",
]
SourceGroup = Literal[
    "Digital Ads", "Organic", "Outbound", "Referral", "Events", "Database", "Email", "Other"
]
InterestField = Literal[
    "Formula_1__c",
    "Football__c",
    "Rugby__c",
    "Tennis__c",
    "Live_Music__c",
    "Culinary__c",
    "Luxury_Lifestyle_Celebrity__c",
    "Unique_Experiences__c",
    "Other__c",
]
LeadView = Literal[
    "all", "hot", "needCalling", "newThisWeek", "goingCold", "eventInterested", "unqualified"
]


class NoInput(BaseModel):
    """Tools that take no arguments."""


class SearchLeadsInput(BaseModel):
    status: LeadStatus | None = Field(default=None, description="Lead status")
    source_group: SourceGroup | None = Field(
        default=None, description="Lead source group"
    )
    interest: InterestField | None = Field(
        default=None, description="Interest checkbox field name"
    )
    owner_id: str | None = Field(
        default=None, description="Salesforce OwnerId to filter by rep"
    )
    search: str | None = Field(
        default=None, description="Free text search across lead name, company, email"
    )
    view: LeadView | None = Field(default=None, description="Predefined smart view")


class PipelineInput(BaseModel):
    owner_id: str | None = Field(default=None, description="Filter by rep OwnerId")
    event_id: str | None = Field(default=None, description="Filter by Event__c ID")
    event_category: str | None = Field(
        default=None, description="Filter by event category"
    )
    min_amount: float | None = Field(
        default=None, description="Minimum deal amount in £"
    )
    max_amount: float | None = Field(
        default=None, description="Maximum deal amount in £"
    )
    include_closed: bool = Field(default=False, description="Include closed deals too")


class SalesDashboardInput(BaseModel):
    period: Literal["today", "week", "month", "year"] = Field(
        description="Time period for dashboard data"
    )


class EventDealsInput(BaseModel):
    event_id: str = Field(description="The Salesforce Event__c record ID")


class SearchClientsInput(BaseModel):
    search: str | None = Field(
        default=None, description="Search by name, email, or company"
    )
    owner_id: str | None = Field(default=None, description="Filter by rep OwnerId")
    min_spend: float | None = Field(
        default=None, description="Minimum total spend in £"
    )
    max_spend: float | None = Field(
        default=None, description="Maximum total spend in £"
    )
    sort_by: Literal["spend", "activity", "name", "created"] | None = Field(
        default=None, description="Sort order"
    )
    view: Literal["all", "personal", "business"] | None = None


class ClientDetailInput(BaseModel):
    contact_id: str = Field(description="The Salesforce Contact record ID")


class FinanceDataInput(BaseModel):
    type: Literal["accounts", "paymentPlans", "credits"] = Field(
        description="Which financial view to fetch"
    )


class CallActivityInput(BaseModel):
    period: Literal["today", "week", "month"] = Field(
        description="Time period for call data"
    )


class AnalyticsInput(BaseModel):
    type: Literal["channels", "reps", "events"] = Field(
        description="Which analytics view"
    )


class TargetsAndCommissionInput(BaseModel):
    data_type: Literal["targets", "commission"] = Field(
        description="Whether to fetch targets or commission data"
    )
    year: str = Field(description='Year as string, e.g. "2026"')
    month: str | None = Field(
        default=None,
        description='Month number as string, e.g. "2" for February. Used for targets.',
    )


class DailyRecapInput(BaseModel):
    upcoming_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="How many days ahead to show upcoming events",
    )


class UpdateLeadStatusInput(BaseModel):
    lead_id: str = Field(description="The Salesforce Lead record ID")
    status: LeadStatus = Field(description="The new lead status")


class UpdateDealStageInput(BaseModel):
    opportunity_id: str = Field(description="The Salesforce Opportunity record ID")
    stage: OpportunityStage = Field(description="The new opportunity stage")


class AddNoteInput(BaseModel):
    contact_id: str | None = Field(
        default=None,
        description="Salesforce Contact ID to link the note to. Omit for a general note.",
    )
    body: str = Field(min_length=1, description="The note content")
