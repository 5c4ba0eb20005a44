"""Runtime dependencies shared by tool handlers."""

from dataclasses import dataclass
from datetime import datetime, tzinfo

from sales_assistant.clients.aircall import AircallClient
from sales_assistant.services.sales_data_service import SalesDataService


@dataclass(frozen=True)
class ToolContext:
    sales: SalesDataService
    aircall: AircallClient
    timezone: tzinfo

    def now(self) -> datetime:
        return datetime.now(self.timezone)
