"""
CRM leads.
"""

import logging
import re
from typing import Any, Optional

from hr_mobile.frappe import FrappeClient, FrappeError, Lead, LeadListItem

logger = logging.getLogger(__name__)

LEAD_FIELDS = [
    "name",
    "lead_name",
    "company_name",
    "email_id",
    "mobile_no",
    "status",
    "source",
    "territory",
]


def build_lead_filters(
    search: Optional[str] = None,
    status: Optional[str] = None,
    source: Optional[str] = None,
) -> list[list[str]]:
    """
    Build AND filters for a lead query.

    The search term goes to a single field: email when it contains `@`,
    mobile number when it contains a digit, otherwise the lead name.
    """
    filters = []
    if status:
        filters.append(["status", "=", status])
    if source:
        filters.append(["source", "=", source])
    if search:
        pattern = f"%{search}%"
        if "@" in search:
            filters.append(["email_id", "like", pattern])
        elif re.search(r"\d", search):
            filters.append(["mobile_no", "like", pattern])
        else:
            filters.append(["lead_name", "like", pattern])
    return filters


class LeadService:
    """Lead list, detail and edit operations."""

    LEAD = "Lead"

    def __init__(self, client: Optional[FrappeClient] = None):
        self.client = client or FrappeClient()

    async def list_leads(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        source: Optional[str] = None,
        fields: Optional[list[str]] = None,
        order_by: str = "modified desc",
        limit: int = 50,
        page: int = 1,
    ) -> list[Lead]:
        """
        List one page of leads.

        Args:
            limit: Page size, clamped to 1..200
            page: 1-based page number

        Returns:
            Leads on the page ([] on failure)
        """
        limit = max(1, min(200, limit))
        page = max(1, page)

        try:
            rows = await self.client.get_list(
                self.LEAD,
                filters=build_lead_filters(search, status, source),
                fields=fields or LEAD_FIELDS,
                order_by=order_by,
                limit=limit,
                start=(page - 1) * limit,
            )
        except FrappeError as e:
            logger.error(f"Error listing leads: {e}")
            return []
        return [Lead.model_validate(r) for r in rows if r.get("name")]

    async def list_all_leads(
        self,
        page_size: int = 200,
        hard_cap: int = 5000,
        **options,
    ) -> list[Lead]:
        """
        Page through every matching lead.

        Stops at the first short page or once `hard_cap` leads are loaded.
        Accepts the filter options of `list_leads`.
        """
        page_size = max(1, min(500, page_size))
        hard_cap = max(page_size, hard_cap)

        leads: list[Lead] = []
        page = 1
        while len(leads) < hard_cap:
            batch = await self.list_leads(limit=page_size, page=page, **options)
            if not batch:
                break
            leads.extend(batch)
            if len(batch) < page_size:
                break
            page += 1
        return leads

    async def get_lead(self, name: str) -> Optional[Lead]:
        name = str(name or "").strip()
        if not name:
            return None
        try:
            doc = await self.client.get_doc(self.LEAD, name)
        except FrappeError as e:
            logger.warning(f"Lead {name} not found: {e}")
            return None
        return Lead.model_validate(doc) if isinstance(doc, dict) else None

    async def create_lead(self, data: dict[str, Any]) -> Optional[Lead]:
        try:
            doc = await self.client.insert(self.LEAD, data)
        except FrappeError as e:
            logger.error(f"Error creating lead: {e}")
            return None
        logger.info(f"Created lead {doc.get('name')}")
        return Lead.model_validate(doc) if doc.get("name") else None

    async def update_lead(self, name: str, data: dict[str, Any]) -> Optional[Lead]:
        name = str(name or "").strip()
        if not name:
            return None
        try:
            doc = await self.client.update(self.LEAD, name, data)
        except FrappeError as e:
            logger.error(f"Error updating lead {name}: {e}")
            return None
        return Lead.model_validate({"name": name, **doc})

    async def delete_lead(self, name: str) -> bool:
        name = str(name or "").strip()
        if not name:
            return False
        try:
            return await self.client.delete(self.LEAD, name)
        except FrappeError as e:
            logger.error(f"Error deleting lead {name}: {e}")
            return False

    async def change_lead_status(self, name: str, status: str) -> Optional[Lead]:
        return await self.update_lead(name, {"status": status})


def to_list_item(lead: Lead) -> LeadListItem:
    """Compact row for the lead list screen."""
    return LeadListItem(
        id=lead.name,
        title=lead.company_name or lead.lead_name or lead.email_id or lead.name,
        subtitle=lead.lead_name or lead.email_id or "",
        status=lead.status or "",
        value=lead.source or "",
    )
