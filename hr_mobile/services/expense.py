"""
Expense claims.

Handles claim categories (cached), submission with receipt upload,
history, details and cancellation.
"""

import logging
import mimetypes
import time
from datetime import date
from pathlib import Path
from typing import Any, Optional

from hr_mobile.config import Settings, get_settings
from hr_mobile.frappe import (
    DocStatus,
    ExpenseClaimInput,
    ExpenseClaimResponse,
    ExpenseHistoryItem,
    FrappeClient,
    FrappeError,
    run_fallbacks,
)
from hr_mobile.frappe.normalize import to_expense_history_item
from hr_mobile.utils.dates import to_erp_date
from hr_mobile.utils.validators import is_valid_file_name, validate_expense_claim

from .profile import ProfileService

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ["Travel", "Food", "Office Supplies", "Others"]

MAX_RECEIPT_BYTES = 10 * 1024 * 1024

HISTORY_FIELDS = [
    "name",
    "posting_date",
    "total_claimed_amount",
    "total_sanctioned_amount",
    "approval_status",
    "docstatus",
    "status",
]


class ExpenseService:
    """Expense claim operations for the expense screen."""

    EXPENSE_CLAIM = "Expense Claim"
    EXPENSE_CLAIM_TYPE = "Expense Claim Type"
    EXPENSE_TYPE = "Expense Type"
    FILE = "File"

    HISTORY_LIMIT = 50

    def __init__(
        self,
        client: Optional[FrappeClient] = None,
        profiles: Optional[ProfileService] = None,
        settings: Optional[Settings] = None,
    ):
        self.client = client or FrappeClient()
        self.profiles = profiles or ProfileService(self.client)
        self.settings = settings or get_settings()
        self._categories: Optional[list[str]] = None
        self._categories_fetched_at = 0.0

    # =========================================================================
    # Categories
    # =========================================================================

    def _cached_categories(self, allow_stale: bool = False) -> Optional[list[str]]:
        if not self._categories:
            return None
        age = time.monotonic() - self._categories_fetched_at
        if allow_stale or age < self.settings.expense_category_cache_ttl:
            return self._categories
        return None

    def clear_category_cache(self):
        self._categories = None
        self._categories_fetched_at = 0.0

    async def fetch_expense_categories(self, force_refresh: bool = False) -> list[str]:
        """
        Get expense claim categories.

        Served from a short-lived cache unless `force_refresh` is set. When
        the server cannot be reached a stale cache is preferred over the
        built-in defaults.
        """
        if not force_refresh:
            cached = self._cached_categories()
            if cached:
                return cached

        def names(rows: list[dict[str, Any]]) -> Optional[list[str]]:
            found = [r["name"] for r in rows if r.get("name")]
            return found or None

        async def claim_type_resource():
            rows = await self.client.get_list(self.EXPENSE_CLAIM_TYPE, fields=["name"], limit=0)
            return names(rows)

        async def claim_type_method():
            rows = await self.client.method_get_list(
                self.EXPENSE_CLAIM_TYPE, fields=["name"], limit=0
            )
            return names(rows)

        async def expense_type_resource():
            rows = await self.client.get_list(self.EXPENSE_TYPE, fields=["name"], limit=0)
            return names(rows)

        try:
            categories = await run_fallbacks(
                "Expense categories",
                [
                    ("Expense Claim Type resource", claim_type_resource),
                    ("Expense Claim Type get_list", claim_type_method),
                    ("Expense Type resource", expense_type_resource),
                ],
            )
        except FrappeError as e:
            logger.error(f"Error fetching expense categories: {e}")
            categories = None

        if categories:
            self._categories = categories
            self._categories_fetched_at = time.monotonic()
            return categories

        return self._cached_categories(allow_stale=True) or list(DEFAULT_CATEGORIES)

    # =========================================================================
    # Files
    # =========================================================================

    async def upload_file(self, filename: str, content: bytes) -> Optional[str]:
        """
        Upload a public attachment.

        Returns:
            The stored file URL, or None when the upload failed
        """
        if not is_valid_file_name(filename):
            logger.error(f"Invalid file name: {filename}")
            return None
        if len(content) > MAX_RECEIPT_BYTES:
            logger.error(f"File size exceeds 10MB limit: {filename}")
            return None

        mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        try:
            return await self.client.upload_file(filename, content, mime_type)
        except FrappeError as e:
            logger.error(f"Error uploading file {filename}: {e}")
            return None

    async def attach_file_to_expense(self, claim_id: str, file_url: str):
        """Link an uploaded file to a claim. Failures are logged only."""
        try:
            await self.client.insert(
                self.FILE,
                {
                    "file_url": file_url,
                    "attached_to_doctype": self.EXPENSE_CLAIM,
                    "attached_to_name": claim_id,
                },
            )
        except FrappeError as e:
            logger.error(f"Error attaching file to expense {claim_id}: {e}")

    async def _attach_receipt(self, claim_id: str, receipt_path: str, receipt_name: str):
        path = Path(receipt_path)
        try:
            if path.stat().st_size > MAX_RECEIPT_BYTES:
                logger.warning(f"Receipt {receipt_name} exceeds 10MB; claim {claim_id} kept")
                return
            content = path.read_bytes()
        except OSError as e:
            logger.warning(f"Receipt upload failed, but claim {claim_id} was created: {e}")
            return

        file_url = await self.upload_file(receipt_name, content)
        if file_url:
            await self.attach_file_to_expense(claim_id, file_url)

    # =========================================================================
    # Claims
    # =========================================================================

    async def submit_expense_claim(self, claim: ExpenseClaimInput) -> ExpenseClaimResponse:
        """
        Submit an expense claim for the claim's employee.

        Never raises; every failure is reported through the response.
        """
        error = validate_expense_claim(claim)
        if error:
            return ExpenseClaimResponse(success=False, message=error)

        employee_id = claim.employee_id.strip()
        amount = float(claim.amount)

        approver = await self.profiles.get_employee_approver(employee_id)
        if not approver:
            return ExpenseClaimResponse(
                success=False,
                message="No expense approver found for your account. Please contact HR.",
            )

        payload = {
            "employee": employee_id,
            "expense_approver": approver,
            "posting_date": date.today().isoformat(),
            "expenses": [
                {
                    "expense_type": claim.category,
                    "expense_date": to_erp_date(claim.expense_date),
                    "description": claim.description,
                    "amount": amount,
                    "sanctioned_amount": amount,
                }
            ],
            "total_claimed_amount": amount,
            "total_sanctioned_amount": amount,
        }

        async def by_resource():
            return await self.client.insert(self.EXPENSE_CLAIM, payload)

        async def by_method():
            return await self.client.method_insert(self.EXPENSE_CLAIM, payload)

        try:
            created = await run_fallbacks(
                "Expense Claim insert",
                [("resource insert", by_resource), ("frappe.client.insert", by_method)],
            )
        except FrappeError as e:
            logger.error(f"Error submitting expense claim for {employee_id}: {e}")
            return ExpenseClaimResponse(success=False, message=e.message)

        claim_id = (created or {}).get("name")
        if not claim_id:
            return ExpenseClaimResponse(success=False, message="Failed to create expense claim")

        if claim.receipt_path and claim.receipt_name:
            await self._attach_receipt(claim_id, claim.receipt_path, claim.receipt_name)

        logger.info(f"Expense claim {claim_id} submitted for {employee_id}")
        return ExpenseClaimResponse(
            success=True,
            claim_id=claim_id,
            message=f"Expense claim {claim_id} submitted successfully!",
        )

    async def fetch_expense_history(self, employee_id: str) -> list[ExpenseHistoryItem]:
        """Get the employee's latest claims as history rows ([] on failure)."""
        employee_id = (employee_id or "").strip()
        if not employee_id:
            return []

        filters = [["employee", "=", employee_id]]

        async def by_resource():
            return await self.client.get_list(
                self.EXPENSE_CLAIM,
                filters=filters,
                fields=HISTORY_FIELDS,
                order_by="creation desc",
                limit=self.HISTORY_LIMIT,
            )

        async def by_method():
            return await self.client.method_get_list(
                self.EXPENSE_CLAIM,
                filters=filters,
                fields=HISTORY_FIELDS,
                order_by="creation desc",
                limit=self.HISTORY_LIMIT,
            )

        try:
            rows = await run_fallbacks(
                "Expense history",
                [("resource list", by_resource), ("frappe.client.get_list", by_method)],
            )
        except FrappeError as e:
            logger.error(f"Error fetching expense history for {employee_id}: {e}")
            return []

        return [to_expense_history_item(r) for r in rows or [] if r.get("name")]

    async def get_expense_claim_details(self, claim_id: str) -> Optional[dict[str, Any]]:
        try:
            return await self.client.get_doc(self.EXPENSE_CLAIM, claim_id)
        except FrappeError as e:
            logger.error(f"Error fetching expense details for {claim_id}: {e}")
            return None

    async def cancel_expense_claim(self, claim_id: str) -> ExpenseClaimResponse:
        """Cancel a claim by moving it to docstatus 2."""
        try:
            await self.client.update(
                self.EXPENSE_CLAIM, claim_id, {"docstatus": int(DocStatus.CANCELLED)}
            )
        except FrappeError as e:
            logger.error(f"Error cancelling expense claim {claim_id}: {e}")
            return ExpenseClaimResponse(success=False, claim_id=claim_id, message=e.message)

        return ExpenseClaimResponse(
            success=True,
            claim_id=claim_id,
            message="Expense claim cancelled successfully",
        )
