"""
Script to seed the default expense claim types on an ERPNext site.

Creates each of the categories the mobile app falls back to when the
site has none, skipping those that already exist.

Prerequisites:
- ERP_URL_RESOURCE, ERP_API_KEY and ERP_API_SECRET set in the environment or .env
- The API user must be allowed to create Expense Claim Type documents

Usage:
    python scripts/seed_expense_types.py
"""

import asyncio
import logging
import sys

from hr_mobile.config import get_settings
from hr_mobile.frappe import FrappeClient, FrappeError, run_fallbacks
from hr_mobile.services.expense import DEFAULT_CATEGORIES, ExpenseService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_expense_types(client: FrappeClient) -> int:
    """
    Create the default expense claim types.

    Returns:
        Number of types created
    """
    logger.info("Seeding expense claim types...")
    doctype = ExpenseService.EXPENSE_CLAIM_TYPE
    created = 0

    for category in DEFAULT_CATEGORIES:
        try:
            existing = await client.get_list(
                doctype, filters=[["name", "=", category]], fields=["name"], limit=1
            )
            if existing:
                logger.info(f"Expense claim type {category} already exists, skipping")
                continue

            data = {"expense_type": category, "description": category}

            async def by_resource():
                return await client.insert(doctype, data)

            async def by_method():
                return await client.method_insert(doctype, data)

            await run_fallbacks(
                f"Create {doctype}",
                [("resource insert", by_resource), ("frappe.client.insert", by_method)],
            )
            created += 1
            logger.info(f"Created expense claim type: {category}")

        except FrappeError as e:
            logger.error(f"Failed to create expense claim type {category}: {e}")

    return created


async def main():
    """Main setup function."""
    logger.info("Starting expense type setup...")
    client = FrappeClient()

    try:
        settings = get_settings()
        logger.info(f"ERP URL: {settings.resource_url}")

        created = await seed_expense_types(client)
        logger.info(f"Setup complete! {created} type(s) created.")

    except FrappeError as e:
        logger.error(f"Setup failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
