#!/usr/bin/env python3
"""
Seed script: creates (or reuses) a demo tenant with a fixed publishable key.
Run after migrations: python scripts/seed.py
"""

import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from leadsheets.config import settings
from leadsheets.database import Database
from leadsheets.models import Tenant
from leadsheets.storage.tenants import create_tenant


PUBLISHABLE_KEY = "pk_test_1"  # Demo key - print this for user


async def seed():
    database = Database.from_settings(settings)
    try:
        async with database.session() as session:
            result = await session.execute(
                select(Tenant).where(Tenant.publishable_key == PUBLISHABLE_KEY)
            )
            tenant = result.scalar_one_or_none()
            if tenant:
                print("Tenant already exists, using existing.")
            else:
                tenant = await create_tenant(
                    session,
                    buyer_email="demo@example.com",
                    buyer_name="Demo Tenant",
                    publishable_key=PUBLISHABLE_KEY,
                )
            tenant_id = str(tenant.tenant_id)
    finally:
        await database.dispose()

    print("Seed complete!")
    print(f"Tenant: {tenant_id}")
    print(f"Publishable key: {PUBLISHABLE_KEY}")
    print(f"Connect Google Sheets: http://localhost:8000/api/oauth/start?tenantId={tenant_id}")
    print("Example: curl -X POST http://localhost:8000/api/leads \\")
    print('  -H "X-NXL-Public-Key: ' + PUBLISHABLE_KEY + '" \\')
    print('  -H "Content-Type: application/json" \\')
    print('  -d \'{"name":"Ann","email":"a@x.com","phone":"555-0100","annualSalary":"50-75k","source":"landing"}\'')


if __name__ == "__main__":
    asyncio.run(seed())
