#!/usr/bin/env python3
"""
Seed script to create a demo restaurant
"""

import asyncio
import uuid


async def seed_demo_data():
    """Seed demo data for development"""
    from restoagent.database import SessionLocal, engine, Base
    from restoagent.models import Restaurant

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        # Check if demo restaurant already exists
        from sqlalchemy import select
        result = await db.execute(
            select(Restaurant).where(Restaurant.name == "L'Épicurie")
        )
        existing = result.scalar_one_or_none()

        if existing:
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo restaurant...")

        lunch = {"start": "12:00", "end": "14:30"}
        dinner = {"start": "19:00", "end": "22:30"}

        restaurant = Restaurant(
            id=uuid.uuid4(),
            name="L'Épicurie",
            phone="+33142000000",
            email="contact@epicurie.fr",
            address="12 rue des Martyrs, 75009 Paris",
            fallback_phone="+33612345678",
            max_capacity=50,
            max_capacity_lunch=40,
            max_capacity_dinner=60,
            opening_hours={
                "monday": None,
                "tuesday": {"lunch": lunch, "dinner": dinner},
                "wednesday": {"lunch": lunch, "dinner": dinner},
                "thursday": {"lunch": lunch, "dinner": dinner},
                "friday": {"lunch": lunch, "dinner": {"start": "19:00", "end": "23:00"}},
                "saturday": {"lunch": None, "dinner": {"start": "19:00", "end": "23:00"}},
                "sunday": {"lunch": lunch, "dinner": None},
            },
            closed_dates=["2025-12-25", "2026-01-01"],
            sms_enabled=False,
        )
        db.add(restaurant)
        await db.commit()

        print(f"""
Demo data created successfully!

Restaurant: {restaurant.name}
  ID: {restaurant.id}
  Phone: {restaurant.phone}

Set restaurant_id to this ID in the Vapi assistant metadata.
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
