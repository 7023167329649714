"""Seed the database with sample owners, properties, bookings and payments.

Bookings go through ``booking_service`` so every seeded stay is priced and
overlap-checked like a real request; ledger entries are written directly.

Run inside Docker:
    docker compose exec backend python -m scripts.seed_data
"""

import asyncio
import sys
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete, select

from app.auth.passwords import hash_password
from app.auth.scope import AccessScope
from app.database import async_session_factory, engine
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.property import Property
from app.models.user import User
from app.services import booking_service, persistence

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_PASSWORD = "demo1234"

USERS = [
    {"email": "admin@stayledger.dev", "name": "Dana Admin", "role": "admin"},
    {"email": "noa@stayledger.dev", "name": "Noa Levi", "role": "owner", "phone": "+972521112233"},
    {"email": "amir@stayledger.dev", "name": "Amir Katz", "role": "owner", "phone": "+972524445566"},
    {"email": "guest@stayledger.dev", "name": "Maya Cohen", "role": "tenant", "phone": "+972527778899"},
]

PROPERTIES = [
    {
        "owner": "noa@stayledger.dev",
        "name": "Sea Breeze Loft",
        "address": "12 Herbert Samuel St, Tel Aviv",
        "property_type": "short_term",
        "base_price": Decimal("300.00"),
        "cleaning_fee": Decimal("150.00"),
        "security_deposit": Decimal("1000.00"),
        "max_guests": 4,
        "min_stay_days": 2,
        "max_stay_days": 30,
    },
    {
        "owner": "noa@stayledger.dev",
        "name": "Old City Studio",
        "address": "4 Jaffa Rd, Jerusalem",
        "property_type": "short_term",
        "base_price": Decimal("220.00"),
        "cleaning_fee": Decimal("100.00"),
        "max_guests": 2,
        "min_stay_days": 1,
        "max_stay_days": 14,
    },
    {
        "owner": "amir@stayledger.dev",
        "name": "Carmel Family Flat",
        "address": "7 Moriah Blvd, Haifa",
        "property_type": "long_term",
        "monthly_rent": Decimal("5200.00"),
    },
]

# (property, guest, days from today, nights, guests, actions, payments)
BOOKINGS = [
    ("Sea Breeze Loft", "Maya Cohen", 3, 4, 2, ["confirm"], [Decimal("600.00")]),
    ("Sea Breeze Loft", "Eli Ben-David", 10, 3, 3, ["confirm"], [Decimal("1050.00")]),
    ("Sea Breeze Loft", "Sara Mizrahi", 20, 5, 2, [], []),
    ("Old City Studio", "Tom Weiss", 1, 2, 1, ["confirm", "check_in"], [Decimal("540.00")]),
    ("Old City Studio", "Lior Azulay", 8, 3, 2, ["cancel"], []),
]


async def _reset(session) -> None:
    emails = [u["email"] for u in USERS]
    users = (await session.execute(select(User).where(User.email.in_(emails)))).scalars().all()
    if not users:
        return
    print("⚠️  Demo users already exist. Deleting and re-seeding...")
    user_ids = [u.id for u in users]
    property_ids = [p.id for u in users for p in u.properties]
    await session.execute(
        delete(Payment).where(
            Payment.property_id.in_(property_ids)
            | Payment.payer_id.in_(user_ids)
            | Payment.receiver_id.in_(user_ids)
        )
    )
    if property_ids:
        await session.execute(delete(Booking).where(Booking.property_id.in_(property_ids)))
        await session.execute(delete(Property).where(Property.id.in_(property_ids)))
    await session.execute(delete(User).where(User.id.in_(user_ids)))
    await session.flush()


async def seed() -> None:
    """Populate the database with demo data. Re-running replaces the previous demo rows."""
    async with async_session_factory() as session:
        await _reset(session)

        users: dict[str, User] = {}
        for data in USERS:
            user = User(hashed_password=hash_password(DEMO_PASSWORD), **data)
            session.add(user)
            users[data["email"]] = user
        await session.flush()
        print(f"✅ Created {len(users)} users")

        properties: dict[str, Property] = {}
        for data in PROPERTIES:
            values = dict(data)
            owner = users[values.pop("owner")]
            prop = Property(owner_id=owner.id, **values)
            session.add(prop)
            properties[prop.name] = prop
        await session.flush()
        for prop in properties.values():
            await session.refresh(prop)
            print(f"   🏠 {prop.name} ({prop.property_type})")

        admin = users["admin@stayledger.dev"]
        scope = AccessScope.for_user(admin)
        tenant = users["guest@stayledger.dev"]
        today = date.today()

        for prop_name, guest, offset, nights, guests, actions, amounts in BOOKINGS:
            check_in = today + timedelta(days=offset)
            booking = await booking_service.create_booking(
                session,
                scope,
                {
                    "property_id": properties[prop_name].id,
                    "tenant_id": tenant.id if guest == tenant.name else None,
                    "guest_name": guest,
                    "guest_phone": "+972500000000",
                    "number_of_guests": guests,
                    "check_in_date": check_in,
                    "check_out_date": check_in + timedelta(days=nights),
                    "booking_source": "direct",
                },
            )
            for action in actions:
                booking = await booking_service.transition_booking(session, scope, booking.id, action)
            for amount in amounts:
                booking, _ = await booking_service.record_booking_payment(
                    session, scope, booking.id, amount, created_by_id=admin.id
                )
            print(f"   📅 {prop_name}: {guest} {booking.check_in_date}..{booking.check_out_date} [{booking.status}]")

        noa = users["noa@stayledger.dev"]
        amir = users["amir@stayledger.dev"]
        loft = properties["Sea Breeze Loft"]
        flat = properties["Carmel Family Flat"]
        ledger_entries = [
            {"amount": Decimal("5000.00"), "payment_type": "owner_deposit", "payer_id": noa.id},
            {"amount": Decimal("350.00"), "payment_type": "expense_payment", "property_id": loft.id,
             "receiver_id": noa.id, "category": "maintenance", "description": "AC service"},
            {"amount": Decimal("1200.00"), "payment_type": "expense_payment", "property_id": loft.id,
             "category": "renovation", "is_for_renovation": True, "description": "New kitchen tiles"},
            {"amount": Decimal("450.00"), "payment_type": "commission", "payer_id": noa.id,
             "receiver_id": admin.id, "is_commission": True, "commission_rate": Decimal("15")},
            {"amount": Decimal("5200.00"), "payment_type": "booking_payment", "property_id": flat.id,
             "receiver_id": amir.id, "payment_method": "bank_transfer", "description": "Monthly rent"},
        ]
        for entry in ledger_entries:
            await persistence.create_payment(
                session, {"payment_date": datetime.now(), "created_by_id": admin.id, **entry}
            )

        await session.commit()

        print()
        print("=" * 60)
        print("📊 Seed Summary")
        print("=" * 60)
        print(f"   Users:      {len(users)} (password: {DEMO_PASSWORD})")
        print(f"   Properties: {len(properties)}")
        print(f"   Bookings:   {len(BOOKINGS)}")
        print(f"   Ledger:     {len(ledger_entries)} extra payments")
        print("=" * 60)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
