"""Test configuration and fixtures"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from uuid import uuid4

from restoagent.main import app
from restoagent.database import Base, get_db
from restoagent.booking import ReservationStore
from restoagent.dependencies import get_clock
from restoagent.models import Reservation, Restaurant
from restoagent.notifications.sms import SMSNotifier, SMSResult, get_notifier
from restoagent.tools.handlers import ReservationTools


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Tuesday 14 January 2025, 10:00 in Paris
FIXED_NOW = datetime(2025, 1, 14, 10, 0, tzinfo=ZoneInfo("Europe/Paris"))

LUNCH = {"start": "12:00", "end": "14:30"}
DINNER = {"start": "19:00", "end": "22:30"}


def fixed_clock() -> datetime:
    return FIXED_NOW


class FakeNotifier(SMSNotifier):
    """Records SMS instead of calling Twilio"""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.fail = fail
        self.sent = []

    @property
    def configured(self) -> bool:
        return True

    async def send(self, to: str, body: str) -> SMSResult:
        self.sent.append({"to": to, "body": body})
        if self.fail:
            return SMSResult(success=False, error="Twilio unavailable")
        return SMSResult(success=True, message_sid=f"SM{len(self.sent):04d}")


@pytest.fixture
async def test_db():
    """Create test database"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_restaurant(test_db):
    """L'Épicurie: closed Sunday, dinner only on Saturday, split capacities"""
    restaurant = Restaurant(
        id=uuid4(),
        name="L'Épicurie",
        phone="+33142000000",
        address="12 rue des Martyrs, 75009 Paris",
        fallback_phone="+33612345678",
        max_capacity=50,
        max_capacity_lunch=50,
        max_capacity_dinner=60,
        opening_hours={
            "monday": {"lunch": LUNCH, "dinner": DINNER},
            "tuesday": {"lunch": LUNCH, "dinner": DINNER},
            "wednesday": {"lunch": LUNCH, "dinner": DINNER},
            "thursday": {"lunch": LUNCH, "dinner": DINNER},
            "friday": {"lunch": LUNCH, "dinner": {"start": "19:00", "end": "23:00"}},
            "saturday": {"lunch": None, "dinner": DINNER},
            "sunday": None,
        },
        closed_dates=["2025-12-25", "2025-01-01"],
        sms_enabled=True,
    )
    test_db.add(restaurant)
    await test_db.commit()

    return restaurant


@pytest.fixture
def make_reservation(test_db, test_restaurant):
    """Insert a reservation directly, bypassing the tools"""

    async def _make(
        customer_name: str = "Jean Dupont",
        customer_phone: str = "+33611111111",
        reservation_date: date = date(2025, 1, 20),
        reservation_time: str = "19:00",
        number_of_guests: int = 2,
        status: str = "confirmed",
        restaurant=None,
    ) -> Reservation:
        reservation = Reservation(
            restaurant_id=(restaurant or test_restaurant).id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            reservation_date=reservation_date,
            reservation_time=reservation_time,
            number_of_guests=number_of_guests,
            status=status,
        )
        test_db.add(reservation)
        await test_db.commit()
        return reservation

    return _make


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def store(test_db):
    return ReservationStore(test_db)


@pytest.fixture
def tools(store, notifier):
    return ReservationTools(store, notifier, now=fixed_clock)


@pytest.fixture
async def client(test_db, notifier):
    """Create test client with overridden database, notifier and clock"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_clock] = lambda: fixed_clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
