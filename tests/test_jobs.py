"""Tests for background jobs"""

from datetime import date

import pytest
from sqlalchemy import select

from restoagent.booking import add_to_waitlist
from restoagent.jobs.tasks import dispatch_reservation_reminders, expire_waitlist
from restoagent.models import Restaurant, WaitlistEntry, WaitlistStatus

TODAY = date(2025, 1, 14)
TOMORROW = date(2025, 1, 15)


@pytest.mark.asyncio
async def test_reminders_for_tomorrow(test_db, notifier, make_reservation):
    """Test reminders go to tomorrow's active reservations only, once"""
    reminded = await make_reservation(reservation_date=TOMORROW, customer_phone="+33600000001")
    await make_reservation(reservation_date=TOMORROW, customer_phone="+33600000002", status="cancelled")
    await make_reservation(reservation_date=date(2025, 1, 16), customer_phone="+33600000003")

    counts = await dispatch_reservation_reminders(test_db, notifier, today=TODAY)

    assert counts == {"sent": 1, "failed": 0, "skipped": 0}
    assert notifier.sent[0]["to"] == "+33600000001"
    assert notifier.sent[0]["body"].startswith("Rappel L'Épicurie")
    assert reminded.reminder_sent_at is not None

    again = await dispatch_reservation_reminders(test_db, notifier, today=TODAY)
    assert again == {"sent": 0, "failed": 0, "skipped": 0}


@pytest.mark.asyncio
async def test_reminders_skip_restaurants_without_sms(test_db, notifier, make_reservation):
    """Test restaurants that did not enable SMS get no reminders"""
    quiet = Restaurant(name="Le Voisin", phone="+33143000000", sms_enabled=False)
    test_db.add(quiet)
    await test_db.commit()
    await make_reservation(reservation_date=TOMORROW, restaurant=quiet)

    counts = await dispatch_reservation_reminders(test_db, notifier, today=TODAY)

    assert counts == {"sent": 0, "failed": 0, "skipped": 1}
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_failed_reminder_is_retried(test_db, notifier, make_reservation):
    """Test a failed send leaves the reservation eligible"""
    notifier.fail = True
    reservation = await make_reservation(reservation_date=TOMORROW)

    counts = await dispatch_reservation_reminders(test_db, notifier, today=TODAY)

    assert counts == {"sent": 0, "failed": 1, "skipped": 0}
    assert reservation.reminder_sent_at is None


@pytest.mark.asyncio
async def test_expire_waitlist(test_db, store, test_restaurant):
    """Test entries for past dates expire, future ones keep waiting"""
    for desired_date, phone in ((date(2025, 1, 10), "+33600000001"), (date(2025, 1, 20), "+33600000002")):
        await add_to_waitlist(
            store,
            test_restaurant.id,
            customer_name="Marie Martin",
            customer_phone=phone,
            desired_date=desired_date,
            party_size=2,
        )

    expired = await expire_waitlist(test_db, today=TODAY)

    assert expired == 1
    result = await test_db.execute(
        select(WaitlistEntry.desired_date, WaitlistEntry.status)
        .order_by(WaitlistEntry.desired_date)
    )
    assert result.all() == [
        (date(2025, 1, 10), WaitlistStatus.EXPIRED.value),
        (date(2025, 1, 20), WaitlistStatus.WAITING.value),
    ]
