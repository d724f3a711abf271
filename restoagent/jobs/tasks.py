"""Background job tasks"""

from datetime import date, datetime, timedelta
from typing import Dict, Optional
import asyncio
import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from restoagent.jobs.celery_app import celery_app
from restoagent.models import (
    ACTIVE_STATUSES,
    ACTIVE_WAITLIST_STATUSES,
    Reservation,
    Restaurant,
    WaitlistEntry,
    WaitlistStatus,
)
from restoagent.notifications.sms import SMSNotifier
from restoagent.utils.dates import local_now

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


async def dispatch_reservation_reminders(
    db: AsyncSession,
    notifier: SMSNotifier,
    today: Optional[date] = None,
) -> Dict[str, int]:
    """
    Remind tomorrow's customers by SMS.

    Only active reservations at restaurants with SMS enabled that were not
    reminded yet; reminder_sent_at is set on each successful send.
    """
    today = today or local_now().date()
    tomorrow = today + timedelta(days=1)

    result = await db.execute(
        select(Reservation, Restaurant)
        .join(Restaurant, Reservation.restaurant_id == Restaurant.id)
        .where(
            Reservation.reservation_date == tomorrow,
            Reservation.status.in_(ACTIVE_STATUSES),
            Reservation.reminder_sent_at.is_(None),
        )
        .order_by(Reservation.reservation_time)
    )
    rows = result.all()

    counts = {"sent": 0, "failed": 0, "skipped": 0}

    for reservation, restaurant in rows:
        if not restaurant.sms_enabled or not reservation.customer_phone:
            counts["skipped"] += 1
            continue

        try:
            sms = await notifier.send_reminder(
                phone=reservation.customer_phone,
                restaurant_name=restaurant.name,
                reservation_date=reservation.reservation_date,
                reservation_time=reservation.reservation_time,
                guests=reservation.number_of_guests,
            )
        except Exception as e:
            logger.error(
                "Failed to send reservation reminder",
                reservation_id=str(reservation.id),
                error=str(e),
            )
            counts["failed"] += 1
            continue

        if not sms.success:
            logger.warning(
                "Reservation reminder not sent",
                reservation_id=str(reservation.id),
                error=sms.error,
            )
            counts["failed"] += 1
            continue

        reservation.reminder_sent_at = datetime.utcnow()
        await db.commit()
        counts["sent"] += 1

        logger.info("Sent reservation reminder", reservation_id=str(reservation.id))

    logger.info("Reservation reminders done", date=tomorrow.isoformat(), **counts)
    return counts


async def expire_waitlist(db: AsyncSession, today: Optional[date] = None) -> int:
    """Active waitlist entries for a past date become expired"""
    today = today or local_now().date()

    result = await db.execute(
        update(WaitlistEntry)
        .where(
            WaitlistEntry.desired_date < today,
            WaitlistEntry.status.in_(ACTIVE_WAITLIST_STATUSES),
        )
        .values(status=WaitlistStatus.EXPIRED.value, updated_at=datetime.utcnow())
    )
    await db.commit()

    logger.info("Expired waitlist entries", expired_count=result.rowcount)
    return result.rowcount


@celery_app.task(name="send_reservation_reminders")
def send_reservation_reminders():
    """Send reminders for tomorrow's reservations"""
    logger.info("Sending reservation reminders")

    async def _send_reminders():
        from restoagent.database import SessionLocal

        async with SessionLocal() as db:
            return await dispatch_reservation_reminders(db, SMSNotifier())

    return run_async(_send_reminders())


@celery_app.task(name="expire_waitlist_entries")
def expire_waitlist_entries():
    """Expire waitlist entries whose date has passed"""
    logger.info("Expiring waitlist entries")

    async def _expire():
        from restoagent.database import SessionLocal

        async with SessionLocal() as db:
            return await expire_waitlist(db)

    return run_async(_expire())
