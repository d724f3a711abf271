"""FastAPI dependencies shared by the routers"""

from datetime import datetime
from typing import Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from restoagent.booking import ReservationStore
from restoagent.database import get_db
from restoagent.notifications.sms import SMSNotifier, get_notifier
from restoagent.tools.handlers import ReservationTools
from restoagent.utils.dates import local_now


def get_clock() -> Callable[[], datetime]:
    """Source of "now" in the restaurants' timezone; overridden in tests"""
    return local_now


def get_store(db: AsyncSession = Depends(get_db)) -> ReservationStore:
    return ReservationStore(db)


def get_reservation_tools(
    store: ReservationStore = Depends(get_store),
    notifier: SMSNotifier = Depends(get_notifier),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ReservationTools:
    return ReservationTools(store, notifier, now=clock)
