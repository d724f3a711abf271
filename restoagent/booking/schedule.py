"""
Schedule model.

Answers "is the restaurant open at this date and time, and in which service?"
from the typed weekly schedule plus exceptional closures.
"""

import enum
from dataclasses import dataclass
from datetime import date, time
from typing import Optional, Union

from restoagent.schemas.restaurant import RestaurantSchedule, ServiceType

# Times before the cutoff belong to lunch, at or after it to dinner
SERVICE_CUTOFF = time(15, 0)


class ClosureReason(str, enum.Enum):
    EXCEPTIONAL_CLOSURE = "exceptional_closure"
    WEEKLY_CLOSURE = "weekly_closure"
    OUTSIDE_SERVICE_HOURS = "outside_service_hours"


CLOSURE_MESSAGES_FR = {
    ClosureReason.EXCEPTIONAL_CLOSURE: "Le restaurant est exceptionnellement fermé ce jour-là",
    ClosureReason.WEEKLY_CLOSURE: "Le restaurant est fermé ce jour-là",
    ClosureReason.OUTSIDE_SERVICE_HOURS: "Le restaurant n'est pas ouvert à cette heure",
}


@dataclass(frozen=True)
class Closed:
    reason: ClosureReason

    @property
    def message(self) -> str:
        return CLOSURE_MESSAGES_FR[self.reason]


@dataclass(frozen=True)
class OpenInService:
    service_type: ServiceType


ServiceResolution = Union[Closed, OpenInService]


def resolve_service(schedule: RestaurantSchedule, on_date: date, at: time) -> ServiceResolution:
    if on_date in schedule.closed_dates:
        return Closed(ClosureReason.EXCEPTIONAL_CLOSURE)

    day = schedule.day(on_date)
    if day is None or day.is_closed:
        return Closed(ClosureReason.WEEKLY_CLOSURE)

    for service_type, window in day.windows():
        if window.contains(at):
            return OpenInService(service_type)

    return Closed(ClosureReason.OUTSIDE_SERVICE_HOURS)


def service_type_for_time(at: time) -> ServiceType:
    """Lunch/dinner bucket of a time, without a schedule lookup"""
    if at < SERVICE_CUTOFF:
        return ServiceType.LUNCH
    return ServiceType.DINNER


def open_services(schedule: RestaurantSchedule, on_date: date) -> Optional[list]:
    """Services open on a date, lunch first; None when the day is closed"""
    if on_date in schedule.closed_dates:
        return None
    day = schedule.day(on_date)
    if day is None or day.is_closed:
        return None
    return day.windows()
