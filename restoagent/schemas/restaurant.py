"""Restaurant schedule schemas"""

import enum
from datetime import date, time
from typing import Dict, List, Optional, Set, Tuple
from pydantic import BaseModel, field_validator, model_validator

from restoagent.utils.dates import to_minutes


class Weekday(str, enum.Enum):
    """Keys of the opening_hours JSON, in date.weekday() order"""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value: date) -> "Weekday":
        return list(cls)[value.weekday()]


class ServiceType(str, enum.Enum):
    """Service period"""
    LUNCH = "lunch"
    DINNER = "dinner"


SERVICE_LABELS_FR = {
    ServiceType.LUNCH: "midi",
    ServiceType.DINNER: "soir",
}


class ServiceWindow(BaseModel):
    """Opening window of one service, start inclusive, end exclusive"""
    start: time
    end: time

    @model_validator(mode="after")
    def check_order(self) -> "ServiceWindow":
        if self.start >= self.end:
            raise ValueError(f"Service window must end after it starts ({self.start}-{self.end})")
        return self

    def contains(self, at: time) -> bool:
        return to_minutes(self.start) <= to_minutes(at) < to_minutes(self.end)


class DaySchedule(BaseModel):
    """Services of one weekday; a missing service means that service is closed"""
    lunch: Optional[ServiceWindow] = None
    dinner: Optional[ServiceWindow] = None

    def windows(self) -> List[Tuple[ServiceType, ServiceWindow]]:
        windows = []
        if self.lunch:
            windows.append((ServiceType.LUNCH, self.lunch))
        if self.dinner:
            windows.append((ServiceType.DINNER, self.dinner))
        return windows

    @property
    def is_closed(self) -> bool:
        return not self.windows()


class RestaurantSchedule(BaseModel):
    """Weekly opening pattern plus exceptional closures"""
    opening_hours: Dict[Weekday, Optional[DaySchedule]] = {}
    closed_dates: Set[date] = set()

    @field_validator("opening_hours", mode="before")
    @classmethod
    def normalize_weekdays(cls, value):
        if not value:
            return {}
        return {str(day).strip().lower(): hours or None for day, hours in value.items()}

    @field_validator("closed_dates", mode="before")
    @classmethod
    def default_closed_dates(cls, value):
        return value or []

    @classmethod
    def from_restaurant(cls, restaurant) -> "RestaurantSchedule":
        return cls.model_validate(
            {
                "opening_hours": restaurant.opening_hours,
                "closed_dates": restaurant.closed_dates,
            }
        )

    def day(self, on_date: date) -> Optional[DaySchedule]:
        return self.opening_hours.get(Weekday.from_date(on_date))
