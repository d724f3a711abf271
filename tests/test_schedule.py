"""Tests for the schedule model and date helpers"""

from datetime import date, time

import pytest
from pydantic import ValidationError

from restoagent.booking.schedule import (
    Closed,
    ClosureReason,
    OpenInService,
    open_services,
    resolve_service,
    service_type_for_time,
)
from restoagent.schemas.restaurant import RestaurantSchedule, ServiceType, ServiceWindow
from restoagent.utils.dates import format_date_fr, format_time_fr, parse_date, parse_time
from restoagent.utils.phone import format_phone_e164, is_valid_phone, mask_phone


@pytest.fixture
def schedule():
    lunch = {"start": "12:00", "end": "14:30"}
    dinner = {"start": "19:00", "end": "22:30"}
    return RestaurantSchedule.model_validate({
        "opening_hours": {
            "Monday": {"lunch": lunch, "dinner": dinner},
            "tuesday": {"lunch": lunch, "dinner": dinner},
            "saturday": {"lunch": None, "dinner": dinner},
            "sunday": None,
        },
        "closed_dates": ["2025-12-25"],
    })


def test_open_in_service(schedule):
    """Test times inside each window resolve to that service"""
    monday = date(2025, 1, 20)

    assert resolve_service(schedule, monday, time(12, 0)) == OpenInService(ServiceType.LUNCH)
    assert resolve_service(schedule, monday, time(19, 0)) == OpenInService(ServiceType.DINNER)
    assert resolve_service(schedule, monday, time(22, 29)) == OpenInService(ServiceType.DINNER)


def test_window_end_is_exclusive(schedule):
    """Test the closing minute is outside the service"""
    result = resolve_service(schedule, date(2025, 1, 20), time(22, 30))

    assert result == Closed(ClosureReason.OUTSIDE_SERVICE_HOURS)
    assert result.message == "Le restaurant n'est pas ouvert à cette heure"


def test_exceptional_closure_wins(schedule):
    """Test a closed date is closed even during normal hours"""
    # 2025-12-25 is a Thursday, but closed dates are checked first
    result = resolve_service(schedule, date(2025, 12, 25), time(19, 0))

    assert result == Closed(ClosureReason.EXCEPTIONAL_CLOSURE)


def test_weekly_closure(schedule):
    """Test closed weekdays, null or missing from the schedule"""
    assert resolve_service(schedule, date(2025, 1, 19), time(19, 0)) == Closed(ClosureReason.WEEKLY_CLOSURE)
    # Wednesday is not configured at all
    assert resolve_service(schedule, date(2025, 1, 22), time(19, 0)) == Closed(ClosureReason.WEEKLY_CLOSURE)


def test_closed_service_on_open_day(schedule):
    """Test saturday lunch is outside hours while saturday dinner is open"""
    saturday = date(2025, 1, 18)

    assert resolve_service(schedule, saturday, time(12, 30)) == Closed(ClosureReason.OUTSIDE_SERVICE_HOURS)
    assert resolve_service(schedule, saturday, time(20, 0)) == OpenInService(ServiceType.DINNER)


def test_open_services(schedule):
    """Test services of a day, lunch first"""
    services = open_services(schedule, date(2025, 1, 20))

    assert [service_type for service_type, _window in services] == [ServiceType.LUNCH, ServiceType.DINNER]
    assert open_services(schedule, date(2025, 1, 19)) is None
    assert open_services(schedule, date(2025, 12, 25)) is None


def test_service_type_for_time():
    """Test the 15:00 boundary between lunch and dinner"""
    assert service_type_for_time(time(14, 59)) == ServiceType.LUNCH
    assert service_type_for_time(time(15, 0)) == ServiceType.DINNER
    assert service_type_for_time(time(0, 30)) == ServiceType.LUNCH


def test_invalid_window():
    """Test a window ending before it starts is rejected"""
    with pytest.raises(ValidationError):
        ServiceWindow(start="22:00", end="19:00")


def test_empty_schedule():
    """Test a restaurant without configured hours is always closed"""
    schedule = RestaurantSchedule.model_validate({"opening_hours": None, "closed_dates": None})

    assert resolve_service(schedule, date(2025, 1, 20), time(19, 0)) == Closed(ClosureReason.WEEKLY_CLOSURE)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("19:30", time(19, 30)),
        ("19:30:00", time(19, 30)),
        ("19h30", time(19, 30)),
        ("19h", time(19, 0)),
        ("7:30 PM", time(19, 30)),
        ("12 am", time(0, 0)),
    ],
)
def test_parse_time(value, expected):
    """Test the time formats the agent produces"""
    assert parse_time(value) == expected


def test_parse_time_invalid():
    """Test unreadable times"""
    with pytest.raises(ValueError):
        parse_time("ce soir")
    with pytest.raises(ValueError):
        parse_time("25:00")


def test_parse_date():
    """Test ISO, ISO datetime and French day-first dates"""
    assert parse_date("2025-01-20") == date(2025, 1, 20)
    assert parse_date("2025-01-20T19:00:00") == date(2025, 1, 20)
    assert parse_date("20/01/2025") == date(2025, 1, 20)
    with pytest.raises(ValueError):
        parse_date("demain")


def test_french_formatting():
    """Test dates and times as the agent says them"""
    assert format_date_fr(date(2025, 1, 20)) == "lundi 20 janvier"
    assert format_date_fr(date(2025, 8, 15), short=True) == "ven 15 août"
    assert format_time_fr("19:00") == "19h"
    assert format_time_fr("19:05") == "19h05"


def test_phone_helpers():
    """Test E.164 normalization, plausibility and masking"""
    assert format_phone_e164("06 12 34 56 78") == "+33612345678"
    assert format_phone_e164("0033 6 12 34 56 78") == "+33612345678"
    assert format_phone_e164("+44 20 7946 0958") == "+442079460958"
    assert format_phone_e164("33612345678") == "+33612345678"
    assert format_phone_e164("33 6 12 34 56 78") == "+33612345678"
    assert format_phone_e164("612345678") == "+33612345678"
    assert is_valid_phone("06 12 34 56 78")
    assert not is_valid_phone("12")
    assert not is_valid_phone(None)
    assert mask_phone("+33612345678") == "5678"
