"""
Date and time helpers.

Parsing is tolerant because dates and times arrive from the voice agent's
extraction ("19h30", "7:30 PM", "2025-01-15T19:00:00"). Formatting is French,
matching what the agent says on the phone and what goes out by SMS.
"""

import re
from datetime import date, datetime, time
from typing import Union
from zoneinfo import ZoneInfo

from restoagent.config import settings

# Indexed by date.weekday() (Monday == 0)
JOURS_FR_FULL = ("lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche")
JOURS_FR_SHORT = ("lun", "mar", "mer", "jeu", "ven", "sam", "dim")

# Indexed by date.month - 1
MOIS_FR_FULL = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)
MOIS_FR_SHORT = ("jan", "fév", "mar", "avr", "mai", "juin", "juil", "août", "sep", "oct", "nov", "déc")

_TIME_24H = re.compile(r"^(\d{1,2})(?:\s*[:hH]\s*(\d{2})?)?(?::(\d{2}))?$")
_TIME_12H = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([aApP])\.?\s*[mM]\.?$")
_DATE_FR = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def local_now() -> datetime:
    """Current time in the restaurants' timezone"""
    return datetime.now(ZoneInfo(settings.timezone))


def parse_date(value: Union[str, date]) -> date:
    """Parse YYYY-MM-DD (optionally followed by a time part) or DD/MM/YYYY"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    match = _DATE_FR.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return date(year, month, day)

    return date.fromisoformat(text[:10])


def parse_time(value: Union[str, time]) -> time:
    """Parse 19:30, 19:30:00, 19h30, 19h, 19 or 7:30 PM"""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    text = str(value).strip()

    match = _TIME_12H.match(text)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2) or 0)
        if not 1 <= hours <= 12:
            raise ValueError(f"Invalid time: {value!r}")
        if match.group(3).lower() == "p" and hours != 12:
            hours += 12
        elif match.group(3).lower() == "a" and hours == 12:
            hours = 0
        return time(hours, minutes)

    match = _TIME_24H.match(text)
    if match:
        return time(int(match.group(1)), int(match.group(2) or 0))

    raise ValueError(f"Invalid time: {value!r}")


def format_time(value: time) -> str:
    """Storage format, HH:MM"""
    return value.strftime("%H:%M")


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def format_date_fr(value: date, short: bool = False) -> str:
    """lundi 15 janvier, or lun 15 jan"""
    jours = JOURS_FR_SHORT if short else JOURS_FR_FULL
    mois = MOIS_FR_SHORT if short else MOIS_FR_FULL
    return f"{jours[value.weekday()]} {value.day} {mois[value.month - 1]}"


def format_date_long_fr(value: date) -> str:
    """lundi 15 janvier 2025"""
    return f"{format_date_fr(value)} {value.year}"


def format_time_fr(value: Union[str, time]) -> str:
    """19h30, or 19h on the hour"""
    parsed = parse_time(value)
    if parsed.minute == 0:
        return f"{parsed.hour}h"
    return f"{parsed.hour}h{parsed.minute:02d}"


def guests_label(count: int) -> str:
    return f"{count} {'personne' if count == 1 else 'personnes'}"
