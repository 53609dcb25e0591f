"""
Age derived from date of birth
"""

from datetime import date
from typing import Optional


def calculate_age(birth_date: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Completed years between birth_date and today; None when there is no birth date"""
    if birth_date is None:
        return None
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def parse_birth_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD form value; anything unparseable yields None"""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def age_from_input(value: Optional[str], today: Optional[date] = None) -> str:
    """Form-facing variant: the age field text for a raw date-of-birth input"""
    age = calculate_age(parse_birth_date(value), today)
    return "" if age is None else str(age)
