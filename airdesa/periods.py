from typing import Tuple

from sqlalchemy import and_, or_

MONTH_NAMES = [
    "",
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]


def next_period(year: int, month: int) -> Tuple[int, int]:
    if month >= 12:
        return year + 1, 1
    return year, month + 1


def previous_period(year: int, month: int) -> Tuple[int, int]:
    if month <= 1:
        return year - 1, 12
    return year, month - 1


def period_label(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month]} {year}"


def earlier_than(model, year: int, month: int):
    """SQL clause: ``model``'s (period_year, period_month) is strictly before (year, month)."""
    return or_(
        model.period_year < year,
        and_(model.period_year == year, model.period_month < month),
    )


def later_than(model, year: int, month: int):
    """SQL clause: ``model``'s (period_year, period_month) is strictly after (year, month)."""
    return or_(
        model.period_year > year,
        and_(model.period_year == year, model.period_month > month),
    )
