"""Template helper functions for Jinja2 templates."""

from datetime import date, datetime
from typing import Optional, Union

WEEKDAYS_KO = ["월", "화", "수", "목", "금", "토", "일"]


def format_stay_usage(used_days: int, max_days: int) -> str:
    """'45/90일'. A zero limit still renders ('45/0일')."""
    return f"{used_days}/{max_days}일"


def usage_percent(used_days: int, max_days: int) -> float:
    """Share of the allowance used, 0..100. Zero or negative limits give 0."""
    if max_days <= 0:
        return 0.0
    return round(min(used_days / max_days, 1.0) * 100, 1)


def format_date_ko(value: Optional[Union[date, datetime]], with_weekday: bool = False) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = value.date()
    text = f"{value.year}년 {value.month}월 {value.day}일"
    if with_weekday:
        text += f" ({WEEKDAYS_KO[value.weekday()]})"
    return text


def format_days_left(days: int) -> str:
    if days < 0:
        return f"{abs(days)}일 지남"
    if days == 0:
        return "오늘"
    return f"{days}일 남음"


def register_filters(env) -> None:
    """Install the helpers as filters on a Jinja2 environment."""
    env.filters["stay_usage"] = format_stay_usage
    env.filters["usage_percent"] = usage_percent
    env.filters["date_ko"] = format_date_ko
    env.filters["days_left"] = format_days_left
