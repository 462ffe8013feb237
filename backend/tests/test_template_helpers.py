"""Tests for presentation helpers."""
from datetime import date, datetime

from app.utils.template_helpers import format_date_ko, format_days_left, format_stay_usage, usage_percent


class TestStayUsage:
    def test_normal(self):
        assert format_stay_usage(45, 90) == "45/90일"

    def test_zero_limit_renders(self):
        assert format_stay_usage(45, 0) == "45/0일"

    def test_percent(self):
        assert usage_percent(45, 90) == 50.0

    def test_percent_zero_limit(self):
        assert usage_percent(45, 0) == 0.0

    def test_percent_capped(self):
        assert usage_percent(120, 90) == 100.0


class TestDates:
    def test_format_date_ko(self):
        assert format_date_ko(date(2024, 3, 5)) == "2024년 3월 5일"

    def test_format_datetime_with_weekday(self):
        # 2024-03-05 is a Tuesday
        assert format_date_ko(datetime(2024, 3, 5, 12, 0), with_weekday=True) == "2024년 3월 5일 (화)"

    def test_none(self):
        assert format_date_ko(None) == "-"

    def test_days_left(self):
        assert format_days_left(3) == "3일 남음"
        assert format_days_left(0) == "오늘"
        assert format_days_left(-2) == "2일 지남"
