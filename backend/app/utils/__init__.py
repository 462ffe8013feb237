"""Utility modules for DINO."""

from app.utils.template_helpers import format_date_ko, format_stay_usage, usage_percent
from app.utils.version import get_version

__all__ = ["format_date_ko", "format_stay_usage", "usage_percent", "get_version"]
