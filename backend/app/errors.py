"""Typed domain errors.

Services raise these for input they cannot work with; the API layer turns
them into 400 responses. Calculators and parsers report expected outcomes
(no data, low confidence) through result objects instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass
class DinoError(Exception):
    """Base error for the DINO domain.

    Attributes:
        message: Human-readable error description
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class InvalidDateRangeError(DinoError):
    """An exit date lies before its entry date."""

    start: Optional[date] = None
    end: Optional[date] = None


@dataclass
class UnknownCountryError(DinoError):
    """Country name or code not present in the country table."""

    value: str = ""


@dataclass
class ActiveEntryExistsError(DinoError):
    """A visa already has an open entry (no exit recorded)."""

    user_visa_id: Optional[int] = None
