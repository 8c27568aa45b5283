"""Firmware version model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True, slots=True)
class FirmwareVersion:
    """Firmware version reported by the module (VERSION command).

    Attributes:
        version: Major version
        revision: Minor version
        subrevision: Patch level
        month: Build month (1-12)
        day: Build day (1-31)
        year: Build year, two digits (2000 based)
        model: Firmware model (standard, production test, engineering test or custom)
    """

    version: int
    revision: int
    subrevision: int
    month: int
    day: int
    year: int
    model: int

    @property
    def text(self) -> str:
        """Version string, e.g. ``"1.2.3"``."""
        return f"{self.version}.{self.revision}.{self.subrevision}"

    @property
    def build_date(self) -> date | None:
        """Build date, or None if the module reported an invalid date."""
        try:
            return date(2000 + self.year, self.month, self.day)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.text
