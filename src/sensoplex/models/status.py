"""Module status model."""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import ChargerState, ModuleErrorType


@dataclass(frozen=True, slots=True)
class ModuleStatus:
    """Status reported by the module (STATUS command).

    Attributes:
        model: Hardware model byte
        charger_state: Raw charger state (see ChargerState)
        battery_raw: Raw DC-in ADC reading
        battery_volts: Battery voltage derived from battery_raw
        errors: Error counters indexed by ModuleErrorType (may be shorter
            than the full set on older firmware)
    """

    model: int
    charger_state: int
    battery_raw: int
    battery_volts: float
    errors: tuple[int, ...] = field(default_factory=tuple)

    @property
    def is_charging(self) -> bool:
        """True while the battery is being charged."""
        return self.charger_state == ChargerState.CHARGING

    def error_count(self, error_type: ModuleErrorType) -> int | None:
        """Get one error counter, or None if the module did not report it."""
        if error_type >= len(self.errors):
            return None
        return self.errors[error_type]
