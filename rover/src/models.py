"""
Pydantic models for the data polled from a Renogy Rover controller.

All models are frozen: a :class:`Snapshot` is produced once per successful
poll and never mutated afterwards.  The daily-stats corrector builds a new
snapshot via ``model_copy(update=...)`` instead.

Values are in engineering units after scaling (V, A, W, Wh, Ah, degrees C).

CHANGELOG:
- 2026-10-14: Temperatures kept signed (controller reports sub-zero values)
- 2026-10-12: Initial creation (STORY-103)

TODO:
- None
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, field_serializer

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ProductType(Enum):
    """Product type reported in the system info block."""

    CONTROLLER = 0
    INVERTER = 1


class ChargingState(Enum):
    """Charging state code (register 0x120, byte 1)."""

    DEACTIVATED = 0
    """No current/voltage from the panels: night, or the array is disconnected."""
    ACTIVATED = 1
    MPPT = 2
    """Bulk charging, constant current."""
    EQUALIZING = 3
    BOOST = 4
    FLOATING = 5
    CURRENT_LIMITING = 6
    """Overpower."""


class ControllerFault(Enum):
    """Controller fault flags; the value is the bit number in the 32-bit mask."""

    CIRCUIT_CHARGE_MOS_SHORT = 30
    ANTI_REVERSE_MOS_SHORT = 29
    SOLAR_PANEL_REVERSELY_CONNECTED = 28
    SOLAR_PANEL_WORKING_POINT_OVER_VOLTAGE = 27
    SOLAR_PANEL_COUNTER_CURRENT = 26
    PHOTOVOLTAIC_INPUT_SIDE_OVER_VOLTAGE = 25
    PHOTOVOLTAIC_INPUT_SIDE_SHORT_CIRCUIT = 24
    PHOTOVOLTAIC_INPUT_OVERPOWER = 23
    AMBIENT_TEMPERATURE_TOO_HIGH = 22
    CONTROLLER_TEMPERATURE_TOO_HIGH = 21
    LOAD_OVERPOWER_OR_LOAD_OVER_CURRENT = 20
    LOAD_SHORT_CIRCUIT = 19
    BATTERY_UNDER_VOLTAGE_WARNING = 18
    BATTERY_OVER_VOLTAGE = 17
    BATTERY_OVER_DISCHARGE = 16

    @classmethod
    def from_bitmask(cls, mask: int) -> frozenset[ControllerFault]:
        """Decode the set of faults whose bit is set in *mask*."""
        return frozenset(fault for fault in cls if mask & (1 << fault.value))


# ---------------------------------------------------------------------------
# Register blocks
# ---------------------------------------------------------------------------


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class SystemInfo(_Frozen):
    """Static system information; fetched once per session and cached.

    Attributes:
        max_voltage: Max. system voltage, 12/24/36/48/96 V (0xFF = automatic).
        rated_charging_current: Rated charging current, A.
        rated_discharging_current: Rated discharging current, A.
        product_type: Controller or inverter, None if the code is unknown.
        product_model: Model string, e.g. ``"RNG-CTRL-RVR40"``.
        software_version: ``Vmajor.minor.bugfix``.
        hardware_version: ``Vmajor.minor.bugfix``.
        serial_number: 4 bytes as hex, e.g. ``1501FFFF`` (the 65535th unit
            produced in Jan. 2015).
    """

    max_voltage: int
    rated_charging_current: int
    rated_discharging_current: int
    product_type: ProductType | None
    product_model: str
    software_version: str
    hardware_version: str
    serial_number: str

    @field_serializer("product_type")
    def _serialize_product_type(self, value: ProductType | None) -> str | None:
        return value.name if value is not None else None


class PowerStatus(_Frozen):
    """Instantaneous readings; re-fetched on every poll."""

    battery_soc: int
    battery_voltage: float
    charging_current_to_battery: float
    battery_temp: int
    controller_temp: int
    load_voltage: float
    load_current: float
    load_power: int
    solar_panel_voltage: float
    solar_panel_current: float
    solar_panel_power: int


class DailyStats(_Frozen):
    """Statistics of the current day, reset by the device once a day.

    ``power_generation_wh`` and ``power_consumption_wh`` are raw watt-hours;
    the vendor documentation claims kWh/10000 but the values only line up
    with the amp-hour counters as Wh.
    """

    battery_min_voltage: float
    battery_max_voltage: float
    max_charging_current: float
    max_discharging_current: float
    max_charging_power: int
    max_discharging_power: int
    charging_amp_hours: float
    discharging_amp_hours: float
    power_generation_wh: float
    power_consumption_wh: float


class HistoricalData(_Frozen):
    """Lifetime counters."""

    days_up: int
    battery_over_discharge_count: int
    battery_full_charge_count: int
    total_charging_battery_ah: int
    total_discharging_battery_ah: int
    cumulative_power_generation_wh: int
    cumulative_power_consumption_wh: int


class RenogyStatus(_Frozen):
    """Street light, charging state and active faults."""

    street_light_on: bool
    street_light_brightness: int
    charging_state: ChargingState | None
    faults: frozenset[ControllerFault] = frozenset()

    @field_serializer("charging_state")
    def _serialize_charging_state(self, value: ChargingState | None) -> str | None:
        return value.name if value is not None else None

    @field_serializer("faults")
    def _serialize_faults(self, value: frozenset[ControllerFault]) -> list[str]:
        # Sorted by name so the JSON output is stable.
        return sorted(fault.name for fault in value)


class Snapshot(_Frozen):
    """Everything read from the controller in one poll."""

    system_info: SystemInfo
    power_status: PowerStatus
    daily_stats: DailyStats
    historical_data: HistoricalData
    status: RenogyStatus
