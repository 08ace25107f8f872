"""
Dummy controller emulating a Renogy Rover with random but plausible data.

Selected with device ``dummy``; handy for trying out the sinks and the
poll loop without hardware.  Solar generation follows the hour of day so
that nothing is produced at night, and the daily statistics reset at local
midnight like a well-behaved controller would.

CHANGELOG:
- 2026-10-19: _update_stats returns the daily statistics it stores
- 2026-10-17: Initial creation (STORY-109)

TODO:
- None
"""

from __future__ import annotations

import random
import time
from datetime import date, datetime

from rover.src.models import (
    ChargingState,
    DailyStats,
    HistoricalData,
    PowerStatus,
    ProductType,
    RenogyStatus,
    Snapshot,
    SystemInfo,
)

_GENERATION_BY_HOUR: tuple[float, ...] = (
    0.0, 0.0, 0.0, 0.0, 0.0, 0.0,
    0.1, 0.3, 0.6, 0.75, 0.8, 0.8,
    0.85, 0.95, 0.8, 0.75, 0.5, 0.3,
    0.1, 0.0, 0.0, 0.0, 0.0, 0.0,
)
"""Share of the panel's rated output produced at each hour of the day."""


class DummyRenogyClient:
    """Emulated controller.

    Args:
        max_solar_panel_voltage: Rated voltage of the emulated panel array.
        max_solar_panel_current: Rated current of the emulated panel array.
        rng: Random source; pass a seeded one for reproducible data.
    """

    def __init__(
        self,
        *,
        max_solar_panel_voltage: float = 61.0,
        max_solar_panel_current: float = 5.0,
        rng: random.Random | None = None,
    ) -> None:
        self.max_solar_panel_voltage = max_solar_panel_voltage
        self.max_solar_panel_current = max_solar_panel_current
        self._rng = rng if rng is not None else random.Random()
        self._powered_on_at = time.monotonic()
        self._last_poll_at = self._powered_on_at
        self._day: date | None = None
        self._daily: DailyStats | None = None
        self._total_charging_ah = 0.0
        self._cumulative_generation_wh = 0.0

    def get_system_info(self) -> SystemInfo:
        return SystemInfo(
            max_voltage=24,
            rated_charging_current=40,
            rated_discharging_current=40,
            product_type=ProductType.CONTROLLER,
            product_model="RENOGY ROVER",
            software_version="V1.2.3",
            hardware_version="V4.5.6",
            serial_number="1501FFFF",
        )

    def get_all_data(
        self,
        cached_system_info: SystemInfo | None = None,
        *,
        now: datetime | None = None,
    ) -> Snapshot:
        system_info = cached_system_info if cached_system_info is not None else self.get_system_info()
        now = now if now is not None else datetime.now()
        rng = self._rng

        panel_voltage = rng.uniform(self.max_solar_panel_voltage * 0.66, self.max_solar_panel_voltage)
        panel_current = rng.uniform(self.max_solar_panel_current / 2, self.max_solar_panel_current)
        panel_current *= _GENERATION_BY_HOUR[now.hour]
        panel_power_w = panel_voltage * panel_current
        battery_voltage = rng.uniform(system_info.max_voltage, system_info.max_voltage * 1.19)
        current_to_battery = panel_power_w / battery_voltage

        power_status = PowerStatus(
            battery_soc=rng.randint(66, 100),
            battery_voltage=round(battery_voltage, 1),
            charging_current_to_battery=round(current_to_battery, 2),
            battery_temp=rng.randint(18, 24),
            controller_temp=rng.randint(18, 24),
            # no load attached
            load_voltage=0.0,
            load_current=0.0,
            load_power=0,
            solar_panel_voltage=round(panel_voltage, 1),
            solar_panel_current=round(panel_current, 2),
            solar_panel_power=int(panel_power_w),
        )
        daily_stats = self._update_stats(panel_power_w, battery_voltage, now.date())

        return Snapshot(
            system_info=system_info,
            power_status=power_status,
            daily_stats=daily_stats,
            historical_data=self._historical_data(),
            status=RenogyStatus(
                street_light_on=False,
                street_light_brightness=0,
                charging_state=ChargingState.MPPT,
            ),
        )

    def _historical_data(self) -> HistoricalData:
        days_up = int((time.monotonic() - self._powered_on_at) // 86400) + 1
        return HistoricalData(
            days_up=days_up,
            battery_over_discharge_count=0,
            battery_full_charge_count=0,
            total_charging_battery_ah=int(self._total_charging_ah),
            total_discharging_battery_ah=0,
            cumulative_power_generation_wh=int(self._cumulative_generation_wh),
            cumulative_power_consumption_wh=0,
        )

    def _update_stats(self, panel_power_w: float, battery_voltage: float, today: date) -> DailyStats:
        """Accumulate the totals and return the updated daily statistics."""
        poll_at = time.monotonic()
        hours = (poll_at - self._last_poll_at) / 3600
        self._last_poll_at = poll_at
        current_to_battery = panel_power_w / battery_voltage
        amp_hours = current_to_battery * hours
        energy_wh = panel_power_w * hours

        self._total_charging_ah += amp_hours
        self._cumulative_generation_wh += energy_wh

        daily = self._daily
        if daily is None or today != self._day:
            self._day = today
            self._daily = DailyStats(
                battery_min_voltage=round(battery_voltage, 1),
                battery_max_voltage=round(battery_voltage, 1),
                max_charging_current=round(current_to_battery, 2),
                max_discharging_current=0.0,
                max_charging_power=int(panel_power_w),
                max_discharging_power=0,
                charging_amp_hours=amp_hours,
                discharging_amp_hours=0.0,
                power_generation_wh=energy_wh,
                power_consumption_wh=0.0,
            )
            return self._daily
        self._daily = daily.model_copy(
            update={
                "battery_min_voltage": min(daily.battery_min_voltage, round(battery_voltage, 1)),
                "battery_max_voltage": max(daily.battery_max_voltage, round(battery_voltage, 1)),
                "max_charging_current": max(daily.max_charging_current, round(current_to_battery, 2)),
                "max_charging_power": max(daily.max_charging_power, int(panel_power_w)),
                "charging_amp_hours": daily.charging_amp_hours + amp_hours,
                "power_generation_wh": daily.power_generation_wh + energy_wh,
            }
        )
        return self._daily

    def __repr__(self) -> str:
        return (
            f"DummyRenogyClient(max_solar_panel_voltage={self.max_solar_panel_voltage}, "
            f"max_solar_panel_current={self.max_solar_panel_current})"
        )
