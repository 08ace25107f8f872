"""
Daily statistics correction.

The Rover resets its "daily" counters once a day, but not at midnight:
observed reset times drift as late as 9:17am.  Until the device resets,
its daily stats still describe (mostly) yesterday.  This module makes the
daily stats behave as if the reset happened at local midnight.

Two states:

- :class:`PassThrough` -- the device's own stats are trusted.  Power
  generation gets ``carry_over_wh`` added: the energy generated after
  midnight but before the device's own reset, which the device forgot
  when it reset.
- :class:`UntrustedPeriod` -- from local midnight until the device resets.
  Battery voltage extrema and max charging current/power come from local
  trackers, amp-hour counters are zeroed, and power generation is the
  device value minus its value at midnight.

Per poll, the midnight check runs first and the reset check second, so a
poll that both crosses midnight and sees the reset ends up in
``PassThrough(0)`` without double counting.

CHANGELOG:
- 2026-10-16: Model the two states as a union of frozen dataclasses
- 2026-10-15: Initial creation (STORY-106)

TODO:
- None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from rover.src.clock import MidnightAlarm

if TYPE_CHECKING:
    from rover.src.client import RenogyClient
    from rover.src.models import DailyStats, PowerStatus, Snapshot, SystemInfo

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Corrector states
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PassThrough:
    """Device stats are trusted; *carry_over_wh* is added to power generation."""

    carry_over_wh: float = 0.0


@dataclass(frozen=True, slots=True)
class UntrustedPeriod:
    """Between local midnight and the device's own daily reset.

    Attributes:
        baseline_wh_at_midnight: Device power generation at the first poll
            after midnight.
        tracked_min_voltage: Lowest battery voltage seen since midnight.
        tracked_max_voltage: Highest battery voltage seen since midnight.
        tracked_max_charging_current: Highest charging current since midnight.
        tracked_max_charging_power: Highest solar panel power since midnight.
    """

    baseline_wh_at_midnight: float
    tracked_min_voltage: float
    tracked_max_voltage: float
    tracked_max_charging_current: float
    tracked_max_charging_power: int

    @classmethod
    def starting_at(cls, baseline_wh: float, power: PowerStatus) -> UntrustedPeriod:
        """Enter the period, seeding the trackers from *power*."""
        return cls(
            baseline_wh_at_midnight=baseline_wh,
            tracked_min_voltage=power.battery_voltage,
            tracked_max_voltage=power.battery_voltage,
            tracked_max_charging_current=power.charging_current_to_battery,
            tracked_max_charging_power=power.solar_panel_power,
        )

    def tracking(self, power: PowerStatus) -> UntrustedPeriod:
        """Return a copy with the trackers updated from *power*."""
        return replace(
            self,
            tracked_min_voltage=min(self.tracked_min_voltage, power.battery_voltage),
            tracked_max_voltage=max(self.tracked_max_voltage, power.battery_voltage),
            tracked_max_charging_current=max(
                self.tracked_max_charging_current, power.charging_current_to_battery
            ),
            tracked_max_charging_power=max(
                self.tracked_max_charging_power, power.solar_panel_power
            ),
        )


CorrectorState = PassThrough | UntrustedPeriod


# ---------------------------------------------------------------------------
# Corrector
# ---------------------------------------------------------------------------


class DailyStatsCorrector:
    """Wraps a :class:`~rover.src.client.RenogyClient` and fixes its daily stats.

    Args:
        delegate: The client to read snapshots from (normally a
            :class:`~rover.src.session.ResilientSession`).
        alarm: Midnight detector; injectable for tests.
    """

    def __init__(self, delegate: RenogyClient, *, alarm: MidnightAlarm | None = None) -> None:
        self._delegate = delegate
        self._alarm = alarm if alarm is not None else MidnightAlarm()
        self._state: CorrectorState = PassThrough()
        self._prev_power_generation_wh: float | None = None

    @property
    def state(self) -> CorrectorState:
        """The active correction state."""
        return self._state

    def get_system_info(self) -> SystemInfo:
        """Delegate unchanged."""
        return self._delegate.get_system_info()

    def get_all_data(self, cached_system_info: SystemInfo | None = None) -> Snapshot:
        """Read a snapshot from the delegate and correct its daily stats.

        Delegate errors propagate untouched and leave the state as it was.
        """
        snapshot = self._delegate.get_all_data(cached_system_info)
        generation_wh = snapshot.daily_stats.power_generation_wh

        crossed_midnight = self._alarm.tick()
        if crossed_midnight:
            logger.info(
                "Crossed midnight, not trusting device daily stats until its own reset "
                "(power generation at midnight: %s Wh)",
                generation_wh,
            )
            self._state = UntrustedPeriod.starting_at(generation_wh, snapshot.power_status)
        elif isinstance(self._state, UntrustedPeriod):
            self._state = self._state.tracking(snapshot.power_status)

        prev_wh = self._prev_power_generation_wh
        if prev_wh is not None and generation_wh < prev_wh:
            self._state = self._after_device_reset(prev_wh, crossed_midnight)
        self._prev_power_generation_wh = generation_wh

        return snapshot.model_copy(update={"daily_stats": self._correct(snapshot.daily_stats)})

    def _after_device_reset(self, prev_wh: float, crossed_midnight: bool) -> PassThrough:
        state = self._state
        if isinstance(state, UntrustedPeriod) and not crossed_midnight:
            carry_over_wh = max(0.0, prev_wh - state.baseline_wh_at_midnight)
        else:
            # Reset in the same poll as midnight, or outside an untrusted period.
            carry_over_wh = 0.0
        logger.info(
            "Device performed its daily reset (%s Wh -> lower), trusting it again; "
            "carrying over %s Wh",
            prev_wh,
            carry_over_wh,
        )
        return PassThrough(carry_over_wh=carry_over_wh)

    def _correct(self, device: DailyStats) -> DailyStats:
        state = self._state
        if isinstance(state, PassThrough):
            return device.model_copy(
                update={
                    "power_generation_wh": device.power_generation_wh + state.carry_over_wh,
                }
            )
        return device.model_copy(
            update={
                "battery_min_voltage": state.tracked_min_voltage,
                "battery_max_voltage": state.tracked_max_voltage,
                "max_charging_current": state.tracked_max_charging_current,
                "max_charging_power": state.tracked_max_charging_power,
                "charging_amp_hours": 0.0,
                "discharging_amp_hours": 0.0,
                "power_generation_wh": max(
                    0.0, device.power_generation_wh - state.baseline_wh_at_midnight
                ),
            }
        )

    def close(self) -> None:
        """Close the delegate if it holds a resource."""
        close = getattr(self._delegate, "close", None)
        if close is not None:
            close()

    def __repr__(self) -> str:
        return f"DailyStatsCorrector({self._delegate!r}, state={self._state!r})"
