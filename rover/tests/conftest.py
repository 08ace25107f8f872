"""
Shared test fixtures for the Renogy Rover client tests.

Provides environment isolation for RoverSettings, an in-memory fake byte
channel standing in for the serial port, and a snapshot factory.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from rover.src.errors import ReadTimeoutError
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

# All RoverSettings environment variable names, used for cleanup.
_ALL_ROVER_ENV_VARS = (
    "DEVICE",
    "DEVICE_ADDRESS",
    "BAUDRATE",
    "READ_TIMEOUT_S",
    "POLL_INTERVAL_S",
    "PRUNE_LOG_DAYS",
    "CSV_PATH",
    "SQLITE_PATH",
    "POSTGRES_URL",
    "STATE_FILE",
    "UTC",
    "VERBOSE",
)


@pytest.fixture(autouse=True)
def _clean_rover_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all client env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_ROVER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Fake byte channel
# ---------------------------------------------------------------------------


class FakeChannel:
    """In-memory ByteChannel.

    Bytes queued in ``to_return`` are handed out by ``read_exact``; a read
    asking for more than is queued raises ReadTimeoutError, like a silent
    controller.  Everything written is recorded in ``written``.
    """

    def __init__(self, to_return: bytes = b"") -> None:
        self.to_return = bytearray(to_return)
        self.written = bytearray()
        self.writes: list[bytes] = []
        self.drain_calls = 0
        self.closed = False

    def write(self, data: bytes) -> None:
        self.written += data
        self.writes.append(bytes(data))

    def read_exact(self, n: int) -> bytes:
        if len(self.to_return) < n:
            self.to_return.clear()
            raise ReadTimeoutError(f"fake channel: expected {n} bytes")
        data = bytes(self.to_return[:n])
        del self.to_return[:n]
        return data

    def drain(self) -> int:
        self.drain_calls += 1
        drained = len(self.to_return)
        self.to_return.clear()
        return drained

    def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return "FakeChannel()"


@pytest.fixture()
def fake_channel() -> FakeChannel:
    """An empty fake channel; tests queue responses in ``to_return``."""
    return FakeChannel()


# ---------------------------------------------------------------------------
# Snapshot factory
# ---------------------------------------------------------------------------


def _system_info() -> SystemInfo:
    return SystemInfo(
        max_voltage=24,
        rated_charging_current=40,
        rated_discharging_current=40,
        product_type=ProductType.CONTROLLER,
        product_model="RNG-CTRL-RVR40",
        software_version="V1.0.4",
        hardware_version="V1.0.2",
        serial_number="1501FFFF",
    )


def _power_status(**overrides: Any) -> PowerStatus:
    fields: dict[str, Any] = {
        "battery_soc": 100,
        "battery_voltage": 25.6,
        "charging_current_to_battery": 2.3,
        "battery_temp": 20,
        "controller_temp": 25,
        "load_voltage": 0.0,
        "load_current": 0.0,
        "load_power": 0,
        "solar_panel_voltage": 45.1,
        "solar_panel_current": 1.3,
        "solar_panel_power": 58,
    }
    fields.update(overrides)
    return PowerStatus(**fields)


def _daily_stats(**overrides: Any) -> DailyStats:
    fields: dict[str, Any] = {
        "battery_min_voltage": 25.0,
        "battery_max_voltage": 28.0,
        "max_charging_current": 10.0,
        "max_discharging_current": 0.0,
        "max_charging_power": 100,
        "max_discharging_power": 0,
        "charging_amp_hours": 100.0,
        "discharging_amp_hours": 0.0,
        "power_generation_wh": 1000.0,
        "power_consumption_wh": 0.0,
    }
    fields.update(overrides)
    return DailyStats(**fields)


def _historical_data() -> HistoricalData:
    return HistoricalData(
        days_up=20,
        battery_over_discharge_count=1,
        battery_full_charge_count=20,
        total_charging_battery_ah=2000,
        total_discharging_battery_ah=0,
        cumulative_power_generation_wh=20000,
        cumulative_power_consumption_wh=0,
    )


def build_snapshot(
    *,
    power_generation_wh: float = 1000.0,
    power: dict[str, Any] | None = None,
    daily: dict[str, Any] | None = None,
    status: RenogyStatus | None = None,
) -> Snapshot:
    """Build a plausible snapshot; keyword dicts override nested fields."""
    daily_fields = {"power_generation_wh": power_generation_wh, **(daily or {})}
    return Snapshot(
        system_info=_system_info(),
        power_status=_power_status(**(power or {})),
        daily_stats=_daily_stats(**daily_fields),
        historical_data=_historical_data(),
        status=status
        if status is not None
        else RenogyStatus(
            street_light_on=False,
            street_light_brightness=0,
            charging_state=ChargingState.MPPT,
        ),
    )


@pytest.fixture()
def make_snapshot() -> Callable[..., Snapshot]:
    """Factory fixture returning :func:`build_snapshot`."""
    return build_snapshot


@pytest.fixture()
def make_channel() -> type[FakeChannel]:
    """The FakeChannel class, for tests that need several channels."""
    return FakeChannel
