"""
Output sinks for polled snapshots.

A sink receives every corrected snapshot via ``append`` and, once a day,
a ``delete_records_older_than`` call.  Implementations:

- :class:`CSVSink` -- appends rows to a CSV file (never pruned).
- :class:`StdoutCSVSink` -- CSV rows on stdout; the default when nothing
  else is configured.
- :class:`~rover.src.db.DatabaseSink` -- SQLite or PostgreSQL via
  SQLAlchemy.
- :class:`CompositeSink` -- fans out to several sinks, transactional ones
  first so that a failed database write leaves no row in the append-only
  CSV outputs.

CHANGELOG:
- 2026-10-19: Append to transactional sinks before append-only ones
- 2026-10-17: Initial creation (STORY-108)

TODO:
- None
"""

from __future__ import annotations

import csv
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, TextIO

from rover.src.db import DatabaseSink, sqlite_url

if TYPE_CHECKING:
    from rover.src.config import RoverSettings
    from rover.src.models import Snapshot

logger = logging.getLogger(__name__)


class Sink(Protocol):
    """Consumer of polled snapshots."""

    transactional: bool

    def init(self) -> None: ...

    def append(self, snapshot: Snapshot) -> None: ...

    def delete_records_older_than(self, days: int) -> None: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

CSV_HEADER: tuple[str, ...] = (
    "DateTime",
    "BatterySOC",
    "BatteryVoltage",
    "ChargingCurrentToBattery",
    "BatteryTemp",
    "ControllerTemp",
    "SolarPanelVoltage",
    "SolarPanelCurrent",
    "SolarPanelPower",
    "Daily.BatteryMinVoltage",
    "Daily.BatteryMaxVoltage",
    "Daily.MaxChargingCurrent",
    "Daily.MaxChargingPower",
    "Daily.ChargingAmpHours",
    "Daily.PowerGeneration",
    "Stats.DaysUp",
    "Stats.BatteryOverDischargeCount",
    "Stats.BatteryFullChargeCount",
    "Stats.TotalChargingBatteryAH",
    "Stats.CumulativePowerGenerationWH",
    "ChargingState",
    "Faults",
)


def _format_timestamp(now: datetime, utc: bool) -> str:
    if utc:
        return now.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    return now.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _f2(value: float) -> str:
    return f"{value:.2f}"


def csv_row(snapshot: Snapshot, *, utc: bool, now: datetime | None = None) -> list[str]:
    """Render *snapshot* as one CSV row matching :data:`CSV_HEADER`."""
    now = now if now is not None else datetime.now(tz=UTC)
    power = snapshot.power_status
    daily = snapshot.daily_stats
    stats = snapshot.historical_data
    status = snapshot.status
    return [
        _format_timestamp(now, utc),
        str(power.battery_soc),
        _f2(power.battery_voltage),
        _f2(power.charging_current_to_battery),
        str(power.battery_temp),
        str(power.controller_temp),
        _f2(power.solar_panel_voltage),
        _f2(power.solar_panel_current),
        str(power.solar_panel_power),
        _f2(daily.battery_min_voltage),
        _f2(daily.battery_max_voltage),
        _f2(daily.max_charging_current),
        str(daily.max_charging_power),
        _f2(daily.charging_amp_hours),
        _f2(daily.power_generation_wh),
        str(stats.days_up),
        str(stats.battery_over_discharge_count),
        str(stats.battery_full_charge_count),
        str(stats.total_charging_battery_ah),
        str(stats.cumulative_power_generation_wh),
        status.charging_state.name if status.charging_state is not None else "",
        ",".join(sorted(fault.name for fault in status.faults)),
    ]


class CSVSink:
    """Appends snapshots to a CSV file, writing the header on creation.

    Args:
        path: CSV file path. Accepts str or Path.
        utc: Write timestamps in UTC (RFC 3339) instead of local time.
    """

    transactional = False

    def __init__(self, path: str | Path, *, utc: bool = False) -> None:
        self.path = Path(path)
        self.utc = utc

    def init(self) -> None:
        """Create the file with a header row unless it already exists."""
        if not self.path.exists():
            with self.path.open("a", newline="") as fh:
                csv.writer(fh).writerow(CSV_HEADER)

    def append(self, snapshot: Snapshot) -> None:
        with self.path.open("a", newline="") as fh:
            csv.writer(fh).writerow(csv_row(snapshot, utc=self.utc))

    def delete_records_older_than(self, days: int) -> None:
        """No-op: CSV files are never pruned."""
        logger.debug("Not pruning CSV file %s", self.path)

    def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"CSVSink(path={self.path}, utc={self.utc})"


class StdoutCSVSink:
    """Writes CSV rows to a text stream, stdout by default."""

    transactional = False

    def __init__(self, *, utc: bool = False, stream: TextIO | None = None) -> None:
        self.utc = utc
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys replacement is honoured.
        return self._stream if self._stream is not None else sys.stdout

    def init(self) -> None:
        csv.writer(self.stream).writerow(CSV_HEADER)
        self.stream.flush()

    def append(self, snapshot: Snapshot) -> None:
        csv.writer(self.stream).writerow(csv_row(snapshot, utc=self.utc))
        self.stream.flush()

    def delete_records_older_than(self, days: int) -> None:
        pass

    def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"StdoutCSVSink(utc={self.utc})"


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------


class CompositeSink:
    """Forwards every call to each of *sinks*.

    ``append`` visits the transactional sinks first, then the append-only
    ones, each group in the given order.  A row that a database rejects
    therefore never reaches a CSV file.  Other calls keep the given order.
    """

    transactional = False

    def __init__(self, sinks: list[Sink] | None = None) -> None:
        self.sinks: list[Sink] = list(sinks) if sinks else []

    def init(self) -> None:
        for sink in self.sinks:
            sink.init()

    def append(self, snapshot: Snapshot) -> None:
        # sorted() is stable: False sorts before True
        for sink in sorted(self.sinks, key=lambda s: not getattr(s, "transactional", False)):
            sink.append(snapshot)

    def delete_records_older_than(self, days: int) -> None:
        for sink in self.sinks:
            sink.delete_records_older_than(days)

    def close(self) -> None:
        """Close every sink; a failing close does not stop the others."""
        for sink in self.sinks:
            try:
                sink.close()
            except Exception:
                logger.warning("Failed to close %r", sink, exc_info=True)

    def __repr__(self) -> str:
        return f"CompositeSink({self.sinks!r})"


def build_sink(settings: RoverSettings) -> CompositeSink:
    """Build the sinks selected by *settings*.

    Falls back to :class:`StdoutCSVSink` when no sink is configured.  Database
    sinks come before the CSV file.  If building one sink fails, the already
    built ones are closed.
    """
    result = CompositeSink()
    try:
        if settings.sqlite_path:
            result.sinks.append(DatabaseSink(sqlite_url(settings.sqlite_path)))
        if settings.postgres_url:
            result.sinks.append(DatabaseSink(settings.postgres_url))
        if settings.csv_path:
            result.sinks.append(CSVSink(settings.csv_path, utc=settings.utc))
        if not result.sinks:
            result.sinks.append(StdoutCSVSink(utc=settings.utc))
    except Exception:
        result.close()
        raise
    return result
