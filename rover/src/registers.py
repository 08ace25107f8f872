"""
Renogy Rover register map -- single source of truth.

Defines the register blocks read from the controller (function code 0x03,
holding registers) and the layout of every numeric field inside them.
Each block covers a contiguous address range so the client issues exactly
one ``read_register`` call per block.

Offsets are *byte* offsets into the block payload; multi-byte values are
big-endian (high byte first).  Scaled values are ``raw / divisor``, so
e.g. a battery voltage register holding 132 decodes to 13.2 V.

References:
    - Renogy ROVER Modbus protocol v1.7 (controller register list)

CHANGELOG:
- 2026-10-14: Daily power generation/consumption decoded as raw Wh, not kWh/10000
- 2026-10-12: Initial creation (STORY-103)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RegisterDef:
    """Definition of a single numeric field inside a register block.

    Attributes:
        offset: Byte offset of the field within the block payload.
        name: Model attribute the decoded value is stored in.
        reg_type: Data type -- one of ``"U8"``, ``"S8"``, ``"U16"``,
            ``"U32"``.
        unit: Engineering unit string (e.g. ``"V"``, ``"Wh"``, ``"%"``).
        divisor: The raw integer is divided by this to obtain the
            engineering value.  1 keeps the raw integer.
        description: Free-text description of the field.
        size: Number of bytes the field occupies, derived from *reg_type*.
    """

    offset: int
    name: str
    reg_type: str
    unit: str
    divisor: int = 1
    description: str = ""
    size: int = field(default=0, repr=False)

    def __post_init__(self) -> None:  # noqa: D105
        sz = _TYPE_SIZES.get(self.reg_type)
        if sz is None:
            msg = f"Register '{self.name}': unsupported type '{self.reg_type}'"
            raise ValueError(msg)
        # frozen=True requires object.__setattr__
        object.__setattr__(self, "size", sz)

    def decode(self, payload: bytes) -> int | float:
        """Extract and scale this field from a block payload."""
        chunk = payload[self.offset : self.offset + self.size]
        if len(chunk) != self.size:
            msg = (
                f"Register '{self.name}': payload of {len(payload)} bytes "
                f"too short for offset {self.offset}"
            )
            raise ValueError(msg)
        raw = int.from_bytes(chunk, "big", signed=self.reg_type == "S8")
        if self.divisor == 1:
            return raw
        return raw / self.divisor


_TYPE_SIZES: dict[str, int] = {
    "U8": 1,
    "S8": 1,
    "U16": 2,
    "U32": 4,
}


@dataclass(frozen=True, slots=True)
class RegisterBlock:
    """A contiguous range of registers read in one request.

    Attributes:
        block_name: Human-readable block identifier (e.g. ``"power_status"``).
        start_address: First register address of the block.
        byte_count: Payload size in bytes (always even: registers are words).
        registers: Numeric fields decoded generically; blocks holding
            strings or bit fields leave this empty and are decoded by the
            client itself.
    """

    block_name: str
    start_address: int
    byte_count: int
    registers: list[RegisterDef] = field(default_factory=list)

    @property
    def word_count(self) -> int:
        """Number of 16-bit registers in the block."""
        return self.byte_count // 2

    def decode(self, payload: bytes) -> dict[str, int | float]:
        """Decode every numeric field of the block into ``{name: value}``."""
        return {reg.name: reg.decode(payload) for reg in self.registers}


# ---------------------------------------------------------------------------
# System info blocks (0x000A-0x001B), read once per session
# ---------------------------------------------------------------------------

SYSTEM_SPEC_BLOCK = RegisterBlock(
    block_name="system_spec",
    start_address=0x000A,
    byte_count=4,
    registers=[
        RegisterDef(0, "max_voltage", "U8", "V", description="Max. supported system voltage"),
        RegisterDef(1, "rated_charging_current", "U8", "A"),
        RegisterDef(2, "rated_discharging_current", "U8", "A"),
        RegisterDef(3, "product_type", "U8", "", description="0 = controller, 1 = inverter"),
    ],
)

PRODUCT_MODEL_BLOCK = RegisterBlock(
    block_name="product_model",
    start_address=0x000C,
    byte_count=16,
)
"""16 ASCII characters, space padded."""

VERSION_BLOCK = RegisterBlock(
    block_name="versions",
    start_address=0x0014,
    byte_count=8,
)
"""Software version in bytes 1-3, hardware version in bytes 5-7."""

SERIAL_NUMBER_BLOCK = RegisterBlock(
    block_name="serial_number",
    start_address=0x0018,
    byte_count=4,
)
"""4 bytes rendered as hex."""

# ---------------------------------------------------------------------------
# Power status block (0x0100-0x0109)
# ---------------------------------------------------------------------------

POWER_STATUS_BLOCK = RegisterBlock(
    block_name="power_status",
    start_address=0x0100,
    byte_count=20,
    registers=[
        RegisterDef(0, "battery_soc", "U16", "%", description="Battery state of charge"),
        RegisterDef(2, "battery_voltage", "U16", "V", divisor=10),
        RegisterDef(4, "charging_current_to_battery", "U16", "A", divisor=100),
        # Temperature byte order differs from the register list examples;
        # matches observed controller traces.
        RegisterDef(6, "controller_temp", "S8", "C"),
        RegisterDef(7, "battery_temp", "S8", "C"),
        RegisterDef(8, "load_voltage", "U16", "V", divisor=10),
        RegisterDef(10, "load_current", "U16", "A", divisor=100),
        RegisterDef(12, "load_power", "U16", "W"),
        RegisterDef(14, "solar_panel_voltage", "U16", "V", divisor=10),
        RegisterDef(16, "solar_panel_current", "U16", "A", divisor=100),
        RegisterDef(18, "solar_panel_power", "U16", "W"),
    ],
)

# ---------------------------------------------------------------------------
# Daily statistics block (0x010B-0x0114)
# ---------------------------------------------------------------------------

DAILY_STATS_BLOCK = RegisterBlock(
    block_name="daily_stats",
    start_address=0x010B,
    byte_count=20,
    registers=[
        RegisterDef(0, "battery_min_voltage", "U16", "V", divisor=10),
        RegisterDef(2, "battery_max_voltage", "U16", "V", divisor=10),
        RegisterDef(4, "max_charging_current", "U16", "A", divisor=100),
        RegisterDef(6, "max_discharging_current", "U16", "A", divisor=100),
        RegisterDef(8, "max_charging_power", "U16", "W"),
        RegisterDef(10, "max_discharging_power", "U16", "W"),
        RegisterDef(12, "charging_amp_hours", "U16", "Ah"),
        RegisterDef(14, "discharging_amp_hours", "U16", "Ah"),
        RegisterDef(16, "power_generation_wh", "U16", "Wh"),
        RegisterDef(18, "power_consumption_wh", "U16", "Wh"),
    ],
)

# ---------------------------------------------------------------------------
# Historical data block (0x0115-0x011F)
# ---------------------------------------------------------------------------

HISTORICAL_DATA_BLOCK = RegisterBlock(
    block_name="historical_data",
    start_address=0x0115,
    byte_count=22,
    registers=[
        RegisterDef(0, "days_up", "U16", "d", description="Total operating days"),
        RegisterDef(2, "battery_over_discharge_count", "U16", ""),
        RegisterDef(4, "battery_full_charge_count", "U16", ""),
        RegisterDef(6, "total_charging_battery_ah", "U32", "Ah"),
        RegisterDef(10, "total_discharging_battery_ah", "U32", "Ah"),
        RegisterDef(14, "cumulative_power_generation_wh", "U32", "Wh"),
        RegisterDef(18, "cumulative_power_consumption_wh", "U32", "Wh"),
    ],
)

# ---------------------------------------------------------------------------
# Status block (0x0120-0x0122)
# ---------------------------------------------------------------------------

STATUS_BLOCK = RegisterBlock(
    block_name="status",
    start_address=0x0120,
    byte_count=6,
    registers=[
        RegisterDef(0, "street_light", "U8", "", description="bit 7 on/off, bits 0-6 brightness %"),
        RegisterDef(1, "charging_state", "U8", ""),
        RegisterDef(2, "fault_bits", "U32", "", description="bit n = fault n, bits 16-30"),
    ],
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

SYSTEM_INFO_BLOCKS: list[RegisterBlock] = [
    SYSTEM_SPEC_BLOCK,
    PRODUCT_MODEL_BLOCK,
    VERSION_BLOCK,
    SERIAL_NUMBER_BLOCK,
]
"""Blocks read once per session, in read order."""

POLLED_BLOCKS: list[RegisterBlock] = [
    POWER_STATUS_BLOCK,
    DAILY_STATS_BLOCK,
    HISTORICAL_DATA_BLOCK,
    STATUS_BLOCK,
]
"""Blocks read on every poll, in read order."""

ALL_BLOCKS: list[RegisterBlock] = SYSTEM_INFO_BLOCKS + POLLED_BLOCKS
"""All register blocks in recommended read order."""
