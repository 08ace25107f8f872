"""
Renogy register protocol client.

Issues one request/response exchange per register block over a
:class:`~rover.src.channel.ByteChannel` and decodes the payloads into the
models of :mod:`rover.src.models`.

Wire format of one exchange:

- request:   ``[addr][0x03][startHi][startLo][wordsHi][wordsLo][crcLo][crcHi]``
- response:  ``[addr][0x03][byteLen][payload...][crcLo][crcHi]``
- exception: ``[addr][0x83][code][crcLo][crcHi]``

Nothing is retried here: every malformed or rejected response raises, and
the retry/reconnect policy belongs to :mod:`rover.src.session`.

CHANGELOG:
- 2026-10-13: get_all_data() accepts a cached SystemInfo and skips its reads
- 2026-10-12: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from rover.src.crc import (
    FUNCTION_READ_REGISTERS,
    FUNCTION_READ_REGISTERS_ERROR,
    MAX_START_ADDRESS,
    MAX_WORD_COUNT,
    build_read_request,
    check_crc,
)
from rover.src.errors import DeviceError, ProtocolError
from rover.src.models import (
    ChargingState,
    ControllerFault,
    DailyStats,
    HistoricalData,
    PowerStatus,
    ProductType,
    RenogyStatus,
    Snapshot,
    SystemInfo,
)
from rover.src.registers import (
    DAILY_STATS_BLOCK,
    HISTORICAL_DATA_BLOCK,
    POWER_STATUS_BLOCK,
    PRODUCT_MODEL_BLOCK,
    SERIAL_NUMBER_BLOCK,
    STATUS_BLOCK,
    SYSTEM_SPEC_BLOCK,
    VERSION_BLOCK,
)

if TYPE_CHECKING:
    from rover.src.channel import ByteChannel
    from rover.src.registers import RegisterBlock

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_ADDRESS: int = 0x01
MAX_DEVICE_ADDRESS: int = 0xF7
MAX_PAYLOAD_LENGTH: int = 0xFA


class RenogyClient(Protocol):
    """What every link in the client chain offers to the poll loop."""

    def get_system_info(self) -> SystemInfo: ...

    def get_all_data(self, cached_system_info: SystemInfo | None = None) -> Snapshot: ...


class RenogyModbusClient:
    """Talks to one controller over *channel*.  Never closes the channel.

    Args:
        channel: The byte channel to exchange frames over.
        device_address: Controller address, 0x01..0xF7.  0x00 is the
            broadcast address, to which devices respond without returning
            data, so it is rejected.

    Raises:
        ValueError: If *device_address* is out of range.
    """

    def __init__(self, channel: ByteChannel, device_address: int = DEFAULT_DEVICE_ADDRESS) -> None:
        if not 1 <= device_address <= MAX_DEVICE_ADDRESS:
            raise ValueError(
                f"{device_address}: device address must be 0x01..0xf7, "
                "0x00 is the broadcast address"
            )
        self._channel = channel
        self._device_address = device_address

    # ------------------------------------------------------------------
    # Raw exchange
    # ------------------------------------------------------------------

    def read_register(self, start_address: int, byte_count: int) -> bytes:
        """Read *byte_count* bytes of holding registers at *start_address*.

        Args:
            start_address: First register address, 0..0x1000.
            byte_count: Even number of bytes, 2..250.

        Returns:
            The response payload, exactly *byte_count* bytes.

        Raises:
            ValueError: If the arguments are out of range.
            ProtocolError: Wrong echoed address, unexpected function code or
                payload length.
            CodecError: CRC mismatch.
            DeviceError: The controller answered with an exception code.
            ChannelError: The channel failed or timed out.
        """
        if not 0 <= start_address <= MAX_START_ADDRESS:
            raise ValueError(f"{start_address}: must be 0..0x1000")
        if byte_count % 2 != 0:
            raise ValueError(f"{byte_count}: byte count must be even")
        word_count = byte_count // 2
        if not 1 <= word_count <= MAX_WORD_COUNT:
            raise ValueError(f"{word_count}: must be 0x0001..0x007D")

        self._channel.write(build_read_request(self._device_address, start_address, word_count))

        header = self._channel.read_exact(3)
        if header[0] != self._device_address:
            raise ProtocolError(
                f"{start_address:x}: Invalid response: expected device address "
                f"{self._device_address} but got {header[0]}"
            )
        if header[1] == FUNCTION_READ_REGISTERS_ERROR:
            check_crc(header, self._channel.read_exact(2))
            raise DeviceError(header[2])
        if header[1] != FUNCTION_READ_REGISTERS:
            raise ProtocolError(
                f"{start_address:x}: Unexpected response code: expected "
                f"{FUNCTION_READ_REGISTERS} but got {header[1]}"
            )

        data_length = header[2]
        if not 1 <= data_length <= MAX_PAYLOAD_LENGTH:
            raise ProtocolError(
                f"{start_address:x}: data length must be 0x01..0xFA but was {data_length}"
            )
        if data_length != byte_count:
            raise ProtocolError(
                f"{start_address:x}: the call was expected to return {byte_count} "
                f"bytes but got {data_length}"
            )
        payload = self._channel.read_exact(data_length)
        check_crc(header + payload, self._channel.read_exact(2))
        return payload

    def _read_block(self, block: RegisterBlock) -> bytes:
        return self.read_register(block.start_address, block.byte_count)

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def get_system_info(self) -> SystemInfo:
        """Read the static system information (four exchanges)."""
        logger.debug("Getting system info")
        spec = SYSTEM_SPEC_BLOCK.decode(self._read_block(SYSTEM_SPEC_BLOCK))
        model = self._read_block(PRODUCT_MODEL_BLOCK).decode("ascii", errors="replace").strip()
        versions = self._read_block(VERSION_BLOCK)
        serial_number = self._read_block(SERIAL_NUMBER_BLOCK).hex().upper()
        try:
            product_type = ProductType(spec["product_type"])
        except ValueError:
            product_type = None
        return SystemInfo(
            max_voltage=spec["max_voltage"],
            rated_charging_current=spec["rated_charging_current"],
            rated_discharging_current=spec["rated_discharging_current"],
            product_type=product_type,
            product_model=model,
            software_version=_format_version(versions[1:4]),
            hardware_version=_format_version(versions[5:8]),
            serial_number=serial_number,
        )

    def get_power_status(self) -> PowerStatus:
        """Read the instantaneous battery, load and panel readings."""
        logger.debug("Getting power status")
        return PowerStatus(**POWER_STATUS_BLOCK.decode(self._read_block(POWER_STATUS_BLOCK)))

    def get_daily_stats(self) -> DailyStats:
        """Read the daily statistics as reported by the device."""
        logger.debug("Getting daily stats")
        return DailyStats(**DAILY_STATS_BLOCK.decode(self._read_block(DAILY_STATS_BLOCK)))

    def get_historical_data(self) -> HistoricalData:
        """Read the lifetime counters."""
        logger.debug("Getting historical data")
        return HistoricalData(
            **HISTORICAL_DATA_BLOCK.decode(self._read_block(HISTORICAL_DATA_BLOCK))
        )

    def get_status(self) -> RenogyStatus:
        """Read the street light state, charging state and faults."""
        logger.debug("Getting status")
        raw = STATUS_BLOCK.decode(self._read_block(STATUS_BLOCK))
        street_light = raw["street_light"]
        try:
            charging_state = ChargingState(raw["charging_state"])
        except ValueError:
            charging_state = None
        return RenogyStatus(
            street_light_on=bool(street_light & 0x80),
            street_light_brightness=street_light & 0x7F,
            charging_state=charging_state,
            faults=ControllerFault.from_bitmask(raw["fault_bits"]),
        )

    def get_all_data(self, cached_system_info: SystemInfo | None = None) -> Snapshot:
        """Read everything into one :class:`Snapshot`.

        Args:
            cached_system_info: System info from an earlier call.  When
                given, the four system info reads are skipped; the value
                never changes during a session.
        """
        system_info = cached_system_info if cached_system_info is not None else self.get_system_info()
        return Snapshot(
            system_info=system_info,
            power_status=self.get_power_status(),
            daily_stats=self.get_daily_stats(),
            historical_data=self.get_historical_data(),
            status=self.get_status(),
        )

    def __repr__(self) -> str:
        return f"RenogyModbusClient(channel={self._channel!r}, device_address={self._device_address})"


def _format_version(digits: bytes) -> str:
    return "V" + ".".join(str(d) for d in digits)
