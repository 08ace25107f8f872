"""
Unit tests for the Renogy Modbus protocol client.

Tests verify:
- Request frames written for each read.
- Response validation: device address, function code, payload length, CRC.
- Vendor exception responses raise DeviceError with the decoded message.
- Typed accessors decode system info, daily stats and status.
- Cached system info skips the four system info exchanges.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

import pytest
from rover.src.client import RenogyModbusClient
from rover.src.crc import compute_crc16, crc_bytes
from rover.src.errors import CodecError, DeviceError, ProtocolError, ReadTimeoutError
from rover.src.models import ChargingState, ControllerFault, ProductType

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _response(payload: bytes, *, address: int = 0x01) -> bytes:
    """Build a valid read response frame carrying *payload*."""
    frame = bytes([address, 0x03, len(payload)]) + payload
    return frame + crc_bytes(compute_crc16(frame))


def _make_client(channel, **kwargs) -> RenogyModbusClient:
    return RenogyModbusClient(channel, **kwargs)


_DAILY_STATS_RESPONSE = bytes.fromhex("0103140070008400d80000000a00000608081000700084ebde")


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    """Device address validation."""

    @pytest.mark.parametrize("address", [0, 0xF8, 0x100])
    def test_invalid_device_address(self, fake_channel, address: int) -> None:
        with pytest.raises(ValueError):
            _make_client(fake_channel, device_address=address)

    @pytest.mark.parametrize("address", [1, 0xF7])
    def test_valid_device_address(self, fake_channel, address: int) -> None:
        _make_client(fake_channel, device_address=address)


# ---------------------------------------------------------------------------
# read_register
# ---------------------------------------------------------------------------


class TestReadRegister:
    """Raw exchange and response validation."""

    def test_simple_read(self, fake_channel) -> None:
        fake_channel.to_return += bytes.fromhex("010302181e324c")
        client = _make_client(fake_channel)

        assert client.read_register(0x0A, 2) == bytes.fromhex("181e")
        assert bytes(fake_channel.written) == bytes.fromhex("0103000a0001a408")

    def test_product_model_read(self, fake_channel) -> None:
        fake_channel.to_return += bytes.fromhex(
            "010310202020204d5434383330202020202020ee98"
        )
        client = _make_client(fake_channel)

        assert client.read_register(0x0C, 16) == b"    MT4830      "
        assert bytes(fake_channel.written) == bytes.fromhex("0103000c0008840f")

    def test_device_exception(self, fake_channel) -> None:
        fake_channel.to_return += bytes.fromhex("018302c0f1")
        client = _make_client(fake_channel)

        with pytest.raises(DeviceError) as exc_info:
            client.read_register(0x0A, 2)
        assert exc_info.value.code == 0x02
        assert str(exc_info.value) == (
            "0x02: PDU start address is not correct or PDU start address + data length"
        )

    def test_device_exception_with_bad_crc(self, fake_channel) -> None:
        fake_channel.to_return += bytes.fromhex("0183020000")
        client = _make_client(fake_channel)

        with pytest.raises(CodecError):
            client.read_register(0x0A, 2)

    def test_wrong_device_address(self, fake_channel) -> None:
        fake_channel.to_return += _response(bytes.fromhex("181e"), address=0x02)
        client = _make_client(fake_channel)

        with pytest.raises(ProtocolError, match="expected device address 1 but got 2"):
            client.read_register(0x0A, 2)

    def test_unexpected_function_code(self, fake_channel) -> None:
        fake_channel.to_return += bytes.fromhex("010402181e0000")
        client = _make_client(fake_channel)

        with pytest.raises(ProtocolError, match="Unexpected response code"):
            client.read_register(0x0A, 2)

    def test_payload_length_mismatch(self, fake_channel) -> None:
        fake_channel.to_return += _response(bytes.fromhex("181e0000"))
        client = _make_client(fake_channel)

        with pytest.raises(ProtocolError, match="expected to return 2 bytes but got 4"):
            client.read_register(0x0A, 2)

    def test_zero_payload_length(self, fake_channel) -> None:
        fake_channel.to_return += bytes.fromhex("010300")
        client = _make_client(fake_channel)

        with pytest.raises(ProtocolError, match="data length"):
            client.read_register(0x0A, 2)

    def test_crc_mismatch(self, fake_channel) -> None:
        fake_channel.to_return += bytes.fromhex("010302181e0000")
        client = _make_client(fake_channel)

        with pytest.raises(CodecError):
            client.read_register(0x0A, 2)

    def test_silent_controller_times_out(self, fake_channel) -> None:
        client = _make_client(fake_channel)

        with pytest.raises(ReadTimeoutError):
            client.read_register(0x0A, 2)
        assert len(fake_channel.writes) == 1

    def test_truncated_payload_times_out(self, fake_channel) -> None:
        fake_channel.to_return += bytes.fromhex("01030218")
        client = _make_client(fake_channel)

        with pytest.raises(ReadTimeoutError):
            client.read_register(0x0A, 2)

    @pytest.mark.parametrize(
        ("start_address", "byte_count"),
        [(-1, 2), (0x1001, 2), (0x0A, 3), (0x0A, 0), (0x0A, 0xFC)],
    )
    def test_invalid_arguments_write_nothing(
        self, fake_channel, start_address: int, byte_count: int
    ) -> None:
        client = _make_client(fake_channel)

        with pytest.raises(ValueError):
            client.read_register(start_address, byte_count)
        assert fake_channel.writes == []


# ---------------------------------------------------------------------------
# Typed accessors
# ---------------------------------------------------------------------------


def _queue_system_info(channel, *, product_type: int = 0) -> None:
    channel.to_return += _response(bytes([24, 40, 20, product_type]))
    channel.to_return += _response(b"  RNG-CTRL-RVR40")
    channel.to_return += _response(bytes.fromhex("0001000400010002"))
    channel.to_return += _response(bytes.fromhex("1501ffab"))


def _queue_polled_blocks(channel, *, status: bytes = bytes.fromhex("000200000000")) -> None:
    power = bytearray(20)
    power[0:2] = (87).to_bytes(2, "big")
    power[2:4] = (132).to_bytes(2, "big")
    power[6] = 0x19
    power[7] = 0xF6
    channel.to_return += _response(bytes(power))
    channel.to_return += _DAILY_STATS_RESPONSE
    channel.to_return += _response(bytes(22))
    channel.to_return += _response(status)


class TestTypedAccessors:
    """Decoding of the register blocks into models."""

    def test_get_system_info(self, fake_channel) -> None:
        _queue_system_info(fake_channel)
        info = _make_client(fake_channel).get_system_info()

        assert info.max_voltage == 24
        assert info.rated_charging_current == 40
        assert info.rated_discharging_current == 20
        assert info.product_type is ProductType.CONTROLLER
        assert info.product_model == "RNG-CTRL-RVR40"
        assert info.software_version == "V1.0.4"
        assert info.hardware_version == "V1.0.2"
        assert info.serial_number == "1501FFAB"
        assert len(fake_channel.writes) == 4

    def test_unknown_product_type_is_none(self, fake_channel) -> None:
        _queue_system_info(fake_channel, product_type=7)
        assert _make_client(fake_channel).get_system_info().product_type is None

    def test_get_daily_stats(self, fake_channel) -> None:
        fake_channel.to_return += _DAILY_STATS_RESPONSE
        stats = _make_client(fake_channel).get_daily_stats()

        assert bytes(fake_channel.written) == bytes.fromhex("0103010b000ab5f3")
        assert stats.battery_min_voltage == 11.2
        assert stats.battery_max_voltage == 13.2
        assert stats.max_charging_current == 2.16
        assert stats.max_discharging_current == 0
        assert stats.max_charging_power == 10
        assert stats.max_discharging_power == 0
        assert stats.charging_amp_hours == 1544
        assert stats.discharging_amp_hours == 2064
        assert stats.power_generation_wh == 112
        assert stats.power_consumption_wh == 132

    def test_get_status(self, fake_channel) -> None:
        fake_channel.to_return += _response(bytes.fromhex("b20501010000"))
        status = _make_client(fake_channel).get_status()

        assert status.street_light_on is True
        assert status.street_light_brightness == 0x32
        assert status.charging_state is ChargingState.FLOATING
        assert status.faults == {
            ControllerFault.PHOTOVOLTAIC_INPUT_SIDE_SHORT_CIRCUIT,
            ControllerFault.BATTERY_OVER_DISCHARGE,
        }

    def test_unknown_charging_state_is_none(self, fake_channel) -> None:
        fake_channel.to_return += _response(bytes.fromhex("00ff00000000"))
        status = _make_client(fake_channel).get_status()

        assert status.street_light_on is False
        assert status.charging_state is None
        assert status.faults == frozenset()

    def test_get_all_data_reads_everything(self, fake_channel) -> None:
        _queue_system_info(fake_channel)
        _queue_polled_blocks(fake_channel)
        snapshot = _make_client(fake_channel).get_all_data()

        assert len(fake_channel.writes) == 8
        assert snapshot.system_info.serial_number == "1501FFAB"
        assert snapshot.power_status.battery_soc == 87
        assert snapshot.power_status.battery_voltage == 13.2
        assert snapshot.power_status.controller_temp == 25
        assert snapshot.power_status.battery_temp == -10
        assert snapshot.daily_stats.power_generation_wh == 112
        assert snapshot.status.charging_state is ChargingState.MPPT
        assert fake_channel.to_return == bytearray()

    def test_get_all_data_with_cached_system_info(self, fake_channel, make_snapshot) -> None:
        cached = make_snapshot().system_info
        _queue_polled_blocks(fake_channel)
        snapshot = _make_client(fake_channel).get_all_data(cached)

        assert len(fake_channel.writes) == 4
        assert snapshot.system_info is cached
