"""
Exception hierarchy for the Renogy Rover client.

Two families matter to the callers:

- :class:`ResponseError` -- the controller answered, but the answer was
  unusable (bad CRC, wrong address, vendor exception code).  The serial
  link itself is fine and only needs draining.
- :class:`ChannelError` -- the link failed (OS I/O error or no bytes within
  the read deadline).  The serial port has to be closed and reopened.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-102)

TODO:
- None
"""

from __future__ import annotations

DEVICE_ERROR_MESSAGES: dict[int, str] = {
    0x01: "Function code not supported",
    0x02: "PDU start address is not correct or PDU start address + data length",
    0x03: "Data length in reading or writing register is too large",
    0x04: "Client fails to read or write register",
    0x05: "Data check code sent by server is not correct",
}
"""Vendor exception codes returned in a 0x83 exception response."""


class RoverError(Exception):
    """Base class for every error raised while talking to the controller."""


class ResponseError(RoverError):
    """The controller responded, but the response can not be used."""


class CodecError(ResponseError):
    """Malformed frame: CRC mismatch or wrong CRC size."""


class ProtocolError(ResponseError):
    """Well-formed frame with unexpected content.

    Raised for a wrong echoed device address, an unexpected function code,
    or a payload length that does not match the request.
    """


class DeviceError(ResponseError):
    """The controller rejected the request with a vendor exception code.

    Args:
        code: The exception code byte (0x01..0x05 are defined).
    """

    def __init__(self, code: int) -> None:
        self.code = code
        description = DEVICE_ERROR_MESSAGES.get(code, "Unknown")
        super().__init__(f"0x{code:02x}: {description}")


class ChannelError(RoverError):
    """Underlying serial port I/O failure (permission, device removed)."""


class ReadTimeoutError(ChannelError):
    """No (or not enough) bytes arrived within the read deadline."""
