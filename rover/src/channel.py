"""
Serial byte channel to the controller.

Wraps a pyserial port configured for the Renogy RS232/RS485 link (9600 baud,
8 data bits, no parity, 1 stop bit) with a bounded-wait read: a read never
blocks longer than the configured timeout, so a silent controller surfaces
as :class:`~rover.src.errors.ReadTimeoutError` instead of hanging the poll
loop.

The channel is an opaque duplex byte pipe; framing lives in
:mod:`rover.src.client`.

CHANGELOG:
- 2026-10-13: Add quiet drain used after protocol errors and on open
- 2026-10-12: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import Protocol

import serial

from rover.src.errors import ChannelError, ReadTimeoutError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_BAUDRATE: int = 9600
"""Renogy controllers talk 9600 8N1."""

DEFAULT_READ_TIMEOUT_S: float = 1.0
"""Per-read deadline in seconds."""

_DRAIN_CHUNK: int = 128


class ByteChannel(Protocol):
    """Duplex byte pipe consumed by the protocol client."""

    def write(self, data: bytes) -> None: ...

    def read_exact(self, n: int) -> bytes: ...

    def drain(self) -> int: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Serial implementation
# ---------------------------------------------------------------------------


class SerialChannel:
    """A :class:`ByteChannel` over a pyserial port.

    Use :meth:`open` to create an opened and configured instance.

    Args:
        port: An already opened ``serial.Serial``.
    """

    def __init__(self, port: serial.Serial) -> None:
        self._port = port

    @classmethod
    def open(
        cls,
        device: str,
        *,
        baudrate: int = DEFAULT_BAUDRATE,
        read_timeout_s: float = DEFAULT_READ_TIMEOUT_S,
    ) -> SerialChannel:
        """Open and configure the serial device.

        Args:
            device: Serial device path, e.g. ``/dev/ttyUSB0``.
            baudrate: Line speed.
            read_timeout_s: Deadline for each :meth:`read_exact` call.

        Raises:
            ChannelError: If the device can not be opened or configured.
        """
        try:
            port = serial.Serial(
                port=device,
                baudrate=baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=read_timeout_s,
                write_timeout=read_timeout_s,
                xonxoff=False,
                rtscts=False,
            )
        except (serial.SerialException, OSError) as exc:
            raise ChannelError(f"Failed to open serial port {device}: {exc}") from exc
        logger.info("Opened serial port %s @ %d baud", device, baudrate)
        return cls(port)

    def write(self, data: bytes) -> None:
        """Write all of *data* and wait until it has been transmitted."""
        try:
            self._port.write(data)
            self._port.flush()
        except serial.SerialTimeoutException as exc:
            raise ReadTimeoutError(f"{self}: write timed out") from exc
        except (serial.SerialException, OSError) as exc:
            raise ChannelError(f"{self}: write failed: {exc}") from exc

    def read_exact(self, n: int) -> bytes:
        """Read exactly *n* bytes.

        Raises:
            ReadTimeoutError: If fewer than *n* bytes arrive before the
                deadline.
            ChannelError: On an OS-level I/O failure.
        """
        if n < 0:
            raise ValueError(f"{n}: must be 0 or higher")
        if n == 0:
            return b""
        try:
            data = self._port.read(n)
        except (serial.SerialException, OSError) as exc:
            raise ChannelError(f"{self}: read failed: {exc}") from exc
        if len(data) < n:
            raise ReadTimeoutError(
                f"{self}: expected {n} bytes but got {len(data)} before timeout"
            )
        return data

    def drain(self) -> int:
        """Discard incoming bytes until the line stays silent for one deadline.

        Returns:
            The number of bytes discarded.
        """
        drained = 0
        try:
            while True:
                chunk = self._port.read(_DRAIN_CHUNK)
                if not chunk:
                    return drained
                drained += len(chunk)
        except (serial.SerialException, OSError) as exc:
            raise ChannelError(f"{self}: drain failed: {exc}") from exc

    def close(self) -> None:
        """Close the underlying port."""
        self._port.close()

    def __repr__(self) -> str:
        return f"SerialChannel({self._port.port})"


def drain_quietly(channel: ByteChannel) -> None:
    """Drain *channel*, logging instead of raising on failure."""
    logger.debug("Draining %r", channel)
    try:
        drained = channel.drain()
    except Exception:
        logger.warning("Failed to drain %r", channel, exc_info=True)
        return
    if drained:
        logger.info("Discarded %d stray bytes from %r", drained, channel)


def close_quietly(channel: ByteChannel) -> None:
    """Close *channel*, logging instead of raising on failure."""
    try:
        channel.close()
    except Exception:
        logger.warning("Failed to close %r", channel, exc_info=True)
