"""
Long-lived serial session that survives controller silence.

Keeps one serial channel open for the whole life of the process and reacts
structurally to failures instead of retrying:

- :class:`~rover.src.errors.ResponseError` (bad CRC, wrong address, vendor
  exception): the controller answered, so the link is fine.  Leftover bytes
  of the broken frame are drained, the channel stays open.
- :class:`~rover.src.errors.ChannelError`, timeouts included: the framing
  may be out of sync, or the port is gone.  The channel is closed and the
  next call reopens it.

Every error is re-raised; the poll loop calls again on its own schedule.

CHANGELOG:
- 2026-10-13: Close and reopen the port on timeout instead of failing forever
- 2026-10-12: Initial creation (STORY-105)

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from rover.src.channel import close_quietly, drain_quietly
from rover.src.client import DEFAULT_DEVICE_ADDRESS, RenogyModbusClient
from rover.src.errors import ChannelError, ResponseError

if TYPE_CHECKING:
    from collections.abc import Callable

    from rover.src.channel import ByteChannel
    from rover.src.models import Snapshot, SystemInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResilientSession:
    """Owns the byte channel and delegates requests to a protocol client.

    Args:
        channel_factory: Opens and configures a new channel, e.g.
            ``functools.partial(SerialChannel.open, "/dev/ttyUSB0")``.
        device_address: Controller address passed to every client.
    """

    def __init__(
        self,
        channel_factory: Callable[[], ByteChannel],
        *,
        device_address: int = DEFAULT_DEVICE_ADDRESS,
    ) -> None:
        self._channel_factory = channel_factory
        self._device_address = device_address
        self._channel: ByteChannel | None = None

    @property
    def is_open(self) -> bool:
        """True while a channel is held."""
        return self._channel is not None

    def ensure_open(self) -> ByteChannel:
        """Return the current channel, opening and draining a new one if needed."""
        if self._channel is None:
            channel = self._channel_factory()
            # A previous aborted exchange may have left bytes on the line.
            drain_quietly(channel)
            self._channel = channel
        return self._channel

    def execute(self, op: Callable[[ByteChannel], T]) -> T:
        """Run *op* against the current channel.

        Raises:
            ResponseError: Re-raised after draining the channel.
            ChannelError: Re-raised after closing the channel.
        """
        channel = self.ensure_open()
        try:
            return op(channel)
        except ResponseError as exc:
            logger.warning("Caught %s, draining %r", exc, channel)
            drain_quietly(channel)
            raise
        except ChannelError as exc:
            logger.warning("Caught %s, closing %r", exc, channel)
            self.close()
            raise

    def get_system_info(self) -> SystemInfo:
        """Read the system info through a fresh client bound to the channel."""
        return self.execute(lambda ch: self._client(ch).get_system_info())

    def get_all_data(self, cached_system_info: SystemInfo | None = None) -> Snapshot:
        """Read a full snapshot through a fresh client bound to the channel."""
        return self.execute(lambda ch: self._client(ch).get_all_data(cached_system_info))

    def close(self) -> None:
        """Close the channel, if open.  The next call opens a new one."""
        channel, self._channel = self._channel, None
        if channel is not None:
            close_quietly(channel)

    def _client(self, channel: ByteChannel) -> RenogyModbusClient:
        return RenogyModbusClient(channel, device_address=self._device_address)

    def __repr__(self) -> str:
        return f"ResilientSession(channel={self._channel!r})"
