"""Queues and byte-stream adapters that connect a channel to its session."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Deque, Generic, Optional, Tuple, TypeVar

from .messages import Data, Eof, ExtendedData

__all__ = [
    "ChannelClosedError",
    "Mailbox",
    "WindowSize",
    "ChannelRef",
    "ChannelRx",
    "ChannelTx",
    "ChannelStream",
]

T = TypeVar("T")

_U32_MAX = 0xFFFFFFFF


class ChannelClosedError(BrokenPipeError):
    """The other end of a channel queue has gone away."""


def _wake(waiters: Deque[asyncio.Future]) -> None:
    while waiters:
        fut = waiters.popleft()
        if not fut.done():
            fut.set_result(None)


class Mailbox(Generic[T]):
    """An asynchronous FIFO that can be closed.

    With `maxsize` 0 the mailbox is unbounded. After `close`, sending fails,
    while items already queued can still be received; `recv` then returns None.
    """

    def __init__(self, maxsize: int = 0) -> None:
        if maxsize < 0:
            raise ValueError("maxsize must not be negative")
        self._items: Deque[T] = deque()
        self._maxsize = maxsize
        self._closed = False
        self._getters: Deque[asyncio.Future] = deque()
        self._putters: Deque[asyncio.Future] = deque()

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)

    def _full(self) -> bool:
        return self._maxsize > 0 and len(self._items) >= self._maxsize

    def _push(self, item: T) -> None:
        self._items.append(item)
        _wake(self._getters)

    async def send(self, item: T) -> None:
        """Queue an item, waiting for room if the mailbox is bounded."""
        loop = asyncio.get_running_loop()
        while not self._closed and self._full():
            fut = loop.create_future()
            self._putters.append(fut)
            await fut
        if self._closed:
            raise ChannelClosedError("channel closed")
        self._push(item)

    def send_nowait(self, item: T) -> None:
        """Queue an item at once; raise asyncio.QueueFull if there is no room."""
        if self._closed:
            raise ChannelClosedError("channel closed")
        if self._full():
            raise asyncio.QueueFull
        self._push(item)

    async def recv(self) -> Optional[T]:
        """Next item, or None once the mailbox is closed and drained."""
        loop = asyncio.get_running_loop()
        while not self._items:
            if self._closed:
                return None
            fut = loop.create_future()
            self._getters.append(fut)
            await fut
        item = self._items.popleft()
        _wake(self._putters)
        return item

    def close(self) -> None:
        """Refuse further items and wake everyone waiting."""
        self._closed = True
        _wake(self._getters)
        _wake(self._putters)


class WindowSize:
    """The remaining send window of a channel, shared by its writers."""

    def __init__(self, value: int = 0) -> None:
        self._available = asyncio.Event()
        self._value = 0
        self.value = value

    @property
    def value(self) -> int:
        return self._value

    @value.setter
    def value(self, new: int) -> None:
        if not 0 <= new <= _U32_MAX:
            raise ValueError(f"window size out of range: {new}")
        self._value = new
        if new:
            self._available.set()
        else:
            self._available.clear()

    async def reserve(self, limit: int) -> int:
        """Wait for a non-empty window and take up to `limit` bytes of it."""
        if limit <= 0:
            raise ValueError("limit must be positive")
        while self._value == 0:
            await self._available.wait()
        taken = min(limit, self._value)
        self.value = self._value - taken
        return taken


class ChannelRef:
    """The session's handle on a channel: delivers messages and updates its window."""

    def __init__(self, sender: Mailbox, window_size: Optional[WindowSize] = None) -> None:
        self.sender = sender
        self.window_size = window_size if window_size is not None else WindowSize()

    def send(self, msg: Any) -> None:
        """Deliver a message to the channel without waiting."""
        self.sender.send_nowait(msg)


class ChannelRx:
    """Reads the data messages of a channel as a byte stream.

    With `ext` None, `Data` messages are read; otherwise `ExtendedData`
    messages of that type. Other messages are discarded, and `Eof` ends
    the stream and closes the receiver.
    """

    def __init__(self, receiver: Mailbox, ext: Optional[int] = None) -> None:
        self._receiver = receiver
        self._ext = ext
        self._pending: Optional[Tuple[bytes, int]] = None

    def _payload(self, msg: Any) -> Optional[bytes]:
        if self._ext is None:
            return msg.data if isinstance(msg, Data) else None
        if isinstance(msg, ExtendedData) and msg.ext == self._ext:
            return msg.data
        return None

    async def read(self, n: int = -1) -> bytes:
        """Read up to `n` bytes (all of the next message if `n` < 0); b"" at end."""
        if n == 0:
            return b""
        while True:
            if self._pending is not None:
                payload, idx = self._pending
                self._pending = None
            else:
                msg = await self._receiver.recv()
                if msg is None:
                    return b""
                if isinstance(msg, Eof):
                    self._receiver.close()
                    return b""
                payload = self._payload(msg)
                if payload is None:
                    continue
                idx = 0
            end = len(payload) if n < 0 else min(len(payload), idx + n)
            if end != len(payload):
                self._pending = (payload, end)
            return payload[idx:end]

    async def read_to_end(self) -> bytes:
        """Read until the end of the stream."""
        parts = []
        while chunk := await self.read():
            parts.append(chunk)
        return b"".join(parts)


class ChannelTx:
    """Writes bytes to a channel as data messages, honouring the send window.

    Each message is queued on `sender` as a `(channel_id, message)` pair.
    """

    def __init__(
        self,
        sender: Mailbox,
        channel_id: int,
        window_size: WindowSize,
        max_packet_size: int,
        ext: Optional[int] = None,
    ) -> None:
        if max_packet_size <= 0:
            raise ValueError("max_packet_size must be positive")
        self._sender = sender
        self._id = channel_id
        self._window = window_size
        self._max_packet_size = max_packet_size
        self._ext = ext

    async def write(self, data: bytes) -> int:
        """Send one message of as many bytes as window and packet size allow."""
        if not data:
            return 0
        writable = await self._window.reserve(min(self._max_packet_size, len(data)))
        chunk = bytes(data[:writable])
        msg = Data(chunk) if self._ext is None else ExtendedData(chunk, self._ext)
        await self._sender.send((self._id, msg))
        return writable

    async def write_all(self, data: bytes) -> None:
        """Send all of `data`."""
        view = memoryview(bytes(data))
        while view:
            written = await self.write(view)
            view = view[written:]

    async def flush(self) -> None:
        """Messages are queued as they are written; nothing to flush."""

    async def shutdown(self) -> None:
        """Send end-of-file on the channel."""
        await self._sender.send((self._id, Eof()))


class ChannelStream:
    """A channel as a readable and writable byte stream."""

    def __init__(self, tx: ChannelTx, rx: ChannelRx) -> None:
        self._tx = tx
        self._rx = rx

    async def read(self, n: int = -1) -> bytes:
        return await self._rx.read(n)

    async def read_to_end(self) -> bytes:
        return await self._rx.read_to_end()

    async def write(self, data: bytes) -> int:
        return await self._tx.write(data)

    async def write_all(self, data: bytes) -> None:
        await self._tx.write_all(data)

    async def flush(self) -> None:
        await self._tx.flush()

    async def shutdown(self) -> None:
        await self._tx.shutdown()