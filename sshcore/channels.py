"""A handle to a session channel, usable without holding the session itself."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple, Union

from .channel_io import (
    ChannelClosedError,
    ChannelRef,
    ChannelRx,
    ChannelStream,
    ChannelTx,
    Mailbox,
    WindowSize,
)
from .messages import (
    AgentForward,
    ChannelMsg,
    Close,
    Eof,
    Exec,
    RequestPty,
    RequestShell,
    RequestSubsystem,
    RequestX11,
    SetEnv,
    Signal,
    WindowChange,
)

__all__ = ["SendError", "Channel"]

_COPY_CHUNK = 8192

BytesLike = Union[bytes, bytearray, memoryview]


class SendError(Exception):
    """A message could not be handed to the session: it has gone away."""


class Channel:
    """One end of a session channel.

    Outgoing messages are queued on `sender` as `(id, message)` pairs for the
    session to transmit; incoming messages arrive on `receiver`.
    """

    def __init__(
        self,
        id: int,
        sender: Mailbox,
        receiver: Mailbox,
        max_packet_size: int,
        window_size: WindowSize,
    ) -> None:
        self.id = id
        self.sender = sender
        self.receiver = receiver
        self.max_packet_size = max_packet_size
        self.window_size = window_size

    @classmethod
    def create(
        cls, id: int, sender: Mailbox, max_packet_size: int, window_size: int
    ) -> Tuple["Channel", ChannelRef]:
        """Build a channel and the reference the session uses to feed it."""
        receiver: Mailbox = Mailbox()
        window = WindowSize(window_size)
        return cls(id, sender, receiver, max_packet_size, window), ChannelRef(receiver, window)

    def __repr__(self) -> str:
        return f"Channel(id={self.id!r})"

    def writable_packet_size(self) -> int:
        """The smaller of the maximum packet size and the remaining window."""
        return min(self.max_packet_size, self.window_size.value)

    async def _send_msg(self, msg: ChannelMsg) -> None:
        try:
            await self.sender.send((self.id, msg))
        except ChannelClosedError as exc:
            raise SendError("session is gone") from exc

    async def request_pty(
        self,
        want_reply: bool,
        term: str,
        col_width: int,
        row_height: int,
        pix_width: int,
        pix_height: int,
        terminal_modes: Iterable[Tuple[Any, int]] = (),
    ) -> None:
        """Request a pseudo-terminal with the given characteristics."""
        await self._send_msg(
            RequestPty(
                want_reply,
                term,
                col_width,
                row_height,
                pix_width,
                pix_height,
                tuple(terminal_modes),
            )
        )

    async def request_shell(self, want_reply: bool) -> None:
        """Request a remote shell."""
        await self._send_msg(RequestShell(want_reply))

    async def exec(self, want_reply: bool, command: Union[str, BytesLike]) -> None:
        """Execute a remote program, which the server passes to a shell."""
        await self._send_msg(Exec(want_reply, command))

    async def signal(self, signal: Any) -> None:
        """Signal the remote process."""
        await self._send_msg(Signal(signal))

    async def request_subsystem(self, want_reply: bool, name: str) -> None:
        """Request the start of the named subsystem."""
        await self._send_msg(RequestSubsystem(want_reply, str(name)))

    async def request_x11(
        self,
        want_reply: bool,
        single_connection: bool,
        x11_authentication_protocol: str,
        x11_authentication_cookie: str,
        x11_screen_number: int,
    ) -> None:
        """Request X11 forwarding through this channel."""
        await self._send_msg(
            RequestX11(
                want_reply,
                single_connection,
                str(x11_authentication_protocol),
                str(x11_authentication_cookie),
                x11_screen_number,
            )
        )

    async def set_env(self, want_reply: bool, variable_name: str, variable_value: str) -> None:
        """Set a remote environment variable."""
        await self._send_msg(SetEnv(want_reply, str(variable_name), str(variable_value)))

    async def window_change(
        self, col_width: int, row_height: int, pix_width: int, pix_height: int
    ) -> None:
        """Tell the server that the local terminal size changed."""
        await self._send_msg(WindowChange(col_width, row_height, pix_width, pix_height))

    async def agent_forward(self, want_reply: bool) -> None:
        """Tell the server that agent forwarding channels will be accepted."""
        await self._send_msg(AgentForward(want_reply))

    async def data(self, data: Any) -> None:
        """Send bytes, or everything an async reader yields, as channel data."""
        await self._send_data(None, data)

    async def extended_data(self, ext: int, data: Any) -> None:
        """Send bytes, or everything an async reader yields, as extended data."""
        await self._send_data(ext, data)

    async def _send_data(self, ext: Optional[int], data: Any) -> None:
        writer = self.make_writer_ext(ext)
        if isinstance(data, (bytes, bytearray, memoryview)):
            await writer.write_all(data)
            return
        if not hasattr(data, "read"):
            raise TypeError(f"expected bytes or an async reader, got {type(data).__name__}")
        while chunk := await data.read(_COPY_CHUNK):
            await writer.write_all(chunk)
        await writer.flush()

    async def eof(self) -> None:
        """Tell the peer that no more data will be sent."""
        await self._send_msg(Eof())

    async def close(self) -> None:
        """Request that the channel be closed."""
        await self._send_msg(Close())

    async def wait(self) -> Optional[ChannelMsg]:
        """Next incoming message, or None once the channel is closed."""
        return await self.receiver.recv()

    def into_stream(self) -> ChannelStream:
        """The channel as a byte stream of its data messages."""
        return ChannelStream(self.make_writer(), self.make_reader())

    def make_reader(self) -> ChannelRx:
        """A reader of the channel's data messages."""
        return self.make_reader_ext(None)

    def make_reader_ext(self, ext: Optional[int]) -> ChannelRx:
        """A reader of data messages, or of extended data of type `ext`."""
        return ChannelRx(self.receiver, ext)

    def make_writer(self) -> ChannelTx:
        """A writer that sends data messages."""
        return self.make_writer_ext(None)

    def make_writer_ext(self, ext: Optional[int]) -> ChannelTx:
        """A writer that sends data messages, or extended data of type `ext`."""
        return ChannelTx(self.sender, self.id, self.window_size, self.max_packet_size, ext)