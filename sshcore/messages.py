"""Messages exchanged between a channel and the session that owns it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple, Union

__all__ = [
    "Open",
    "Data",
    "ExtendedData",
    "Eof",
    "Close",
    "RequestPty",
    "RequestShell",
    "Exec",
    "Signal",
    "RequestSubsystem",
    "RequestX11",
    "SetEnv",
    "WindowChange",
    "AgentForward",
    "XonXoff",
    "ExitStatus",
    "ExitSignal",
    "WindowAdjusted",
    "Success",
    "Failure",
    "OpenFailure",
    "ChannelMsg",
]


def _as_bytes(value: Union[bytes, bytearray, memoryview, str]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


@dataclass(frozen=True)
class Open:
    """The channel was opened by the peer."""

    id: int
    max_packet_size: int
    window_size: int


@dataclass(frozen=True)
class Data:
    """Ordinary channel data."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _as_bytes(self.data))


@dataclass(frozen=True)
class ExtendedData:
    """Extended channel data, such as stderr (ext 1)."""

    data: bytes
    ext: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _as_bytes(self.data))


@dataclass(frozen=True)
class Eof:
    """No more data will be sent on the channel."""


@dataclass(frozen=True)
class Close:
    """The channel is closed."""


@dataclass(frozen=True)
class RequestPty:
    """Request a pseudo-terminal (client only)."""

    want_reply: bool
    term: str
    col_width: int
    row_height: int
    pix_width: int
    pix_height: int
    terminal_modes: Tuple[Tuple[Any, int], ...] = ()

    def __post_init__(self) -> None:
        modes = tuple((mode, value) for mode, value in self.terminal_modes)
        object.__setattr__(self, "terminal_modes", modes)


@dataclass(frozen=True)
class RequestShell:
    """Request a remote shell (client only)."""

    want_reply: bool


@dataclass(frozen=True)
class Exec:
    """Execute a remote command (client only)."""

    want_reply: bool
    command: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "command", _as_bytes(self.command))


@dataclass(frozen=True)
class Signal:
    """Signal the remote process (client only)."""

    signal: Any


@dataclass(frozen=True)
class RequestSubsystem:
    """Start a named subsystem (client only)."""

    want_reply: bool
    name: str


@dataclass(frozen=True)
class RequestX11:
    """Request X11 forwarding (client only)."""

    want_reply: bool
    single_connection: bool
    x11_authentication_protocol: str
    x11_authentication_cookie: str
    x11_screen_number: int


@dataclass(frozen=True)
class SetEnv:
    """Set a remote environment variable (client only)."""

    want_reply: bool
    variable_name: str
    variable_value: str


@dataclass(frozen=True)
class WindowChange:
    """The local terminal size changed (client only)."""

    col_width: int
    row_height: int
    pix_width: int
    pix_height: int


@dataclass(frozen=True)
class AgentForward:
    """Accept agent forwarding channels (client only)."""

    want_reply: bool


@dataclass(frozen=True)
class XonXoff:
    """Whether the client may do flow control (server only)."""

    client_can_do: bool


@dataclass(frozen=True)
class ExitStatus:
    """The remote command exited with a status (server only)."""

    exit_status: int


@dataclass(frozen=True)
class ExitSignal:
    """The remote command was killed by a signal (server only)."""

    signal_name: Any
    core_dumped: bool
    error_message: str
    lang_tag: str


@dataclass(frozen=True)
class WindowAdjusted:
    """The peer enlarged our send window (server only)."""

    new_size: int


@dataclass(frozen=True)
class Success:
    """A request succeeded (server only)."""


@dataclass(frozen=True)
class Failure:
    """A request failed (server only)."""


@dataclass(frozen=True)
class OpenFailure:
    """The channel could not be opened."""

    reason: Any


ChannelMsg = Union[
    Open,
    Data,
    ExtendedData,
    Eof,
    Close,
    RequestPty,
    RequestShell,
    Exec,
    Signal,
    RequestSubsystem,
    RequestX11,
    SetEnv,
    WindowChange,
    AgentForward,
    XonXoff,
    ExitStatus,
    ExitSignal,
    WindowAdjusted,
    Success,
    Failure,
    OpenFailure,
]