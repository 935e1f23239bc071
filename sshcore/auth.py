"""Authentication method sets and the state of an authentication exchange."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional, Union

__all__ = [
    "MethodSet",
    "NoneMethod",
    "PasswordMethod",
    "PublicKeyMethod",
    "FuturePublicKeyMethod",
    "KeyboardInteractiveMethod",
    "Method",
    "PublicKeyRequest",
    "KeyboardInteractiveRequest",
    "CurrentRequest",
    "AuthRequest",
]


class MethodSet(enum.Flag):
    """Set of SSH authentication methods."""

    NONE = 1
    PASSWORD = 2
    PUBLICKEY = 4
    HOSTBASED = 8
    KEYBOARD_INTERACTIVE = 16

    def name_bytes(self) -> bytes:
        """Wire name of a single method; empty for a combination or empty set."""
        return _NAMES.get(self, b"")

    @classmethod
    def from_bytes(cls, data: bytes) -> Optional["MethodSet"]:
        """Parse a method wire name, or return None if it is unknown."""
        return _BY_NAME.get(bytes(data))


_NAMES = {
    MethodSet.NONE: b"none",
    MethodSet.PASSWORD: b"password",
    MethodSet.PUBLICKEY: b"publickey",
    MethodSet.HOSTBASED: b"hostbased",
    MethodSet.KEYBOARD_INTERACTIVE: b"keyboard-interactive",
}
_BY_NAME = {name: method for method, name in _NAMES.items()}


@dataclass(frozen=True)
class NoneMethod:
    """The `none` method."""


@dataclass(frozen=True)
class PasswordMethod:
    """The `password` method."""

    password: str


@dataclass(frozen=True)
class PublicKeyMethod:
    """The `publickey` method with a locally held key pair."""

    key: Any


@dataclass(frozen=True)
class FuturePublicKeyMethod:
    """The `publickey` method where signing is delegated to another party."""

    key: Any


@dataclass(frozen=True)
class KeyboardInteractiveMethod:
    """The `keyboard-interactive` method."""

    submethods: str


Method = Union[
    NoneMethod,
    PasswordMethod,
    PublicKeyMethod,
    FuturePublicKeyMethod,
    KeyboardInteractiveMethod,
]


@dataclass
class PublicKeyRequest:
    """A public key authentication request in progress."""

    key: bytes
    algo: bytes
    sent_pk_ok: bool = False


@dataclass
class KeyboardInteractiveRequest:
    """A keyboard-interactive authentication request in progress."""

    submethods: str


CurrentRequest = Union[PublicKeyRequest, KeyboardInteractiveRequest]


@dataclass
class AuthRequest:
    """Server-side state of an authentication exchange."""

    methods: MethodSet
    partial_success: bool = False
    current: Optional[CurrentRequest] = None
    rejection_count: int = 0