"""Binary packet framing and the cipher interfaces, with the clear cipher."""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from typing import Any, Tuple

__all__ = [
    "PACKET_LENGTH_LEN",
    "MINIMUM_PACKET_LEN",
    "PADDING_LENGTH_LEN",
    "CipherError",
    "PacketAuthError",
    "DecryptionError",
    "PacketBuffer",
    "Cipher",
    "OpeningKey",
    "SealingKey",
    "ClearCipher",
    "ClearKey",
    "read_packet",
]

log = logging.getLogger(__name__)

PACKET_LENGTH_LEN = 4
MINIMUM_PACKET_LEN = 16
PADDING_LENGTH_LEN = 1

_SEQN_MASK = 0xFFFFFFFF


class CipherError(Exception):
    """A packet could not be processed by the cipher layer."""


class PacketAuthError(CipherError):
    """The MAC of a packet did not verify."""


class DecryptionError(CipherError):
    """An AEAD packet failed to decrypt."""


@dataclass
class PacketBuffer:
    """Packet bytes plus the framing state of one direction of a connection."""

    buffer: bytearray = field(default_factory=bytearray)
    length: int = 0
    seqn: int = 0
    payload_bytes: int = 0


class OpeningKey(abc.ABC):
    """Decrypts and authenticates incoming packets."""

    @abc.abstractmethod
    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        """Return the clear four length bytes of the packet."""

    @abc.abstractmethod
    def tag_len(self) -> int:
        """Length of the authentication tag that follows each packet."""

    @abc.abstractmethod
    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        """Authenticate and decrypt a packet; return the plaintext after the length."""


class SealingKey(abc.ABC):
    """Encrypts and authenticates outgoing packets."""

    @abc.abstractmethod
    def padding_length(self, payload: bytes) -> int:
        """Number of padding bytes to add after the payload."""

    @abc.abstractmethod
    def fill_padding(self, length: int) -> bytes:
        """Return `length` padding bytes."""

    @abc.abstractmethod
    def tag_len(self) -> int:
        """Length of the authentication tag appended to each packet."""

    @abc.abstractmethod
    def seal(self, seqn: int, plaintext: bytes) -> Tuple[bytes, bytes]:
        """Encrypt a whole packet; return the ciphertext and the tag."""

    def write(self, payload: bytes, buffer: PacketBuffer) -> None:
        """Frame, seal and append one packet to the buffer."""
        log.debug("writing, seqn = %d", buffer.seqn)
        padding_length = self.padding_length(payload)
        packet_length = PADDING_LENGTH_LEN + len(payload) + padding_length
        if packet_length > _SEQN_MASK:
            raise ValueError(f"packet too long: {packet_length}")
        if padding_length > 0xFF:
            raise ValueError(f"padding too long: {padding_length}")
        padding = self.fill_padding(padding_length)
        plaintext = b"".join(
            (
                packet_length.to_bytes(PACKET_LENGTH_LEN, "big"),
                bytes([padding_length]),
                bytes(payload),
                padding,
            )
        )
        ciphertext, tag = self.seal(buffer.seqn, plaintext)
        buffer.buffer += ciphertext
        buffer.buffer += tag
        buffer.payload_bytes += len(payload)
        buffer.seqn = (buffer.seqn + 1) & _SEQN_MASK


class Cipher(abc.ABC):
    """A cipher algorithm that produces opening and sealing keys."""

    def needs_mac(self) -> bool:
        return False

    @abc.abstractmethod
    def key_len(self) -> int:
        """Key length in bytes."""

    def nonce_len(self) -> int:
        return 0

    @abc.abstractmethod
    def make_opening_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: Any
    ) -> OpeningKey:
        """Build a key for decrypting incoming packets."""

    @abc.abstractmethod
    def make_sealing_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: Any
    ) -> SealingKey:
        """Build a key for encrypting outgoing packets."""


class ClearKey(OpeningKey, SealingKey):
    """Key of the clear cipher: packets are neither encrypted nor authenticated."""

    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        return bytes(encrypted_packet_length)

    def tag_len(self) -> int:
        return 0

    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        return bytes(ciphertext[PACKET_LENGTH_LEN:])

    def padding_length(self, payload: bytes) -> int:
        # Clear packets, length included, are a multiple of 8 bytes long.
        block_size = 8
        padding_len = block_size - ((5 + len(payload)) % block_size)
        return padding_len + block_size if padding_len < 4 else padding_len

    def fill_padding(self, length: int) -> bytes:
        return bytes(length)

    def seal(self, seqn: int, plaintext: bytes) -> Tuple[bytes, bytes]:
        return bytes(plaintext), b""


class ClearCipher(Cipher):
    """The `clear` / `none` cipher."""

    def key_len(self) -> int:
        return 0

    def make_opening_key(self, key, nonce, mac_key, mac) -> OpeningKey:
        return ClearKey()

    def make_sealing_key(self, key, nonce, mac_key, mac) -> SealingKey:
        return ClearKey()


async def read_packet(stream, buffer: PacketBuffer, cipher: OpeningKey) -> int:
    """Read one packet from an asyncio stream into `buffer`.

    Afterwards the buffer holds the four length bytes, the padding length byte
    and the payload. Returns the number of bytes held.
    """
    if buffer.length == 0:
        raw_len = await stream.readexactly(PACKET_LENGTH_LEN)
        log.debug("reading, seqn = %d", buffer.seqn)
        buffer.buffer = bytearray(raw_len)
        clear_len = cipher.decrypt_packet_length(buffer.seqn, raw_len)
        buffer.length = int.from_bytes(clear_len, "big") + cipher.tag_len()
        log.debug("reading, clear len = %d", buffer.length)

    rest = await stream.readexactly(buffer.length)
    del buffer.buffer[PACKET_LENGTH_LEN:]
    buffer.buffer += rest

    split = len(buffer.buffer) - cipher.tag_len()
    ciphertext = bytes(buffer.buffer[:split])
    tag = bytes(buffer.buffer[split:])
    plaintext = cipher.open(buffer.seqn, ciphertext, tag)

    padding_length = plaintext[0] if plaintext else 0
    plaintext_end = len(plaintext) - padding_length
    if plaintext_end < 0:
        raise CipherError("padding length exceeds packet length")

    buffer.seqn = (buffer.seqn + 1) & _SEQN_MASK
    buffer.length = 0
    buffer.buffer = bytearray(buffer.buffer[:PACKET_LENGTH_LEN]) + plaintext[:plaintext_end]
    return plaintext_end + PACKET_LENGTH_LEN