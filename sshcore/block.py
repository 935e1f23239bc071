"""AES-CTR block ciphers authenticated by an HMAC, in plain or encrypt-then-MAC mode."""

from __future__ import annotations

import hashlib
import hmac
import os
from dataclasses import dataclass
from typing import Tuple

from cryptography.hazmat.primitives.ciphers import Cipher as _AesCipher
from cryptography.hazmat.primitives.ciphers import algorithms, modes

from .packet import (
    MINIMUM_PACKET_LEN,
    PACKET_LENGTH_LEN,
    PADDING_LENGTH_LEN,
    Cipher,
    OpeningKey,
    PacketAuthError,
    SealingKey,
)

__all__ = [
    "Mac",
    "MacAlgorithm",
    "BlockCipher",
    "BlockOpeningKey",
    "BlockSealingKey",
]

_BLOCK = 16


class Mac:
    """HMAC over the sequence number followed by the packet."""

    def __init__(self, key: bytes, digest: str = "sha256", etm: bool = False) -> None:
        self._key = bytes(key)
        self._digest = digest
        self._etm = etm
        self._len = hashlib.new(digest).digest_size

    def mac_len(self) -> int:
        return self._len

    def is_etm(self) -> bool:
        return self._etm

    def compute(self, seqn: int, data: bytes) -> bytes:
        message = seqn.to_bytes(4, "big") + bytes(data)
        return hmac.new(self._key, message, self._digest).digest()

    def verify(self, seqn: int, data: bytes, tag: bytes) -> bool:
        return hmac.compare_digest(self.compute(seqn, data), bytes(tag))


@dataclass(frozen=True)
class MacAlgorithm:
    """An HMAC algorithm description that builds keyed MACs."""

    digest: str = "sha256"
    key_len: int = 32
    etm: bool = False

    def make_mac(self, key: bytes) -> Mac:
        if len(key) != self.key_len:
            raise ValueError(f"MAC key must be {self.key_len} bytes, got {len(key)}")
        return Mac(key, self.digest, self.etm)


class _CtrStream:
    """AES-CTR keystream with a 128-bit big-endian counter and a position."""

    def __init__(self, key: bytes, iv: bytes) -> None:
        self._key = bytes(key)
        self._iv = int.from_bytes(iv, "big")
        self._offset = 0
        self._ctx = _AesCipher(algorithms.AES(self._key), modes.CTR(bytes(iv))).encryptor()

    def apply(self, data: bytes) -> bytes:
        self._offset += len(data)
        return self._ctx.update(bytes(data))

    def peek(self, data: bytes) -> bytes:
        """Apply the keystream at the current position without advancing it."""
        block, skip = divmod(self._offset, _BLOCK)
        counter = ((self._iv + block) % (1 << 128)).to_bytes(_BLOCK, "big")
        ctx = _AesCipher(algorithms.AES(self._key), modes.CTR(counter)).encryptor()
        ctx.update(bytes(skip))
        return ctx.update(bytes(data))


class BlockOpeningKey(OpeningKey):
    """Opening key of an AES-CTR cipher."""

    def __init__(self, stream: _CtrStream, mac: Mac) -> None:
        self._stream = stream
        self._mac = mac

    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        if self._mac.is_etm():
            return bytes(encrypted_packet_length)
        return self._stream.peek(encrypted_packet_length)

    def tag_len(self) -> int:
        return self._mac.mac_len()

    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        if self._mac.is_etm():
            if not self._mac.verify(seqn, ciphertext, tag):
                raise PacketAuthError("packet MAC mismatch")
            return self._stream.apply(ciphertext[PACKET_LENGTH_LEN:])
        plaintext = self._stream.apply(ciphertext)
        if not self._mac.verify(seqn, plaintext, tag):
            raise PacketAuthError("packet MAC mismatch")
        return plaintext[PACKET_LENGTH_LEN:]


class BlockSealingKey(SealingKey):
    """Sealing key of an AES-CTR cipher."""

    def __init__(self, stream: _CtrStream, mac: Mac) -> None:
        self._stream = stream
        self._mac = mac

    def padding_length(self, payload: bytes) -> int:
        pll = 0 if self._mac.is_etm() else PACKET_LENGTH_LEN
        extra_len = PACKET_LENGTH_LEN + PADDING_LENGTH_LEN + self._mac.mac_len()
        if len(payload) + extra_len <= MINIMUM_PACKET_LEN:
            padding_len = MINIMUM_PACKET_LEN - len(payload) - PADDING_LENGTH_LEN - pll
        else:
            padding_len = _BLOCK - ((pll + PADDING_LENGTH_LEN + len(payload)) % _BLOCK)
        return padding_len + _BLOCK if padding_len < PACKET_LENGTH_LEN else padding_len

    def fill_padding(self, length: int) -> bytes:
        return os.urandom(length)

    def tag_len(self) -> int:
        return self._mac.mac_len()

    def seal(self, seqn: int, plaintext: bytes) -> Tuple[bytes, bytes]:
        if self._mac.is_etm():
            ciphertext = bytes(plaintext[:PACKET_LENGTH_LEN]) + self._stream.apply(
                plaintext[PACKET_LENGTH_LEN:]
            )
            return ciphertext, self._mac.compute(seqn, ciphertext)
        tag = self._mac.compute(seqn, plaintext)
        return self._stream.apply(plaintext), tag


@dataclass(frozen=True)
class BlockCipher(Cipher):
    """AES in counter mode with a key of `key_size` bytes."""

    key_size: int = 32

    def key_len(self) -> int:
        return self.key_size

    def nonce_len(self) -> int:
        return _BLOCK

    def needs_mac(self) -> bool:
        return True

    def _stream(self, key: bytes, nonce: bytes) -> _CtrStream:
        if len(key) != self.key_size:
            raise ValueError(f"key must be {self.key_size} bytes, got {len(key)}")
        if len(nonce) != _BLOCK:
            raise ValueError(f"nonce must be {_BLOCK} bytes, got {len(nonce)}")
        return _CtrStream(key, nonce)

    def make_opening_key(self, key, nonce, mac_key, mac) -> BlockOpeningKey:
        return BlockOpeningKey(self._stream(key, nonce), mac.make_mac(mac_key))

    def make_sealing_key(self, key, nonce, mac_key, mac) -> BlockSealingKey:
        return BlockSealingKey(self._stream(key, nonce), mac.make_mac(mac_key))