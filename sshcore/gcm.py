"""AES-256-GCM packet cipher: the packet length travels in clear as associated data."""

from __future__ import annotations

import os
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .packet import (
    MINIMUM_PACKET_LEN,
    PACKET_LENGTH_LEN,
    PADDING_LENGTH_LEN,
    Cipher,
    DecryptionError,
    OpeningKey,
    SealingKey,
)

__all__ = [
    "GcmCipher",
    "GcmOpeningKey",
    "GcmSealingKey",
    "increment_nonce",
]

_KEY_LEN = 32
_NONCE_LEN = 12
_TAG_LEN = 16
_BLOCK = 16


def increment_nonce(nonce: bytes) -> bytes:
    """Return the nonce plus one, as a big-endian counter that wraps around."""
    width = len(nonce)
    value = (int.from_bytes(nonce, "big") + 1) % (1 << (8 * width))
    return value.to_bytes(width, "big")


class GcmOpeningKey(OpeningKey):
    """Opening key of the AES-256-GCM cipher."""

    def __init__(self, key: bytes, nonce: bytes) -> None:
        self._aead = AESGCM(bytes(key))
        self._nonce = bytes(nonce)

    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        return bytes(encrypted_packet_length)

    def tag_len(self) -> int:
        return _TAG_LEN

    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        header = bytes(ciphertext[:PACKET_LENGTH_LEN])
        body = bytes(ciphertext[PACKET_LENGTH_LEN:])
        try:
            plaintext = self._aead.decrypt(self._nonce, body + bytes(tag), header)
        except InvalidTag as exc:
            raise DecryptionError("AES-GCM authentication failed") from exc
        self._nonce = increment_nonce(self._nonce)
        return plaintext


class GcmSealingKey(SealingKey):
    """Sealing key of the AES-256-GCM cipher."""

    def __init__(self, key: bytes, nonce: bytes) -> None:
        self._aead = AESGCM(bytes(key))
        self._nonce = bytes(nonce)

    def padding_length(self, payload: bytes) -> int:
        extra_len = PACKET_LENGTH_LEN + PADDING_LENGTH_LEN
        if len(payload) + extra_len <= MINIMUM_PACKET_LEN:
            padding_len = MINIMUM_PACKET_LEN - len(payload) - PADDING_LENGTH_LEN
        else:
            padding_len = _BLOCK - ((PADDING_LENGTH_LEN + len(payload)) % _BLOCK)
        return padding_len + _BLOCK if padding_len < PACKET_LENGTH_LEN else padding_len

    def fill_padding(self, length: int) -> bytes:
        return os.urandom(length)

    def tag_len(self) -> int:
        return _TAG_LEN

    def seal(self, seqn: int, plaintext: bytes) -> Tuple[bytes, bytes]:
        header = bytes(plaintext[:PACKET_LENGTH_LEN])
        sealed = self._aead.encrypt(self._nonce, bytes(plaintext[PACKET_LENGTH_LEN:]), header)
        self._nonce = increment_nonce(self._nonce)
        return header + sealed[:-_TAG_LEN], sealed[-_TAG_LEN:]


def _check(key: bytes, nonce: bytes) -> None:
    if len(key) != _KEY_LEN:
        raise ValueError(f"key must be {_KEY_LEN} bytes, got {len(key)}")
    if len(nonce) != _NONCE_LEN:
        raise ValueError(f"nonce must be {_NONCE_LEN} bytes, got {len(nonce)}")


class GcmCipher(Cipher):
    """AES-256 in Galois/counter mode."""

    def key_len(self) -> int:
        return _KEY_LEN

    def nonce_len(self) -> int:
        return _NONCE_LEN

    def make_opening_key(self, key, nonce, mac_key, mac) -> GcmOpeningKey:
        _check(key, nonce)
        return GcmOpeningKey(key, nonce)

    def make_sealing_key(self, key, nonce, mac_key, mac) -> GcmSealingKey:
        _check(key, nonce)
        return GcmSealingKey(key, nonce)