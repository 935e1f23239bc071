"""The chacha20-poly1305 packet cipher with a separate key for the length field."""

from __future__ import annotations

import hmac
from typing import Tuple

from cryptography.hazmat.primitives.ciphers import Cipher as _StreamCipher
from cryptography.hazmat.primitives.ciphers import algorithms
from cryptography.hazmat.primitives.poly1305 import Poly1305

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
    "ChaCha20Poly1305Cipher",
    "ChaChaOpeningKey",
    "ChaChaSealingKey",
    "make_counter",
    "compute_poly1305",
]

_KEY_LEN = 32
_NONCE_LEN = 8
_TAG_LEN = 16
_BLOCK = 8


def make_counter(sequence_number: int) -> bytes:
    """The 8-byte nonce for a packet: the sequence number, big-endian, in the last four bytes."""
    return bytes(_NONCE_LEN - 4) + (sequence_number & 0xFFFFFFFF).to_bytes(4, "big")


def _chacha(key: bytes, nonce: bytes, block: int, data: bytes) -> bytes:
    """Apply the original ChaCha20 keystream (64-bit counter, 64-bit nonce) from `block`."""
    full_nonce = block.to_bytes(8, "little") + bytes(nonce)
    encryptor = _StreamCipher(algorithms.ChaCha20(bytes(key), full_nonce), mode=None).encryptor()
    return encryptor.update(bytes(data))


def compute_poly1305(nonce: bytes, key: bytes, data: bytes) -> bytes:
    """Poly1305 tag of `data` keyed by the first 32 keystream bytes of ChaCha20."""
    poly_key = _chacha(key, nonce, 0, bytes(32))
    return Poly1305.generate_tag(poly_key, bytes(data))


class ChaChaOpeningKey(OpeningKey):
    """Opening key of the chacha20-poly1305 cipher."""

    def __init__(self, header_key: bytes, main_key: bytes) -> None:
        self._k1 = bytes(header_key)
        self._k2 = bytes(main_key)

    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        return _chacha(self._k1, make_counter(seqn), 0, encrypted_packet_length)

    def tag_len(self) -> int:
        return _TAG_LEN

    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        nonce = make_counter(seqn)
        expected = compute_poly1305(nonce, self._k2, ciphertext)
        if not hmac.compare_digest(expected, bytes(tag)):
            raise DecryptionError("poly1305 tag mismatch")
        return _chacha(self._k2, nonce, 1, ciphertext[PACKET_LENGTH_LEN:])


class ChaChaSealingKey(SealingKey):
    """Sealing key of the chacha20-poly1305 cipher."""

    def __init__(self, header_key: bytes, main_key: bytes) -> None:
        self._k1 = bytes(header_key)
        self._k2 = bytes(main_key)

    def padding_length(self, payload: bytes) -> int:
        extra_len = PACKET_LENGTH_LEN + PADDING_LENGTH_LEN
        if len(payload) + extra_len <= MINIMUM_PACKET_LEN:
            padding_len = MINIMUM_PACKET_LEN - len(payload) - PADDING_LENGTH_LEN
        else:
            padding_len = _BLOCK - ((PADDING_LENGTH_LEN + len(payload)) % _BLOCK)
        return padding_len + _BLOCK if padding_len < PACKET_LENGTH_LEN else padding_len

    def fill_padding(self, length: int) -> bytes:
        # Stateful counter-mode encryption does not need random padding.
        return bytes(length)

    def tag_len(self) -> int:
        return _TAG_LEN

    def seal(self, seqn: int, plaintext: bytes) -> Tuple[bytes, bytes]:
        nonce = make_counter(seqn)
        ciphertext = _chacha(self._k1, nonce, 0, plaintext[:PACKET_LENGTH_LEN]) + _chacha(
            self._k2, nonce, 1, plaintext[PACKET_LENGTH_LEN:]
        )
        return ciphertext, compute_poly1305(nonce, self._k2, ciphertext)


def _split(key: bytes) -> Tuple[bytes, bytes]:
    if len(key) != 2 * _KEY_LEN:
        raise ValueError(f"key must be {2 * _KEY_LEN} bytes, got {len(key)}")
    key = bytes(key)
    return key[_KEY_LEN:], key[:_KEY_LEN]


class ChaCha20Poly1305Cipher(Cipher):
    """ChaCha20 with Poly1305: the second half of the key encrypts lengths."""

    def key_len(self) -> int:
        return 2 * _KEY_LEN

    def make_opening_key(self, key, nonce, mac_key, mac) -> ChaChaOpeningKey:
        return ChaChaOpeningKey(*_split(key))

    def make_sealing_key(self, key, nonce, mac_key, mac) -> ChaChaSealingKey:
        return ChaChaSealingKey(*_split(key))