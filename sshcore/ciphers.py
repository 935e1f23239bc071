"""Names of the supported packet ciphers and the registry that maps them."""

from __future__ import annotations

import enum
from typing import Dict, Tuple, Union

from .block import BlockCipher
from .chacha import ChaCha20Poly1305Cipher
from .gcm import GcmCipher
from .packet import Cipher, ClearCipher

__all__ = ["CipherName", "get_cipher", "cipher_names"]

_VENDOR = "openssh.com"


class CipherName(str, enum.Enum):
    """Wire names of the packet ciphers."""

    CLEAR = "clear"
    AES_128_CTR = "aes128-ctr"
    AES_192_CTR = "aes192-ctr"
    AES_256_CTR = "aes256-ctr"
    AES_256_GCM = f"aes256-gcm@{_VENDOR}"
    CHACHA20_POLY1305 = f"chacha20-poly1305@{_VENDOR}"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


_CLEAR = ClearCipher()

_CIPHERS: Dict[CipherName, Cipher] = {
    CipherName.CLEAR: _CLEAR,
    CipherName.NONE: _CLEAR,
    CipherName.AES_128_CTR: BlockCipher(16),
    CipherName.AES_192_CTR: BlockCipher(24),
    CipherName.AES_256_CTR: BlockCipher(32),
    CipherName.AES_256_GCM: GcmCipher(),
    CipherName.CHACHA20_POLY1305: ChaCha20Poly1305Cipher(),
}


def get_cipher(name: Union[CipherName, str]) -> Cipher:
    """Return the cipher for a wire name; raise KeyError if it is not supported."""
    try:
        key = CipherName(name)
    except ValueError:
        raise KeyError(f"unknown cipher: {name!s}") from None
    return _CIPHERS[key]


def cipher_names() -> Tuple[CipherName, ...]:
    """All supported cipher names."""
    return tuple(CipherName)