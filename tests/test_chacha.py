import asyncio
import os

import pytest

from sshcore.chacha import ChaCha20Poly1305Cipher, compute_poly1305, make_counter
from sshcore.packet import DecryptionError, PacketBuffer, read_packet

KEY = bytes(range(64))


def make_keys(key=KEY):
    cipher = ChaCha20Poly1305Cipher()
    return (
        cipher.make_sealing_key(key, b"", b"", None),
        cipher.make_opening_key(key, b"", b"", None),
    )


async def read_all(raw, opening, count):
    reader = asyncio.StreamReader()
    reader.feed_data(raw)
    reader.feed_eof()
    buffer = PacketBuffer()
    payloads = []
    for _ in range(count):
        await read_packet(reader, buffer, opening)
        payloads.append(bytes(buffer.buffer[5:]))
    return payloads


def test_make_counter_layout():
    assert make_counter(0) == bytes(8)
    assert make_counter(0x01020304) == b"\x00\x00\x00\x00\x01\x02\x03\x04"


def test_sizes():
    cipher = ChaCha20Poly1305Cipher()
    sealing, opening = make_keys()
    assert (cipher.key_len(), cipher.nonce_len(), cipher.needs_mac()) == (64, 0, False)
    assert sealing.tag_len() == opening.tag_len() == 16


def test_poly1305_is_deterministic_and_data_dependent():
    nonce = make_counter(5)
    key = bytes(range(32))
    tag = compute_poly1305(nonce, key, b"message")
    assert len(tag) == 16
    assert tag == compute_poly1305(nonce, key, b"message")
    assert tag != compute_poly1305(nonce, key, b"massage")
    assert tag != compute_poly1305(make_counter(6), key, b"message")


def test_padding_is_zero():
    sealing, _ = make_keys()
    assert sealing.fill_padding(7) == bytes(7)


@pytest.mark.parametrize("size", [0, 3, 11, 12, 40, 999])
def test_padding_aligns_to_block(size):
    sealing, _ = make_keys()
    pad = sealing.padding_length(bytes(size))
    assert pad >= 4
    assert (1 + size + pad) % 8 == 0


def test_length_is_encrypted_and_recoverable():
    sealing, opening = make_keys()
    out = PacketBuffer()
    payload = b"length check"
    sealing.write(payload, out)
    clear = opening.decrypt_packet_length(0, bytes(out.buffer[:4]))
    expected = 1 + len(payload) + sealing.padding_length(payload)
    assert int.from_bytes(clear, "big") == expected
    assert len(out.buffer) == 4 + expected + 16


@pytest.mark.asyncio
async def test_round_trip_several_packets():
    sealing, opening = make_keys()
    out = PacketBuffer()
    payloads = [b"one", os.urandom(500), b"", b"z" * 64]
    for payload in payloads:
        sealing.write(payload, out)
    assert await read_all(bytes(out.buffer), opening, len(payloads)) == payloads


@pytest.mark.asyncio
async def test_tampered_packet_is_rejected():
    sealing, opening = make_keys()
    out = PacketBuffer()
    sealing.write(b"integrity", out)
    out.buffer[-20] ^= 0x80
    with pytest.raises(DecryptionError):
        await read_all(bytes(out.buffer), opening, 1)


def test_wrong_key_fails():
    sealing, _ = make_keys()
    _, other_opening = make_keys(bytes(64))
    ciphertext, tag = sealing.seal(0, b"\x00\x00\x00\x0c" + bytes(12))
    with pytest.raises(DecryptionError):
        other_opening.open(0, ciphertext, tag)


def test_open_reverses_seal():
    sealing, opening = make_keys()
    plaintext = b"\x00\x00\x00\x10" + bytes(range(16))
    ciphertext, tag = sealing.seal(9, plaintext)
    assert opening.open(9, ciphertext, tag) == plaintext[4:]
    with pytest.raises(DecryptionError):
        opening.open(10, ciphertext, tag)


def test_wrong_key_length():
    with pytest.raises(ValueError):
        ChaCha20Poly1305Cipher().make_sealing_key(bytes(32), b"", b"", None)