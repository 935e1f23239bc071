import asyncio
import os

import pytest

from sshcore.gcm import GcmCipher, increment_nonce
from sshcore.packet import DecryptionError, PacketBuffer, read_packet

KEY = bytes(range(32))
NONCE = bytes(range(12))


def make_keys():
    cipher = GcmCipher()
    return (
        cipher.make_sealing_key(KEY, NONCE, b"", None),
        cipher.make_opening_key(KEY, NONCE, b"", None),
    )


async def read_all(raw, opening, count):
    reader = asyncio.StreamReader()
    reader.feed_data(raw)
    reader.feed_eof()
    buffer = PacketBuffer()
    payloads = []
    for _ in range(count):
        n = await read_packet(reader, buffer, opening)
        assert n == len(buffer.buffer)
        payloads.append(bytes(buffer.buffer[5:]))
    return payloads


def test_increment_nonce_simple():
    assert increment_nonce(bytes(12)) == bytes(11) + b"\x01"


def test_increment_nonce_carry():
    assert increment_nonce(bytes(10) + b"\x00\xff") == bytes(10) + b"\x01\x00"


def test_increment_nonce_wraps():
    assert increment_nonce(b"\xff" * 12) == bytes(12)


def test_sizes():
    cipher = GcmCipher()
    sealing, opening = make_keys()
    assert (cipher.key_len(), cipher.nonce_len(), cipher.needs_mac()) == (32, 12, False)
    assert sealing.tag_len() == opening.tag_len() == 16


@pytest.mark.parametrize("size", [0, 1, 11, 12, 27, 100, 1000])
def test_padding_aligns_to_block(size):
    sealing, _ = make_keys()
    pad = sealing.padding_length(bytes(size))
    assert pad >= 4
    assert (1 + size + pad) % 16 == 0


@pytest.mark.asyncio
async def test_round_trip_several_packets():
    sealing, opening = make_keys()
    out = PacketBuffer()
    payloads = [b"hello", os.urandom(300), b"", b"x" * 17]
    for payload in payloads:
        sealing.write(payload, out)
    assert out.seqn == len(payloads)
    assert await read_all(bytes(out.buffer), opening, len(payloads)) == payloads


def test_length_sent_in_clear():
    sealing, opening = make_keys()
    out = PacketBuffer()
    payload = b"visible length"
    sealing.write(payload, out)
    length = int.from_bytes(out.buffer[:4], "big")
    assert length == 1 + len(payload) + sealing.padding_length(payload)
    assert opening.decrypt_packet_length(0, bytes(out.buffer[:4])) == bytes(out.buffer[:4])
    assert payload not in bytes(out.buffer)


@pytest.mark.asyncio
async def test_tampered_packet_is_rejected():
    sealing, opening = make_keys()
    out = PacketBuffer()
    sealing.write(b"integrity", out)
    out.buffer[8] ^= 1
    with pytest.raises(DecryptionError):
        await read_all(bytes(out.buffer), opening, 1)


@pytest.mark.asyncio
async def test_out_of_order_nonce_fails():
    sealing, opening = make_keys()
    first = PacketBuffer()
    sealing.write(b"first", first)
    second = PacketBuffer()
    sealing.write(b"second", second)
    with pytest.raises(DecryptionError):
        await read_all(bytes(second.buffer), opening, 1)


def test_wrong_key_length():
    with pytest.raises(ValueError):
        GcmCipher().make_sealing_key(bytes(16), NONCE, b"", None)


def test_wrong_nonce_length():
    with pytest.raises(ValueError):
        GcmCipher().make_opening_key(KEY, bytes(8), b"", None)