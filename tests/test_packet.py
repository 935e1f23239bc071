import asyncio

import pytest

from sshcore.packet import (
    CipherError,
    ClearCipher,
    ClearKey,
    PacketBuffer,
    read_packet,
)


def _reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


def test_clear_cipher_properties():
    cipher = ClearCipher()
    assert cipher.key_len() == 0
    assert cipher.nonce_len() == 0
    assert cipher.needs_mac() is False
    assert cipher.make_sealing_key(b"", b"", b"", None).tag_len() == 0


@pytest.mark.parametrize("size", range(0, 40))
def test_clear_padding_aligns_to_eight(size):
    pad = ClearKey().padding_length(bytes(size))
    assert pad >= 4
    assert (5 + size + pad) % 8 == 0


def test_clear_empty_payload_wire_bytes():
    buffer = PacketBuffer()
    ClearKey().write(b"", buffer)
    pad = ClearKey().padding_length(b"")
    assert bytes(buffer.buffer) == (1 + pad).to_bytes(4, "big") + bytes([pad]) + bytes(pad)


def test_write_updates_counters():
    buffer = PacketBuffer()
    key = ClearKey()
    key.write(b"abc", buffer)
    key.write(b"de", buffer)
    assert buffer.seqn == 2
    assert buffer.payload_bytes == 5
    assert len(buffer.buffer) % 8 == 0


def test_sequence_number_wraps():
    buffer = PacketBuffer(seqn=0xFFFFFFFF)
    ClearKey().write(b"x", buffer)
    assert buffer.seqn == 0


@pytest.mark.asyncio
async def test_clear_round_trip():
    out = PacketBuffer()
    sealing = ClearCipher().make_sealing_key(b"", b"", b"", None)
    sealing.write(b"first", out)
    sealing.write(b"second payload", out)

    reader = _reader(bytes(out.buffer))
    incoming = PacketBuffer()
    opening = ClearCipher().make_opening_key(b"", b"", b"", None)

    n = await read_packet(reader, incoming, opening)
    assert n == len(incoming.buffer)
    assert bytes(incoming.buffer[5:]) == b"first"
    n = await read_packet(reader, incoming, opening)
    assert bytes(incoming.buffer[5:n]) == b"second payload"
    assert incoming.seqn == 2
    assert incoming.length == 0


@pytest.mark.asyncio
async def test_padding_larger_than_packet_is_rejected():
    reader = _reader((2).to_bytes(4, "big") + b"\x09\x00")
    with pytest.raises(CipherError):
        await read_packet(reader, PacketBuffer(), ClearKey())


@pytest.mark.asyncio
async def test_truncated_stream_raises():
    reader = _reader((20).to_bytes(4, "big") + b"\x04ab")
    with pytest.raises(asyncio.IncompleteReadError):
        await read_packet(reader, PacketBuffer(), ClearKey())