import asyncio

import pytest

from sshcore.block import BlockCipher, Mac, MacAlgorithm
from sshcore.packet import PacketAuthError, PacketBuffer, read_packet


def _keys(etm, key_size=16):
    cipher = BlockCipher(key_size)
    mac = MacAlgorithm("sha256", 32, etm)
    cipher_key = bytes(range(key_size))
    nonce = bytes(range(100, 116))
    mac_key = bytes(range(32))
    return (
        cipher.make_sealing_key(cipher_key, nonce, mac_key, mac),
        cipher.make_opening_key(cipher_key, nonce, mac_key, mac),
    )


def _reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


def test_cipher_properties():
    cipher = BlockCipher(24)
    assert cipher.key_len() == 24
    assert cipher.nonce_len() == 16
    assert cipher.needs_mac() is True


def test_wrong_key_length_rejected():
    with pytest.raises(ValueError):
        BlockCipher(32).make_sealing_key(bytes(16), bytes(16), bytes(32), MacAlgorithm())


def test_wrong_mac_key_length_rejected():
    with pytest.raises(ValueError):
        MacAlgorithm("sha256", 32).make_mac(bytes(5))


def test_mac_verifies_own_tag_only():
    mac = Mac(bytes(32))
    tag = mac.compute(7, b"packet")
    assert mac.mac_len() == 32
    assert mac.verify(7, b"packet", tag)
    assert not mac.verify(8, b"packet", tag)
    assert not mac.verify(7, b"packet!", tag)


@pytest.mark.parametrize("etm", [False, True])
@pytest.mark.parametrize("size", range(0, 50))
def test_padding_alignment(etm, size):
    sealing, _ = _keys(etm)
    pad = sealing.padding_length(bytes(size))
    pll = 0 if etm else 4
    assert 4 <= pad <= 255
    assert (pll + 1 + size + pad) % 16 == 0


@pytest.mark.parametrize("etm", [False, True])
def test_length_peek_does_not_advance(etm):
    sealing, opening = _keys(etm)
    out = PacketBuffer()
    sealing.write(b"hello", out)
    first = opening.decrypt_packet_length(0, bytes(out.buffer[:4]))
    second = opening.decrypt_packet_length(0, bytes(out.buffer[:4]))
    assert first == second
    assert int.from_bytes(first, "big") == len(out.buffer) - 4 - opening.tag_len()


def test_etm_leaves_length_in_clear():
    sealing, _ = _keys(True)
    out = PacketBuffer()
    sealing.write(b"payload", out)
    length = int.from_bytes(out.buffer[:4], "big")
    assert length == len(out.buffer) - 4 - sealing.tag_len()
    assert b"payload" not in bytes(out.buffer)


@pytest.mark.asyncio
@pytest.mark.parametrize("etm", [False, True])
@pytest.mark.parametrize("key_size", [16, 24, 32])
async def test_round_trip(etm, key_size):
    sealing, opening = _keys(etm, key_size)
    out = PacketBuffer()
    payloads = [b"", b"a", b"some longer payload " * 5]
    for payload in payloads:
        sealing.write(payload, out)

    reader = _reader(bytes(out.buffer))
    incoming = PacketBuffer()
    for payload in payloads:
        n = await read_packet(reader, incoming, opening)
        assert bytes(incoming.buffer[5:n]) == payload
    assert incoming.seqn == len(payloads)


@pytest.mark.asyncio
@pytest.mark.parametrize("etm", [False, True])
async def test_tampered_packet_rejected(etm):
    sealing, opening = _keys(etm)
    out = PacketBuffer()
    sealing.write(b"integrity matters", out)
    data = bytearray(out.buffer)
    data[10] ^= 0x01
    with pytest.raises(PacketAuthError):
        await read_packet(_reader(bytes(data)), PacketBuffer(), opening)