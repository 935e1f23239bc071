# sshcore

Parts of the SSH transport and connection layers that you can use on their own:

- **Packet ciphers** (`sshcore.packet`, `sshcore.block`, `sshcore.gcm`,
  `sshcore.chacha`, `sshcore.ciphers`): the clear cipher, AES-CTR with an HMAC (plain
  or encrypt-then-MAC), AES-256-GCM, and ChaCha20-Poly1305 with a separate key for the
  length field. Each cipher makes an opening key and a sealing key. These frame, pad,
  seal and open binary packets.
- **Authentication records** (`sshcore.auth`): `MethodSet`, a flag set of the SSH
  authentication methods, and small dataclasses for the methods and for requests that
  are in progress.
- **Channels** (`sshcore.messages`, `sshcore.channel_io`, `sshcore.channels`): channel
  messages as dataclasses, and an asyncio `Channel` with readers, writers and a two-way
  `ChannelStream`. Writers keep to the send window and the maximum packet size.

## Installation

```
pip install sshcore
```

To run the tests as well:

```
pip install "sshcore[test]"
pytest
```

## Ciphers

`get_cipher` takes a wire name, as a `CipherName` or a plain string, and returns the
matching cipher. It raises `KeyError` for a name it does not know. `cipher_names()`
lists every supported name.

```python
from sshcore.ciphers import CipherName, cipher_names, get_cipher

print(cipher_names())
cipher = get_cipher("aes256-ctr")
print(cipher.key_len(), cipher.nonce_len(), cipher.needs_mac())  # 32 16 True
```

`CipherName.CLEAR` and `CipherName.NONE` both refer to the same clear cipher.

## Sealing and opening packets

`SealingKey.write(payload, buffer)` does the following:

1. Pads the payload.
2. Puts the packet length and the padding length in front of it.
3. Seals the packet and appends it, with its tag, to `buffer.buffer`.
4. Advances `buffer.seqn`, wrapping at 32 bits.

`read_packet(stream, buffer, opening_key)` reads one packet from an
`asyncio.StreamReader` (anything with `readexactly`) and opens it. Afterwards
`buffer.buffer` holds the four length bytes, the padding-length byte and the payload.
The return value is the number of bytes held.

```python
import asyncio
import os

from sshcore.ciphers import CipherName, get_cipher
from sshcore.packet import PacketBuffer, read_packet


async def main():
    cipher = get_cipher(CipherName.AES_256_GCM)
    key, nonce = os.urandom(cipher.key_len()), os.urandom(cipher.nonce_len())
    sealing = cipher.make_sealing_key(key, nonce, b"", None)
    opening = cipher.make_opening_key(key, nonce, b"", None)

    out = PacketBuffer()
    sealing.write(b"\x05hello", out)

    reader = asyncio.StreamReader()
    reader.feed_data(bytes(out.buffer))
    reader.feed_eof()

    incoming = PacketBuffer()
    size = await read_packet(reader, incoming, opening)
    print(bytes(incoming.buffer[5:size]))  # b'\x05hello'


asyncio.run(main())
```

The AES-CTR ciphers need a MAC. Pass a `sshcore.block.MacAlgorithm` and a MAC key of
its `key_len`:

```python
from sshcore.block import MacAlgorithm

mac = MacAlgorithm(digest="sha256", key_len=32, etm=True)
cipher = get_cipher(CipherName.AES_128_CTR)
sealing = cipher.make_sealing_key(os.urandom(16), os.urandom(16), os.urandom(32), mac)
```

Key, nonce and MAC key lengths are checked, and a wrong length raises `ValueError`.
Opening a packet that fails its check raises a subclass of `CipherError`:

- `PacketAuthError` when an HMAC does not match;
- `DecryptionError` when a GCM or Poly1305 tag does not match.

## Authentication method sets

```python
from sshcore.auth import AuthRequest, MethodSet

methods = MethodSet.PASSWORD | MethodSet.PUBLICKEY
print(MethodSet.PUBLICKEY.name_bytes())   # b'publickey'
print(MethodSet.from_bytes(b"password"))  # MethodSet.PASSWORD
print(MethodSet.from_bytes(b"unknown"))   # None

request = AuthRequest(methods)
```

`name_bytes()` returns `b""` for a combination of methods or for an empty set.

## Channels

`Channel.create(id, sender, max_packet_size, window_size)` returns a `Channel` and a
`ChannelRef`:

- The channel queues its outgoing messages on `sender`, a `Mailbox`, as
  `(channel_id, message)` pairs.
- The `ChannelRef` is what the connection keeps. `ref.send(msg)` delivers an incoming
  message to the channel. `ref.window_size.value` sets the remaining send window, which
  all of the channel's writers share.

```python
import asyncio

from sshcore.channel_io import Mailbox
from sshcore.channels import Channel
from sshcore.messages import Data, Eof, ExitStatus


async def main():
    outgoing = Mailbox()
    channel, ref = Channel.create(0, outgoing, max_packet_size=32768, window_size=2097152)

    await channel.exec(True, "uname -a")
    print(await outgoing.recv())  # (0, Exec(want_reply=True, command=b'uname -a'))

    ref.send(ExitStatus(0))
    print(await channel.wait())   # ExitStatus(exit_status=0)

    ref.send(Data(b"output"))
    ref.send(Eof())
    print(await channel.make_reader().read_to_end())  # b'output'


asyncio.run(main())
```

Readers and writers:

- `make_reader()` reads `Data` messages and `make_reader_ext(ext)` reads
  `ExtendedData` of type `ext`. Any other message is discarded. `Eof` ends the stream.
- `make_writer()` and `make_writer_ext(ext)` split what they are given into messages of
  at most the maximum packet size. They wait while the window is empty. `shutdown()`
  sends `Eof`.
- `into_stream()` combines a reader and a writer into one `ChannelStream`.

`data` and `extended_data` accept bytes or any object with an async `read(n)`.

Once the `sender` mailbox has been closed, sending a request raises `SendError`. A
writer raises `ChannelClosedError` in that case.

## What this package does not do

This package does not open network connections. It also has no:

- key exchange;
- host key handling;
- authentication message exchange;
- SSH client, server or command line.

You supply the keys, nonces and streams. Connection code that you write drives the
`ChannelRef`s and the outgoing `Mailbox`.