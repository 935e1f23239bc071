"""SSH packet ciphers, authentication method sets and asyncio channel I/O."""

__version__ = "0.1.0"

__all__ = [
    "auth",
    "packet",
    "block",
    "gcm",
    "chacha",
    "ciphers",
    "messages",
    "channel_io",
    "channels",
]