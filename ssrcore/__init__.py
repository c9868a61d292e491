"""Ciphers, checksums, a bounded cache and client protocol framing for ShadowsocksR-style proxies."""

__version__ = "0.1.0"
__all__ = [
    "b64codec",
    "checksum",
    "cache",
    "ciphers",
    "digests",
    "authproto",
    "auth_aes128",
]