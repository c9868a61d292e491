"""Keyed digests, one-time authentication tags and authenticated chunk framing."""

import hashlib
import hmac
from typing import Union

from Crypto.Cipher import AES

from ssrcore.ciphers import CryptoError

BytesLike = Union[bytes, bytearray, memoryview]

ONETIMEAUTH_BYTES = 10
CLEN_BYTES = 2
AUTH_BYTES = ONETIMEAUTH_BYTES + CLEN_BYTES
_MAX_CHUNK = 0xFFFF


def md5_hmac_with_key(msg: BytesLike, key: BytesLike) -> bytes:
    """HMAC-MD5 of ``msg`` under ``key``."""
    return hmac.new(bytes(key), bytes(msg), hashlib.md5).digest()


def sha1_hmac_with_key(msg: BytesLike, key: BytesLike) -> bytes:
    """HMAC-SHA1 of ``msg`` under ``key``."""
    return hmac.new(bytes(key), bytes(msg), hashlib.sha1).digest()


def md5_hash(msg: BytesLike) -> bytes:
    """MD5 digest of ``msg``."""
    return hashlib.md5(bytes(msg)).digest()


def sha1_hash(msg: BytesLike) -> bytes:
    """SHA-1 digest of ``msg``."""
    return hashlib.sha1(bytes(msg)).digest()


def aes_128_cbc(data: BytesLike, key: BytesLike) -> bytes:
    """Encrypt one 16-byte block with AES-128-CBC and an all-zero IV."""
    data = bytes(data)
    key = bytes(key)
    if len(data) != 16:
        raise ValueError("aes_128_cbc encrypts exactly one 16-byte block")
    if len(key) != 16:
        raise ValueError("aes_128_cbc needs a 16-byte key")
    return AES.new(key, AES.MODE_CBC, iv=bytes(16)).encrypt(data)


def _onetime_tag(data: bytes, key: bytes, iv: bytes) -> bytes:
    return sha1_hmac_with_key(data, iv + key)[:ONETIMEAUTH_BYTES]


def onetimeauth(data: BytesLike, key: BytesLike, iv: BytesLike) -> bytes:
    """Return ``data`` followed by its 10-byte one-time authentication tag.

    The tag is a truncated HMAC-SHA1 keyed with the IV followed by the key.
    """
    data = bytes(data)
    return data + _onetime_tag(data, bytes(key), bytes(iv))


def onetimeauth_verify(data: BytesLike, key: BytesLike, iv: BytesLike) -> bool:
    """Tell whether the last ten bytes of ``data`` authenticate the rest."""
    data = bytes(data)
    if len(data) < ONETIMEAUTH_BYTES:
        return False
    body, tag = data[:-ONETIMEAUTH_BYTES], data[-ONETIMEAUTH_BYTES:]
    return hmac.compare_digest(tag, _onetime_tag(body, bytes(key), bytes(iv)))


def _chunk_tag(payload: bytes, counter: int, iv: bytes) -> bytes:
    key = iv + (counter & 0xFFFFFFFF).to_bytes(4, "big")
    return sha1_hmac_with_key(payload, key)[:ONETIMEAUTH_BYTES]


def gen_hash(data: BytesLike, counter: int, iv: BytesLike) -> bytes:
    """Frame ``data`` as one authenticated chunk numbered ``counter``.

    The chunk is the big-endian payload length, a 10-byte tag and the
    payload. The caller numbers successive chunks 0, 1, 2, ...
    """
    data = bytes(data)
    if len(data) > _MAX_CHUNK:
        raise ValueError("a chunk holds at most 65535 bytes")
    return len(data).to_bytes(CLEN_BYTES, "big") + _chunk_tag(data, counter, bytes(iv)) + data


class ChunkVerifier:
    """Reassembles and checks a stream of chunks framed by :func:`gen_hash`.

    Data may arrive in pieces of any size; :meth:`feed` returns the payload
    of every chunk completed so far and keeps any partial chunk for later.
    """

    def __init__(self, iv: BytesLike) -> None:
        self.iv = bytes(iv)
        self.counter = 0
        self._pending = bytearray()

    def feed(self, data: BytesLike) -> bytes:
        """Add received bytes and return the verified payload they complete.

        Raises :class:`CryptoError` when a chunk fails authentication.
        """
        self._pending += bytes(data)
        out = bytearray()
        while len(self._pending) >= CLEN_BYTES:
            length = int.from_bytes(self._pending[:CLEN_BYTES], "big")
            end = AUTH_BYTES + length
            if len(self._pending) < end:
                break
            tag = bytes(self._pending[CLEN_BYTES:AUTH_BYTES])
            payload = bytes(self._pending[AUTH_BYTES:end])
            if not hmac.compare_digest(tag, _chunk_tag(payload, self.counter, self.iv)):
                raise CryptoError(f"chunk {self.counter} failed authentication")
            out += payload
            del self._pending[:end]
            self.counter += 1
        return bytes(out)