"""Client side of the auth_aes128 framing protocols.

Frames carry a keyed-hash check on their length and on their contents. The
first frame of a connection holds a header encrypted with AES-128. Both the
stream and the UDP forms of the protocol are covered.
"""

import hmac
import re
import secrets
import time
from typing import Callable, Optional, Tuple, Union

from ssrcore.authproto import MAX_FRAME, AuthSimple, ClientIdentity, ProtocolError, ServerInfo
from ssrcore.b64codec import encode
from ssrcore.ciphers import bytes_to_key_with_size, rand_bytes
from ssrcore.digests import (
    aes_128_cbc,
    md5_hash,
    md5_hmac_with_key,
    sha1_hash,
    sha1_hmac_with_key,
)

BytesLike = Union[bytes, bytearray, memoryview]

AUTH_HEAD_SIZE = 1200
_MIN_FRAME = 8
_UID_PATTERN = re.compile(r"\s*([+-]?\d+)")


def _u32le(value: int) -> bytes:
    return (value & 0xFFFFFFFF).to_bytes(4, "little")


def _parse_uid(text: str) -> int:
    """Read a leading decimal integer; text without one gives 0."""
    match = _UID_PATTERN.match(text)
    return int(match.group(1)) if match else 0


def _filler(rand_len: int) -> bytes:
    """Random filler led by its length: one byte, or 0xFF and 16 bits little-endian."""
    if rand_len < 128:
        return bytes([rand_len]) + rand_bytes(rand_len - 1)
    return b"\xff" + rand_len.to_bytes(2, "little") + rand_bytes(rand_len - 3)


class AuthAes128(AuthSimple):
    """Shared logic of auth_aes128_md5 and auth_aes128_sha1.

    Use one of the subclasses, which choose the digest and the salt.
    """

    _hmac: Optional[Callable[[bytes, bytes], bytes]] = None
    _hash: Optional[Callable[[bytes], bytes]] = None
    _salt = b""
    _header_min = 4
    _min_length = _MIN_FRAME

    def __init__(self, server: ServerInfo, identity: Optional[ClientIdentity] = None) -> None:
        if self._hmac is None or self._hash is None:
            raise TypeError("use AuthAes128Md5 or AuthAes128Sha1")
        super().__init__(server, identity)
        self.recv_id = 1
        self.pack_id = 1
        self.uid = b""
        self.user_key: Optional[bytes] = None

    # -- user key ------------------------------------------------------

    def _ensure_user_key(self) -> bytes:
        """Derive the user id and key once, from ``uid:key`` or the server key."""
        if self.user_key is None:
            param = self.server.param or ""
            uid_text, sep, key_text = param.partition(":")
            if param and sep:
                self.uid = _u32le(_parse_uid(uid_text))
                self.user_key = self._hash(key_text.encode("utf-8"))
            else:
                self.uid = rand_bytes(4)
                self.user_key = self.server.key
        return self.user_key

    # -- framing hooks -------------------------------------------------

    def _head_size(self, data: bytes) -> int:
        return AUTH_HEAD_SIZE

    def _pack_data(self, data: bytes) -> bytes:
        size = len(data)
        bits = secrets.randbits(64)
        if size > 1200:
            bits = 0
        elif self.pack_id > 4:
            bits &= 0x20
        elif size > 900:
            bits &= 0x80
        else:
            bits &= 0x200
        rand_len = bits + 1
        out_size = rand_len + size + 8
        key = self._ensure_user_key() + _u32le(self.pack_id)
        size_bytes = out_size.to_bytes(2, "little")
        body = size_bytes + self._hmac(size_bytes, key)[:2] + _filler(rand_len) + data
        self.pack_id = (self.pack_id + 1) & 0xFFFFFFFF
        return body + self._hmac(body, key)[:4]

    def _pack_auth_data(self, data: bytes) -> bytes:
        size = len(data)
        rand_len = secrets.randbits(64) & (0x200 if size > 400 else 0x400)
        out_size = rand_len + 31 + size + 4
        key = self.server.hmac_key
        connection_id = self.identity.next_connection()
        user_key = self._ensure_user_key()

        plain = (
            _u32le(int(time.time()))
            + self.identity.client_id[:4]
            + _u32le(connection_id)
            + out_size.to_bytes(2, "little")
            + rand_len.to_bytes(2, "little")
        )
        enc_key = bytes_to_key_with_size(encode(user_key).encode("ascii") + self._salt, 16)
        encrypted = self.uid + aes_128_cbc(plain, enc_key)
        encrypted += self._hmac(encrypted, key)[:4]

        lead = rand_bytes(1)
        body = lead + self._hmac(lead, key)[:6] + encrypted + rand_bytes(rand_len) + data
        return body + self._hmac(body, user_key)[:4]

    def _next_frame(self, buf: bytearray) -> Optional[Tuple[int, bytes]]:
        key = self._ensure_user_key() + _u32le(self.recv_id)
        if not hmac.compare_digest(self._hmac(bytes(buf[:2]), key)[:2], bytes(buf[2:4])):
            raise ProtocolError("frame length check mismatch")
        length = int.from_bytes(buf[:2], "little")
        if length >= MAX_FRAME or length < self._min_length:
            raise ProtocolError(f"invalid frame length {length}")
        if length > len(buf):
            return None
        frame = bytes(buf[:length])
        if not hmac.compare_digest(self._hmac(frame[:-4], key)[:4], frame[-4:]):
            raise ProtocolError("frame check mismatch")
        self.recv_id = (self.recv_id + 1) & 0xFFFFFFFF
        if frame[4] < 255:
            pos = frame[4] + 4
        else:
            pos = int.from_bytes(frame[5:7], "little") + 4
        return length, frame[pos : length - 4]

    # -- public API ----------------------------------------------------

    def client_pre_encrypt(self, data: BytesLike) -> bytes:
        """Wrap outgoing data into frames, leading with the auth frame once."""
        return super().client_pre_encrypt(data)

    def client_post_decrypt(self, data: BytesLike) -> bytes:
        """Add received bytes and return the payload of every complete frame.

        Raises :class:`ProtocolError` on a frame that fails its checks, after
        which the receive buffer is emptied, or when the buffer would overflow.
        """
        return super().client_post_decrypt(data)

    def client_udp_pre_encrypt(self, data: BytesLike) -> bytes:
        """Append the user id and a 4-byte check keyed with the user key."""
        body = bytes(data)
        user_key = self._ensure_user_key()
        body += self.uid
        return body + self._hmac(body, user_key)[:4]

    def client_udp_post_decrypt(self, data: BytesLike) -> bytes:
        """Strip and check the 4-byte tail keyed with the server key.

        A datagram that is too short or fails the check yields no data.
        """
        data = bytes(data)
        if len(data) <= 4:
            return b""
        body, tail = data[:-4], data[-4:]
        if not hmac.compare_digest(self._hmac(body, self.server.key)[:4], tail):
            return b""
        return body


class AuthAes128Md5(AuthAes128):
    """auth_aes128_md5: HMAC-MD5 checks, user key from an MD5 digest."""

    _hmac = staticmethod(md5_hmac_with_key)
    _hash = staticmethod(md5_hash)
    _salt = b"auth_aes128_md5"


class AuthAes128Sha1(AuthAes128):
    """auth_aes128_sha1: HMAC-SHA1 checks, user key from a SHA-1 digest."""

    _hmac = staticmethod(sha1_hmac_with_key)
    _hash = staticmethod(sha1_hash)
    _salt = b"auth_aes128_sha1"