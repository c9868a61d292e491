"""Client side of the auth_simple and auth_sha1 family of framing protocols.

Each protocol wraps outgoing data into checksummed frames padded with a
random amount of filler, and unwraps frames coming back from the server.
The first frame of a connection carries an authentication header.
"""

import secrets
import time
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from ssrcore.checksum import check_adler32, crc32, crc32_bytes, fill_adler32, fill_crc32
from ssrcore.ciphers import rand_bytes
from ssrcore.digests import sha1_hmac_with_key

BytesLike = Union[bytes, bytearray, memoryview]

HMAC_SHA1_LEN = 10
PACK_UNIT_SIZE = 2000
RECV_BUFFER_LIMIT = 16384
MAX_FRAME = 8192
DEFAULT_HEAD_SIZE = 30
_CONNECTION_ID_LIMIT = 0xFF000000


class ProtocolError(Exception):
    """Raised when received data does not form valid protocol frames."""


def _random_bits() -> int:
    return secrets.randbits(64)


def _fresh_connection_id() -> int:
    return int.from_bytes(rand_bytes(4), "little") & 0xFFFFFF


def _u32le(value: int) -> bytes:
    return (value & 0xFFFFFFFF).to_bytes(4, "little")


def _timestamp() -> bytes:
    return _u32le(int(time.time()))


def _address_header_size(data: bytes, default: int) -> int:
    """Size of the SOCKS5-style address header that leads ``data``."""
    if len(data) < 2:
        return default
    head_type = data[0] & 0x7
    if head_type == 1:
        return 7
    if head_type == 4:
        return 19
    if head_type == 3:
        return 4 + data[1]
    return default


def _short_random_region(rand_len: int) -> bytes:
    """Filler whose first byte holds its own length (at most 255)."""
    return bytes([rand_len]) + rand_bytes(rand_len - 1)


def _long_random_region(rand_len: int) -> bytes:
    """Filler with a one-byte length, or 0xFF and a big-endian 16-bit length."""
    if rand_len < 128:
        return bytes([rand_len]) + rand_bytes(rand_len - 1)
    return b"\xff" + rand_len.to_bytes(2, "big") + rand_bytes(rand_len - 3)


def _sized_rand_len(datalength: int) -> int:
    if datalength > 1300:
        bits = 0
    elif datalength > 400:
        bits = _random_bits() & 0x7F
    else:
        bits = _random_bits() & 0x3FF
    return bits + 1


@dataclass
class ServerInfo:
    """What the protocol needs to know about the server it talks to."""

    key: bytes
    iv: bytes = b""
    param: str = ""

    def __post_init__(self) -> None:
        self.key = bytes(self.key)
        self.iv = bytes(self.iv)

    @property
    def hmac_key(self) -> bytes:
        """The IV followed by the key, used to sign authentication frames."""
        return self.iv + self.key


@dataclass
class ClientIdentity:
    """A client id and connection counter shared by the connections of a client."""

    client_id: bytes = field(default_factory=lambda: rand_bytes(8))
    connection_id: int = field(default_factory=_fresh_connection_id)

    def next_connection(self) -> int:
        """Advance to the next connection id and return it.

        Past the counter's limit a new client id and counter are drawn.
        """
        self.connection_id += 1
        if self.connection_id > _CONNECTION_ID_LIMIT:
            self.client_id = rand_bytes(8)
            self.connection_id = _fresh_connection_id()
        return self.connection_id


class AuthSimple:
    """auth_simple: CRC-32 framed packets with a short random filler."""

    _header_min = 2
    _min_length = 7

    def __init__(self, server: ServerInfo, identity: Optional[ClientIdentity] = None) -> None:
        self.server = server
        self.identity = identity if identity is not None else ClientIdentity()
        self.has_sent_header = False
        self._recv = bytearray()

    # -- framing hooks -------------------------------------------------

    def _head_size(self, data: bytes) -> int:
        return _address_header_size(data, DEFAULT_HEAD_SIZE)

    def _pack_data(self, data: bytes) -> bytes:
        rand_len = (_random_bits() & 0xF) + 1
        out_size = rand_len + len(data) + 6
        frame = out_size.to_bytes(2, "big") + _short_random_region(rand_len) + data + bytes(4)
        return fill_crc32(frame)

    def _pack_auth_data(self, data: bytes) -> bytes:
        rand_len = (_random_bits() & 0xF) + 1
        out_size = rand_len + len(data) + 6 + 12
        connection_id = self.identity.next_connection()
        frame = (
            out_size.to_bytes(2, "big")
            + _short_random_region(rand_len)
            + _timestamp()
            + self.identity.client_id[:4]
            + _u32le(connection_id)
            + data
            + bytes(4)
        )
        return fill_crc32(frame)

    def _check_length(self, length: int) -> None:
        if length >= MAX_FRAME or length < self._min_length:
            raise ProtocolError(f"invalid frame length {length}")

    def _next_frame(self, buf: bytearray) -> Optional[Tuple[int, bytes]]:
        length = int.from_bytes(buf[:2], "big")
        self._check_length(length)
        if length > len(buf):
            return None
        frame = bytes(buf[:length])
        if crc32(frame) != 0xFFFFFFFF:
            raise ProtocolError("frame checksum mismatch")
        pos = 2 + frame[2]
        return length, frame[pos : length - 4]

    # -- public API ----------------------------------------------------

    def client_pre_encrypt(self, data: BytesLike) -> bytes:
        """Wrap outgoing data into frames, leading with the auth frame once."""
        data = bytes(data)
        out = bytearray()
        if data and not self.has_sent_header:
            head_size = min(self._head_size(data), len(data))
            out += self._pack_auth_data(data[:head_size])
            data = data[head_size:]
            self.has_sent_header = True
        for start in range(0, len(data), PACK_UNIT_SIZE):
            out += self._pack_data(data[start : start + PACK_UNIT_SIZE])
        return bytes(out)

    def client_post_decrypt(self, data: BytesLike) -> bytes:
        """Add received bytes and return the payload of every complete frame.

        Raises :class:`ProtocolError` on a malformed frame, after which the
        receive buffer is emptied, or when the buffer would overflow.
        """
        data = bytes(data)
        if len(self._recv) + len(data) > RECV_BUFFER_LIMIT:
            raise ProtocolError("receive buffer overflow")
        self._recv += data
        out = bytearray()
        while len(self._recv) > self._header_min:
            try:
                frame = self._next_frame(self._recv)
            except ProtocolError:
                self._recv.clear()
                raise
            if frame is None:
                break
            length, payload = frame
            out += payload
            del self._recv[:length]
        return bytes(out)


class AuthSha1(AuthSimple):
    """auth_sha1: Adler-32 framed packets and an HMAC-signed auth frame."""

    def _sign(self, body: bytes) -> bytes:
        return body + sha1_hmac_with_key(body, self.server.hmac_key)[:HMAC_SHA1_LEN]

    def _pack_data(self, data: bytes) -> bytes:
        rand_len = (_random_bits() & 0xF) + 1
        out_size = rand_len + len(data) + 6
        frame = out_size.to_bytes(2, "big") + _short_random_region(rand_len) + data + bytes(4)
        return fill_adler32(frame)

    def _pack_auth_data(self, data: bytes) -> bytes:
        rand_len = (_random_bits() & 0x7F) + 1
        out_size = rand_len + 6 + len(data) + 12 + HMAC_SHA1_LEN
        connection_id = self.identity.next_connection()
        body = (
            crc32_bytes(self.server.key)
            + out_size.to_bytes(2, "big")
            + _short_random_region(rand_len)
            + _timestamp()
            + self.identity.client_id[:4]
            + _u32le(connection_id)
            + data
        )
        return self._sign(body)

    def _payload_start(self, frame: bytes) -> int:
        return frame[2] + 2

    def _next_frame(self, buf: bytearray) -> Optional[Tuple[int, bytes]]:
        length = int.from_bytes(buf[:2], "big")
        self._check_length(length)
        if length > len(buf):
            return None
        frame = bytes(buf[:length])
        if not check_adler32(frame):
            raise ProtocolError("frame checksum mismatch")
        return length, frame[self._payload_start(frame) : length - 4]


class AuthSha1V2(AuthSha1):
    """auth_sha1_v2: longer filler and a salted key checksum."""

    _salt = b"auth_sha1_v2"

    def _pack_data(self, data: bytes) -> bytes:
        rand_len = _sized_rand_len(len(data))
        out_size = rand_len + len(data) + 6
        frame = out_size.to_bytes(2, "big") + _long_random_region(rand_len) + data + bytes(4)
        return fill_adler32(frame)

    def _pack_auth_data(self, data: bytes) -> bytes:
        rand_len = _sized_rand_len(len(data))
        out_size = rand_len + 6 + len(data) + 12 + HMAC_SHA1_LEN
        connection_id = self.identity.next_connection()
        body = (
            crc32_bytes(self._salt + self.server.key)
            + out_size.to_bytes(2, "big")
            + _long_random_region(rand_len)
            + self.identity.client_id[:8]
            + _u32le(connection_id)
            + data
        )
        return self._sign(body)

    def _payload_start(self, frame: bytes) -> int:
        if frame[2] < 255:
            return frame[2] + 2
        return int.from_bytes(frame[3:5], "big") + 2


class AuthSha1V4(AuthSha1V2):
    """auth_sha1_v4: frame lengths guarded by their own CRC."""

    _salt = b"auth_sha1_v4"
    _header_min = 4

    def _pack_data(self, data: bytes) -> bytes:
        rand_len = _sized_rand_len(len(data))
        out_size = rand_len + len(data) + 8
        size_bytes = out_size.to_bytes(2, "big")
        frame = (
            size_bytes
            + crc32_bytes(size_bytes)[:2]
            + _long_random_region(rand_len)
            + data
            + bytes(4)
        )
        return fill_adler32(frame)

    def _pack_auth_data(self, data: bytes) -> bytes:
        rand_len = _sized_rand_len(len(data))
        out_size = rand_len + 6 + len(data) + 12 + HMAC_SHA1_LEN
        size_bytes = out_size.to_bytes(2, "big")
        connection_id = self.identity.next_connection()
        body = (
            size_bytes
            + crc32_bytes(size_bytes + self._salt + self.server.key)
            + _long_random_region(rand_len)
            + _timestamp()
            + self.identity.client_id[:4]
            + _u32le(connection_id)
            + data
        )
        return self._sign(body)

    def _payload_start(self, frame: bytes) -> int:
        if frame[4] < 255:
            return frame[4] + 4
        return int.from_bytes(frame[5:7], "big") + 4

    def _next_frame(self, buf: bytearray) -> Optional[Tuple[int, bytes]]:
        if crc32_bytes(bytes(buf[:2]))[:2] != bytes(buf[2:4]):
            raise ProtocolError("frame header checksum mismatch")
        return super()._next_frame(buf)