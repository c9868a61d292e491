"""CRC-32 and Adler-32 helpers used to frame protocol packets."""

import zlib

_MASK = 0xFFFFFFFF


def crc32(data: bytes) -> int:
    """Return the standard CRC-32 of ``data``."""
    return zlib.crc32(bytes(data)) & _MASK


def crc32_bytes(data: bytes) -> bytes:
    """Return the CRC-32 of ``data`` as four little-endian bytes."""
    return crc32(data).to_bytes(4, "little")


def _split_trailer(buffer: bytes) -> bytes:
    if len(buffer) < 4:
        raise ValueError("buffer must hold at least four bytes for the checksum")
    return bytes(buffer[:-4])


def fill_crc32(buffer: bytes) -> bytes:
    """Return ``buffer`` with its last four bytes replaced by a CRC trailer.

    The trailer is the CRC register before the final inversion, so that the
    CRC-32 of the whole result is always ``0xFFFFFFFF``.
    """
    body = _split_trailer(buffer)
    register = crc32(body) ^ _MASK
    return body + register.to_bytes(4, "little")


def adler32(data: bytes) -> int:
    """Return the Adler-32 checksum of ``data``."""
    return zlib.adler32(bytes(data)) & _MASK


def fill_adler32(buffer: bytes) -> bytes:
    """Return ``buffer`` with its last four bytes set to the Adler-32 of the rest."""
    body = _split_trailer(buffer)
    return body + adler32(body).to_bytes(4, "little")


def check_adler32(buffer: bytes) -> bool:
    """Tell whether the last four bytes hold the Adler-32 of the rest."""
    body = _split_trailer(buffer)
    return adler32(body) == int.from_bytes(bytes(buffer[-4:]), "little")