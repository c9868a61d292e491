"""Base64 encoding and a strict decoder that stops at the first padding sign."""

import base64

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_VALUES = {char: index for index, char in enumerate(_ALPHABET)}
_PAD = "="


class Base64Error(ValueError):
    """Raised when the input holds a character outside the base64 alphabet."""


def encode(data: bytes) -> str:
    """Encode bytes as padded standard base64 text."""
    return base64.b64encode(bytes(data)).decode("ascii")


def decode(text: "str | bytes") -> bytes:
    """Decode base64 text.

    Decoding stops at the first ``=``; any other character outside the
    alphabet raises :class:`Base64Error`. Only whole bytes are returned.
    """
    if isinstance(text, (bytes, bytearray, memoryview)):
        text = bytes(text).decode("latin-1")

    out = bytearray()
    accumulator = 0
    bits = 0
    for position, char in enumerate(text):
        if char == _PAD:
            break
        try:
            value = _VALUES[char]
        except KeyError:
            raise Base64Error(
                f"invalid base64 character {char!r} at position {position}"
            ) from None
        accumulator = (accumulator << 6) | value
        bits += 6
        if bits >= 8:
            bits -= 8
            out.append((accumulator >> bits) & 0xFF)
            accumulator &= (1 << bits) - 1
    return bytes(out)