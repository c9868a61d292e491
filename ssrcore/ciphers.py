"""Stream cipher catalogue, key derivation and per-connection cipher contexts."""

import hashlib
import logging
import os
from enum import IntEnum
from typing import Callable, Optional, Tuple, Union

from Crypto.Cipher import AES, ARC2, ARC4, CAST, DES, Blowfish, ChaCha20, Salsa20
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

try:
    from cryptography.hazmat.decrepit.ciphers import algorithms as _decrepit
except ImportError:
    _decrepit = None

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


class CryptoError(Exception):
    """Raised when a cipher cannot be set up or used."""


class Method(IntEnum):
    """Supported encryption methods, in their wire-protocol order."""

    TABLE = 0
    RC4 = 1
    RC4_MD5_6 = 2
    RC4_MD5 = 3
    AES_128_CFB = 4
    AES_192_CFB = 5
    AES_256_CFB = 6
    AES_128_CTR = 7
    AES_192_CTR = 8
    AES_256_CTR = 9
    BF_CFB = 10
    CAMELLIA_128_CFB = 11
    CAMELLIA_192_CFB = 12
    CAMELLIA_256_CFB = 13
    CAST5_CFB = 14
    DES_CFB = 15
    IDEA_CFB = 16
    RC2_CFB = 17
    SEED_CFB = 18
    SALSA20 = 19
    CHACHA20 = 20
    CHACHA20IETF = 21

    @property
    def cipher_name(self) -> str:
        """The name used in configuration files."""
        return _NAMES[self]

    @property
    def key_size(self) -> int:
        return _KEY_SIZES[self]

    @property
    def iv_size(self) -> int:
        return _IV_SIZES[self]


_NAMES = (
    "table",
    "rc4",
    "rc4-md5-6",
    "rc4-md5",
    "aes-128-cfb",
    "aes-192-cfb",
    "aes-256-cfb",
    "aes-128-ctr",
    "aes-192-ctr",
    "aes-256-ctr",
    "bf-cfb",
    "camellia-128-cfb",
    "camellia-192-cfb",
    "camellia-256-cfb",
    "cast5-cfb",
    "des-cfb",
    "idea-cfb",
    "rc2-cfb",
    "seed-cfb",
    "salsa20",
    "chacha20",
    "chacha20-ietf",
)

_IV_SIZES = (0, 0, 6, 16, 16, 16, 16, 16, 16, 16, 8, 16, 16, 16, 8, 8, 8, 8, 16, 8, 8, 12)
_KEY_SIZES = (0, 16, 16, 16, 16, 24, 32, 16, 24, 32, 16, 16, 24, 32, 16, 8, 16, 16, 16, 32, 32, 32)

_BY_NAME = {name: Method(index) for index, name in enumerate(_NAMES)}


def _as_method(method: Union[Method, int]) -> Method:
    try:
        return Method(method)
    except ValueError:
        raise CryptoError(f"illegal method {method!r}") from None


def _as_bytes(data: Union[str, BytesLike]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def method_from_name(name: Optional[str]) -> Method:
    """Map a cipher name to its method.

    No name selects the table method; an unknown name falls back to rc4-md5.
    """
    if name is None:
        return Method.TABLE
    method = _BY_NAME.get(name)
    if method is None:
        logger.warning("Invalid cipher name: %s, use rc4-md5 instead", name)
        return Method.RC4_MD5
    return method


def cipher_key_size(method: Union[Method, int]) -> int:
    """Key length in bytes for ``method``."""
    return _as_method(method).key_size


def cipher_iv_size(method: Union[Method, int]) -> int:
    """IV length in bytes for ``method``."""
    return _as_method(method).iv_size


def md5(data: Union[str, BytesLike]) -> bytes:
    """MD5 digest of ``data``."""
    return hashlib.md5(_as_bytes(data)).digest()


def rand_bytes(length: int) -> bytes:
    """Cryptographically secure random bytes."""
    if length < 0:
        raise ValueError("length must not be negative")
    return os.urandom(length)


def bytes_to_key(password: Union[str, BytesLike], key_len: int) -> bytes:
    """Derive ``key_len`` key bytes from a password, MD5 based, no salt."""
    secret = _as_bytes(password)
    out = bytearray()
    block = b""
    while len(out) < key_len:
        block = hashlib.md5(block + secret).digest()
        out += block
    return bytes(out[:key_len])


def bytes_to_key_with_size(password: Union[str, BytesLike], size: int) -> bytes:
    """Derive ``size`` bytes from ``password`` by chained MD5 digests."""
    secret = _as_bytes(password)
    block = hashlib.md5(secret).digest()
    out = bytearray(block)
    while len(out) < size:
        block = hashlib.md5(block + secret).digest()
        out += block
    return bytes(out[:size])


def make_tables(password: Union[str, BytesLike]) -> Tuple[bytes, bytes]:
    """Build the substitution tables of the table method.

    Returns ``(encrypt_table, decrypt_table)``, each a permutation of 0..255
    and the inverse of the other.
    """
    key = int.from_bytes(md5(password)[:8], "little")
    table = list(range(256))
    for salt in range(1, 1024):
        table.sort(key=lambda x: key % (x + salt))
    decrypt = bytearray(256)
    for index, value in enumerate(table):
        decrypt[value] = index
    return bytes(table), bytes(decrypt)


def _legacy_algorithm(name: str):
    for module in (_decrepit, algorithms):
        if module is None:
            continue
        algorithm = getattr(module, name, None)
        if algorithm is not None:
            return algorithm
    raise CryptoError(f"cipher {name} is not available")


def _cryptography_stream(algorithm, iv: bytes, encrypt: bool) -> Callable[[bytes], bytes]:
    try:
        cipher = Cipher(algorithm, modes.CFB(iv))
        worker = cipher.encryptor() if encrypt else cipher.decryptor()
    except (UnsupportedAlgorithm, ValueError) as exc:
        raise CryptoError(str(exc)) from exc
    return worker.update


_AES_CFB = {Method.AES_128_CFB, Method.AES_192_CFB, Method.AES_256_CFB}
_AES_CTR = {Method.AES_128_CTR, Method.AES_192_CTR, Method.AES_256_CTR}
_CAMELLIA = {Method.CAMELLIA_128_CFB, Method.CAMELLIA_192_CFB, Method.CAMELLIA_256_CFB}


class CipherContext:
    """One direction of a stream cipher keyed with a derived key and an IV.

    Successive calls to :meth:`update` continue the same keystream, so data
    may be fed in pieces of any size.
    """

    def __init__(
        self,
        method: Union[Method, int],
        key: BytesLike,
        iv: BytesLike = b"",
        encrypt: bool = True,
    ) -> None:
        method = _as_method(method)
        if method is Method.TABLE:
            raise CryptoError("the table method has no cipher context")
        key = bytes(key)
        iv = bytes(iv)
        if len(key) != method.key_size:
            raise CryptoError(
                f"{method.cipher_name} needs a {method.key_size}-byte key, got {len(key)}"
            )
        if len(iv) != method.iv_size:
            raise CryptoError(
                f"{method.cipher_name} needs a {method.iv_size}-byte IV, got {len(iv)}"
            )
        self.method = method
        self.iv = iv
        self.encrypt = encrypt
        try:
            self._process = self._build(method, key, iv, encrypt)
        except ValueError as exc:
            raise CryptoError(str(exc)) from exc

    @staticmethod
    def _build(method: Method, key: bytes, iv: bytes, encrypt: bool) -> Callable[[bytes], bytes]:
        def direction(cipher) -> Callable[[bytes], bytes]:
            return cipher.encrypt if encrypt else cipher.decrypt

        if method is Method.RC4:
            return ARC4.new(key).encrypt
        if method in (Method.RC4_MD5, Method.RC4_MD5_6):
            return ARC4.new(md5(key[:16] + iv)).encrypt
        if method in _AES_CFB:
            return direction(AES.new(key, AES.MODE_CFB, iv=iv, segment_size=128))
        if method in _AES_CTR:
            return AES.new(key, AES.MODE_CTR, nonce=b"", initial_value=iv).encrypt
        if method is Method.BF_CFB:
            return direction(Blowfish.new(key, Blowfish.MODE_CFB, iv=iv, segment_size=64))
        if method is Method.CAST5_CFB:
            return direction(CAST.new(key, CAST.MODE_CFB, iv=iv, segment_size=64))
        if method is Method.DES_CFB:
            return direction(DES.new(key, DES.MODE_CFB, iv=iv, segment_size=64))
        if method is Method.RC2_CFB:
            return direction(
                ARC2.new(
                    key, ARC2.MODE_CFB, iv=iv, segment_size=64, effective_keylen=len(key) * 8
                )
            )
        if method in _CAMELLIA:
            return _cryptography_stream(algorithms.Camellia(key), iv, encrypt)
        if method is Method.IDEA_CFB:
            return _cryptography_stream(_legacy_algorithm("IDEA")(key), iv, encrypt)
        if method is Method.SEED_CFB:
            return _cryptography_stream(_legacy_algorithm("SEED")(key), iv, encrypt)
        if method is Method.SALSA20:
            return Salsa20.new(key=key, nonce=iv).encrypt
        if method in (Method.CHACHA20, Method.CHACHA20IETF):
            return ChaCha20.new(key=key, nonce=iv).encrypt
        raise CryptoError(f"unsupported method {method.cipher_name}")

    def update(self, data: BytesLike) -> bytes:
        """Encrypt or decrypt the next piece of the stream."""
        data = bytes(data)
        if not data:
            return b""
        return bytes(self._process(data))