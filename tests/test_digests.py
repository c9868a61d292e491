import pytest

from ssrcore.ciphers import CryptoError
from ssrcore.digests import (
    ChunkVerifier,
    aes_128_cbc,
    gen_hash,
    md5_hash,
    md5_hmac_with_key,
    onetimeauth,
    onetimeauth_verify,
    sha1_hash,
    sha1_hmac_with_key,
)

KEY = bytes(range(32))
IV = bytes(range(100, 116))


def test_md5_hash_of_empty_message():
    assert md5_hash(b"").hex() == "d41d8cd98f00b204e9800998ecf8427e"


def test_sha1_hash_known_vector():
    assert sha1_hash(b"abc").hex() == "a9993e364706816aba3e25717850c26c9cd0d89d"


def test_md5_hmac_known_vector():
    digest = md5_hmac_with_key(b"what do ya want for nothing?", b"Jefe")
    assert digest.hex() == "750c783e6ab0b503eaa86e310a5db738"


def test_sha1_hmac_known_vector():
    digest = sha1_hmac_with_key(b"what do ya want for nothing?", b"Jefe")
    assert digest.hex() == "effcdf6ae5eb2fa2d27416d5f184df9c259a7c79"


def test_hmac_lengths_and_key_dependence():
    assert len(md5_hmac_with_key(b"msg", b"k1")) == 16
    assert len(sha1_hmac_with_key(b"msg", b"k1")) == 20
    assert sha1_hmac_with_key(b"msg", b"k1") != sha1_hmac_with_key(b"msg", b"k2")
    assert md5_hmac_with_key(b"msg", b"k1") == md5_hmac_with_key(bytearray(b"msg"), b"k1")


def test_aes_128_cbc_single_block_vector():
    key = bytes(range(16))
    block = bytes.fromhex("00112233445566778899aabbccddeeff")
    assert aes_128_cbc(block, key).hex() == "69c4e0d86a7b0430d8cdb78070b4c55a"


@pytest.mark.parametrize("size", [0, 15, 17, 32])
def test_aes_128_cbc_rejects_other_block_sizes(size):
    with pytest.raises(ValueError):
        aes_128_cbc(bytes(size), bytes(16))


def test_aes_128_cbc_rejects_bad_key():
    with pytest.raises(ValueError):
        aes_128_cbc(bytes(16), bytes(8))


def test_onetimeauth_appends_ten_byte_tag():
    data = b"\x01hello world"
    signed = onetimeauth(data, KEY, IV)
    assert len(signed) == len(data) + 10
    assert signed[: len(data)] == data


def test_onetimeauth_round_trip():
    signed = onetimeauth(b"payload bytes", KEY, IV)
    assert onetimeauth_verify(signed, KEY, IV) is True


def test_onetimeauth_detects_tampering():
    signed = bytearray(onetimeauth(b"payload bytes", KEY, IV))
    signed[0] ^= 0x01
    assert onetimeauth_verify(bytes(signed), KEY, IV) is False


def test_onetimeauth_depends_on_iv_and_key():
    signed = onetimeauth(b"payload", KEY, IV)
    assert onetimeauth_verify(signed, KEY, bytes(16)) is False
    assert onetimeauth_verify(signed, bytes(32), IV) is False


def test_onetimeauth_verify_short_input():
    assert onetimeauth_verify(b"short", KEY, IV) is False


def test_gen_hash_layout():
    data = b"abcdefgh"
    chunk = gen_hash(data, 0, IV)
    assert len(chunk) == len(data) + 12
    assert chunk[:2] == b"\x00\x08"
    assert chunk[12:] == data


def test_gen_hash_tag_depends_on_counter():
    assert gen_hash(b"same", 0, IV)[2:12] != gen_hash(b"same", 1, IV)[2:12]
    assert gen_hash(b"same", 3, IV) == gen_hash(b"same", 3, IV)


def test_gen_hash_rejects_oversized_chunk():
    with pytest.raises(ValueError):
        gen_hash(bytes(0x10000), 0, IV)


def test_verifier_round_trip_multiple_chunks():
    stream = gen_hash(b"first", 0, IV) + gen_hash(b"second", 1, IV)
    verifier = ChunkVerifier(IV)
    assert verifier.feed(stream) == b"firstsecond"
    assert verifier.counter == 2


def test_verifier_accepts_byte_by_byte_input():
    stream = gen_hash(b"alpha", 0, IV) + gen_hash(b"beta", 1, IV) + gen_hash(b"", 2, IV)
    verifier = ChunkVerifier(IV)
    collected = b"".join(verifier.feed(stream[i : i + 1]) for i in range(len(stream)))
    assert collected == b"alphabeta"
    assert verifier.counter == 3


def test_verifier_holds_partial_chunk():
    chunk = gen_hash(b"partial data", 0, IV)
    verifier = ChunkVerifier(IV)
    assert verifier.feed(chunk[:7]) == b""
    assert verifier.feed(chunk[7:]) == b"partial data"


def test_verifier_rejects_wrong_counter():
    verifier = ChunkVerifier(IV)
    with pytest.raises(CryptoError):
        verifier.feed(gen_hash(b"data", 1, IV))


def test_verifier_rejects_tampered_payload():
    chunk = bytearray(gen_hash(b"data", 0, IV))
    chunk[-1] ^= 0xFF
    with pytest.raises(CryptoError):
        ChunkVerifier(IV).feed(bytes(chunk))


def test_verifier_rejects_other_iv():
    with pytest.raises(CryptoError):
        ChunkVerifier(bytes(16)).feed(gen_hash(b"data", 0, IV))