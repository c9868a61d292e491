# ssrcore

The building blocks of a ShadowsocksR-style proxy client, as a plain Python
library.

## Modules

- `ssrcore.b64codec`: `encode(data)` gives padded standard base64 text.
  `decode(text)` accepts `str` or bytes and stops at the first `=`. Any other
  character outside the alphabet raises `Base64Error`, a `ValueError`.
- `ssrcore.checksum`: `crc32`, `crc32_bytes` (four little-endian bytes),
  `adler32`, and three helpers for the trailing four bytes of a frame.
  `fill_crc32` writes a trailer so that the CRC-32 of the whole buffer is
  `0xFFFFFFFF`. `fill_adler32` writes the Adler-32 of the rest of the buffer,
  and `check_adler32` checks it.
- `ssrcore.cache`: `Cache(capacity, free_cb=None, clock=time.time)` is a
  bounded cache that keeps entries in least-recently-used order.
  - `insert`, `remove`, `lookup`, `key_exists`, `clear(age)` and
    `delete(keep_data)`, plus `len()` and `in`.
  - An insert that brings the count up to `capacity` evicts the least recently
    used entry.
  - `lookup` and `key_exists` refresh an entry's timestamp.
  - `free_cb(key, data)` runs for every dropped entry that holds data.
- `ssrcore.ciphers`:
  - The `Method` enum of supported methods, with `cipher_name`, `key_size` and
    `iv_size`, and the functions `method_from_name`, `cipher_key_size` and
    `cipher_iv_size`. No name selects `TABLE`; an unknown name falls back to
    `rc4-md5` and logs a warning.
  - Key derivation with `bytes_to_key` and `bytes_to_key_with_size`.
  - `make_tables(password)` returns the encrypt/decrypt substitution tables of
    the table method.
  - `md5` and `rand_bytes`.
  - `CipherContext(method, key, iv, encrypt)`, a stream cipher in one
    direction that is fed through `update`.
  - Set-up errors raise `CryptoError`.
- `ssrcore.digests`:
  - `md5_hash`, `sha1_hash`, `md5_hmac_with_key` and `sha1_hmac_with_key`.
  - `aes_128_cbc`, which encrypts one 16-byte block under a zero IV.
  - One-time authentication with `onetimeauth` / `onetimeauth_verify`, a
    10-byte HMAC-SHA1 tag keyed with IV + key.
  - Authenticated chunks: `gen_hash(data, counter, iv)` frames one chunk, and
    `ChunkVerifier(iv).feed(data)` reassembles and checks them. A chunk that
    fails its check raises `CryptoError`.
- `ssrcore.authproto`: the client side of `auth_simple` (`AuthSimple`),
  `auth_sha1` (`AuthSha1`), `auth_sha1_v2` (`AuthSha1V2`) and `auth_sha1_v4`
  (`AuthSha1V4`).
  - Each one is built from a `ServerInfo(key, iv, param)` and an optional
    shared `ClientIdentity`.
  - Each one offers `client_pre_encrypt(data)` and `client_post_decrypt(data)`.
  - Malformed frames or receive-buffer overflow raise `ProtocolError`.
- `ssrcore.auth_aes128`: `AuthAes128Md5` and `AuthAes128Sha1`.
  - They offer the same two stream methods, plus `client_udp_pre_encrypt` and
    `client_udp_post_decrypt`.
  - A `ServerInfo.param` of the form `uid:key` sets the user id and the user
    key. Without it, a random user id and the server key are used.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
from ssrcore.ciphers import CipherContext, bytes_to_key, method_from_name, rand_bytes
from ssrcore.authproto import AuthSha1V4, ServerInfo
from ssrcore.digests import ChunkVerifier, gen_hash

method = method_from_name("aes-256-cfb")
password = "password"
key = bytes_to_key(password, method.key_size)
iv = rand_bytes(method.iv_size)

sender = CipherContext(method, key, iv, encrypt=True)
receiver = CipherContext(method, key, iv, encrypt=False)
wire = sender.update(b"first") + sender.update(b"second")
assert receiver.update(wire) == b"firstsecond"

verifier = ChunkVerifier(iv)
stream = gen_hash(b"one", 0, iv) + gen_hash(b"two", 1, iv)
assert verifier.feed(stream) == b"onetwo"

protocol = AuthSha1V4(ServerInfo(key=key, iv=iv))
frames = protocol.client_pre_encrypt(b"\x03\x0bexample.com\x00\x50GET / HTTP/1.1\r\n\r\n")
```

A failure does not come back as a status code. Malformed or tampered data
raises an exception: `CryptoError`, `ProtocolError` or `Base64Error`, depending
on the layer.

## What this package does not do

- It has no network code: no local or remote proxy server, no sockets and no
  command to run. You move the bytes yourself.
- It has no ready-made encryptor object that holds a password-derived key,
  prepends random IVs to packets, or rejects replayed IVs. You build these
  yourself from `CipherContext`, `bytes_to_key`, `rand_bytes`, `make_tables`,
  `onetimeauth` and `Cache`.
- The protocol classes cover the client side only.