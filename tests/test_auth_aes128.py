import pytest

from ssrcore.auth_aes128 import AuthAes128, AuthAes128Md5, AuthAes128Sha1
from ssrcore.authproto import ProtocolError, ServerInfo
from ssrcore.digests import md5_hmac_with_key, sha1_hash, sha1_hmac_with_key

SERVER_KEY = bytes(range(16))
SERVER_IV = bytes(range(16, 32))

CLASSES = [AuthAes128Md5, AuthAes128Sha1]


def make_server(param="7:secret"):
    return ServerInfo(key=SERVER_KEY, iv=SERVER_IV, param=param)


def sender_after_header(cls, param="7:secret"):
    sender = cls(make_server(param))
    sender.client_pre_encrypt(bytes(1200))
    return sender


@pytest.mark.parametrize("cls", CLASSES)
@pytest.mark.parametrize("size", [1, 500, 1000, 5000])
@pytest.mark.parametrize("param", ["7:secret", ""])
def test_frames_round_trip(cls, size, param):
    sender = sender_after_header(cls, param)
    if not param:
        pass
    receiver = cls(make_server(param))
    payload = bytes((i * 7) % 256 for i in range(size))
    frames = sender.client_pre_encrypt(payload)
    assert receiver.client_post_decrypt(frames) == payload


@pytest.mark.parametrize("cls", CLASSES)
def test_round_trip_in_small_pieces(cls):
    sender = sender_after_header(cls)
    receiver = cls(make_server())
    payload = b"".join(sender.client_pre_encrypt(bytes([n]) * 300) for n in range(6))
    out = b"".join(receiver.client_post_decrypt(payload[i : i + 13]) for i in range(0, len(payload), 13))
    assert out == b"".join(bytes([n]) * 300 for n in range(6))


def test_auth_frame_layout():
    client = AuthAes128Sha1(make_server("7:secret"))
    data = bytes(range(200)) * 6
    frame = client.client_pre_encrypt(data)
    assert client.has_sent_header
    assert len(frame) in (1235, 1747)
    assert frame[-1204:-4] == data
    key = SERVER_IV + SERVER_KEY
    assert frame[1:7] == sha1_hmac_with_key(frame[:1], key)[:6]
    assert frame[7:11] == (7).to_bytes(4, "little")
    assert frame[27:31] == sha1_hmac_with_key(frame[7:27], key)[:4]
    assert frame[-4:] == sha1_hmac_with_key(frame[:-4], sha1_hash(b"secret"))[:4]


def test_auth_frame_splits_long_data():
    client = AuthAes128Md5(make_server())
    receiver = AuthAes128Md5(make_server())
    data = bytes(range(256)) * 6
    out = client.client_pre_encrypt(data)
    tail = data[1200:]
    frame = out[len(out) - (len(out) - out.index(tail) + 4 + 0) :]
    assert tail in out
    assert md5_hmac_with_key(out[:1], SERVER_IV + SERVER_KEY)[:6] == out[1:7]
    assert receiver.recv_id == 1
    assert frame.endswith(out[-4:])


def test_empty_data_sends_nothing():
    client = AuthAes128Sha1(make_server())
    assert client.client_pre_encrypt(b"") == b""
    assert client.has_sent_header is False


def test_corrupted_frame_raises_and_clears():
    sender = sender_after_header(AuthAes128Sha1)
    receiver = AuthAes128Sha1(make_server())
    frames = bytearray(sender.client_pre_encrypt(b"hello world" * 10))
    frames[-1] ^= 0xFF
    with pytest.raises(ProtocolError):
        receiver.client_post_decrypt(bytes(frames))
    assert receiver.client_post_decrypt(b"") == b""
    assert receiver.recv_id == 1


def test_wrong_user_key_is_rejected():
    sender = sender_after_header(AuthAes128Sha1, "7:secret")
    receiver = AuthAes128Sha1(make_server("7:token"))
    frames = sender.client_pre_encrypt(b"payload" * 20)
    with pytest.raises(ProtocolError):
        receiver.client_post_decrypt(frames)


def test_receive_buffer_overflow():
    receiver = AuthAes128Md5(make_server())
    with pytest.raises(ProtocolError):
        receiver.client_post_decrypt(bytes(16385))


def test_udp_pre_encrypt_layout():
    client = AuthAes128Sha1(make_server("7:secret"))
    data = b"datagram"
    out = client.client_udp_pre_encrypt(data)
    assert out[: len(data)] == data
    assert out[len(data) : len(data) + 4] == (7).to_bytes(4, "little")
    assert out[-4:] == sha1_hmac_with_key(out[:-4], sha1_hash(b"secret"))[:4]


def test_udp_pre_encrypt_without_param_uses_server_key():
    client = AuthAes128Md5(make_server(""))
    out = client.client_udp_pre_encrypt(b"abc")
    assert len(client.uid) == 4
    assert out[3:7] == client.uid
    assert out[-4:] == md5_hmac_with_key(out[:-4], SERVER_KEY)[:4]


@pytest.mark.parametrize("cls, digest", [(AuthAes128Md5, md5_hmac_with_key), (AuthAes128Sha1, sha1_hmac_with_key)])
def test_udp_post_decrypt(cls, digest):
    client = cls(make_server())
    data = b"reply datagram"
    packet = data + digest(data, SERVER_KEY)[:4]
    assert client.client_udp_post_decrypt(packet) == data
    tampered = bytearray(packet)
    tampered[0] ^= 1
    assert client.client_udp_post_decrypt(bytes(tampered)) == b""
    assert client.client_udp_post_decrypt(b"abcd") == b""


def test_base_class_needs_a_digest():
    with pytest.raises(TypeError):
        AuthAes128(make_server())