import random

import pytest

from alpenglow.erasure import ErasureError, decode, encode


def _shards(count, size, seed=7):
    rng = random.Random(seed)
    return [rng.randbytes(size) for _ in range(count)]


def _xor(a, b):
    return bytes(x ^ y for x, y in zip(a, b))


def test_single_original_is_copied_to_coding():
    assert encode(1, 1, [b"abc"]) == [b"abc"]


def test_encode_output_shape():
    coding = encode(4, 3, _shards(4, 16))
    assert len(coding) == 3
    assert all(len(part) == 16 for part in coding)


def test_zero_data_gives_zero_coding():
    coding = encode(8, 8, [bytes(10)] * 8)
    assert coding == [bytes(10)] * 8


def test_encoding_is_linear():
    a = _shards(6, 12, seed=1)
    b = _shards(6, 12, seed=2)
    mixed = [_xor(x, y) for x, y in zip(a, b)]
    expected = [_xor(x, y) for x, y in zip(encode(6, 5, a), encode(6, 5, b))]
    assert encode(6, 5, mixed) == expected


def test_decode_with_all_originals_restores_nothing():
    data = _shards(4, 8)
    coding = encode(4, 4, data)
    assert decode(4, 4, enumerate(data), enumerate(coding)) == {}


def test_decode_from_coding_only():
    data = _shards(32, 64)
    coding = encode(32, 32, data)
    restored = decode(32, 32, [], enumerate(coding))
    assert [restored[j] for j in range(32)] == data


@pytest.mark.parametrize(
    "lost",
    [
        {0},
        {31},
        set(range(0, 32, 2)),
        set(range(16)),
        set(range(1, 32)),
    ],
)
def test_decode_restores_lost_originals(lost):
    data = _shards(32, 32)
    coding = encode(32, 32, data)
    present = [(j, d) for j, d in enumerate(data) if j not in lost]
    # use the last coding shards to exercise non-prefix selections
    parity = list(enumerate(coding))[32 - len(lost):]
    restored = decode(32, 32, present, parity)
    assert set(restored) == lost
    assert all(restored[j] == data[j] for j in lost)


def test_decode_not_enough_shards():
    data = _shards(8, 8)
    coding = encode(8, 8, data)
    with pytest.raises(ErasureError):
        decode(8, 8, list(enumerate(data))[:3], list(enumerate(coding))[:4])


def test_encode_wrong_part_count():
    with pytest.raises(ErasureError):
        encode(4, 2, _shards(3, 8))


def test_encode_unequal_lengths():
    with pytest.raises(ErasureError):
        encode(2, 2, [b"ab", b"abc"])


def test_encode_empty_shards():
    with pytest.raises(ErasureError):
        encode(2, 2, [b"", b""])


def test_too_many_shards():
    with pytest.raises(ErasureError):
        encode(200, 100, _shards(200, 2))


def test_decode_index_out_of_range():
    with pytest.raises(ErasureError):
        decode(2, 2, [(5, b"xx")], [(0, b"xx"), (1, b"xx")])


def test_decode_duplicate_index():
    with pytest.raises(ErasureError):
        decode(2, 2, [(0, b"xx"), (0, b"xx")], [(0, b"xx")])