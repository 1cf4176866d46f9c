import dataclasses
import os

import pytest

from alpenglow.shred import (
    DATA_SHREDS,
    MAX_DATA_PER_SLICE,
    TOTAL_SHREDS,
    DeshredError,
    DeshredReason,
    ShredError,
    Slice,
    generate_signing_key,
)
from alpenglow.shredder import (
    AontShredder,
    CodingOnlyShredder,
    PetsShredder,
    RegularShredder,
)


def create_random_slice(padding: int) -> Slice:
    return Slice(
        slot=0,
        slice_index=0,
        is_last=True,
        merkle_root=None,
        data=os.urandom(MAX_DATA_PER_SLICE - padding),
    )


def _check_common_cases(shredder, padding, include_half_split=True, include_split=True):
    key = generate_signing_key()
    original = create_random_slice(padding)
    shreds = shredder.shred(original, key)
    assert len(shreds) == TOTAL_SHREDS

    restored = shredder.deshred(shreds)
    expected = dataclasses.replace(original, merkle_root=restored.merkle_root)
    assert restored == expected
    assert restored.merkle_root == shreds[0].merkle_root

    assert shredder.deshred(shreds[:DATA_SHREDS]) == expected
    if include_split:
        assert shredder.deshred(shreds[DATA_SHREDS:]) == expected

    non_consecutive = shreds[:1] + shreds[DATA_SHREDS + 1 :]
    assert shredder.deshred(non_consecutive) == expected

    if include_half_split:
        start = DATA_SHREDS // 2
        end = DATA_SHREDS // 2 + DATA_SHREDS
        assert shredder.deshred(shreds[start:end]) == expected

    assert shredder.deshred(shreds[1:]) == expected

    with pytest.raises(DeshredError) as exc:
        shredder.deshred(shreds[:1])
    assert exc.value.reason is DeshredReason.NOT_ENOUGH_SHREDS

    with pytest.raises(DeshredError) as exc:
        shredder.deshred(shreds[: DATA_SHREDS - 1])
    assert exc.value.reason is DeshredReason.NOT_ENOUGH_SHREDS


def test_regular_shredding():
    _check_common_cases(RegularShredder(), 0)


def test_coding_only_shredding():
    _check_common_cases(CodingOnlyShredder(), 0, include_half_split=False, include_split=False)


def test_aont_shredding():
    _check_common_cases(AontShredder(), 16, include_split=False)


def test_pets_shredding():
    _check_common_cases(PetsShredder(), 16, include_split=False)


def test_regular_shred_layout_and_signatures():
    key = generate_signing_key()
    shreds = RegularShredder().shred(create_random_slice(0), key)
    assert sum(s.is_data() for s in shreds) == DATA_SHREDS
    assert sum(s.is_coding() for s in shreds) == TOTAL_SHREDS - DATA_SHREDS
    assert all(s.verify(key.public_key()) for s in shreds)
    other = generate_signing_key().public_key()
    assert not shreds[0].verify(other)


def test_regular_data_shreds_hold_plain_payload():
    original = create_random_slice(0)
    shreds = RegularShredder().shred(original, generate_signing_key())
    joined = b"".join(s.payload.data for s in shreds if s.is_data())
    assert joined == original.data


def test_coding_only_outputs_only_coding_shreds():
    shreds = CodingOnlyShredder().shred(create_random_slice(0), generate_signing_key())
    assert all(s.is_coding() for s in shreds)
    assert sorted(s.payload.index_in_slice for s in shreds) == list(range(TOTAL_SHREDS))


def test_pets_layout():
    shreds = PetsShredder().shred(create_random_slice(16), generate_signing_key())
    assert sum(s.is_data() for s in shreds) == DATA_SHREDS - 1
    assert sum(s.is_coding() for s in shreds) == TOTAL_SHREDS - DATA_SHREDS + 1


def test_aont_data_shreds_are_encrypted():
    original = create_random_slice(16)
    shreds = AontShredder().shred(original, generate_signing_key())
    joined = b"".join(s.payload.data for s in shreds if s.is_data())
    assert len(joined) == MAX_DATA_PER_SLICE
    assert joined[: len(original.data)] != original.data


@pytest.mark.parametrize("shredder", [RegularShredder(), CodingOnlyShredder()])
def test_too_much_data_rejected(shredder):
    oversized = Slice(0, 0, True, None, bytes(MAX_DATA_PER_SLICE + DATA_SHREDS))
    with pytest.raises(ShredError):
        shredder.shred(oversized, generate_signing_key())


@pytest.mark.parametrize("shredder", [PetsShredder(), AontShredder()])
def test_all_or_nothing_max_size(shredder):
    assert shredder.MAX_DATA_SIZE == MAX_DATA_PER_SLICE - 16
    oversized = create_random_slice(15)
    with pytest.raises(ShredError):
        shredder.shred(oversized, generate_signing_key())


@pytest.mark.parametrize(
    "shredder", [RegularShredder(), AontShredder(), PetsShredder()]
)
def test_too_many_shreds(shredder):
    padding = 0 if isinstance(shredder, RegularShredder) else 16
    shreds = shredder.shred(create_random_slice(padding), generate_signing_key())
    with pytest.raises(DeshredError) as exc:
        shredder.deshred(shreds + shreds[:1])
    assert exc.value.reason is DeshredReason.TOO_MANY_SHREDS


@pytest.mark.parametrize("shredder", [RegularShredder(), AontShredder()])
def test_tampered_data_shred_detected(shredder):
    padding = 0 if isinstance(shredder, RegularShredder) else 16
    shreds = shredder.shred(create_random_slice(padding), generate_signing_key())
    first = shreds[0]
    flipped = bytes([first.payload.data[0] ^ 0xFF]) + first.payload.data[1:]
    tampered = dataclasses.replace(
        first, payload=dataclasses.replace(first.payload, data=flipped)
    )
    with pytest.raises(DeshredError) as exc:
        shredder.deshred([tampered, *shreds[1:]])
    assert exc.value.reason is DeshredReason.INVALID_MERKLE_TREE


@pytest.mark.parametrize(
    "shredder", [RegularShredder(), CodingOnlyShredder(), AontShredder(), PetsShredder()]
)
def test_small_slice_round_trip(shredder):
    original = Slice(
        slot=7, slice_index=3, is_last=False, merkle_root=None, data=os.urandom(16 * 32 - 16)
    )
    if isinstance(shredder, (RegularShredder, CodingOnlyShredder)):
        original = dataclasses.replace(original, data=os.urandom(16 * 32))
    shreds = shredder.shred(original, generate_signing_key())
    restored = shredder.deshred(shreds[-DATA_SHREDS:])
    assert restored.data == original.data
    assert (restored.slot, restored.slice_index, restored.is_last) == (7, 3, False)


def test_uneven_data_rejected():
    uneven = Slice(0, 0, True, None, bytes(DATA_SHREDS * 4 + 1))
    with pytest.raises(ShredError):
        RegularShredder().shred(uneven, generate_signing_key())


def test_aont_shreds_differ_between_runs():
    original = create_random_slice(16)
    key = generate_signing_key()
    first = AontShredder().shred(original, key)
    second = AontShredder().shred(original, key)
    assert first[0].merkle_root != second[0].merkle_root
    assert AontShredder().deshred(first).data == AontShredder().deshred(second).data